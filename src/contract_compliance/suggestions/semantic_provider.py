"""Embedding-based similarity search over clause templates.

Uses a sentence-transformers model to embed clauses and templates and ranks
templates by cosine similarity.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..interfaces.providers import ISimilaritySearchProvider
from ..models.suggestion import ClauseTemplate


logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


def load_embedding_model(model_name: str = DEFAULT_EMBEDDING_MODEL) -> Optional[Any]:
    """Load a sentence-transformers model, or return None when unavailable."""
    try:
        from sentence_transformers import SentenceTransformer
        logger.info(f"Loading embedding model: {model_name}")
        model = SentenceTransformer(model_name)
        logger.info("Embedding model loaded successfully")
        return model
    except ImportError:
        logger.warning("sentence-transformers not installed. Semantic template search disabled.")
        return None
    except Exception as e:
        logger.error(f"Failed to load embedding model: {e}")
        return None


class EmbeddingSimilarityProvider(ISimilaritySearchProvider):
    """
    Similarity search using sentence embeddings.

    Template embeddings are cached by template ID and content, so repeated
    searches over the same library only embed the query clause.
    """

    def __init__(self, embedding_model: Any, similarity_threshold: float = 0.0):
        """
        Initialize the provider.

        Args:
            embedding_model: Object with an ``encode(text)`` method returning a vector.
            similarity_threshold: Results below this similarity are dropped.
        """
        if embedding_model is None:
            raise ValueError("EmbeddingSimilarityProvider requires an embedding model")
        self._embedding_model = embedding_model
        self._similarity_threshold = similarity_threshold
        self._cache: Dict[Tuple[str, str], List[float]] = {}

    def search(
        self,
        clause: str,
        templates: Sequence[ClauseTemplate],
        limit: int = 5,
    ) -> List[Tuple[ClauseTemplate, float]]:
        clause_embedding = self._embed(clause)
        results: List[Tuple[ClauseTemplate, float]] = []
        for template in templates:
            key = (template.id, template.content)
            if key not in self._cache:
                self._cache[key] = self._embed(template.content)
            similarity = self._cosine_similarity(clause_embedding, self._cache[key])
            if similarity >= self._similarity_threshold:
                results.append((template, max(0.0, min(1.0, similarity))))

        results.sort(key=lambda item: (-item[1], item[0].id))
        return results[:max(0, limit)]

    def _embed(self, text: str) -> List[float]:
        embedding = self._embedding_model.encode(text)
        return list(embedding.tolist() if hasattr(embedding, "tolist") else embedding)

    @staticmethod
    def _cosine_similarity(vec1: List[float], vec2: List[float]) -> float:
        """Cosine similarity of two vectors (0.0 for mismatched or zero vectors)."""
        if len(vec1) != len(vec2):
            return 0.0

        dot_product = sum(a * b for a, b in zip(vec1, vec2))
        norm1 = sum(a * a for a in vec1) ** 0.5
        norm2 = sum(b * b for b in vec2) ** 0.5

        if norm1 == 0 or norm2 == 0:
            return 0.0

        return dot_product / (norm1 * norm2)
