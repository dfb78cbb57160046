"""Interfaces for the external capabilities the suggestion engine relies on."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..models.enums import SuggestionType
from ..models.suggestion import ClauseTemplate


@dataclass
class RewriteResult:
    """
    Text produced by a rewrite provider.

    ``confidence`` is the provider's own confidence in [0, 1], or None when
    the provider does not report one.
    """
    text: str
    confidence: Optional[float] = None
    reasoning: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}


class IRewriteProvider(ABC):
    """
    Abstract interface for clause rewriting.

    Implementations may call remote language models and may block; callers
    bound every call with a timeout.
    """

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    def rewrite(
        self,
        clause: str,
        suggestion_type: SuggestionType,
        context: Dict[str, Any],
    ) -> List[RewriteResult]:
        """
        Propose rewritten clauses.

        Args:
            clause: Original clause text.
            suggestion_type: Improvement category to target.
            context: Request context (frameworks, jurisdiction, triggered rules).

        Returns:
            Candidate rewrites, empty when the provider has nothing to offer.
        """
        pass


class ISimilaritySearchProvider(ABC):
    """Abstract interface for searching stored clause templates by similarity."""

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    def search(
        self,
        clause: str,
        templates: Sequence[ClauseTemplate],
        limit: int = 5,
    ) -> List[Tuple[ClauseTemplate, float]]:
        """
        Find the templates most similar to a clause.

        Args:
            clause: Clause text to search with.
            templates: Candidate templates.
            limit: Maximum number of results.

        Returns:
            List of (template, similarity) tuples sorted by similarity descending.
        """
        pass
