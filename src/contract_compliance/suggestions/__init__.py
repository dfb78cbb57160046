"""Clause suggestions, template matching and clause comparison."""

from .comparison import ClauseComparator
from .providers import HttpRewriteProvider, RuleBasedRewriteProvider
from .semantic_provider import EmbeddingSimilarityProvider, load_embedding_model
from .suggestion_engine import SuggestionEngine, SuggestionRun
from .template_matcher import ClauseTemplateMatcher, TokenOverlapSearchProvider

__all__ = [
    "ClauseComparator",
    "ClauseTemplateMatcher",
    "EmbeddingSimilarityProvider",
    "HttpRewriteProvider",
    "RuleBasedRewriteProvider",
    "SuggestionEngine",
    "SuggestionRun",
    "TokenOverlapSearchProvider",
    "load_embedding_model",
]
