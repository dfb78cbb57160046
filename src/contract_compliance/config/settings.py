"""Tunable constants for scoring, analytics and suggestion generation."""

from dataclasses import dataclass, field
from typing import Dict, Optional

from ..models.enums import RiskLevel


def _default_severity_factors() -> Dict[RiskLevel, float]:
    return {
        RiskLevel.LOW: 1.0,
        RiskLevel.MEDIUM: 2.0,
        RiskLevel.HIGH: 3.0,
        RiskLevel.CRITICAL: 4.0,
    }


@dataclass
class ScoringSettings:
    """
    Constants of the compliance score formula.

    Each violation deducts ``weight * severity_factor * deduction_scale``
    points from ``max_score``.
    """
    severity_factors: Dict[RiskLevel, float] = field(default_factory=_default_severity_factors)
    deduction_scale: float = 10.0
    max_score: float = 100.0


@dataclass
class AnalyticsSettings:
    """Settings for portfolio risk analytics."""
    risk_score_unit: float = 25.0
    trend_band: float = 5.0
    top_risk_factors: int = 5
    max_workers: int = 4
    chunk_size: int = 250

    def __post_init__(self):
        if self.trend_band < 0:
            raise ValueError("trend_band must be non-negative")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")


@dataclass
class SuggestionSettings:
    """
    Settings for suggestion generation.

    The three weights combine the share of triggered rules a rewrite
    resolves, its token similarity to the original, and the provider's own
    confidence. When the provider reports no confidence the remaining
    weights are renormalised. ``max_suggestions`` is an optional ceiling
    applied on top of each request's own limit; None leaves the request
    limit in charge.
    """
    confidence_threshold: float = 0.6
    max_suggestions: Optional[int] = None
    provider_timeout: float = 10.0
    rules_weight: float = 0.4
    similarity_weight: float = 0.3
    provider_weight: float = 0.3
    template_similarity_threshold: float = 0.5
    template_candidates: int = 3

    def __post_init__(self):
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be within [0, 1]")
        if self.provider_timeout <= 0:
            raise ValueError("provider_timeout must be positive")
        if self.max_suggestions is not None and self.max_suggestions < 0:
            raise ValueError("max_suggestions must be non-negative")
        weights = (self.rules_weight, self.similarity_weight, self.provider_weight)
        if any(w < 0 for w in weights) or sum(weights) <= 0:
            raise ValueError("Confidence weights must be non-negative and not all zero")
