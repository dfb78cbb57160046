"""Rule evaluation, scoring and per-contract aggregation."""

from .aggregator import AnalysisAggregator
from .analyzer import AnalysisOutcome, ComplianceAnalyzer
from .evaluator import ClauseEvaluator, EvaluationResult
from .scorer import ComplianceScorer

__all__ = [
    "AnalysisAggregator",
    "AnalysisOutcome",
    "ClauseEvaluator",
    "ComplianceAnalyzer",
    "ComplianceScorer",
    "EvaluationResult",
]
