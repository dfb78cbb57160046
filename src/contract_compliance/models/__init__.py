"""Data models and enums for the Contract Compliance Engine."""

from .enums import (
    ClauseCategory,
    ComparisonRecommendation,
    ComplianceFramework,
    ContractStatus,
    ContractType,
    DifferenceType,
    RiskLevel,
    RiskTrend,
    SuggestionSource,
    SuggestionStatus,
    SuggestionType,
    TemplateStatus,
)
from .compliance import (
    DEFAULT_RISK_THRESHOLDS,
    ComplianceConfiguration,
    ComplianceRule,
    ComplianceScore,
    ComplianceViolation,
    ContractComplianceAnalysis,
)
from .analytics import (
    AnalyticsPeriod,
    ClientRiskBreakdown,
    Contract,
    RiskAnalytics,
    RiskBreakdown,
    RiskMitigation,
    RiskTrendPoint,
)
from .suggestion import (
    ClauseComparison,
    ClauseDifference,
    ClauseSuggestion,
    ClauseTemplate,
    ClauseTemplateMatch,
    MatchingSection,
    SmartSuggestionRequest,
)

__all__ = [
    # Enums
    "ClauseCategory",
    "ComparisonRecommendation",
    "ComplianceFramework",
    "ContractStatus",
    "ContractType",
    "DifferenceType",
    "RiskLevel",
    "RiskTrend",
    "SuggestionSource",
    "SuggestionStatus",
    "SuggestionType",
    "TemplateStatus",
    # Compliance models
    "DEFAULT_RISK_THRESHOLDS",
    "ComplianceConfiguration",
    "ComplianceRule",
    "ComplianceScore",
    "ComplianceViolation",
    "ContractComplianceAnalysis",
    # Analytics models
    "AnalyticsPeriod",
    "ClientRiskBreakdown",
    "Contract",
    "RiskAnalytics",
    "RiskBreakdown",
    "RiskMitigation",
    "RiskTrendPoint",
    # Suggestion models
    "ClauseComparison",
    "ClauseDifference",
    "ClauseSuggestion",
    "ClauseTemplate",
    "ClauseTemplateMatch",
    "MatchingSection",
    "SmartSuggestionRequest",
]
