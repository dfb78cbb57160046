"""
Contract Compliance Engine

Rule-based compliance analysis of contract text, portfolio risk analytics
and clause suggestions.
"""

__version__ = "0.1.0"

# Export main components
from .models.enums import (
    ClauseCategory,
    ComplianceFramework,
    RiskLevel,
    RiskTrend,
    SuggestionSource,
    SuggestionStatus,
    SuggestionType,
)
from .models.compliance import (
    ComplianceConfiguration,
    ComplianceRule,
    ComplianceScore,
    ComplianceViolation,
    ContractComplianceAnalysis,
)
from .models.analytics import AnalyticsPeriod, Contract, RiskAnalytics
from .models.suggestion import ClauseSuggestion, ClauseTemplate, SmartSuggestionRequest
from .exceptions import (
    ComplianceEngineError,
    ConfigurationMissing,
    ErrorCollector,
    ProviderFailure,
    ProviderTimeout,
    RuleCompilationError,
)
from .rules import RuleRepository, RuleSnapshot, default_rules
from .analysis import ComplianceAnalyzer
from .analytics import AnalyticsEngine
from .suggestions import ClauseComparator, ClauseTemplateMatcher, SuggestionEngine
from .interfaces.audit import AuditEvent, AuditEventType, IAuditLogger
from .interfaces.providers import IRewriteProvider, ISimilaritySearchProvider, RewriteResult
from .audit import AuditLogger, DatabaseManager
from .config import ConfigurationError, ConfigurationManager, ValidationResult
from .serialization import ComplianceSerializer
from .pipeline import CompliancePipeline, PipelineConfig, PipelineResult

__all__ = [
    "ClauseCategory",
    "ComplianceFramework",
    "RiskLevel",
    "RiskTrend",
    "SuggestionSource",
    "SuggestionStatus",
    "SuggestionType",
    "ComplianceConfiguration",
    "ComplianceRule",
    "ComplianceScore",
    "ComplianceViolation",
    "ContractComplianceAnalysis",
    "AnalyticsPeriod",
    "Contract",
    "RiskAnalytics",
    "ClauseSuggestion",
    "ClauseTemplate",
    "SmartSuggestionRequest",
    "ComplianceEngineError",
    "ConfigurationMissing",
    "ErrorCollector",
    "ProviderFailure",
    "ProviderTimeout",
    "RuleCompilationError",
    "RuleRepository",
    "RuleSnapshot",
    "default_rules",
    "ComplianceAnalyzer",
    "AnalyticsEngine",
    "ClauseComparator",
    "ClauseTemplateMatcher",
    "SuggestionEngine",
    "AuditEvent",
    "AuditEventType",
    "IAuditLogger",
    "IRewriteProvider",
    "ISimilaritySearchProvider",
    "RewriteResult",
    "AuditLogger",
    "DatabaseManager",
    "ConfigurationError",
    "ConfigurationManager",
    "ValidationResult",
    "ComplianceSerializer",
    "CompliancePipeline",
    "PipelineConfig",
    "PipelineResult",
]
