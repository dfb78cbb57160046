"""Compliance data models: rules, violations, scores and analyses."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .enums import ClauseCategory, ComplianceFramework, RiskLevel


DEFAULT_RISK_THRESHOLDS: Dict[RiskLevel, float] = {
    RiskLevel.LOW: 80.0,
    RiskLevel.MEDIUM: 60.0,
    RiskLevel.HIGH: 40.0,
    RiskLevel.CRITICAL: 0.0,
}


@dataclass(frozen=True)
class ComplianceRule:
    """
    A single regulatory check.

    A rule triggers on a clause when any of its keywords occurs in the
    normalised text or any of its patterns matches. Rules are immutable once
    built; changing a rule means publishing a new rule snapshot.
    """
    id: str
    framework: ComplianceFramework
    category: ClauseCategory
    risk_level: RiskLevel
    weight: float
    keywords: Tuple[str, ...] = ()
    patterns: Tuple[str, ...] = ()
    name: str = ""
    description: str = ""
    suggested_action: str = ""
    recommended_language: Optional[str] = None
    jurisdiction: Optional[str] = None
    client_id: Optional[str] = None
    is_active: bool = True

    def __post_init__(self):
        object.__setattr__(self, "keywords", tuple(self.keywords or ()))
        object.__setattr__(self, "patterns", tuple(self.patterns or ()))
        if not self.name:
            object.__setattr__(self, "name", self.id)
        if not 0.0 <= self.weight <= 1.0:
            raise ValueError(f"Rule '{self.id}': weight must be within [0, 1], got {self.weight}")
        if not self.keywords and not self.patterns:
            raise ValueError(f"Rule '{self.id}': at least one keyword or pattern is required")

    @property
    def is_global(self) -> bool:
        """True when the rule is not scoped to a single client."""
        return self.client_id is None

    def applies_to_jurisdiction(self, jurisdiction: Optional[str]) -> bool:
        """Unscoped rules apply everywhere; scoped rules only to their jurisdiction."""
        if self.jurisdiction is None:
            return True
        if jurisdiction is None:
            return False
        return self.jurisdiction.casefold() == jurisdiction.casefold()


@dataclass
class ComplianceViolation:
    """
    A rule triggered by a specific clause.

    Severity, framework, category and rule name are copied from the rule at
    evaluation time. Only the resolution fields change afterwards, and only
    through the review workflow.
    """
    id: str
    rule_id: str
    clause_id: str
    severity: RiskLevel
    description: str
    explanation: str
    suggested_action: str
    framework: Optional[ComplianceFramework] = None
    category: Optional[ClauseCategory] = None
    rule_name: str = ""
    detected_at: datetime = field(default_factory=datetime.utcnow, compare=False)
    is_resolved: bool = False
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None


@dataclass
class ComplianceScore:
    """Score of one contract against one framework."""
    framework: ComplianceFramework
    overall_score: float
    risk_level: RiskLevel
    violations: List[ComplianceViolation] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    last_updated: datetime = field(default_factory=datetime.utcnow, compare=False)

    def __post_init__(self):
        if self.violations is None:
            self.violations = []
        if self.recommendations is None:
            self.recommendations = []


@dataclass
class ContractComplianceAnalysis:
    """
    Aggregated compliance result for one contract.

    The critical/medium/low buckets partition the union of all framework
    violations.
    """
    contract_id: str
    document_name: str
    frameworks: List[ComplianceScore] = field(default_factory=list)
    overall_risk_level: RiskLevel = RiskLevel.LOW
    overall_compliance_score: int = 100
    critical_issues: List[ComplianceViolation] = field(default_factory=list)
    medium_issues: List[ComplianceViolation] = field(default_factory=list)
    low_issues: List[ComplianceViolation] = field(default_factory=list)
    auto_tags: List[str] = field(default_factory=list)
    jurisdiction: Optional[str] = None
    client_id: Optional[str] = None
    analyzed_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if self.frameworks is None:
            self.frameworks = []
        if self.critical_issues is None:
            self.critical_issues = []
        if self.medium_issues is None:
            self.medium_issues = []
        if self.low_issues is None:
            self.low_issues = []
        if self.auto_tags is None:
            self.auto_tags = []

    @property
    def all_violations(self) -> List[ComplianceViolation]:
        """Every violation across all evaluated frameworks."""
        return [v for score in self.frameworks for v in score.violations]

    @property
    def issue_count(self) -> int:
        return len(self.critical_issues) + len(self.medium_issues) + len(self.low_issues)


@dataclass
class ComplianceConfiguration:
    """
    Per-client compliance settings.

    ``risk_thresholds`` maps each non-critical risk level to the minimum
    score that still earns it; anything below the HIGH threshold is CRITICAL.
    ``notification_settings`` is carried opaquely and never interpreted here.
    ``max_auto_tags`` of None defers to the aggregator's own limit.
    """
    id: str = "default"
    client_id: Optional[str] = None
    jurisdiction: Optional[str] = None
    frameworks: List[ComplianceFramework] = field(default_factory=list)
    custom_rules: List[ComplianceRule] = field(default_factory=list)
    risk_thresholds: Dict[RiskLevel, float] = field(
        default_factory=lambda: dict(DEFAULT_RISK_THRESHOLDS)
    )
    auto_tagging_enabled: bool = True
    max_auto_tags: Optional[int] = None
    notification_settings: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.frameworks is None:
            self.frameworks = []
        if self.custom_rules is None:
            self.custom_rules = []
        if self.notification_settings is None:
            self.notification_settings = {}
        thresholds = dict(DEFAULT_RISK_THRESHOLDS)
        thresholds.update(self.risk_thresholds or {})
        self.risk_thresholds = thresholds
        low = thresholds[RiskLevel.LOW]
        medium = thresholds[RiskLevel.MEDIUM]
        high = thresholds[RiskLevel.HIGH]
        if not 100.0 >= low >= medium >= high >= 0.0:
            raise ValueError(
                "Risk thresholds must satisfy 100 >= LOW >= MEDIUM >= HIGH >= 0, "
                f"got LOW={low}, MEDIUM={medium}, HIGH={high}"
            )
