"""Suggestion, template and comparison models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .enums import (
    ClauseCategory,
    ComparisonRecommendation,
    ComplianceFramework,
    DifferenceType,
    RiskLevel,
    SuggestionSource,
    SuggestionStatus,
    SuggestionType,
    TemplateStatus,
)


@dataclass
class ClauseSuggestion:
    """
    An alternative phrasing proposed for a clause.

    Suggestions are created PENDING. Acceptance and rejection are applied by
    the review workflow, never by the engine that produced them.
    """
    id: str
    original_clause: str
    suggested_clause: str
    suggestion_type: SuggestionType
    confidence: float
    source: SuggestionSource = SuggestionSource.AI_ANALYSIS
    title: str = ""
    description: str = ""
    reasoning: str = ""
    benefits: List[str] = field(default_factory=list)
    risks: List[str] = field(default_factory=list)
    compliance_improvements: List[str] = field(default_factory=list)
    suggested_by: str = "system"
    created_at: datetime = field(default_factory=datetime.utcnow)
    status: SuggestionStatus = SuggestionStatus.PENDING
    accepted_by: Optional[str] = None
    accepted_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    related_template_id: Optional[str] = None

    def __post_init__(self):
        if self.benefits is None:
            self.benefits = []
        if self.risks is None:
            self.risks = []
        if self.compliance_improvements is None:
            self.compliance_improvements = []

    @property
    def is_pending(self) -> bool:
        return self.status == SuggestionStatus.PENDING


@dataclass
class SmartSuggestionRequest:
    """
    Request for suggestions on a single clause.

    ``desired_improvements`` limits the categories considered; an empty list
    means every category. ``timeout_seconds`` bounds each provider call.
    """
    original_clause: str
    context: str = ""
    category: Optional[ClauseCategory] = None
    compliance_frameworks: List[ComplianceFramework] = field(default_factory=list)
    jurisdiction: Optional[str] = None
    client_id: Optional[str] = None
    risk_level: Optional[RiskLevel] = None
    desired_improvements: List[SuggestionType] = field(default_factory=list)
    exclude_templates: List[str] = field(default_factory=list)
    max_suggestions: int = 5
    timeout_seconds: Optional[float] = None

    def __post_init__(self):
        if self.compliance_frameworks is None:
            self.compliance_frameworks = []
        if self.desired_improvements is None:
            self.desired_improvements = []
        if self.exclude_templates is None:
            self.exclude_templates = []
        if self.max_suggestions < 0:
            raise ValueError("max_suggestions must be non-negative")


@dataclass
class ClauseTemplate:
    """A stored, reusable clause."""
    id: str
    title: str
    content: str
    category: ClauseCategory = ClauseCategory.OTHER
    description: str = ""
    tags: List[str] = field(default_factory=list)
    status: TemplateStatus = TemplateStatus.APPROVED
    risk_level: RiskLevel = RiskLevel.LOW
    compliance_frameworks: List[ComplianceFramework] = field(default_factory=list)
    jurisdiction: Optional[str] = None
    language: str = "en"
    usage_count: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.tags is None:
            self.tags = []
        if self.compliance_frameworks is None:
            self.compliance_frameworks = []
        if self.metadata is None:
            self.metadata = {}


@dataclass
class MatchingSection:
    """
    A span of the input clause shared with a template.

    Offsets are byte offsets into the UTF-8 encoding of the input clause,
    end exclusive.
    """
    start: int
    end: int
    content: str


@dataclass
class ClauseTemplateMatch:
    """Similarity of a clause to one stored template."""
    template: ClauseTemplate
    similarity: float
    matching_sections: List[MatchingSection] = field(default_factory=list)
    suggested_modifications: List[str] = field(default_factory=list)


@dataclass
class ClauseDifference:
    """One textual change between an original and a suggested clause."""
    type: DifferenceType
    original_text: str
    suggested_text: str
    position: int
    explanation: str = ""


@dataclass
class ClauseComparison:
    """Structured comparison of an original clause and a suggested rewrite."""
    original_clause: str
    suggested_clause: str
    differences: List[ClauseDifference] = field(default_factory=list)
    overall_score: float = 0.0
    improvements: List[str] = field(default_factory=list)
    concerns: List[str] = field(default_factory=list)
    recommendation: ComparisonRecommendation = ComparisonRecommendation.MODIFY
