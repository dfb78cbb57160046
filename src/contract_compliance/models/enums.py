"""Enumerations for the Contract Compliance Engine."""

from enum import Enum


class ComplianceFramework(Enum):
    """Regulatory frameworks a contract can be evaluated against."""
    GDPR = "GDPR"
    HIPAA = "HIPAA"
    SOX = "SOX"
    CCPA = "CCPA"
    PIPEDA = "PIPEDA"
    LGPD = "LGPD"
    ISO27001 = "ISO27001"
    SOC2 = "SOC2"
    PCI_DSS = "PCI-DSS"
    CUSTOM = "CUSTOM"


class RiskLevel(Enum):
    """Risk levels, ordered LOW < MEDIUM < HIGH < CRITICAL."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        """Ordinal position of the level (LOW=1 ... CRITICAL=4)."""
        return _RISK_RANKS[self]

    @classmethod
    def worst(cls, levels) -> "RiskLevel":
        """Return the most severe level in ``levels`` (LOW when empty)."""
        levels = list(levels)
        if not levels:
            return cls.LOW
        return max(levels, key=lambda level: level.rank)


_RISK_RANKS = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}


class ClauseCategory(Enum):
    """Categories of contract clauses that compliance rules target."""
    DATA_PROTECTION = "DATA_PROTECTION"
    FINANCIAL_REPORTING = "FINANCIAL_REPORTING"
    HEALTHCARE_PRIVACY = "HEALTHCARE_PRIVACY"
    CONSUMER_RIGHTS = "CONSUMER_RIGHTS"
    SECURITY_REQUIREMENTS = "SECURITY_REQUIREMENTS"
    AUDIT_COMPLIANCE = "AUDIT_COMPLIANCE"
    TERMINATION_RIGHTS = "TERMINATION_RIGHTS"
    LIABILITY_LIMITATION = "LIABILITY_LIMITATION"
    INTELLECTUAL_PROPERTY = "INTELLECTUAL_PROPERTY"
    CONFIDENTIALITY = "CONFIDENTIALITY"
    DATA_RETENTION = "DATA_RETENTION"
    CROSS_BORDER_TRANSFER = "CROSS_BORDER_TRANSFER"
    CONSENT_MANAGEMENT = "CONSENT_MANAGEMENT"
    BREACH_NOTIFICATION = "BREACH_NOTIFICATION"
    THIRD_PARTY_SHARING = "THIRD_PARTY_SHARING"
    INDEMNIFICATION = "INDEMNIFICATION"
    PAYMENT_TERMS = "PAYMENT_TERMS"
    DISPUTE_RESOLUTION = "DISPUTE_RESOLUTION"
    FORCE_MAJEURE = "FORCE_MAJEURE"
    GOVERNING_LAW = "GOVERNING_LAW"
    OTHER = "OTHER"


class ContractType(Enum):
    """Practice-area types used to group contracts in analytics."""
    MERGERS_ACQUISITIONS = "MERGERS_ACQUISITIONS"
    CORPORATE_GOVERNANCE = "CORPORATE_GOVERNANCE"
    COMMERCIAL_AGREEMENTS = "COMMERCIAL_AGREEMENTS"
    INTELLECTUAL_PROPERTY = "INTELLECTUAL_PROPERTY"
    EMPLOYMENT_LABOR = "EMPLOYMENT_LABOR"
    REAL_ESTATE = "REAL_ESTATE"
    LITIGATION = "LITIGATION"
    REGULATORY_COMPLIANCE = "REGULATORY_COMPLIANCE"
    DATA_PROTECTION = "DATA_PROTECTION"
    FINANCE_SECURITIES = "FINANCE_SECURITIES"
    CUSTOM = "CUSTOM"


class ContractStatus(Enum):
    """Lifecycle status of a contract."""
    DRAFT = "DRAFT"
    REVIEW = "REVIEW"
    NEGOTIATION = "NEGOTIATION"
    EXECUTED = "EXECUTED"
    EXPIRED = "EXPIRED"
    TERMINATED = "TERMINATED"


class RiskTrend(Enum):
    """Direction of a client's risk over an analytics period."""
    IMPROVING = "IMPROVING"
    STABLE = "STABLE"
    DETERIORATING = "DETERIORATING"


class SuggestionType(Enum):
    """
    Improvement categories for clause suggestions.

    Declaration order is the processing priority (highest first).
    """
    COMPLIANCE = "COMPLIANCE"
    RISK_REDUCTION = "RISK_REDUCTION"
    CLARITY = "CLARITY"
    LEGAL_STRENGTH = "LEGAL_STRENGTH"
    IMPROVEMENT = "IMPROVEMENT"

    @property
    def priority(self) -> int:
        """Priority rank, 0 being the most important category."""
        return list(SuggestionType).index(self)


class SuggestionSource(Enum):
    """Where a clause suggestion came from."""
    AI_ANALYSIS = "AI_ANALYSIS"
    LEGAL_PRECEDENT = "LEGAL_PRECEDENT"
    BEST_PRACTICE = "BEST_PRACTICE"
    USER_SUGGESTION = "USER_SUGGESTION"


class SuggestionStatus(Enum):
    """Review state of a suggestion. ACCEPTED and REJECTED are terminal."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class TemplateStatus(Enum):
    """Approval status of a clause template."""
    DRAFT = "DRAFT"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    DEPRECATED = "DEPRECATED"
    ARCHIVED = "ARCHIVED"


class DifferenceType(Enum):
    """Kinds of textual differences between two clause versions."""
    ADDITION = "ADDITION"
    DELETION = "DELETION"
    MODIFICATION = "MODIFICATION"
    REORDERING = "REORDERING"


class ComparisonRecommendation(Enum):
    """Outcome recommended after comparing an original and a suggested clause."""
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"
    MODIFY = "MODIFY"
