"""Error taxonomy for the Contract Compliance Engine."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ComplianceEngineError(Exception):
    """
    Base exception for compliance engine errors.

    Attributes:
        message: Human-readable error description.
        details: Additional error details for logging and API responses.
    """
    message: str
    details: Optional[dict] = field(default_factory=dict)

    def __post_init__(self):
        if self.details is None:
            self.details = {}
        super().__init__(str(self))

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class ConfigurationMissing(ComplianceEngineError):
    """
    No global rule set exists for a requested framework.

    Raised by the rule repository; the analyzer absorbs it per framework and
    reports the framework as skipped.
    """
    framework: Optional[str] = None
    jurisdiction: Optional[str] = None
    client_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "framework": self.framework,
            "jurisdiction": self.jurisdiction,
            "client_id": self.client_id,
        })
        return data


@dataclass
class RuleCompilationError(ComplianceEngineError):
    """A rule pattern is not a valid regular expression."""
    rule_id: Optional[str] = None
    pattern: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({"rule_id": self.rule_id, "pattern": self.pattern})
        return data


@dataclass
class ProviderTimeout(ComplianceEngineError):
    """An external provider did not answer within the allotted time."""
    provider: Optional[str] = None
    timeout_seconds: Optional[float] = None


@dataclass
class ProviderFailure(ComplianceEngineError):
    """An external provider raised or returned an unusable answer."""
    provider: Optional[str] = None


class ErrorCollector:
    """
    Collects non-fatal errors raised while serving a single request.

    Lets evaluation and suggestion generation continue past a bad rule or a
    failing provider while still reporting what went wrong.
    """

    def __init__(self, context: str = ""):
        self.context = context
        self.errors: list[ComplianceEngineError] = []
        self.warnings: list[str] = []

    def add_error(self, error: ComplianceEngineError) -> None:
        """Add an error to the collection."""
        self.errors.append(error)

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)

    def extend(self, other: "ErrorCollector") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    def has_errors(self) -> bool:
        """Check if any errors were recorded."""
        return len(self.errors) > 0

    def errors_of_type(self, error_type: type) -> list[ComplianceEngineError]:
        return [e for e in self.errors if isinstance(e, error_type)]

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of all errors and warnings."""
        return {
            "context": self.context,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "errors": [e.to_dict() for e in self.errors],
            "warnings": self.warnings,
        }
