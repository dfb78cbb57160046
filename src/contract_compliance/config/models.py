"""Data models for configuration management."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..models.compliance import ComplianceConfiguration, ComplianceRule
from ..models.enums import ComplianceFramework, TemplateStatus
from ..models.suggestion import ClauseTemplate


class ConfigurationType(Enum):
    """Configuration files the manager reads and writes."""
    RULES = "rules"
    CONFIGURATION = "configuration"
    TEMPLATES = "templates"


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add an error message."""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """Merge another validation result into this one."""
        return ValidationResult(
            is_valid=self.is_valid and other.is_valid,
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings
        )


class ConfigurationError(Exception):
    """Exception raised for configuration errors."""

    def __init__(self, message: str, validation_result: Optional[ValidationResult] = None):
        super().__init__(message)
        self.message = message
        self.validation_result = validation_result


@dataclass
class EngineConfiguration:
    """
    Everything loaded from configuration files.

    Rules loaded here are published to the rule repository as one snapshot;
    client configurations are looked up by client ID.
    """
    rules: List[ComplianceRule] = field(default_factory=list)
    configurations: List[ComplianceConfiguration] = field(default_factory=list)
    templates: List[ClauseTemplate] = field(default_factory=list)
    version: int = 1
    metadata: Dict[str, Any] = field(default_factory=dict)

    def get_rules_by_framework(self, framework: ComplianceFramework) -> List[ComplianceRule]:
        return [r for r in self.rules if r.framework == framework]

    def get_configuration(self, client_id: Optional[str]) -> Optional[ComplianceConfiguration]:
        """Configuration for a client, falling back to the one without a client."""
        fallback = None
        for configuration in self.configurations:
            if configuration.client_id == client_id:
                return configuration
            if configuration.client_id is None and fallback is None:
                fallback = configuration
        return fallback

    def get_active_templates(self) -> List[ClauseTemplate]:
        return [
            t for t in self.templates
            if t.status not in (TemplateStatus.DEPRECATED, TemplateStatus.ARCHIVED)
        ]
