"""Configuration management for the contract compliance engine."""

from .config_manager import ConfigurationManager
from .models import (
    ConfigurationType,
    EngineConfiguration,
    ConfigurationError,
    ValidationResult,
)
from .settings import AnalyticsSettings, ScoringSettings, SuggestionSettings

__all__ = [
    "ConfigurationManager",
    "ConfigurationType",
    "EngineConfiguration",
    "ConfigurationError",
    "ValidationResult",
    "AnalyticsSettings",
    "ScoringSettings",
    "SuggestionSettings",
]
