"""Compliance rule storage and built-in rule sets."""

from .frameworks import default_rules, default_rules_by_framework, rules_for_framework
from .repository import RuleRepository, RuleSnapshot

__all__ = [
    "RuleRepository",
    "RuleSnapshot",
    "default_rules",
    "default_rules_by_framework",
    "rules_for_framework",
]
