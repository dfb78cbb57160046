"""Configuration Manager for the contract compliance engine.

This module loads, validates and saves compliance rules, client compliance
configurations and clause templates, and publishes loaded rules into a
rule repository.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..models.compliance import ComplianceConfiguration, ComplianceRule
from ..models.enums import ClauseCategory, ComplianceFramework, RiskLevel, TemplateStatus
from ..models.suggestion import ClauseTemplate
from ..rules.repository import RuleRepository, RuleSnapshot
from ..serialization import ComplianceSerializer
from .models import (
    ConfigurationError,
    ConfigurationType,
    EngineConfiguration,
    ValidationResult,
)


logger = logging.getLogger(__name__)

Source = Union[str, Path, Dict[str, Any], List[Dict[str, Any]]]

CONFIG_FILES = {
    ConfigurationType.RULES: "rules.json",
    ConfigurationType.CONFIGURATION: "configuration.json",
    ConfigurationType.TEMPLATES: "templates.json",
}


def _enum_values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


class ConfigurationManager:
    """
    Manager for engine configuration.

    Handles loading, validation, and access to compliance rules, client
    compliance configurations and clause templates. Configuration files use
    the same camelCase layout as the serialized engine structures.
    """

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration manager.

        Args:
            config_dir: Optional directory path for configuration files.
        """
        self._config_dir = Path(config_dir) if config_dir else None
        self._configuration = EngineConfiguration()
        self._is_loaded = False

    @property
    def configuration(self) -> EngineConfiguration:
        """Get the current engine configuration."""
        return self._configuration

    @property
    def is_loaded(self) -> bool:
        """Check if configuration has been loaded."""
        return self._is_loaded

    # =========================================================================
    # Compliance rules
    # =========================================================================

    def load_rules(self, source: Source) -> ValidationResult:
        """
        Load and validate compliance rules.

        Supports loading from:
        - JSON file path
        - Dictionary with a "rules" list
        - List of rule dictionaries

        Args:
            source: File path, dictionary, or list of dictionaries.

        Returns:
            ValidationResult indicating success or failure with details.

        Raises:
            ConfigurationError: If validation fails and configuration cannot be applied.
        """
        rules_data = self._items(self._parse_source(source), "rules")

        result = ValidationResult(is_valid=True)
        rules: List[ComplianceRule] = []
        for i, rule_dict in enumerate(rules_data):
            rule_result, rule = self._validate_rule(rule_dict, prefix=f"Rule [{i}]")
            result = result.merge(rule_result)
            if rule:
                rules.append(rule)

        self._check_duplicates([r.id for r in rules], "rule", result)

        if not result.is_valid:
            raise ConfigurationError("Compliance rule validation failed", validation_result=result)

        self._configuration.rules = rules
        self._is_loaded = True
        logger.info(f"Loaded {len(rules)} compliance rules ({len(result.warnings)} warnings)")
        return result

    def _validate_rule(
        self,
        data: Dict[str, Any],
        prefix: str,
    ) -> tuple[ValidationResult, Optional[ComplianceRule]]:
        """Validate a single rule dictionary."""
        result = ValidationResult(is_valid=True)
        if not isinstance(data, dict):
            result.add_error(f"{prefix}: Expected an object")
            return result, None

        for field in ["id", "framework", "category", "riskLevel", "weight"]:
            if field not in data:
                result.add_error(f"{prefix}: Missing required field '{field}'")
        if not result.is_valid:
            return result, None

        if not isinstance(data["id"], str) or not data["id"].strip():
            result.add_error(f"{prefix}: 'id' must be a non-empty string")
        else:
            prefix = f"{prefix} '{data['id']}'"

        self._check_enum(data, "framework", ComplianceFramework, prefix, result)
        self._check_enum(data, "category", ClauseCategory, prefix, result)
        self._check_enum(data, "riskLevel", RiskLevel, prefix, result)

        weight = data["weight"]
        if isinstance(weight, bool) or not isinstance(weight, (int, float)):
            result.add_error(f"{prefix}: 'weight' must be a number")
        elif not 0.0 <= weight <= 1.0:
            result.add_error(f"{prefix}: 'weight' must be between 0.0 and 1.0")

        keywords = data.get("keywords", [])
        patterns = data.get("patterns", [])
        for list_field, values in (("keywords", keywords), ("patterns", patterns)):
            if not isinstance(values, list):
                result.add_error(f"{prefix}: '{list_field}' must be a list")
            elif not all(isinstance(v, str) and v.strip() for v in values):
                result.add_error(f"{prefix}: All items in '{list_field}' must be non-empty strings")
        if not keywords and not patterns:
            result.add_error(f"{prefix}: At least one keyword or pattern is required")

        # Malformed patterns stay loadable; the evaluator skips the rule at run time
        if isinstance(patterns, list):
            for pattern in patterns:
                if not isinstance(pattern, str):
                    continue
                try:
                    re.compile(pattern)
                except re.error as e:
                    result.add_warning(
                        f"{prefix}: pattern '{pattern}' is not a valid regex ({e}); "
                        f"the rule will be skipped during evaluation"
                    )

        if not result.is_valid:
            return result, None

        try:
            rule = ComplianceSerializer.rule_from_dict(data)
        except ValueError as e:
            result.add_error(f"{prefix}: {e}")
            return result, None
        return result, rule

    def get_rule(self, rule_id: str) -> Optional[ComplianceRule]:
        """Get a loaded rule by ID."""
        for rule in self._configuration.rules:
            if rule.id == rule_id:
                return rule
        return None

    def publish_to(
        self,
        repository: RuleRepository,
        base_rules: Optional[Iterable[ComplianceRule]] = None,
    ) -> RuleSnapshot:
        """
        Publish the loaded rules into a repository as a single snapshot.

        Args:
            repository: Target repository.
            base_rules: Rules to publish alongside the loaded ones. Loaded
                rules replace base rules with the same ID.

        Returns:
            The published snapshot.
        """
        merged: Dict[str, ComplianceRule] = {r.id: r for r in (base_rules or [])}
        for rule in self._configuration.rules:
            merged[rule.id] = rule
        return repository.publish(merged.values())

    # =========================================================================
    # Client compliance configurations
    # =========================================================================

    def load_configurations(self, source: Source) -> ValidationResult:
        """
        Load and validate client compliance configurations.

        Custom rules embedded in a configuration are validated like rules
        loaded with ``load_rules``.

        Args:
            source: File path, dictionary, or list of dictionaries.

        Returns:
            ValidationResult indicating success or failure with details.

        Raises:
            ConfigurationError: If validation fails and configuration cannot be applied.
        """
        configs_data = self._items(self._parse_source(source), "configurations")

        result = ValidationResult(is_valid=True)
        configurations: List[ComplianceConfiguration] = []
        for i, config_dict in enumerate(configs_data):
            config_result, configuration = self._validate_configuration_entry(config_dict, index=i)
            result = result.merge(config_result)
            if configuration:
                configurations.append(configuration)

        self._check_duplicates([c.id for c in configurations], "configuration", result)
        self._check_duplicates(
            [c.client_id or "<default>" for c in configurations], "configuration client", result
        )

        if not result.is_valid:
            raise ConfigurationError(
                "Compliance configuration validation failed", validation_result=result
            )

        self._configuration.configurations = configurations
        self._is_loaded = True
        logger.info(f"Loaded {len(configurations)} compliance configurations")
        return result

    def _validate_configuration_entry(
        self,
        data: Dict[str, Any],
        index: int = 0,
    ) -> tuple[ValidationResult, Optional[ComplianceConfiguration]]:
        """Validate a single configuration dictionary."""
        result = ValidationResult(is_valid=True)
        prefix = f"Configuration [{index}]"
        if not isinstance(data, dict):
            result.add_error(f"{prefix}: Expected an object")
            return result, None

        frameworks = data.get("frameworks", [])
        if not isinstance(frameworks, list):
            result.add_error(f"{prefix}: 'frameworks' must be a list")
        else:
            valid = _enum_values(ComplianceFramework)
            for framework in frameworks:
                if framework not in valid:
                    result.add_error(f"{prefix}: unknown framework '{framework}'")

        thresholds = data.get("riskThresholds", {})
        if not isinstance(thresholds, dict):
            result.add_error(f"{prefix}: 'riskThresholds' must be an object")
        else:
            for level, value in thresholds.items():
                if level not in _enum_values(RiskLevel):
                    result.add_error(f"{prefix}: unknown risk level '{level}' in 'riskThresholds'")
                elif isinstance(value, bool) or not isinstance(value, (int, float)):
                    result.add_error(f"{prefix}: threshold for '{level}' must be a number")

        max_tags = data.get("maxAutoTags")
        if max_tags is not None and (
            isinstance(max_tags, bool) or not isinstance(max_tags, int) or max_tags < 0
        ):
            result.add_error(f"{prefix}: 'maxAutoTags' must be a non-negative integer")

        custom_rules = data.get("customRules", [])
        if not isinstance(custom_rules, list):
            result.add_error(f"{prefix}: 'customRules' must be a list")
            custom_rules = []
        for i, rule_dict in enumerate(custom_rules):
            rule_result, _ = self._validate_rule(rule_dict, prefix=f"{prefix} custom rule [{i}]")
            result = result.merge(rule_result)

        if not result.is_valid:
            return result, None

        try:
            configuration = ComplianceSerializer.configuration_from_dict(data)
        except ValueError as e:
            result.add_error(f"{prefix}: {e}")
            return result, None

        for rule in configuration.custom_rules:
            if configuration.client_id and rule.client_id not in (None, configuration.client_id):
                result.add_warning(
                    f"{prefix}: custom rule '{rule.id}' is scoped to client '{rule.client_id}' "
                    f"but will apply to client '{configuration.client_id}'"
                )
        return result, configuration

    def get_configuration(self, client_id: Optional[str] = None) -> Optional[ComplianceConfiguration]:
        """Configuration for a client, falling back to the default configuration."""
        return self._configuration.get_configuration(client_id)

    # =========================================================================
    # Clause templates
    # =========================================================================

    def load_templates(self, source: Source) -> ValidationResult:
        """
        Load and validate clause templates.

        Args:
            source: File path, dictionary, or list of dictionaries.

        Returns:
            ValidationResult indicating success or failure with details.

        Raises:
            ConfigurationError: If validation fails and configuration cannot be applied.
        """
        templates_data = self._items(self._parse_source(source), "templates")

        result = ValidationResult(is_valid=True)
        templates: List[ClauseTemplate] = []
        for i, template_dict in enumerate(templates_data):
            template_result, template = self._validate_template(template_dict, index=i)
            result = result.merge(template_result)
            if template:
                templates.append(template)

        self._check_duplicates([t.id for t in templates], "template", result)

        if not result.is_valid:
            raise ConfigurationError("Clause template validation failed", validation_result=result)

        self._configuration.templates = templates
        self._is_loaded = True
        logger.info(f"Loaded {len(templates)} clause templates")
        return result

    def _validate_template(
        self,
        data: Dict[str, Any],
        index: int = 0,
    ) -> tuple[ValidationResult, Optional[ClauseTemplate]]:
        """Validate a single template dictionary."""
        result = ValidationResult(is_valid=True)
        prefix = f"Template [{index}]"
        if not isinstance(data, dict):
            result.add_error(f"{prefix}: Expected an object")
            return result, None

        for field in ["id", "title", "content"]:
            if field not in data:
                result.add_error(f"{prefix}: Missing required field '{field}'")
            elif not isinstance(data[field], str) or not data[field].strip():
                result.add_error(f"{prefix}: '{field}' must be a non-empty string")
        if not result.is_valid:
            return result, None

        if "category" in data:
            self._check_enum(data, "category", ClauseCategory, prefix, result)
        if "status" in data:
            self._check_enum(data, "status", TemplateStatus, prefix, result)
        if "riskLevel" in data:
            self._check_enum(data, "riskLevel", RiskLevel, prefix, result)
        for framework in data.get("complianceFrameworks", []):
            if framework not in _enum_values(ComplianceFramework):
                result.add_error(f"{prefix}: unknown framework '{framework}'")

        if not result.is_valid:
            return result, None

        template = ComplianceSerializer.template_from_dict(data)
        if template.status in (TemplateStatus.DEPRECATED, TemplateStatus.ARCHIVED):
            result.add_warning(f"{prefix}: template '{template.id}' is {template.status.value} and will not be suggested")
        return result, template

    def get_template(self, template_id: str) -> Optional[ClauseTemplate]:
        """Get a loaded template by ID."""
        for template in self._configuration.templates:
            if template.id == template_id:
                return template
        return None

    # =========================================================================
    # Whole-configuration validation
    # =========================================================================

    def validate_configuration(self) -> ValidationResult:
        """
        Cross-check the loaded configuration.

        Reports configurations that select frameworks without any loaded or
        embedded rules, and templates whose frameworks have no rules.
        """
        result = ValidationResult(is_valid=True)
        config = self._configuration
        ruled = {r.framework for r in config.rules}

        for configuration in config.configurations:
            available = ruled | {r.framework for r in configuration.custom_rules}
            for framework in configuration.frameworks:
                if framework not in available:
                    result.add_warning(
                        f"Configuration '{configuration.id}' selects {framework.value} "
                        f"but no rules for it are loaded"
                    )

        for template in config.templates:
            missing = [f.value for f in template.compliance_frameworks if f not in ruled]
            if missing and ruled:
                result.add_warning(
                    f"Template '{template.id}' references frameworks without rules: {missing}"
                )
        return result

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def _parse_source(self, source: Source) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """Parse configuration source to raw data."""
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not path.exists():
                raise ConfigurationError(f"Configuration file not found: {path}")

            try:
                with open(path, "r", encoding="utf-8") as f:
                    return json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

        return source

    @staticmethod
    def _items(raw_data: Any, key: str) -> List[Any]:
        if isinstance(raw_data, dict):
            if key in raw_data:
                items = raw_data[key]
            else:
                items = [raw_data]
        else:
            items = raw_data
        if not isinstance(items, list):
            raise ConfigurationError(f"Expected a list of {key}")
        return items

    @staticmethod
    def _check_enum(data, field, enum_cls, prefix, result) -> None:
        valid = _enum_values(enum_cls)
        if data.get(field) not in valid:
            result.add_error(f"{prefix}: '{field}' must be one of {valid}")

    @staticmethod
    def _check_duplicates(ids: List[str], kind: str, result: ValidationResult) -> None:
        duplicates = {i for i in ids if ids.count(i) > 1}
        if duplicates:
            result.add_error(f"Duplicate {kind} IDs found: {sorted(duplicates)}")

    def load_from_directory(self, config_dir: Union[str, Path]) -> ValidationResult:
        """
        Load all configuration files from a directory.

        Expects files named:
        - rules.json
        - configuration.json
        - templates.json

        Args:
            config_dir: Directory containing configuration files.

        Returns:
            Combined ValidationResult for all loaded configurations.
        """
        config_dir = Path(config_dir)
        result = ValidationResult(is_valid=True)
        loaders = {
            ConfigurationType.RULES: self.load_rules,
            ConfigurationType.CONFIGURATION: self.load_configurations,
            ConfigurationType.TEMPLATES: self.load_templates,
        }

        for config_type, loader in loaders.items():
            path = config_dir / CONFIG_FILES[config_type]
            if not path.exists():
                continue
            try:
                result = result.merge(loader(path))
            except ConfigurationError as e:
                result.add_error(f"{config_type.value.capitalize()} loading failed: {e.message}")
                if e.validation_result:
                    result = result.merge(e.validation_result)

        self._config_dir = config_dir
        return result

    def save_to_directory(self, config_dir: Optional[Union[str, Path]] = None) -> None:
        """
        Save current configuration to a directory.

        Args:
            config_dir: Directory to save to. Uses current config_dir if None.
        """
        config_dir = Path(config_dir) if config_dir else self._config_dir
        if not config_dir:
            raise ConfigurationError("No configuration directory specified")

        config_dir.mkdir(parents=True, exist_ok=True)
        data = self.to_dict()

        sections = {
            ConfigurationType.RULES: "rules",
            ConfigurationType.CONFIGURATION: "configurations",
            ConfigurationType.TEMPLATES: "templates",
        }
        for config_type, key in sections.items():
            if not data[key]:
                continue
            with open(config_dir / CONFIG_FILES[config_type], "w", encoding="utf-8") as f:
                json.dump({key: data[key]}, f, indent=2, ensure_ascii=False)

    def reset(self) -> None:
        """Reset configuration to empty state."""
        self._configuration = EngineConfiguration()
        self._is_loaded = False

    def to_dict(self) -> Dict[str, Any]:
        """Export current configuration as a dictionary."""
        return {
            "version": self._configuration.version,
            "rules": [ComplianceSerializer.rule_to_dict(r) for r in self._configuration.rules],
            "configurations": [
                ComplianceSerializer.configuration_to_dict(c)
                for c in self._configuration.configurations
            ],
            "templates": [
                ComplianceSerializer.template_to_dict(t) for t in self._configuration.templates
            ],
            "metadata": self._configuration.metadata,
        }
