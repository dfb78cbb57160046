"""Versioned, copy-on-write store of compliance rules.

Readers take the current snapshot reference and keep using it for the whole
evaluation; writers build a new snapshot and swap the reference, so a reader
never observes a partially applied update.
"""

import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from ..exceptions import ConfigurationMissing
from ..models.compliance import ComplianceRule
from ..models.enums import ClauseCategory, ComplianceFramework


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleSnapshot:
    """Immutable view of every known rule at one version."""
    version: int
    rules: Tuple[ComplianceRule, ...] = ()
    published_at: datetime = field(default_factory=datetime.utcnow)

    def get_rule(self, rule_id: str) -> Optional[ComplianceRule]:
        """Get a rule by ID."""
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    def frameworks(self) -> List[ComplianceFramework]:
        """Frameworks that have a global rule set in this snapshot."""
        found = {rule.framework for rule in self.rules if rule.is_global}
        return sorted(found, key=lambda f: f.value)

    def __len__(self) -> int:
        return len(self.rules)


class RuleRepository:
    """
    Repository of compliance rules keyed by framework, jurisdiction and client.

    Client-scoped rules override the global rules of the same framework and
    category: when a client defines any active rule for a category, that
    client's rules replace the global ones for that category entirely.
    """

    def __init__(self, rules: Optional[Iterable[ComplianceRule]] = None):
        """
        Initialize the repository.

        Args:
            rules: Optional initial rules, published as version 1.
        """
        self._lock = threading.Lock()
        self._snapshot = RuleSnapshot(version=0)
        if rules is not None:
            self.publish(rules)

    @property
    def snapshot(self) -> RuleSnapshot:
        """The current rule snapshot."""
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    def publish(self, rules: Iterable[ComplianceRule]) -> RuleSnapshot:
        """
        Replace the whole rule set with a new snapshot.

        Args:
            rules: The complete new rule set.

        Returns:
            The newly published snapshot.

        Raises:
            ValueError: If two rules share an ID.
        """
        rules = tuple(sorted(rules, key=lambda r: r.id))
        self._check_unique_ids(rules)
        with self._lock:
            snapshot = RuleSnapshot(version=self._snapshot.version + 1, rules=rules)
            self._snapshot = snapshot
        logger.info(f"Published rule snapshot v{snapshot.version} with {len(rules)} rules")
        return snapshot

    def add_rules(self, rules: Iterable[ComplianceRule]) -> RuleSnapshot:
        """Add rules to the current set, replacing any existing rule with the same ID."""
        incoming = list(rules)
        self._check_unique_ids(incoming)
        with self._lock:
            merged: Dict[str, ComplianceRule] = {r.id: r for r in self._snapshot.rules}
            for rule in incoming:
                merged[rule.id] = rule
            snapshot = RuleSnapshot(
                version=self._snapshot.version + 1,
                rules=tuple(sorted(merged.values(), key=lambda r: r.id)),
            )
            self._snapshot = snapshot
        logger.info(
            f"Published rule snapshot v{snapshot.version}: {len(incoming)} rules added or replaced"
        )
        return snapshot

    def replace_rule(self, rule: ComplianceRule) -> RuleSnapshot:
        """Replace a single rule (or add it when unknown)."""
        return self.add_rules([rule])

    def deactivate_rule(self, rule_id: str) -> RuleSnapshot:
        """
        Publish a snapshot in which the given rule is inactive.

        Raises:
            KeyError: If no rule has this ID.
        """
        rule = self._snapshot.get_rule(rule_id)
        if rule is None:
            raise KeyError(f"Unknown rule: {rule_id}")
        return self.replace_rule(dataclasses.replace(rule, is_active=False))

    def get_rule(self, rule_id: str) -> Optional[ComplianceRule]:
        return self._snapshot.get_rule(rule_id)

    def frameworks(self) -> List[ComplianceFramework]:
        """Frameworks with a global rule set in the current snapshot."""
        return self._snapshot.frameworks()

    def active_rules(
        self,
        framework: ComplianceFramework,
        jurisdiction: Optional[str] = None,
        client_id: Optional[str] = None,
        snapshot: Optional[RuleSnapshot] = None,
    ) -> List[ComplianceRule]:
        """
        Resolve the rules that apply to a framework, jurisdiction and client.

        Args:
            framework: Framework to resolve.
            jurisdiction: Jurisdiction of the contract, if known.
            client_id: Client whose overrides apply, if any.
            snapshot: Snapshot to read; defaults to the current one.

        Returns:
            Active rules ordered by rule ID.

        Raises:
            ConfigurationMissing: If the framework has no global rules at all.
        """
        snapshot = snapshot or self._snapshot
        framework_rules = [r for r in snapshot.rules if r.framework == framework]

        if not any(r.is_global for r in framework_rules):
            raise ConfigurationMissing(
                f"No global rule set configured for framework {framework.value}",
                framework=framework.value,
                jurisdiction=jurisdiction,
                client_id=client_id,
            )

        applicable = [
            r for r in framework_rules
            if r.is_active and r.applies_to_jurisdiction(jurisdiction)
        ]
        global_rules = [r for r in applicable if r.is_global]
        client_rules = [
            r for r in applicable
            if client_id is not None and r.client_id == client_id
        ]

        overridden: set[ClauseCategory] = {r.category for r in client_rules}
        resolved = [r for r in global_rules if r.category not in overridden]
        resolved.extend(client_rules)
        resolved.sort(key=lambda r: r.id)
        return resolved

    @staticmethod
    def _check_unique_ids(rules: Iterable[ComplianceRule]) -> None:
        seen: set[str] = set()
        duplicates: set[str] = set()
        for rule in rules:
            if rule.id in seen:
                duplicates.add(rule.id)
            seen.add(rule.id)
        if duplicates:
            raise ValueError(f"Duplicate rule IDs: {sorted(duplicates)}")
