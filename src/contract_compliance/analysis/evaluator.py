"""Clause evaluator.

Evaluates clause or document text against a set of compliance rules and
reports one violation per triggered rule.
"""

import functools
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Pattern

from ..exceptions import RuleCompilationError
from ..models.compliance import ComplianceRule, ComplianceViolation
from .text import normalize_text


logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=1024)
def _compile_pattern(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


@dataclass
class EvaluationResult:
    """Violations found in a text plus the rules that could not be evaluated."""
    violations: List[ComplianceViolation] = field(default_factory=list)
    rule_errors: List[RuleCompilationError] = field(default_factory=list)
    evaluated_rule_count: int = 0

    @property
    def skipped_rule_ids(self) -> List[str]:
        return [e.rule_id for e in self.rule_errors]


class ClauseEvaluator:
    """
    Keyword and pattern based rule evaluator.

    Text and keywords are compared in normalised form (casefolded, whitespace
    collapsed), so matching ignores case and line wrapping. Patterns are
    applied case-insensitively to the same normalised text. A rule whose
    pattern does not compile is skipped and reported; the remaining rules are
    still evaluated. Results are ordered by rule ID, so repeated evaluation
    of the same input yields the same list.
    """

    def evaluate(
        self,
        text: str,
        rules: Iterable[ComplianceRule],
        clause_id: str = "document",
        detected_at: Optional[datetime] = None,
    ) -> List[ComplianceViolation]:
        """
        Evaluate text against rules.

        Args:
            text: Clause or document text.
            rules: Rules to apply.
            clause_id: Identifier recorded on each violation.
            detected_at: Detection timestamp (defaults to now).

        Returns:
            Violations ordered by rule ID.
        """
        return self.evaluate_detailed(text, rules, clause_id, detected_at).violations

    def evaluate_detailed(
        self,
        text: str,
        rules: Iterable[ComplianceRule],
        clause_id: str = "document",
        detected_at: Optional[datetime] = None,
    ) -> EvaluationResult:
        """Evaluate text against rules and also report rules that failed to compile."""
        result = EvaluationResult()
        normalized = normalize_text(text)
        if not normalized:
            return result

        detected_at = detected_at or datetime.utcnow()
        for rule in sorted(rules, key=lambda r: r.id):
            if not rule.is_active:
                continue
            result.evaluated_rule_count += 1
            try:
                evidence = self._find_evidence(rule, normalized)
            except RuleCompilationError as e:
                logger.warning(f"Skipping rule '{rule.id}': {e.message}")
                result.rule_errors.append(e)
                continue
            if evidence is not None:
                result.violations.append(
                    self._build_violation(rule, clause_id, evidence, detected_at)
                )

        return result

    def triggered_rule_ids(self, text: str, rules: Iterable[ComplianceRule]) -> set:
        """IDs of the rules the text triggers (malformed rules are ignored)."""
        return {v.rule_id for v in self.evaluate(text, rules)}

    def _find_evidence(self, rule: ComplianceRule, normalized: str) -> Optional[str]:
        """
        Return the keyword or matched pattern text that triggers the rule.

        All patterns are compiled before anything is matched, so a rule with
        a malformed pattern is rejected as a whole.
        """
        compiled = []
        for pattern in rule.patterns:
            try:
                compiled.append(_compile_pattern(pattern))
            except re.error as e:
                raise RuleCompilationError(
                    f"Invalid pattern {pattern!r} in rule '{rule.id}': {e}",
                    rule_id=rule.id,
                    pattern=pattern,
                ) from e

        for keyword in rule.keywords:
            needle = normalize_text(keyword)
            if needle and needle in normalized:
                return needle

        for regex in compiled:
            match = regex.search(normalized)
            if match:
                return match.group(0)

        return None

    def _build_violation(
        self,
        rule: ComplianceRule,
        clause_id: str,
        evidence: str,
        detected_at: datetime,
    ) -> ComplianceViolation:
        framework = rule.framework.value
        category = rule.category.value.replace("_", " ").lower()
        return ComplianceViolation(
            id=f"violation_{rule.id}_{clause_id}",
            rule_id=rule.id,
            clause_id=clause_id,
            severity=rule.risk_level,
            description=rule.description or f"{rule.name} requirement triggered",
            explanation=(
                f"Clause language '{evidence}' falls under {framework} rule "
                f"'{rule.name}' ({category})."
            ),
            suggested_action=(
                rule.suggested_action
                or f"Review the clause against {framework} {category} requirements"
            ),
            framework=rule.framework,
            category=rule.category,
            rule_name=rule.name,
            detected_at=detected_at,
        )
