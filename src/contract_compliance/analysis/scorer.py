"""Compliance scorer: turns a framework's violations into a score and risk level."""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..config.settings import ScoringSettings
from ..models.compliance import (
    DEFAULT_RISK_THRESHOLDS,
    ComplianceConfiguration,
    ComplianceRule,
    ComplianceScore,
    ComplianceViolation,
)
from ..models.enums import ComplianceFramework, RiskLevel


logger = logging.getLogger(__name__)


class ComplianceScorer:
    """
    Weighted-deduction scorer.

    Starting from 100, each violation deducts
    ``rule.weight * severity_factor(rule.risk_level) * 10`` points and the
    result is floored at 0. The risk level is derived from the score using
    the client's thresholds.
    """

    def __init__(self, settings: Optional[ScoringSettings] = None):
        self.settings = settings or ScoringSettings()

    def score(
        self,
        violations: Iterable[ComplianceViolation],
        applicable_rules: Iterable[ComplianceRule],
        configuration: Optional[ComplianceConfiguration] = None,
        framework: Optional[ComplianceFramework] = None,
    ) -> ComplianceScore:
        """
        Score one framework.

        Args:
            violations: Violations found for the framework.
            applicable_rules: Rules the violations were evaluated with.
            configuration: Client configuration holding risk thresholds.
            framework: Framework being scored; inferred when omitted.

        Returns:
            ComplianceScore with a copy of the violations.
        """
        violations = list(violations)
        rules_by_id: Dict[str, ComplianceRule] = {r.id: r for r in applicable_rules}

        total_deduction = 0.0
        for violation in violations:
            rule = rules_by_id.get(violation.rule_id)
            if rule is None:
                logger.warning(
                    f"Violation '{violation.id}' references rule '{violation.rule_id}' "
                    f"outside the applicable rule set; no deduction applied"
                )
                continue
            total_deduction += self.deduction_for(rule)

        overall = round(max(0.0, self.settings.max_score - total_deduction), 2)
        thresholds = configuration.risk_thresholds if configuration else DEFAULT_RISK_THRESHOLDS

        return ComplianceScore(
            framework=framework or self._infer_framework(violations, rules_by_id.values()),
            overall_score=overall,
            risk_level=self.risk_level_for(overall, thresholds),
            violations=list(violations),
            recommendations=self.recommendations(violations),
            last_updated=datetime.utcnow(),
        )

    def deduction_for(self, rule: ComplianceRule) -> float:
        """Points a single violation of ``rule`` costs."""
        factor = self.settings.severity_factors[rule.risk_level]
        return rule.weight * factor * self.settings.deduction_scale

    @staticmethod
    def risk_level_for(score: float, thresholds: Optional[Dict[RiskLevel, float]] = None) -> RiskLevel:
        """Map a score to a risk level (LOW >= 80, MEDIUM >= 60, HIGH >= 40 by default)."""
        thresholds = thresholds or DEFAULT_RISK_THRESHOLDS
        for level in (RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH):
            if score >= thresholds[level]:
                return level
        return RiskLevel.CRITICAL

    @staticmethod
    def recommendations(violations: Iterable[ComplianceViolation]) -> List[str]:
        """
        Deduplicated suggested actions of unresolved violations.

        Ordered by descending severity, then ascending rule ID.
        """
        unresolved = [v for v in violations if not v.is_resolved]
        unresolved.sort(key=lambda v: (-v.severity.rank, v.rule_id))
        seen = set()
        actions = []
        for violation in unresolved:
            action = violation.suggested_action
            if action and action not in seen:
                seen.add(action)
                actions.append(action)
        return actions

    @staticmethod
    def _infer_framework(violations, rules) -> ComplianceFramework:
        for violation in violations:
            if violation.framework is not None:
                return violation.framework
        for rule in rules:
            return rule.framework
        return ComplianceFramework.CUSTOM
