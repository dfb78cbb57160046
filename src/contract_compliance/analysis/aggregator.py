"""Combines per-framework scores into a contract-level analysis."""

import math
from collections import Counter
from datetime import datetime
from typing import Iterable, List, Optional

from ..models.compliance import (
    ComplianceConfiguration,
    ComplianceScore,
    ComplianceViolation,
    ContractComplianceAnalysis,
)
from ..models.enums import RiskLevel


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


class AnalysisAggregator:
    """
    Aggregates framework scores for one contract.

    The overall risk level is the worst framework risk level; the overall
    score is the unweighted mean of framework scores. Violations are
    bucketed by severity: CRITICAL into critical issues, HIGH and MEDIUM
    into medium issues, LOW into low issues.
    """

    def __init__(self, max_auto_tags: int = 5):
        self.max_auto_tags = max_auto_tags

    def aggregate(
        self,
        contract_id: str,
        document_name: str,
        scores: Iterable[ComplianceScore],
        jurisdiction: Optional[str] = None,
        client_id: Optional[str] = None,
        configuration: Optional[ComplianceConfiguration] = None,
    ) -> ContractComplianceAnalysis:
        """
        Build the contract analysis.

        Args:
            contract_id: ID of the analysed contract.
            document_name: Name of the analysed document.
            scores: One score per evaluated framework.
            jurisdiction: Jurisdiction the contract was evaluated under.
            client_id: Owning client, if any.
            configuration: Client configuration (auto-tagging switches).

        Returns:
            ContractComplianceAnalysis. With no scores the analysis is clean:
            score 100, LOW risk, no issues.
        """
        scores = list(scores)
        violations = [v for score in scores for v in score.violations]

        if scores:
            mean = sum(s.overall_score for s in scores) / len(scores)
            overall_score = round_half_up(mean)
        else:
            overall_score = 100

        critical, medium, low = self.bucket(violations)

        tagging_enabled = configuration.auto_tagging_enabled if configuration else True
        max_tags = self.max_auto_tags
        if configuration and configuration.max_auto_tags is not None:
            max_tags = configuration.max_auto_tags

        return ContractComplianceAnalysis(
            contract_id=contract_id,
            document_name=document_name,
            frameworks=scores,
            overall_risk_level=RiskLevel.worst(s.risk_level for s in scores),
            overall_compliance_score=overall_score,
            critical_issues=critical,
            medium_issues=medium,
            low_issues=low,
            auto_tags=self.auto_tags(violations, max_tags) if tagging_enabled else [],
            jurisdiction=jurisdiction,
            client_id=client_id,
            analyzed_at=datetime.utcnow(),
        )

    @staticmethod
    def bucket(violations: Iterable[ComplianceViolation]):
        """Split violations into (critical, medium, low) lists, preserving order."""
        critical: List[ComplianceViolation] = []
        medium: List[ComplianceViolation] = []
        low: List[ComplianceViolation] = []
        for violation in violations:
            if violation.severity == RiskLevel.CRITICAL:
                critical.append(violation)
            elif violation.severity in (RiskLevel.HIGH, RiskLevel.MEDIUM):
                medium.append(violation)
            else:
                low.append(violation)
        return critical, medium, low

    @staticmethod
    def auto_tags(violations: Iterable[ComplianceViolation], max_tags: int = 5) -> List[str]:
        """
        Distinct categories of triggered violations.

        Ordered by frequency descending, then name ascending, capped at
        ``max_tags``.
        """
        counts = Counter(v.category.value for v in violations if v.category is not None)
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [name for name, _ in ranked[:max(0, max_tags)]]
