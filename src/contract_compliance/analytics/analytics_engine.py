"""Portfolio risk analytics.

Rolls stored contract analyses for a period up into risk distributions,
per-type and per-client breakdowns, client trends and mitigation
effectiveness.

Record selection:
- analyses outside the period are ignored;
- the latest analysis of each contract drives totals, distributions,
  breakdowns and mitigation;
- the full in-period timeline drives client trends and daily risk trends.

Aggregation over the latest analyses is done with ``RiskPartial``
accumulators that can be built for independent chunks in parallel and
merged in a fixed order, so the result does not depend on chunking.
"""

import logging
import math
from collections import Counter, defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import reduce
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config.settings import AnalyticsSettings
from ..models.analytics import (
    AnalyticsPeriod,
    ClientRiskBreakdown,
    Contract,
    RiskAnalytics,
    RiskBreakdown,
    RiskMitigation,
    RiskTrendPoint,
    empty_distribution,
)
from ..models.compliance import ComplianceViolation, ContractComplianceAnalysis
from ..models.enums import ContractType, RiskLevel, RiskTrend
from ..performance import timed_operation


logger = logging.getLogger(__name__)

UNASSIGNED_CLIENT = "unassigned"

# (analyzed_at, contract_id, violation position): first-occurrence ordering key
OccurrenceKey = Tuple[datetime, str, int]


@dataclass
class GroupAccumulator:
    """Count, risk distribution and numeric risk sum of a group of contracts."""
    count: int = 0
    distribution: Dict[RiskLevel, int] = field(default_factory=empty_distribution)
    score_sum: float = 0.0

    def add(self, level: RiskLevel, score: float) -> None:
        self.count += 1
        self.distribution[level] += 1
        self.score_sum += score

    def merge(self, other: "GroupAccumulator") -> "GroupAccumulator":
        distribution = {
            level: self.distribution[level] + other.distribution[level] for level in RiskLevel
        }
        return GroupAccumulator(
            count=self.count + other.count,
            distribution=distribution,
            score_sum=self.score_sum + other.score_sum,
        )

    @property
    def average(self) -> float:
        return round(self.score_sum / self.count, 2) if self.count else 0.0


@dataclass
class RiskPartial:
    """
    Associative summary of a set of contract analyses.

    ``merge`` is associative and, because first occurrences are tracked by
    timestamp keys rather than insertion order, commutative as well.
    """
    overall: GroupAccumulator = field(default_factory=GroupAccumulator)
    by_type: Dict[ContractType, GroupAccumulator] = field(default_factory=dict)
    by_client: Dict[str, GroupAccumulator] = field(default_factory=dict)
    total_violations: int = 0
    resolved_violations: int = 0
    contracts_with_mitigation: int = 0
    rule_counts: Counter = field(default_factory=Counter)
    rule_names: Dict[str, str] = field(default_factory=dict)
    first_actions: Dict[Tuple[str, str], OccurrenceKey] = field(default_factory=dict)

    def add(
        self,
        analysis: ContractComplianceAnalysis,
        contract_type: ContractType,
        client_id: str,
        numeric_score: float,
    ) -> None:
        level = analysis.overall_risk_level
        self.overall.add(level, numeric_score)
        self.by_type.setdefault(contract_type, GroupAccumulator()).add(level, numeric_score)
        self.by_client.setdefault(client_id, GroupAccumulator()).add(level, numeric_score)

        violations = _analysis_violations(analysis)
        resolved = sum(1 for v in violations if v.is_resolved)
        self.total_violations += len(violations)
        self.resolved_violations += resolved
        if resolved:
            self.contracts_with_mitigation += 1

        for position, violation in enumerate(violations):
            self.rule_counts[violation.rule_id] += 1
            self.rule_names.setdefault(violation.rule_id, violation.rule_name or violation.rule_id)
            if violation.suggested_action:
                key = (violation.rule_id, violation.suggested_action)
                occurrence = (analysis.analyzed_at, analysis.contract_id, position)
                if key not in self.first_actions or occurrence < self.first_actions[key]:
                    self.first_actions[key] = occurrence

    def merge(self, other: "RiskPartial") -> "RiskPartial":
        first_actions = dict(self.first_actions)
        for key, occurrence in other.first_actions.items():
            if key not in first_actions or occurrence < first_actions[key]:
                first_actions[key] = occurrence
        rule_names = dict(other.rule_names)
        rule_names.update(self.rule_names)
        return RiskPartial(
            overall=self.overall.merge(other.overall),
            by_type=_merge_groups(self.by_type, other.by_type),
            by_client=_merge_groups(self.by_client, other.by_client),
            total_violations=self.total_violations + other.total_violations,
            resolved_violations=self.resolved_violations + other.resolved_violations,
            contracts_with_mitigation=(
                self.contracts_with_mitigation + other.contracts_with_mitigation
            ),
            rule_counts=self.rule_counts + other.rule_counts,
            rule_names=rule_names,
            first_actions=first_actions,
        )


def _merge_groups(left: Dict, right: Dict) -> Dict:
    merged = dict(left)
    for key, group in right.items():
        merged[key] = merged[key].merge(group) if key in merged else group
    return merged


def _analysis_violations(analysis: ContractComplianceAnalysis) -> List[ComplianceViolation]:
    """Violations of an analysis, taken from its severity buckets."""
    return list(analysis.critical_issues) + list(analysis.medium_issues) + list(analysis.low_issues)


class AnalyticsEngine:
    """
    Computes portfolio risk analytics.

    Risk levels are mapped to numbers as LOW=25, MEDIUM=50, HIGH=75,
    CRITICAL=100, so a higher number always means more risk.
    """

    def __init__(self, settings: Optional[AnalyticsSettings] = None):
        self.settings = settings or AnalyticsSettings()

    def numeric_risk(self, level: RiskLevel) -> float:
        """Numeric risk score of a level."""
        return level.rank * self.settings.risk_score_unit

    @timed_operation("compute_risk_analytics")
    def compute_risk_analytics(
        self,
        analyses: Iterable[ContractComplianceAnalysis],
        contracts: Iterable[Contract],
        period: AnalyticsPeriod,
    ) -> RiskAnalytics:
        """
        Compute risk analytics for a period.

        Args:
            analyses: Stored contract analyses (any period; filtered here).
            contracts: Contract metadata used for type and client grouping.
            period: Time window to report on.

        Returns:
            RiskAnalytics for the period.
        """
        contracts_by_id = {c.id: c for c in contracts}
        timeline = sorted(
            (a for a in analyses if period.contains(a.analyzed_at)),
            key=lambda a: (a.analyzed_at, a.contract_id),
        )
        latest = self._latest_per_contract(timeline)

        partial = self._aggregate(latest, contracts_by_id)
        client_trends = self._client_trends(timeline, contracts_by_id)

        risk_by_client: Dict[str, ClientRiskBreakdown] = {}
        for client_id in sorted(partial.by_client):
            group = partial.by_client[client_id]
            risk_by_client[client_id] = ClientRiskBreakdown(
                count=group.count,
                risk_distribution=dict(group.distribution),
                average_risk_score=group.average,
                trend=client_trends.get(client_id, RiskTrend.STABLE),
            )

        risk_by_type = {
            contract_type: RiskBreakdown(
                count=group.count,
                risk_distribution=dict(group.distribution),
                average_risk_score=group.average,
            )
            for contract_type, group in sorted(partial.by_type.items(), key=lambda i: i[0].value)
        }

        analytics = RiskAnalytics(
            period=period,
            total_contracts=partial.overall.count,
            risk_distribution=dict(partial.overall.distribution),
            risk_by_contract_type=risk_by_type,
            risk_by_client=risk_by_client,
            risk_mitigation=self._mitigation(partial),
            risk_trends=self._daily_trends(timeline),
            average_risk_score=partial.overall.average,
            generated_at=datetime.utcnow(),
        )
        logger.info(
            f"Computed risk analytics for {analytics.total_contracts} contracts "
            f"({len(timeline)} analyses) in period {period.label or period.start.isoformat()}"
        )
        return analytics

    def compute_partial(
        self,
        analyses: Iterable[ContractComplianceAnalysis],
        contracts_by_id: Dict[str, Contract],
    ) -> RiskPartial:
        """Summarise a chunk of (latest) analyses."""
        partial = RiskPartial()
        for analysis in analyses:
            contract = contracts_by_id.get(analysis.contract_id)
            partial.add(
                analysis,
                contract_type=self._contract_type(contract),
                client_id=self._client_of(analysis, contract),
                numeric_score=self.numeric_risk(analysis.overall_risk_level),
            )
        return partial

    def classify_trend(self, scores: Sequence[float]) -> RiskTrend:
        """
        Classify a chronological series of numeric risk scores.

        The series is split into halves, the median element going to the
        first half on odd lengths. A second-half mean lower by more than the
        band is IMPROVING, higher by more than the band is DETERIORATING.
        """
        if len(scores) < 2:
            return RiskTrend.STABLE
        split = math.ceil(len(scores) / 2)
        first, second = scores[:split], scores[split:]
        delta = sum(second) / len(second) - sum(first) / len(first)
        if delta < -self.settings.trend_band:
            return RiskTrend.IMPROVING
        if delta > self.settings.trend_band:
            return RiskTrend.DETERIORATING
        return RiskTrend.STABLE

    @staticmethod
    def mitigation_effectiveness(total: int, resolved: int) -> float:
        """Resolved share of violations as a percentage (0 when there are none)."""
        if total <= 0:
            return 0.0
        return round(resolved / total * 100, 2)

    def _aggregate(
        self,
        latest: List[ContractComplianceAnalysis],
        contracts_by_id: Dict[str, Contract],
    ) -> RiskPartial:
        chunk_size = self.settings.chunk_size
        chunks = [latest[i:i + chunk_size] for i in range(0, len(latest), chunk_size)]
        if len(chunks) <= 1 or self.settings.max_workers == 1:
            return self.compute_partial(latest, contracts_by_id)

        workers = min(self.settings.max_workers, len(chunks))
        logger.debug(f"Aggregating {len(latest)} analyses in {len(chunks)} chunks on {workers} workers")
        with ThreadPoolExecutor(max_workers=workers) as executor:
            partials = list(executor.map(
                lambda chunk: self.compute_partial(chunk, contracts_by_id), chunks
            ))
        return reduce(lambda left, right: left.merge(right), partials, RiskPartial())

    def _mitigation(self, partial: RiskPartial) -> RiskMitigation:
        ranked = sorted(partial.rule_counts.items(), key=lambda item: (-item[1], item[0]))
        top_rule_ids = [rule_id for rule_id, _ in ranked[:self.settings.top_risk_factors]]

        factors: List[str] = []
        for rule_id in top_rule_ids:
            name = partial.rule_names.get(rule_id, rule_id)
            if name not in factors:
                factors.append(name)

        top = set(top_rule_ids)
        occurrences = sorted(
            (occurrence, action)
            for (rule_id, action), occurrence in partial.first_actions.items()
            if rule_id in top
        )
        actions: List[str] = []
        for _, action in occurrences:
            if action not in actions:
                actions.append(action)

        return RiskMitigation(
            total_violations=partial.total_violations,
            resolved_violations=partial.resolved_violations,
            effectiveness=self.mitigation_effectiveness(
                partial.total_violations, partial.resolved_violations
            ),
            contracts_with_mitigation=partial.contracts_with_mitigation,
            common_risk_factors=factors,
            recommended_actions=actions,
        )

    def _client_trends(
        self,
        timeline: List[ContractComplianceAnalysis],
        contracts_by_id: Dict[str, Contract],
    ) -> Dict[str, RiskTrend]:
        series: Dict[str, List[float]] = defaultdict(list)
        for analysis in timeline:
            client_id = self._client_of(analysis, contracts_by_id.get(analysis.contract_id))
            series[client_id].append(self.numeric_risk(analysis.overall_risk_level))
        return {client_id: self.classify_trend(scores) for client_id, scores in series.items()}

    @staticmethod
    def _daily_trends(timeline: List[ContractComplianceAnalysis]) -> List[RiskTrendPoint]:
        by_day: Dict[date, Dict[RiskLevel, int]] = {}
        for analysis in timeline:
            counts = by_day.setdefault(analysis.analyzed_at.date(), empty_distribution())
            counts[analysis.overall_risk_level] += 1
        return [RiskTrendPoint(day=day, counts=counts) for day, counts in sorted(by_day.items())]

    @staticmethod
    def _latest_per_contract(
        timeline: List[ContractComplianceAnalysis],
    ) -> List[ContractComplianceAnalysis]:
        latest: Dict[str, ContractComplianceAnalysis] = {}
        for analysis in timeline:
            latest[analysis.contract_id] = analysis
        return [latest[contract_id] for contract_id in sorted(latest)]

    @staticmethod
    def _contract_type(contract: Optional[Contract]) -> ContractType:
        return contract.contract_type if contract else ContractType.CUSTOM

    @staticmethod
    def _client_of(analysis: ContractComplianceAnalysis, contract: Optional[Contract]) -> str:
        if contract is not None and contract.client_id:
            return contract.client_id
        return analysis.client_id or UNASSIGNED_CLIENT
