"""Unit tests for portfolio risk analytics."""

from datetime import datetime, timedelta

import pytest

from contract_compliance.analytics import AnalyticsEngine
from contract_compliance.config.settings import AnalyticsSettings
from contract_compliance.models.analytics import AnalyticsPeriod, Contract
from contract_compliance.models.compliance import ComplianceViolation, ContractComplianceAnalysis
from contract_compliance.models.enums import ContractType, RiskLevel, RiskTrend


PERIOD_START = datetime(2024, 1, 1)
PERIOD = AnalyticsPeriod(start=PERIOD_START, end=datetime(2024, 3, 31, 23, 59), label="Q1 2024")


def make_violation(rule_id, severity=RiskLevel.HIGH, resolved=False, action="Fix it", name=""):
    return ComplianceViolation(
        id=f"violation_{rule_id}_document",
        rule_id=rule_id,
        clause_id="document",
        severity=severity,
        description="",
        explanation="",
        suggested_action=action,
        rule_name=name or rule_id,
        is_resolved=resolved,
    )


def make_analysis(contract_id, level, day=0, client_id=None, violations=()):
    critical = [v for v in violations if v.severity == RiskLevel.CRITICAL]
    medium = [v for v in violations if v.severity in (RiskLevel.HIGH, RiskLevel.MEDIUM)]
    low = [v for v in violations if v.severity == RiskLevel.LOW]
    return ContractComplianceAnalysis(
        contract_id=contract_id,
        document_name=f"{contract_id}.docx",
        overall_risk_level=level,
        critical_issues=critical,
        medium_issues=medium,
        low_issues=low,
        client_id=client_id,
        analyzed_at=PERIOD_START + timedelta(days=day),
    )


class TestRiskDistribution:
    """Tests for totals, distributions and breakdowns."""

    def test_counts_latest_analysis_per_contract(self):
        engine = AnalyticsEngine()
        analyses = [
            make_analysis("c1", RiskLevel.HIGH, day=1),
            make_analysis("c1", RiskLevel.LOW, day=5),
            make_analysis("c2", RiskLevel.CRITICAL, day=2),
        ]
        analytics = engine.compute_risk_analytics(analyses, [], PERIOD)

        assert analytics.total_contracts == 2
        assert analytics.risk_distribution[RiskLevel.LOW] == 1
        assert analytics.risk_distribution[RiskLevel.CRITICAL] == 1
        assert analytics.risk_distribution[RiskLevel.HIGH] == 0
        assert sum(analytics.risk_distribution.values()) == analytics.total_contracts
        # (25 + 100) / 2
        assert analytics.average_risk_score == 62.5

    def test_analyses_outside_period_ignored(self):
        engine = AnalyticsEngine()
        analyses = [
            make_analysis("c1", RiskLevel.HIGH, day=-3),
            make_analysis("c2", RiskLevel.LOW, day=200),
        ]
        analytics = engine.compute_risk_analytics(analyses, [], PERIOD)
        assert analytics.total_contracts == 0
        assert analytics.average_risk_score == 0.0
        assert analytics.risk_trends == []

    def test_breakdown_by_contract_type_and_client(self):
        engine = AnalyticsEngine()
        contracts = [
            Contract(id="c1", client_id="acme", contract_type=ContractType.DATA_PROTECTION),
            Contract(id="c2", client_id="acme", contract_type=ContractType.REAL_ESTATE),
            Contract(id="c3", client_id="globex", contract_type=ContractType.DATA_PROTECTION),
        ]
        analyses = [
            make_analysis("c1", RiskLevel.HIGH, day=1),
            make_analysis("c2", RiskLevel.LOW, day=1),
            make_analysis("c3", RiskLevel.MEDIUM, day=1),
            make_analysis("c4", RiskLevel.LOW, day=1),
        ]
        analytics = engine.compute_risk_analytics(analyses, contracts, PERIOD)

        by_type = analytics.risk_by_contract_type
        assert by_type[ContractType.DATA_PROTECTION].count == 2
        assert by_type[ContractType.DATA_PROTECTION].average_risk_score == 62.5
        assert by_type[ContractType.REAL_ESTATE].count == 1
        # Unknown contracts are grouped as CUSTOM
        assert by_type[ContractType.CUSTOM].count == 1
        assert sum(b.count for b in by_type.values()) == analytics.total_contracts

        by_client = analytics.risk_by_client
        assert by_client["acme"].count == 2
        assert by_client["globex"].count == 1
        assert by_client["unassigned"].count == 1
        assert sum(b.count for b in by_client.values()) == analytics.total_contracts

    def test_client_taken_from_analysis_when_contract_unknown(self):
        engine = AnalyticsEngine()
        analytics = engine.compute_risk_analytics(
            [make_analysis("c9", RiskLevel.LOW, day=1, client_id="initech")], [], PERIOD
        )
        assert list(analytics.risk_by_client) == ["initech"]

    def test_chunked_aggregation_matches_sequential(self):
        analyses = [
            make_analysis(
                f"c{i}", list(RiskLevel)[i % 4], day=i % 30, client_id=f"client{i % 3}",
                violations=[make_violation(f"rule{i % 5}", resolved=i % 2 == 0)],
            )
            for i in range(40)
        ]
        sequential = AnalyticsEngine(AnalyticsSettings(max_workers=1)).compute_risk_analytics(
            analyses, [], PERIOD
        )
        parallel = AnalyticsEngine(AnalyticsSettings(max_workers=4, chunk_size=7)).compute_risk_analytics(
            analyses, [], PERIOD
        )

        assert parallel.total_contracts == sequential.total_contracts
        assert parallel.risk_distribution == sequential.risk_distribution
        assert parallel.average_risk_score == sequential.average_risk_score
        assert parallel.risk_by_client == sequential.risk_by_client
        assert parallel.risk_mitigation == sequential.risk_mitigation


class TestRiskTrends:
    """Tests for client trend classification and daily trend points."""

    @pytest.mark.parametrize("scores, expected", [
        ([], RiskTrend.STABLE),
        ([50], RiskTrend.STABLE),
        ([25, 25, 75, 75], RiskTrend.DETERIORATING),
        ([75, 75, 25, 25], RiskTrend.IMPROVING),
        ([50, 50, 52, 50], RiskTrend.STABLE),
        ([25, 75, 75], RiskTrend.DETERIORATING),
    ])
    def test_classify_trend(self, scores, expected):
        assert AnalyticsEngine().classify_trend(scores) == expected

    def test_median_goes_to_first_half(self):
        # [25, 75] vs [25] falls; [25] vs [75, 25] would rise
        assert AnalyticsEngine().classify_trend([25, 75, 25]) == RiskTrend.IMPROVING

    def test_series_is_risk_not_compliance(self):
        # Falling numeric risk means the client is improving
        assert AnalyticsEngine().classify_trend([80, 80, 40, 40]) == RiskTrend.IMPROVING

    def test_client_trend_deteriorating(self):
        engine = AnalyticsEngine()
        contracts = [Contract(id=f"c{i}", client_id="acme") for i in range(4)]
        # Compliance scores 80, 80, 40, 40 map to LOW, LOW, HIGH, HIGH, so the
        # classified risk series is 25, 25, 75, 75 and rises
        analyses = [
            make_analysis("c0", RiskLevel.LOW, day=1),
            make_analysis("c1", RiskLevel.LOW, day=2),
            make_analysis("c2", RiskLevel.HIGH, day=3),
            make_analysis("c3", RiskLevel.HIGH, day=4),
        ]
        analytics = engine.compute_risk_analytics(analyses, contracts, PERIOD)
        assert analytics.risk_by_client["acme"].trend == RiskTrend.DETERIORATING

    def test_trend_uses_full_timeline(self):
        engine = AnalyticsEngine()
        analyses = [
            make_analysis("c1", RiskLevel.CRITICAL, day=1, client_id="acme"),
            make_analysis("c1", RiskLevel.CRITICAL, day=2, client_id="acme"),
            make_analysis("c1", RiskLevel.LOW, day=3, client_id="acme"),
            make_analysis("c1", RiskLevel.LOW, day=4, client_id="acme"),
        ]
        analytics = engine.compute_risk_analytics(analyses, [], PERIOD)
        assert analytics.total_contracts == 1
        assert analytics.risk_by_client["acme"].trend == RiskTrend.IMPROVING

    def test_daily_risk_trends(self):
        engine = AnalyticsEngine()
        analyses = [
            make_analysis("c1", RiskLevel.LOW, day=1),
            make_analysis("c2", RiskLevel.HIGH, day=1),
            make_analysis("c1", RiskLevel.MEDIUM, day=3),
        ]
        trends = engine.compute_risk_analytics(analyses, [], PERIOD).risk_trends

        assert [p.day for p in trends] == [
            (PERIOD_START + timedelta(days=1)).date(),
            (PERIOD_START + timedelta(days=3)).date(),
        ]
        assert trends[0].counts[RiskLevel.LOW] == 1
        assert trends[0].counts[RiskLevel.HIGH] == 1
        assert trends[1].counts[RiskLevel.MEDIUM] == 1


class TestRiskMitigation:
    """Tests for mitigation effectiveness and risk factors."""

    def test_no_violations_gives_zero_effectiveness(self):
        engine = AnalyticsEngine()
        analytics = engine.compute_risk_analytics([make_analysis("c1", RiskLevel.LOW, day=1)], [], PERIOD)
        mitigation = analytics.risk_mitigation
        assert mitigation.total_violations == 0
        assert mitigation.effectiveness == 0.0
        assert mitigation.common_risk_factors == []

    def test_effectiveness_is_resolved_share(self):
        engine = AnalyticsEngine()
        analyses = [
            make_analysis("c1", RiskLevel.HIGH, day=1, violations=[
                make_violation("r1", resolved=True),
                make_violation("r2"),
            ]),
            make_analysis("c2", RiskLevel.HIGH, day=2, violations=[
                make_violation("r1"),
                make_violation("r3", resolved=True),
            ]),
            make_analysis("c3", RiskLevel.HIGH, day=3, violations=[make_violation("r1")]),
        ]
        mitigation = engine.compute_risk_analytics(analyses, [], PERIOD).risk_mitigation

        assert mitigation.total_violations == 5
        assert mitigation.resolved_violations == 2
        assert mitigation.effectiveness == 40.0
        assert mitigation.contracts_with_mitigation == 2
        assert 0.0 <= mitigation.effectiveness <= 100.0

    def test_common_risk_factors_ranked_by_frequency(self):
        engine = AnalyticsEngine(AnalyticsSettings(top_risk_factors=2))
        analyses = [
            make_analysis("c1", RiskLevel.HIGH, day=1, violations=[
                make_violation("r1", name="Breach Notification", action="Add breach clause"),
                make_violation("r2", name="Data Retention", action="Set retention"),
            ]),
            make_analysis("c2", RiskLevel.HIGH, day=2, violations=[
                make_violation("r2", name="Data Retention", action="Set retention"),
                make_violation("r3", name="Audit Rights", action="Add audit rights"),
            ]),
        ]
        mitigation = engine.compute_risk_analytics(analyses, [], PERIOD).risk_mitigation
        assert mitigation.common_risk_factors == ["Data Retention", "Breach Notification"]
        assert mitigation.recommended_actions == ["Add breach clause", "Set retention"]

    def test_only_latest_analysis_counts_for_mitigation(self):
        engine = AnalyticsEngine()
        analyses = [
            make_analysis("c1", RiskLevel.HIGH, day=1, violations=[make_violation("r1")]),
            make_analysis("c1", RiskLevel.LOW, day=2, violations=[make_violation("r1", resolved=True)]),
        ]
        mitigation = engine.compute_risk_analytics(analyses, [], PERIOD).risk_mitigation
        assert mitigation.total_violations == 1
        assert mitigation.effectiveness == 100.0


class TestAnalyticsPeriod:
    """Tests for the analytics period."""

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            AnalyticsPeriod(start=datetime(2024, 2, 1), end=datetime(2024, 1, 1))

    def test_bounds_inclusive(self):
        assert PERIOD.contains(PERIOD.start)
        assert PERIOD.contains(PERIOD.end)
