"""Unit tests for clause comparison."""

import pytest

from contract_compliance.models.compliance import ComplianceRule
from contract_compliance.models.enums import (
    ClauseCategory,
    ComparisonRecommendation,
    ComplianceFramework,
    DifferenceType,
    RiskLevel,
)
from contract_compliance.suggestions import ClauseComparator


LIABILITY_RULE = ComplianceRule(
    id="liability-cap",
    name="Liability Cap",
    framework=ComplianceFramework.SOX,
    category=ClauseCategory.LIABILITY_LIMITATION,
    risk_level=RiskLevel.HIGH,
    weight=0.5,
    keywords=("unlimited liability",),
)


class TestClauseComparator:
    """Tests for differences, scoring and recommendations."""

    def test_identical_clauses(self):
        comparison = ClauseComparator().compare("Payment is due in 30 days.", "Payment is due in 30 days.")
        assert comparison.differences == []
        assert comparison.overall_score == 1.0
        assert comparison.recommendation == ComparisonRecommendation.ACCEPT

    def test_empty_clauses(self):
        comparison = ClauseComparator().compare("", "")
        assert comparison.overall_score == 1.0
        assert comparison.differences == []

    def test_addition(self):
        comparison = ClauseComparator().compare(
            "Payment is due in 30 days", "Payment is due in 30 calendar days"
        )
        assert len(comparison.differences) == 1
        diff = comparison.differences[0]
        assert diff.type == DifferenceType.ADDITION
        assert diff.suggested_text == "calendar"
        assert diff.position == len("Payment is due in 30 ")

    def test_modification(self):
        comparison = ClauseComparator().compare("Payment is due promptly", "Payment is due immediately")
        assert [d.type for d in comparison.differences] == [DifferenceType.MODIFICATION]
        assert comparison.differences[0].original_text == "promptly"
        assert comparison.differences[0].suggested_text == "immediately"

    def test_moved_wording_is_reordering(self):
        comparison = ClauseComparator().compare(
            "Payment is due within thirty days",
            "Within thirty days payment is due",
        )
        assert len(comparison.differences) == 1
        diff = comparison.differences[0]
        assert diff.type == DifferenceType.REORDERING
        assert diff.original_text == "within thirty days"
        assert diff.suggested_text == "Within thirty days"
        assert comparison.overall_score == 0.5
        assert comparison.recommendation == ComparisonRecommendation.MODIFY

    def test_large_deletion_is_a_concern(self):
        comparison = ClauseComparator().compare(
            "Supplier delivers goods promptly and in full within ten days",
            "Supplier delivers goods",
        )
        assert [d.type for d in comparison.differences] == [DifferenceType.DELETION]
        assert "Removes most of the original wording" in comparison.concerns
        assert comparison.recommendation == ComparisonRecommendation.MODIFY

    def test_unrelated_rewrite_rejected(self):
        comparison = ClauseComparator().compare("alpha beta", "gamma delta")
        assert comparison.overall_score == 0.0
        assert comparison.recommendation == ComparisonRecommendation.REJECT

    def test_resolving_a_rule_is_an_improvement(self):
        comparison = ClauseComparator().compare(
            "Supplier accepts unlimited liability for all losses",
            "Supplier accepts liability capped at annual fees for all losses",
            rules=[LIABILITY_RULE],
        )
        assert comparison.improvements == ["Resolves Liability Cap"]
        assert comparison.concerns == []
        # 0.6 * 12/17 + 0.4 * 1.0
        assert comparison.overall_score == pytest.approx(0.8235, abs=1e-4)
        assert comparison.recommendation == ComparisonRecommendation.ACCEPT

    def test_introducing_a_rule_is_a_concern(self):
        comparison = ClauseComparator().compare(
            "Supplier accepts liability capped at annual fees for all losses",
            "Supplier accepts unlimited liability for all losses",
            rules=[LIABILITY_RULE],
        )
        assert comparison.concerns == ["Introduces Liability Cap"]
        assert comparison.recommendation != ComparisonRecommendation.ACCEPT

    def test_score_in_unit_interval(self):
        comparison = ClauseComparator().compare("a b c", "d e f g h", rules=[LIABILITY_RULE])
        assert 0.0 <= comparison.overall_score <= 1.0

    @pytest.mark.parametrize("score, concerns, expected", [
        (0.9, [], ComparisonRecommendation.ACCEPT),
        (0.9, ["Introduces X"], ComparisonRecommendation.MODIFY),
        (0.8, [], ComparisonRecommendation.MODIFY),
        (0.4, [], ComparisonRecommendation.MODIFY),
        (0.39, [], ComparisonRecommendation.REJECT),
    ])
    def test_recommend(self, score, concerns, expected):
        assert ClauseComparator.recommend(score, concerns) == expected
