"""Unit tests for the clause evaluator."""

from datetime import datetime

from contract_compliance.analysis import ClauseEvaluator
from contract_compliance.analysis.text import byte_offset, jaccard_similarity, normalize_text
from contract_compliance.models.compliance import ComplianceRule
from contract_compliance.models.enums import ClauseCategory, ComplianceFramework, RiskLevel


def make_rule(rule_id, keywords=(), patterns=(), **kwargs):
    return ComplianceRule(
        id=rule_id,
        framework=kwargs.pop("framework", ComplianceFramework.GDPR),
        category=kwargs.pop("category", ClauseCategory.DATA_PROTECTION),
        risk_level=kwargs.pop("risk_level", RiskLevel.MEDIUM),
        weight=kwargs.pop("weight", 0.3),
        keywords=keywords,
        patterns=patterns,
        **kwargs,
    )


class TestTextHelpers:
    """Tests for normalisation and similarity helpers."""

    def test_normalize_collapses_whitespace_and_case(self):
        assert normalize_text("  Personal\n\tDATA  ") == "personal data"

    def test_normalize_empty(self):
        assert normalize_text("") == ""
        assert normalize_text(None) == ""

    def test_jaccard_ignores_stop_words(self):
        assert jaccard_similarity("the data", "data") == 1.0

    def test_jaccard_disjoint(self):
        assert jaccard_similarity("alpha beta", "gamma delta") == 0.0

    def test_byte_offset_counts_utf8_bytes(self):
        assert byte_offset("éa", 1) == 2
        assert byte_offset("abc", 2) == 2


class TestClauseEvaluator:
    """Tests for keyword and pattern matching."""

    def test_keyword_match_is_case_and_whitespace_insensitive(self):
        evaluator = ClauseEvaluator()
        rule = make_rule("R1", keywords=("personal data",))
        violations = evaluator.evaluate("We process PERSONAL\n  Data of customers.", [rule])

        assert len(violations) == 1
        assert violations[0].rule_id == "R1"
        assert violations[0].severity == RiskLevel.MEDIUM
        assert violations[0].framework == ComplianceFramework.GDPR

    def test_pattern_match(self):
        evaluator = ClauseEvaluator()
        rule = make_rule("R2", patterns=(r"notif\w*\s+.*breach",))
        violations = evaluator.evaluate("Supplier will notify Customer of any breach.", [rule])
        assert [v.rule_id for v in violations] == ["R2"]

    def test_no_match(self):
        evaluator = ClauseEvaluator()
        rule = make_rule("R1", keywords=("personal data",))
        assert evaluator.evaluate("Payment is due in 30 days.", [rule]) == []

    def test_empty_text_yields_no_violations(self):
        evaluator = ClauseEvaluator()
        rule = make_rule("R1", keywords=("personal data",))
        assert evaluator.evaluate("", [rule]) == []
        assert evaluator.evaluate("   \n ", [rule]) == []

    def test_one_violation_per_rule(self):
        evaluator = ClauseEvaluator()
        rule = make_rule("R1", keywords=("personal data", "data subject"), patterns=(r"data",))
        text = "Personal data of each data subject. More personal data."
        assert len(evaluator.evaluate(text, [rule])) == 1

    def test_violation_id_format(self):
        evaluator = ClauseEvaluator()
        rule = make_rule("R1", keywords=("personal data",))
        violation = evaluator.evaluate("personal data", [rule], clause_id="clause-7")[0]
        assert violation.id == "violation_R1_clause-7"
        assert violation.clause_id == "clause-7"

    def test_results_ordered_by_rule_id(self):
        evaluator = ClauseEvaluator()
        rules = [
            make_rule("b-rule", keywords=("data",)),
            make_rule("a-rule", keywords=("data",)),
            make_rule("c-rule", keywords=("data",)),
        ]
        violations = evaluator.evaluate("data", rules)
        assert [v.rule_id for v in violations] == ["a-rule", "b-rule", "c-rule"]

    def test_evaluation_is_deterministic(self):
        evaluator = ClauseEvaluator()
        rules = [make_rule("R1", keywords=("data",)), make_rule("R2", patterns=(r"transfer",))]
        detected_at = datetime(2024, 1, 1)
        first = evaluator.evaluate("data transfer", rules, detected_at=detected_at)
        second = evaluator.evaluate("data transfer", rules, detected_at=detected_at)
        assert first == second

    def test_inactive_rules_skipped(self):
        evaluator = ClauseEvaluator()
        rule = make_rule("R1", keywords=("data",), is_active=False)
        assert evaluator.evaluate("data", [rule]) == []

    def test_malformed_pattern_skips_only_that_rule(self):
        evaluator = ClauseEvaluator()
        broken = make_rule("broken", keywords=("data",), patterns=("([unclosed",))
        healthy = make_rule("healthy", keywords=("data",))

        result = evaluator.evaluate_detailed("personal data", [broken, healthy])

        assert [v.rule_id for v in result.violations] == ["healthy"]
        assert result.skipped_rule_ids == ["broken"]
        assert result.rule_errors[0].pattern == "([unclosed"

    def test_explanation_mentions_evidence(self):
        evaluator = ClauseEvaluator()
        rule = make_rule("R1", keywords=("personal data",), name="Data Subject Rights")
        violation = evaluator.evaluate("Personal data is shared.", [rule])[0]
        assert "personal data" in violation.explanation
        assert violation.rule_name == "Data Subject Rights"

    def test_suggested_action_defaults_from_rule(self):
        evaluator = ClauseEvaluator()
        rule = make_rule("R1", keywords=("data",), suggested_action="Add DPA")
        assert evaluator.evaluate("data", [rule])[0].suggested_action == "Add DPA"
