"""Unit tests for the smart suggestion engine."""

import threading

import pytest

from contract_compliance.config.settings import SuggestionSettings
from contract_compliance.exceptions import ConfigurationMissing, ProviderFailure, ProviderTimeout
from contract_compliance.interfaces.providers import (
    IRewriteProvider,
    ISimilaritySearchProvider,
    RewriteResult,
)
from contract_compliance.models.compliance import ComplianceRule
from contract_compliance.models.enums import (
    ClauseCategory,
    ComplianceFramework,
    RiskLevel,
    SuggestionSource,
    SuggestionStatus,
    SuggestionType,
)
from contract_compliance.models.suggestion import ClauseTemplate, SmartSuggestionRequest
from contract_compliance.rules import RuleRepository
from contract_compliance.suggestions import RuleBasedRewriteProvider, SuggestionEngine


DELIVERY_CLAUSE = "The Supplier shall deliver the goods within thirty days."
LEGALESE_CLAUSE = (
    "In the event that the Buyer fails to pay prior to the due date, the Seller may terminate."
)


class FixedRewriteProvider(IRewriteProvider):
    """Returns a fixed number of rewrites per call."""

    def __init__(self, count=10, confidence=0.9):
        self.count = count
        self.confidence = confidence
        self.calls = []

    def rewrite(self, clause, suggestion_type, context):
        self.calls.append(suggestion_type)
        return [
            RewriteResult(text=f"{clause} Variant {i} wording.", confidence=self.confidence)
            for i in range(self.count)
        ]


class BlockingRewriteProvider(IRewriteProvider):
    """Blocks until released, simulating a hung remote model."""

    def __init__(self):
        self.release = threading.Event()

    def rewrite(self, clause, suggestion_type, context):
        self.release.wait(5)
        return [RewriteResult(text="too late", confidence=1.0)]


class FailingRewriteProvider(IRewriteProvider):
    def rewrite(self, clause, suggestion_type, context):
        raise RuntimeError("model unavailable")


class EmptyRewriteProvider(IRewriteProvider):
    def rewrite(self, clause, suggestion_type, context):
        return []


class FailingSearchProvider(ISimilaritySearchProvider):
    def search(self, clause, templates, limit=5):
        raise RuntimeError("index offline")


def make_rule(rule_id, **kwargs):
    defaults = dict(
        framework=ComplianceFramework.GDPR,
        category=ClauseCategory.DATA_PROTECTION,
        risk_level=RiskLevel.MEDIUM,
        weight=0.3,
        keywords=("personal data",),
    )
    defaults.update(kwargs)
    return ComplianceRule(id=rule_id, **defaults)


@pytest.fixture
def delivery_template():
    return ClauseTemplate(
        id="tpl-delivery",
        title="Standard Delivery",
        content="The Supplier shall deliver all goods within thirty calendar days.",
        category=ClauseCategory.OTHER,
    )


class TestSuggestionLimits:
    """Tests for ranking, caps and thresholds."""

    def test_capped_at_default_request_limit(self):
        provider = FixedRewriteProvider(count=10)
        engine = SuggestionEngine(rewrite_provider=provider)
        request = SmartSuggestionRequest(
            original_clause=DELIVERY_CLAUSE,
            desired_improvements=[SuggestionType.CLARITY],
        )

        run = engine.generate_detailed(request)

        assert run.candidates_considered == 10
        assert len(run.suggestions) == 5
        assert provider.calls == [SuggestionType.CLARITY]

    def test_request_limit_below_default(self):
        engine = SuggestionEngine(rewrite_provider=FixedRewriteProvider(count=10))
        request = SmartSuggestionRequest(
            original_clause=DELIVERY_CLAUSE,
            desired_improvements=[SuggestionType.CLARITY],
            max_suggestions=2,
        )
        assert len(engine.generate_suggestions(request)) == 2

    def test_request_limit_above_default(self):
        engine = SuggestionEngine(rewrite_provider=FixedRewriteProvider(count=10, confidence=0.95))
        request = SmartSuggestionRequest(
            original_clause=DELIVERY_CLAUSE,
            desired_improvements=[SuggestionType.CLARITY],
            max_suggestions=8,
        )
        assert len(engine.generate_suggestions(request)) == 8

    def test_settings_ceiling_applies_when_set(self):
        settings = SuggestionSettings(max_suggestions=3)
        engine = SuggestionEngine(rewrite_provider=FixedRewriteProvider(count=10), settings=settings)
        request = SmartSuggestionRequest(
            original_clause=DELIVERY_CLAUSE,
            desired_improvements=[SuggestionType.CLARITY],
            max_suggestions=8,
        )
        assert len(engine.generate_suggestions(request)) == 3

    def test_settings_ceiling_off_by_default(self):
        assert SuggestionSettings().max_suggestions is None

    def test_negative_settings_ceiling_rejected(self):
        with pytest.raises(ValueError):
            SuggestionSettings(max_suggestions=-1)

    def test_zero_max_suggestions(self):
        provider = FixedRewriteProvider()
        engine = SuggestionEngine(rewrite_provider=provider)
        request = SmartSuggestionRequest(original_clause=DELIVERY_CLAUSE, max_suggestions=0)
        assert engine.generate_suggestions(request) == []
        assert provider.calls == []

    def test_empty_clause(self):
        engine = SuggestionEngine(rewrite_provider=FixedRewriteProvider())
        assert engine.generate_suggestions(SmartSuggestionRequest(original_clause="   ")) == []

    def test_negative_max_suggestions_rejected(self):
        with pytest.raises(ValueError):
            SmartSuggestionRequest(original_clause=DELIVERY_CLAUSE, max_suggestions=-1)

    def test_confidence_in_unit_interval(self):
        engine = SuggestionEngine(rewrite_provider=FixedRewriteProvider(count=3, confidence=5.0))
        request = SmartSuggestionRequest(original_clause=DELIVERY_CLAUSE)
        suggestions = engine.generate_suggestions(request)
        assert suggestions
        assert all(0.0 <= s.confidence <= 1.0 for s in suggestions)

    def test_ordered_by_confidence(self):
        engine = SuggestionEngine(rewrite_provider=FixedRewriteProvider(count=4))
        suggestions = engine.generate_suggestions(SmartSuggestionRequest(original_clause=DELIVERY_CLAUSE))
        confidences = [s.confidence for s in suggestions]
        assert confidences == sorted(confidences, reverse=True)

    def test_threshold_filters_low_confidence(self):
        settings = SuggestionSettings(confidence_threshold=0.99)
        engine = SuggestionEngine(rewrite_provider=FixedRewriteProvider(confidence=0.1), settings=settings)
        assert engine.generate_suggestions(SmartSuggestionRequest(original_clause=DELIVERY_CLAUSE)) == []

    def test_suggestions_start_pending(self):
        engine = SuggestionEngine(rewrite_provider=FixedRewriteProvider(count=1))
        suggestion = engine.generate_suggestions(
            SmartSuggestionRequest(original_clause=DELIVERY_CLAUSE)
        )[0]
        assert suggestion.status == SuggestionStatus.PENDING
        assert suggestion.source == SuggestionSource.AI_ANALYSIS
        assert suggestion.original_clause == DELIVERY_CLAUSE
        assert suggestion.title


class TestProviderFallback:
    """Tests for falling back to rule-based rewrites."""

    def test_timeout_falls_back_to_rule_based(self):
        provider = BlockingRewriteProvider()
        engine = SuggestionEngine(rewrite_provider=provider)
        request = SmartSuggestionRequest(
            original_clause=LEGALESE_CLAUSE,
            desired_improvements=[SuggestionType.CLARITY],
            timeout_seconds=0.2,
        )
        try:
            run = engine.generate_detailed(request)
        finally:
            provider.release.set()

        assert run.fallback_types == [SuggestionType.CLARITY]
        timeouts = run.errors.errors_of_type(ProviderTimeout)
        assert len(timeouts) == 1
        assert timeouts[0].timeout_seconds == 0.2
        assert len(run.suggestions) == 1
        suggestion = run.suggestions[0]
        assert suggestion.source == SuggestionSource.BEST_PRACTICE
        assert suggestion.suggested_clause.startswith("If the Buyer fails to pay before the due date")

    def test_failure_falls_back_to_rule_based(self):
        engine = SuggestionEngine(rewrite_provider=FailingRewriteProvider())
        request = SmartSuggestionRequest(
            original_clause=LEGALESE_CLAUSE,
            desired_improvements=[SuggestionType.CLARITY],
        )
        run = engine.generate_detailed(request)

        failures = run.errors.errors_of_type(ProviderFailure)
        assert len(failures) == 1
        assert "model unavailable" in failures[0].message
        assert failures[0].details["suggestion_type"] == "CLARITY"
        assert [s.source for s in run.suggestions] == [SuggestionSource.BEST_PRACTICE]

    def test_empty_provider_result_uses_fallback_silently(self):
        engine = SuggestionEngine(rewrite_provider=EmptyRewriteProvider())
        request = SmartSuggestionRequest(
            original_clause=LEGALESE_CLAUSE,
            desired_improvements=[SuggestionType.CLARITY],
        )
        run = engine.generate_detailed(request)
        assert not run.errors.has_errors()
        assert run.fallback_types == []
        assert len(run.suggestions) == 1

    def test_no_provider_uses_rule_based(self):
        engine = SuggestionEngine()
        request = SmartSuggestionRequest(
            original_clause=LEGALESE_CLAUSE,
            desired_improvements=[SuggestionType.CLARITY, SuggestionType.RISK_REDUCTION],
        )
        suggestions = engine.generate_suggestions(request)
        assert suggestions
        assert all(s.source == SuggestionSource.BEST_PRACTICE for s in suggestions)


class TestComplianceSuggestions:
    """Tests for rule-driven suggestions."""

    def test_inserts_recommended_language(self):
        rule = make_rule(
            "R1",
            name="Data Subject Rights",
            recommended_language="Data subjects may exercise their rights of access and erasure.",
        )
        engine = SuggestionEngine(repository=RuleRepository([rule]))
        request = SmartSuggestionRequest(
            original_clause="We process personal data of customers.",
            compliance_frameworks=[ComplianceFramework.GDPR],
            desired_improvements=[SuggestionType.COMPLIANCE],
        )

        suggestions = engine.generate_suggestions(request)

        assert len(suggestions) == 1
        suggestion = suggestions[0]
        assert suggestion.suggestion_type == SuggestionType.COMPLIANCE
        assert "rights of access and erasure" in suggestion.suggested_clause
        assert suggestion.compliance_improvements == ["Data Subject Rights"]

    def test_missing_framework_reported(self):
        engine = SuggestionEngine(repository=RuleRepository([make_rule("R1")]))
        request = SmartSuggestionRequest(
            original_clause=LEGALESE_CLAUSE,
            compliance_frameworks=[ComplianceFramework.SOX],
            desired_improvements=[SuggestionType.CLARITY],
        )
        run = engine.generate_detailed(request)
        assert len(run.errors.errors_of_type(ConfigurationMissing)) == 1
        assert run.suggestions

    def test_rule_coverage_scores(self):
        rule = make_rule("R1", recommended_language="Consent is recorded.")
        engine = SuggestionEngine()
        triggered = [rule]
        # Rewrite no longer triggers the rule
        coverage, addressed = engine._rule_coverage("customer records", [rule], triggered)
        assert coverage == 1.0
        assert addressed == [rule]
        # Rewrite still triggers the rule without its recommended language
        coverage, addressed = engine._rule_coverage("personal data again", [rule], triggered)
        assert coverage == 0.0
        # Nothing triggered, rewrite introduces a violation
        coverage, _ = engine._rule_coverage("personal data", [rule], [])
        assert coverage == 0.0

    def test_confidence_renormalised_without_provider_confidence(self):
        engine = SuggestionEngine()
        assert engine.score_confidence("alpha beta", "alpha beta", [], []) == 1.0
        assert engine.score_confidence("alpha beta", "gamma delta", [], []) == pytest.approx(0.4 / 0.7, abs=1e-4)


class TestTemplateSuggestions:
    """Tests for precedent-based suggestions from stored templates."""

    def test_similar_template_suggested(self, delivery_template):
        engine = SuggestionEngine(templates=[delivery_template])
        request = SmartSuggestionRequest(
            original_clause=DELIVERY_CLAUSE,
            desired_improvements=[SuggestionType.IMPROVEMENT],
        )
        suggestions = engine.generate_suggestions(request)

        assert len(suggestions) == 1
        suggestion = suggestions[0]
        assert suggestion.suggestion_type == SuggestionType.IMPROVEMENT
        assert suggestion.source == SuggestionSource.LEGAL_PRECEDENT
        assert suggestion.related_template_id == "tpl-delivery"
        assert suggestion.suggested_clause == delivery_template.content

    def test_excluded_template_ignored(self, delivery_template):
        engine = SuggestionEngine(templates=[delivery_template])
        request = SmartSuggestionRequest(
            original_clause=DELIVERY_CLAUSE,
            desired_improvements=[SuggestionType.IMPROVEMENT],
            exclude_templates=["tpl-delivery"],
        )
        assert engine.generate_suggestions(request) == []

    def test_dissimilar_template_ignored(self):
        template = ClauseTemplate(id="tpl-ip", title="IP", content="All intellectual property vests in the Licensor.")
        engine = SuggestionEngine(templates=[template])
        request = SmartSuggestionRequest(
            original_clause=DELIVERY_CLAUSE,
            desired_improvements=[SuggestionType.IMPROVEMENT],
        )
        assert engine.generate_suggestions(request) == []

    def test_search_failure_falls_back_to_token_overlap(self, delivery_template):
        engine = SuggestionEngine(
            similarity_provider=FailingSearchProvider(),
            templates=[delivery_template],
        )
        request = SmartSuggestionRequest(
            original_clause=DELIVERY_CLAUSE,
            desired_improvements=[SuggestionType.IMPROVEMENT],
        )
        run = engine.generate_detailed(request)
        assert run.fallback_types == [SuggestionType.IMPROVEMENT]
        assert [s.related_template_id for s in run.suggestions] == ["tpl-delivery"]


class TestRuleBasedRewriteProvider:
    """Tests for the deterministic fallback provider."""

    def test_clarity_rewrite(self):
        provider = RuleBasedRewriteProvider()
        results = provider.rewrite(LEGALESE_CLAUSE, SuggestionType.CLARITY, {})
        assert results[0].text == "If the Buyer fails to pay before the due date, the Seller may terminate."

    def test_clarity_without_legalese_returns_nothing(self):
        provider = RuleBasedRewriteProvider()
        assert provider.rewrite("Pay on time.", SuggestionType.CLARITY, {}) == []

    def test_risk_reduction_adds_statutory_limitation(self):
        provider = RuleBasedRewriteProvider()
        results = provider.rewrite(
            "The Supplier accepts unlimited liability.", SuggestionType.RISK_REDUCTION, {}
        )
        assert "unlimited liability" not in results[0].text
        assert results[0].text.endswith("may be limited by statute.")

    def test_compliance_without_triggered_rules_returns_nothing(self):
        provider = RuleBasedRewriteProvider()
        assert provider.rewrite(DELIVERY_CLAUSE, SuggestionType.COMPLIANCE, {"triggered_rules": []}) == []
