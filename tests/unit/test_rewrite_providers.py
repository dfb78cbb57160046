"""Unit tests for the HTTP rewrite provider and embedding similarity search."""

import json

import httpx
import pytest

from contract_compliance.exceptions import ProviderFailure
from contract_compliance.models.compliance import ComplianceRule
from contract_compliance.models.enums import (
    ClauseCategory,
    ComplianceFramework,
    RiskLevel,
    SuggestionType,
)
from contract_compliance.models.suggestion import ClauseTemplate
from contract_compliance.suggestions.providers import HttpRewriteProvider
from contract_compliance.suggestions.semantic_provider import EmbeddingSimilarityProvider


CLAUSE = "The Supplier accepts unlimited liability for all losses."


def make_provider(handler):
    client = httpx.Client(base_url="http://llm.test", transport=httpx.MockTransport(handler))
    return HttpRewriteProvider(base_url="http://llm.test", model="test-model", client=client)


def generate_response(answer):
    def handler(request):
        return httpx.Response(200, json={"model": "test-model", "response": answer, "done": True})
    return handler


class TestHttpRewriteProvider:
    """Tests for HttpRewriteProvider."""

    def test_json_answer(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            answer = json.dumps({
                "rewrite": "Liability is capped at the fees paid.",
                "confidence": 0.9,
                "reasoning": "Caps exposure",
            })
            return httpx.Response(200, json={"response": answer})

        rule = ComplianceRule(
            id="sox-1",
            framework=ComplianceFramework.SOX,
            category=ClauseCategory.LIABILITY_LIMITATION,
            risk_level=RiskLevel.HIGH,
            weight=0.5,
            keywords=("unlimited liability",),
            name="Uncapped liability",
        )
        with make_provider(handler) as provider:
            results = provider.rewrite(
                CLAUSE,
                SuggestionType.RISK_REDUCTION,
                {"frameworks": ["SOX"], "jurisdiction": "US", "triggered_rules": [rule]},
            )

        assert len(results) == 1
        assert results[0].text == "Liability is capped at the fees paid."
        assert results[0].confidence == 0.9
        assert results[0].reasoning == "Caps exposure"

        payload = seen[0]
        assert payload["model"] == "test-model"
        assert payload["stream"] is False
        assert "Improvement requested: risk reduction" in payload["prompt"]
        assert "Issue to address: Uncapped liability (SOX)" in payload["prompt"]
        assert payload["prompt"].endswith(CLAUSE)

    def test_plain_text_answer_used_verbatim(self):
        provider = make_provider(generate_response("Liability is capped."))

        results = provider.rewrite(CLAUSE, SuggestionType.CLARITY, {})

        assert results[0].text == "Liability is capped."
        assert results[0].confidence is None

    def test_non_numeric_confidence_ignored(self):
        answer = json.dumps({"rewrite": "Liability is capped.", "confidence": "high"})
        provider = make_provider(generate_response(answer))

        assert provider.rewrite(CLAUSE, SuggestionType.CLARITY, {})[0].confidence is None

    def test_empty_answer(self):
        provider = make_provider(generate_response(""))
        assert provider.rewrite(CLAUSE, SuggestionType.CLARITY, {}) == []

    def test_answer_without_rewrite(self):
        provider = make_provider(generate_response(json.dumps({"confidence": 0.5})))

        with pytest.raises(ProviderFailure) as exc_info:
            provider.rewrite(CLAUSE, SuggestionType.CLARITY, {})

        assert exc_info.value.provider == "HttpRewriteProvider"

    def test_http_error(self):
        provider = make_provider(lambda request: httpx.Response(503, text="overloaded"))

        with pytest.raises(ProviderFailure) as exc_info:
            provider.rewrite(CLAUSE, SuggestionType.CLARITY, {})

        assert "HTTP 503" in exc_info.value.message

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = make_provider(handler)
        with pytest.raises(ProviderFailure) as exc_info:
            provider.rewrite(CLAUSE, SuggestionType.CLARITY, {})

        assert "request failed" in exc_info.value.message

    def test_invalid_json_body(self):
        provider = make_provider(lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(ProviderFailure):
            provider.rewrite(CLAUSE, SuggestionType.CLARITY, {})


class KeywordEmbeddingModel:
    """Embeds text as counts of a fixed vocabulary."""

    VOCABULARY = ("confidential", "payment", "liability")

    def __init__(self):
        self.calls = []

    def encode(self, text):
        self.calls.append(text)
        lowered = text.lower()
        return [float(lowered.count(word)) for word in self.VOCABULARY]


class TestEmbeddingSimilarityProvider:
    """Tests for EmbeddingSimilarityProvider."""

    @pytest.fixture
    def templates(self):
        return [
            ClauseTemplate(id="tpl-pay", title="Payment", content="Payment is due monthly."),
            ClauseTemplate(id="tpl-conf", title="Confidentiality", content="Confidential data stays confidential."),
            ClauseTemplate(id="tpl-mixed", title="Mixed", content="Confidential payment terms."),
        ]

    def test_ranked_by_cosine_similarity(self, templates):
        provider = EmbeddingSimilarityProvider(KeywordEmbeddingModel())

        results = provider.search("Confidential information", templates)

        assert [t.id for t, _ in results] == ["tpl-conf", "tpl-mixed", "tpl-pay"]
        assert results[0][1] == pytest.approx(1.0)
        assert results[1][1] == pytest.approx(2 ** -0.5)
        assert results[2][1] == 0.0

    def test_threshold_and_limit(self, templates):
        provider = EmbeddingSimilarityProvider(KeywordEmbeddingModel(), similarity_threshold=0.5)

        results = provider.search("Confidential information", templates, limit=1)

        assert [t.id for t, _ in results] == ["tpl-conf"]

    def test_template_embeddings_cached(self, templates):
        model = KeywordEmbeddingModel()
        provider = EmbeddingSimilarityProvider(model)

        provider.search("Confidential information", templates)
        provider.search("Payment schedule", templates)

        assert len(model.calls) == 5

    def test_requires_model(self):
        with pytest.raises(ValueError):
            EmbeddingSimilarityProvider(None)
