"""Rewrite providers.

``RuleBasedRewriteProvider`` is the deterministic fallback used whenever the
configured provider times out or fails. ``HttpRewriteProvider`` talks to an
Ollama-compatible generation endpoint.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from ..exceptions import ProviderFailure
from ..interfaces.providers import IRewriteProvider, RewriteResult
from ..models.compliance import ComplianceRule
from ..models.enums import SuggestionType
from ..analysis.text import normalize_text


logger = logging.getLogger(__name__)


STATUTORY_LIMITATION = "This provision is subject to applicable law and may be limited by statute."

# (pattern, replacement) pairs applied in order by the clarity pass
CLARITY_SUBSTITUTIONS = [
    (r"\bin the event that\b", "if"),
    (r"\bprior to\b", "before"),
    (r"\bsubsequent to\b", "after"),
    (r"\bpursuant to\b", "under"),
    (r"\bnotwithstanding\b", "despite"),
    (r"\bin accordance with\b", "under"),
    (r"\bfor the purpose of\b", "to"),
    (r"\bhereinafter\s+", ""),
    (r"\bhereby\s+", ""),
    (r"\bwhereas,?\s+", ""),
]

RISK_SOFTENING_SUBSTITUTIONS = [
    (r"\bunlimited liability\b", "liability limited to the fees paid in the preceding twelve months"),
    (r"\bin perpetuity\b", "for the term of this Agreement"),
    (r"\birrevocabl[ey]\b", "revocable on written notice"),
    (r"\bsole discretion\b", "reasonable discretion"),
]


def _apply_substitutions(text: str, substitutions) -> str:
    for pattern, replacement in substitutions:
        text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)
    return re.sub(r"[ \t]{2,}", " ", text).strip()


class RuleBasedRewriteProvider(IRewriteProvider):
    """
    Deterministic rewrites built from rule language and fixed substitutions.

    Expects ``context["triggered_rules"]`` to hold the rules the original
    clause triggers. Produces no confidence of its own.
    """

    def rewrite(
        self,
        clause: str,
        suggestion_type: SuggestionType,
        context: Dict[str, Any],
    ) -> List[RewriteResult]:
        triggered: List[ComplianceRule] = list(context.get("triggered_rules", []))

        result = None
        if suggestion_type == SuggestionType.COMPLIANCE:
            result = self._insert_rule_language(clause, triggered)
        elif suggestion_type == SuggestionType.RISK_REDUCTION:
            result = self._reduce_risk(clause)
        elif suggestion_type == SuggestionType.CLARITY:
            result = self._clarify(clause)
        return [result] if result is not None else []

    def _insert_rule_language(
        self,
        clause: str,
        triggered: List[ComplianceRule],
    ) -> Optional[RewriteResult]:
        normalized = normalize_text(clause)
        ordered = sorted(triggered, key=lambda r: (-r.risk_level.rank, r.id))
        additions: List[str] = []
        addressed: List[str] = []
        for rule in ordered:
            language = (rule.recommended_language or "").strip()
            if not language or normalize_text(language) in normalized or language in additions:
                continue
            additions.append(language)
            addressed.append(rule.id)
        if not additions:
            return None
        return RewriteResult(
            text=" ".join([clause.strip()] + additions),
            reasoning="Inserted the recommended language of the triggered compliance rules.",
            metadata={"addressed_rules": addressed},
        )

    def _reduce_risk(self, clause: str) -> Optional[RewriteResult]:
        softened = _apply_substitutions(clause, RISK_SOFTENING_SUBSTITUTIONS)
        if normalize_text(STATUTORY_LIMITATION) not in normalize_text(softened):
            softened = f"{softened} {STATUTORY_LIMITATION}"
        if softened == clause.strip():
            return None
        return RewriteResult(
            text=softened,
            reasoning="Softened absolute commitments and subjected the clause to applicable law.",
        )

    def _clarify(self, clause: str) -> Optional[RewriteResult]:
        clarified = _apply_substitutions(clause, CLARITY_SUBSTITUTIONS)
        if not clarified or clarified == clause.strip():
            return None
        clarified = clarified[0].upper() + clarified[1:]
        return RewriteResult(
            text=clarified,
            reasoning="Replaced legalese with plain-language equivalents.",
        )


REWRITE_SYSTEM_PROMPT = (
    "You are a contract drafting assistant. Rewrite the clause you are given to "
    "achieve the requested improvement while preserving its commercial intent. "
    'Answer with JSON: {"rewrite": str, "confidence": float between 0 and 1, "reasoning": str}.'
)


class HttpRewriteProvider(IRewriteProvider):
    """
    Rewrite provider backed by an Ollama-compatible ``/api/generate`` endpoint.

    Any transport error, HTTP error or unusable answer is raised as
    ProviderFailure; the suggestion engine decides how to fall back.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llama3.1:8b",
        timeout: float = 30.0,
        temperature: float = 0.1,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the provider.

        Args:
            base_url: Generation API base URL.
            model: Model to request.
            timeout: HTTP timeout in seconds.
            temperature: Sampling temperature.
            client: Optional preconfigured httpx client (used by tests).
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self._client = client or httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._client.close()

    def rewrite(
        self,
        clause: str,
        suggestion_type: SuggestionType,
        context: Dict[str, Any],
    ) -> List[RewriteResult]:
        payload = {
            "model": self.model,
            "prompt": self._build_prompt(clause, suggestion_type, context),
            "system": REWRITE_SYSTEM_PROMPT,
            "stream": False,
            "format": "json",
            "options": {"temperature": self.temperature},
        }
        try:
            response = self._client.post("/api/generate", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderFailure(
                f"Rewrite provider returned HTTP {e.response.status_code}",
                provider=self.name,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderFailure(f"Rewrite provider request failed: {e}", provider=self.name) from e
        except ValueError as e:
            raise ProviderFailure(f"Rewrite provider returned invalid JSON: {e}", provider=self.name) from e

        result = self._parse_answer(data.get("response", ""))
        return [result] if result is not None else []

    def _build_prompt(
        self,
        clause: str,
        suggestion_type: SuggestionType,
        context: Dict[str, Any],
    ) -> str:
        lines = [
            f"Improvement requested: {suggestion_type.value.replace('_', ' ').lower()}",
        ]
        frameworks = context.get("frameworks") or []
        if frameworks:
            lines.append(f"Compliance frameworks: {', '.join(frameworks)}")
        if context.get("jurisdiction"):
            lines.append(f"Jurisdiction: {context['jurisdiction']}")
        for rule in context.get("triggered_rules", []):
            lines.append(f"Issue to address: {rule.name} ({rule.framework.value})")
        if context.get("context"):
            lines.append(f"Contract context: {context['context']}")
        lines.append("")
        lines.append(f"Clause:\n{clause}")
        return "\n".join(lines)

    def _parse_answer(self, raw: str) -> Optional[RewriteResult]:
        raw = (raw or "").strip()
        if not raw:
            return None
        try:
            answer = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Rewrite provider answered with plain text; using it verbatim")
            return RewriteResult(text=raw)

        if not isinstance(answer, dict) or not str(answer.get("rewrite", "")).strip():
            raise ProviderFailure("Rewrite provider answer has no 'rewrite' field", provider=self.name)

        confidence = answer.get("confidence")
        if not isinstance(confidence, (int, float)):
            confidence = None
        return RewriteResult(
            text=str(answer["rewrite"]).strip(),
            confidence=confidence,
            reasoning=str(answer.get("reasoning", "")),
        )
