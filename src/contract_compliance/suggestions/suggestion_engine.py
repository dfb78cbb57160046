"""Smart clause suggestion engine.

Produces ranked alternative phrasings for a clause. Rewrites come from an
injected rewrite provider; when it times out or fails, the engine falls back
to deterministic rule-based rewrites. Stored templates found by similarity
search are offered as precedent-based suggestions.
"""

import logging
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..analysis.evaluator import ClauseEvaluator
from ..analysis.text import jaccard_similarity, normalize_text
from ..config.settings import SuggestionSettings
from ..exceptions import ConfigurationMissing, ErrorCollector, ProviderFailure, ProviderTimeout
from ..interfaces.providers import IRewriteProvider, ISimilaritySearchProvider, RewriteResult
from ..models.compliance import ComplianceRule
from ..models.enums import SuggestionSource, SuggestionType
from ..models.suggestion import ClauseSuggestion, ClauseTemplate, SmartSuggestionRequest
from ..rules.repository import RuleRepository
from .providers import RuleBasedRewriteProvider
from .template_matcher import ClauseTemplateMatcher, TokenOverlapSearchProvider


logger = logging.getLogger(__name__)


SUGGESTION_TITLES = {
    SuggestionType.COMPLIANCE: "Compliance Enhancement",
    SuggestionType.RISK_REDUCTION: "Risk Reduction",
    SuggestionType.CLARITY: "Clarity Improvement",
    SuggestionType.LEGAL_STRENGTH: "Legal Strength",
    SuggestionType.IMPROVEMENT: "Template Alignment",
}

SUGGESTION_BENEFITS = {
    SuggestionType.COMPLIANCE: ["Addresses regulatory requirements", "Reduces compliance exposure"],
    SuggestionType.RISK_REDUCTION: ["Limits open-ended obligations", "Reduces litigation exposure"],
    SuggestionType.CLARITY: ["Plain language", "Reduces ambiguity"],
    SuggestionType.LEGAL_STRENGTH: ["Stronger enforceability"],
    SuggestionType.IMPROVEMENT: ["Aligns with approved precedent language"],
}


@dataclass
class SuggestionCandidate:
    """A rewrite waiting to be scored."""
    suggestion_type: SuggestionType
    rewrite: RewriteResult
    source: SuggestionSource
    template: Optional[ClauseTemplate] = None


@dataclass
class SuggestionRun:
    """Suggestions for one request, plus what went wrong while producing them."""
    suggestions: List[ClauseSuggestion] = field(default_factory=list)
    errors: ErrorCollector = field(default_factory=ErrorCollector)
    fallback_types: List[SuggestionType] = field(default_factory=list)
    candidates_considered: int = 0
    timeout_seconds: float = 0.0


class SuggestionEngine:
    """
    Generates ranked clause suggestions.

    Categories are processed in priority order COMPLIANCE, RISK_REDUCTION,
    CLARITY, LEGAL_STRENGTH, IMPROVEMENT. Provider calls run concurrently on
    a worker pool and share one deadline; a call that misses it is
    abandoned, never waited for.
    """

    def __init__(
        self,
        rewrite_provider: Optional[IRewriteProvider] = None,
        repository: Optional[RuleRepository] = None,
        similarity_provider: Optional[ISimilaritySearchProvider] = None,
        templates: Optional[Sequence[ClauseTemplate]] = None,
        settings: Optional[SuggestionSettings] = None,
        evaluator: Optional[ClauseEvaluator] = None,
        fallback_provider: Optional[IRewriteProvider] = None,
    ):
        """
        Initialize the suggestion engine.

        Args:
            rewrite_provider: Primary rewrite provider. When None, the
                rule-based provider is used directly.
            repository: Rule repository supplying the rule vocabulary.
            similarity_provider: Template search provider. Defaults to
                in-memory token overlap over ``templates``.
            templates: Local template library.
            settings: Suggestion settings.
            evaluator: Clause evaluator used to measure rule coverage.
            fallback_provider: Deterministic provider used on timeout or failure.
        """
        self.settings = settings or SuggestionSettings()
        self._rewrite_provider = rewrite_provider
        self._fallback_provider = fallback_provider or RuleBasedRewriteProvider()
        self._repository = repository
        self._similarity_provider = similarity_provider
        self._local_search = TokenOverlapSearchProvider()
        self._templates: List[ClauseTemplate] = list(templates or [])
        self._evaluator = evaluator or ClauseEvaluator()
        self._template_matcher = ClauseTemplateMatcher()

    @property
    def templates(self) -> List[ClauseTemplate]:
        return list(self._templates)

    def set_templates(self, templates: Sequence[ClauseTemplate]) -> None:
        """Replace the local template library."""
        self._templates = list(templates)

    def generate_suggestions(self, request: SmartSuggestionRequest) -> List[ClauseSuggestion]:
        """
        Generate suggestions for a clause.

        Args:
            request: The suggestion request.

        Returns:
            At most ``request.max_suggestions`` suggestions whose confidence
            meets the threshold, ordered by confidence descending and then by
            category priority.
        """
        return self.generate_detailed(request).suggestions

    def generate_detailed(self, request: SmartSuggestionRequest) -> SuggestionRun:
        """Generate suggestions and report provider fallbacks and rule problems."""
        run = SuggestionRun(errors=ErrorCollector(context="suggestions"))
        clause = request.original_clause or ""
        if not normalize_text(clause) or request.max_suggestions == 0:
            return run

        rules = self._applicable_rules(request, run.errors)
        evaluation = self._evaluator.evaluate_detailed(clause, rules)
        for error in evaluation.rule_errors:
            run.errors.add_error(error)
        triggered_ids = {v.rule_id for v in evaluation.violations}
        triggered = [r for r in rules if r.id in triggered_ids]

        categories = self._categories(request)
        timeout = request.timeout_seconds or self.settings.provider_timeout
        run.timeout_seconds = timeout
        context = self._provider_context(request, triggered)

        candidates = self._collect_candidates(clause, categories, context, timeout, request, run)
        run.candidates_considered = len(candidates)

        scored: List[Tuple[int, ClauseSuggestion]] = []
        for index, candidate in enumerate(candidates):
            suggestion = self._build_suggestion(clause, candidate, rules, triggered)
            if suggestion is not None and suggestion.confidence >= self.settings.confidence_threshold:
                scored.append((index, suggestion))

        scored.sort(key=lambda item: (
            -item[1].confidence, item[1].suggestion_type.priority, item[0]
        ))
        limit = request.max_suggestions
        if self.settings.max_suggestions is not None:
            limit = min(limit, self.settings.max_suggestions)
        run.suggestions = [s for _, s in scored[:limit]]
        logger.info(
            f"Generated {len(run.suggestions)} suggestions from {len(candidates)} candidates "
            f"({len(run.fallback_types)} provider fallbacks)"
        )
        return run

    def score_confidence(
        self,
        original: str,
        rewrite: str,
        rules: Sequence[ComplianceRule],
        triggered: Sequence[ComplianceRule],
        provider_confidence: Optional[float] = None,
    ) -> float:
        """
        Confidence of a rewrite in [0, 1].

        Weighted average of the share of triggered rules the rewrite
        addresses, the rewrite's token similarity to the original, and the
        provider's confidence when it reported one.
        """
        coverage, _ = self._rule_coverage(rewrite, rules, triggered)
        components = [
            (self.settings.rules_weight, coverage),
            (self.settings.similarity_weight, jaccard_similarity(original, rewrite)),
        ]
        if provider_confidence is not None:
            components.append((self.settings.provider_weight, _clamp(provider_confidence)))

        total_weight = sum(weight for weight, _ in components)
        if total_weight <= 0:
            return 0.0
        value = sum(weight * score for weight, score in components) / total_weight
        return round(_clamp(value), 4)

    def _rule_coverage(
        self,
        rewrite: str,
        rules: Sequence[ComplianceRule],
        triggered: Sequence[ComplianceRule],
    ) -> Tuple[float, List[ComplianceRule]]:
        """
        Share of triggered rules the rewrite addresses, and those rules.

        A rule is addressed when the rewrite no longer triggers it or carries
        its recommended language. With nothing triggered, a rewrite scores 1.0
        unless it triggers new rules.
        """
        after = self._evaluator.triggered_rule_ids(rewrite, rules)
        if not triggered:
            return (1.0 if not after else 0.0), []

        normalized_rewrite = normalize_text(rewrite)
        addressed = [
            rule for rule in triggered
            if rule.id not in after or (
                rule.recommended_language
                and normalize_text(rule.recommended_language) in normalized_rewrite
            )
        ]
        return len(addressed) / len(triggered), addressed

    def _collect_candidates(
        self,
        clause: str,
        categories: List[SuggestionType],
        context: Dict[str, Any],
        timeout: float,
        request: SmartSuggestionRequest,
        run: SuggestionRun,
    ) -> List[SuggestionCandidate]:
        rewrite_categories = [c for c in categories if c != SuggestionType.IMPROVEMENT]
        want_templates = SuggestionType.IMPROVEMENT in categories
        template_pool = self._template_pool(request) if want_templates else []

        executor = ThreadPoolExecutor(
            max_workers=len(rewrite_categories) + 1,
            thread_name_prefix="suggestion-provider",
        )
        try:
            deadline = time.monotonic() + timeout
            futures: Dict[SuggestionType, Future] = {}
            if self._rewrite_provider is not None:
                for category in rewrite_categories:
                    futures[category] = executor.submit(
                        self._rewrite_provider.rewrite, clause, category, context
                    )
            search_future = None
            if template_pool and self._similarity_provider is not None:
                search_future = executor.submit(
                    self._similarity_provider.search,
                    clause, template_pool, self.settings.template_candidates,
                )

            candidates: List[SuggestionCandidate] = []
            for category in rewrite_categories:
                candidates.extend(self._rewrite_candidates(
                    clause, category, context, futures.get(category), deadline, run
                ))
            if want_templates:
                candidates.extend(self._template_candidates(
                    clause, template_pool, search_future, deadline, run
                ))
            return candidates
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _rewrite_candidates(
        self,
        clause: str,
        category: SuggestionType,
        context: Dict[str, Any],
        future: Optional[Future],
        deadline: float,
        run: SuggestionRun,
    ) -> List[SuggestionCandidate]:
        if future is not None:
            provider_name = self._rewrite_provider.name
            try:
                results = future.result(timeout=max(0.0, deadline - time.monotonic()))
                usable = [r for r in (results or []) if r is not None and r.text.strip()]
                if usable:
                    return [
                        SuggestionCandidate(category, result, SuggestionSource.AI_ANALYSIS)
                        for result in usable
                    ]
                logger.debug(f"{provider_name} had no {category.value} rewrite; using fallback")
            except FutureTimeoutError:
                future.cancel()
                error = ProviderTimeout(
                    f"{provider_name} timed out on {category.value} rewrite",
                    provider=provider_name,
                    timeout_seconds=run.timeout_seconds,
                )
                self._record_fallback(run, category, error)
            except Exception as e:
                error = ProviderFailure(
                    f"{provider_name} failed on {category.value} rewrite: {e}",
                    provider=provider_name,
                )
                self._record_fallback(run, category, error)

        try:
            fallback = self._fallback_provider.rewrite(clause, category, context)
        except Exception as e:
            run.errors.add_error(ProviderFailure(
                f"Fallback provider failed on {category.value} rewrite: {e}",
                provider=self._fallback_provider.name,
            ))
            logger.warning(f"Fallback rewrite failed for {category.value}: {e}")
            return []
        return [
            SuggestionCandidate(category, result, SuggestionSource.BEST_PRACTICE)
            for result in fallback if result is not None and result.text.strip()
        ]

    def _template_candidates(
        self,
        clause: str,
        template_pool: List[ClauseTemplate],
        search_future: Optional[Future],
        deadline: float,
        run: SuggestionRun,
    ) -> List[SuggestionCandidate]:
        if not template_pool:
            return []

        found: Optional[List[Tuple[ClauseTemplate, float]]] = None
        if search_future is not None:
            provider_name = self._similarity_provider.name
            try:
                found = search_future.result(timeout=max(0.0, deadline - time.monotonic()))
            except FutureTimeoutError:
                search_future.cancel()
                self._record_fallback(run, SuggestionType.IMPROVEMENT, ProviderTimeout(
                    f"{provider_name} timed out searching templates",
                    provider=provider_name,
                    timeout_seconds=run.timeout_seconds,
                ))
            except Exception as e:
                self._record_fallback(run, SuggestionType.IMPROVEMENT, ProviderFailure(
                    f"{provider_name} failed searching templates: {e}", provider=provider_name
                ))
        if found is None:
            found = self._local_search.search(clause, template_pool, self.settings.template_candidates)

        candidates = []
        for template, similarity in found[:self.settings.template_candidates]:
            if similarity < self.settings.template_similarity_threshold:
                continue
            if normalize_text(template.content) == normalize_text(clause):
                continue
            candidates.append(SuggestionCandidate(
                suggestion_type=SuggestionType.IMPROVEMENT,
                rewrite=RewriteResult(
                    text=template.content,
                    confidence=similarity,
                    reasoning=f"Closely matches approved template '{template.title}'.",
                ),
                source=SuggestionSource.LEGAL_PRECEDENT,
                template=template,
            ))
        return candidates

    def _build_suggestion(
        self,
        clause: str,
        candidate: SuggestionCandidate,
        rules: Sequence[ComplianceRule],
        triggered: Sequence[ComplianceRule],
    ) -> Optional[ClauseSuggestion]:
        rewrite = candidate.rewrite.text.strip()
        if normalize_text(rewrite) == normalize_text(clause):
            return None

        _, addressed = self._rule_coverage(rewrite, rules, triggered)
        introduced = sorted(
            self._evaluator.triggered_rule_ids(rewrite, rules) - {r.id for r in triggered}
        )
        rule_names = {r.id: r.name for r in rules}
        suggestion_type = candidate.suggestion_type

        risks = [f"Introduces {rule_names.get(rule_id, rule_id)} exposure" for rule_id in introduced]
        if candidate.source == SuggestionSource.AI_ANALYSIS:
            risks.append("Generated language should be reviewed by counsel before use")

        return ClauseSuggestion(
            id=f"suggestion_{uuid.uuid4().hex[:12]}",
            original_clause=clause,
            suggested_clause=rewrite,
            suggestion_type=suggestion_type,
            confidence=self.score_confidence(
                clause, rewrite, rules, triggered, candidate.rewrite.confidence
            ),
            source=candidate.source,
            title=SUGGESTION_TITLES[suggestion_type],
            description=candidate.rewrite.reasoning or SUGGESTION_TITLES[suggestion_type],
            reasoning=candidate.rewrite.reasoning,
            benefits=list(SUGGESTION_BENEFITS[suggestion_type]),
            risks=risks,
            compliance_improvements=[rule.name for rule in addressed],
            related_template_id=candidate.template.id if candidate.template else None,
        )

    def _applicable_rules(
        self,
        request: SmartSuggestionRequest,
        errors: ErrorCollector,
    ) -> List[ComplianceRule]:
        if self._repository is None:
            return []
        frameworks = request.compliance_frameworks or self._repository.frameworks()
        snapshot = self._repository.snapshot
        rules: Dict[str, ComplianceRule] = {}
        for framework in frameworks:
            try:
                for rule in self._repository.active_rules(
                    framework, request.jurisdiction, request.client_id, snapshot=snapshot
                ):
                    rules[rule.id] = rule
            except ConfigurationMissing as e:
                logger.warning(f"No rules for {framework.value}; suggestions ignore it")
                errors.add_error(e)
        return [rules[rule_id] for rule_id in sorted(rules)]

    def _template_pool(self, request: SmartSuggestionRequest) -> List[ClauseTemplate]:
        excluded = set(request.exclude_templates)
        wanted = set(request.compliance_frameworks)
        pool = []
        for template in self._templates:
            if template.id in excluded:
                continue
            if request.category is not None and template.category != request.category:
                continue
            if wanted and template.compliance_frameworks and not wanted & set(template.compliance_frameworks):
                continue
            pool.append(template)
        return pool

    @staticmethod
    def _categories(request: SmartSuggestionRequest) -> List[SuggestionType]:
        requested = set(request.desired_improvements) or set(SuggestionType)
        return sorted(requested, key=lambda t: t.priority)

    @staticmethod
    def _provider_context(
        request: SmartSuggestionRequest,
        triggered: List[ComplianceRule],
    ) -> Dict[str, Any]:
        return {
            "context": request.context,
            "frameworks": [f.value for f in request.compliance_frameworks],
            "jurisdiction": request.jurisdiction,
            "category": request.category.value if request.category else None,
            "risk_level": request.risk_level.value if request.risk_level else None,
            "triggered_rules": list(triggered),
        }

    @staticmethod
    def _record_fallback(run: SuggestionRun, category: SuggestionType, error) -> None:
        logger.warning(f"{error.message}; falling back to rule-based suggestions")
        error.details.setdefault("suggestion_type", category.value)
        run.errors.add_error(error)
        if category not in run.fallback_types:
            run.fallback_types.append(category)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))
