"""End-to-end orchestration for the contract compliance engine.

This module wires the rule repository, analyzer, analytics engine,
suggestion engine and audit trail together behind one object used by
library callers and the HTTP API.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional

from .analysis.aggregator import AnalysisAggregator
from .analysis.analyzer import AnalysisOutcome, ComplianceAnalyzer
from .analysis.evaluator import ClauseEvaluator
from .analysis.scorer import ComplianceScorer
from .analytics.analytics_engine import AnalyticsEngine
from .audit.audit_logger import AuditLogger
from .audit.database import DatabaseManager
from .config.config_manager import ConfigurationManager
from .config.models import ConfigurationError
from .config.settings import AnalyticsSettings, ScoringSettings, SuggestionSettings
from .exceptions import ConfigurationMissing, ProviderFailure, ProviderTimeout
from .interfaces.providers import IRewriteProvider, ISimilaritySearchProvider
from .models.analytics import AnalyticsPeriod, Contract, RiskAnalytics
from .models.compliance import ComplianceConfiguration, ComplianceRule, ContractComplianceAnalysis
from .models.enums import ComplianceFramework
from .models.suggestion import (
    ClauseComparison,
    ClauseSuggestion,
    ClauseTemplate,
    ClauseTemplateMatch,
    SmartSuggestionRequest,
)
from .performance import PerformanceMonitor
from .review.action_handler import ReviewActionHandler
from .rules.frameworks import default_rules
from .rules.repository import RuleRepository, RuleSnapshot
from .serialization import ComplianceSerializer
from .suggestions.comparison import ClauseComparator
from .suggestions.providers import HttpRewriteProvider
from .suggestions.semantic_provider import (
    DEFAULT_EMBEDDING_MODEL,
    EmbeddingSimilarityProvider,
    load_embedding_model,
)
from .suggestions.suggestion_engine import SuggestionEngine
from .suggestions.template_matcher import ClauseTemplateMatcher


logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """Configuration for the compliance pipeline."""

    # Database configuration
    database_url: Optional[str] = None

    # Rules and configuration files
    config_dir: Optional[str] = None
    load_default_rules: bool = True

    # Engine settings
    scoring: ScoringSettings = field(default_factory=ScoringSettings)
    analytics: AnalyticsSettings = field(default_factory=AnalyticsSettings)
    suggestions: SuggestionSettings = field(default_factory=SuggestionSettings)
    max_auto_tags: int = 5

    # Performance configuration
    max_processing_time: int = 60  # seconds

    # History kept for compute_risk_analytics; oldest entries are dropped first.
    # None keeps everything, so long-running callers should pass analyses= instead.
    max_stored_analyses: Optional[int] = 1000
    max_stored_contracts: Optional[int] = 1000

    # Feature flags
    enable_audit_logging: bool = False
    enable_version_history: bool = True

    # Rewrite provider; rule-based rewrites only when no URL is set
    rewrite_provider_url: Optional[str] = None
    rewrite_model: str = "llama3.1:8b"
    rewrite_timeout: float = 30.0

    # Embedding model configuration
    embedding_model_name: str = DEFAULT_EMBEDDING_MODEL
    use_embedding_model: bool = False


@dataclass
class PipelineResult:
    """Result of one pipeline operation."""

    success: bool
    analysis: Optional[ContractComplianceAnalysis] = None
    risk_analytics: Optional[RiskAnalytics] = None
    suggestions: List[ClauseSuggestion] = field(default_factory=list)
    template_matches: List[ClauseTemplateMatch] = field(default_factory=list)
    comparison: Optional[ClauseComparison] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    processing_time: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PipelineStats:
    """Statistics about pipeline execution."""

    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    average_processing_time: float = 0.0
    total_processing_time: float = 0.0


class CompliancePipeline:
    """
    Main entry point of the compliance engine.

    Analyses contracts, keeps the analyses it produced for portfolio
    analytics, generates and compares clause suggestions, and records
    everything in the audit trail when audit logging is enabled.
    Recoverable failures are reported in ``PipelineResult.errors``; the
    pipeline never raises for them.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        repository: Optional[RuleRepository] = None,
        rewrite_provider: Optional[IRewriteProvider] = None,
        similarity_provider: Optional[ISimilaritySearchProvider] = None,
        audit_logger: Optional[AuditLogger] = None,
        config_manager: Optional[ConfigurationManager] = None,
    ):
        """
        Initialize the compliance pipeline.

        Args:
            config: Pipeline configuration.
            repository: Optional rule repository (created if not provided).
            rewrite_provider: Optional rewrite provider. Created from
                ``rewrite_provider_url`` when not provided.
            similarity_provider: Optional template search provider.
            audit_logger: Optional audit logger (created if audit logging is enabled).
            config_manager: Optional configuration manager (created if not provided).
        """
        self.config = config or PipelineConfig()
        self.stats = PipelineStats()
        self._stats_lock = threading.Lock()
        self._store_lock = threading.Lock()

        self.performance_monitor = PerformanceMonitor(
            max_processing_time=self.config.max_processing_time
        )

        self._db_manager = None
        self._audit_logger = audit_logger
        if self._audit_logger is None and self.config.enable_audit_logging:
            self._db_manager = DatabaseManager(database_url=self.config.database_url)
            try:
                self._db_manager.init_database()
                self._audit_logger = AuditLogger(db_manager=self._db_manager)
            except Exception as e:
                logger.warning(f"Audit database unavailable, audit logging disabled: {e}")
                self._db_manager.close()
                self._db_manager = None

        self._config_manager = config_manager or ConfigurationManager(
            config_dir=self.config.config_dir
        )
        if self.config.config_dir:
            load_result = self._config_manager.load_from_directory(self.config.config_dir)
            for warning in load_result.warnings:
                logger.warning(warning)
            if not load_result.is_valid:
                raise ConfigurationError(
                    f"Invalid configuration in {self.config.config_dir}",
                    validation_result=load_result,
                )
            logger.info(f"Loaded configuration from {self.config.config_dir}")

        self.repository = repository or RuleRepository()
        if repository is None:
            base_rules = default_rules() if self.config.load_default_rules else []
            if base_rules or self._config_manager.configuration.rules:
                self._announce_snapshot(
                    self._config_manager.publish_to(self.repository, base_rules=base_rules)
                )

        evaluator = ClauseEvaluator()
        scorer = ComplianceScorer(self.config.scoring)
        self._analyzer = ComplianceAnalyzer(
            repository=self.repository,
            evaluator=evaluator,
            scorer=scorer,
            aggregator=AnalysisAggregator(max_auto_tags=self.config.max_auto_tags),
        )
        self._analytics_engine = AnalyticsEngine(self.config.analytics)

        self._owns_rewrite_provider = False
        if rewrite_provider is None and self.config.rewrite_provider_url:
            rewrite_provider = HttpRewriteProvider(
                base_url=self.config.rewrite_provider_url,
                model=self.config.rewrite_model,
                timeout=self.config.rewrite_timeout,
            )
            self._owns_rewrite_provider = True
        self._rewrite_provider = rewrite_provider

        if similarity_provider is None and self.config.use_embedding_model:
            embedding_model = self._load_embedding_model()
            if embedding_model is not None:
                similarity_provider = EmbeddingSimilarityProvider(embedding_model)

        self._suggestion_engine = SuggestionEngine(
            rewrite_provider=rewrite_provider,
            repository=self.repository,
            similarity_provider=similarity_provider,
            templates=self._config_manager.configuration.get_active_templates(),
            settings=self.config.suggestions,
            evaluator=evaluator,
        )
        self._template_matcher = ClauseTemplateMatcher()
        self._comparator = ClauseComparator(evaluator=evaluator, scorer=scorer)
        self.review = ReviewActionHandler(audit_logger=self._audit_logger)

        self._analyses: Deque[ContractComplianceAnalysis] = deque(
            maxlen=self.config.max_stored_analyses
        )
        self._contracts: Dict[str, Contract] = {}

        logger.info("Compliance pipeline initialized")

    def _load_embedding_model(self):
        """Load the sentence-transformers embedding model."""
        return load_embedding_model(self.config.embedding_model_name)

    @property
    def audit_logger(self) -> Optional[AuditLogger]:
        return self._audit_logger

    @property
    def config_manager(self) -> ConfigurationManager:
        return self._config_manager

    @property
    def suggestion_engine(self) -> SuggestionEngine:
        return self._suggestion_engine

    # =========================================================================
    # Operations
    # =========================================================================

    def analyze_contract(
        self,
        contract_id: str,
        text: str,
        document_name: str = "",
        client_id: Optional[str] = None,
        jurisdiction: Optional[str] = None,
        frameworks: Optional[Iterable[ComplianceFramework]] = None,
        configuration: Optional[ComplianceConfiguration] = None,
        contract: Optional[Contract] = None,
        user_id: Optional[str] = None,
    ) -> PipelineResult:
        """
        Analyse a contract and keep the analysis for portfolio analytics.

        Args:
            contract_id: ID of the contract.
            text: Contract text.
            document_name: Name of the analysed document.
            client_id: Client the contract belongs to.
            jurisdiction: Jurisdiction to evaluate under.
            frameworks: Frameworks to evaluate (configuration or all when None).
            configuration: Client configuration. Looked up by client when None.
            contract: Contract metadata, registered for analytics grouping.
            user_id: Optional user ID for audit logging.

        Returns:
            PipelineResult with the analysis. Skipped frameworks are listed
            in ``errors`` and rules skipped for malformed patterns in ``warnings``.
        """
        def step(result: PipelineResult) -> None:
            resolved = configuration or self._config_manager.get_configuration(client_id)
            if contract is not None:
                self.register_contracts([contract])

            outcome = self._analyzer.analyze(
                contract_id=contract_id,
                document_name=document_name or contract_id,
                text=text,
                configuration=resolved,
                frameworks=frameworks,
                jurisdiction=jurisdiction,
                client_id=client_id,
            )
            result.analysis = outcome.analysis
            result.metadata["rule_snapshot_version"] = outcome.snapshot_version
            self._report_outcome(outcome, result)

            with self._store_lock:
                self._analyses.append(outcome.analysis)

            if self._audit_logger:
                self._record_analysis(outcome, user_id)

        return self._run("analyze_contract", step, contract_id=contract_id)

    def compute_risk_analytics(
        self,
        period: AnalyticsPeriod,
        analyses: Optional[Iterable[ContractComplianceAnalysis]] = None,
        contracts: Optional[Iterable[Contract]] = None,
        user_id: Optional[str] = None,
    ) -> PipelineResult:
        """
        Compute portfolio risk analytics for a period.

        Uses the analyses and contracts kept by this pipeline unless others
        are given. The kept history is bounded by ``max_stored_analyses`` and
        ``max_stored_contracts``, so older analyses fall out of it.
        """
        def step(result: PipelineResult) -> None:
            with self._store_lock:
                stored_analyses = list(self._analyses)
                stored_contracts = list(self._contracts.values())
            analytics = self._analytics_engine.compute_risk_analytics(
                analyses if analyses is not None else stored_analyses,
                contracts if contracts is not None else stored_contracts,
                period,
            )
            result.risk_analytics = analytics

            if self._audit_logger:
                self._audit_logger.log_analytics_computed(
                    period=period.label or f"{period.start.isoformat()}/{period.end.isoformat()}",
                    total_contracts=analytics.total_contracts,
                    average_risk_score=analytics.average_risk_score,
                    user_id=user_id,
                )

        return self._run("compute_risk_analytics", step)

    def generate_suggestions(
        self,
        request: SmartSuggestionRequest,
        contract_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> PipelineResult:
        """
        Generate suggestions for a clause.

        Provider timeouts and failures are reported as warnings; the
        suggestions then come from rule-based rewrites.
        """
        def step(result: PipelineResult) -> None:
            run = self._suggestion_engine.generate_detailed(request)
            result.suggestions = run.suggestions
            result.metadata["candidates_considered"] = run.candidates_considered
            result.metadata["fallback_types"] = [t.value for t in run.fallback_types]

            for error in run.errors.errors:
                if isinstance(error, ConfigurationMissing):
                    result.errors.append(error.message)
                else:
                    result.warnings.append(error.message)

            if self._audit_logger:
                for error in run.errors.errors:
                    if isinstance(error, (ProviderTimeout, ProviderFailure)):
                        self._audit_logger.log_provider_fallback(
                            provider=error.provider,
                            suggestion_type=error.details.get("suggestion_type", ""),
                            error_type="timeout" if isinstance(error, ProviderTimeout) else "failure",
                            message=error.message,
                            contract_id=contract_id,
                        )
                self._audit_logger.log_suggestions_generated(
                    suggestion_count=len(run.suggestions),
                    suggestion_types=sorted({s.suggestion_type.value for s in run.suggestions}),
                    fallback_count=len(run.fallback_types),
                    contract_id=contract_id,
                    client_id=request.client_id,
                    user_id=user_id,
                )

        return self._run("generate_suggestions", step)

    def match_templates(
        self,
        clause: str,
        templates: Optional[Iterable[ClauseTemplate]] = None,
        limit: int = 5,
        min_similarity: float = 0.0,
        exclude_ids: Optional[Iterable[str]] = None,
    ) -> PipelineResult:
        """Match a clause against the template library (or the given templates)."""
        def step(result: PipelineResult) -> None:
            library = list(templates) if templates is not None else self._suggestion_engine.templates
            result.template_matches = self._template_matcher.match(
                clause, library, limit=limit, min_similarity=min_similarity, exclude_ids=exclude_ids
            )

        return self._run("match_templates", step)

    def compare_clauses(
        self,
        original: str,
        suggested: str,
        frameworks: Optional[Iterable[ComplianceFramework]] = None,
        client_id: Optional[str] = None,
        jurisdiction: Optional[str] = None,
    ) -> PipelineResult:
        """Compare a clause with a rewrite, judged against the applicable rules."""
        def step(result: PipelineResult) -> None:
            rules = self._applicable_rules(frameworks, client_id, jurisdiction, result)
            result.comparison = self._comparator.compare(original, suggested, rules=rules)

        return self._run("compare_clauses", step)

    def publish_rules(
        self,
        rules: Iterable[ComplianceRule],
        replace: bool = False,
        user_id: Optional[str] = None,
    ) -> RuleSnapshot:
        """
        Publish rules as a new snapshot.

        Analyses already running keep the snapshot they started with.

        Args:
            rules: Rules to publish.
            replace: Replace the whole rule set instead of adding to it.
            user_id: Optional user ID for audit logging.

        Raises:
            ValueError: If two of the rules share an ID.
        """
        if replace:
            snapshot = self.repository.publish(rules)
        else:
            snapshot = self.repository.add_rules(rules)
        self._announce_snapshot(snapshot, user_id=user_id)
        return snapshot

    def register_contracts(self, contracts: Iterable[Contract]) -> None:
        """Register contract metadata used to group analytics, newest last."""
        with self._store_lock:
            for contract in contracts:
                self._contracts.pop(contract.id, None)
                self._contracts[contract.id] = contract
            limit = self.config.max_stored_contracts
            if limit is not None:
                while len(self._contracts) > limit:
                    del self._contracts[next(iter(self._contracts))]

    def set_templates(self, templates: Iterable[ClauseTemplate]) -> None:
        """Replace the clause template library."""
        self._suggestion_engine.set_templates(list(templates))

    @property
    def analyses(self) -> List[ContractComplianceAnalysis]:
        with self._store_lock:
            return list(self._analyses)

    @property
    def contracts(self) -> List[Contract]:
        with self._store_lock:
            return list(self._contracts.values())

    # =========================================================================
    # Internals
    # =========================================================================

    def _run(
        self,
        operation_name: str,
        step: Callable[[PipelineResult], None],
        **metadata,
    ) -> PipelineResult:
        start_time = time.perf_counter()
        result = PipelineResult(success=False)
        metric = self.performance_monitor.start_operation(operation_name, **metadata)

        try:
            step(result)
            result.success = True
            self.performance_monitor.end_operation(metric, success=True)
        except (ValueError, ConfigurationError) as e:
            error_msg = f"{operation_name} rejected: {getattr(e, 'message', str(e))}"
            result.errors.append(error_msg)
            logger.error(error_msg)
            self.performance_monitor.end_operation(metric, success=False, error=error_msg)
        except Exception as e:
            error_msg = f"{operation_name} failed: {str(e)}"
            result.errors.append(error_msg)
            logger.exception(error_msg)
            self.performance_monitor.end_operation(metric, success=False, error=error_msg)
        finally:
            result.processing_time = time.perf_counter() - start_time
            self._update_stats(result)

        if result.processing_time > self.config.max_processing_time:
            warning = (
                f"Processing time ({result.processing_time:.2f}s) exceeded "
                f"target ({self.config.max_processing_time}s)"
            )
            result.warnings.append(warning)
            logger.warning(warning)
        return result

    def _report_outcome(self, outcome: AnalysisOutcome, result: PipelineResult) -> None:
        for framework, error in outcome.skipped_frameworks.items():
            result.errors.append(f"{framework.value} skipped: {error.message}")
        for error in outcome.rule_errors:
            result.warnings.append(f"Rule '{error.rule_id}' skipped: {error.message}")
        result.metadata["skipped_frameworks"] = [f.value for f in outcome.skipped_frameworks]

    def _record_analysis(self, outcome: AnalysisOutcome, user_id: Optional[str]) -> None:
        analysis = outcome.analysis
        self._audit_logger.log_analysis_completed(
            contract_id=analysis.contract_id,
            overall_score=analysis.overall_compliance_score,
            risk_level=analysis.overall_risk_level.value,
            issue_count=analysis.issue_count,
            frameworks=[s.framework.value for s in analysis.frameworks],
            rule_snapshot_version=outcome.snapshot_version,
            client_id=analysis.client_id,
            user_id=user_id,
        )
        for framework, error in outcome.skipped_frameworks.items():
            self._audit_logger.log_framework_skipped(
                contract_id=analysis.contract_id,
                framework=framework.value,
                reason=error.message,
                client_id=analysis.client_id,
            )
        for error in outcome.rule_errors:
            self._audit_logger.log_rule_compilation_failed(
                rule_id=error.rule_id,
                pattern=error.pattern,
                message=error.message,
                contract_id=analysis.contract_id,
            )

    def _announce_snapshot(self, snapshot: RuleSnapshot, user_id: Optional[str] = None) -> None:
        if not self._audit_logger:
            return
        content = None
        if self.config.enable_version_history:
            content = {
                "version": snapshot.version,
                "rules": [ComplianceSerializer.rule_to_dict(r) for r in snapshot.rules],
            }
        self._audit_logger.log_rule_snapshot_published(
            version=snapshot.version,
            rule_count=len(snapshot),
            frameworks=[f.value for f in snapshot.frameworks()],
            snapshot=content,
            user_id=user_id,
        )

    def _applicable_rules(
        self,
        frameworks: Optional[Iterable[ComplianceFramework]],
        client_id: Optional[str],
        jurisdiction: Optional[str],
        result: PipelineResult,
    ) -> List[ComplianceRule]:
        snapshot = self.repository.snapshot
        rules: Dict[str, ComplianceRule] = {}
        for framework in (list(frameworks) if frameworks else snapshot.frameworks()):
            try:
                for rule in self.repository.active_rules(
                    framework, jurisdiction=jurisdiction, client_id=client_id, snapshot=snapshot
                ):
                    rules[rule.id] = rule
            except ConfigurationMissing as e:
                result.errors.append(f"{framework.value} skipped: {e.message}")
        return [rules[rule_id] for rule_id in sorted(rules)]

    def _update_stats(self, result: PipelineResult) -> None:
        """Update pipeline statistics."""
        with self._stats_lock:
            self.stats.total_executions += 1

            if result.success:
                self.stats.successful_executions += 1
            else:
                self.stats.failed_executions += 1

            self.stats.total_processing_time += result.processing_time
            self.stats.average_processing_time = (
                self.stats.total_processing_time / self.stats.total_executions
            )

    def get_stats(self) -> PipelineStats:
        """Get pipeline execution statistics."""
        return self.stats

    def get_performance_stats(self) -> Dict[str, Dict[str, Any]]:
        """
        Get detailed performance statistics for all operations.

        Returns:
            Dictionary with performance metrics for each operation.
        """
        return self.performance_monitor.get_all_stats()

    def close(self) -> None:
        """Close the pipeline and release resources."""
        if self._owns_rewrite_provider:
            self._rewrite_provider.close()
        if isinstance(self._audit_logger, AuditLogger):
            self._audit_logger.close()
        if self._db_manager:
            self._db_manager.close()
        logger.info("Compliance pipeline closed")
