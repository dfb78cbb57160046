"""Per-contract compliance analysis.

Wires the rule repository, clause evaluator, scorer and aggregator into one
call. A framework without a configured rule set is skipped and reported; it
never aborts the analysis of the other frameworks.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..exceptions import ConfigurationMissing, RuleCompilationError
from ..models.compliance import ComplianceConfiguration, ComplianceScore, ContractComplianceAnalysis
from ..models.enums import ComplianceFramework
from ..rules.repository import RuleRepository, RuleSnapshot
from .aggregator import AnalysisAggregator
from .evaluator import ClauseEvaluator
from .scorer import ComplianceScorer


logger = logging.getLogger(__name__)


@dataclass
class AnalysisOutcome:
    """Analysis of one contract plus the non-fatal problems met on the way."""
    analysis: ContractComplianceAnalysis
    skipped_frameworks: Dict[ComplianceFramework, ConfigurationMissing] = field(default_factory=dict)
    rule_errors: List[RuleCompilationError] = field(default_factory=list)
    snapshot_version: int = 0


class ComplianceAnalyzer:
    """Runs the evaluate, score and aggregate steps for each requested framework."""

    def __init__(
        self,
        repository: RuleRepository,
        evaluator: Optional[ClauseEvaluator] = None,
        scorer: Optional[ComplianceScorer] = None,
        aggregator: Optional[AnalysisAggregator] = None,
    ):
        self.repository = repository
        self.evaluator = evaluator or ClauseEvaluator()
        self.scorer = scorer or ComplianceScorer()
        self.aggregator = aggregator or AnalysisAggregator()

    def analyze(
        self,
        contract_id: str,
        document_name: str,
        text: str,
        configuration: Optional[ComplianceConfiguration] = None,
        frameworks: Optional[Iterable[ComplianceFramework]] = None,
        jurisdiction: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> AnalysisOutcome:
        """
        Analyse a contract's text.

        Args:
            contract_id: ID of the contract.
            document_name: Name of the document being analysed.
            text: Full contract or clause text.
            configuration: Client configuration (frameworks, thresholds, custom rules).
            frameworks: Frameworks to evaluate; overrides the configuration's list.
                When neither is given, every framework with a global rule set is used.
            jurisdiction: Overrides the configuration's jurisdiction.
            client_id: Overrides the configuration's client.

        Returns:
            AnalysisOutcome holding the aggregated analysis.
        """
        configuration = configuration or ComplianceConfiguration()
        jurisdiction = jurisdiction if jurisdiction is not None else configuration.jurisdiction
        client_id = client_id if client_id is not None else configuration.client_id

        snapshot = self._effective_snapshot(configuration)
        requested = self._requested_frameworks(frameworks, configuration, snapshot)

        outcome_errors: List[RuleCompilationError] = []
        skipped: Dict[ComplianceFramework, ConfigurationMissing] = {}
        scores: List[ComplianceScore] = []

        for framework in requested:
            try:
                rules = self.repository.active_rules(
                    framework, jurisdiction=jurisdiction, client_id=client_id, snapshot=snapshot
                )
            except ConfigurationMissing as e:
                logger.warning(f"Skipping framework {framework.value} for contract {contract_id}: {e.message}")
                skipped[framework] = e
                continue

            evaluation = self.evaluator.evaluate_detailed(text, rules)
            outcome_errors.extend(evaluation.rule_errors)
            scores.append(
                self.scorer.score(evaluation.violations, rules, configuration, framework=framework)
            )

        analysis = self.aggregator.aggregate(
            contract_id=contract_id,
            document_name=document_name,
            scores=scores,
            jurisdiction=jurisdiction,
            client_id=client_id,
            configuration=configuration,
        )
        logger.info(
            f"Analysed contract {contract_id}: score {analysis.overall_compliance_score}, "
            f"risk {analysis.overall_risk_level.value}, {analysis.issue_count} issues, "
            f"{len(skipped)} frameworks skipped"
        )
        return AnalysisOutcome(
            analysis=analysis,
            skipped_frameworks=skipped,
            rule_errors=outcome_errors,
            snapshot_version=snapshot.version,
        )

    def _effective_snapshot(self, configuration: ComplianceConfiguration) -> RuleSnapshot:
        """Current snapshot, extended with the configuration's custom rules."""
        snapshot = self.repository.snapshot
        if not configuration.custom_rules:
            return snapshot

        merged = {rule.id: rule for rule in snapshot.rules}
        for rule in configuration.custom_rules:
            if rule.client_id is None and configuration.client_id is not None:
                rule = dataclasses.replace(rule, client_id=configuration.client_id)
            merged[rule.id] = rule
        return RuleSnapshot(
            version=snapshot.version,
            rules=tuple(sorted(merged.values(), key=lambda r: r.id)),
            published_at=snapshot.published_at,
        )

    @staticmethod
    def _requested_frameworks(
        frameworks: Optional[Iterable[ComplianceFramework]],
        configuration: ComplianceConfiguration,
        snapshot: RuleSnapshot,
    ) -> List[ComplianceFramework]:
        if frameworks is not None:
            candidates = list(frameworks)
        elif configuration.frameworks:
            candidates = list(configuration.frameworks)
        else:
            candidates = snapshot.frameworks()
        ordered: List[ComplianceFramework] = []
        for framework in candidates:
            if framework not in ordered:
                ordered.append(framework)
        return ordered
