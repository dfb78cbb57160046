"""Unit tests for the compliance analyzer."""

from contract_compliance.analysis import ComplianceAnalyzer
from contract_compliance.models.compliance import ComplianceConfiguration, ComplianceRule
from contract_compliance.models.enums import ClauseCategory, ComplianceFramework, RiskLevel
from contract_compliance.rules import RuleRepository, default_rules


def make_rule(rule_id, framework=ComplianceFramework.GDPR, risk_level=RiskLevel.MEDIUM, weight=0.3,
              keywords=("personal data",), category=ClauseCategory.DATA_PROTECTION, **kwargs):
    return ComplianceRule(
        id=rule_id,
        framework=framework,
        category=category,
        risk_level=risk_level,
        weight=weight,
        keywords=keywords,
        **kwargs,
    )


SAMPLE_TEXT = (
    "The Supplier will process personal data on behalf of the Customer. "
    "Records may be shared without consent where required by the Supplier."
)


def make_repository():
    return RuleRepository([
        make_rule("gdpr-1"),
        make_rule(
            "gdpr-2",
            risk_level=RiskLevel.CRITICAL,
            weight=1.0,
            keywords=("without consent",),
            category=ClauseCategory.CONSENT_MANAGEMENT,
        ),
        make_rule(
            "hipaa-1",
            framework=ComplianceFramework.HIPAA,
            risk_level=RiskLevel.HIGH,
            weight=0.5,
            keywords=("health information",),
            category=ClauseCategory.HEALTHCARE_PRIVACY,
        ),
    ])


class TestComplianceAnalyzer:
    """Tests for end-to-end contract analysis."""

    def test_analyzes_requested_frameworks(self):
        analyzer = ComplianceAnalyzer(make_repository())
        outcome = analyzer.analyze(
            "c1", "msa.docx", SAMPLE_TEXT,
            frameworks=[ComplianceFramework.GDPR, ComplianceFramework.HIPAA],
        )
        analysis = outcome.analysis

        assert [s.framework for s in analysis.frameworks] == [
            ComplianceFramework.GDPR, ComplianceFramework.HIPAA
        ]
        gdpr, hipaa = analysis.frameworks
        assert gdpr.overall_score == 54
        assert gdpr.risk_level == RiskLevel.HIGH
        assert hipaa.overall_score == 100
        assert analysis.overall_compliance_score == 77
        assert analysis.overall_risk_level == RiskLevel.HIGH
        assert [v.rule_id for v in analysis.critical_issues] == ["gdpr-2"]
        assert [v.rule_id for v in analysis.medium_issues] == ["gdpr-1"]
        assert outcome.snapshot_version == 1

    def test_buckets_partition_all_violations(self):
        analyzer = ComplianceAnalyzer(make_repository())
        analysis = analyzer.analyze("c1", "msa.docx", SAMPLE_TEXT).analysis
        bucketed = analysis.critical_issues + analysis.medium_issues + analysis.low_issues
        assert sorted(v.id for v in bucketed) == sorted(v.id for v in analysis.all_violations)

    def test_defaults_to_all_frameworks_with_rules(self):
        analyzer = ComplianceAnalyzer(make_repository())
        analysis = analyzer.analyze("c1", "msa.docx", SAMPLE_TEXT).analysis
        assert {s.framework for s in analysis.frameworks} == {
            ComplianceFramework.GDPR, ComplianceFramework.HIPAA
        }

    def test_missing_framework_is_skipped(self):
        analyzer = ComplianceAnalyzer(make_repository())
        outcome = analyzer.analyze(
            "c1", "msa.docx", SAMPLE_TEXT,
            frameworks=[ComplianceFramework.GDPR, ComplianceFramework.SOX],
        )
        assert list(outcome.skipped_frameworks) == [ComplianceFramework.SOX]
        assert [s.framework for s in outcome.analysis.frameworks] == [ComplianceFramework.GDPR]

    def test_all_frameworks_missing_gives_clean_analysis(self):
        analyzer = ComplianceAnalyzer(RuleRepository())
        outcome = analyzer.analyze("c1", "msa.docx", SAMPLE_TEXT, frameworks=[ComplianceFramework.SOX])
        assert outcome.analysis.overall_compliance_score == 100
        assert outcome.analysis.overall_risk_level == RiskLevel.LOW
        assert ComplianceFramework.SOX in outcome.skipped_frameworks

    def test_empty_text(self):
        analyzer = ComplianceAnalyzer(make_repository())
        analysis = analyzer.analyze("c1", "empty.docx", "").analysis
        assert analysis.overall_compliance_score == 100
        assert analysis.overall_risk_level == RiskLevel.LOW
        assert analysis.issue_count == 0

    def test_malformed_pattern_reported_not_fatal(self):
        repository = RuleRepository([
            make_rule("good"),
            make_rule("bad", keywords=("records",), patterns=("(unclosed",)),
        ])
        outcome = ComplianceAnalyzer(repository).analyze("c1", "msa.docx", SAMPLE_TEXT)
        assert [e.rule_id for e in outcome.rule_errors] == ["bad"]
        assert [v.rule_id for v in outcome.analysis.all_violations] == ["good"]

    def test_configuration_frameworks_and_jurisdiction(self):
        repository = RuleRepository([
            make_rule("gdpr-global"),
            make_rule("gdpr-de", keywords=("records",), jurisdiction="DE"),
        ])
        configuration = ComplianceConfiguration(
            client_id="acme",
            jurisdiction="de",
            frameworks=[ComplianceFramework.GDPR],
        )
        analysis = ComplianceAnalyzer(repository).analyze(
            "c1", "msa.docx", SAMPLE_TEXT, configuration=configuration
        ).analysis
        assert {v.rule_id for v in analysis.all_violations} == {"gdpr-global", "gdpr-de"}
        assert analysis.jurisdiction == "de"
        assert analysis.client_id == "acme"

    def test_custom_rules_apply_to_configured_client(self):
        repository = make_repository()
        configuration = ComplianceConfiguration(
            client_id="acme",
            frameworks=[ComplianceFramework.GDPR],
            custom_rules=[make_rule("acme-dp", weight=0.1, keywords=("customer",))],
        )
        analyzer = ComplianceAnalyzer(repository)
        analysis = analyzer.analyze("c1", "msa.docx", SAMPLE_TEXT, configuration=configuration).analysis

        rule_ids = {v.rule_id for v in analysis.all_violations}
        # The client rule replaces the global DATA_PROTECTION rule
        assert "acme-dp" in rule_ids
        assert "gdpr-1" not in rule_ids
        assert "gdpr-2" in rule_ids
        # The repository itself is untouched
        assert repository.get_rule("acme-dp") is None

    def test_snapshot_isolated_from_concurrent_publish(self):
        repository = make_repository()
        analyzer = ComplianceAnalyzer(repository)
        first = analyzer.analyze("c1", "msa.docx", SAMPLE_TEXT)
        repository.publish([make_rule("gdpr-1", weight=1.0)])
        second = analyzer.analyze("c1", "msa.docx", SAMPLE_TEXT)
        assert first.snapshot_version == 1
        assert second.snapshot_version == 2
        assert first.analysis.frameworks[0].overall_score != second.analysis.frameworks[0].overall_score

    def test_default_rules_flag_risky_clause(self):
        analyzer = ComplianceAnalyzer(RuleRepository(default_rules()))
        outcome = analyzer.analyze(
            "c1", "dpa.docx",
            "Personal data will be retained indefinitely and may be processed without consent.",
            frameworks=[ComplianceFramework.GDPR],
        )
        rule_ids = {v.rule_id for v in outcome.analysis.all_violations}
        assert {"gdpr-data-retention", "gdpr-lawful-basis", "gdpr-data-subject-rights"} <= rule_ids
        assert outcome.analysis.overall_risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL)
