"""Unit tests for dictionary serialization of engine structures."""

import json
from datetime import datetime

import pytest

from contract_compliance.analytics import AnalyticsEngine
from contract_compliance.models.analytics import AnalyticsPeriod
from contract_compliance.models.compliance import ComplianceViolation, ContractComplianceAnalysis
from contract_compliance.models.enums import (
    ClauseCategory,
    ComplianceFramework,
    ContractType,
    RiskLevel,
    SuggestionStatus,
    SuggestionType,
)
from contract_compliance.serialization import ComplianceSerializer, dumps


class TestRuleSerialization:
    """Tests for rule dictionaries."""

    def test_rule_uses_camel_case_and_wire_values(self):
        rule = ComplianceSerializer.rule_from_dict({
            "id": "pci-001",
            "framework": "PCI-DSS",
            "category": "SECURITY_REQUIREMENTS",
            "riskLevel": "CRITICAL",
            "weight": 1,
            "keywords": ["card number"],
            "recommendedLanguage": "Card data is tokenised.",
        })
        assert rule.framework == ComplianceFramework.PCI_DSS
        assert rule.weight == 1.0

        data = ComplianceSerializer.rule_to_dict(rule)
        assert data["framework"] == "PCI-DSS"
        assert data["riskLevel"] == "CRITICAL"
        assert data["recommendedLanguage"] == "Card data is tokenised."
        assert data["isActive"] is True

    def test_missing_field(self):
        with pytest.raises(ValueError, match="weight"):
            ComplianceSerializer.rule_from_dict({
                "id": "x", "framework": "GDPR", "category": "OTHER", "riskLevel": "LOW",
            })

    def test_unknown_enum_value(self):
        with pytest.raises(ValueError):
            ComplianceSerializer.rule_from_dict({
                "id": "x", "framework": "GDPR", "category": "OTHER", "riskLevel": "SEVERE",
                "weight": 0.1, "keywords": ["x"],
            })


class TestAnalysisSerialization:
    """Tests for analysis dictionaries."""

    def test_analysis_round_trip(self):
        violation = ComplianceViolation(
            id="violation_gdpr-1_document",
            rule_id="gdpr-1",
            clause_id="document",
            severity=RiskLevel.CRITICAL,
            description="Missing lawful basis",
            explanation="Matched 'without consent'",
            suggested_action="Add a lawful basis",
            framework=ComplianceFramework.GDPR,
            category=ClauseCategory.CONSENT_MANAGEMENT,
            detected_at=datetime(2024, 1, 2, 3, 4, 5),
        )
        analysis = ContractComplianceAnalysis(
            contract_id="c1",
            document_name="msa.docx",
            overall_risk_level=RiskLevel.CRITICAL,
            overall_compliance_score=35,
            critical_issues=[violation],
            auto_tags=["CONSENT_MANAGEMENT"],
            analyzed_at=datetime(2024, 1, 2, 3, 4, 5),
        )

        data = ComplianceSerializer.analysis_to_dict(analysis)

        assert data["overallRiskLevel"] == "CRITICAL"
        assert data["criticalIssues"][0]["ruleId"] == "gdpr-1"
        assert data["analyzedAt"] == "2024-01-02T03:04:05"
        assert ComplianceSerializer.analysis_from_dict(data) == analysis

    def test_dumps_is_json(self):
        analysis = ContractComplianceAnalysis(
            contract_id="c1", document_name="", overall_risk_level=RiskLevel.LOW,
        )
        decoded = json.loads(dumps(ComplianceSerializer.analysis_to_dict(analysis)))
        assert decoded["contractId"] == "c1"


class TestAnalyticsSerialization:
    """Tests for risk analytics dictionaries."""

    def test_risk_analytics_layout(self):
        period = AnalyticsPeriod(start=datetime(2024, 1, 1), end=datetime(2024, 1, 31), label="Jan")
        analysis = ContractComplianceAnalysis(
            contract_id="c1",
            document_name="",
            overall_risk_level=RiskLevel.HIGH,
            client_id="acme",
            analyzed_at=datetime(2024, 1, 10),
        )
        analytics = AnalyticsEngine().compute_risk_analytics([analysis], [], period)

        data = ComplianceSerializer.risk_analytics_to_dict(analytics)

        assert data["period"] == "Jan"
        assert data["totalContracts"] == 1
        assert data["riskDistribution"] == {"LOW": 0, "MEDIUM": 0, "HIGH": 1, "CRITICAL": 0}
        assert data["riskTrends"] == [{"date": "2024-01-10", "low": 0, "medium": 0, "high": 1, "critical": 0}]
        assert data["riskByContractType"][ContractType.CUSTOM.value]["total"] == 1
        client = data["riskByClient"]["acme"]
        assert client["totalContracts"] == 1
        assert client["riskTrend"] == "STABLE"
        assert data["riskMitigation"]["mitigationEffectiveness"] == 0.0
        assert data["averageRiskScore"] == 75.0

    def test_period_from_dict(self):
        period = ComplianceSerializer.period_from_dict({
            "start": "2024-01-01T00:00:00Z", "end": "2024-02-01T00:00:00Z",
        })
        assert period.start.year == 2024
        assert period.end.month == 2


class TestSuggestionSerialization:
    """Tests for suggestion and request dictionaries."""

    def test_request_from_dict(self):
        request = ComplianceSerializer.request_from_dict({
            "originalClause": "Data may be shared.",
            "complianceFrameworks": ["GDPR"],
            "desiredImprovements": ["CLARITY", "COMPLIANCE"],
            "maxSuggestions": 3,
        })
        assert request.compliance_frameworks == [ComplianceFramework.GDPR]
        assert request.desired_improvements == [SuggestionType.CLARITY, SuggestionType.COMPLIANCE]
        assert request.max_suggestions == 3

    def test_request_requires_clause(self):
        with pytest.raises(ValueError):
            ComplianceSerializer.request_from_dict({"context": "MSA"})

    def test_legacy_is_accepted_flag(self):
        suggestion = ComplianceSerializer.suggestion_from_dict({
            "id": "s1",
            "originalClause": "a",
            "suggestedClause": "b",
            "suggestionType": "CLARITY",
            "confidence": 0.7,
            "isAccepted": True,
        })
        assert suggestion.status == SuggestionStatus.ACCEPTED
        assert ComplianceSerializer.suggestion_to_dict(suggestion)["isAccepted"] is True
