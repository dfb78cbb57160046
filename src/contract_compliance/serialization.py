"""Conversion of engine structures to and from plain dictionaries.

Dictionaries use camelCase keys and enum wire values, so they can be
exchanged with existing clients and stored as JSON configuration.
"""

import json
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .models.analytics import (
    AnalyticsPeriod,
    ClientRiskBreakdown,
    Contract,
    RiskAnalytics,
    RiskBreakdown,
    RiskMitigation,
    RiskTrendPoint,
)
from .models.compliance import (
    ComplianceConfiguration,
    ComplianceRule,
    ComplianceScore,
    ComplianceViolation,
    ContractComplianceAnalysis,
)
from .models.enums import (
    ClauseCategory,
    ComplianceFramework,
    ContractStatus,
    ContractType,
    RiskLevel,
    SuggestionSource,
    SuggestionStatus,
    SuggestionType,
    TemplateStatus,
)
from .models.suggestion import (
    ClauseComparison,
    ClauseSuggestion,
    ClauseTemplate,
    ClauseTemplateMatch,
    SmartSuggestionRequest,
)


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_dt(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    raise ValueError(f"Expected ISO-8601 timestamp, got {value!r}")


def _require(data: Dict[str, Any], fields: List[str], kind: str) -> None:
    if not isinstance(data, dict):
        raise ValueError(f"Expected dictionary for {kind}")
    for name in fields:
        if name not in data:
            raise ValueError(f"Missing required field '{name}' in {kind}")


def _distribution_to_dict(distribution: Dict[RiskLevel, int]) -> Dict[str, int]:
    return {level.value: distribution.get(level, 0) for level in RiskLevel}


class ComplianceSerializer:
    """
    Converts compliance, analytics and suggestion structures to dictionaries.

    ``*_from_dict`` methods raise ValueError for missing required fields and
    unknown enum values.
    """

    # Rules, violations and analyses

    @staticmethod
    def rule_to_dict(rule: ComplianceRule) -> Dict[str, Any]:
        return {
            "id": rule.id,
            "framework": rule.framework.value,
            "category": rule.category.value,
            "name": rule.name,
            "description": rule.description,
            "riskLevel": rule.risk_level.value,
            "keywords": list(rule.keywords),
            "patterns": list(rule.patterns),
            "weight": rule.weight,
            "suggestedAction": rule.suggested_action,
            "recommendedLanguage": rule.recommended_language,
            "jurisdiction": rule.jurisdiction,
            "clientId": rule.client_id,
            "isActive": rule.is_active,
        }

    @staticmethod
    def rule_from_dict(data: Dict[str, Any]) -> ComplianceRule:
        _require(data, ["id", "framework", "category", "riskLevel", "weight"], "ComplianceRule")
        return ComplianceRule(
            id=data["id"],
            framework=ComplianceFramework(data["framework"]),
            category=ClauseCategory(data["category"]),
            risk_level=RiskLevel(data["riskLevel"]),
            weight=float(data["weight"]),
            keywords=tuple(data.get("keywords") or ()),
            patterns=tuple(data.get("patterns") or ()),
            name=data.get("name", ""),
            description=data.get("description", ""),
            suggested_action=data.get("suggestedAction", ""),
            recommended_language=data.get("recommendedLanguage"),
            jurisdiction=data.get("jurisdiction"),
            client_id=data.get("clientId"),
            is_active=data.get("isActive", True),
        )

    @staticmethod
    def violation_to_dict(violation: ComplianceViolation) -> Dict[str, Any]:
        return {
            "id": violation.id,
            "ruleId": violation.rule_id,
            "ruleName": violation.rule_name,
            "clauseId": violation.clause_id,
            "framework": violation.framework.value if violation.framework else None,
            "category": violation.category.value if violation.category else None,
            "severity": violation.severity.value,
            "description": violation.description,
            "explanation": violation.explanation,
            "suggestedAction": violation.suggested_action,
            "detectedAt": _dt(violation.detected_at),
            "isResolved": violation.is_resolved,
            "resolvedAt": _dt(violation.resolved_at),
            "resolvedBy": violation.resolved_by,
        }

    @staticmethod
    def violation_from_dict(data: Dict[str, Any]) -> ComplianceViolation:
        _require(data, ["id", "ruleId", "clauseId", "severity"], "ComplianceViolation")
        return ComplianceViolation(
            id=data["id"],
            rule_id=data["ruleId"],
            clause_id=data["clauseId"],
            severity=RiskLevel(data["severity"]),
            description=data.get("description", ""),
            explanation=data.get("explanation", ""),
            suggested_action=data.get("suggestedAction", ""),
            framework=ComplianceFramework(data["framework"]) if data.get("framework") else None,
            category=ClauseCategory(data["category"]) if data.get("category") else None,
            rule_name=data.get("ruleName", ""),
            detected_at=_parse_dt(data.get("detectedAt")) or datetime.utcnow(),
            is_resolved=data.get("isResolved", False),
            resolved_at=_parse_dt(data.get("resolvedAt")),
            resolved_by=data.get("resolvedBy"),
        )

    @staticmethod
    def score_to_dict(score: ComplianceScore) -> Dict[str, Any]:
        return {
            "framework": score.framework.value,
            "overallScore": score.overall_score,
            "riskLevel": score.risk_level.value,
            "violations": [ComplianceSerializer.violation_to_dict(v) for v in score.violations],
            "recommendations": list(score.recommendations),
            "lastUpdated": _dt(score.last_updated),
        }

    @staticmethod
    def score_from_dict(data: Dict[str, Any]) -> ComplianceScore:
        _require(data, ["framework", "overallScore", "riskLevel"], "ComplianceScore")
        return ComplianceScore(
            framework=ComplianceFramework(data["framework"]),
            overall_score=data["overallScore"],
            risk_level=RiskLevel(data["riskLevel"]),
            violations=[ComplianceSerializer.violation_from_dict(v) for v in data.get("violations", [])],
            recommendations=list(data.get("recommendations", [])),
            last_updated=_parse_dt(data.get("lastUpdated")) or datetime.utcnow(),
        )

    @staticmethod
    def analysis_to_dict(analysis: ContractComplianceAnalysis) -> Dict[str, Any]:
        to_dict = ComplianceSerializer.violation_to_dict
        return {
            "contractId": analysis.contract_id,
            "documentName": analysis.document_name,
            "frameworks": [ComplianceSerializer.score_to_dict(s) for s in analysis.frameworks],
            "overallRiskLevel": analysis.overall_risk_level.value,
            "overallComplianceScore": analysis.overall_compliance_score,
            "criticalIssues": [to_dict(v) for v in analysis.critical_issues],
            "mediumIssues": [to_dict(v) for v in analysis.medium_issues],
            "lowIssues": [to_dict(v) for v in analysis.low_issues],
            "autoTags": list(analysis.auto_tags),
            "jurisdiction": analysis.jurisdiction,
            "clientId": analysis.client_id,
            "analyzedAt": _dt(analysis.analyzed_at),
        }

    @staticmethod
    def analysis_from_dict(data: Dict[str, Any]) -> ContractComplianceAnalysis:
        _require(data, ["contractId", "overallRiskLevel"], "ContractComplianceAnalysis")
        from_dict = ComplianceSerializer.violation_from_dict
        return ContractComplianceAnalysis(
            contract_id=data["contractId"],
            document_name=data.get("documentName", ""),
            frameworks=[ComplianceSerializer.score_from_dict(s) for s in data.get("frameworks", [])],
            overall_risk_level=RiskLevel(data["overallRiskLevel"]),
            overall_compliance_score=data.get("overallComplianceScore", 100),
            critical_issues=[from_dict(v) for v in data.get("criticalIssues", [])],
            medium_issues=[from_dict(v) for v in data.get("mediumIssues", [])],
            low_issues=[from_dict(v) for v in data.get("lowIssues", [])],
            auto_tags=list(data.get("autoTags", [])),
            jurisdiction=data.get("jurisdiction"),
            client_id=data.get("clientId"),
            analyzed_at=_parse_dt(data.get("analyzedAt")) or datetime.utcnow(),
        )

    @staticmethod
    def configuration_to_dict(configuration: ComplianceConfiguration) -> Dict[str, Any]:
        return {
            "id": configuration.id,
            "clientId": configuration.client_id,
            "jurisdiction": configuration.jurisdiction,
            "frameworks": [f.value for f in configuration.frameworks],
            "customRules": [ComplianceSerializer.rule_to_dict(r) for r in configuration.custom_rules],
            "riskThresholds": {
                level.value: value for level, value in configuration.risk_thresholds.items()
            },
            "autoTaggingEnabled": configuration.auto_tagging_enabled,
            "maxAutoTags": configuration.max_auto_tags,
            "notificationSettings": dict(configuration.notification_settings),
        }

    @staticmethod
    def configuration_from_dict(data: Dict[str, Any]) -> ComplianceConfiguration:
        _require(data, [], "ComplianceConfiguration")
        thresholds = {
            RiskLevel(level): float(value)
            for level, value in (data.get("riskThresholds") or {}).items()
        }
        return ComplianceConfiguration(
            id=data.get("id", "default"),
            client_id=data.get("clientId"),
            jurisdiction=data.get("jurisdiction"),
            frameworks=[ComplianceFramework(f) for f in data.get("frameworks", [])],
            custom_rules=[ComplianceSerializer.rule_from_dict(r) for r in data.get("customRules", [])],
            risk_thresholds=thresholds,
            auto_tagging_enabled=data.get("autoTaggingEnabled", True),
            max_auto_tags=data.get("maxAutoTags"),
            notification_settings=dict(data.get("notificationSettings") or {}),
        )

    # Analytics

    @staticmethod
    def contract_to_dict(contract: Contract) -> Dict[str, Any]:
        return {
            "id": contract.id,
            "clientId": contract.client_id,
            "name": contract.name,
            "contractType": contract.contract_type.value,
            "status": contract.status.value,
            "value": contract.value,
            "currency": contract.currency,
        }

    @staticmethod
    def contract_from_dict(data: Dict[str, Any]) -> Contract:
        _require(data, ["id", "clientId"], "Contract")
        return Contract(
            id=data["id"],
            client_id=data["clientId"],
            name=data.get("name", ""),
            contract_type=ContractType(data.get("contractType", ContractType.CUSTOM.value)),
            status=ContractStatus(data.get("status", ContractStatus.DRAFT.value)),
            value=data.get("value"),
            currency=data.get("currency"),
        )

    @staticmethod
    def period_from_dict(data: Dict[str, Any]) -> AnalyticsPeriod:
        _require(data, ["start", "end"], "AnalyticsPeriod")
        return AnalyticsPeriod(
            start=_parse_dt(data["start"]),
            end=_parse_dt(data["end"]),
            label=data.get("label", ""),
        )

    @staticmethod
    def breakdown_to_dict(breakdown: RiskBreakdown) -> Dict[str, Any]:
        result = {
            "total": breakdown.count,
            "riskDistribution": _distribution_to_dict(breakdown.risk_distribution),
            "averageRiskScore": breakdown.average_risk_score,
        }
        if isinstance(breakdown, ClientRiskBreakdown):
            result["totalContracts"] = result.pop("total")
            result["riskTrend"] = breakdown.trend.value
        return result

    @staticmethod
    def mitigation_to_dict(mitigation: RiskMitigation) -> Dict[str, Any]:
        return {
            "totalViolations": mitigation.total_violations,
            "resolvedViolations": mitigation.resolved_violations,
            "mitigationEffectiveness": mitigation.effectiveness,
            "contractsWithMitigation": mitigation.contracts_with_mitigation,
            "commonRiskFactors": list(mitigation.common_risk_factors),
            "recommendedActions": list(mitigation.recommended_actions),
        }

    @staticmethod
    def trend_point_to_dict(point: RiskTrendPoint) -> Dict[str, Any]:
        result: Dict[str, Any] = {"date": point.day.isoformat()}
        for level in RiskLevel:
            result[level.value.lower()] = point.counts.get(level, 0)
        return result

    @staticmethod
    def risk_analytics_to_dict(analytics: RiskAnalytics) -> Dict[str, Any]:
        period = analytics.period
        return {
            "period": period.label or f"{period.start.date().isoformat()}/{period.end.date().isoformat()}",
            "periodStart": _dt(period.start),
            "periodEnd": _dt(period.end),
            "totalContracts": analytics.total_contracts,
            "riskDistribution": _distribution_to_dict(analytics.risk_distribution),
            "riskTrends": [ComplianceSerializer.trend_point_to_dict(p) for p in analytics.risk_trends],
            "riskByContractType": {
                contract_type.value: ComplianceSerializer.breakdown_to_dict(breakdown)
                for contract_type, breakdown in analytics.risk_by_contract_type.items()
            },
            "riskByClient": {
                client_id: ComplianceSerializer.breakdown_to_dict(breakdown)
                for client_id, breakdown in analytics.risk_by_client.items()
            },
            "riskMitigation": ComplianceSerializer.mitigation_to_dict(analytics.risk_mitigation),
            "averageRiskScore": analytics.average_risk_score,
            "generatedAt": _dt(analytics.generated_at),
        }

    # Suggestions and templates

    @staticmethod
    def suggestion_to_dict(suggestion: ClauseSuggestion) -> Dict[str, Any]:
        return {
            "id": suggestion.id,
            "originalClause": suggestion.original_clause,
            "suggestedClause": suggestion.suggested_clause,
            "suggestionType": suggestion.suggestion_type.value,
            "title": suggestion.title,
            "description": suggestion.description,
            "reasoning": suggestion.reasoning,
            "benefits": list(suggestion.benefits),
            "risks": list(suggestion.risks),
            "complianceImprovements": list(suggestion.compliance_improvements),
            "confidence": suggestion.confidence,
            "source": suggestion.source.value,
            "suggestedBy": suggestion.suggested_by,
            "createdAt": _dt(suggestion.created_at),
            "status": suggestion.status.value,
            "isAccepted": suggestion.status == SuggestionStatus.ACCEPTED,
            "acceptedAt": _dt(suggestion.accepted_at),
            "acceptedBy": suggestion.accepted_by,
            "rejectionReason": suggestion.rejection_reason,
            "relatedTemplateId": suggestion.related_template_id,
        }

    @staticmethod
    def suggestion_from_dict(data: Dict[str, Any]) -> ClauseSuggestion:
        _require(
            data,
            ["id", "originalClause", "suggestedClause", "suggestionType", "confidence"],
            "ClauseSuggestion",
        )
        status = data.get("status")
        if status is None:
            status = SuggestionStatus.ACCEPTED.value if data.get("isAccepted") else SuggestionStatus.PENDING.value
        return ClauseSuggestion(
            id=data["id"],
            original_clause=data["originalClause"],
            suggested_clause=data["suggestedClause"],
            suggestion_type=SuggestionType(data["suggestionType"]),
            confidence=float(data["confidence"]),
            source=SuggestionSource(data.get("source", SuggestionSource.AI_ANALYSIS.value)),
            title=data.get("title", ""),
            description=data.get("description", ""),
            reasoning=data.get("reasoning", ""),
            benefits=list(data.get("benefits", [])),
            risks=list(data.get("risks", [])),
            compliance_improvements=list(data.get("complianceImprovements", [])),
            suggested_by=data.get("suggestedBy", "system"),
            created_at=_parse_dt(data.get("createdAt")) or datetime.utcnow(),
            status=SuggestionStatus(status),
            accepted_by=data.get("acceptedBy"),
            accepted_at=_parse_dt(data.get("acceptedAt")),
            rejection_reason=data.get("rejectionReason"),
            related_template_id=data.get("relatedTemplateId"),
        )

    @staticmethod
    def request_to_dict(request: SmartSuggestionRequest) -> Dict[str, Any]:
        return {
            "originalClause": request.original_clause,
            "context": request.context,
            "category": request.category.value if request.category else None,
            "complianceFrameworks": [f.value for f in request.compliance_frameworks],
            "jurisdiction": request.jurisdiction,
            "clientId": request.client_id,
            "riskLevel": request.risk_level.value if request.risk_level else None,
            "desiredImprovements": [t.value for t in request.desired_improvements],
            "excludeTemplates": list(request.exclude_templates),
            "maxSuggestions": request.max_suggestions,
            "timeoutSeconds": request.timeout_seconds,
        }

    @staticmethod
    def request_from_dict(data: Dict[str, Any]) -> SmartSuggestionRequest:
        _require(data, ["originalClause"], "SmartSuggestionRequest")
        return SmartSuggestionRequest(
            original_clause=data["originalClause"],
            context=data.get("context") or "",
            category=ClauseCategory(data["category"]) if data.get("category") else None,
            compliance_frameworks=[ComplianceFramework(f) for f in data.get("complianceFrameworks") or []],
            jurisdiction=data.get("jurisdiction"),
            client_id=data.get("clientId"),
            risk_level=RiskLevel(data["riskLevel"]) if data.get("riskLevel") else None,
            desired_improvements=[SuggestionType(t) for t in data.get("desiredImprovements") or []],
            exclude_templates=list(data.get("excludeTemplates") or []),
            max_suggestions=data.get("maxSuggestions", 5),
            timeout_seconds=data.get("timeoutSeconds"),
        )

    @staticmethod
    def template_to_dict(template: ClauseTemplate) -> Dict[str, Any]:
        return {
            "id": template.id,
            "title": template.title,
            "content": template.content,
            "category": template.category.value,
            "description": template.description,
            "tags": list(template.tags),
            "status": template.status.value,
            "riskLevel": template.risk_level.value,
            "complianceFrameworks": [f.value for f in template.compliance_frameworks],
            "jurisdiction": template.jurisdiction,
            "language": template.language,
            "usageCount": template.usage_count,
            "metadata": dict(template.metadata),
        }

    @staticmethod
    def template_from_dict(data: Dict[str, Any]) -> ClauseTemplate:
        _require(data, ["id", "title", "content"], "ClauseTemplate")
        return ClauseTemplate(
            id=data["id"],
            title=data["title"],
            content=data["content"],
            category=ClauseCategory(data.get("category", ClauseCategory.OTHER.value)),
            description=data.get("description", ""),
            tags=list(data.get("tags", [])),
            status=TemplateStatus(data.get("status", TemplateStatus.APPROVED.value)),
            risk_level=RiskLevel(data.get("riskLevel", RiskLevel.LOW.value)),
            compliance_frameworks=[ComplianceFramework(f) for f in data.get("complianceFrameworks", [])],
            jurisdiction=data.get("jurisdiction"),
            language=data.get("language", "en"),
            usage_count=data.get("usageCount", 0),
            metadata=dict(data.get("metadata") or {}),
        )

    @staticmethod
    def template_match_to_dict(match: ClauseTemplateMatch) -> Dict[str, Any]:
        return {
            "template": ComplianceSerializer.template_to_dict(match.template),
            "similarity": match.similarity,
            "matchingSections": [
                {"start": s.start, "end": s.end, "content": s.content}
                for s in match.matching_sections
            ],
            "suggestedModifications": list(match.suggested_modifications),
        }

    @staticmethod
    def comparison_to_dict(comparison: ClauseComparison) -> Dict[str, Any]:
        return {
            "originalClause": comparison.original_clause,
            "suggestedClause": comparison.suggested_clause,
            "differences": [
                {
                    "type": d.type.value,
                    "originalText": d.original_text,
                    "modifiedText": d.suggested_text,
                    "position": d.position,
                    "description": d.explanation,
                }
                for d in comparison.differences
            ],
            "overallScore": comparison.overall_score,
            "improvements": list(comparison.improvements),
            "concerns": list(comparison.concerns),
            "recommendation": comparison.recommendation.value,
        }


def dumps(data: Dict[str, Any]) -> str:
    """JSON-encode a serialized structure."""
    return json.dumps(data, ensure_ascii=False, indent=2, default=_json_default)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
