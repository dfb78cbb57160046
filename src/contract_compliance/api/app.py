"""FastAPI application for the contract compliance engine.

This module exposes a small HTTP API around CompliancePipeline. Request and
response bodies use the camelCase layout produced by ComplianceSerializer.

Usage (from project root, after installing fastapi and uvicorn):

    uvicorn contract_compliance.api.app:app --reload

Then POST a JSON body with `contractId` and `text` to /api/analyze.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from ..models.enums import ComplianceFramework
from ..pipeline import CompliancePipeline, PipelineConfig, PipelineResult
from ..serialization import ComplianceSerializer


logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "y"}


def _get_use_embedding_from_env() -> bool:
    """Determine whether to enable the embedding model based on environment.

    Uses COMPLIANCE_USE_EMBEDDING. Accepted truthy values: "1", "true",
    "yes", "y" (case-insensitive). If not set, defaults to False.
    """
    value = os.getenv("COMPLIANCE_USE_EMBEDDING")
    if value is None:
        return False
    return value.strip().lower() in TRUTHY


def config_from_env() -> PipelineConfig:
    """Build the pipeline configuration from environment variables."""
    return PipelineConfig(
        use_embedding_model=_get_use_embedding_from_env(),
        rewrite_provider_url=os.getenv("COMPLIANCE_REWRITE_URL") or None,
        rewrite_model=os.getenv("COMPLIANCE_REWRITE_MODEL", "llama3.1:8b"),
        config_dir=os.getenv("COMPLIANCE_CONFIG_DIR") or None,
        enable_audit_logging=os.getenv("COMPLIANCE_AUDIT", "").strip().lower() in TRUTHY,
    )


def _frameworks(values) -> Optional[list]:
    if not values:
        return None
    return [ComplianceFramework(v) for v in values]


def _envelope(result: PipelineResult) -> Dict[str, Any]:
    return {
        "success": result.success,
        "processing_time": result.processing_time,
        "errors": result.errors,
        "warnings": result.warnings,
    }


def create_app(pipeline: Optional[CompliancePipeline] = None) -> FastAPI:
    """
    Create the API application.

    Args:
        pipeline: Pipeline to serve. Built from environment variables on
            first use when not provided; a pipeline built here is closed
            on shutdown.
    """
    owns_pipeline = pipeline is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_pipeline and app.state.pipeline is not None:
            app.state.pipeline.close()

    app = FastAPI(title="Contract Compliance API", version="0.1.0", lifespan=lifespan)
    app.state.pipeline = pipeline

    def get_pipeline(request: Request) -> CompliancePipeline:
        if request.app.state.pipeline is None:
            request.app.state.pipeline = CompliancePipeline(config=config_from_env())
        return request.app.state.pipeline

    @app.get("/api/health")
    async def health(request: Request) -> JSONResponse:
        """Report the published rule snapshot."""
        snapshot = get_pipeline(request).repository.snapshot
        return JSONResponse(
            status_code=200,
            content={
                "status": "ok",
                "ruleSnapshotVersion": snapshot.version,
                "ruleCount": len(snapshot),
                "frameworks": [f.value for f in snapshot.frameworks()],
            },
        )

    @app.post("/api/analyze")
    async def analyze(request: Request, payload: Dict[str, Any] = Body(...)) -> JSONResponse:
        """Analyse one contract.

        Body fields: `contractId` and `text` (required), `documentName`,
        `clientId`, `jurisdiction`, `frameworks`, `configuration`, `contract`.
        """
        try:
            contract_id = payload["contractId"]
            text = payload["text"]
            frameworks = _frameworks(payload.get("frameworks"))
            configuration = (
                ComplianceSerializer.configuration_from_dict(payload["configuration"])
                if payload.get("configuration") else None
            )
            contract = (
                ComplianceSerializer.contract_from_dict(payload["contract"])
                if payload.get("contract") else None
            )
        except (KeyError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"Invalid analysis request: {exc}") from exc

        result = get_pipeline(request).analyze_contract(
            contract_id=contract_id,
            text=text,
            document_name=payload.get("documentName", ""),
            client_id=payload.get("clientId"),
            jurisdiction=payload.get("jurisdiction"),
            frameworks=frameworks,
            configuration=configuration,
            contract=contract,
            user_id=payload.get("userId"),
        )

        response_payload = _envelope(result)
        if result.analysis is not None:
            response_payload["analysis"] = ComplianceSerializer.analysis_to_dict(result.analysis)
            response_payload["skippedFrameworks"] = result.metadata.get("skipped_frameworks", [])
        return JSONResponse(status_code=200, content=response_payload)

    @app.post("/api/analytics/risk")
    async def risk_analytics(request: Request, payload: Dict[str, Any] = Body(...)) -> JSONResponse:
        """Compute portfolio risk analytics for a period.

        Uses the analyses kept by the server unless `analyses` is given.
        Contracts in `contracts` are registered before computing.
        """
        pipeline = get_pipeline(request)
        try:
            period = ComplianceSerializer.period_from_dict(payload["period"])
            contracts = [
                ComplianceSerializer.contract_from_dict(c) for c in payload.get("contracts") or []
            ]
            analyses = (
                [ComplianceSerializer.analysis_from_dict(a) for a in payload["analyses"]]
                if payload.get("analyses") is not None else None
            )
        except (KeyError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"Invalid analytics request: {exc}") from exc

        if contracts:
            pipeline.register_contracts(contracts)
        result = pipeline.compute_risk_analytics(period, analyses=analyses)

        response_payload = _envelope(result)
        if result.risk_analytics is not None:
            response_payload["analytics"] = ComplianceSerializer.risk_analytics_to_dict(
                result.risk_analytics
            )
        return JSONResponse(status_code=200, content=response_payload)

    @app.post("/api/suggestions")
    async def suggestions(request: Request, payload: Dict[str, Any] = Body(...)) -> JSONResponse:
        """Generate clause suggestions for a SmartSuggestionRequest body."""
        try:
            suggestion_request = ComplianceSerializer.request_from_dict(payload)
        except (KeyError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"Invalid suggestion request: {exc}") from exc

        result = get_pipeline(request).generate_suggestions(
            suggestion_request,
            contract_id=payload.get("contractId"),
            user_id=payload.get("userId"),
        )

        response_payload = _envelope(result)
        response_payload["suggestions"] = [
            ComplianceSerializer.suggestion_to_dict(s) for s in result.suggestions
        ]
        return JSONResponse(status_code=200, content=response_payload)

    @app.post("/api/templates/match")
    async def match_templates(request: Request, payload: Dict[str, Any] = Body(...)) -> JSONResponse:
        """Match a clause against the template library or the given `templates`."""
        try:
            clause = payload["clause"]
            templates = (
                [ComplianceSerializer.template_from_dict(t) for t in payload["templates"]]
                if payload.get("templates") is not None else None
            )
            limit = int(payload.get("limit", 5))
            min_similarity = float(payload.get("minSimilarity", 0.0))
        except (KeyError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"Invalid match request: {exc}") from exc

        result = get_pipeline(request).match_templates(
            clause,
            templates=templates,
            limit=limit,
            min_similarity=min_similarity,
            exclude_ids=payload.get("excludeTemplates"),
        )

        response_payload = _envelope(result)
        response_payload["matches"] = [
            ComplianceSerializer.template_match_to_dict(m) for m in result.template_matches
        ]
        return JSONResponse(status_code=200, content=response_payload)

    @app.post("/api/compare")
    async def compare(request: Request, payload: Dict[str, Any] = Body(...)) -> JSONResponse:
        """Compare a clause with a suggested rewrite."""
        try:
            original = payload["originalClause"]
            suggested = payload["suggestedClause"]
            frameworks = _frameworks(payload.get("frameworks"))
        except (KeyError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"Invalid comparison request: {exc}") from exc

        result = get_pipeline(request).compare_clauses(
            original,
            suggested,
            frameworks=frameworks,
            client_id=payload.get("clientId"),
            jurisdiction=payload.get("jurisdiction"),
        )

        response_payload = _envelope(result)
        if result.comparison is not None:
            response_payload["comparison"] = ComplianceSerializer.comparison_to_dict(result.comparison)
        return JSONResponse(status_code=200, content=response_payload)

    @app.get("/api/rules")
    async def list_rules(request: Request, framework: Optional[str] = None) -> JSONResponse:
        """List the rules of the current snapshot, optionally for one framework."""
        snapshot = get_pipeline(request).repository.snapshot
        rules = list(snapshot.rules)
        if framework:
            try:
                wanted = ComplianceFramework(framework)
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
            rules = [r for r in rules if r.framework == wanted]

        return JSONResponse(
            status_code=200,
            content={
                "version": snapshot.version,
                "rules": [ComplianceSerializer.rule_to_dict(r) for r in rules],
            },
        )

    @app.post("/api/rules")
    async def publish_rules(request: Request, payload: Dict[str, Any] = Body(...)) -> JSONResponse:
        """Publish rules as a new snapshot.

        Body fields: `rules` (list), `replace` (replace the whole rule set).
        """
        try:
            rules = [ComplianceSerializer.rule_from_dict(r) for r in payload["rules"]]
            snapshot = get_pipeline(request).publish_rules(
                rules,
                replace=bool(payload.get("replace", False)),
                user_id=payload.get("userId"),
            )
        except (KeyError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"Invalid rules: {exc}") from exc

        logger.info(f"Published rule snapshot {snapshot.version} via API")
        return JSONResponse(
            status_code=200,
            content={"version": snapshot.version, "ruleCount": len(snapshot)},
        )

    return app


app = create_app()
