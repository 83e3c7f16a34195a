"""FastAPI application exposing the narrative judge."""

# pyright: reportUnusedFunction=false

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional, cast

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..container import ServiceContainer, create_container
from ..domain import JudgeInputs, JudgeOptions
from ..exceptions import NarrativeJudgeException
from ..judge import NarrativeJudge
from ..services import ICampaignRepository, IConfigurationManager, IVerdictRepository

LOGGER = logging.getLogger(__name__)


class JudgeInputsBody(BaseModel):
    """Explicit narrative overrides; omitted fields are read from the narrative store."""

    framing: Optional[str] = None
    evaluation: Optional[str] = None
    opinion: Optional[str] = None
    strategist: Optional[str] = None
    exportSummary: Optional[str] = None


class JudgeRunRequest(BaseModel):
    """Request model for a judge run."""

    useLLM: bool = False
    researchLevel: Optional[Literal["LITE", "DEEP", "MAX"]] = None
    inputs: Optional[JudgeInputsBody] = None


class JudgeRunResponse(BaseModel):
    """Response model wrapping the verdict."""

    result: Dict[str, Any]


class LatestVerdictResponse(BaseModel):
    campaignId: str
    createdAt: str
    summary: str
    result: Dict[str, Any]


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = "ok"


class ErrorResponse(BaseModel):
    """Response model for errors."""

    detail: str
    hint: Optional[str] = None


def _container(app: FastAPI) -> ServiceContainer:
    return cast(ServiceContainer, app.state.service_container)


def _register_health_routes(app: FastAPI) -> None:
    @app.get("/api/health", response_model=HealthResponse, tags=["health"])
    async def api_health() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="ok")


def _register_judge_routes(app: FastAPI) -> None:
    @app.post("/api/campaigns/{campaign_id}/judge/run", response_model=JudgeRunResponse, tags=["judge"])
    async def api_run_judge(campaign_id: str, request: Optional[JudgeRunRequest] = None) -> JudgeRunResponse:
        """Judge the campaign's latest narratives and persist the verdict."""
        container = _container(app)
        campaigns = cast(ICampaignRepository, container.resolve(ICampaignRepository))
        context = campaigns.require(campaign_id)

        body = request or JudgeRunRequest()
        inputs = JudgeInputs.from_mapping(body.inputs.model_dump(exclude_none=True)) if body.inputs else None
        options = JudgeOptions(research_level=body.researchLevel, inputs=inputs, use_llm=body.useLLM)

        judge = cast(NarrativeJudge, container.resolve(NarrativeJudge))
        verdict = await judge.run(context, options)

        verdicts = cast(IVerdictRepository, container.resolve(IVerdictRepository))
        path = verdicts.save(campaign_id, verdict)
        LOGGER.info("Saved verdict for campaign=%s to %s (%s)", campaign_id, path, verdict.summary_line())
        return JudgeRunResponse(result=verdict.to_dict())

    @app.get("/api/campaigns/{campaign_id}/judge/latest", response_model=LatestVerdictResponse, tags=["judge"])
    async def api_latest_verdict(campaign_id: str) -> LatestVerdictResponse:
        """Return the most recently persisted verdict for a campaign."""
        verdicts = cast(IVerdictRepository, _container(app).resolve(IVerdictRepository))
        record = verdicts.latest(campaign_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No verdict recorded for campaign")
        return LatestVerdictResponse(**record)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(NarrativeJudgeException)
    async def handle_judge_error(request: Request, exc: NarrativeJudgeException) -> JSONResponse:
        if exc.http_status >= 500:
            LOGGER.error("Request %s failed: %s", request.url.path, exc)
        else:
            LOGGER.info("Request %s rejected: %s", request.url.path, exc)
        body = ErrorResponse(detail=exc.message, hint=exc.hint)
        return JSONResponse(status_code=exc.http_status, content=body.model_dump(exclude_none=True))


def create_app(
    container: Optional[ServiceContainer] = None,
    config: Dict[str, Any] | None = None,
) -> FastAPI:
    """Factory for the FastAPI web application.

    Args:
        container: Pre-wired ServiceContainer; built from ``config`` when omitted
        config: Configuration passed to :func:`create_container`

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="Narrative Judge API",
        description="Audits generated campaign narratives against their brief",
        version="1.0.0",
    )
    container = container or create_container(config)
    app.state.service_container = container

    manager = cast(IConfigurationManager, container.resolve(IConfigurationManager))
    origins = cast(List[str], manager.get("web.cors_origins", ["http://localhost:5173", "http://127.0.0.1:5173"]))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_health_routes(app)
    _register_judge_routes(app)
    _register_error_handlers(app)
    return app


__all__ = ["create_app", "JudgeRunRequest", "JudgeRunResponse", "LatestVerdictResponse"]
