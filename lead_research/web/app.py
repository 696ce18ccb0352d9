"""FastAPI application for the lead research API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lead_research.config import load_config
from lead_research.errors import (
    InvalidInput,
    LeadResearchError,
    ParseFailureError,
    PersistenceFailure,
    UpstreamRejected,
    UpstreamUnavailable,
)
from lead_research.pipeline import EnrichmentPipeline
from lead_research.web.deps import RunStore

logger = logging.getLogger(__name__)

_STATUS_CODES: list[tuple[type[LeadResearchError], int]] = [
    (InvalidInput, 400),
    (UpstreamUnavailable, 502),
    (UpstreamRejected, 502),
    (ParseFailureError, 422),
    (PersistenceFailure, 500),
]


def status_for(exc: LeadResearchError) -> int:
    for error_type, status in _STATUS_CODES:
        if isinstance(exc, error_type):
            return status
    return 500


def create_app(pipeline: EnrichmentPipeline | None = None) -> FastAPI:
    """Build the app. Without a pipeline one is built from the environment at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting lead research API...")
        owned = getattr(app.state, "pipeline", None) is None
        if owned:
            app.state.pipeline = EnrichmentPipeline(load_config())
        yield
        if owned:
            await app.state.pipeline.aclose()
            app.state.pipeline = None
        logger.info("Lead research API shut down.")

    app = FastAPI(
        title="Lead Research",
        description="Company research, CRM insights and marketing audits",
        lifespan=lifespan,
    )
    app.state.pipeline = pipeline
    app.state.run_store = RunStore()

    @app.exception_handler(LeadResearchError)
    async def handle_pipeline_error(request: Request, exc: LeadResearchError):
        status = status_for(exc)
        if status >= 500:
            logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
        body = {"error": exc.message, "code": exc.code}
        if exc.raw_response:
            body["rawResponse"] = exc.raw_response
        return JSONResponse(status_code=status, content=body)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request")
        return JSONResponse(
            status_code=400,
            content={
                "error": f"{location}: {message}" if location else message,
                "code": InvalidInput.code,
            },
        )

    # --- Register routers ---
    from lead_research.web.routers.audit import router as audit_router
    from lead_research.web.routers.insights import router as insights_router
    from lead_research.web.routers.research import router as research_router

    app.include_router(research_router, prefix="/api")
    app.include_router(insights_router, prefix="/api")
    app.include_router(audit_router, prefix="/api")

    return app


app = create_app()
