"""Research API: website info, company research, background runs with SSE progress."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sse_starlette.sse import EventSourceResponse

from lead_research.analysis.fallback import identify_gaps
from lead_research.analysis.research import validate_research_input
from lead_research.errors import (
    InvalidInput,
    LeadResearchError,
    ResearchParseFailed,
    UpstreamRejected,
    UpstreamUnavailable,
)
from lead_research.input.sanitizer import is_valid_website
from lead_research.models import CompanyProfile, FetchFailureKind, ParseFailure
from lead_research.pipeline import EnrichmentPipeline
from lead_research.scrape.extractor import fetch_metadata
from lead_research.search.google_client import search_google, search_topic
from lead_research.web.deps import RunStore, get_pipeline, get_run_store

logger = logging.getLogger(__name__)
router = APIRouter(tags=["research"])


class _CamelBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchRequest(_CamelBody):
    company_name: str = ""
    query: str = ""
    search_type: str = ""
    website: str = ""


class WebsiteInfoRequest(_CamelBody):
    website: str = ""


class CompanyResearchRequest(_CamelBody):
    company_name: str = ""
    website: str = ""


class BackgroundResearchRequest(_CamelBody):
    company_data: CompanyProfile
    use_site_name: bool = False


@router.get("/health")
async def health():
    return {"status": "OK", "message": "Lead research API is running"}


@router.post("/search")
async def search(req: SearchRequest, pipeline: EnrichmentPipeline = Depends(get_pipeline)):
    """Google Custom Search by topic (funding, news, jobs, people, company)."""
    if not req.company_name.strip():
        raise InvalidInput("Company name is required")
    config = pipeline.config
    if not req.search_type:
        return await search_google(
            req.query or "company information", req.company_name,
            config.google_api_key, config.google_search_engine_id,
            website=req.website or None,
        )
    return await search_topic(
        req.search_type, req.company_name, config.google_api_key, config.google_search_engine_id,
        website=req.website or None,
    )


@router.post("/fetch-website-info")
async def fetch_website_info(
    req: WebsiteInfoRequest,
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    if not req.website.strip():
        raise InvalidInput("Website URL is required")
    if not is_valid_website(req.website):
        raise InvalidInput("Invalid website URL")

    metadata = await fetch_metadata(
        req.website,
        timeout=pipeline.config.website_timeout,
        max_redirects=pipeline.config.website_max_redirects,
        transport=pipeline.http_transport,
    )
    if metadata.failure is not None:
        if metadata.failure.kind in (FetchFailureKind.TIMEOUT, FetchFailureKind.UNREACHABLE):
            raise UpstreamUnavailable(metadata.failure.message)
        raise UpstreamRejected(metadata.failure.message, status_code=metadata.failure.status_code)

    return {
        "companyName": metadata.company_name,
        "title": metadata.title,
        "description": metadata.description,
        "metaTags": metadata.meta_tags,
    }


async def _research_or_raise(pipeline: EnrichmentPipeline, name: str, website: str | None):
    result = await pipeline.research_engine.research(name, website)
    if isinstance(result, ParseFailure):
        raise ResearchParseFailed(result.error, raw_response=result.raw_response)
    return result


@router.post("/search/perplexity")
async def search_perplexity(
    req: CompanyResearchRequest,
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    """Primary research query only, no gap filling."""
    name, website = validate_research_input(req.company_name, req.website or None)
    result = await _research_or_raise(pipeline, name, website)
    return {"success": True, "data": result.to_payload(), "source": "perplexity"}


@router.post("/search/company/enhanced")
async def search_company_enhanced(
    req: CompanyResearchRequest,
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    """Research plus best-effort gap filling."""
    name, website = validate_research_input(req.company_name, req.website or None)
    result = await _research_or_raise(pipeline, name, website)
    gaps = identify_gaps(result)
    enriched = await pipeline.fallback.enrich(result, name, website)
    filled = sorted(g.value for g in gaps - identify_gaps(enriched))
    return {
        "success": True,
        "companyName": name,
        "website": website,
        "data": enriched.to_payload(),
        "filledGaps": filled,
    }


# ---------------------------------------------------------------------------
# Background runs
# ---------------------------------------------------------------------------

@router.post("/research")
async def start_research(
    req: BackgroundResearchRequest,
    background_tasks: BackgroundTasks,
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
    store: RunStore = Depends(get_run_store),
):
    """Start a full run in the background. Returns run_id for SSE tracking."""
    run_id = uuid.uuid4().hex
    store.progress[run_id] = []
    background_tasks.add_task(_run_pipeline, pipeline, store, run_id, req)
    return {"run_id": run_id, "status": "running"}


@router.get("/research/{run_id}/stream")
async def research_stream(run_id: str, store: RunStore = Depends(get_run_store)):
    """SSE stream for real-time progress updates."""
    if run_id not in store.progress:
        raise HTTPException(status_code=404, detail="Run not found")

    async def event_generator():
        last_idx = 0
        while True:
            events = store.progress.get(run_id, [])
            while last_idx < len(events):
                evt = events[last_idx]
                yield {"event": "progress", "data": json.dumps(evt)}
                last_idx += 1
                if evt.get("status") in ("completed", "failed"):
                    return
            await asyncio.sleep(0.5)

    return EventSourceResponse(event_generator())


@router.get("/research/{run_id}/result")
async def research_result(run_id: str, store: RunStore = Depends(get_run_store)):
    if run_id in store.errors:
        return {"status": "failed", **store.errors[run_id]}
    run = store.runs.get(run_id)
    if run is None:
        if run_id in store.progress:
            return {"status": "running"}
        raise HTTPException(status_code=404, detail="Run not found")
    return {"status": "completed", "run": run.model_dump(mode="json", by_alias=True)}


async def _run_pipeline(
    pipeline: EnrichmentPipeline,
    store: RunStore,
    run_id: str,
    req: BackgroundResearchRequest,
):
    def progress_callback(pct: int, msg: str):
        store.progress.setdefault(run_id, []).append({
            "run_id": run_id,
            "progress_pct": pct,
            "progress_msg": msg,
            "status": "running",
        })

    use_site_name = req.use_site_name
    try:
        run = await pipeline.run(
            req.company_data,
            confirm_name=lambda form_name, site_name: use_site_name,
            progress_callback=progress_callback,
        )
    except LeadResearchError as e:
        logger.error("Research run %s failed: %s", run_id, e.message)
        store.errors[run_id] = {"error": e.message, "code": e.code}
        store.progress[run_id].append({
            "run_id": run_id, "progress_pct": 100, "progress_msg": e.message, "status": "failed",
        })
        return
    except Exception as e:
        logger.exception("Research run %s crashed", run_id)
        store.errors[run_id] = {"error": str(e), "code": LeadResearchError.code}
        store.progress[run_id].append({
            "run_id": run_id, "progress_pct": 100, "progress_msg": str(e), "status": "failed",
        })
        return

    store.runs[run_id] = run
    store.progress[run_id].append({
        "run_id": run_id,
        "progress_pct": 100,
        "progress_msg": "Complete" if run.crm is not None else (run.synthesis_error or "Complete"),
        "status": "completed",
    })
