"""CRM insights API: synthesize, save on user confirmation, history."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lead_research.models import CompanyProfile, CRMRecord, ResearchResult
from lead_research.pipeline import EnrichmentPipeline
from lead_research.web.deps import get_pipeline

logger = logging.getLogger(__name__)
router = APIRouter(tags=["insights"])


class InsightsRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    company_data: CompanyProfile
    research: ResearchResult = Field(default_factory=ResearchResult)


class SaveFinalResultsRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    company_data: CompanyProfile
    ai_insights: CRMRecord
    search_results: ResearchResult
    official_company_name: str = ""
    user_notes: str = ""


@router.post("/insights")
async def generate_insights(
    req: InsightsRequest,
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    """Synthesize a CRM record from research results. Regenerate = call again."""
    crm = await pipeline.synthesizer.synthesize(req.research, req.company_data)
    return {"success": True, "data": crm.to_payload()}


@router.post("/save-final-results")
async def save_final_results(
    req: SaveFinalResultsRequest,
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    """Persist profile + CRM record once the user confirms them."""
    saved = await pipeline.gateway.save_crm_record(
        req.company_data,
        req.ai_insights,
        req.search_results,
        req.official_company_name or None,
        req.user_notes or None,
    )
    return {
        "success": True,
        "message": "CRM results saved successfully",
        "data": {"companyId": saved.company_id, "crmId": saved.crm_id},
    }


@router.get("/search-history/{company_name}")
async def search_history(
    company_name: str,
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    return await pipeline.history(company_name)
