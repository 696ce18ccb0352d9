"""Audit API: generate, enhance and save marketing audits."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from lead_research.analysis.audit import approve
from lead_research.models import AuditRecord, AuditStatus, CompanyProfile, CRMRecord
from lead_research.pipeline import EnrichmentPipeline
from lead_research.web.deps import get_pipeline

logger = logging.getLogger(__name__)
router = APIRouter(tags=["audit"])


class _CamelBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuditRequest(_CamelBody):
    company_data: CompanyProfile
    crm_data: CRMRecord


class EnhanceRequest(_CamelBody):
    audit: AuditRecord


class SaveAuditRequest(_CamelBody):
    company_data: CompanyProfile
    crm_data: CRMRecord
    audit: AuditRecord
    audit_status: AuditStatus = AuditStatus.APPROVED


@router.post("/audit")
async def generate_audit(
    req: AuditRequest,
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    audit = await pipeline.auditor.generate(req.company_data, req.crm_data)
    return {"success": True, "data": audit.to_payload()}


@router.post("/audit/enhance")
async def enhance_audit(
    req: EnhanceRequest,
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    """Deepen an audit. On failure the client keeps the audit it sent."""
    enhanced = await pipeline.auditor.enhance(req.audit)
    return {"success": True, "data": enhanced.to_payload()}


@router.post("/save-audit")
async def save_audit(
    req: SaveAuditRequest,
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    audit = approve(req.audit) if req.audit_status == AuditStatus.APPROVED else req.audit
    audit_id = await pipeline.gateway.save_audit(
        req.company_data, req.crm_data, audit, req.audit_status,
    )
    return {
        "success": True,
        "message": "Audit saved successfully",
        "data": {"auditId": audit_id, "audit": audit.to_payload()},
    }
