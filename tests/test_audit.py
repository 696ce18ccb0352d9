"""Tests for audit generation, enhancement, versioning and approval."""

import json

import pytest

from lead_research.analysis.audit import AuditGenerator, approve, bump_version
from lead_research.errors import AuditEnhanceFailed, AuditGenerationFailed, UpstreamRejected
from lead_research.models import AuditRecord, AuditStatus, CRMRecord

from tests.conftest import FakeLLM


@pytest.fixture
def crm(crm_payload):
    return CRMRecord.model_validate(crm_payload)


@pytest.fixture
def audit(audit_payload):
    return AuditRecord.model_validate(audit_payload)


class TestBumpVersion:
    @pytest.mark.parametrize("version, expected", [
        ("1.0", "1.1"),
        ("1.1", "1.2"),
        ("1.9", "1.10"),
        ("2.3", "2.4"),
        ("", "1.1"),
        ("v1", "1.1"),
    ])
    def test_minor_bump(self, version, expected):
        assert bump_version(version) == expected


class TestApprove:
    def test_returns_approved_copy(self, audit):
        approved = approve(audit)
        assert approved.status == AuditStatus.APPROVED.value
        assert audit.status == AuditStatus.DRAFT.value
        assert approved.company_overview == audit.company_overview
        assert approved.audit_metadata.audit_version == audit.audit_metadata.audit_version


class TestAuditRecord:
    def test_payload_uses_wire_names(self, audit):
        payload = audit.to_payload()
        assert "immediateROIMoves" in payload
        assert payload["auditMetadata"]["status"] == "Draft"
        assert payload["creativeStrategyGaps"]["croOpportunities"] == "Checkout friction"

    def test_missing_section_is_rejected(self, audit_payload):
        del audit_payload["competitiveBenchmark"]
        with pytest.raises(ValueError):
            AuditRecord.model_validate(audit_payload)


class TestGenerate:
    @pytest.mark.asyncio
    async def test_generates_draft_version_one(self, config, profile, crm, audit_payload):
        audit_payload["auditMetadata"] = {"status": "Approved", "auditVersion": "9.9"}
        llm = FakeLLM(analysis=[json.dumps(audit_payload)])

        audit = await AuditGenerator(llm, config).generate(profile, crm)
        assert audit.status == "Draft"
        assert audit.audit_metadata.audit_version == "1.0"
        assert audit.audit_metadata.generated_date
        assert audit.immediate_roi_moves[0].action == "Add a welcome email"
        assert '"leadScore": "55"' in llm.analysis_prompts[0]

    @pytest.mark.asyncio
    async def test_missing_sections_raise(self, config, profile, crm):
        llm = FakeLLM(analysis=['{"companyOverview": {"profile": "x"}}'])
        with pytest.raises(AuditGenerationFailed) as exc_info:
            await AuditGenerator(llm, config).generate(profile, crm)
        assert exc_info.value.raw_response == '{"companyOverview": {"profile": "x"}}'

    @pytest.mark.asyncio
    async def test_prose_raises(self, config, profile, crm):
        llm = FakeLLM(analysis=["Sorry, I can't produce an audit."])
        with pytest.raises(AuditGenerationFailed):
            await AuditGenerator(llm, config).generate(profile, crm)


class TestEnhance:
    @pytest.mark.asyncio
    async def test_enhance_bumps_version_and_keeps_sections(self, config, audit, audit_payload):
        deeper = {
            "creativeStrategyGaps": {
                **audit_payload["creativeStrategyGaps"],
                "croOpportunities": ["Cut checkout to one page", "Add trust badges"],
                "riskAssessment": "Low",
            },
            "immediateROIMoves": audit_payload["immediateROIMoves"] * 2,
        }
        llm = FakeLLM(analysis=[json.dumps(deeper)])

        enhanced = await AuditGenerator(llm, config).enhance(audit)
        assert enhanced.audit_metadata.audit_version == "1.1"
        assert enhanced.status == "Draft"
        assert len(enhanced.immediate_roi_moves) == 2
        assert enhanced.creative_strategy_gaps.cro_opportunities == [
            "Cut checkout to one page", "Add trust badges",
        ]
        assert enhanced.to_payload()["creativeStrategyGaps"]["riskAssessment"] == "Low"
        # sections the model left out are carried over
        assert enhanced.company_overview == audit.company_overview

    @pytest.mark.asyncio
    async def test_enhancing_approved_audit_returns_draft(self, config, audit, audit_payload):
        approved = approve(audit)
        llm = FakeLLM(analysis=[json.dumps(audit_payload)])
        enhanced = await AuditGenerator(llm, config).enhance(approved)
        assert enhanced.status == "Draft"
        assert approved.status == "Approved"

    @pytest.mark.asyncio
    async def test_failure_leaves_existing_audit_unchanged(self, config, audit):
        before = audit.model_dump()
        llm = FakeLLM(analysis=[UpstreamRejected("openai request failed", status_code=500)])

        with pytest.raises(AuditEnhanceFailed):
            await AuditGenerator(llm, config).enhance(audit)
        assert audit.model_dump() == before
        assert audit.audit_metadata.audit_version == "1.0"

    @pytest.mark.asyncio
    async def test_unparseable_enhancement_raises(self, config, audit):
        before = audit.model_dump()
        llm = FakeLLM(analysis=["Here is a much deeper audit (formatting lost)"])

        with pytest.raises(AuditEnhanceFailed) as exc_info:
            await AuditGenerator(llm, config).enhance(audit)
        assert exc_info.value.raw_response.startswith("Here is")
        assert audit.model_dump() == before
