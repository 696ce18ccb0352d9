"""Marketing audit generation and enhancement.

Status rule: any change to audit content (generate or enhance) produces a
Draft; only approve(), called after a successful save, produces Approved.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from lead_research.analysis.llm_client import LLMClient
from lead_research.analysis.parsing import parse_json_response
from lead_research.analysis.prompts import build_audit_prompt, build_enhance_prompt
from lead_research.config import Config
from lead_research.errors import (
    AuditEnhanceFailed,
    AuditGenerationFailed,
    UpstreamRejected,
    UpstreamUnavailable,
)
from lead_research.models import (
    AuditMetadata,
    AuditRecord,
    AuditStatus,
    CompanyProfile,
    CRMRecord,
    ParseFailure,
)

logger = logging.getLogger(__name__)

INITIAL_VERSION = "1.0"
_METADATA_KEYS = ("auditMetadata", "audit_metadata")


def bump_version(version: str) -> str:
    """1.0 -> 1.1, 1.9 -> 1.10. Unreadable versions restart at 1.1."""
    major, _, minor = (version or "").partition(".")
    if major.isdigit() and minor.isdigit():
        return f"{major}.{int(minor) + 1}"
    return "1.1"


def _fresh_metadata(version: str) -> AuditMetadata:
    return AuditMetadata(
        status=AuditStatus.DRAFT.value,
        generated_date=datetime.now(timezone.utc).isoformat(),
        audit_version=version,
    )


def _build_record(data: dict, metadata: AuditMetadata) -> AuditRecord:
    payload = {k: v for k, v in data.items() if k not in _METADATA_KEYS}
    payload["auditMetadata"] = metadata.model_dump(by_alias=True)
    return AuditRecord.model_validate(payload)


def approve(audit: AuditRecord) -> AuditRecord:
    """Copy of the audit marked Approved. The input is not modified."""
    metadata = audit.audit_metadata.model_copy(update={"status": AuditStatus.APPROVED.value})
    return audit.model_copy(deep=True, update={"audit_metadata": metadata})


class AuditGenerator:
    """Builds and deepens AuditRecords through the analysis provider."""

    def __init__(self, llm: LLMClient, config: Config):
        self.llm = llm
        self.config = config

    async def _complete(self, prompt: str, max_tokens: int) -> str:
        return await self.llm.analysis_complete(
            prompt,
            max_tokens=max_tokens,
            temperature=self.config.audit_temperature,
            timeout=self.config.audit_timeout,
            json_mode=True,
        )

    async def generate(self, profile: CompanyProfile, crm: CRMRecord) -> AuditRecord:
        """Generate a Draft audit (version 1.0). Raises AuditGenerationFailed."""
        prompt = build_audit_prompt(profile.to_payload(), crm.to_payload())
        try:
            text = await self._complete(prompt, self.config.audit_max_tokens)
        except (UpstreamUnavailable, UpstreamRejected) as e:
            raise AuditGenerationFailed(f"Failed to generate audit: {e.message}") from e

        parsed = parse_json_response(text)
        if isinstance(parsed, ParseFailure):
            raise AuditGenerationFailed(
                f"Failed to generate audit: {parsed.error}", raw_response=text,
            )
        try:
            audit = _build_record(parsed, _fresh_metadata(INITIAL_VERSION))
        except ValidationError as e:
            logger.error("Audit for %s is missing sections: %s", profile.company_name, e)
            raise AuditGenerationFailed(
                "Generated audit is missing required sections", raw_response=text,
            ) from e

        logger.info("Generated audit for %s", profile.company_name)
        return audit

    async def enhance(self, existing: AuditRecord) -> AuditRecord:
        """Return a deeper copy of ``existing`` with the minor version bumped.

        ``existing`` is never modified; on failure AuditEnhanceFailed is raised
        and the caller keeps its current record.
        """
        current = existing.to_payload()
        prompt = build_enhance_prompt(current)
        try:
            text = await self._complete(prompt, self.config.enhance_max_tokens)
        except (UpstreamUnavailable, UpstreamRejected) as e:
            raise AuditEnhanceFailed(f"Failed to enhance audit: {e.message}") from e

        parsed = parse_json_response(text)
        if isinstance(parsed, ParseFailure):
            raise AuditEnhanceFailed(
                f"Failed to enhance audit: {parsed.error}", raw_response=text,
            )

        # Sections the model dropped are carried over from the existing audit
        merged = {**current, **parsed}
        version = bump_version(existing.audit_metadata.audit_version)
        try:
            enhanced = _build_record(merged, _fresh_metadata(version))
        except ValidationError as e:
            raise AuditEnhanceFailed(
                "Enhanced audit did not keep the audit structure", raw_response=text,
            ) from e

        logger.info("Enhanced audit to version %s", version)
        return enhanced
