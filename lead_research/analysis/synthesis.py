"""CRM insight synthesis: ResearchResult + CompanyProfile -> CRMRecord."""

from __future__ import annotations

import json
import logging
import re

from pydantic import ValidationError

from lead_research.analysis.llm_client import LLMClient
from lead_research.analysis.parsing import parse_json_response
from lead_research.analysis.prompts import build_synthesis_prompt
from lead_research.analysis.scoring import compute_availability_score, summarize_availability
from lead_research.config import Config
from lead_research.errors import SynthesisFailed, UpstreamRejected, UpstreamUnavailable
from lead_research.models import (
    LEAD_TIERS,
    UNKNOWN,
    CompanyProfile,
    CRMRecord,
    ParseFailure,
    ResearchResult,
    is_unknown,
)

logger = logging.getLogger(__name__)

# CRM field -> research leaf it is copied or derived from. When the leaf is
# unresolved the CRM field must be too, whatever the model answered.
CRM_SOURCES: dict[str, tuple[str, str]] = {
    "estimated_funding_total": ("funding", "total_funding"),
    "last_funding_round": ("funding", "last_round"),
    "estimated_annual_revenue": ("revenue", "annual_revenue"),
    "ad_spend_level": ("hiring", "hiring_signals"),
    "estimated_creative_marketing_budget": ("hiring", "hiring_signals"),
    "primary_decision_maker": ("people", "ceo"),
    "role_title": ("people", "key_decision_maker"),
    "linkedin_profile": ("people", "linkedin_profiles"),
    "current_agency": ("agency", "current_agency"),
    "whether_theyre_hiring_for_growth": ("hiring", "is_hiring"),
    "key_open_roles": ("hiring", "open_roles"),
}

# No research section holds contact details; kept only when quoted verbatim
VERBATIM_ONLY = ("email", "phone")

# Max distance between the model's lead score and the availability score
SCORE_TOLERANCE = 20

_TIERS = {tier.lower().replace("-", ""): tier for tier in LEAD_TIERS}
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


def enforce_provenance(crm: CRMRecord, research: ResearchResult) -> CRMRecord:
    """Blank out CRM fields whose research source is unresolved."""
    forced = {}
    for crm_field, (section, leaf) in CRM_SOURCES.items():
        if is_unknown(getattr(getattr(research, section), leaf)) and not is_unknown(getattr(crm, crm_field)):
            forced[crm_field] = UNKNOWN

    research_text = json.dumps(research.to_payload(), ensure_ascii=False)
    for crm_field in VERBATIM_ONLY:
        value = getattr(crm, crm_field)
        if not is_unknown(value) and value.strip() not in research_text:
            forced[crm_field] = UNKNOWN

    if forced:
        logger.info("Dropped %d CRM values with no research source: %s",
                    len(forced), ", ".join(sorted(forced)))
        return crm.model_copy(update=forced)
    return crm


def read_lead_score(raw: str) -> int | None:
    match = _NUMBER.search(raw or "")
    if match is None:
        return None
    return max(0, min(100, round(float(match.group(0)))))


def normalize_lead_score(raw: str, research: ResearchResult) -> str:
    """Clamp the model's score into a band around the availability score.

    An unreadable score is replaced by the availability score itself.
    """
    availability = compute_availability_score(research)
    score = read_lead_score(raw)
    if score is None:
        logger.info("Lead score %r unreadable; using availability score %d", raw, availability)
        return str(availability)

    low = max(0, availability - SCORE_TOLERANCE)
    high = min(100, availability + SCORE_TOLERANCE)
    if not low <= score <= high:
        bounded = max(low, min(high, score))
        logger.info("Lead score %d inconsistent with availability %d; using %d",
                    score, availability, bounded)
        return str(bounded)
    return str(score)


def normalize_tier(raw: str) -> str:
    key = re.sub(r"[\s_\-]+", "", (raw or "").strip().lower())
    return _TIERS.get(key, UNKNOWN)


class InsightSynthesizer:
    """One analysis-provider call turning research into a CRM record."""

    def __init__(self, llm: LLMClient, config: Config):
        self.llm = llm
        self.config = config

    async def synthesize(self, research: ResearchResult, profile: CompanyProfile) -> CRMRecord:
        """Build the CRM record. Raises SynthesisFailed; never retries."""
        prompt = build_synthesis_prompt(
            profile.to_payload(),
            research.to_payload(),
            summarize_availability(research),
        )

        try:
            text = await self.llm.analysis_complete(
                prompt,
                max_tokens=self.config.synthesis_max_tokens,
                temperature=self.config.synthesis_temperature,
                timeout=self.config.synthesis_timeout,
                json_mode=True,
            )
        except (UpstreamUnavailable, UpstreamRejected) as e:
            raise SynthesisFailed(f"Failed to generate insights: {e.message}") from e

        parsed = parse_json_response(text)
        if isinstance(parsed, ParseFailure):
            raise SynthesisFailed(
                f"Failed to generate insights: {parsed.error}", raw_response=text,
            )

        try:
            crm = CRMRecord.model_validate(parsed)
        except ValidationError as e:
            raise SynthesisFailed(
                f"Insights did not match the CRM record shape: {e.error_count()} errors",
                raw_response=text,
            ) from e

        crm = enforce_provenance(crm, research)
        lead_score = normalize_lead_score(crm.lead_score, research)
        # The model's tier was bucketed from its own score
        if read_lead_score(crm.lead_score) != int(lead_score):
            tier = UNKNOWN
        else:
            tier = normalize_tier(crm.tier)
        crm = crm.model_copy(update={"lead_score": lead_score, "tier": tier})
        logger.info("CRM insights for %s: score=%s tier=%s",
                    profile.company_name, crm.lead_score, crm.tier)
        return crm
