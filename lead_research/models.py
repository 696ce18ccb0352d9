"""Pydantic data models for the lead enrichment pipeline."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union, get_origin

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from lead_research.input.sanitizer import NAME_MAX_LENGTH, sanitize_text

# The one place the "no value found" placeholder is spelled out. Everything
# else goes through is_unknown() / known_or_none().
UNKNOWN = "Unknown"

CUSTOM_INDUSTRY_MAX_LENGTH = 100

DEFAULT_INDUSTRIES = [
    "D2C (Direct to Consumer)",
    "B2B (Business to Business)",
    "B2C (Business to Consumer)",
    "SaaS (Software as a Service)",
    "E-commerce",
    "Fintech",
    "Healthcare",
    "Education",
    "Real Estate",
    "Manufacturing",
    "Retail",
    "Food & Beverage",
    "Travel & Hospitality",
    "Entertainment",
    "Technology",
    "Consulting",
    "Marketing & Advertising",
]
OTHER_INDUSTRY = "Other"


# ---------------------------------------------------------------------------
# Sentinel handling (Known | Unresolved)
# ---------------------------------------------------------------------------

def is_unknown(value: Any) -> bool:
    """True when a value carries no information (None, blank, sentinel, [])."""
    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return not stripped or stripped.lower() == UNKNOWN.lower()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def known_or_none(value: Any) -> Any:
    """Return the value when resolved, None when it is unresolved."""
    return None if is_unknown(value) else value


def coerce_scalar(value: Any) -> str:
    """Coerce a JSON leaf into a string, using the sentinel for no value.

    No numeric interpretation happens here: ``1200000`` becomes ``"1200000"``.
    """
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (list, tuple)):
        parts = [coerce_scalar(v) for v in value if not is_unknown(v)]
        return ", ".join(parts) if parts else UNKNOWN
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False) if value else UNKNOWN
    if is_unknown(value):
        return UNKNOWN
    return str(value).strip()


def coerce_list(value: Any) -> list[str]:
    """Coerce a JSON leaf into a list of non-empty strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [] if is_unknown(value) else [value.strip()]
    if isinstance(value, (list, tuple)):
        return [coerce_scalar(v) for v in value if not is_unknown(v)]
    return [] if is_unknown(value) else [coerce_scalar(value)]


class _SentinelModel(BaseModel):
    """Base for camelCase wire models whose leaves are strings or string lists.

    Missing or null scalars become the sentinel, missing lists become [].
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _fill_sentinels(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out = dict(data)
        for name, field in cls.model_fields.items():
            key = field.alias if field.alias and field.alias in out else name
            value = out.pop(key, None)
            if get_origin(field.annotation) is list:
                out[name] = coerce_list(value)
            else:
                out[name] = coerce_scalar(value)
        return out


# ---------------------------------------------------------------------------
# Company profile (form input)
# ---------------------------------------------------------------------------

class CustomSocial(BaseModel):
    platform: str = ""
    url: str = ""


class CompanyProfile(BaseModel):
    """User-entered company facts. Text fields are sanitized on the way in."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    company_name: str
    website: str = ""
    industry: str
    custom_industry: str = ""
    location: str
    social_media: dict[str, str] = Field(default_factory=dict)
    custom_socials: list[CustomSocial] = Field(default_factory=list)
    notes: str = ""

    @field_validator("company_name", "location", mode="before")
    @classmethod
    def _short_text(cls, v: Any) -> str:
        if isinstance(v, str) and len(v.strip()) > NAME_MAX_LENGTH:
            raise ValueError(f"must be under {NAME_MAX_LENGTH} characters")
        cleaned = sanitize_text(v, max_length=NAME_MAX_LENGTH)
        if not cleaned:
            raise ValueError("is required")
        return cleaned

    @field_validator("custom_industry", mode="before")
    @classmethod
    def _custom_industry(cls, v: Any) -> str:
        if isinstance(v, str) and len(v.strip()) > CUSTOM_INDUSTRY_MAX_LENGTH:
            raise ValueError(f"must be under {CUSTOM_INDUSTRY_MAX_LENGTH} characters")
        return sanitize_text(v, max_length=CUSTOM_INDUSTRY_MAX_LENGTH)

    @field_validator("website", "industry", "notes", mode="before")
    @classmethod
    def _free_text(cls, v: Any) -> str:
        return sanitize_text(v)

    @field_validator("social_media", mode="before")
    @classmethod
    def _socials(cls, v: Any) -> dict[str, str]:
        if not isinstance(v, dict):
            return {}
        return {
            sanitize_text(k, max_length=50): sanitize_text(h)
            for k, h in v.items()
            if sanitize_text(k, max_length=50)
        }

    @model_validator(mode="after")
    def _check_industry(self) -> CompanyProfile:
        if self.industry == OTHER_INDUSTRY:
            if not self.custom_industry:
                raise ValueError("custom industry must be provided when industry is 'Other'")
        elif self.industry not in DEFAULT_INDUSTRIES:
            raise ValueError(f"unknown industry '{self.industry}'")
        return self

    @property
    def industry_label(self) -> str:
        if self.industry == OTHER_INDUSTRY:
            return self.custom_industry
        return self.industry

    def to_payload(self) -> dict:
        """camelCase dict as sent to prompts and storage."""
        data = self.model_dump(by_alias=True)
        data["industry"] = self.industry_label
        data.pop("customIndustry", None)
        return data


# ---------------------------------------------------------------------------
# Website metadata
# ---------------------------------------------------------------------------

class FetchFailureKind(str, Enum):
    TIMEOUT = "Timeout"
    BLOCKED = "Blocked"
    NOT_FOUND = "NotFound"
    SERVER_ERROR = "ServerError"
    UNREACHABLE = "Unreachable"
    FETCH_FAILED = "FetchFailed"
    INVALID_INPUT = "InvalidInput"


class FetchFailure(BaseModel):
    kind: FetchFailureKind
    message: str
    status_code: int | None = None


class WebsiteMetadata(BaseModel):
    """Derived from a company homepage. Only used to suggest a company name."""
    url: str
    company_name: str | None = None
    title: str | None = None
    description: str | None = None
    meta_tags: dict[str, str] = Field(default_factory=dict)
    failure: FetchFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


# ---------------------------------------------------------------------------
# Research result (six fixed sections)
# ---------------------------------------------------------------------------

class FundingInfo(_SentinelModel):
    model_config = ConfigDict(frozen=True)

    total_funding: str = UNKNOWN
    last_round: str = UNKNOWN
    funding_rounds: str = UNKNOWN


class RevenueInfo(_SentinelModel):
    model_config = ConfigDict(frozen=True)

    annual_revenue: str = UNKNOWN
    revenue_range: str = UNKNOWN


class PeopleInfo(_SentinelModel):
    model_config = ConfigDict(frozen=True)

    ceo: str = UNKNOWN
    key_decision_maker: str = UNKNOWN
    linkedin_profiles: list[str] = Field(default_factory=list)


class HiringInfo(_SentinelModel):
    model_config = ConfigDict(frozen=True)

    is_hiring: str = UNKNOWN
    open_roles: list[str] = Field(default_factory=list)
    hiring_signals: str = UNKNOWN


class AgencyInfo(_SentinelModel):
    model_config = ConfigDict(frozen=True)

    current_agency: str = UNKNOWN
    agency_relationship: str = UNKNOWN


class NewsInfo(_SentinelModel):
    model_config = ConfigDict(frozen=True)

    recent_announcements: list[str] = Field(default_factory=list)
    company_updates: str = UNKNOWN


class ResearchResult(BaseModel):
    """Canonical intelligence object. Every leaf is a value, the sentinel, or []."""

    model_config = ConfigDict(frozen=True)

    funding: FundingInfo = Field(default_factory=FundingInfo)
    revenue: RevenueInfo = Field(default_factory=RevenueInfo)
    people: PeopleInfo = Field(default_factory=PeopleInfo)
    hiring: HiringInfo = Field(default_factory=HiringInfo)
    agency: AgencyInfo = Field(default_factory=AgencyInfo)
    news: NewsInfo = Field(default_factory=NewsInfo)

    @model_validator(mode="before")
    @classmethod
    def _sections_as_dicts(cls, data: Any) -> Any:
        # A section given as null or a bare string is treated as empty
        if not isinstance(data, dict):
            return data
        return {
            k: (v if isinstance(v, (dict, BaseModel)) else {})
            for k, v in data.items()
            if k in cls.model_fields
        }

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)

    def leaves(self) -> dict[str, Any]:
        """Flatten to {"section.field": value} for scoring and logging."""
        flat: dict[str, Any] = {}
        for section_name in type(self).model_fields:
            section = getattr(self, section_name)
            for field_name in type(section).model_fields:
                flat[f"{section_name}.{field_name}"] = getattr(section, field_name)
        return flat


class ParseFailure(BaseModel):
    """Returned (not raised) when a model response matched no parse strategy."""
    error: str
    raw_response: str = ""


# ---------------------------------------------------------------------------
# CRM record
# ---------------------------------------------------------------------------

LEAD_TIERS = ("Cold", "Warm", "Hot", "Red-hot")


class CRMRecord(_SentinelModel):
    """Normalized CRM insights. Every field is a string, possibly the sentinel."""

    estimated_funding_total: str = UNKNOWN
    last_funding_round: str = UNKNOWN
    estimated_annual_revenue: str = UNKNOWN
    ad_spend_level: str = UNKNOWN
    estimated_creative_marketing_budget: str = UNKNOWN
    primary_decision_maker: str = UNKNOWN
    role_title: str = UNKNOWN
    linkedin_profile: str = UNKNOWN
    email: str = UNKNOWN
    phone: str = UNKNOWN
    current_agency: str = UNKNOWN
    whether_theyre_hiring_for_growth: str = UNKNOWN
    key_open_roles: str = UNKNOWN
    lead_score: str = UNKNOWN
    tier: str = UNKNOWN

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Audit record
# ---------------------------------------------------------------------------

# Enhanced audits sometimes turn a sentence into a list of steps or a small
# object; keep whatever structure came back.
AuditText = Union[str, int, float, list, dict]


class AuditStatus(str, Enum):
    DRAFT = "Draft"
    APPROVED = "Approved"


class _AuditSection(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class CompanyOverviewSection(_AuditSection):
    profile: AuditText = ""
    industry: AuditText = ""
    location: AuditText = ""


class FundingGrowthStage(_AuditSection):
    funding_status: AuditText = ""
    growth_indicators: AuditText = ""
    investment_readiness: AuditText = ""


class LeadershipTeamStructure(_AuditSection):
    decision_maker_profile: AuditText = ""
    outreach_readiness: AuditText = ""
    team_structure: AuditText = ""


class MarketingAgencyPresence(_AuditSection):
    current_agency: AuditText = ""
    ad_spend_patterns: AuditText = ""
    marketing_maturity: AuditText = ""


class CreativeStrategyGaps(_AuditSection):
    cro_opportunities: AuditText = ""
    messaging_gaps: AuditText = ""
    content_cadence: AuditText = ""
    ad_fatigue: AuditText = ""
    landing_alignment: AuditText = ""
    email_basics: AuditText = ""


class IndustryOpportunities(_AuditSection):
    formats: AuditText = ""
    hooks: AuditText = ""
    platform_shifts: AuditText = ""


class Competitor(_AuditSection):
    name: AuditText = ""
    social_cadence: AuditText = ""
    ad_variants: AuditText = ""
    site_speed: AuditText = ""
    proof_density: AuditText = ""


class CompetitiveBenchmark(_AuditSection):
    top_competitors: list[Competitor] = Field(default_factory=list)
    competitive_advantage: AuditText = ""


class HiringTalentStrategy(_AuditSection):
    growth_staffing: AuditText = ""
    talent_gaps: AuditText = ""
    hiring_signals: AuditText = ""


class ROIMove(_AuditSection):
    action: AuditText = ""
    owner: AuditText = ""
    steps: AuditText = ""
    expected_lift: AuditText = ""
    metric: AuditText = ""


class AuditSummary(_AuditSection):
    executive_summary: AuditText = ""
    priority_level: AuditText = ""
    estimated_value: AuditText = ""


class AuditMetadata(_AuditSection):
    status: str = AuditStatus.DRAFT.value
    generated_date: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
    )
    audit_version: str = "1.0"


class AuditRecord(_AuditSection):
    """Long-form marketing audit. The nine analysis sections are required."""

    company_overview: CompanyOverviewSection
    funding_growth_stage: FundingGrowthStage
    leadership_team_structure: LeadershipTeamStructure
    marketing_agency_presence: MarketingAgencyPresence
    creative_strategy_gaps: CreativeStrategyGaps
    industry_opportunities: IndustryOpportunities
    competitive_benchmark: CompetitiveBenchmark
    hiring_talent_strategy: HiringTalentStrategy
    immediate_roi_moves: list[ROIMove] = Field(alias="immediateROIMoves")
    audit_summary: AuditSummary | None = None
    audit_metadata: AuditMetadata = Field(default_factory=AuditMetadata)

    @property
    def status(self) -> str:
        return self.audit_metadata.status

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Pipeline run state
# ---------------------------------------------------------------------------

class SavedCRM(BaseModel):
    company_id: str
    crm_id: str


class PipelineRun(BaseModel):
    """Everything one enrichment run produced, held in memory until saved."""
    profile: CompanyProfile
    official_name: str
    metadata: WebsiteMetadata | None = None
    research: ResearchResult | None = None
    filled_gaps: list[str] = Field(default_factory=list)
    crm: CRMRecord | None = None
    audit: AuditRecord | None = None
    saved: SavedCRM | None = None
    audit_id: str | None = None
    notices: list[str] = Field(default_factory=list)
    synthesis_error: str | None = None
    started_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
