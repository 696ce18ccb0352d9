"""Best-effort gap filling: narrow follow-up queries for unresolved research fields.

Every gap gets one small Perplexity query. The queries run concurrently and
each one's failure is captured as a GapOutcome instead of failing the group.
Nothing in here raises to the pipeline.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from lead_research.analysis.llm_client import LLMClient
from lead_research.analysis.parsing import parse_json_response
from lead_research.analysis.prompts import build_gap_prompt
from lead_research.config import Config
from lead_research.models import ResearchResult, coerce_list, coerce_scalar, is_unknown

logger = logging.getLogger(__name__)


class GapTag(str, Enum):
    REVENUE = "revenue"
    HIRING = "hiring"
    AGENCY = "agency"
    NEWS = "news"


# gap -> (section, field) it fills
GAP_TARGETS: dict[GapTag, tuple[str, str]] = {
    GapTag.REVENUE: ("revenue", "annual_revenue"),
    GapTag.HIRING: ("hiring", "is_hiring"),
    GapTag.AGENCY: ("agency", "current_agency"),
    GapTag.NEWS: ("news", "recent_announcements"),
}

# Keys the model sometimes uses instead of the requested one
_ALT_KEYS: dict[GapTag, tuple[str, ...]] = {
    GapTag.REVENUE: ("annualRevenue", "annual_revenue"),
    GapTag.HIRING: ("isHiring", "is_hiring"),
    GapTag.AGENCY: ("currentAgency", "current_agency"),
    GapTag.NEWS: ("recentAnnouncements", "recent_announcements", "announcements"),
}

_YES = {"yes", "y", "true", "hiring", "actively hiring"}
_NO = {"no", "n", "false", "not hiring"}


@dataclass(frozen=True)
class GapOutcome:
    """Result of one gap query: a usable value, or why there is none."""

    gap: GapTag
    value: str | list[str] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class ResearchPatch:
    outcomes: dict[GapTag, GapOutcome] = field(default_factory=dict)

    @property
    def filled(self) -> list[GapTag]:
        return [gap for gap, outcome in self.outcomes.items() if outcome.ok]


# ---------------------------------------------------------------------------
# Gap detection
# ---------------------------------------------------------------------------

def identify_gaps(result: ResearchResult) -> frozenset[GapTag]:
    """Fields worth a follow-up query. Pure, so repeat calls agree."""
    gaps = set()
    for gap, (section, field_name) in GAP_TARGETS.items():
        if is_unknown(getattr(getattr(result, section), field_name)):
            gaps.add(gap)
    return frozenset(gaps)


# ---------------------------------------------------------------------------
# Value extraction
# ---------------------------------------------------------------------------

def _normalize_hiring(value: str) -> str | None:
    lowered = value.strip().lower().rstrip(".")
    if lowered in _YES or lowered.startswith("yes"):
        return "yes"
    if lowered in _NO or lowered.startswith("no,") or lowered.startswith("no "):
        return "no"
    return None


def _clean_value(gap: GapTag, raw) -> str | list[str] | None:
    if gap == GapTag.NEWS:
        items = coerce_list(raw)
        return items or None

    value = coerce_scalar(raw)
    if is_unknown(value):
        return None
    if gap == GapTag.HIRING:
        return _normalize_hiring(value)
    return value


def _from_json(gap: GapTag, text: str):
    """Value from a JSON answer; None when the answer is not JSON at all."""
    try:
        bare = json.loads(text.strip())
    except (json.JSONDecodeError, ValueError):
        bare = None
    if isinstance(bare, (str, list)):
        return bare

    data = parse_json_response(text)
    if not isinstance(data, dict):
        return None
    for key in (gap.value, *_ALT_KEYS[gap]):
        if key in data:
            return data[key]
    return None


def _from_regex(gap: GapTag, text: str):
    if gap == GapTag.NEWS:
        match = re.search(r'"news"\s*:\s*\[(.*?)\]', text, re.DOTALL)
        if match:
            return re.findall(r'"([^"]+)"', match.group(1))
        return None
    match = re.search(rf'"{gap.value}"\s*:\s*"([^"]+)"', text)
    return match.group(1) if match else None


def extract_gap_value(gap: GapTag, text: str | None) -> str | list[str] | None:
    """Pick the single requested value out of a gap answer.

    JSON first, then a ``"<gap>": "<value>"`` pattern in prose. Anything else
    is treated as ambiguous and yields None.
    """
    if not text or not text.strip():
        return None
    raw = _from_json(gap, text)
    if raw is None:
        raw = _from_regex(gap, text)
    if raw is None:
        return None
    return _clean_value(gap, raw)


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def apply_patch(result: ResearchResult, patch: ResearchPatch) -> ResearchResult:
    """Return a new result with usable gap values applied.

    Only placeholders are overwritten. A patch with no usable outcomes
    returns the original object itself.
    """
    updates: dict[str, dict] = {}
    for gap, outcome in patch.outcomes.items():
        if not outcome.ok:
            continue
        section, field_name = GAP_TARGETS[gap]
        if not is_unknown(getattr(getattr(result, section), field_name)):
            continue
        updates.setdefault(section, {})[field_name] = outcome.value

    if not updates:
        return result

    sections = {
        name: getattr(result, name).model_copy(update=fields)
        for name, fields in updates.items()
    }
    return result.model_copy(update=sections)


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class FallbackController:
    """Fans out one narrow query per gap and merges whatever comes back."""

    def __init__(self, llm: LLMClient, config: Config):
        self.llm = llm
        self.config = config

    async def _query_gap(self, gap: GapTag, company_name: str, website: str | None) -> GapOutcome:
        text = await self.llm.research_complete(
            build_gap_prompt(gap.value, company_name, website),
            max_tokens=self.config.fallback_max_tokens,
            temperature=self.config.research_temperature,
            timeout=self.config.fallback_timeout,
        )
        value = extract_gap_value(gap, text)
        if value is None:
            return GapOutcome(gap=gap, error=f"No usable value in answer: {text[:80]!r}")
        return GapOutcome(gap=gap, value=value)

    async def fill_gaps(
        self,
        result: ResearchResult,
        company_name: str,
        website: str | None = None,
        gaps: frozenset[GapTag] | None = None,
    ) -> ResearchPatch:
        if gaps is None:
            gaps = identify_gaps(result)
        ordered = sorted(gaps, key=lambda g: g.value)
        if not ordered:
            return ResearchPatch()

        logger.info("Filling %d research gaps for %s: %s",
                    len(ordered), company_name, ", ".join(g.value for g in ordered))

        answers = await asyncio.gather(
            *[self._query_gap(gap, company_name, website) for gap in ordered],
            return_exceptions=True,
        )

        outcomes: dict[GapTag, GapOutcome] = {}
        for gap, answer in zip(ordered, answers):
            if isinstance(answer, BaseException):
                logger.warning("%s fallback failed for %s: %s", gap.value, company_name, answer)
                outcomes[gap] = GapOutcome(gap=gap, error=str(answer) or type(answer).__name__)
            else:
                if not answer.ok:
                    logger.warning("%s fallback inconclusive for %s: %s",
                                   gap.value, company_name, answer.error)
                outcomes[gap] = answer
        return ResearchPatch(outcomes=outcomes)

    async def enrich(
        self,
        result: ResearchResult,
        company_name: str,
        website: str | None = None,
    ) -> ResearchResult:
        """identify -> fill -> apply. Returns the input unchanged on any error."""
        try:
            patch = await self.fill_gaps(result, company_name, website)
            enriched = apply_patch(result, patch)
        except Exception as e:
            logger.warning("Fallback enrichment failed for %s: %s", company_name, e)
            return result
        if patch.filled:
            logger.info("Fallback filled %s for %s",
                        ", ".join(g.value for g in patch.filled), company_name)
        return enriched
