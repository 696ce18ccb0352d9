"""Data-availability scoring: deterministic, no LLM involvement.

Used to brief the synthesis model and as the lead score when the model's own
score cannot be read. Tier buckets are left to the model.
"""

from __future__ import annotations

import re

from lead_research.models import ResearchResult, is_unknown

# Points per research leaf, summing to 100
FIELD_WEIGHTS: dict[str, int] = {
    "funding.total_funding": 10,
    "funding.last_round": 8,
    "funding.funding_rounds": 4,
    "revenue.annual_revenue": 12,
    "revenue.revenue_range": 6,
    "people.ceo": 10,
    "people.key_decision_maker": 10,
    "people.linkedin_profiles": 6,
    "hiring.is_hiring": 6,
    "hiring.open_roles": 6,
    "hiring.hiring_signals": 4,
    "agency.current_agency": 6,
    "agency.agency_relationship": 2,
    "news.recent_announcements": 6,
    "news.company_updates": 4,
}

# Answers that technically resolve a field but say nothing concrete
_VAGUE = re.compile(
    r"\b(not (publicly )?(disclosed|available)|undisclosed|private(ly held)?|n/?a|none found|no data)\b",
    re.IGNORECASE,
)


def _field_credit(value) -> float:
    """1.0 for a specific value, 0.5 for a vague or thin one, 0 when unresolved."""
    if is_unknown(value):
        return 0.0
    if isinstance(value, list):
        return 1.0 if len(value) >= 2 else 0.5
    if _VAGUE.search(str(value)):
        return 0.5
    return 1.0


def compute_availability_score(research: ResearchResult) -> int:
    """Score 0-100 from how many research fields resolved and how specifically."""
    leaves = research.leaves()
    total = 0.0
    for path, weight in FIELD_WEIGHTS.items():
        total += weight * _field_credit(leaves.get(path))
    return max(0, min(100, round(total)))


def summarize_availability(research: ResearchResult) -> str:
    """Plain-text briefing of resolved vs unresolved fields for the synthesis prompt."""
    leaves = research.leaves()
    resolved = [p for p in FIELD_WEIGHTS if not is_unknown(leaves.get(p))]
    missing = [p for p in FIELD_WEIGHTS if is_unknown(leaves.get(p))]

    lines = [
        f"Resolved fields ({len(resolved)}/{len(FIELD_WEIGHTS)}): "
        + (", ".join(resolved) if resolved else "none"),
        "Unresolved fields: " + (", ".join(missing) if missing else "none"),
        f"Availability score: {compute_availability_score(research)}/100",
    ]
    return "\n".join(lines)
