"""Company research query: one Perplexity call parsed into a ResearchResult."""

from __future__ import annotations

import logging
from typing import Any

from lead_research.analysis.llm_client import LLMClient
from lead_research.analysis.parsing import parse_json_response
from lead_research.analysis.prompts import build_research_prompt
from lead_research.config import Config
from lead_research.errors import InvalidInput
from lead_research.input.sanitizer import NAME_MAX_LENGTH, is_valid_website, sanitize_text
from lead_research.models import ParseFailure, ResearchResult, is_unknown

logger = logging.getLogger(__name__)

RESEARCH_SECTIONS = tuple(ResearchResult.model_fields)


def normalize_research(data: dict[str, Any]) -> ResearchResult:
    """Coerce a decoded research payload into the canonical six-section shape.

    Missing sections and leaves become the sentinel (or [] for lists), lists
    given for scalar fields are joined, non-string list items are stringified.
    Values are never reinterpreted numerically.
    """
    return ResearchResult.model_validate(data)


def validate_research_input(company_name: str, website: str | None) -> tuple[str, str | None]:
    """Sanitize the query inputs. Raises InvalidInput before any network call."""
    name = sanitize_text(company_name, max_length=NAME_MAX_LENGTH)
    if not name:
        raise InvalidInput("Invalid company name provided")

    site = sanitize_text(website) if website else ""
    if site and not is_valid_website(site):
        raise InvalidInput("Invalid website URL provided")
    return name, site or None


class ResearchEngine:
    """Runs the primary research query against the research provider."""

    def __init__(self, llm: LLMClient, config: Config):
        self.llm = llm
        self.config = config

    async def research(
        self,
        company_name: str,
        website: str | None = None,
    ) -> ResearchResult | ParseFailure:
        """Research a company.

        Returns a ParseFailure (carrying the raw completion) when the answer
        holds no usable JSON. Transport problems propagate as
        UpstreamUnavailable / UpstreamRejected.
        """
        name, site = validate_research_input(company_name, website)
        prompt = build_research_prompt(name, site)

        logger.info("Researching %s%s", name, f" ({site})" if site else "")
        text = await self.llm.research_complete(
            prompt,
            max_tokens=self.config.research_max_tokens,
            temperature=self.config.research_temperature,
            timeout=self.config.research_timeout,
        )

        parsed = parse_json_response(text)
        if isinstance(parsed, ParseFailure):
            logger.error("Research response for %s was not JSON", name)
            return parsed

        if not any(section in parsed for section in RESEARCH_SECTIONS):
            logger.error(
                "Research response for %s has none of the expected sections: %s",
                name, sorted(parsed)[:10],
            )
            return ParseFailure(
                error="Research response JSON has none of the expected sections",
                raw_response=text,
            )

        result = normalize_research(parsed)
        resolved = sum(1 for v in result.leaves().values() if not is_unknown(v))
        logger.info("Research for %s resolved %d fields", name, resolved)
        return result
