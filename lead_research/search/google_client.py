"""Async Google Custom Search client for ad-hoc company lookups."""

from __future__ import annotations

import logging

import httpx

from lead_research.input.sanitizer import extract_domain, is_valid_website, sanitize_text
from lead_research.scrape.extractor import decode_html_entities

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"

TOPIC_QUERIES: dict[str, str] = {
    "funding": "funding investment Series A B C D E venture capital",
    "news": "news announcements updates",
    "jobs": (
        "hiring jobs careers marketing content creator social media specialist "
        "copywriter brand manager digital marketing SEO graphic designer video editor"
    ),
    "people": "CEO founder executive team leadership",
    "company": "company profile about overview business model",
}


def build_query(query: str, company_name: str, website: str | None = None) -> str:
    """Company name plus topic terms, restricted to the company's site when known."""
    parts = [sanitize_text(company_name), sanitize_text(query)]
    q = " ".join(p for p in parts if p)
    if website and is_valid_website(website):
        q = f"{q} site:{extract_domain(website)}"
    return q


def process_results(data: dict) -> dict:
    return {
        "results": [
            {
                "title": decode_html_entities(item.get("title", "")),
                "link": item.get("link", ""),
                "snippet": decode_html_entities(item.get("snippet", "")),
            }
            for item in data.get("items") or []
        ]
    }


async def search_google(
    query: str,
    company_name: str,
    api_key: str,
    engine_id: str,
    website: str | None = None,
    num_results: int = 10,
    timeout: int = 20,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """Execute a Google Custom Search.

    Returns {"results": [{title, link, snippet}]}. On failure the result list
    is empty and an 'error' key says why.
    """
    if not api_key or not engine_id:
        return {"results": [], "error": "Google search is not configured"}

    params = {
        "key": api_key,
        "cx": engine_id,
        "q": build_query(query, company_name, website),
        "num": str(num_results),
    }

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(GOOGLE_SEARCH_URL, params=params)
            response.raise_for_status()
            return process_results(response.json())
    except httpx.TimeoutException:
        logger.warning("Google search timeout for query: %s", params["q"][:80])
        return {"results": [], "error": "timeout"}
    except httpx.HTTPStatusError as e:
        logger.warning("Google search HTTP %d for query: %s", e.response.status_code, params["q"][:80])
        return {"results": [], "error": f"http_{e.response.status_code}"}
    except Exception as e:
        logger.warning("Google search error for query '%s': %s", params["q"][:80], e)
        return {"results": [], "error": str(e)}


async def search_topic(
    topic: str,
    company_name: str,
    api_key: str,
    engine_id: str,
    website: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """Search one of the TOPIC_QUERIES topics; unknown topics search generally."""
    query = TOPIC_QUERIES.get(topic, "company information")
    return await search_google(
        query, company_name, api_key, engine_id, website=website, transport=transport,
    )
