"""Website metadata extraction: company name, title and description from raw HTML.

Regex-based on purpose. Homepages are only mined for a handful of head tags,
so no HTML parser is involved and malformed markup never raises.
"""

from __future__ import annotations

import logging
import re

import httpx

from lead_research.input.sanitizer import is_valid_website, normalize_website
from lead_research.models import FetchFailureKind, WebsiteMetadata
from lead_research.scrape.http_scraper import failure, fetch_url

logger = logging.getLogger(__name__)

_META_NAME_FIRST = re.compile(
    r"""<meta[^>]+?(?:name|property)\s*=\s*["']([^"']+)["'][^>]*?\scontent\s*=\s*["']([^"']+)["'][^>]*>""",
    re.IGNORECASE,
)
_META_CONTENT_FIRST = re.compile(
    r"""<meta[^>]+?content\s*=\s*["']([^"']+)["'][^>]*?\s(?:name|property)\s*=\s*["']([^"']+)["'][^>]*>""",
    re.IGNORECASE,
)
_TITLE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
_TITLE_SEPARATORS = re.compile(r"[|–—-].*$", re.DOTALL)
_ENTITY = re.compile(r"&(#\d+|#[xX][0-9a-fA-F]+|amp|quot|#39|lt|gt);")

_NAMED_ENTITIES = {"amp": "&", "quot": '"', "lt": "<", "gt": ">"}

# msapplication-TileColor normally holds a colour, not a name
_COLOR_VALUE = re.compile(r"^(#[0-9a-f]{3,8}|(rgb|rgba|hsl|hsla)\(.*\))$", re.IGNORECASE)
_CSS_COLOR_WORDS = {
    "white", "black", "red", "green", "blue", "yellow", "orange", "purple",
    "gray", "grey", "silver", "navy", "teal", "transparent",
}


def _decode_entity(match: re.Match) -> str:
    ref = match.group(1)
    if ref in _NAMED_ENTITIES:
        return _NAMED_ENTITIES[ref]
    try:
        if ref[:2].lower() == "#x":
            return chr(int(ref[2:], 16))
        return chr(int(ref[1:]))
    except (ValueError, OverflowError):
        return match.group(0)


def decode_html_entities(text: str | None) -> str | None:
    """Decode &amp; &quot; &#39; &lt; &gt; and numeric references in one pass."""
    if not text:
        return text
    return _ENTITY.sub(_decode_entity, text)


def extract_meta_tags(html: str) -> dict[str, str]:
    """Collect meta name/property -> content pairs. Later duplicates win."""
    found: list[tuple[int, str, str]] = []
    for m in _META_NAME_FIRST.finditer(html):
        found.append((m.start(), m.group(1), m.group(2)))
    for m in _META_CONTENT_FIRST.finditer(html):
        found.append((m.start(), m.group(2), m.group(1)))

    tags: dict[str, str] = {}
    for _, key, content in sorted(found):
        tags[key] = content
    return tags


def extract_title(html: str) -> str | None:
    match = _TITLE.search(html)
    if not match:
        return None
    return decode_html_entities(match.group(1).strip()) or None


def extract_description(meta_tags: dict[str, str]) -> str | None:
    desc = meta_tags.get("description") or meta_tags.get("og:description")
    return decode_html_entities(desc) if desc else None


def _looks_like_color(value: str) -> bool:
    value = value.strip()
    return bool(_COLOR_VALUE.match(value)) or value.lower() in _CSS_COLOR_WORDS


def extract_company_name(meta_tags: dict[str, str], html: str) -> str | None:
    """Pick a company name: og:site_name, application-name, tile colour, title."""
    tile = meta_tags.get("msapplication-TileColor")
    candidates = [
        meta_tags.get("og:site_name"),
        meta_tags.get("application-name"),
        tile if tile and not _looks_like_color(tile) else None,
    ]
    for candidate in candidates:
        if candidate and candidate.strip():
            return decode_html_entities(candidate.strip())

    title = extract_title(html)
    if title:
        name = _TITLE_SEPARATORS.sub("", title).strip()
        if name:
            return name
    return None


def parse_metadata(url: str, html: str) -> WebsiteMetadata:
    """Build WebsiteMetadata from an already-fetched page."""
    meta_tags = extract_meta_tags(html)
    return WebsiteMetadata(
        url=url,
        company_name=extract_company_name(meta_tags, html),
        title=extract_title(html),
        description=extract_description(meta_tags),
        meta_tags={k: decode_html_entities(v) or "" for k, v in meta_tags.items()},
    )


async def fetch_metadata(
    website: str,
    timeout: float = 8.0,
    max_redirects: int = 3,
    transport: httpx.AsyncBaseTransport | None = None,
) -> WebsiteMetadata:
    """Fetch a company homepage and extract its metadata.

    Never raises: an invalid URL or any fetch problem is reported on
    ``WebsiteMetadata.failure`` and callers fall back to the form-entered name.
    """
    if not is_valid_website(website):
        return WebsiteMetadata(
            url=str(website or ""),
            failure=failure(FetchFailureKind.INVALID_INPUT),
        )

    url = normalize_website(website)
    html, fetch_failure = await fetch_url(
        url, timeout=timeout, max_redirects=max_redirects, transport=transport,
    )
    if fetch_failure is not None:
        logger.info("Metadata fetch failed for %s: %s", url, fetch_failure.kind.value)
        return WebsiteMetadata(url=url, failure=fetch_failure)

    metadata = parse_metadata(url, html or "")
    logger.debug(
        "Metadata for %s: name=%r title=%r (%d meta tags)",
        url, metadata.company_name, metadata.title, len(metadata.meta_tags),
    )
    return metadata
