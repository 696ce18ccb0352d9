"""Async HTTP fetch for company homepages with a typed failure taxonomy."""

from __future__ import annotations

import logging

import httpx

from lead_research.models import FetchFailure, FetchFailureKind

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; CRM-Bot/1.0)"

_MESSAGES = {
    FetchFailureKind.TIMEOUT: (
        "Website is taking too long to respond. Please try again or check "
        "if the website is accessible."
    ),
    FetchFailureKind.BLOCKED: (
        "Website is blocking automated requests. This is common for some websites."
    ),
    FetchFailureKind.NOT_FOUND: "Website not found. Please check the URL.",
    FetchFailureKind.SERVER_ERROR: "Website server error. Please try again later.",
    FetchFailureKind.UNREACHABLE: (
        "Unable to reach the website. Please check the URL and try again."
    ),
    FetchFailureKind.INVALID_INPUT: "Invalid website URL provided.",
}


def failure(kind: FetchFailureKind, detail: str = "", status_code: int | None = None) -> FetchFailure:
    """Build a FetchFailure with the user-facing message for its kind."""
    message = _MESSAGES.get(kind) or f"Failed to fetch website: {detail}"
    return FetchFailure(kind=kind, message=message, status_code=status_code)


def classify_status(status_code: int, reason: str = "") -> FetchFailure:
    """Map an HTTP error status to a FetchFailure."""
    if status_code == 403:
        return failure(FetchFailureKind.BLOCKED, status_code=status_code)
    if status_code == 404:
        return failure(FetchFailureKind.NOT_FOUND, status_code=status_code)
    if status_code >= 500:
        return failure(FetchFailureKind.SERVER_ERROR, status_code=status_code)
    return FetchFailure(
        kind=FetchFailureKind.FETCH_FAILED,
        message=f"Website returned error: {status_code} {reason}".strip(),
        status_code=status_code,
    )


async def fetch_url(
    url: str,
    timeout: float = 8.0,
    max_redirects: int = 3,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[str | None, FetchFailure | None]:
    """Fetch a URL and return (html_content, failure).

    Returns (content, None) on success or (None, FetchFailure) on failure.
    Single attempt, no retries.
    """
    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            max_redirects=max_redirects,
            headers={"User-Agent": USER_AGENT},
            transport=transport,
        ) as client:
            response = await client.get(url)

            if response.status_code >= 400:
                return None, classify_status(response.status_code, response.reason_phrase)

            return response.text, None

    except httpx.TimeoutException:
        logger.info("Website fetch timed out after %.0fs: %s", timeout, url)
        return None, failure(FetchFailureKind.TIMEOUT)
    except httpx.TooManyRedirects:
        return None, failure(FetchFailureKind.FETCH_FAILED, "too many redirects")
    except httpx.TransportError as e:
        logger.info("Website unreachable %s: %s", url, e)
        return None, failure(FetchFailureKind.UNREACHABLE)
    except Exception as e:
        logger.warning("Website fetch failed for %s: %s", url, e)
        return None, failure(FetchFailureKind.FETCH_FAILED, str(e)[:100])
