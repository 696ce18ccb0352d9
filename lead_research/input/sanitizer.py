"""Input sanitization and website URL validation.

Guards, not validators: every function here degrades to a safe default
("" or False) instead of raising.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

SEARCH_TEXT_MAX_LENGTH = 500
NAME_MAX_LENGTH = 200

_BLOCKED_SCHEMES = re.compile(r"^\s*(javascript|data|vbscript|file|ftp|mailto):", re.IGNORECASE)
_BLOCKED_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}

_ANGLE_BRACKETS = re.compile(r"[<>]")
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)


def sanitize_text(value: object, max_length: int = SEARCH_TEXT_MAX_LENGTH) -> str:
    """Strip markup/script patterns, trim and truncate free text.

    Removal repeats until nothing changes so that nested patterns such as
    ``jajavascript:vascript:`` cannot reassemble, which keeps the function
    idempotent.
    """
    if not isinstance(value, str) or not value:
        return ""

    text = value
    while True:
        cleaned = _ANGLE_BRACKETS.sub("", text)
        cleaned = _JS_PROTOCOL.sub("", cleaned)
        cleaned = _EVENT_HANDLER.sub("", cleaned)
        if cleaned == text:
            break
        text = cleaned

    text = text.strip()[:max_length]
    # Truncation can expose trailing whitespace
    return text.rstrip()


def _with_scheme(url: str) -> str:
    url = url.strip()
    if url.lower().startswith(("http://", "https://")):
        return url
    return f"https://{url}"


def normalize_website(url: object) -> str:
    """Return the URL with a default https:// scheme, or "" if it is invalid."""
    if not is_valid_website(url):
        return ""
    return _with_scheme(url)  # type: ignore[arg-type]


def is_valid_website(url: object) -> bool:
    """Accept only public http(s) URLs. Missing scheme defaults to https."""
    if not url or not isinstance(url, str):
        return False
    if _BLOCKED_SCHEMES.match(url):
        return False

    try:
        parts = urlsplit(_with_scheme(url))
        if parts.scheme not in ("http", "https"):
            return False
        hostname = parts.hostname or ""
        # Accessing .port validates it (raises ValueError when out of range)
        parts.port
    except ValueError:
        return False

    if not hostname or any(c.isspace() for c in hostname):
        return False
    if hostname in _BLOCKED_HOSTS:
        return False
    if ".." in hostname or "//" in hostname:
        return False
    return True


def extract_domain(url: object) -> str:
    """Best-effort hostname with the www. prefix removed. Never raises."""
    if not isinstance(url, str) or not url.strip():
        return ""
    try:
        hostname = urlsplit(_with_scheme(url)).hostname or ""
        if hostname:
            return re.sub(r"^www\.", "", hostname)
    except ValueError:
        pass
    fallback = re.sub(r"^https?://", "", url.strip(), flags=re.IGNORECASE)
    fallback = re.sub(r"^www\.", "", fallback)
    return fallback.split("/", 1)[0]
