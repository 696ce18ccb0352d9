"""Defensive JSON extraction from model completions.

Strategies are tried in order; the first one that yields a JSON object wins.
When none does, a ParseFailure carrying the raw text is returned (not raised)
and the caller decides whether that is fatal.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Protocol, Sequence

from lead_research.models import ParseFailure

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```[a-zA-Z]*\s*\n?(.*?)```", re.DOTALL)


class ParseStrategy(Protocol):
    name: str

    def parse(self, text: str) -> dict | None:
        """Return the decoded JSON object, or None when this strategy does not apply."""
        ...


def _loads_object(candidate: str) -> dict | None:
    try:
        data = json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


class WholeBodyStrategy:
    """The whole completion is a JSON object."""

    name = "whole_body"

    def parse(self, text: str) -> dict | None:
        return _loads_object(text.strip())


class FencedBlockStrategy:
    """A ```json fenced block holds the object."""

    name = "fenced_block"

    def parse(self, text: str) -> dict | None:
        for match in _FENCED_BLOCK.finditer(text):
            data = _loads_object(match.group(1).strip())
            if data is not None:
                return data
        return None


class EmbeddedObjectStrategy:
    """A balanced-brace object sits inside leading or trailing prose."""

    name = "embedded_object"

    def parse(self, text: str) -> dict | None:
        start = text.find("{")
        while start != -1:
            end = _matching_brace(text, start)
            if end is None:
                return None
            data = _loads_object(text[start:end + 1])
            if data is not None:
                return data
            start = text.find("{", start + 1)
        return None


def _matching_brace(text: str, start: int) -> int | None:
    """Index of the brace closing the one at ``start``, skipping string contents."""
    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(text)):
        c = text[i]
        if escape:
            escape = False
            continue
        if c == "\\":
            escape = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


DEFAULT_STRATEGIES: tuple[ParseStrategy, ...] = (
    WholeBodyStrategy(),
    FencedBlockStrategy(),
    EmbeddedObjectStrategy(),
)


def parse_json_response(
    text: str | None,
    strategies: Sequence[ParseStrategy] = DEFAULT_STRATEGIES,
) -> dict | ParseFailure:
    """Run the strategies in order over a completion."""
    raw = text or ""
    if not raw.strip():
        return ParseFailure(error="Empty response from model", raw_response=raw)

    for strategy in strategies:
        data = strategy.parse(raw)
        if data is not None:
            logger.debug("Parsed model response with %s strategy", strategy.name)
            return data

    logger.error("No JSON object found in model response. Preview: %s", raw[:200])
    return ParseFailure(error="Failed to parse model response as JSON", raw_response=raw)
