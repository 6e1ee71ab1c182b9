"""Best-effort JSON extraction from reasoning-service responses.

Returns a tagged result instead of an empty dict so callers can tell a
parsed judgement from free text they must fall back on::

    result = parse_json(text)
    if isinstance(result, Parsed):
        use(result.value)
    else:
        heuristic(result.raw_text)
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Union

log = logging.getLogger(__name__)

_TRAILING_COMMA = re.compile(r",\s*([}\]])")


@dataclass(frozen=True)
class Parsed:
    """JSON recovered from the response."""

    value: Any


@dataclass(frozen=True)
class Unparsed:
    """No JSON could be recovered; the raw text is kept for heuristics."""

    raw_text: str


ParseResult = Union[Parsed, Unparsed]


def _try_parse(s: str) -> Any | None:
    """Attempt JSON parse with common fixups."""
    s = s.strip()
    if not s:
        return None
    try:
        return json.loads(s)
    except json.JSONDecodeError:
        pass
    # Python-style literals
    s = re.sub(r"\bNone\b", "null", s)
    s = re.sub(r"\bTrue\b", "true", s)
    s = re.sub(r"\bFalse\b", "false", s)
    try:
        return json.loads(s)
    except json.JSONDecodeError:
        pass
    s = _TRAILING_COMMA.sub(r"\1", s)
    try:
        return json.loads(s)
    except json.JSONDecodeError:
        return None


def _balanced_span(content: str, open_ch: str, close_ch: str) -> str | None:
    """Return the first balanced ``open_ch ... close_ch`` span, string-aware."""
    idx = content.find(open_ch)
    if idx == -1:
        return None
    depth = 0
    in_string = False
    escape = False
    for i in range(idx, len(content)):
        ch = content[i]
        if escape:
            escape = False
            continue
        if ch == "\\":
            escape = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return content[idx : i + 1]
    return None


def parse_json(content: str | None) -> ParseResult:
    """Parse JSON from an LLM response, handling fences, prose and common issues."""
    if not content:
        return Unparsed(raw_text="")

    # Strategy 1: ```json ... ``` fences, then generic ``` fences
    for fence in ("```json", "```"):
        start = content.find(fence)
        if start == -1:
            continue
        inner = content[start + len(fence):]
        end = inner.find("```")
        if end != -1:
            result = _try_parse(inner[:end])
            if result is not None:
                return Parsed(result)

    # Strategy 2: full content
    result = _try_parse(content)
    if result is not None:
        return Parsed(result)

    # Strategy 3: first balanced object or array inside prose
    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        span = _balanced_span(content, open_ch, close_ch)
        if span is None:
            continue
        result = _try_parse(span)
        if result is not None:
            return Parsed(result)

    log.warning(
        "Failed to parse JSON from reasoning response",
        extra={"response_length": len(content), "response_preview": content[:200]},
    )
    return Unparsed(raw_text=content)


def parse_json_object(content: str | None) -> ParseResult:
    """Like :func:`parse_json` but only a JSON object counts as parsed."""
    result = parse_json(content)
    if isinstance(result, Parsed) and not isinstance(result.value, dict):
        return Unparsed(raw_text=content or "")
    return result
