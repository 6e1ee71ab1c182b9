"""Swappable pattern matching: reasoning-service JSON and policy codes."""

from __future__ import annotations

from planning_balance.parsing.json_parser import (
    Parsed,
    ParseResult,
    Unparsed,
    parse_json,
    parse_json_object,
)
from planning_balance.parsing.policy_codes import (
    DEFAULT_PATTERNS,
    iter_policy_codes,
    normalize_code,
    snippet_around,
)

__all__ = [
    "Parsed",
    "Unparsed",
    "ParseResult",
    "parse_json",
    "parse_json_object",
    "DEFAULT_PATTERNS",
    "iter_policy_codes",
    "normalize_code",
    "snippet_around",
]
