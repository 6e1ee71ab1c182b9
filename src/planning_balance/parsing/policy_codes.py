"""Policy-code pattern matching.

Two code families are recognised:

* letter prefix of two or more characters followed by 1-3 digits,
  optionally with a sub-clause (``CS10``, ``HO3``, ``DM12.2``)
* letter prefix, hyphen, digits (``H-4``, ``SP-12``, ``ENV-3``)

Kept free of scoring logic so patterns can be swapped or extended without
touching the policy matrix builder.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence

PREFIX_DIGITS = re.compile(r"\b([A-Z]{2,})\s?(\d{1,3}(?:\.\d{1,2})?)\b")
PREFIX_HYPHEN_DIGITS = re.compile(r"\b([A-Z]{1,})-(\d{1,4})\b")

DEFAULT_PATTERNS: tuple[re.Pattern[str], ...] = (PREFIX_DIGITS, PREFIX_HYPHEN_DIGITS)

# Uppercase tokens that look like codes but are units, years or plan sections
_STOPWORDS = frozenset({"NPPF", "PPG", "SPD", "CIL", "PTAL", "GIA", "GFA", "AOD", "UK", "EIA", "SUDS"})


def normalize_code(prefix: str, number: str, *, hyphenated: bool = False) -> str:
    """Canonical form: uppercase prefix, no inner whitespace, hyphen kept."""
    sep = "-" if hyphenated else ""
    return f"{prefix.upper()}{sep}{number}"


def iter_policy_codes(
    text: str,
    patterns: Sequence[re.Pattern[str]] = DEFAULT_PATTERNS,
) -> Iterator[tuple[str, int]]:
    """Yield ``(code, offset)`` for every code match, in text order."""
    if not text:
        return
    matches: list[tuple[int, str]] = []
    for pattern in patterns:
        for m in pattern.finditer(text):
            prefix, number = m.group(1), m.group(2)
            if prefix in _STOPWORDS:
                continue
            # separator between prefix and number decides the canonical form
            hyphenated = "-" in text[m.end(1) : m.start(2)]
            matches.append((m.start(), normalize_code(prefix, number, hyphenated=hyphenated)))
    matches.sort(key=lambda pair: pair[0])
    for offset, code in matches:
        yield code, offset


def snippet_around(text: str, offset: int, max_chars: int = 240) -> str:
    """Return at most ``max_chars`` of whitespace-collapsed text starting near ``offset``."""
    start = max(0, offset - max_chars // 4)
    window = " ".join(text[start : start + max_chars * 2].split())
    return window[:max_chars]
