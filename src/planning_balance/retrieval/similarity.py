"""Text and vector similarity helpers shared by retrieval stages."""

from __future__ import annotations

import math
import re
from collections.abc import Sequence

_WORD_RE = re.compile(r"\w+")


def tokenize(text: str) -> list[str]:
    """Lowercase word split, punctuation dropped."""
    return _WORD_RE.findall(text.lower()) if text else []


def token_set(text: str) -> frozenset[str]:
    return frozenset(tokenize(text))


def jaccard(a: frozenset[str], b: frozenset[str]) -> float:
    """Token-set Jaccard similarity. Two empty sets are identical (1.0)."""
    if not a and not b:
        return 1.0
    union = a | b
    return len(a & b) / len(union)


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 for empty, mismatched or zero vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


def term_coverage(query_terms: frozenset[str], text: str) -> float:
    """Fraction of query terms present in ``text``."""
    if not query_terms:
        return 0.0
    return len(query_terms & token_set(text)) / len(query_terms)
