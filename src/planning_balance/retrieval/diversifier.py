"""Per-source caps and near-duplicate removal over a ranked list."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Mapping, Sequence

from planning_balance.models import RetrievalResult
from planning_balance.retrieval.similarity import jaccard, token_set

log = logging.getLogger(__name__)


def diversify(
    ranked: Sequence[RetrievalResult],
    source_caps: Mapping[str, int],
    *,
    default_cap: int = 3,
    duplicate_threshold: float = 0.9,
) -> list[RetrievalResult]:
    """Greedy selection in rank order.

    An item is skipped when its source has reached its cap, or when its
    token-set Jaccard similarity with any already-kept item exceeds
    ``duplicate_threshold``. Skipped items are never reconsidered.
    """
    kept: list[RetrievalResult] = []
    kept_tokens: list[frozenset[str]] = []
    per_source: Counter[str] = Counter()
    capped = duplicates = 0

    for item in ranked:
        source = item.source.value
        if per_source[source] >= source_caps.get(source, default_cap):
            capped += 1
            continue
        tokens = token_set(item.content)
        if any(jaccard(tokens, other) > duplicate_threshold for other in kept_tokens):
            duplicates += 1
            continue
        kept.append(item)
        kept_tokens.append(tokens)
        per_source[source] += 1

    if capped or duplicates:
        log.debug(f"Diversifier dropped {capped} capped and {duplicates} duplicate items")
    return kept
