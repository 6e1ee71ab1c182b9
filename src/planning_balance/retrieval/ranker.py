"""Merge per-source results into one ranked list.

Final relevance is ``tier weight x item score``. ``fetch_order`` is assigned
walking tiers in declaration order, so the stable sort breaks exact ties
by tier priority and then by arrival within a tier.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from planning_balance.models import RetrievalResult, SourceTier


def combine_and_rank(
    by_source: Mapping[SourceTier, Sequence[RetrievalResult]],
    tier_weights: Mapping[str, float],
    *,
    top_k: int = 25,
) -> list[RetrievalResult]:
    """Weight, merge, sort descending and truncate to ``top_k``."""
    merged: list[RetrievalResult] = []
    order = 0
    for tier in SourceTier:
        weight = max(0.0, tier_weights.get(tier.value, 0.0))
        for item in by_source.get(tier, ()):
            merged.append(
                item.model_copy(
                    update={"relevance_score": weight * item.item_score, "fetch_order": order}
                )
            )
            order += 1

    merged.sort(key=lambda r: r.relevance_score, reverse=True)
    return merged[:top_k]
