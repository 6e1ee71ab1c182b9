"""Distinct policy codes cited by the budgeted context."""

from __future__ import annotations

import re
from collections.abc import Sequence

from planning_balance.core.config import PolicyMatrixConfig
from planning_balance.models import EvidenceRole, PolicyMatrix, PolicyMatrixEntry, RetrievalResult
from planning_balance.parsing import DEFAULT_PATTERNS, iter_policy_codes, snippet_around


def build_policy_matrix(
    items: Sequence[RetrievalResult],
    config: PolicyMatrixConfig | None = None,
    *,
    patterns: Sequence[re.Pattern[str]] = DEFAULT_PATTERNS,
) -> PolicyMatrix:
    """Scan policy-role items in order and collect first-seen codes."""
    config = config or PolicyMatrixConfig()
    policy_items = [i for i in items if i.role == EvidenceRole.POLICY][: config.max_scan_items]

    entries: list[PolicyMatrixEntry] = []
    seen: set[str] = set()
    for item in policy_items:
        for code, offset in iter_policy_codes(item.content, patterns):
            if code in seen:
                continue
            seen.add(code)
            entries.append(
                PolicyMatrixEntry(
                    code=code,
                    snippet=snippet_around(item.content, offset, config.snippet_chars),
                )
            )
            if len(entries) >= config.max_codes:
                return PolicyMatrix(count=len(entries), policies=entries)

    return PolicyMatrix(count=len(entries), policies=entries)
