"""Token budget allocation across policy, application and other evidence."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from planning_balance.core.config import BudgetConfig
from planning_balance.models import BudgetUsage, EvidenceRole, RetrievalResult
from planning_balance.providers.tokenizer import TokenCounter

log = logging.getLogger(__name__)


class ContextBudgeter:
    """Order-preserving truncation of ranked evidence to a token budget.

    Each item must fit both its role bucket and the global remainder; an item
    that does not fit is skipped and later, smaller items may still be kept.
    """

    def __init__(self, config: BudgetConfig, counter: TokenCounter | None = None) -> None:
        self._config = config
        self._counter = counter or TokenCounter("words", tokens_per_word=config.tokens_per_word)

    @property
    def bucket_limits(self) -> dict[EvidenceRole, int]:
        total = self._config.total_tokens
        return {
            EvidenceRole.POLICY: int(total * self._config.policy_share),
            EvidenceRole.APPLICATION: int(total * self._config.application_share),
            EvidenceRole.OTHER: int(total * self._config.other_share),
        }

    def cost(self, item: RetrievalResult) -> int:
        return self._counter.count(item.content)

    def allocate(self, items: Sequence[RetrievalResult]) -> tuple[list[RetrievalResult], BudgetUsage]:
        remaining = dict(self.bucket_limits)
        global_remaining = self._config.total_tokens
        used = {role: 0 for role in EvidenceRole}
        kept: list[RetrievalResult] = []

        for item in items:
            cost = self.cost(item)
            if cost > remaining[item.role] or cost > global_remaining:
                continue
            kept.append(item)
            remaining[item.role] -= cost
            global_remaining -= cost
            used[item.role] += cost

        usage = BudgetUsage(
            policy=used[EvidenceRole.POLICY],
            application=used[EvidenceRole.APPLICATION],
            other=used[EvidenceRole.OTHER],
        )
        log.debug(f"Budgeted {len(kept)}/{len(items)} items, {usage.total} tokens")
        return kept, usage
