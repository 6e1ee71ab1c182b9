"""Tests for role-bucketed token budgeting."""

from __future__ import annotations

import itertools
import random

import pytest

from planning_balance.core.config import BudgetConfig
from planning_balance.models import EvidenceRole, RetrievalResult, SourceTier
from planning_balance.retrieval import ContextBudgeter


def _words(n: int, role: EvidenceRole, tier: SourceTier = SourceTier.LOCAL_POLICY) -> RetrievalResult:
    return RetrievalResult(source=tier, content=" ".join(["word"] * n), role=role)


def _assert_within_limits(budgeter, config, kept, usage) -> None:
    limits = budgeter.bucket_limits
    assert usage.policy <= limits[EvidenceRole.POLICY]
    assert usage.application <= limits[EvidenceRole.APPLICATION]
    assert usage.other <= limits[EvidenceRole.OTHER]
    assert usage.total <= config.total_tokens
    assert usage.total == sum(budgeter.cost(k) for k in kept)


class TestContextBudgeter:
    def test_bucket_limits(self) -> None:
        budgeter = ContextBudgeter(BudgetConfig(total_tokens=1000))
        limits = budgeter.bucket_limits
        assert limits[EvidenceRole.POLICY] == 450
        assert limits[EvidenceRole.APPLICATION] == 350
        assert limits[EvidenceRole.OTHER] == 200

    def test_cost_is_words_times_factor_rounded_up(self) -> None:
        budgeter = ContextBudgeter(BudgetConfig())
        assert budgeter.cost(_words(10, EvidenceRole.POLICY)) == 13
        assert budgeter.cost(_words(3, EvidenceRole.POLICY)) == 4

    def test_skips_oversized_items_but_keeps_later_small_ones(self) -> None:
        budgeter = ContextBudgeter(BudgetConfig(total_tokens=100))
        big = _words(100, EvidenceRole.POLICY)
        small = _words(10, EvidenceRole.POLICY)
        kept, usage = budgeter.allocate([big, small])
        assert kept == [small]
        assert usage.policy == 13

    def test_buckets_are_independent(self) -> None:
        budgeter = ContextBudgeter(BudgetConfig(total_tokens=100))
        items = [
            _words(30, EvidenceRole.POLICY),
            _words(30, EvidenceRole.APPLICATION),
            _words(30, EvidenceRole.OTHER, SourceTier.PRECEDENT),
            _words(12, EvidenceRole.OTHER, SourceTier.PRECEDENT),
        ]
        kept, usage = budgeter.allocate(items)
        # the 39-token application item exceeds its 35-token bucket
        assert kept == [items[0], items[3]]
        assert usage.policy == 39
        assert usage.application == 0
        assert usage.other == 16

    @pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
    def test_usage_never_exceeds_limits(self, seed: int) -> None:
        config = BudgetConfig(total_tokens=300)
        budgeter = ContextBudgeter(config)
        items = [
            _words(n, role)
            for n in (5, 40, 17, 80, 3, 22)
            for role in EvidenceRole
        ]
        random.Random(seed).shuffle(items)
        kept, usage = budgeter.allocate(items)
        _assert_within_limits(budgeter, config, kept, usage)

    def test_every_ordering_stays_within_limits(self) -> None:
        config = BudgetConfig(total_tokens=100)
        budgeter = ContextBudgeter(config)
        items = [
            _words(20, EvidenceRole.POLICY),
            _words(15, EvidenceRole.POLICY),
            _words(12, EvidenceRole.APPLICATION),
            _words(20, EvidenceRole.APPLICATION),
            _words(8, EvidenceRole.OTHER, SourceTier.PRECEDENT),
            _words(10, EvidenceRole.OTHER, SourceTier.PRECEDENT),
        ]
        for ordering in itertools.permutations(items):
            kept, usage = budgeter.allocate(list(ordering))
            _assert_within_limits(budgeter, config, kept, usage)

    def test_order_preserved(self) -> None:
        budgeter = ContextBudgeter(BudgetConfig())
        items = [_words(i, EvidenceRole.POLICY) for i in (5, 1, 3)]
        kept, _ = budgeter.allocate(items)
        assert kept == items

    def test_zero_budget_keeps_nothing(self) -> None:
        kept, usage = ContextBudgeter(BudgetConfig(total_tokens=0)).allocate(
            [_words(1, EvidenceRole.POLICY)]
        )
        assert kept == []
        assert usage.total == 0
