"""Grounding escalation when primary policy coverage is thin."""

from __future__ import annotations

import asyncio
import logging

from planning_balance.core.config import GroundingConfig
from planning_balance.interfaces import IReasoningService
from planning_balance.models import (
    EvidenceRole,
    GroundingResult,
    PolicyMatrix,
    RetrievalContext,
    RetrievalResult,
    SourceTier,
)
from planning_balance.parsing import iter_policy_codes

log = logging.getLogger(__name__)


def grounding_queries(query: str, context: RetrievalContext, limit: int = 2) -> list[str]:
    """Broad queries widening the request to adopted policy."""
    development = context.development_type or "development"
    where = f" in {context.authority}" if context.authority else ""
    candidates = [
        f"{development} planning policy requirements{where}",
        f"{query} national planning policy framework",
    ]
    queries: list[str] = []
    for q in candidates:
        q = " ".join(q.split())
        if q and q not in queries:
            queries.append(q)
    return queries[:limit]


class GroundingEscalator:
    """Issue a few bounded grounded searches and turn snippets into evidence."""

    def __init__(self, reasoning: IReasoningService | None, config: GroundingConfig) -> None:
        self._reasoning = reasoning
        self._config = config

    def should_escalate(self, matrix: PolicyMatrix, context_items: list[RetrievalResult]) -> bool:
        if self._reasoning is None:
            return False
        return (
            matrix.count < self._config.min_policy_codes
            and len(context_items) < self._config.min_context_items
        )

    async def search(
        self, query: str, context: RetrievalContext
    ) -> tuple[list[GroundingResult], list[str]]:
        """Run the grounding queries. Failures and timeouts become warnings."""
        if self._reasoning is None:
            return [], []
        queries = grounding_queries(query, context, self._config.max_queries)
        settled = await asyncio.gather(
            *(self._bounded(q) for q in queries), return_exceptions=True
        )

        results: list[GroundingResult] = []
        warnings: list[str] = []
        for q, outcome in zip(queries, settled):
            if isinstance(outcome, asyncio.TimeoutError):
                message = f"grounding: timed out after {self._config.timeout_seconds}s for {q!r}"
            elif isinstance(outcome, Exception):
                message = f"grounding: {type(outcome).__name__}: {outcome}"
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results.append(outcome)
                continue
            log.warning(message)
            warnings.append(message)
        return results, warnings

    async def _bounded(self, query: str) -> GroundingResult:
        assert self._reasoning is not None
        return await asyncio.wait_for(
            self._reasoning.grounded_search(query), timeout=self._config.timeout_seconds
        )

    @staticmethod
    def to_results(groundings: list[GroundingResult]) -> list[RetrievalResult]:
        """One evidence item per distinct snippet; policy role when it cites a code."""
        results: list[RetrievalResult] = []
        seen: set[str] = set()
        for grounding in groundings:
            for snippet in grounding.snippets:
                text = " ".join(snippet.split())
                if not text or text in seen:
                    continue
                seen.add(text)
                cites_code = next(iter_policy_codes(text), None) is not None
                results.append(
                    RetrievalResult(
                        source=SourceTier.GROUNDING,
                        content=text,
                        item_score=1.0,
                        role=EvidenceRole.POLICY if cites_code else EvidenceRole.OTHER,
                        reference=grounding.query,
                        metadata={"inferred_topics": grounding.inferred_topics},
                    )
                )
        return results
