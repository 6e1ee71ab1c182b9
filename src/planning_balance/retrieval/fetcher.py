"""Multi-source evidence fetch.

Local role-partitioned search runs first and never touches the network.
External sources then fan out as independent tasks joined with
``asyncio.gather(return_exceptions=True)``: each failure degrades to an
empty contribution plus a warning and never cancels its siblings.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any

from planning_balance.core.config import PrecedentConfig, RetrievalConfig
from planning_balance.core.types import SourceRecord
from planning_balance.interfaces import (
    IConstraintRegistry,
    IPolicyRegistry,
    IPrecedentSearch,
    IVectorStore,
)
from planning_balance.models import (
    DataNeeds,
    EvidenceRole,
    RetrievalContext,
    RetrievalResult,
    SourceTier,
)
from planning_balance.retrieval.local_index import EvidenceIndex

log = logging.getLogger(__name__)

_PRECEDENT_TERMS = ("application", "planning", "development")
_POLICY_TERMS = ("policy", "standard", "requirement")
_PRECEDENT_METADATA = ("uid", "name", "address", "app_state", "app_type", "decided_date", "link")

_LOCAL_TIERS = {
    EvidenceRole.POLICY: SourceTier.LOCAL_POLICY,
    EvidenceRole.APPLICATION: SourceTier.LOCAL_APPLICATION,
}


@dataclass
class FetchOutcome:
    """Settled results of one fetch, keyed by source tier."""

    by_source: dict[SourceTier, list[RetrievalResult]] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def extend(self, tier: SourceTier, results: list[RetrievalResult]) -> None:
        self.by_source.setdefault(tier, []).extend(results)

    @property
    def local(self) -> list[RetrievalResult]:
        return [
            *self.by_source.get(SourceTier.LOCAL_POLICY, []),
            *self.by_source.get(SourceTier.LOCAL_APPLICATION, []),
        ]


# ── Record normalisation ─────────────────────────────────────────────


def _score(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return min(max(float(value), 0.0), 1.0)


def _text(*values: Any) -> str:
    for v in values:
        if isinstance(v, str) and v.strip():
            return v.strip()
    return ""


def normalize_precedent(
    record: SourceRecord,
    *,
    default_confidence: float = 0.7,
    tier: SourceTier = SourceTier.PRECEDENT,
    targeted_query: str | None = None,
) -> RetrievalResult | None:
    content = " ".join(
        part for part in (_text(record.get("description")), _text(record.get("address"))) if part
    )
    if not content:
        content = _text(record.get("context"), record.get("summary"))
    if not content:
        return None
    return RetrievalResult(
        source=tier,
        content=content,
        item_score=_score(record.get("similarity"), default_confidence),
        role=EvidenceRole.OTHER,
        reference=str(record.get("uid") or record.get("reference") or record.get("name") or ""),
        targeted_query=targeted_query,
        metadata={k: record[k] for k in _PRECEDENT_METADATA if record.get(k) is not None},
    )


def normalize_policy(
    record: SourceRecord,
    *,
    item_score: float,
    tier: SourceTier = SourceTier.EXTERNAL_POLICY,
    targeted_query: str | None = None,
) -> RetrievalResult | None:
    content = _text(record.get("text"), record.get("description"))
    if not content:
        return None
    title = _text(record.get("title"), record.get("name"))
    return RetrievalResult(
        source=tier,
        content=content,
        item_score=item_score,
        role=EvidenceRole.POLICY,
        reference=str(record.get("code") or record.get("reference") or record.get("id") or ""),
        targeted_query=targeted_query,
        metadata={"title": title} if title else {},
    )


def normalize_constraint(record: SourceRecord) -> RetrievalResult | None:
    content = _text(record.get("description"), record.get("name"))
    if not content:
        return None
    metadata = {
        k: record[k]
        for k in ("type", "coverage_percent", "distance", "designation")
        if record.get(k) is not None
    }
    return RetrievalResult(
        source=SourceTier.CONSTRAINT,
        content=content,
        item_score=0.8,
        role=EvidenceRole.OTHER,
        reference=str(record.get("id") or record.get("reference") or ""),
        metadata=metadata,
    )


def is_relevant_policy(record: SourceRecord, query: str, context: RetrievalContext) -> bool:
    """Keep a policy when it shares a query word or names the development type."""
    text = _text(record.get("text"), record.get("description")).lower()
    if not text:
        return False
    if any(word in text for word in query.lower().split()):
        return True
    return bool(context.development_type and context.development_type.lower() in text)


# ── Fetcher ──────────────────────────────────────────────────────────


class MultiSourceFetcher:
    """Local search followed by a settle-all external fan-out."""

    def __init__(
        self,
        index: EvidenceIndex,
        config: RetrievalConfig,
        *,
        precedent_config: PrecedentConfig | None = None,
        precedent: IPrecedentSearch | None = None,
        policies: IPolicyRegistry | None = None,
        constraints: IConstraintRegistry | None = None,
        vector_store: IVectorStore | None = None,
    ) -> None:
        self._index = index
        self._config = config
        self._precedent_config = precedent_config or PrecedentConfig()
        self._precedent = precedent
        self._policies = policies
        self._constraints = constraints
        self._vector_store = vector_store

    # ── Local ──

    def search_local(
        self,
        query: str,
        *,
        query_embedding: list[float] | None = None,
        top_k: int | None = None,
        tier_override: SourceTier | None = None,
        targeted_query: str | None = None,
    ) -> list[RetrievalResult]:
        """Search both local partitions synchronously."""
        results: list[RetrievalResult] = []
        for role, tier in _LOCAL_TIERS.items():
            hits = self._index.search(
                query,
                role,
                top_k=top_k or self._config.local_top_k,
                query_embedding=query_embedding,
            )
            for chunk, similarity in hits:
                results.append(
                    RetrievalResult(
                        source=tier_override or tier,
                        content=chunk.content,
                        item_score=similarity,
                        role=role,
                        reference=chunk.reference or chunk.document_name,
                        targeted_query=targeted_query,
                        metadata={"document": chunk.document_name} if chunk.document_name else {},
                    )
                )
        return results

    async def search_vectors(self, query_embedding: list[float] | None) -> FetchOutcome:
        """Query the optional persistent vector stores."""
        outcome = FetchOutcome()
        if self._vector_store is None or query_embedding is None:
            return outcome

        searches = (
            ("vector:policy", EvidenceRole.POLICY, self._vector_store.search_policy_vectors),
            (
                "vector:application",
                EvidenceRole.APPLICATION,
                self._vector_store.search_application_vectors,
            ),
        )
        for label, role, search in searches:
            try:
                records = await search(query_embedding, top_k=self._config.local_top_k)
            except Exception as e:
                self._warn(outcome, label, e)
                continue
            tier = _LOCAL_TIERS[role]
            outcome.extend(
                tier,
                [
                    RetrievalResult(
                        source=tier,
                        content=_text(record.get("text"), record.get("content")),
                        item_score=_score(record.get("similarity", record.get("score")), 0.5),
                        role=role,
                        reference=str(record.get("id") or record.get("reference") or ""),
                    )
                    for record in records or []
                    if _text(record.get("text"), record.get("content"))
                ],
            )
        return outcome

    # ── External ──

    async def fetch_external(
        self,
        query: str,
        context: RetrievalContext,
        needs: DataNeeds,
    ) -> FetchOutcome:
        """Fan out to every source the data needs call for."""
        outcome = FetchOutcome()
        tasks: list[tuple[str, SourceTier, Awaitable[list[RetrievalResult]]]] = []

        if needs.needs_precedent_data and self._precedent is not None:
            tasks.append(("precedent", SourceTier.PRECEDENT, self._fetch_precedents(query)))
        if needs.needs_policy_data and context.authority and self._policies is not None:
            tasks.append(
                ("policy", SourceTier.EXTERNAL_POLICY, self._fetch_policies(query, context))
            )
        if needs.needs_constraint_data and context.coordinates and self._constraints is not None:
            tasks.append(
                (
                    "constraint",
                    SourceTier.CONSTRAINT,
                    self._fetch_constraints(context.coordinates, needs.constraint_types),
                )
            )
        for sub_query in needs.additional_queries[: self._config.max_additional_queries]:
            tasks.append(
                (
                    f"targeted:{sub_query}",
                    SourceTier.TARGETED_ADDITIONAL,
                    self._targeted_search(sub_query, context, outcome),
                )
            )

        if not tasks:
            return outcome

        log.info(f"Fetching {len(tasks)} external sources: {[label for label, _, _ in tasks]}")
        settled = await asyncio.gather(*(coro for _, _, coro in tasks), return_exceptions=True)

        for (label, tier, _), result in zip(tasks, settled):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self._warn(outcome, label, result)
                outcome.extend(tier, [])
                continue
            outcome.extend(tier, result)
        return outcome

    async def _fetch_precedents(
        self, query: str, *, limit: int | None = None, targeted_query: str | None = None
    ) -> list[RetrievalResult]:
        assert self._precedent is not None
        records = await self._precedent.search(query, limit or self._config.precedent_limit)
        tier = SourceTier.TARGETED_ADDITIONAL if targeted_query else SourceTier.PRECEDENT
        results = (
            normalize_precedent(
                r,
                default_confidence=self._precedent_config.default_confidence,
                tier=tier,
                targeted_query=targeted_query,
            )
            for r in records or []
        )
        return [r for r in results if r is not None]

    async def _fetch_policies(self, query: str, context: RetrievalContext) -> list[RetrievalResult]:
        assert self._policies is not None and context.authority
        records = await self._policies.policies_for(context.authority)
        relevant = [r for r in records or [] if is_relevant_policy(r, query, context)]
        item_score = 0.9 if "policy" in query.lower() else 0.6
        results = (normalize_policy(r, item_score=item_score) for r in relevant)
        return [r for r in results if r is not None][: self._config.policy_limit]

    async def _fetch_constraints(
        self, coordinates: tuple[float, float], constraint_types: list[str]
    ) -> list[RetrievalResult]:
        assert self._constraints is not None
        records = await self._constraints.constraints_at(coordinates, constraint_types)
        results = (normalize_constraint(r) for r in records or [])
        return [r for r in results if r is not None]

    async def _targeted_search(
        self,
        sub_query: str,
        context: RetrievalContext,
        outcome: FetchOutcome,
    ) -> list[RetrievalResult]:
        """Local, precedent and policy lookups for one suggested sub-query.

        Each lookup fails independently; a failure is recorded on ``outcome``.
        """
        results = self.search_local(
            sub_query,
            tier_override=SourceTier.TARGETED_ADDITIONAL,
            targeted_query=sub_query,
        )
        lowered = sub_query.lower()

        if self._precedent is not None and any(t in lowered for t in _PRECEDENT_TERMS):
            try:
                results.extend(
                    await self._fetch_precedents(
                        sub_query,
                        limit=self._config.targeted_precedent_limit,
                        targeted_query=sub_query,
                    )
                )
            except Exception as e:
                self._warn(outcome, f"targeted-precedent:{sub_query}", e)

        if (
            self._policies is not None
            and context.authority
            and any(t in lowered for t in _POLICY_TERMS)
        ):
            try:
                records = await self._policies.policies_for(context.authority)
                first_word = lowered.split()[0]
                matched = [
                    r
                    for r in records or []
                    if first_word in _text(r.get("text"), r.get("description")).lower()
                ]
                for record in matched[: self._config.targeted_policy_limit]:
                    result = normalize_policy(
                        record,
                        item_score=0.6,
                        tier=SourceTier.TARGETED_ADDITIONAL,
                        targeted_query=sub_query,
                    )
                    if result is not None:
                        results.append(result)
            except Exception as e:
                self._warn(outcome, f"targeted-policy:{sub_query}", e)

        return results

    @staticmethod
    def _warn(outcome: FetchOutcome, label: str, error: Exception) -> None:
        message = f"{label}: {type(error).__name__}: {error}"
        log.warning(f"Source fetch failed, continuing without it: {message}")
        outcome.warnings.append(message)
