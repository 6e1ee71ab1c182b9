"""Evidence fusion orchestrator.

Pipeline: local search -> need assessment -> external fan-out -> rank ->
diversify -> budget -> policy matrix -> optional grounding pass (which
re-runs rank/diversify/budget once).

Never raises: any unexpected failure yields a ``retrieval_strategy="fallback"``
bundle built from whatever local evidence is available.
"""

from __future__ import annotations

import logging
from typing import Any

from planning_balance.core.config import AppSettings
from planning_balance.interfaces import (
    IConstraintRegistry,
    IEmbedder,
    IPolicyRegistry,
    IPrecedentSearch,
    IReasoningService,
    IVectorStore,
)
from planning_balance.models import (
    RetrievalBundle,
    RetrievalContext,
    RetrievalOptions,
    RetrievalResult,
    SourceTier,
)
from planning_balance.observability.run_tracker import track_stage
from planning_balance.providers.tokenizer import TokenCounter
from planning_balance.retrieval.budgeter import ContextBudgeter
from planning_balance.retrieval.diversifier import diversify
from planning_balance.retrieval.fetcher import FetchOutcome, MultiSourceFetcher
from planning_balance.retrieval.grounding import GroundingEscalator
from planning_balance.retrieval.local_index import EvidenceIndex
from planning_balance.retrieval.need_assessor import RetrievalNeedAssessor
from planning_balance.retrieval.policy_matrix import build_policy_matrix
from planning_balance.retrieval.ranker import combine_and_rank

log = logging.getLogger(__name__)

_FALLBACK_CONTEXT_ITEMS = 5


class EvidenceFusion:
    """Fuse local and external evidence into a budgeted, ranked context."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        index: EvidenceIndex | None = None,
        reasoning: IReasoningService | None = None,
        precedent: IPrecedentSearch | None = None,
        policies: IPolicyRegistry | None = None,
        constraints: IConstraintRegistry | None = None,
        vector_store: IVectorStore | None = None,
        embedder: IEmbedder | None = None,
        token_counter: TokenCounter | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self.index = index or EvidenceIndex(embedder)
        self._embedder = embedder

        self._fetcher = MultiSourceFetcher(
            self.index,
            self._settings.retrieval,
            precedent_config=self._settings.precedent,
            precedent=precedent,
            policies=policies,
            constraints=constraints,
            vector_store=vector_store,
        )
        self._assessor = RetrievalNeedAssessor(reasoning, self._settings.retrieval)
        self._budgeter = ContextBudgeter(self._settings.budget, token_counter)
        self._escalator = GroundingEscalator(reasoning, self._settings.grounding)

    @property
    def tier_weights(self) -> dict[str, float]:
        weights = dict(self._settings.retrieval.tier_weights)
        weights[SourceTier.GROUNDING.value] = self._settings.grounding.relevance_weight
        return weights

    async def fuse_evidence(
        self,
        query: str,
        context: RetrievalContext | None = None,
        options: RetrievalOptions | None = None,
    ) -> RetrievalBundle:
        context = context or RetrievalContext()
        options = options or RetrievalOptions()
        try:
            return await self._fuse(query, context, options)
        except Exception as e:
            log.exception(f"Evidence fusion failed, falling back to local search: {e}")
            return self._fallback_bundle(query, context, options, e)

    async def _fuse(
        self, query: str, context: RetrievalContext, options: RetrievalOptions
    ) -> RetrievalBundle:
        query_embedding = options.query_embedding
        if query_embedding is None and self._embedder is not None:
            query_embedding = self._embedder.embed(query)

        with track_stage("retrieval.local") as stage:
            outcome = FetchOutcome()
            local = self._fetcher.search_local(query, query_embedding=query_embedding)
            for tier, items in _group(local).items():
                outcome.extend(tier, items)
            vectors = await self._fetcher.search_vectors(query_embedding)
            self._merge(outcome, vectors)
            stage.item_count = len(outcome.local)
            stage.warnings.extend(vectors.warnings)

        data_needs = None
        strategy = "local_only"
        if options.use_agentic:
            with track_stage("retrieval.needs"):
                data_needs = await self._assessor.assess(query, context, outcome.local)
            with track_stage("retrieval.external") as stage:
                external = await self._fetcher.fetch_external(query, context, data_needs)
                self._merge(outcome, external)
                stage.item_count = sum(len(v) for v in external.by_source.values())
                stage.warnings.extend(external.warnings)
            strategy = "hybrid"

        bundle = self._select(
            query, context, outcome, data_needs=data_needs, retrieval_strategy=strategy
        )

        grounding_enabled = (
            self._settings.grounding.enabled
            if options.enable_grounding is None
            else options.enable_grounding
        )
        if grounding_enabled and self._escalator.should_escalate(
            bundle.policy_matrix, bundle.context_items
        ):
            with track_stage("retrieval.grounding") as stage:
                groundings, warnings = await self._escalator.search(query, context)
                stage.warnings.extend(warnings)
                grounded = GroundingEscalator.to_results(groundings)
                stage.item_count = len(grounded)

            outcome.warnings.extend(warnings)
            if grounded:
                outcome.extend(SourceTier.GROUNDING, grounded)
            bundle = self._select(
                query,
                context,
                outcome,
                data_needs=data_needs,
                retrieval_strategy=strategy,
                grounding=groundings,
                grounding_applied=bool(grounded),
            )

        log.info(
            f"Fused {len(bundle.context_items)} context items "
            f"({bundle.budget_usage.total} tokens, {bundle.policy_matrix.count} policy codes)"
        )
        return bundle

    def _select(
        self, query: str, context: RetrievalContext, outcome: FetchOutcome, **extra: Any
    ) -> RetrievalBundle:
        """Rank, diversify, budget and extract policy codes."""
        retrieval = self._settings.retrieval
        diversity = self._settings.diversity

        ranked = combine_and_rank(outcome.by_source, self.tier_weights, top_k=retrieval.top_k)
        diversified = diversify(
            ranked,
            diversity.source_caps,
            default_cap=diversity.default_cap,
            duplicate_threshold=diversity.duplicate_threshold,
        )
        context_items, usage = self._budgeter.allocate(diversified)
        matrix = build_policy_matrix(context_items, self._settings.policy_matrix)

        return RetrievalBundle(
            query=query,
            context=context,
            by_source={tier.value: list(items) for tier, items in outcome.by_source.items()},
            ranked=ranked,
            diversified=diversified,
            context_items=context_items,
            budget_usage=usage,
            policy_matrix=matrix,
            warnings=list(outcome.warnings),
            **extra,
        )

    def _fallback_bundle(
        self,
        query: str,
        context: RetrievalContext,
        options: RetrievalOptions,
        error: Exception,
    ) -> RetrievalBundle:
        local: list[RetrievalResult] = []
        try:
            local = self._fetcher.search_local(query, query_embedding=options.query_embedding)
        except Exception as e:
            log.warning(f"Local fallback search failed: {e}")

        by_source = _group(local)
        ranked = combine_and_rank(by_source, self.tier_weights, top_k=self._settings.retrieval.top_k)
        diversity = self._settings.diversity
        diversified = diversify(
            ranked,
            diversity.source_caps,
            default_cap=diversity.default_cap,
            duplicate_threshold=diversity.duplicate_threshold,
        )[:_FALLBACK_CONTEXT_ITEMS]
        context_items, usage = self._budgeter.allocate(diversified)
        return RetrievalBundle(
            query=query,
            context=context,
            by_source={tier.value: items for tier, items in by_source.items()},
            ranked=ranked,
            diversified=diversified,
            context_items=context_items,
            budget_usage=usage,
            retrieval_strategy="fallback",
            warnings=[f"fusion: {type(error).__name__}: {error}"],
        )

    @staticmethod
    def _merge(target: FetchOutcome, other: FetchOutcome) -> None:
        for tier, items in other.by_source.items():
            target.extend(tier, items)
        target.warnings.extend(other.warnings)


def _group(results: list[RetrievalResult]) -> dict[SourceTier, list[RetrievalResult]]:
    grouped: dict[SourceTier, list[RetrievalResult]] = {}
    for r in results:
        grouped.setdefault(r.source, []).append(r)
    return grouped
