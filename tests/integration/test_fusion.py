"""End-to-end evidence fusion with fake sources."""

from __future__ import annotations

import pytest

from planning_balance.core.config import AppSettings, GroundingConfig
from planning_balance.exceptions import SourceFetchError
from planning_balance.models import (
    DocumentChunk,
    EvidenceRole,
    RetrievalContext,
    RetrievalOptions,
    SourceTier,
)
from planning_balance.retrieval import EvidenceFusion, EvidenceIndex
from tests.fakes.fake_reasoning import FakeReasoningService
from tests.fakes.fake_sources import (
    FakeConstraintRegistry,
    FakePolicyRegistry,
    FakePrecedentSearch,
    FakeVectorStore,
)

QUERY = "residential development parking 24 flats"

PRECEDENTS = [
    {"uid": "2023/1234/P", "description": "Erection of 20 flats", "address": "1 High Street"},
    {"uid": "2022/0456/P", "description": "", "address": ""},
]
POLICIES = {"camden": [{"code": "H4", "text": "Residential development should provide affordable housing"}]}
CONSTRAINTS = [{"id": "CA12", "type": "conservation_areas", "name": "West End Green Conservation Area"}]

ALL_NEEDS = {
    "needsPrecedentData": True,
    "needsPolicyData": True,
    "needsConstraintData": True,
    "constraintTypes": ["conservation_areas"],
    "additionalQueries": [],
}
NO_EXTERNAL_NEEDS = {
    "needsPrecedentData": False,
    "needsPolicyData": False,
    "needsConstraintData": False,
}


def _fusion(settings, index, **sources) -> EvidenceFusion:
    return EvidenceFusion(settings, index=index, **sources)


class TestHybrid:
    async def test_all_sources_contribute(self, settings, index, context) -> None:
        reasoning = FakeReasoningService(needs=ALL_NEEDS)
        precedent = FakePrecedentSearch(PRECEDENTS)
        constraints = FakeConstraintRegistry(CONSTRAINTS)
        fusion = _fusion(
            settings,
            index,
            reasoning=reasoning,
            precedent=precedent,
            policies=FakePolicyRegistry(POLICIES),
            constraints=constraints,
        )

        bundle = await fusion.fuse_evidence(QUERY, context, RetrievalOptions(enable_grounding=False))

        assert bundle.retrieval_strategy == "hybrid"
        assert bundle.data_needs is not None and bundle.data_needs.origin == "service"
        assert {"local_policy", "local_application", "precedent", "external_policy", "constraint"} <= set(
            bundle.by_source
        )
        # empty-content records are dropped during normalisation
        assert [r.reference for r in bundle.by_source["precedent"]] == ["2023/1234/P"]
        assert precedent.calls == [(QUERY, settings.retrieval.precedent_limit)]
        assert constraints.calls == [((51.5416, -0.1433), ["conservation_areas"])]
        assert bundle.warnings == []

        scores = [r.relevance_score for r in bundle.ranked]
        assert scores == sorted(scores, reverse=True)
        assert bundle.context_items
        assert bundle.budget_usage.total <= settings.budget.total_tokens

    async def test_targeted_queries_fetch_precedents(self, settings, index, context) -> None:
        needs = {**ALL_NEEDS, "additionalQueries": ["planning precedent for flats"]}
        precedent = FakePrecedentSearch(PRECEDENTS)
        fusion = _fusion(
            settings,
            index,
            reasoning=FakeReasoningService(needs=needs),
            precedent=precedent,
        )

        bundle = await fusion.fuse_evidence(QUERY, context, RetrievalOptions(enable_grounding=False))

        assert ("planning precedent for flats", settings.retrieval.targeted_precedent_limit) in precedent.calls
        targeted = bundle.by_source["targeted_additional"]
        assert targeted
        assert all(r.targeted_query == "planning precedent for flats" for r in targeted)

    async def test_failing_source_degrades_to_warning(self, settings, index, context) -> None:
        fusion = _fusion(
            settings,
            index,
            reasoning=FakeReasoningService(needs=ALL_NEEDS),
            precedent=FakePrecedentSearch(error=SourceFetchError("PlanIt down", source="planit")),
            policies=FakePolicyRegistry(POLICIES),
            constraints=FakeConstraintRegistry(CONSTRAINTS),
        )

        bundle = await fusion.fuse_evidence(QUERY, context, RetrievalOptions(enable_grounding=False))

        assert bundle.retrieval_strategy == "hybrid"
        assert bundle.by_source["precedent"] == []
        assert bundle.by_source["external_policy"]
        assert bundle.by_source["constraint"]
        assert bundle.warnings == ["precedent: SourceFetchError: PlanIt down"]

    async def test_generic_query_skips_precedents(self, settings, index) -> None:
        precedent = FakePrecedentSearch(PRECEDENTS)
        fusion = _fusion(
            settings, index, reasoning=FakeReasoningService(needs=ALL_NEEDS), precedent=precedent
        )

        bundle = await fusion.fuse_evidence(
            "flats", RetrievalContext(), RetrievalOptions(enable_grounding=False)
        )

        assert precedent.calls == []
        assert bundle.data_needs.needs_precedent_data is False

    async def test_reasoning_failure_fetches_everything(self, settings, index) -> None:
        precedent = FakePrecedentSearch(PRECEDENTS)
        fusion = _fusion(
            settings,
            index,
            reasoning=FakeReasoningService(needs=RuntimeError("model offline")),
            precedent=precedent,
        )

        bundle = await fusion.fuse_evidence(
            "flats", RetrievalContext(), RetrievalOptions(enable_grounding=False)
        )

        assert bundle.data_needs.origin == "default"
        assert len(precedent.calls) == 1


class TestLocalOnly:
    async def test_no_external_calls(self, settings, index, context) -> None:
        reasoning = FakeReasoningService(needs=ALL_NEEDS)
        precedent = FakePrecedentSearch(PRECEDENTS)
        fusion = _fusion(settings, index, reasoning=reasoning, precedent=precedent)

        bundle = await fusion.fuse_evidence(
            QUERY, context, RetrievalOptions(use_agentic=False, enable_grounding=False)
        )

        assert bundle.retrieval_strategy == "local_only"
        assert bundle.data_needs is None
        assert reasoning.needs_calls == []
        assert precedent.calls == []
        assert {r.source for r in bundle.context_items} <= {
            SourceTier.LOCAL_POLICY,
            SourceTier.LOCAL_APPLICATION,
        }


@pytest.fixture
def application_only_index(application_chunks) -> EvidenceIndex:
    idx = EvidenceIndex()
    idx.add(application_chunks)
    return idx


class TestGrounding:
    async def test_thin_policy_coverage_escalates(self, settings, application_only_index, context) -> None:
        reasoning = FakeReasoningService(
            needs=NO_EXTERNAL_NEEDS,
            topics=["design"],
            snippets=[
                "NPPF para 130 requires good design, see Policy DM12.",
                "Policy SP-12 sets the borough housing target.",
            ],
        )
        fusion = _fusion(settings, application_only_index, reasoning=reasoning)

        bundle = await fusion.fuse_evidence(QUERY, context)

        assert bundle.grounding_applied is True
        assert len(reasoning.grounding_calls) == settings.grounding.max_queries
        assert {"DM12", "SP-12"} <= {p.code for p in bundle.policy_matrix.policies}
        grounded = [r for r in bundle.context_items if r.source == SourceTier.GROUNDING]
        # identical snippets from both queries are kept once
        assert len(grounded) == 2
        assert all(r.role == EvidenceRole.POLICY for r in grounded)
        assert all(r.relevance_score == pytest.approx(0.4) for r in grounded)

    async def test_disabled_per_request(self, settings, application_only_index, context) -> None:
        reasoning = FakeReasoningService(needs=NO_EXTERNAL_NEEDS, snippets=["Policy DM12"])
        fusion = _fusion(settings, application_only_index, reasoning=reasoning)

        bundle = await fusion.fuse_evidence(QUERY, context, RetrievalOptions(enable_grounding=False))

        assert reasoning.grounding_calls == []
        assert bundle.grounding_applied is False

    async def test_timeout_becomes_warning(self, application_only_index, context) -> None:
        settings = AppSettings(grounding=GroundingConfig(timeout_seconds=0.05))
        reasoning = FakeReasoningService(
            needs=NO_EXTERNAL_NEEDS, snippets=["Policy DM12"], grounding_delay=1.0
        )
        fusion = _fusion(settings, application_only_index, reasoning=reasoning)

        bundle = await fusion.fuse_evidence(QUERY, context)

        assert bundle.grounding_applied is False
        assert bundle.retrieval_strategy == "hybrid"
        assert any("timed out" in w for w in bundle.warnings)

    async def test_grounding_error_becomes_warning(self, settings, application_only_index, context) -> None:
        reasoning = FakeReasoningService(
            needs=NO_EXTERNAL_NEEDS, grounding_error=RuntimeError("search quota")
        )
        fusion = _fusion(settings, application_only_index, reasoning=reasoning)

        bundle = await fusion.fuse_evidence(QUERY, context)

        assert bundle.grounding_applied is False
        assert "grounding: RuntimeError: search quota" in bundle.warnings


class TestFallback:
    async def test_internal_error_yields_local_fallback(self, settings, index, context) -> None:
        # A malformed vector record breaks normalisation inside the fusion pipeline
        fusion = _fusion(settings, index, vector_store=FakeVectorStore(policy=["not a record"]))

        bundle = await fusion.fuse_evidence(
            QUERY, context, RetrievalOptions(query_embedding=[1.0, 0.0])
        )

        assert bundle.retrieval_strategy == "fallback"
        assert bundle.warnings[0].startswith("fusion: AttributeError")
        assert 0 < len(bundle.context_items) <= 5
        assert {r.source for r in bundle.context_items} <= {
            SourceTier.LOCAL_POLICY,
            SourceTier.LOCAL_APPLICATION,
        }

    async def test_fallback_context_is_diversified(self, settings, policy_chunks, context) -> None:
        repeated = DocumentChunk(
            content="Residential development parking standard of one space per 24 flats.",
            role=EvidenceRole.POLICY,
            reference="LP-dup",
        )
        idx = EvidenceIndex()
        idx.add([*[repeated] * 4, *policy_chunks])
        fusion = _fusion(settings, idx, vector_store=FakeVectorStore(policy=["not a record"]))

        bundle = await fusion.fuse_evidence(
            QUERY, context, RetrievalOptions(query_embedding=[1.0, 0.0])
        )

        assert bundle.retrieval_strategy == "fallback"
        assert [r.content for r in bundle.ranked].count(repeated.content) == 4
        kept = [r.content for r in bundle.diversified]
        assert kept.count(repeated.content) == 1
        assert len(kept) == len(set(kept)) == 3
        assert {r.content for r in bundle.context_items} <= set(kept)

    async def test_vector_search_error_is_only_a_warning(self, settings, index, context) -> None:
        fusion = _fusion(settings, index, vector_store=FakeVectorStore(error=RuntimeError("pgvector down")))

        bundle = await fusion.fuse_evidence(
            QUERY,
            context,
            RetrievalOptions(use_agentic=False, query_embedding=[1.0, 0.0]),
        )

        assert bundle.retrieval_strategy == "local_only"
        assert bundle.warnings == ["vector:policy: RuntimeError: pgvector down"]


class TestDeterminism:
    async def test_same_inputs_same_bundle(self, settings, application_chunks, policy_chunks, context) -> None:
        async def run():
            idx = EvidenceIndex()
            idx.add([*application_chunks, *policy_chunks])
            fusion = _fusion(
                settings,
                idx,
                reasoning=FakeReasoningService(needs=ALL_NEEDS, snippets=["Policy DM12 design"]),
                precedent=FakePrecedentSearch(PRECEDENTS),
                policies=FakePolicyRegistry(POLICIES),
                constraints=FakeConstraintRegistry(CONSTRAINTS),
            )
            return await fusion.fuse_evidence(QUERY, context)

        first, second = await run(), await run()
        assert [r.model_dump() for r in first.context_items] == [
            r.model_dump() for r in second.context_items
        ]
        assert first.policy_matrix == second.policy_matrix
        assert first.budget_usage == second.budget_usage
