"""Tests for data-needs assessment: fallbacks, coercion and the specificity gate."""

from __future__ import annotations

import pytest

from planning_balance.core.config import RetrievalConfig
from planning_balance.exceptions import ReasoningServiceError
from planning_balance.models import RetrievalContext, RetrievalResult, SourceTier
from planning_balance.retrieval import RetrievalNeedAssessor, is_specific
from tests.fakes.fake_reasoning import FakeReasoningService

SPECIFIC_QUERY = "rear extension at 14 Mill Lane"
GENERIC = RetrievalContext()


def _assessor(reasoning) -> RetrievalNeedAssessor:
    return RetrievalNeedAssessor(reasoning, RetrievalConfig())


class TestConservativeDefault:
    async def test_no_service(self) -> None:
        needs = await _assessor(None).assess("anything", GENERIC, [])
        assert needs.origin == "default"
        assert needs.needs_precedent_data and needs.needs_policy_data and needs.needs_constraint_data

    async def test_service_error_fetches_everything(self) -> None:
        reasoning = FakeReasoningService(needs=ReasoningServiceError("boom"))
        # Generic query: the specificity gate must not apply to the default
        needs = await _assessor(reasoning).assess("extension", GENERIC, [])
        assert needs.origin == "default"
        assert needs.needs_precedent_data is True
        assert needs.constraint_types == ["conservation_areas", "listed_buildings", "flood_zones"]
        assert needs.reasoning == "Assessment failed, fetching all available data"


class TestServiceJudgement:
    async def test_flags_are_coerced(self) -> None:
        reasoning = FakeReasoningService(
            needs={
                "needsPlanItData": False,
                "needsPolicyData": "yes",
                "reasoning": "policy only",
            }
        )
        needs = await _assessor(reasoning).assess(SPECIFIC_QUERY, GENERIC, [])
        assert needs.origin == "service"
        assert needs.needs_precedent_data is False
        assert needs.needs_policy_data is True
        # absent flag fails open
        assert needs.needs_constraint_data is True
        assert needs.reasoning == "policy only"

    async def test_additional_queries_deduplicated_and_capped(self) -> None:
        reasoning = FakeReasoningService(
            needs={"additionalQueries": ["a", "a", " b ", "", 7, "c", "d"]}
        )
        needs = await _assessor(reasoning).assess(SPECIFIC_QUERY, GENERIC, [])
        assert needs.additional_queries == ["a", "b", "c"]

    async def test_constraint_types(self) -> None:
        reasoning = FakeReasoningService(needs={"constraintTypes": ["green_belt"]})
        needs = await _assessor(reasoning).assess(SPECIFIC_QUERY, GENERIC, [])
        assert needs.constraint_types == ["green_belt"]

    async def test_local_summary_is_sent(self) -> None:
        reasoning = FakeReasoningService()
        local = [RetrievalResult(source=SourceTier.LOCAL_POLICY, content="Policy H4 text")]
        await _assessor(reasoning).assess(SPECIFIC_QUERY, GENERIC, local)
        summary = reasoning.needs_calls[0]["summary"]
        assert summary.startswith("1 local documents found.")
        assert "Policy H4 text" in summary


class TestHeuristicFallback:
    async def test_keywords(self) -> None:
        reasoning = FakeReasoningService(needs="Check precedent decisions and heritage assets.")
        needs = await _assessor(reasoning).assess(SPECIFIC_QUERY, GENERIC, [])
        assert needs.origin == "heuristic"
        assert needs.needs_precedent_data is True
        assert needs.needs_policy_data is False
        assert needs.needs_constraint_data is True
        assert needs.reasoning == "JSON parsing failed, using heuristic analysis"


class TestSpecificityGate:
    async def test_generic_query_suppresses_precedent(self) -> None:
        reasoning = FakeReasoningService(needs={"needsPrecedentData": True})
        needs = await _assessor(reasoning).assess("rear extension", GENERIC, [])
        assert needs.needs_precedent_data is False
        assert needs.needs_policy_data is True

    async def test_address_makes_query_specific(self) -> None:
        reasoning = FakeReasoningService(needs={"needsPrecedentData": True})
        context = RetrievalContext(address="Mill Lane, NW6")
        needs = await _assessor(reasoning).assess("rear extension", context, [])
        assert needs.needs_precedent_data is True

    async def test_heuristic_is_gated_too(self) -> None:
        reasoning = FakeReasoningService(needs="precedent please")
        needs = await _assessor(reasoning).assess("rear extension", GENERIC, [])
        assert needs.needs_precedent_data is False

    @pytest.mark.parametrize(
        ("query", "address", "expected"),
        [
            ("3 storey block", "", True),
            ("rear extension", "", False),
            ("rear extension", "12345", False),
            ("rear extension", "123456", True),
            ("rear extension", "   NW6   ", False),
        ],
    )
    def test_is_specific(self, query: str, address: str, expected: bool) -> None:
        assert is_specific(query, RetrievalContext(address=address)) is expected
