"""Contracts for the external collaborators the engine consumes.

Every source may raise; the fetcher and escalator own the fail-open
boundary, so implementations do not need to swallow their own errors.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from planning_balance.core.types import SourceRecord
from planning_balance.models import GroundingResult, RetrievalContext
from planning_balance.parsing import ParseResult


@runtime_checkable
class IReasoningService(Protocol):
    """Structured judgements from an external reasoning model."""

    async def assess_data_needs(
        self,
        query: str,
        context: RetrievalContext,
        local_results_summary: str,
    ) -> ParseResult:
        """Return the raw judgement: ``Parsed(dict)`` or ``Unparsed(text)``.

        Raises:
            ReasoningServiceError: the service could not be reached.
        """
        ...

    async def grounded_search(self, query: str) -> GroundingResult:
        """Broad search used when primary evidence coverage is thin."""
        ...


@runtime_checkable
class IPrecedentSearch(Protocol):
    """Planning application / precedent search (e.g. PlanIt)."""

    async def search(self, query: str, limit: int = 20) -> list[SourceRecord]:
        ...


@runtime_checkable
class IPolicyRegistry(Protocol):
    """Adopted policies for a local planning authority."""

    async def policies_for(self, authority_code: str) -> list[SourceRecord]:
        ...


@runtime_checkable
class IConstraintRegistry(Protocol):
    """Designated constraints around a point."""

    async def constraints_at(
        self,
        coordinates: tuple[float, float],
        constraint_types: list[str],
    ) -> list[SourceRecord]:
        ...


@runtime_checkable
class IVectorStore(Protocol):
    """Optional persistent role-partitioned vector stores."""

    async def search_policy_vectors(
        self, embedding: list[float], **opts: Any
    ) -> list[SourceRecord]:
        ...

    async def search_application_vectors(
        self, embedding: list[float], **opts: Any
    ) -> list[SourceRecord]:
        ...


@runtime_checkable
class IEmbedder(Protocol):
    """Text embedding used for local semantic search."""

    def embed(self, text: str) -> list[float]:
        ...
