"""In-memory policy and constraint registries.

Suitable for tests, the CLI and deployments that pre-load authority data;
production callers can substitute any ``IPolicyRegistry`` /
``IConstraintRegistry`` implementation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from planning_balance.core.types import SourceRecord

log = logging.getLogger(__name__)


class InMemoryPolicyRegistry:
    """Policies keyed by authority code (case-insensitive)."""

    def __init__(self, policies: Mapping[str, Iterable[SourceRecord]] | None = None) -> None:
        self._policies: dict[str, list[SourceRecord]] = {}
        for authority, records in (policies or {}).items():
            self.register(authority, records)

    def register(self, authority_code: str, records: Iterable[SourceRecord]) -> None:
        self._policies.setdefault(authority_code.lower(), []).extend(records)

    async def policies_for(self, authority_code: str) -> list[SourceRecord]:
        return list(self._policies.get(authority_code.lower(), []))


class InMemoryConstraintRegistry:
    """Constraint features returned regardless of location, filtered by type.

    Geometric intersection is an upstream concern; features are registered
    already resolved for the site under assessment.
    """

    def __init__(self, features: Iterable[SourceRecord] | None = None) -> None:
        self._features: list[SourceRecord] = list(features or [])

    def add(self, feature: SourceRecord) -> None:
        self._features.append(feature)

    async def constraints_at(
        self,
        coordinates: tuple[float, float],
        constraint_types: list[str],
    ) -> list[SourceRecord]:
        wanted = set(constraint_types)
        return [f for f in self._features if not wanted or f.get("type") in wanted]
