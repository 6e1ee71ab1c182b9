"""Decide which external sources are worth querying for a request.

Fail-open: a missing, failing or incoherent reasoning service yields the
conservative all-sources default. Fusion tolerates surplus candidates but
not missing signal.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from planning_balance.core.config import RetrievalConfig
from planning_balance.interfaces import IReasoningService
from planning_balance.models import DataNeeds, RetrievalContext, RetrievalResult
from planning_balance.parsing import Parsed

log = logging.getLogger(__name__)

_NUMERIC_TOKEN = re.compile(r"\d")

# DataNeeds field -> accepted response keys
_FLAG_KEYS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("needs_precedent_data", ("needsPrecedentData", "needs_precedent_data", "needsPlanItData")),
    ("needs_policy_data", ("needsPolicyData", "needs_policy_data")),
    ("needs_constraint_data", ("needsConstraintData", "needs_constraint_data")),
)

_HEURISTIC_TERMS: dict[str, tuple[str, ...]] = {
    "needs_precedent_data": ("planit", "precedent", "appeal"),
    "needs_policy_data": ("policy", "local plan"),
    "needs_constraint_data": ("constraint", "heritage"),
}


def conservative_default(reason: str) -> DataNeeds:
    return DataNeeds(reasoning=reason, origin="default")


def summarize_local_results(results: list[RetrievalResult], *, max_items: int = 3) -> str:
    """Short text summary of local hits for the reasoning prompt."""
    lines = [f"{len(results)} local documents found."]
    for r in results[:max_items]:
        excerpt = " ".join(r.content.split())[:160]
        lines.append(f"- [{r.role.value}] {excerpt}")
    return "\n".join(lines)


def is_specific(query: str, context: RetrievalContext, *, min_address_length: int = 5) -> bool:
    """A query is specific if it names a number or the site has a real address."""
    if _NUMERIC_TOKEN.search(query):
        return True
    return len(context.address.strip()) > min_address_length


def _coerce_flag(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
    return None


def _coerce_queries(value: Any, limit: int) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    queries: list[str] = []
    for q in value:
        if isinstance(q, str) and q.strip() and q.strip() not in queries:
            queries.append(q.strip())
    return queries[:limit]


class RetrievalNeedAssessor:
    """Turn a reasoning-service judgement into :class:`DataNeeds`."""

    def __init__(
        self,
        reasoning: IReasoningService | None,
        config: RetrievalConfig,
    ) -> None:
        self._reasoning = reasoning
        self._config = config

    async def assess(
        self,
        query: str,
        context: RetrievalContext,
        local_results: list[RetrievalResult],
    ) -> DataNeeds:
        if self._reasoning is None:
            return conservative_default("No reasoning service configured, fetching all sources")

        try:
            result = await self._reasoning.assess_data_needs(
                query, context, summarize_local_results(local_results)
            )
        except Exception as e:
            log.warning(f"Data needs assessment failed, fetching all sources: {e}")
            return conservative_default("Assessment failed, fetching all available data")

        if isinstance(result, Parsed) and isinstance(result.value, dict):
            needs = self._from_judgement(result.value)
        else:
            log.warning("Data needs response was not JSON, using heuristic analysis")
            needs = self._from_text(getattr(result, "raw_text", ""))

        return self._apply_specificity_gate(needs, query, context)

    def _from_judgement(self, data: dict[str, Any]) -> DataNeeds:
        flags: dict[str, bool] = {}
        for name, keys in _FLAG_KEYS:
            values = [_coerce_flag(data[k]) for k in keys if k in data]
            known = [v for v in values if v is not None]
            # Absent or unreadable flags fail open
            flags[name] = any(known) if known else True

        fields: dict[str, Any] = dict(flags)
        constraint_types = data.get("constraintTypes", data.get("constraint_types"))
        if isinstance(constraint_types, list) and constraint_types:
            fields["constraint_types"] = [str(t) for t in constraint_types if t]

        return DataNeeds(
            **fields,
            additional_queries=_coerce_queries(
                data.get("additionalQueries", data.get("additional_queries")),
                self._config.max_additional_queries,
            ),
            reasoning=str(data.get("reasoning") or ""),
            origin="service",
        )

    @staticmethod
    def _from_text(text: str) -> DataNeeds:
        lowered = text.lower()
        flags = {
            name: any(term in lowered for term in terms)
            for name, terms in _HEURISTIC_TERMS.items()
        }
        return DataNeeds(
            **flags,
            reasoning="JSON parsing failed, using heuristic analysis",
            origin="heuristic",
        )

    def _apply_specificity_gate(
        self, needs: DataNeeds, query: str, context: RetrievalContext
    ) -> DataNeeds:
        if not needs.needs_precedent_data:
            return needs
        if is_specific(
            query, context, min_address_length=self._config.specificity_min_address_length
        ):
            return needs
        log.info("Generic query, suppressing precedent search")
        return needs.model_copy(update={"needs_precedent_data": False})
