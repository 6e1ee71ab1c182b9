"""LLM-backed reasoning service: data-needs judgement and grounded search."""

from __future__ import annotations

import json
import logging

from planning_balance.exceptions import LLMClientError, ReasoningServiceError
from planning_balance.models import GroundingResult, RetrievalContext
from planning_balance.parsing import Parsed, ParseResult, parse_json_object
from planning_balance.prompts import DATA_NEEDS_PROMPT, GROUNDED_SEARCH_PROMPT
from planning_balance.providers.llm_client import LLMClient

log = logging.getLogger(__name__)


class LLMReasoningService:
    """``IReasoningService`` implemented over :class:`LLMClient`."""

    def __init__(
        self,
        client: LLMClient,
        *,
        max_additional_queries: int = 3,
        max_snippets: int = 6,
    ) -> None:
        self._client = client
        self._max_queries = max_additional_queries
        self._max_snippets = max_snippets

    async def assess_data_needs(
        self,
        query: str,
        context: RetrievalContext,
        local_results_summary: str,
    ) -> ParseResult:
        prompt = DATA_NEEDS_PROMPT.format(
            query=query,
            context=json.dumps(context.model_dump(exclude_none=True), indent=2),
            local_summary=local_results_summary,
            max_queries=self._max_queries,
        )
        try:
            response = await self._client.complete(prompt)
        except LLMClientError as e:
            raise ReasoningServiceError(f"data-needs assessment failed: {e}") from e
        return parse_json_object(response)

    async def grounded_search(self, query: str) -> GroundingResult:
        prompt = GROUNDED_SEARCH_PROMPT.format(query=query, max_snippets=self._max_snippets)
        try:
            response = await self._client.complete(prompt)
        except LLMClientError as e:
            raise ReasoningServiceError(f"grounded search failed: {e}") from e

        parsed = parse_json_object(response)
        if not isinstance(parsed, Parsed):
            log.warning("Grounded search returned no JSON for %r", query)
            return GroundingResult(query=query)

        topics = parsed.value.get("inferredTopics") or parsed.value.get("inferred_topics") or []
        snippets = parsed.value.get("snippets") or []
        # a lone string is one entry, not a sequence of characters
        if isinstance(topics, str):
            topics = [topics]
        if isinstance(snippets, str):
            snippets = [snippets]
        return GroundingResult(
            query=query,
            inferred_topics=[str(t) for t in topics if t],
            snippets=[str(s) for s in snippets if isinstance(s, str) and s.strip()][
                : self._max_snippets
            ],
        )
