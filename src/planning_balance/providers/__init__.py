"""Concrete collaborators: LLM client, reasoning service, precedent search, registries."""

from __future__ import annotations

from planning_balance.providers.llm_client import LLMClient
from planning_balance.providers.planit import PlanItClient
from planning_balance.providers.reasoning import LLMReasoningService
from planning_balance.providers.registries import (
    InMemoryConstraintRegistry,
    InMemoryPolicyRegistry,
)
from planning_balance.providers.tokenizer import TokenCounter

__all__ = [
    "LLMClient",
    "LLMReasoningService",
    "PlanItClient",
    "InMemoryPolicyRegistry",
    "InMemoryConstraintRegistry",
    "TokenCounter",
]
