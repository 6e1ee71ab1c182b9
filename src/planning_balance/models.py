"""Pydantic data models for evidence retrieval and fusion.

These models live only for the duration of one ``fuse_evidence`` call.
Assessment-side models (considerations, balancing, recommendation) live in
``planning_balance.assessment.models``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

# ── Source tiers and roles ───────────────────────────────────────────


class SourceTier(str, Enum):
    """Where a piece of evidence came from.

    Declaration order is the tier priority used when relevance scores tie.
    """

    LOCAL_POLICY = "local_policy"
    LOCAL_APPLICATION = "local_application"
    EXTERNAL_POLICY = "external_policy"
    CONSTRAINT = "constraint"
    PRECEDENT = "precedent"
    TARGETED_ADDITIONAL = "targeted_additional"
    GROUNDING = "grounding"


class EvidenceRole(str, Enum):
    """Budget bucket an item is charged against."""

    APPLICATION = "application"
    POLICY = "policy"
    OTHER = "other"


# ── Retrieval input / output ─────────────────────────────────────────


class RetrievalResult(BaseModel):
    """A single evidence candidate from any source."""

    source: SourceTier
    content: str
    relevance_score: float = Field(default=0.0, ge=0.0)
    item_score: float = Field(default=0.5, ge=0.0, le=1.0)
    role: EvidenceRole = EvidenceRole.OTHER
    reference: str = ""
    fetch_order: int = 0
    targeted_query: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class DocumentChunk(BaseModel):
    """A chunk handed over by the document pipeline."""

    content: str
    role: EvidenceRole = EvidenceRole.APPLICATION
    embedding: Optional[list[float]] = None
    reference: str = ""
    document_name: str = ""


class RetrievalContext(BaseModel):
    """Site and proposal context that steers retrieval."""

    authority: Optional[str] = None
    coordinates: Optional[tuple[float, float]] = None
    development_type: Optional[str] = None
    address: str = ""


class RetrievalOptions(BaseModel):
    """Per-call switches for ``fuse_evidence``."""

    use_agentic: bool = True
    enable_grounding: Optional[bool] = None
    query_embedding: Optional[list[float]] = None


class DataNeeds(BaseModel):
    """Reasoning-service judgement of which external sources to query."""

    needs_precedent_data: bool = True
    needs_policy_data: bool = True
    needs_constraint_data: bool = True
    constraint_types: list[str] = Field(
        default_factory=lambda: ["conservation_areas", "listed_buildings", "flood_zones"]
    )
    additional_queries: list[str] = Field(default_factory=list)
    reasoning: str = ""
    origin: Literal["service", "heuristic", "default"] = "default"


class PolicyMatrixEntry(BaseModel):
    """A distinct policy code and the text it was found in."""

    code: str
    snippet: str = ""


class PolicyMatrix(BaseModel):
    """Normalised policy codes cited by the budgeted context."""

    count: int = 0
    policies: list[PolicyMatrixEntry] = Field(default_factory=list)


class GroundingResult(BaseModel):
    """Output of one broad grounded search."""

    query: str
    inferred_topics: list[str] = Field(default_factory=list)
    snippets: list[str] = Field(default_factory=list)


class BudgetUsage(BaseModel):
    """Tokens charged to each bucket by the context budgeter."""

    policy: int = 0
    application: int = 0
    other: int = 0

    @property
    def total(self) -> int:
        return self.policy + self.application + self.other


class RetrievalBundle(BaseModel):
    """Everything ``fuse_evidence`` produced for one query."""

    query: str
    context: RetrievalContext = Field(default_factory=RetrievalContext)
    data_needs: Optional[DataNeeds] = None
    by_source: dict[str, list[RetrievalResult]] = Field(default_factory=dict)
    ranked: list[RetrievalResult] = Field(default_factory=list)
    diversified: list[RetrievalResult] = Field(default_factory=list)
    context_items: list[RetrievalResult] = Field(default_factory=list)
    budget_usage: BudgetUsage = Field(default_factory=BudgetUsage)
    policy_matrix: PolicyMatrix = Field(default_factory=PolicyMatrix)
    grounding: list[GroundingResult] = Field(default_factory=list)
    grounding_applied: bool = False
    retrieval_strategy: Literal["hybrid", "local_only", "fallback"] = "hybrid"
    warnings: list[str] = Field(default_factory=list)
