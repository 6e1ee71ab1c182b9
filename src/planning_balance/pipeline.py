"""Assessment pipeline: ingest -> fuse evidence -> cite -> assess -> decide -> persist.

Each run gets its own role-partitioned index, written once during ingestion
and only read afterwards. Cancellation is advisory: ``cancel`` removes the
run from the active registry, in-flight calls finish, and the results are
discarded instead of being persisted.
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from planning_balance.assessment import (
    ApplicationData,
    DocumentData,
    MaterialAssessment,
    Recommendation,
    SpatialData,
    assess_considerations,
    synthesize_decision,
)
from planning_balance.cache import MemoryCache
from planning_balance.core.config import AppSettings
from planning_balance.evidence import EvidenceSet, generate_evidence
from planning_balance.exceptions import AssessmentCancelledError
from planning_balance.interfaces import (
    IConstraintRegistry,
    IEmbedder,
    IPolicyRegistry,
    IPrecedentSearch,
    IReasoningService,
    IVectorStore,
)
from planning_balance.models import (
    DocumentChunk,
    RetrievalBundle,
    RetrievalContext,
    RetrievalOptions,
)
from planning_balance.observability import end_run, start_run, track_stage
from planning_balance.persistence import (
    FilePersistenceBackend,
    IPersistenceBackend,
    MemoryPersistenceBackend,
)
from planning_balance.providers import (
    LLMClient,
    LLMReasoningService,
    PlanItClient,
    TokenCounter,
)
from planning_balance.retrieval import EvidenceFusion, EvidenceIndex

log = logging.getLogger(__name__)

# Cancelled ids remembered for status queries; oldest forgotten first
CANCELLED_HISTORY = 256


def new_assessment_id() -> str:
    return f"PBA_{uuid.uuid4().hex[:12]}"


class AssessmentInput(BaseModel):
    """Everything the upstream pipelines hand over for one application."""

    query: str = ""
    application: ApplicationData = Field(default_factory=ApplicationData)
    spatial: SpatialData = Field(default_factory=SpatialData)
    document: DocumentData = Field(default_factory=DocumentData)
    policy_chunks: list[DocumentChunk] = Field(default_factory=list)
    subcategories: Optional[list[str]] = None
    ai_confidence: Optional[float] = None

    def retrieval_query(self) -> str:
        if self.query:
            return self.query
        app = self.application
        parts = [app.development_type or "", app.description, app.address]
        return " ".join(p for p in parts if p).strip() or "planning application"

    def retrieval_context(self) -> RetrievalContext:
        app = self.application
        return RetrievalContext(
            authority=app.authority,
            coordinates=app.coordinates,
            development_type=app.development_type,
            address=app.address,
        )


class TimelineEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    at: datetime
    event: str
    detail: str = ""


class AssessmentSnapshot(BaseModel):
    """Immutable record of a completed assessment, as persisted."""

    model_config = ConfigDict(frozen=True)

    assessment_id: str
    created_at: datetime
    query: str
    application: ApplicationData
    retrieval: RetrievalBundle
    evidence: EvidenceSet
    assessment: MaterialAssessment
    recommendation: Recommendation
    timeline: tuple[TimelineEvent, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass
class ActiveAssessment:
    """Registry entry for a run in progress."""

    assessment_id: str
    started_at: datetime
    stage: str = "queued"
    cancelled: bool = False
    timeline: list[TimelineEvent] = field(default_factory=list)

    def record(self, event: str, detail: str = "") -> None:
        self.stage = event
        self.timeline.append(
            TimelineEvent(at=datetime.now(timezone.utc), event=event, detail=detail)
        )


class AssessmentPipeline:
    """Runs assessments and keeps track of the ones in flight."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        reasoning: IReasoningService | None = None,
        precedent: IPrecedentSearch | None = None,
        policies: IPolicyRegistry | None = None,
        constraints: IConstraintRegistry | None = None,
        vector_store: IVectorStore | None = None,
        embedder: IEmbedder | None = None,
        token_counter: TokenCounter | None = None,
        store: IPersistenceBackend | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._reasoning = reasoning
        self._precedent = precedent
        self._policies = policies
        self._constraints = constraints
        self._vector_store = vector_store
        self._embedder = embedder
        self._token_counter = token_counter
        self.store = store or MemoryPersistenceBackend()
        self._active: dict[str, ActiveAssessment] = {}
        self._cancelled: OrderedDict[str, None] = OrderedDict()

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings | None = None,
        *,
        agentic: bool = True,
        policies: IPolicyRegistry | None = None,
        constraints: IConstraintRegistry | None = None,
    ) -> AssessmentPipeline:
        """Wire the default collaborators from configuration.

        The reasoning service is only built when ``agentic`` is set, since it
        needs LLM credentials.
        """
        settings = settings or AppSettings()
        cache = MemoryCache(settings.cache.max_entries, settings.cache.default_ttl_seconds)

        reasoning = None
        if agentic:
            reasoning = LLMReasoningService(
                LLMClient(settings.llm),
                max_additional_queries=settings.retrieval.max_additional_queries,
            )

        tokenizer = settings.tokenizer
        counter = TokenCounter(
            tokenizer.method,
            tokens_per_word=settings.budget.tokens_per_word,
            char_to_token_ratio=tokenizer.char_to_token_ratio,
            model=tokenizer.model,
            fallback_encoding=tokenizer.fallback_encoding,
        )

        store: IPersistenceBackend
        if settings.persistence.backend == "file":
            store = FilePersistenceBackend(settings.persistence.store_path)
        else:
            store = MemoryPersistenceBackend()

        return cls(
            settings,
            reasoning=reasoning,
            precedent=PlanItClient(settings.precedent, cache=cache),
            policies=policies,
            constraints=constraints,
            token_counter=counter,
            store=store,
        )

    # ── Registry ─────────────────────────────────────────────────────

    @property
    def active_assessments(self) -> list[str]:
        return list(self._active)

    def get_status(self, assessment_id: str) -> dict[str, Any] | None:
        """Status of a running, cancelled or persisted assessment; None if unknown."""
        active = self._active.get(assessment_id)
        if active is not None:
            return {
                "assessment_id": assessment_id,
                "status": "running",
                "stage": active.stage,
                "started_at": active.started_at.isoformat(),
                "timeline": [e.model_dump(mode="json") for e in active.timeline],
            }
        if assessment_id in self._cancelled:
            return {"assessment_id": assessment_id, "status": "cancelled"}
        if self.store.exists(assessment_id):
            return {"assessment_id": assessment_id, "status": "completed"}
        return None

    def cancel(self, assessment_id: str) -> bool:
        """Mark a running assessment cancelled. Returns False if it is not running."""
        active = self._active.pop(assessment_id, None)
        if active is None:
            return False
        active.cancelled = True
        active.record("cancelled")
        self._cancelled[assessment_id] = None
        while len(self._cancelled) > CANCELLED_HISTORY:
            self._cancelled.popitem(last=False)
        log.info(f"Assessment {assessment_id} cancelled at stage {active.stage}")
        return True

    def load(self, assessment_id: str) -> AssessmentSnapshot:
        return AssessmentSnapshot.model_validate_json(self.store.load(assessment_id))

    # ── Run ──────────────────────────────────────────────────────────

    def _fusion(self, index: EvidenceIndex) -> EvidenceFusion:
        return EvidenceFusion(
            self._settings,
            index=index,
            reasoning=self._reasoning,
            precedent=self._precedent,
            policies=self._policies,
            constraints=self._constraints,
            vector_store=self._vector_store,
            embedder=self._embedder,
            token_counter=self._token_counter,
        )

    async def run(
        self,
        data: AssessmentInput,
        options: RetrievalOptions | None = None,
        *,
        assessment_id: str | None = None,
    ) -> AssessmentSnapshot:
        """Assess one application end to end and persist the snapshot.

        Raises:
            AssessmentCancelledError: ``cancel`` was called before persistence.
        """
        assessment_id = assessment_id or new_assessment_id()
        active = ActiveAssessment(assessment_id, started_at=datetime.now(timezone.utc))
        self._active[assessment_id] = active
        active.record("started")
        run = start_run(assessment_id)
        status = "failed"

        try:
            query = data.retrieval_query()
            index = EvidenceIndex(self._embedder)
            with track_stage("ingestion") as stage:
                stage.item_count = index.add([*data.document.chunks, *data.policy_chunks])
            active.record("ingested", f"{stage.item_count} chunks")

            bundle = await self._fusion(index).fuse_evidence(
                query, data.retrieval_context(), options
            )
            active.record(
                "evidence_fused",
                f"{len(bundle.context_items)} context items ({bundle.retrieval_strategy})",
            )

            with track_stage("evidence") as stage:
                evidence = generate_evidence(data.spatial, data.document, bundle.context_items)
                stage.item_count = evidence.citation_count
            active.record("evidence_generated", f"{evidence.citation_count} citations")

            with track_stage("assessment"):
                assessment = assess_considerations(
                    data.application,
                    data.spatial,
                    data.document,
                    subcategories=data.subcategories,
                )
            active.record("considerations_assessed", assessment.balancing.overall_balance.value)

            with track_stage("decision"):
                recommendation = synthesize_decision(
                    assessment,
                    citation_count=evidence.citation_count,
                    ai_confidence=data.ai_confidence,
                )
            active.record("decision_synthesized", recommendation.decision.value)

            if active.cancelled:
                status = "cancelled"
                raise AssessmentCancelledError(assessment_id)

            active.record("completed")
            snapshot = AssessmentSnapshot(
                assessment_id=assessment_id,
                created_at=datetime.now(timezone.utc),
                query=query,
                application=data.application,
                retrieval=bundle,
                evidence=evidence,
                assessment=assessment,
                recommendation=recommendation,
                timeline=tuple(active.timeline),
                warnings=tuple(dict.fromkeys([*bundle.warnings, *run.warnings])),
            )
            with track_stage("persistence"):
                self.store.save(assessment_id, snapshot.model_dump_json())
            status = "completed"
            log.info(
                f"Assessment {assessment_id} completed: {recommendation.decision.value} "
                f"({recommendation.confidence:.0%})"
            )
            return snapshot
        finally:
            self._active.pop(assessment_id, None)
            end_run(status)

    async def aclose(self) -> None:
        aclose = getattr(self._precedent, "aclose", None)
        if aclose is not None:
            await aclose()
