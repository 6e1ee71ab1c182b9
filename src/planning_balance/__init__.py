"""planning-balance: evidence fusion and planning-balance decisions for planning applications.

Main entry points::

    from planning_balance import (
        AppSettings,
        EvidenceFusion, RetrievalContext, RetrievalOptions,
        assess_considerations, synthesize_decision,
        AssessmentPipeline, AssessmentInput,
    )
"""

from __future__ import annotations

from planning_balance.assessment import (
    ApplicationData,
    DocumentData,
    MaterialAssessment,
    Recommendation,
    SpatialData,
    assess_considerations,
    synthesize_decision,
)
from planning_balance.core.config import AppSettings
from planning_balance.evidence import CitationIndexer, generate_evidence
from planning_balance.exceptions import PlanningBalanceError
from planning_balance.models import (
    DocumentChunk,
    EvidenceRole,
    RetrievalBundle,
    RetrievalContext,
    RetrievalOptions,
    RetrievalResult,
    SourceTier,
)
from planning_balance.pipeline import AssessmentInput, AssessmentPipeline, AssessmentSnapshot
from planning_balance.retrieval import EvidenceFusion, EvidenceIndex

__version__ = "0.1.0"

__all__ = [
    "AppSettings",
    "ApplicationData",
    "AssessmentInput",
    "AssessmentPipeline",
    "AssessmentSnapshot",
    "CitationIndexer",
    "DocumentChunk",
    "DocumentData",
    "EvidenceFusion",
    "EvidenceIndex",
    "EvidenceRole",
    "MaterialAssessment",
    "PlanningBalanceError",
    "Recommendation",
    "RetrievalBundle",
    "RetrievalContext",
    "RetrievalOptions",
    "RetrievalResult",
    "SourceTier",
    "SpatialData",
    "assess_considerations",
    "generate_evidence",
    "synthesize_decision",
]
