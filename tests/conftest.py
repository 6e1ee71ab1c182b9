"""Shared fixtures for planning-balance tests."""

from __future__ import annotations

import pytest

from planning_balance.assessment import ApplicationData, DocumentData, SpatialData
from planning_balance.assessment.models import (
    ConstraintIntersection,
    Proximity,
    SiteMetrics,
)
from planning_balance.core.config import AppSettings
from planning_balance.models import DocumentChunk, EvidenceRole, RetrievalContext
from planning_balance.retrieval import EvidenceIndex


@pytest.fixture
def settings() -> AppSettings:
    """Default settings with grounding on (word tokenizer, no real LLM)."""
    return AppSettings()


@pytest.fixture
def application_chunks() -> list[DocumentChunk]:
    texts = [
        "Erection of a four storey residential building comprising 24 flats with 12 parking spaces.",
        "The design and access statement describes vehicular access from Mill Lane.",
        "Materials comprise red brick and slate roofing to match the conservation area.",
    ]
    return [
        DocumentChunk(content=t, role=EvidenceRole.APPLICATION, document_name="DAS.pdf", reference=f"DAS-{i}")
        for i, t in enumerate(texts)
    ]


@pytest.fixture
def policy_chunks() -> list[DocumentChunk]:
    texts = [
        "Policy H4 residential development should provide 30% affordable housing on sites of 10 or more units.",
        "Policy DM12 design must respond to the character of the conservation area.",
        "Policy T-3 parking standards for residential development in PTAL 3 areas.",
    ]
    return [
        DocumentChunk(content=t, role=EvidenceRole.POLICY, document_name="Local Plan", reference=f"LP-{i}")
        for i, t in enumerate(texts)
    ]


@pytest.fixture
def index(application_chunks, policy_chunks) -> EvidenceIndex:
    idx = EvidenceIndex()
    idx.add([*application_chunks, *policy_chunks])
    return idx


@pytest.fixture
def context() -> RetrievalContext:
    return RetrievalContext(
        authority="camden",
        coordinates=(51.5416, -0.1433),
        development_type="residential",
        address="12 Mill Lane, London NW6",
    )


@pytest.fixture
def application() -> ApplicationData:
    return ApplicationData(
        reference="2024/0001/P",
        address="12 Mill Lane, London NW6",
        authority="camden",
        development_type="residential",
        description="Erection of a four storey residential building comprising 24 flats",
        coordinates=(51.5416, -0.1433),
    )


@pytest.fixture
def heritage_spatial() -> SpatialData:
    """Site mostly inside a conservation area, 40m from a listed building."""
    return SpatialData(
        intersections={
            "conservation_areas": [
                ConstraintIntersection(
                    name="West End Green Conservation Area",
                    feature_id="CA12",
                    coverage_percent=80,
                    area=960,
                )
            ],
        },
        proximities={
            "listed_buildings": [Proximity(name="St Mary's Church", distance=40, grade="II*")],
            "bus_stops": [Proximity(name="Mill Lane", distance=150)],
        },
        site_metrics=SiteMetrics(area=1200, frontage_length=30, aspect_ratio=1.4),
        ptal="3",
    )


@pytest.fixture
def document(application_chunks) -> DocumentData:
    return DocumentData(
        name="Design and Access Statement",
        chunks=application_chunks,
        heights=[13.5],
        housing_units=24,
        affordable_units=8,
        parking_spaces=12,
        floor_area=2100,
        access_mentioned=True,
    )
