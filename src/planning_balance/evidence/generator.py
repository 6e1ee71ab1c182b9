"""Evidence items derived from spatial facts, documents, policy and retrieval.

Every item is registered with the run's :class:`CitationIndexer` so narrative
claims can cite it by key.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from planning_balance.assessment.models import (
    ConstraintIntersection,
    DocumentData,
    Proximity,
    SpatialData,
)
from planning_balance.assessment.rules import ptal_number
from planning_balance.evidence.citations import CitationEntry, CitationIndexer
from planning_balance.models import RetrievalResult

log = logging.getLogger(__name__)

MAX_PROXIMITIES_PER_TYPE = 3

_CONSTRAINT_SEVERITY = {
    "listed_buildings": "high",
    "conservation_areas": "high",
    "flood_zones": "high",
    "scheduled_monuments": "high",
    "green_belt": "high",
    "tree_preservation_orders": "medium",
    "local_wildlife_sites": "medium",
    "air_quality_management_areas": "medium",
    "noise_contours": "low",
}

_CONSTRAINT_NAMES = {
    "conservation_areas": "Conservation Area",
    "listed_buildings": "Listed Building",
    "flood_zones": "Flood Zone",
    "green_belt": "Green Belt",
    "tree_preservation_orders": "Tree Preservation Order",
    "scheduled_monuments": "Scheduled Ancient Monument",
    "local_wildlife_sites": "Local Wildlife Site",
    "air_quality_management_areas": "Air Quality Management Area",
}

_CONSTRAINT_POLICIES = {
    "conservation_areas": [
        "NPPF Para 199-202",
        "Planning (Listed Buildings and Conservation Areas) Act 1990 s.72",
    ],
    "listed_buildings": [
        "NPPF Para 199-202",
        "Planning (Listed Buildings and Conservation Areas) Act 1990",
    ],
    "flood_zones": ["NPPF Para 159-169", "Flood and Water Management Act 2010"],
    "green_belt": ["NPPF Para 137-151", "Town and Country Planning Act 1990"],
    "scheduled_monuments": [
        "NPPF Para 194",
        "Ancient Monuments and Archaeological Areas Act 1979",
    ],
}

# feature type -> (excellent, good, fair, poor) walking distance thresholds in metres
_ACCESSIBILITY_THRESHOLDS = {
    "railway_stations": (400, 800, 1200, 2000),
    "bus_stops": (200, 400, 600, 800),
    "schools": (400, 800, 1200, 1600),
    "hospitals": (1000, 2000, 5000, 10000),
}
_DEFAULT_THRESHOLDS = (200, 500, 1000, 2000)

_PTAL_DESCRIPTIONS = {
    "0": "Very poor",
    "1a": "Poor",
    "1b": "Poor",
    "2": "Poor to moderate",
    "3": "Moderate",
    "4": "Good",
    "5": "Very good",
    "6a": "Excellent",
    "6b": "Excellent",
}

PLANNING_KEYWORDS: dict[str, str] = {
    "affordable housing": "housing",
    "parking": "transport",
    "height": "design",
    "stories": "design",
    "storeys": "design",
    "materials": "design",
    "access": "transport",
    "transport": "transport",
    "highway": "transport",
    "heritage": "heritage",
    "conservation": "heritage",
    "listed building": "heritage",
    "trees": "environment",
    "landscape": "environment",
    "drainage": "environment",
    "flood": "environment",
    "ecology": "environment",
    "biodiversity": "environment",
    "noise": "amenity",
    "air quality": "environment",
    "contamination": "environment",
    "viability": "economic",
    "section 106": "legal",
    "s106": "legal",
    "community infrastructure levy": "legal",
    "cil": "legal",
}

_KEYWORD_PATTERNS = {
    kw: re.compile(rf"\b{re.escape(kw)}\b.*?[.!?]", re.IGNORECASE) for kw in PLANNING_KEYWORDS
}


class EvidenceItem(BaseModel):
    """One citable piece of evidence."""

    model_config = ConfigDict(frozen=True)

    citation: str
    type: str
    category: str
    description: str
    confidence: float
    source: str
    value: Optional[Any] = None
    unit: Optional[str] = None
    severity: Optional[str] = None
    implications: tuple[str, ...] = ()
    metadata: dict[str, Any] = Field(default_factory=dict)


class EvidenceSet(BaseModel):
    """All evidence for one run plus its citation index."""

    model_config = ConfigDict(frozen=True)

    spatial: tuple[EvidenceItem, ...] = ()
    textual: tuple[EvidenceItem, ...] = ()
    policy: tuple[EvidenceItem, ...] = ()
    computed: tuple[EvidenceItem, ...] = ()
    retrieved: tuple[EvidenceItem, ...] = ()
    citations: dict[str, CitationEntry] = Field(default_factory=dict)

    @property
    def items(self) -> list[EvidenceItem]:
        return [*self.spatial, *self.textual, *self.policy, *self.computed, *self.retrieved]

    @property
    def citation_count(self) -> int:
        return len(self.citations)


# ── Helpers ──────────────────────────────────────────────────────────


def constraint_severity(constraint_type: str, intersection: ConstraintIntersection) -> str:
    base = _CONSTRAINT_SEVERITY.get(constraint_type, "medium")
    coverage = intersection.coverage_percent
    if coverage:
        if coverage > 75:
            return "medium" if base == "low" else "high"
        if coverage < 25:
            return "medium" if base == "high" else "low"
    return base


def accessibility(feature_type: str, distance: float) -> str:
    excellent, good, fair, poor = _ACCESSIBILITY_THRESHOLDS.get(feature_type, _DEFAULT_THRESHOLDS)
    if distance <= excellent:
        return "excellent"
    if distance <= good:
        return "good"
    if distance <= fair:
        return "fair"
    if distance <= poor:
        return "poor"
    return "very_poor"


def _constraint_description(constraint_type: str, intersection: ConstraintIntersection) -> str:
    name = _CONSTRAINT_NAMES.get(constraint_type, constraint_type.replace("_", " "))
    if intersection.coverage_percent:
        area = f" ({intersection.area:g}m²)" if intersection.area is not None else ""
        return f"Site overlaps {name} by {intersection.coverage_percent:g}%{area}"
    if intersection.within_site:
        return f"{intersection.name or name} located within site boundary"
    return f"Site affected by {name}"


def _proximity_description(feature_type: str, proximity: Proximity) -> str:
    text = f"{proximity.distance:g}m to nearest {feature_type.replace('_', ' ').rstrip('s')}"
    return f"{text} ({proximity.name})" if proximity.name else text


def _transport_implications(feature_type: str, distance: float) -> tuple[str, ...]:
    if feature_type == "railway_stations" and distance <= 800:
        return ("Reduced parking requirements may apply", "Sustainable transport credentials")
    if feature_type == "bus_stops" and distance <= 400:
        return ("Good public transport accessibility",)
    return ()


def _ptal_implications(ptal: str) -> tuple[str, ...]:
    level = ptal_number(ptal)
    if level >= 4:
        return ("Reduced parking standards may apply", "Higher density development supported")
    if level >= 2:
        return ("Standard parking provision required",)
    return ("Higher parking provision may be required", "Transport assessment recommended")


# ── Generator ────────────────────────────────────────────────────────


class EvidenceGenerator:
    """Builds the evidence set for one run, registering every citation."""

    def __init__(self, indexer: CitationIndexer | None = None) -> None:
        self.indexer = indexer if indexer is not None else CitationIndexer()

    def _item(
        self,
        type_: str,
        subtype: str,
        *,
        evidence_type: str,
        category: str,
        description: str,
        confidence: float,
        source: str,
        index: object | None = None,
        **extra: Any,
    ) -> EvidenceItem:
        key = self.indexer.register(
            type_,
            subtype,
            evidence_type=evidence_type,
            category=category,
            description=description,
            confidence=confidence,
            source=source,
            index=index,
        )
        return EvidenceItem(
            citation=key,
            type=evidence_type,
            category=category,
            description=description,
            confidence=confidence,
            source=source,
            **extra,
        )

    def spatial(self, spatial: SpatialData) -> list[EvidenceItem]:
        items: list[EvidenceItem] = []
        metrics = spatial.site_metrics
        if metrics is not None and metrics.area > 0:
            items.append(
                self._item(
                    "SITE", "AREA",
                    evidence_type="spatial_metric",
                    category="site_characteristics",
                    description=(
                        f"Site area: {metrics.area:,.0f}m² ({metrics.area / 10000:.2f} hectares)"
                    ),
                    confidence=1.0,
                    source="calculated_from_boundary",
                    value=metrics.area,
                    unit="m²",
                )
            )
        if metrics is not None and metrics.frontage_length:
            items.append(
                self._item(
                    "FRONTAGE", "LENGTH",
                    evidence_type="spatial_metric",
                    category="site_characteristics",
                    description=f"Primary frontage length: {metrics.frontage_length:.1f}m",
                    confidence=0.8,
                    source="calculated_from_boundary",
                    value=metrics.frontage_length,
                    unit="m",
                )
            )
        if metrics is not None and metrics.aspect_ratio:
            shape = "regular"
            if metrics.aspect_ratio > 3:
                shape = "elongated"
            elif metrics.aspect_ratio < 0.5:
                shape = "narrow"
            items.append(
                self._item(
                    "SHAPE", "RATIO",
                    evidence_type="spatial_metric",
                    category="site_characteristics",
                    description=f"Site shape: {shape} (aspect ratio {metrics.aspect_ratio:g})",
                    confidence=0.9,
                    source="calculated_from_boundary",
                    value=metrics.aspect_ratio,
                    unit="ratio",
                )
            )

        for constraint_type, intersections in spatial.intersections.items():
            for intersection in intersections:
                items.append(
                    self._item(
                        "CONSTRAINT", constraint_type,
                        index=intersection.feature_id,
                        evidence_type="spatial_constraint",
                        category="planning_constraints",
                        description=_constraint_description(constraint_type, intersection),
                        confidence=0.95,
                        source="spatial_analysis",
                        severity=constraint_severity(constraint_type, intersection),
                        implications=tuple(_CONSTRAINT_POLICIES.get(constraint_type, [])),
                        metadata={
                            "constraint_type": constraint_type,
                            "coverage_percent": intersection.coverage_percent,
                            "area": intersection.area,
                        },
                    )
                )

        for feature_type, proximities in spatial.proximities.items():
            for proximity in proximities[:MAX_PROXIMITIES_PER_TYPE]:
                items.append(
                    self._item(
                        "PROXIMITY", feature_type,
                        evidence_type="spatial_proximity",
                        category="accessibility",
                        description=_proximity_description(feature_type, proximity),
                        confidence=0.9,
                        source="spatial_analysis",
                        value=proximity.distance,
                        unit="m",
                        implications=_transport_implications(feature_type, proximity.distance),
                        metadata={
                            "feature_type": feature_type,
                            "accessibility": accessibility(feature_type, proximity.distance),
                        },
                    )
                )

        if spatial.ptal:
            rating = _PTAL_DESCRIPTIONS.get(spatial.ptal.lower(), "Unknown")
            items.append(
                self._item(
                    "PTAL", "RATING",
                    evidence_type="accessibility_rating",
                    category="transport",
                    description=f"Public Transport Accessibility Level: {spatial.ptal} ({rating})",
                    confidence=0.7,
                    source="calculated_ptal",
                    value=spatial.ptal,
                    implications=_ptal_implications(spatial.ptal),
                )
            )
        return items

    def textual(self, document: DocumentData) -> list[EvidenceItem]:
        items: list[EvidenceItem] = []
        for i, chunk in enumerate(document.chunks):
            for keyword, category in PLANNING_KEYWORDS.items():
                for match in _KEYWORD_PATTERNS[keyword].finditer(chunk.content):
                    sentence = " ".join(match.group(0).split())
                    items.append(
                        self._item(
                            "TEXT", keyword,
                            evidence_type="textual_reference",
                            category=category,
                            description=f'Reference to {keyword}: "{sentence}"',
                            confidence=0.7,
                            source=f"document_chunk_{i}",
                            metadata={
                                "keyword": keyword,
                                "chunk_index": i,
                                "document_name": chunk.document_name or document.name,
                            },
                        )
                    )
        return items

    def policy(self, spatial: SpatialData) -> list[EvidenceItem]:
        policies = [
            ("NPPF", "Para 11", "Presumption in favour of sustainable development", 1.0),
        ]
        if spatial.intersecting("conservation_areas"):
            policies.append(("NPPF", "Para 199", "Heritage significance and conservation", 0.95))
        if spatial.intersecting("flood_zones"):
            policies.append(("NPPF", "Para 159", "Flood risk assessment", 0.9))

        return [
            self._item(
                "POLICY", policy_type,
                index=policy_id,
                evidence_type="policy_reference",
                category="policy_compliance",
                description=f"{policy_type} {policy_id}: {title}",
                confidence=relevance,
                source="nppf",
            )
            for policy_type, policy_id, title, relevance in policies
        ]

    def computed(self, spatial: SpatialData, document: DocumentData) -> list[EvidenceItem]:
        items: list[EvidenceItem] = []
        area = spatial.site_metrics.area if spatial.site_metrics is not None else 0.0
        units = document.housing_units

        if units and area > 0:
            density = units / area * 10000
            items.append(
                self._item(
                    "DENSITY", "UNITS",
                    evidence_type="computed_metric",
                    category="development_density",
                    description=f"Proposed density: {density:.0f} units per hectare",
                    confidence=0.8,
                    source="calculated",
                    value=density,
                    unit="units/hectare",
                    metadata={"calculation": f"{units} units / {area / 10000:.2f} hectares"},
                )
            )
        if document.floor_area and area > 0:
            plot_ratio = document.floor_area / area
            items.append(
                self._item(
                    "PLOT", "RATIO",
                    evidence_type="computed_metric",
                    category="development_intensity",
                    description=f"Plot ratio: {plot_ratio:.2f}:1",
                    confidence=0.7,
                    source="calculated",
                    value=plot_ratio,
                    unit="ratio",
                    metadata={
                        "calculation": f"{document.floor_area:g}m² GFA / {area:g}m² site area"
                    },
                )
            )
        if document.parking_spaces and units:
            ratio = document.parking_spaces / units
            items.append(
                self._item(
                    "PARKING", "RATIO",
                    evidence_type="computed_metric",
                    category="transport",
                    description=f"Parking provision: {ratio:.1f} spaces per unit",
                    confidence=0.8,
                    source="calculated",
                    value=ratio,
                    unit="spaces/unit",
                    metadata={"calculation": f"{document.parking_spaces} spaces / {units} units"},
                )
            )
        return items

    def retrieved(self, results: Iterable[RetrievalResult]) -> list[EvidenceItem]:
        """Cite the fused context items handed downstream."""
        return [
            self._item(
                "RETRIEVED", r.source.value,
                evidence_type="retrieved_evidence",
                category=r.role.value,
                description=" ".join(r.content.split())[:240],
                confidence=min(r.relevance_score, 1.0),
                source=r.reference or r.source.value,
                metadata={"targeted_query": r.targeted_query} if r.targeted_query else {},
            )
            for r in results
        ]

    def generate(
        self,
        spatial: SpatialData | None = None,
        document: DocumentData | None = None,
        retrieved: Iterable[RetrievalResult] = (),
    ) -> EvidenceSet:
        spatial = spatial or SpatialData()
        document = document or DocumentData()
        evidence = EvidenceSet(
            spatial=tuple(self.spatial(spatial)),
            textual=tuple(self.textual(document)),
            policy=tuple(self.policy(spatial)),
            computed=tuple(self.computed(spatial, document)),
            retrieved=tuple(self.retrieved(retrieved)),
            citations=self.indexer.as_dict(),
        )
        log.info(f"Generated {evidence.citation_count} evidence items")
        return evidence


def generate_evidence(
    spatial: SpatialData | None = None,
    document: DocumentData | None = None,
    retrieved: Iterable[RetrievalResult] = (),
) -> EvidenceSet:
    """Evidence for one run with a fresh citation index."""
    return EvidenceGenerator().generate(spatial, document, retrieved)
