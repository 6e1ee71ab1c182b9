"""Tests for citation keys and evidence generation."""

from __future__ import annotations

import pytest

from planning_balance.assessment import DocumentData, SpatialData
from planning_balance.assessment.models import ConstraintIntersection, Proximity
from planning_balance.evidence import CitationIndexer, EvidenceGenerator, generate_evidence
from planning_balance.evidence.citations import key_part
from planning_balance.evidence.generator import accessibility, constraint_severity
from planning_balance.models import EvidenceRole, RetrievalResult, SourceTier


def _register(indexer: CitationIndexer, type_: str, subtype: str, index=None) -> str:
    return indexer.register(
        type_,
        subtype,
        evidence_type="test",
        category="test",
        description="d",
        confidence=0.5,
        source="unit",
        index=index,
    )


class TestCitationIndexer:
    def test_twelve_items_get_unique_keys(self) -> None:
        indexer = CitationIndexer()
        keys = [_register(indexer, "TEXT", "parking") for _ in range(12)]
        assert len(set(keys)) == 12
        assert keys[0] == "TEXT_PARKING_001"
        assert keys[-1] == "TEXT_PARKING_012"
        assert len(indexer) == 12

    def test_supplied_index_used_until_taken(self) -> None:
        indexer = CitationIndexer()
        first = _register(indexer, "CONSTRAINT", "flood_zones", index="FZ3")
        second = _register(indexer, "CONSTRAINT", "flood_zones", index="FZ3")
        assert first == "CONSTRAINT_FLOOD_ZONES_FZ3"
        assert second == "CONSTRAINT_FLOOD_ZONES_001"

    def test_counter_skips_keys_taken_by_explicit_index(self) -> None:
        indexer = CitationIndexer()
        _register(indexer, "POLICY", "x", index="001")
        assert _register(indexer, "POLICY", "x") == "POLICY_X_002"

    def test_entries_are_retrievable(self) -> None:
        indexer = CitationIndexer()
        key = _register(indexer, "SITE", "area")
        assert key in indexer
        assert indexer.get(key).source == "unit"
        assert indexer.get("missing") is None

    def test_key_part(self) -> None:
        assert key_part("air quality") == "AIR_QUALITY"
        assert key_part("Para 199") == "PARA_199"
        assert key_part("--") == "X"


class TestSeverity:
    @pytest.mark.parametrize(
        ("constraint_type", "coverage", "expected"),
        [
            ("flood_zones", None, "high"),
            ("flood_zones", 10, "medium"),
            ("tree_preservation_orders", 90, "high"),
            ("tree_preservation_orders", 10, "low"),
            ("noise_contours", 80, "medium"),
            ("noise_contours", 50, "low"),
            ("unknown_layer", None, "medium"),
        ],
    )
    def test_constraint_severity(self, constraint_type, coverage, expected) -> None:
        intersection = ConstraintIntersection(coverage_percent=coverage)
        assert constraint_severity(constraint_type, intersection) == expected

    @pytest.mark.parametrize(
        ("feature", "distance", "expected"),
        [("railway_stations", 300, "excellent"), ("bus_stops", 500, "fair"), ("schools", 5000, "very_poor")],
    )
    def test_accessibility(self, feature, distance, expected) -> None:
        assert accessibility(feature, distance) == expected


class TestGenerateEvidence:
    def test_spatial_policy_and_computed(self, heritage_spatial, document) -> None:
        evidence = generate_evidence(heritage_spatial, document)
        keys = set(evidence.citations)
        assert {
            "SITE_AREA_001",
            "FRONTAGE_LENGTH_001",
            "SHAPE_RATIO_001",
            "CONSTRAINT_CONSERVATION_AREAS_CA12",
            "PROXIMITY_LISTED_BUILDINGS_001",
            "PROXIMITY_BUS_STOPS_001",
            "PTAL_RATING_001",
            "POLICY_NPPF_PARA_11",
            "POLICY_NPPF_PARA_199",
            "DENSITY_UNITS_001",
            "PLOT_RATIO_001",
            "PARKING_RATIO_001",
        } <= keys
        assert "POLICY_NPPF_PARA_159" not in keys

        [constraint] = [e for e in evidence.spatial if e.type == "spatial_constraint"]
        assert constraint.severity == "high"
        [density] = [e for e in evidence.computed if e.citation == "DENSITY_UNITS_001"]
        assert density.value == pytest.approx(200)

    def test_textual_keyword_sentences(self, document) -> None:
        evidence = generate_evidence(document=document)
        keywords = {e.metadata["keyword"] for e in evidence.textual}
        assert {"parking", "access", "materials", "conservation"} <= keywords
        [parking] = [e for e in evidence.textual if e.metadata["keyword"] == "parking"]
        assert parking.description == 'Reference to parking: "parking spaces."'
        assert parking.citation == "TEXT_PARKING_001"

    def test_proximities_capped_per_type(self) -> None:
        spatial = SpatialData(
            proximities={"bus_stops": [Proximity(name=f"Stop {i}", distance=100 * i) for i in range(1, 6)]}
        )
        evidence = generate_evidence(spatial)
        assert len([e for e in evidence.spatial if e.type == "spatial_proximity"]) == 3

    def test_retrieved_items_are_cited(self) -> None:
        retrieved = [
            RetrievalResult(
                source=SourceTier.EXTERNAL_POLICY,
                content="Policy H4 affordable housing",
                role=EvidenceRole.POLICY,
                relevance_score=0.72,
                reference="H4",
            )
        ]
        evidence = generate_evidence(retrieved=retrieved)
        [item] = evidence.retrieved
        assert item.citation == "RETRIEVED_EXTERNAL_POLICY_001"
        assert item.confidence == pytest.approx(0.72)
        assert item.source == "H4"

    def test_empty_inputs_still_cite_presumption(self) -> None:
        evidence = generate_evidence()
        assert list(evidence.citations) == ["POLICY_NPPF_PARA_11"]
        assert evidence.citation_count == 1

    def test_every_item_has_a_unique_citation(self, heritage_spatial, document) -> None:
        evidence = generate_evidence(heritage_spatial, document)
        citations = [e.citation for e in evidence.items]
        assert len(citations) == len(set(citations)) == evidence.citation_count

    def test_shared_indexer(self) -> None:
        indexer = CitationIndexer()
        generator = EvidenceGenerator(indexer)
        generator.generate()
        generator.generate()
        assert "POLICY_NPPF_PARA_11" in indexer
        assert "POLICY_NPPF_001" in indexer

    def test_injected_empty_indexer_is_kept(self) -> None:
        indexer = CitationIndexer()
        generator = EvidenceGenerator(indexer)
        assert generator.indexer is indexer
        generator.generate()
        assert len(indexer) > 0
