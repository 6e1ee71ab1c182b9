"""Per-subcategory scoring rules.

Every rule starts from a neutral draft (score 50, significance low,
confidence 0.5) and adjusts it from spatial and document facts. Rules never
raise on missing data: an absent fact leaves the draft neutral or marks the
consideration not applicable. Subcategories without a dedicated rule use
:func:`generic_rule`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from planning_balance.assessment.considerations import Consideration
from planning_balance.assessment.models import (
    ApplicationData,
    ConsiderationAssessment,
    ConsiderationEvidence,
    DocumentData,
    Significance,
    SpatialData,
)

log = logging.getLogger(__name__)

NPPF_HERITAGE = "NPPF paragraphs 199-202"
LBCA_ACT = "Planning (Listed Buildings and Conservation Areas) Act 1990"
NPPF_FLOOD = "NPPF paragraphs 159-169"
NPPF_AFFORDABLE = "NPPF paragraph 64"

AFFORDABLE_THRESHOLD_UNITS = 10
AFFORDABLE_REQUIRED_PERCENT = 30.0


@dataclass(frozen=True)
class AssessmentFacts:
    application: ApplicationData
    spatial: SpatialData
    document: DocumentData


@dataclass
class RuleDraft:
    """Mutable working copy of a consideration while its rule runs."""

    consideration: Consideration
    score: float = 50.0
    significance: Significance = Significance.LOW
    analysis: list[str] = field(default_factory=list)
    evidence: list[ConsiderationEvidence] = field(default_factory=list)
    confidence: float = 0.5
    policy_references: list[str] = field(default_factory=list)
    conditions: list[str] = field(default_factory=list)

    def note(self, text: str) -> None:
        self.analysis.append(text)

    def spatial_evidence(self, description: str, impact: str, *, statutory: bool = False) -> None:
        self.evidence.append(
            ConsiderationEvidence(
                type="spatial", description=description, impact=impact, statutory=statutory
            )
        )

    def finish(self) -> ConsiderationAssessment:
        c = self.consideration
        return ConsiderationAssessment(
            id=c.id,
            category=c.category,
            subcategory=c.subcategory,
            description=c.description,
            score=self.score,
            significance=self.significance,
            analysis=" ".join(self.analysis),
            evidence=tuple(self.evidence),
            confidence=self.confidence,
            policy_references=tuple(self.policy_references),
            conditions=tuple(self.conditions),
        )


Rule = Callable[[RuleDraft, AssessmentFacts], None]

RULES: dict[str, Rule] = {}


def rule(subcategory: str) -> Callable[[Rule], Rule]:
    """Register a rule for a catalogue subcategory."""

    def register(fn: Rule) -> Rule:
        RULES[subcategory] = fn
        return fn

    return register


def _fmt(value: float) -> str:
    return f"{value:g}"


def ptal_number(ptal: str | None) -> int:
    """Leading digits of a PTAL band (``"6a"`` -> 6); 0 when absent."""
    digits = re.sub(r"[^0-9]", "", ptal or "")
    return int(digits) if digits else 0


# ── Rules ────────────────────────────────────────────────────────────


@rule("Character and Appearance")
def character_and_appearance(draft: RuleDraft, facts: AssessmentFacts) -> None:
    draft.significance = Significance.HIGH
    conservation = facts.spatial.intersecting("conservation_areas")
    listed = facts.spatial.nearby("listed_buildings")

    if conservation:
        draft.score -= 20
        draft.note(
            "Site located within Conservation Area - character and appearance "
            "considerations are critical."
        )
        draft.spatial_evidence(f"Site overlaps {conservation[0].name}", "high")
        draft.policy_references.append(NPPF_HERITAGE)

    if listed and listed[0].distance < 100:
        closest = listed[0]
        draft.score -= 15
        draft.note(
            f"Adjacent to listed building ({_fmt(closest.distance)}m away) - "
            "setting considerations apply."
        )
        draft.spatial_evidence(f"{_fmt(closest.distance)}m from {closest.name}", "medium")

    height = facts.document.max_height
    if height is not None and height > 18:
        draft.score -= 10
        draft.note(f"Proposed height of {_fmt(height)}m may impact local character.")
        draft.conditions.append("Materials and design details to be agreed")

    draft.confidence = 0.7


@rule("Highway Safety")
def highway_safety(draft: RuleDraft, facts: AssessmentFacts) -> None:
    draft.significance = Significance.HIGH
    draft.note("Highway safety assessment based on access arrangements and traffic generation.")

    if facts.document.access_mentioned:
        draft.score += 10
        draft.note("Access arrangements described in submitted documents.")
    else:
        draft.score -= 20
        draft.note("No clear access arrangements provided - highway safety concerns.")
        draft.conditions.append("Access details to be agreed with Highway Authority")

    if facts.spatial.road_network_access == "major_road":
        draft.score -= 5
        draft.note("Direct access to major road may create safety concerns.")

    draft.confidence = 0.6


@rule("Listed Buildings")
def listed_buildings(draft: RuleDraft, facts: AssessmentFacts) -> None:
    nearby = facts.spatial.nearby("listed_buildings")
    if not nearby:
        draft.significance = Significance.NOT_APPLICABLE
        draft.note("No listed buildings in proximity - consideration not applicable.")
        draft.score = 100
        draft.confidence = 1.0
        return

    draft.significance = Significance.HIGH
    draft.policy_references.extend([NPPF_HERITAGE, LBCA_ACT])
    closest = nearby[0]
    distance = _fmt(closest.distance)

    if closest.distance < 50:
        draft.score = 20
        draft.note(
            f"Development within {distance}m of Grade {closest.grade or 'II'} listed "
            f"{closest.name}. Substantial harm to setting likely."
        )
        draft.spatial_evidence(f"{distance}m from {closest.name}", "high", statutory=True)
    elif closest.distance < 200:
        draft.score = 40
        draft.note(f"Development {distance}m from listed building. Some impact on setting possible.")
        draft.conditions.append("Heritage Impact Assessment required")
    else:
        draft.score = 70
        draft.note(f"Listed building {distance}m away. Minimal impact on setting expected.")

    draft.confidence = 0.8


@rule("Conservation Areas")
def conservation_areas(draft: RuleDraft, facts: AssessmentFacts) -> None:
    overlaps = facts.spatial.intersecting("conservation_areas")
    if not overlaps:
        draft.significance = Significance.NOT_APPLICABLE
        draft.note("Site not within Conservation Area - consideration not applicable.")
        draft.score = 100
        draft.confidence = 1.0
        return

    draft.significance = Significance.HIGH
    draft.policy_references.extend([NPPF_HERITAGE, f"{LBCA_ACT} s.72"])
    overlap = overlaps[0]
    coverage = overlap.coverage_percent or 0.0
    draft.note(f"Site {_fmt(coverage)}% within {overlap.name}.")

    if coverage > 75:
        draft.score = 30
        draft.note("Majority of site within Conservation Area - special attention to character required.")
    elif coverage > 25:
        draft.score = 50
        draft.note("Partial overlap with Conservation Area - character considerations apply.")
    else:
        draft.score = 70
        draft.note("Minor overlap with Conservation Area - limited character impact.")

    draft.conditions.append("Conservation Area Consent may be required for demolition")
    draft.conditions.append("Materials and design to preserve or enhance character")
    draft.confidence = 0.9


@rule("Flood Risk")
def flood_risk(draft: RuleDraft, facts: AssessmentFacts) -> None:
    overlaps = facts.spatial.intersecting("flood_zones")
    if not overlaps:
        draft.score = 100
        draft.note("Site not within identified flood risk area.")
        draft.significance = Significance.LOW
        draft.confidence = 0.8
        return

    draft.significance = Significance.HIGH
    draft.policy_references.append(NPPF_FLOOD)
    overlap = overlaps[0]
    coverage = _fmt(overlap.coverage_percent or 0.0)

    if "Zone 3" in overlap.name:
        draft.score = 10
        draft.note(
            f"{coverage}% of site in Flood Zone 3 (high probability). "
            "Development generally inappropriate."
        )
        draft.conditions.append("Flood Risk Assessment required")
        draft.conditions.append("Sequential Test required")
    elif "Zone 2" in overlap.name:
        draft.score = 40
        draft.note(
            f"{coverage}% of site in Flood Zone 2 (medium probability). "
            "Flood Risk Assessment required."
        )
        draft.conditions.append("Flood Risk Assessment required")
    else:
        draft.score = 80
        draft.note("Site in low flood risk area. Standard drainage considerations apply.")

    draft.confidence = 0.9


@rule("Privacy and Overlooking")
def privacy_and_overlooking(draft: RuleDraft, facts: AssessmentFacts) -> None:
    draft.significance = Significance.MEDIUM
    draft.note("Privacy and overlooking assessment based on proximity to existing dwellings.")
    # Neighbour positions are unknown, so start from a neutral assumption
    draft.score = 60

    height = facts.document.max_height
    if height is not None and height > 12:
        draft.score -= 15
        draft.note(f"Height of {_fmt(height)}m increases overlooking potential.")
        draft.conditions.append("Window positions and screening to prevent overlooking")

    draft.note("Standard separation distances should be maintained.")
    draft.confidence = 0.5


@rule("Affordable Housing")
def affordable_housing(draft: RuleDraft, facts: AssessmentFacts) -> None:
    total = facts.document.housing_units or 0
    if total < AFFORDABLE_THRESHOLD_UNITS:
        draft.significance = Significance.NOT_APPLICABLE
        draft.note("Development below affordable housing threshold.")
        draft.score = 100
        draft.confidence = 0.8
        return

    draft.significance = Significance.HIGH
    draft.policy_references.append(NPPF_AFFORDABLE)
    affordable = facts.document.affordable_units or 0
    percent = affordable / total * 100
    provided = f"{percent:.0f}% affordable housing provided ({affordable}/{total} units)."

    if percent >= AFFORDABLE_REQUIRED_PERCENT:
        draft.score = 100
        draft.note(f"{provided} Meets policy requirement.")
    elif percent > 0:
        draft.score = 50
        draft.note(f"{provided} Below {AFFORDABLE_REQUIRED_PERCENT:.0f}% requirement.")
        draft.conditions.append("Viability assessment required to justify shortfall")
    else:
        draft.score = 0
        draft.note(
            f"No affordable housing provision identified. "
            f"Policy requires {AFFORDABLE_REQUIRED_PERCENT:.0f}%."
        )
        draft.conditions.append("Affordable housing provision or financial contribution required")

    draft.confidence = 0.7


def required_parking_ratio(ptal: str | None) -> float:
    """Spaces per unit required for a PTAL band; 1.0 when PTAL is unknown."""
    if not ptal:
        return 1.0
    level = ptal_number(ptal)
    if level >= 5:
        return 0.5
    if level >= 3:
        return 0.75
    if level >= 2:
        return 1.0
    return 1.5


@rule("Parking Provision")
def parking_provision(draft: RuleDraft, facts: AssessmentFacts) -> None:
    draft.significance = Significance.MEDIUM
    doc = facts.document
    if doc.parking_spaces is None and doc.housing_units is None:
        draft.note("No parking or unit figures extracted - parking provision not assessed.")
        draft.significance = Significance.LOW
        draft.confidence = 0.3
        return

    spaces = doc.parking_spaces or 0
    units = doc.housing_units or 1
    ratio = spaces / units
    required = required_parking_ratio(facts.spatial.ptal)

    if ratio >= required:
        draft.score = 80
        draft.note(
            f"{spaces} parking spaces for {units} units ({ratio:.1f} per unit). Adequate provision."
        )
    else:
        shortfall = round((required - ratio) * units)
        draft.score = 40
        draft.note(
            f"{spaces} parking spaces for {units} units. "
            f"Shortfall of approximately {shortfall} spaces."
        )
        draft.conditions.append("Car parking management plan required")

    draft.confidence = 0.6


def generic_rule(draft: RuleDraft, facts: AssessmentFacts) -> None:
    draft.score = 60
    draft.note(f"{draft.consideration.description} - detailed assessment required.")
    draft.confidence = 0.3
    draft.significance = Significance.MEDIUM


def apply_rule(consideration: Consideration, facts: AssessmentFacts) -> ConsiderationAssessment:
    """Score one consideration with its registered rule."""
    draft = RuleDraft(consideration=consideration)
    RULES.get(consideration.subcategory, generic_rule)(draft, facts)
    return draft.finish()
