"""Assessment-side models: facts in, considerations, balance and recommendation out.

Inputs (``ApplicationData``, ``SpatialData``, ``DocumentData``) are produced by
upstream pipelines and accept partial data. Outputs are frozen: each is built
once per assessment run and handed to persistence as an immutable snapshot.
Scores are clamped to [0, 100] and confidences to [0, 1] on construction.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from planning_balance.models import DocumentChunk

# ── Enums ────────────────────────────────────────────────────────────


class Significance(str, Enum):
    NOT_APPLICABLE = "not_applicable"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OverallBalance(str, Enum):
    BENEFITS_OUTWEIGH_HARMS = "benefits_outweigh_harms"
    NEUTRAL_BALANCE = "neutral_balance"
    HARMS_OUTWEIGH_BENEFITS = "harms_outweigh_benefits"
    SIGNIFICANT_HARM_OUTWEIGHS_BENEFITS = "significant_harm_outweighs_benefits"


class Decision(str, Enum):
    APPROVE = "approve"
    REFUSE = "refuse"
    DEFER = "defer"


HARM_DOMINANT = frozenset(
    {OverallBalance.HARMS_OUTWEIGH_BENEFITS, OverallBalance.SIGNIFICANT_HARM_OUTWEIGHS_BENEFITS}
)


def clamp_score(value: Any) -> float:
    return min(max(float(value), 0.0), 100.0)


def clamp_confidence(value: Any) -> float:
    return min(max(float(value), 0.0), 1.0)


# ── Upstream facts ───────────────────────────────────────────────────


class ConstraintIntersection(BaseModel):
    """A designated constraint overlapping the site."""

    name: str = ""
    feature_id: Optional[str] = None
    coverage_percent: Optional[float] = None
    area: Optional[float] = None
    within_site: bool = False


class Proximity(BaseModel):
    """Distance from the site to a nearby feature."""

    name: str = ""
    distance: float
    grade: Optional[str] = None


class SiteMetrics(BaseModel):
    area: float = 0.0
    frontage_length: Optional[float] = None
    aspect_ratio: Optional[float] = None


class SpatialData(BaseModel):
    """Spatial pipeline output for one site.

    ``intersections`` and ``proximities`` are keyed by snake_case feature type
    (``conservation_areas``, ``listed_buildings``, ``flood_zones``,
    ``railway_stations`` ...). Proximity lists are nearest first.
    """

    intersections: dict[str, list[ConstraintIntersection]] = Field(default_factory=dict)
    proximities: dict[str, list[Proximity]] = Field(default_factory=dict)
    site_metrics: Optional[SiteMetrics] = None
    ptal: Optional[str] = None
    road_network_access: Optional[str] = None

    def intersecting(self, constraint_type: str) -> list[ConstraintIntersection]:
        return self.intersections.get(constraint_type, [])

    def nearby(self, feature_type: str) -> list[Proximity]:
        return self.proximities.get(feature_type, [])


class DocumentData(BaseModel):
    """Facts extracted from the submitted documents."""

    name: str = ""
    description: str = ""
    chunks: list[DocumentChunk] = Field(default_factory=list)
    heights: list[float] = Field(default_factory=list)
    housing_units: Optional[int] = None
    affordable_units: Optional[int] = None
    parking_spaces: Optional[int] = None
    floor_area: Optional[float] = None
    access_mentioned: bool = False

    @property
    def max_height(self) -> Optional[float]:
        return max(self.heights) if self.heights else None


class ApplicationData(BaseModel):
    """The proposal under assessment."""

    reference: str = ""
    address: str = ""
    authority: Optional[str] = None
    development_type: Optional[str] = None
    description: str = ""
    coordinates: Optional[tuple[float, float]] = None


# ── Outputs ──────────────────────────────────────────────────────────


class ConsiderationEvidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    description: str
    impact: Literal["low", "medium", "high"] = "medium"
    statutory: bool = False


class ConsiderationAssessment(BaseModel):
    """Score and rationale for one material consideration."""

    model_config = ConfigDict(frozen=True)

    id: str
    category: str
    subcategory: str
    description: str = ""
    score: float = 50.0
    significance: Significance = Significance.LOW
    analysis: str = ""
    evidence: tuple[ConsiderationEvidence, ...] = ()
    confidence: float = 0.5
    policy_references: tuple[str, ...] = ()
    conditions: tuple[str, ...] = ()

    @field_validator("score", mode="before")
    @classmethod
    def clamp_to_score_range(cls, value: Any) -> float:
        return clamp_score(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_to_unit_range(cls, value: Any) -> float:
        return clamp_confidence(value)


class KeyIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    consideration: str
    issue: str
    severity: Literal["critical", "significant"]


class CategoryAssessment(BaseModel):
    """Weighted mean of a category's considerations."""

    model_config = ConfigDict(frozen=True)

    category: str
    overall_score: float = 0.0
    confidence: float = 0.0
    considerations: tuple[ConsiderationAssessment, ...] = ()
    key_issues: tuple[KeyIssue, ...] = ()

    @field_validator("overall_score", mode="before")
    @classmethod
    def clamp_to_score_range(cls, value: Any) -> float:
        return clamp_score(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_to_unit_range(cls, value: Any) -> float:
        return clamp_confidence(value)

    @property
    def conditions(self) -> list[str]:
        return [c for cons in self.considerations for c in cons.conditions]


class WeightApplied(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float
    weight: float
    weighted_score: float
    significance: str


class BalanceItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    score: float
    description: str


class BalancingExercise(BaseModel):
    model_config = ConfigDict(frozen=True)

    weights_version: str
    weights_applied: dict[str, WeightApplied] = Field(default_factory=dict)
    cumulative_score: float = 0.0
    significant_benefits: tuple[BalanceItem, ...] = ()
    significant_harms: tuple[BalanceItem, ...] = ()
    overall_balance: OverallBalance = OverallBalance.NEUTRAL_BALANCE
    override_applied: bool = False
    narrative: str = ""

    @field_validator("cumulative_score", mode="before")
    @classmethod
    def clamp_to_score_range(cls, value: Any) -> float:
        return clamp_score(value)


class MaterialRecommendation(BaseModel):
    """Decision implied by the planning balance alone."""

    model_config = ConfigDict(frozen=True)

    decision: Decision = Decision.DEFER
    reasoning: str = ""
    confidence: float = 0.3

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_to_unit_range(cls, value: Any) -> float:
        return clamp_confidence(value)


class MaterialAssessment(BaseModel):
    """Everything ``assess_considerations`` produced."""

    model_config = ConfigDict(frozen=True)

    categories: dict[str, CategoryAssessment] = Field(default_factory=dict)
    balancing: BalancingExercise
    recommendation: MaterialRecommendation
    confidence: float = 0.0
    spatial: SpatialData = Field(default_factory=SpatialData)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_to_unit_range(cls, value: Any) -> float:
        return clamp_confidence(value)


class RiskFactor(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["heritage", "environment", "procedural"]
    level: Literal["low", "medium", "high"]
    description: str


class KeyConsideration(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    issue: str
    severity: Literal["critical", "significant"]


class DecisionSynthesis(BaseModel):
    model_config = ConfigDict(frozen=True)

    material_balance: Optional[MaterialRecommendation] = None
    evidence_confidence: float = 0.0
    overall_confidence: float = 0.0


class Recommendation(BaseModel):
    """Final recommendation with calibrated confidence."""

    model_config = ConfigDict(frozen=True)

    decision: Decision = Decision.DEFER
    reasoning: str = ""
    confidence: float = 0.0
    risk_factors: tuple[RiskFactor, ...] = ()
    key_considerations: tuple[KeyConsideration, ...] = ()
    conditions: tuple[str, ...] = ()
    information_requirements: tuple[str, ...] = ()
    appeal_risk: Literal["low", "medium"] = "low"
    synthesis: DecisionSynthesis = Field(default_factory=DecisionSynthesis)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_to_unit_range(cls, value: Any) -> float:
        return clamp_confidence(value)
