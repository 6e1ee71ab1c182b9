"""Material considerations, planning balance and recommendation synthesis."""

from __future__ import annotations

from planning_balance.assessment.assessor import assess_considerations
from planning_balance.assessment.balancing import (
    CATEGORY_WEIGHTS,
    CATEGORY_WEIGHTS_VERSION,
    perform_balancing,
    weighted_average,
)
from planning_balance.assessment.considerations import CATALOGUE, CATALOGUE_VERSION, Consideration
from planning_balance.assessment.decision import evidence_confidence, synthesize_decision
from planning_balance.assessment.models import (
    ApplicationData,
    BalancingExercise,
    CategoryAssessment,
    ConsiderationAssessment,
    Decision,
    DocumentData,
    MaterialAssessment,
    OverallBalance,
    Recommendation,
    Significance,
    SpatialData,
)

__all__ = [
    "CATALOGUE",
    "CATALOGUE_VERSION",
    "CATEGORY_WEIGHTS",
    "CATEGORY_WEIGHTS_VERSION",
    "ApplicationData",
    "BalancingExercise",
    "CategoryAssessment",
    "Consideration",
    "ConsiderationAssessment",
    "Decision",
    "DocumentData",
    "MaterialAssessment",
    "OverallBalance",
    "Recommendation",
    "Significance",
    "SpatialData",
    "assess_considerations",
    "evidence_confidence",
    "perform_balancing",
    "synthesize_decision",
    "weighted_average",
]
