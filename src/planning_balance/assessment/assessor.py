"""Material consideration assessment over the full catalogue."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from planning_balance.assessment.balancing import assess_category, perform_balancing, recommend
from planning_balance.assessment.considerations import select
from planning_balance.assessment.models import (
    ApplicationData,
    CategoryAssessment,
    DocumentData,
    MaterialAssessment,
    SpatialData,
)
from planning_balance.assessment.rules import AssessmentFacts, apply_rule

log = logging.getLogger(__name__)


def assess_considerations(
    application_data: ApplicationData | None = None,
    spatial_data: SpatialData | None = None,
    document_data: DocumentData | None = None,
    *,
    subcategories: Iterable[str] | None = None,
) -> MaterialAssessment:
    """Score every catalogue consideration, aggregate by category and balance.

    Missing inputs are treated as empty facts; nothing here raises on
    absent data.
    """
    facts = AssessmentFacts(
        application=application_data or ApplicationData(),
        spatial=spatial_data or SpatialData(),
        document=document_data or DocumentData(),
    )

    categories: dict[str, CategoryAssessment] = {}
    for category, considerations in select(subcategories).items():
        assessments = [apply_rule(c, facts) for c in considerations]
        weights = {c.id: float(c.weight) for c in considerations}
        categories[category] = assess_category(category, assessments, weights)

    balancing = perform_balancing(categories)
    recommendation = recommend(balancing)
    confidence = (
        round(sum(c.confidence for c in categories.values()) / len(categories), 2)
        if categories
        else 0.0
    )

    log.info(
        f"Assessed {sum(len(c.considerations) for c in categories.values())} considerations "
        f"in {len(categories)} categories: {balancing.overall_balance.value} "
        f"(score {balancing.cumulative_score})"
    )
    return MaterialAssessment(
        categories=categories,
        balancing=balancing,
        recommendation=recommendation,
        confidence=confidence,
        spatial=facts.spatial,
    )
