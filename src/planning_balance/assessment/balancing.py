"""Category-weighted planning balance.

``CATEGORY_WEIGHTS`` is a versioned lookup table. It is exposed read-only and
cannot be swapped per request; change it by editing this module and bumping
``CATEGORY_WEIGHTS_VERSION``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from planning_balance.assessment.models import (
    BalanceItem,
    BalancingExercise,
    CategoryAssessment,
    ConsiderationAssessment,
    Decision,
    KeyIssue,
    MaterialRecommendation,
    OverallBalance,
    Significance,
    WeightApplied,
)

log = logging.getLogger(__name__)

CATEGORY_WEIGHTS_VERSION = "2024.1"

CATEGORY_WEIGHTS: Mapping[str, int] = MappingProxyType(
    {
        "Statutory": 100,
        "Heritage": 95,
        "Transport": 85,
        "Environment": 90,
        "Design": 80,
        "Amenity": 75,
        "Housing": 85,
        "Economic": 70,
        "Infrastructure": 65,
        "Climate": 70,
        "Procedural": 60,
        "Other": 50,
    }
)
DEFAULT_CATEGORY_WEIGHT = 50

SIGNIFICANT_BENEFIT_SCORE = 80.0
SIGNIFICANT_HARM_SCORE = 30.0
OVERRIDE_SCORE = 20.0
CRITICAL_ISSUE_SCORE = 30.0

_NARRATIVE_CONCLUSIONS = {
    OverallBalance.BENEFITS_OUTWEIGH_HARMS: (
        "The identified benefits of the proposal are considered to outweigh any harms identified."
    ),
    OverallBalance.NEUTRAL_BALANCE: (
        "The proposal presents a balanced case with benefits and harms broadly offsetting each other."
    ),
    OverallBalance.HARMS_OUTWEIGH_BENEFITS: "The identified harms outweigh the benefits of the proposal.",
    OverallBalance.SIGNIFICANT_HARM_OUTWEIGHS_BENEFITS: (
        "Significant harm has been identified that substantially outweighs any benefits."
    ),
}

_RECOMMENDATIONS = {
    OverallBalance.BENEFITS_OUTWEIGH_HARMS: (
        Decision.APPROVE,
        "Benefits outweigh any identified harms",
        0.8,
    ),
    OverallBalance.NEUTRAL_BALANCE: (
        Decision.APPROVE,
        "Balanced proposal with acceptable impacts",
        0.6,
    ),
    OverallBalance.HARMS_OUTWEIGH_BENEFITS: (Decision.REFUSE, "Harms outweigh benefits", 0.7),
    OverallBalance.SIGNIFICANT_HARM_OUTWEIGHS_BENEFITS: (
        Decision.REFUSE,
        "Significant harm identified",
        0.9,
    ),
}


def category_weight(category: str) -> int:
    return CATEGORY_WEIGHTS.get(category, DEFAULT_CATEGORY_WEIGHT)


def weighted_average(pairs: Iterable[tuple[float, float]]) -> float:
    """``sum(score * weight) / sum(weight)``; 0.0 when all weights are zero."""
    total_weight = 0.0
    total = 0.0
    for score, weight in pairs:
        total += score * weight
        total_weight += weight
    return total / total_weight if total_weight > 0 else 0.0


def categorize_significance(score: float) -> str:
    if score >= 80:
        return "significant_benefit"
    if score >= 60:
        return "minor_benefit"
    if score >= 40:
        return "neutral"
    if score >= 20:
        return "minor_harm"
    return "significant_harm"


def assess_category(
    category: str,
    assessments: list[ConsiderationAssessment],
    weights: Mapping[str, float],
) -> CategoryAssessment:
    """Aggregate considerations into a category by weight-in-category mean.

    ``weights`` maps consideration id to its catalogue weight.
    """
    score = weighted_average((a.score, weights.get(a.id, 0.0)) for a in assessments)
    key_issues = tuple(
        KeyIssue(
            consideration=a.description or a.subcategory,
            issue=a.analysis,
            severity="critical" if a.score < CRITICAL_ISSUE_SCORE else "significant",
        )
        for a in assessments
        if a.score < CRITICAL_ISSUE_SCORE or a.significance == Significance.HIGH
    )
    confidence = (
        round(sum(a.confidence for a in assessments) / len(assessments), 2) if assessments else 0.0
    )
    return CategoryAssessment(
        category=category,
        overall_score=score,
        confidence=confidence,
        considerations=tuple(assessments),
        key_issues=key_issues,
    )


def determine_overall_balance(
    cumulative_score: float, category_scores: Iterable[float]
) -> tuple[OverallBalance, bool]:
    """Classify the balance. Returns ``(balance, override_applied)``.

    Any single category below the override score forces the harm-dominant
    outcome whatever the cumulative score. With no categories there is
    nothing to weigh and the balance is neutral.
    """
    scores = list(category_scores)
    if not scores:
        return OverallBalance.NEUTRAL_BALANCE, False
    if any(score < OVERRIDE_SCORE for score in scores):
        return OverallBalance.SIGNIFICANT_HARM_OUTWEIGHS_BENEFITS, True
    if cumulative_score >= 70:
        return OverallBalance.BENEFITS_OUTWEIGH_HARMS, False
    if cumulative_score >= 50:
        return OverallBalance.NEUTRAL_BALANCE, False
    if cumulative_score >= 30:
        return OverallBalance.HARMS_OUTWEIGH_BENEFITS, False
    return OverallBalance.SIGNIFICANT_HARM_OUTWEIGHS_BENEFITS, False


def balancing_narrative(
    benefits: Iterable[BalanceItem],
    harms: Iterable[BalanceItem],
    balance: OverallBalance,
    cumulative_score: float,
) -> str:
    lines = ["Planning Balance Assessment:", ""]
    benefits, harms = list(benefits), list(harms)
    if benefits:
        lines.append("Significant Benefits:")
        lines.extend(f"- {b.description}" for b in benefits)
        lines.append("")
    if harms:
        lines.append("Significant Harms/Concerns:")
        lines.extend(f"- {h.description}" for h in harms)
        lines.append("")
    lines.append(
        f"Overall Assessment: {balance.value.replace('_', ' ')} "
        f"(Cumulative Score: {cumulative_score:.2f})"
    )
    lines.append("")
    lines.append(_NARRATIVE_CONCLUSIONS[balance])
    return "\n".join(lines)


def perform_balancing(categories: Mapping[str, CategoryAssessment]) -> BalancingExercise:
    """Weigh category scores into a cumulative score and overall balance."""
    weights_applied: dict[str, WeightApplied] = {}
    benefits: list[BalanceItem] = []
    harms: list[BalanceItem] = []

    for name, assessment in categories.items():
        weight = category_weight(name)
        score = assessment.overall_score
        weights_applied[name] = WeightApplied(
            score=score,
            weight=weight,
            weighted_score=score * weight / 100,
            significance=categorize_significance(score),
        )
        if score >= SIGNIFICANT_BENEFIT_SCORE:
            benefits.append(
                BalanceItem(
                    category=name,
                    score=score,
                    description=(
                        f"{name} considerations strongly support the proposal "
                        f"(score: {score:.1f})"
                    ),
                )
            )
        elif score <= SIGNIFICANT_HARM_SCORE:
            issues = ", ".join(i.consideration for i in assessment.key_issues) or "no key issues recorded"
            harms.append(
                BalanceItem(
                    category=name,
                    score=score,
                    description=f"{name} considerations raise concerns: {issues} (score: {score:.1f})",
                )
            )

    cumulative = round(
        weighted_average((w.score, w.weight) for w in weights_applied.values()), 2
    )
    balance, override = determine_overall_balance(
        cumulative, (w.score for w in weights_applied.values())
    )
    if override:
        log.info(f"Category below {OVERRIDE_SCORE:g} forces {balance.value}")

    return BalancingExercise(
        weights_version=CATEGORY_WEIGHTS_VERSION,
        weights_applied=weights_applied,
        cumulative_score=cumulative,
        significant_benefits=tuple(benefits),
        significant_harms=tuple(harms),
        overall_balance=balance,
        override_applied=override,
        narrative=balancing_narrative(benefits, harms, balance, cumulative),
    )


def recommend(balancing: BalancingExercise) -> MaterialRecommendation:
    """Decision implied by the overall balance."""
    decision, reasoning, confidence = _RECOMMENDATIONS.get(
        balancing.overall_balance,
        (Decision.DEFER, "Further information required", 0.3),
    )
    return MaterialRecommendation(decision=decision, reasoning=reasoning, confidence=confidence)
