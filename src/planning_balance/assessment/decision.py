"""Final recommendation synthesis.

``overall = 0.4 * material + 0.3 * ai_analysis + 0.3 * evidence``, clamped
to [0, 1]. Evidence confidence is a step function of the citation count.
"""

from __future__ import annotations

import logging

from planning_balance.assessment.models import (
    Decision,
    DecisionSynthesis,
    KeyConsideration,
    MaterialAssessment,
    Recommendation,
    RiskFactor,
    clamp_confidence,
)

log = logging.getLogger(__name__)

MATERIAL_WEIGHT = 0.4
AI_WEIGHT = 0.3
EVIDENCE_WEIGHT = 0.3

DEFAULT_COMPONENT_CONFIDENCE = 0.5
LOW_CONFIDENCE = 0.6
APPEAL_RISK_CONFIDENCE = 0.7
MIN_CITATIONS = 5


def evidence_confidence(citation_count: int | None) -> float:
    if not citation_count:
        return 0.3
    if citation_count >= 20:
        return 0.9
    if citation_count >= 10:
        return 0.8
    if citation_count >= 5:
        return 0.7
    return 0.6


def overall_confidence(material: float, ai_analysis: float, evidence: float) -> float:
    return clamp_confidence(
        MATERIAL_WEIGHT * material + AI_WEIGHT * ai_analysis + EVIDENCE_WEIGHT * evidence
    )


def identify_risk_factors(
    assessment: MaterialAssessment | None, confidence: float
) -> list[RiskFactor]:
    risks: list[RiskFactor] = []
    spatial = assessment.spatial if assessment is not None else None
    if spatial is not None:
        if spatial.intersecting("conservation_areas"):
            risks.append(
                RiskFactor(
                    type="heritage",
                    level="high",
                    description="Site within Conservation Area - significant heritage considerations",
                )
            )
        if spatial.intersecting("listed_buildings"):
            risks.append(
                RiskFactor(
                    type="heritage",
                    level="high",
                    description="Listed buildings affected - statutory consultation required",
                )
            )
        if spatial.intersecting("flood_zones"):
            risks.append(
                RiskFactor(
                    type="environment",
                    level="medium",
                    description="Flood risk considerations - drainage assessment required",
                )
            )
    if confidence < LOW_CONFIDENCE:
        risks.append(
            RiskFactor(
                type="procedural",
                level="medium",
                description="Low confidence recommendation - additional information required",
            )
        )
    return risks


def assess_appeal_risk(decision: Decision, confidence: float) -> str:
    if decision == Decision.REFUSE and confidence < APPEAL_RISK_CONFIDENCE:
        return "medium"
    return "low"


def extract_key_considerations(assessment: MaterialAssessment | None) -> list[KeyConsideration]:
    if assessment is None:
        return []
    return [
        KeyConsideration(category=category, issue=issue.consideration, severity=issue.severity)
        for category, cat in assessment.categories.items()
        for issue in cat.key_issues
    ]


def suggest_conditions(assessment: MaterialAssessment | None) -> list[str]:
    """Every consideration's conditions, de-duplicated in first-seen order."""
    if assessment is None:
        return []
    conditions = (c for cat in assessment.categories.values() for c in cat.conditions)
    return list(dict.fromkeys(conditions))


def identify_information_requirements(
    citation_count: int | None, ai_confidence: float | None
) -> list[str]:
    requirements: list[str] = []
    if not citation_count or citation_count < MIN_CITATIONS:
        requirements.append("Additional supporting documents required")
    if ai_confidence is None or ai_confidence < LOW_CONFIDENCE:
        requirements.append("Clarification of proposal details required")
    return requirements


def synthesize_decision(
    assessment: MaterialAssessment | None,
    *,
    citation_count: int | None = None,
    ai_confidence: float | None = None,
) -> Recommendation:
    """Combine the planning balance, AI analysis and evidence into a recommendation.

    Args:
        assessment: Output of ``assess_considerations``; ``None`` defers.
        citation_count: Size of the run's citation index.
        ai_confidence: Confidence of any upstream AI analysis, if one ran.
    """
    material = assessment.recommendation if assessment is not None else None
    material_conf = material.confidence if material is not None else DEFAULT_COMPONENT_CONFIDENCE
    ai_conf = DEFAULT_COMPONENT_CONFIDENCE if ai_confidence is None else ai_confidence
    evidence_conf = evidence_confidence(citation_count)
    confidence = overall_confidence(material_conf, ai_conf, evidence_conf)

    decision = Decision.DEFER
    reasoning = "Insufficient information for clear recommendation"
    if material is not None and material.decision != Decision.DEFER:
        decision = material.decision
        reasoning = material.reasoning

    recommendation = Recommendation(
        decision=decision,
        reasoning=reasoning,
        confidence=confidence,
        risk_factors=tuple(identify_risk_factors(assessment, confidence)),
        key_considerations=tuple(extract_key_considerations(assessment)),
        conditions=tuple(suggest_conditions(assessment)),
        information_requirements=tuple(
            identify_information_requirements(citation_count, ai_confidence)
        ),
        appeal_risk=assess_appeal_risk(decision, confidence),
        synthesis=DecisionSynthesis(
            material_balance=material,
            evidence_confidence=evidence_conf,
            overall_confidence=confidence,
        ),
    )
    log.info(f"Recommendation: {decision.value} ({confidence:.0%} confidence)")
    return recommendation
