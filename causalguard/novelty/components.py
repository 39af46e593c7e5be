"""
Novelty Proof Components.

Each component is independently computable with no hidden weights.
Every value is clamped to [0, 1] and rounded to three decimals.

Components:
    - Prior-Art Distance: 1 minus the closest prior-art similarity
    - Contradiction Resolution: share of high-confidence contradictions bridged
    - Mechanism Differentiation: how specific and causal the mechanism is
    - Intervention Value: explicit score, or a do-plan heuristic
    - Falsifiability: how testable the prediction and falsifier are
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..domain import Hypothesis
from ..evidence import ContradictionEvidence, PriorArt


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, round(value, 3)))


def _contains_any(text: str, needles: Sequence[str]) -> bool:
    lower = text.lower()
    return any(needle in lower for needle in needles)


# =============================================================================
# COMPONENT SCORE
# =============================================================================

@dataclass
class ComponentScore:
    """
    A single proof component with full transparency.

    - name: What this component measures
    - value: Score in [0, 1]
    - reason: Human-readable explanation
    - refs: Ids of the evidence rows behind the value
    """
    name: str
    value: float
    reason: str
    refs: list[str] = field(default_factory=list)


# =============================================================================
# PRIOR-ART DISTANCE
# =============================================================================

def closest_prior_art(prior_art: Sequence[PriorArt]) -> Optional[PriorArt]:
    if not prior_art:
        return None
    return max(prior_art, key=lambda item: item.effective_similarity)


def compute_prior_art_distance(prior_art: Sequence[PriorArt]) -> ComponentScore:
    """
    Distance to the closest prior art.

    No retrieved prior art means maximal distance, not an error.
    """
    closest = closest_prior_art(prior_art)
    if closest is None:
        return ComponentScore("prior_art_distance", 1.0, "No prior art retrieved")
    similarity = closest.effective_similarity
    return ComponentScore(
        "prior_art_distance",
        clamp01(1 - similarity),
        f"Closest prior art '{closest.title}' ({closest.source}) at similarity {similarity:.2f}",
    )


# =============================================================================
# CONTRADICTION RESOLUTION
# =============================================================================

def compute_contradiction_resolution(
    hypothesis: Hypothesis,
    contradictions: Sequence[ContradictionEvidence],
) -> ComponentScore:
    """
    Share of high-confidence contradictions the idea bridges.

    A contradiction is bridged when its concept appears in the thesis or
    description, or in any bridged concept.
    """
    text = f"{hypothesis.thesis} {hypothesis.description}".lower()
    bridged = [concept.lower() for concept in hypothesis.bridged_concepts]

    hits = []
    for row in contradictions:
        concept = row.concept.lower().strip()
        if not concept:
            continue
        if concept in text or any(concept in item for item in bridged):
            hits.append(row.id)

    high_confidence = sum(1 for row in contradictions if row.high_confidence)
    value = clamp01(len(hits) / max(1, high_confidence))
    return ComponentScore(
        "contradiction_resolution",
        value,
        f"Bridges {len(hits)} contradiction(s) against {high_confidence} high-confidence row(s)",
        refs=hits,
    )


# =============================================================================
# MECHANISM DIFFERENTIATION
# =============================================================================

MECHANISM_CAUSAL_TERMS = ["because", "therefore", "mediates", "causes"]


def compute_mechanism_differentiation(hypothesis: Hypothesis) -> ComponentScore:
    mechanism = hypothesis.mechanism or ""
    score = 0.2
    notes = []
    if len(mechanism) >= 80:
        score += 0.35
        notes.append("detailed mechanism")
    if len(hypothesis.bridged_concepts) >= 2:
        score += 0.25
        notes.append(f"bridges {len(hypothesis.bridged_concepts)} concepts")
    if _contains_any(mechanism, MECHANISM_CAUSAL_TERMS):
        score += 0.2
        notes.append("explicit causal connective")
    return ComponentScore(
        "mechanism_differentiation",
        clamp01(score),
        ", ".join(notes) if notes else "Mechanism is thin and generic",
    )


# =============================================================================
# INTERVENTION VALUE
# =============================================================================

MECHANISM_INTERVENTION_TERMS = ["intervene", "control", "counterfactual", "policy"]
DO_PLAN_TERMS = ["do(", "intervention", "ablation", "treatment"]


def compute_intervention_value(hypothesis: Hypothesis) -> ComponentScore:
    """Use the supplied score when present; otherwise score the do-plan."""
    if hypothesis.intervention_value_score is not None:
        return ComponentScore(
            "intervention_value",
            clamp01(hypothesis.intervention_value_score),
            "Supplied intervention value score",
        )

    do_plan = hypothesis.do_plan or ""
    score = 0.2
    notes = []
    if len(do_plan) > 25:
        score += 0.35
        notes.append("concrete do-plan")
    if _contains_any(hypothesis.mechanism or "", MECHANISM_INTERVENTION_TERMS):
        score += 0.25
        notes.append("mechanism names a lever")
    if _contains_any(do_plan, DO_PLAN_TERMS):
        score += 0.2
        notes.append("plan specifies an intervention")
    return ComponentScore(
        "intervention_value",
        clamp01(score),
        ", ".join(notes) if notes else "No actionable intervention plan",
    )


# =============================================================================
# FALSIFIABILITY
# =============================================================================

PREDICTION_TERMS = ["if", "then", "expect", "observe"]
FALSIFIER_TERMS = ["fail", "reject", "disconfirm", "null"]


def compute_falsifiability(hypothesis: Hypothesis) -> ComponentScore:
    prediction = hypothesis.prediction or ""
    falsifier = hypothesis.falsifier or ""
    score = 0.2
    notes = []
    if len(prediction) >= 40:
        score += 0.25
        notes.append("specific prediction")
    if _contains_any(prediction, PREDICTION_TERMS):
        score += 0.2
        notes.append("conditional prediction")
    if len(falsifier) >= 20:
        score += 0.25
        notes.append("defined falsifier")
    if _contains_any(falsifier, FALSIFIER_TERMS):
        score += 0.1
        notes.append("explicit rejection criterion")
    return ComponentScore(
        "falsifiability",
        clamp01(score),
        ", ".join(notes) if notes else "Nothing would count against this idea",
    )
