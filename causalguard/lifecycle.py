"""
Hypothesis Lifecycle Engine.

The lifecycle state is a pure function of the falsifier and the external
validation result. It is evaluated fresh on every read and never stored,
so there is no transition history to drift.

Evaluation order (first rule that applies wins):
1. Falsifier missing or shorter than 20 characters → retracted
2. No validation result → proposed
3. Validation did not succeed → falsified
4. p-value ≥ 0.05 or conclusion marked invalid → falsified
5. Otherwise → tested

Recommendation ordering ranks by intervention value. Novelty only breaks
ties, so a flashy but low-leverage idea never outranks an actionable one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .domain import MIN_FALSIFIER_LENGTH, Hypothesis, LifecycleState
from .evidence import P_VALUE_THRESHOLD


ELIGIBLE_STATES = frozenset({LifecycleState.PROPOSED, LifecycleState.TESTED})


@dataclass(frozen=True)
class LifecycleDecision:
    """The derived state plus the rule that produced it."""
    state: LifecycleState
    rule: str
    rationale: str


def evaluate_lifecycle(hypothesis: Hypothesis) -> LifecycleDecision:
    falsifier = (hypothesis.falsifier or "").strip()
    if len(falsifier) < MIN_FALSIFIER_LENGTH:
        return LifecycleDecision(
            LifecycleState.RETRACTED,
            "falsifier_missing",
            f"Falsifier is missing or shorter than {MIN_FALSIFIER_LENGTH} characters.",
        )

    validation = hypothesis.validation_result
    if validation is None:
        return LifecycleDecision(
            LifecycleState.PROPOSED,
            "awaiting_validation",
            "Falsifier is defined and no validation has been run.",
        )

    if not validation.success:
        return LifecycleDecision(
            LifecycleState.FALSIFIED,
            "validation_failed",
            "Intervention validation did not succeed.",
        )

    if validation.p_value is not None and validation.p_value >= P_VALUE_THRESHOLD:
        return LifecycleDecision(
            LifecycleState.FALSIFIED,
            "not_significant",
            f"Validation p-value {validation.p_value} is not below {P_VALUE_THRESHOLD}.",
        )

    if validation.conclusion_valid is False:
        return LifecycleDecision(
            LifecycleState.FALSIFIED,
            "conclusion_invalid",
            "Validation conclusion was marked invalid.",
        )

    return LifecycleDecision(
        LifecycleState.TESTED,
        "validated",
        "Intervention validation succeeded.",
    )


def lifecycle_state(hypothesis: Hypothesis) -> LifecycleState:
    return evaluate_lifecycle(hypothesis).state


def is_recommendation_eligible(hypothesis: Hypothesis) -> bool:
    """Eligible iff proposed or tested and carrying a real falsifier."""
    return (
        lifecycle_state(hypothesis) in ELIGIBLE_STATES
        and hypothesis.has_valid_falsifier
    )


# =============================================================================
# RECOMMENDATION ORDERING
# =============================================================================

def _unit_score(value: Optional[float]) -> float:
    """Scores arrive on 0-1 or 0-100 scales; compare them on 0-1."""
    if value is None:
        return 0.0
    if value > 1:
        value = value / 100
    return max(0.0, min(1.0, value))


def recommendation_sort_key(hypothesis: Hypothesis) -> tuple:
    """
    Sort key: eligible first, then intervention value descending, then
    novelty descending as a tie-break.
    """
    return (
        0 if is_recommendation_eligible(hypothesis) else 1,
        -_unit_score(hypothesis.intervention_value_score),
        -_unit_score(hypothesis.novelty_score),
    )


def order_for_recommendation(hypotheses: Iterable[Hypothesis]) -> list[Hypothesis]:
    """Stable ordering; equal keys keep their input order."""
    return sorted(hypotheses, key=recommendation_sort_key)


def select_top_recommendations(
    hypotheses: Iterable[Hypothesis],
    max_count: int = 3,
) -> list[Hypothesis]:
    """The best eligible hypotheses, at most max_count of them."""
    ordered = order_for_recommendation(hypotheses)
    return [h for h in ordered if is_recommendation_eligible(h)][:max(0, max_count)]
