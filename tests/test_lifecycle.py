"""
Tests for the Hypothesis Lifecycle Engine.

These tests verify:
1. Lifecycle state is derived purely from falsifier and validation
2. Rule precedence (retracted before proposed before falsified)
3. Falsified and retracted hypotheses never reach recommendations
4. Intervention value dominates novelty in ordering
5. Stable ordering for equal keys
"""

import pytest

from causalguard.domain import BoundaryError, BoundaryRule, Hypothesis, LifecycleState
from causalguard.evidence import ValidationMetrics, ValidationResult
from causalguard.lifecycle import (
    evaluate_lifecycle,
    is_recommendation_eligible,
    lifecycle_state,
    order_for_recommendation,
    recommendation_sort_key,
    select_top_recommendations,
)


# =============================================================================
# TEST FIXTURES
# =============================================================================

GOOD_FALSIFIER = "Reject if the outcome does not shift by 0.2 under matched controls."


def make_hypothesis(
    hypothesis_id: str = "h-1",
    falsifier: str = GOOD_FALSIFIER,
    validation: ValidationResult = None,
    novelty: float = None,
    intervention_value: float = None,
) -> Hypothesis:
    """Helper to create a Hypothesis for testing."""
    return Hypothesis(
        id=hypothesis_id,
        thesis=f"Thesis for {hypothesis_id}",
        falsifier=falsifier,
        validation_result=validation,
        novelty_score=novelty,
        intervention_value_score=intervention_value,
    )


def make_validation(success: bool = True, p_value: float = None, valid: bool = None) -> ValidationResult:
    return ValidationResult(success, ValidationMetrics(p_value=p_value, conclusion_valid=valid))


# =============================================================================
# STATE DERIVATION TESTS
# =============================================================================

class TestLifecycleState:
    """Test each derivation rule."""

    def test_no_validation_is_proposed(self):
        decision = evaluate_lifecycle(make_hypothesis())
        assert decision.state is LifecycleState.PROPOSED
        assert decision.rule == "awaiting_validation"

    def test_significant_validation_is_tested(self):
        h = make_hypothesis(validation=make_validation(p_value=0.01, valid=True))
        assert lifecycle_state(h) is LifecycleState.TESTED

    def test_validation_without_metrics_is_tested(self):
        h = make_hypothesis(validation=ValidationResult(True))
        assert lifecycle_state(h) is LifecycleState.TESTED

    def test_failed_validation_is_falsified(self):
        decision = evaluate_lifecycle(make_hypothesis(validation=make_validation(success=False)))
        assert decision.state is LifecycleState.FALSIFIED
        assert decision.rule == "validation_failed"

    def test_p_value_at_threshold_is_falsified(self):
        decision = evaluate_lifecycle(make_hypothesis(validation=make_validation(p_value=0.05)))
        assert decision.state is LifecycleState.FALSIFIED
        assert decision.rule == "not_significant"

    def test_invalid_conclusion_is_falsified(self):
        decision = evaluate_lifecycle(make_hypothesis(validation=make_validation(p_value=0.01, valid=False)))
        assert decision.state is LifecycleState.FALSIFIED
        assert decision.rule == "conclusion_invalid"

    def test_short_falsifier_is_retracted(self):
        decision = evaluate_lifecycle(make_hypothesis(falsifier="too short"))
        assert decision.state is LifecycleState.RETRACTED
        assert decision.rule == "falsifier_missing"

    def test_missing_falsifier_is_retracted(self):
        assert lifecycle_state(make_hypothesis(falsifier=None)) is LifecycleState.RETRACTED

    def test_whitespace_does_not_count_toward_falsifier(self):
        assert lifecycle_state(make_hypothesis(falsifier="   short text   ".ljust(40))) is LifecycleState.RETRACTED

    def test_retraction_wins_over_validation(self):
        """A missing falsifier retracts even a successfully validated idea."""
        h = make_hypothesis(falsifier="", validation=make_validation(p_value=0.01, valid=True))
        assert lifecycle_state(h) is LifecycleState.RETRACTED

    def test_state_is_recomputed_on_read(self):
        h = make_hypothesis()
        assert h.lifecycle_state is LifecycleState.PROPOSED
        assert h.lifecycle.rationale == evaluate_lifecycle(h).rationale


class TestHypothesisBoundary:

    def test_blank_id_rejected(self):
        with pytest.raises(BoundaryError) as exc:
            make_hypothesis(hypothesis_id=" ")
        assert exc.value.rule == BoundaryRule.B3_MISSING_FIELD

    def test_non_finite_score_rejected(self):
        with pytest.raises(BoundaryError) as exc:
            make_hypothesis(novelty=float("inf"))
        assert exc.value.rule == BoundaryRule.B1_NON_FINITE_INPUT


# =============================================================================
# RECOMMENDATION TESTS
# =============================================================================

class TestEligibility:

    def test_proposed_and_tested_are_eligible(self):
        assert is_recommendation_eligible(make_hypothesis())
        assert is_recommendation_eligible(make_hypothesis(validation=make_validation(p_value=0.001)))

    def test_falsified_and_retracted_are_not(self):
        assert not is_recommendation_eligible(make_hypothesis(validation=make_validation(success=False)))
        assert not is_recommendation_eligible(make_hypothesis(falsifier=None))


class TestOrdering:
    """Test intervention-first ordering."""

    def test_intervention_value_dominates_novelty(self):
        flashy = make_hypothesis("flashy", novelty=92, intervention_value=0.18)
        useful = make_hypothesis("useful", novelty=36, intervention_value=0.84)
        assert [h.id for h in order_for_recommendation([flashy, useful])] == ["useful", "flashy"]

    def test_novelty_breaks_ties(self):
        a = make_hypothesis("a", novelty=0.2, intervention_value=0.5)
        b = make_hypothesis("b", novelty=0.9, intervention_value=0.5)
        assert [h.id for h in order_for_recommendation([a, b])] == ["b", "a"]

    def test_mixed_scales_are_comparable(self):
        percent = make_hypothesis("percent", intervention_value=60)
        unit = make_hypothesis("unit", intervention_value=0.5)
        assert recommendation_sort_key(percent) < recommendation_sort_key(unit)

    def test_ineligible_sorts_last(self):
        falsified = make_hypothesis("dead", intervention_value=0.99, validation=make_validation(success=False))
        alive = make_hypothesis("alive", intervention_value=0.1)
        assert [h.id for h in order_for_recommendation([falsified, alive])] == ["alive", "dead"]

    def test_equal_keys_keep_input_order(self):
        hypotheses = [make_hypothesis(f"h{i}", intervention_value=0.5) for i in range(5)]
        assert [h.id for h in order_for_recommendation(hypotheses)] == [f"h{i}" for i in range(5)]

    def test_top_recommendations_exclude_ineligible(self):
        hypotheses = [
            make_hypothesis("retracted", falsifier="nope", intervention_value=0.99),
            make_hypothesis("a", intervention_value=0.7),
            make_hypothesis("b", intervention_value=0.6),
            make_hypothesis("c", intervention_value=0.5),
            make_hypothesis("d", intervention_value=0.4),
        ]
        assert [h.id for h in select_top_recommendations(hypotheses)] == ["a", "b", "c"]

    def test_top_recommendations_with_zero_count(self):
        assert select_top_recommendations([make_hypothesis()], max_count=0) == []
