"""
Tests for the Novelty-Proof Scorer.

These tests verify:
1. Each component is independently computable and explained
2. Blocked reasons use the fixed vocabulary
3. A failing prior-art lookup only blocks its own hypothesis
4. The batch gate passes iff at least one proof passes
5. Recovery plans name the diagnosis for each blocked reason
"""

import asyncio

import pytest

from causalguard.config import NoveltyThresholds
from causalguard.domain import Hypothesis, NoveltyDecision, ProofStatus
from causalguard.evidence import ContradictionEvidence, PriorArt
from causalguard.novelty.components import (
    compute_contradiction_resolution,
    compute_falsifiability,
    compute_intervention_value,
    compute_mechanism_differentiation,
    compute_prior_art_distance,
)
from causalguard.novelty.recovery import RECOVERY_MESSAGE, build_recovery_plan, infer_domain
from causalguard.novelty.scorer import (
    DEFAULT_ASSUMPTIONS,
    GATE_ALL_PASSED,
    GATE_NO_CANDIDATES,
    GATE_SOME_BLOCKED,
    REASON_CONTRADICTION,
    REASON_FALSIFIABILITY,
    REASON_INTERVENTION_VALUE,
    REASON_LOOKUP_FAILED,
    REASON_PRIOR_ART_OVERLAP,
    NoveltyProofConfig,
    compute_novelty_gate,
    compute_novelty_proofs,
    explain_proof,
)


# =============================================================================
# TEST FIXTURES
# =============================================================================

THRESHOLDS = NoveltyThresholds(
    novelty_threshold=0.3,
    falsifiability_threshold=0.55,
    contradiction_threshold=0.45,
)

CONTRADICTIONS = [
    ContradictionEvidence(
        id="c-1",
        concept="mycorrhizal",
        claim_a="Trees compete for nutrients.",
        claim_b="Trees share nutrients through fungal networks.",
        high_confidence=True,
    ),
]


def make_strong_idea(hypothesis_id: str = "strong") -> Hypothesis:
    """An idea that clears every threshold."""
    return Hypothesis(
        id=hypothesis_id,
        thesis="Mycorrhizal coupling buffers drought stress in connected stands.",
        mechanism=(
            "Fungal links redistribute water from deep-rooted trees because hydraulic "
            "gradients drive flow toward stressed neighbors."
        ),
        prediction="If the fungal links are severed, then drought mortality rises in shaded saplings.",
        falsifier="Reject if severing links fails to change sapling mortality under drought.",
        intervention_value_score=0.8,
        bridged_concepts=("Mycorrhizal network", "Drought"),
    )


def make_weak_idea(hypothesis_id: str = "weak") -> Hypothesis:
    """An idea that fails every threshold."""
    return Hypothesis(
        id=hypothesis_id,
        thesis="Plants like being plants.",
        falsifier="None.",
    )


def make_lookup(table: dict, failing: tuple = ()):
    """Async prior-art lookup keyed by thesis; raises for failing theses."""

    async def lookup(hypothesis: Hypothesis) -> list:
        if hypothesis.thesis in failing:
            raise ConnectionError("search backend unavailable")
        return table.get(hypothesis.thesis, [])

    return lookup


def run_proofs(hypotheses, lookup=None, contradictions=CONTRADICTIONS):
    config = NoveltyProofConfig(THRESHOLDS, lookup)
    return asyncio.run(compute_novelty_proofs(hypotheses, contradictions, config))


# =============================================================================
# COMPONENT TESTS
# =============================================================================

class TestComponents:
    """Each component is explained and bounded."""

    def test_no_prior_art_is_max_distance(self):
        score = compute_prior_art_distance([])
        assert score.value == 1.0
        assert score.reason == "No prior art retrieved"

    def test_closest_prior_art_wins(self):
        score = compute_prior_art_distance([
            PriorArt("arxiv", "Far", 0.1),
            PriorArt("arxiv", "Near", 0.6),
        ])
        assert score.value == pytest.approx(0.4)
        assert "'Near'" in score.reason

    def test_percent_similarity_is_rescaled(self):
        assert compute_prior_art_distance([PriorArt("s2", "Paper", 22)]).value == pytest.approx(0.78)

    def test_adjusted_similarity_takes_precedence(self):
        score = compute_prior_art_distance([PriorArt("s2", "Paper", 0.9, adjusted_similarity=0.3)])
        assert score.value == pytest.approx(0.7)

    def test_contradiction_resolution_refs(self):
        score = compute_contradiction_resolution(make_strong_idea(), CONTRADICTIONS)
        assert score.value == 1.0
        assert score.refs == ["c-1"]

    def test_contradiction_resolution_without_rows(self):
        assert compute_contradiction_resolution(make_strong_idea(), []).value == 0.0

    def test_mechanism_differentiation_full(self):
        assert compute_mechanism_differentiation(make_strong_idea()).value == 1.0

    def test_mechanism_differentiation_thin(self):
        score = compute_mechanism_differentiation(make_weak_idea())
        assert score.value == 0.2
        assert score.reason == "Mechanism is thin and generic"

    def test_supplied_intervention_value_used(self):
        score = compute_intervention_value(make_strong_idea())
        assert score.value == 0.8
        assert score.reason == "Supplied intervention value score"

    def test_intervention_value_from_do_plan(self):
        h = Hypothesis(
            id="plan",
            thesis="t",
            mechanism="A policy lever on irrigation",
            do_plan="Run an ablation removing irrigation on half the plots.",
        )
        assert compute_intervention_value(h).value == 1.0

    def test_falsifiability_full(self):
        assert compute_falsifiability(make_strong_idea()).value == 1.0

    def test_falsifiability_weak(self):
        assert compute_falsifiability(make_weak_idea()).value == 0.2


# =============================================================================
# PROOF TESTS
# =============================================================================

class TestNoveltyProofs:

    def test_strong_idea_passes(self):
        lookup = make_lookup({make_strong_idea().thesis: [PriorArt("arxiv", "Related", 0.22)]})
        [proof] = run_proofs([make_strong_idea()], lookup)
        assert proof.proof_status is ProofStatus.PASS
        assert proof.passed
        assert proof.blocked_reasons == []
        assert proof.novelty_score == pytest.approx(0.78)
        assert proof.contradiction_ids == ["c-1"]
        assert proof.closest_prior_art.title == "Related"

    def test_weak_idea_blocked_with_all_reasons(self):
        lookup = make_lookup({"Plants like being plants.": [PriorArt("arxiv", "Same", 0.9)]})
        [proof] = run_proofs([make_weak_idea()], lookup)
        assert proof.proof_status is ProofStatus.BLOCKED
        assert proof.blocked_reasons == [
            REASON_PRIOR_ART_OVERLAP,
            REASON_FALSIFIABILITY,
            REASON_CONTRADICTION,
            REASON_INTERVENTION_VALUE,
        ]

    def test_lookup_failure_is_isolated(self):
        strong_a = make_strong_idea("a")
        strong_b = Hypothesis(**{**make_strong_idea("b").__dict__, "thesis": "Mycorrhizal links share carbon."})
        lookup = make_lookup({}, failing=(strong_a.thesis,))
        proofs = run_proofs([strong_a, strong_b], lookup)

        assert [p.hypothesis_id for p in proofs] == ["a", "b"]
        assert proofs[0].blocked_reasons == [REASON_LOOKUP_FAILED]
        assert proofs[0].novelty_score == 0.0
        assert proofs[1].passed

    def test_lookup_failure_replaces_overlap_reason(self):
        lookup = make_lookup({}, failing=("Plants like being plants.",))
        [proof] = run_proofs([make_weak_idea()], lookup)
        assert REASON_LOOKUP_FAILED in proof.blocked_reasons
        assert REASON_PRIOR_ART_OVERLAP not in proof.blocked_reasons

    def test_no_lookup_means_no_prior_art(self):
        [proof] = run_proofs([make_strong_idea()])
        assert proof.novelty_score == 1.0
        assert proof.prior_art == []

    def test_default_falsification_plan(self):
        [proof] = run_proofs([make_weak_idea()])
        assert proof.falsification_plan.disconfirming_experiment == "None."
        assert proof.falsification_plan.required_assumptions == DEFAULT_ASSUMPTIONS

    def test_components_are_listed(self):
        [proof] = run_proofs([make_strong_idea()])
        assert [c.name for c in proof.components] == [
            "prior_art_distance",
            "contradiction_resolution",
            "mechanism_differentiation",
            "intervention_value",
            "falsifiability",
        ]

    def test_explain_proof(self):
        [proof] = run_proofs([make_weak_idea()])
        text = explain_proof(proof)
        assert "## Novelty Proof: weak" in text
        assert "### Blocked Because" in text


# =============================================================================
# GATE AND RECOVERY TESTS
# =============================================================================

class TestNoveltyGate:

    def test_empty_batch_recovers(self):
        gate = compute_novelty_gate([], 0.3)
        assert gate.decision is NoveltyDecision.RECOVER
        assert gate.reasons == [GATE_NO_CANDIDATES]

    def test_all_passing(self):
        gate = compute_novelty_gate(run_proofs([make_strong_idea()]), 0.3)
        assert gate.passed
        assert gate.reasons == [GATE_ALL_PASSED]

    def test_one_passing_is_enough(self):
        gate = compute_novelty_gate(run_proofs([make_weak_idea(), make_strong_idea()]), 0.3)
        assert gate.decision is NoveltyDecision.PASS
        assert gate.passing == 1
        assert gate.blocked == 1
        assert gate.reasons == [GATE_SOME_BLOCKED]

    def test_all_blocked_carries_union_of_reasons(self):
        gate = compute_novelty_gate(run_proofs([make_weak_idea()]), 0.3)
        assert gate.decision is NoveltyDecision.RECOVER
        assert REASON_FALSIFIABILITY in gate.reasons
        assert REASON_CONTRADICTION in gate.reasons


class TestRecoveryPlan:

    def test_recovery_plan_diagnosis(self):
        lookup = make_lookup({"Plants like being plants.": [PriorArt("arxiv", "Same", 0.9)]})
        proofs = run_proofs([make_weak_idea()], lookup)
        gate = compute_novelty_gate(proofs, 0.3)
        plan = build_recovery_plan(gate, proofs, [])

        assert plan.message == RECOVERY_MESSAGE
        assert plan.domain == "default"
        assert any("prior-art overlap" in line for line in plan.diagnosis)
        assert "No high-confidence contradiction was found across supplied sources." in plan.diagnosis
        assert any("different causal mediator" in s for s in plan.suggested_interventions)

    def test_infer_domain(self):
        proofs = run_proofs([Hypothesis(id="d", thesis="A new drug slows cell ageing.")])
        assert infer_domain(proofs) == "biotech"
