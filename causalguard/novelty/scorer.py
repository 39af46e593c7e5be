"""
Novelty-Proof Scorer.

Builds a proof for each candidate hypothesis from five component scores
and decides whether the batch has at least one idea worth pursuing.

Prior art is fetched through an injected async lookup. A lookup that
raises only affects its own hypothesis: that proof is blocked with
`prior_art_lookup_failed` and the rest of the batch is scored normally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Optional, Sequence

from ..config import NoveltyThresholds
from ..domain import Hypothesis, NoveltyDecision, ProofStatus
from ..evidence import ContradictionEvidence, PriorArt
from .components import (
    ComponentScore,
    closest_prior_art,
    compute_contradiction_resolution,
    compute_falsifiability,
    compute_intervention_value,
    compute_mechanism_differentiation,
    compute_prior_art_distance,
)

logger = logging.getLogger(__name__)


# Receives the whole hypothesis so callers can key on id, thesis or description
PriorArtLookup = Callable[[Hypothesis], Awaitable[Sequence[PriorArt]]]


# Fixed vocabulary of blocked reasons
REASON_PRIOR_ART_OVERLAP = "prior_art_overlap_above_threshold"
REASON_FALSIFIABILITY = "falsifiability_signal_insufficient"
REASON_CONTRADICTION = "contradiction_bridge_missing"
REASON_INTERVENTION_VALUE = "intervention_value_too_low"
REASON_LOOKUP_FAILED = "prior_art_lookup_failed"

GATE_NO_CANDIDATES = "no_candidate_ideas"
GATE_SOME_BLOCKED = "some_candidates_blocked"
GATE_ALL_PASSED = "all_candidates_passed"

DEFAULT_DISCONFIRMING_EXPERIMENT = (
    "Run an ablation that removes the proposed mechanism and compare outcome deltas against baseline."
)
DEFAULT_FAILURE_SIGNAL = (
    "If core mechanism is invalid, predicted effect size collapses under intervention."
)
DEFAULT_ASSUMPTIONS = ("measurement_validity", "stable_context")
DEFAULT_CONFOUNDERS = ("selection_bias", "temporal_shift")


# =============================================================================
# CONFIG AND RESULTS
# =============================================================================

@dataclass(frozen=True)
class NoveltyProofConfig:
    thresholds: NoveltyThresholds = field(default_factory=NoveltyThresholds)
    prior_art_lookup: Optional[PriorArtLookup] = None


@dataclass(frozen=True)
class FalsificationPlan:
    disconfirming_experiment: str
    expected_failure_signal: str
    required_assumptions: tuple[str, ...]
    confounders_to_control: tuple[str, ...]


@dataclass
class NoveltyProof:
    """
    Proof of novelty for one hypothesis.

    The novelty score is the prior-art distance: how far the idea sits
    from the closest thing already known.
    """
    hypothesis_id: str
    thesis: str
    novelty_score: float
    contradiction_resolution_score: float
    mechanism_differentiation_score: float
    intervention_value_score: float
    falsifiability_score: float
    proof_status: ProofStatus
    blocked_reasons: list[str]
    contradiction_ids: list[str]
    prior_art: list[PriorArt]
    falsification_plan: FalsificationPlan
    assumptions: list[str] = field(default_factory=list)
    confounders: list[str] = field(default_factory=list)
    components: list[ComponentScore] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.proof_status is ProofStatus.PASS

    @property
    def closest_prior_art(self) -> Optional[PriorArt]:
        return closest_prior_art(self.prior_art)


@dataclass
class NoveltyGateResult:
    decision: NoveltyDecision
    threshold: float
    passing: int
    blocked: int
    reasons: list[str]

    @property
    def passed(self) -> bool:
        return self.decision is NoveltyDecision.PASS


# =============================================================================
# PROOF CONSTRUCTION
# =============================================================================

def blocked_reasons(
    components: dict[str, ComponentScore],
    contradiction_ids: Sequence[str],
    thresholds: NoveltyThresholds,
    lookup_failed: bool = False,
) -> list[str]:
    reasons: list[str] = []
    if lookup_failed:
        reasons.append(REASON_LOOKUP_FAILED)
    elif components["prior_art_distance"].value < thresholds.novelty_threshold:
        reasons.append(REASON_PRIOR_ART_OVERLAP)
    if components["falsifiability"].value < thresholds.falsifiability_threshold:
        reasons.append(REASON_FALSIFIABILITY)
    if (
        components["contradiction_resolution"].value < thresholds.contradiction_threshold
        or not contradiction_ids
    ):
        reasons.append(REASON_CONTRADICTION)
    if components["intervention_value"].value < thresholds.intervention_value_floor:
        reasons.append(REASON_INTERVENTION_VALUE)
    return list(dict.fromkeys(reasons))


def _falsification_plan(hypothesis: Hypothesis) -> FalsificationPlan:
    confounders = tuple(hypothesis.confounder_set)
    return FalsificationPlan(
        disconfirming_experiment=hypothesis.falsifier or DEFAULT_DISCONFIRMING_EXPERIMENT,
        expected_failure_signal=hypothesis.prediction or DEFAULT_FAILURE_SIGNAL,
        required_assumptions=confounders or DEFAULT_ASSUMPTIONS,
        confounders_to_control=confounders or DEFAULT_CONFOUNDERS,
    )


def build_proof(
    hypothesis: Hypothesis,
    prior_art: Sequence[PriorArt],
    contradiction_matrix: Sequence[ContradictionEvidence],
    thresholds: NoveltyThresholds,
    lookup_failed: bool = False,
) -> NoveltyProof:
    """Score one hypothesis against already-fetched prior art."""
    if lookup_failed:
        distance = ComponentScore("prior_art_distance", 0.0, "Prior-art lookup failed; distance unknown")
    else:
        distance = compute_prior_art_distance(prior_art)
    contradiction = compute_contradiction_resolution(hypothesis, contradiction_matrix)
    components = {
        score.name: score
        for score in (
            distance,
            contradiction,
            compute_mechanism_differentiation(hypothesis),
            compute_intervention_value(hypothesis),
            compute_falsifiability(hypothesis),
        )
    }
    reasons = blocked_reasons(components, contradiction.refs, thresholds, lookup_failed)

    return NoveltyProof(
        hypothesis_id=hypothesis.id,
        thesis=hypothesis.thesis,
        novelty_score=distance.value,
        contradiction_resolution_score=contradiction.value,
        mechanism_differentiation_score=components["mechanism_differentiation"].value,
        intervention_value_score=components["intervention_value"].value,
        falsifiability_score=components["falsifiability"].value,
        proof_status=ProofStatus.BLOCKED if reasons else ProofStatus.PASS,
        blocked_reasons=reasons,
        contradiction_ids=list(contradiction.refs),
        prior_art=list(prior_art),
        falsification_plan=_falsification_plan(hypothesis),
        assumptions=list(hypothesis.confounder_set),
        confounders=list(hypothesis.confounder_set),
        components=list(components.values()),
    )


async def compute_novelty_proofs(
    hypotheses: Iterable[Hypothesis],
    contradiction_matrix: Sequence[ContradictionEvidence],
    config: Optional[NoveltyProofConfig] = None,
) -> list[NoveltyProof]:
    """
    Score every hypothesis, awaiting the prior-art lookup for each in turn.

    Proofs come back in input order.
    """
    config = config or NoveltyProofConfig()
    proofs: list[NoveltyProof] = []

    for hypothesis in hypotheses:
        prior_art: Sequence[PriorArt] = []
        lookup_failed = False
        if config.prior_art_lookup is not None:
            try:
                prior_art = list(await config.prior_art_lookup(hypothesis))
            except Exception as e:
                logger.warning("prior-art lookup failed for %s: %s", hypothesis.id, e)
                lookup_failed = True

        proof = build_proof(
            hypothesis, prior_art, contradiction_matrix, config.thresholds, lookup_failed
        )
        logger.debug(
            "novelty proof %s: %s %s",
            proof.hypothesis_id, proof.proof_status.value, proof.blocked_reasons,
        )
        proofs.append(proof)

    return proofs


# =============================================================================
# BATCH GATE
# =============================================================================

def compute_novelty_gate(
    proofs: Sequence[NoveltyProof],
    threshold: float,
) -> NoveltyGateResult:
    """
    Pass iff at least one proof passes.

    A recover decision carries the union of blocked reasons so the caller
    knows what to fix.
    """
    passing = [p for p in proofs if p.passed]
    blocked = [p for p in proofs if not p.passed]

    if not proofs:
        return NoveltyGateResult(NoveltyDecision.RECOVER, threshold, 0, 0, [GATE_NO_CANDIDATES])

    if not passing:
        reasons = list(dict.fromkeys(r for p in blocked for r in p.blocked_reasons))
        return NoveltyGateResult(NoveltyDecision.RECOVER, threshold, 0, len(blocked), reasons)

    return NoveltyGateResult(
        NoveltyDecision.PASS,
        threshold,
        len(passing),
        len(blocked),
        [GATE_SOME_BLOCKED] if blocked else [GATE_ALL_PASSED],
    )


def explain_proof(proof: NoveltyProof) -> str:
    """Human-readable breakdown of one proof."""
    lines = [
        f"## Novelty Proof: {proof.hypothesis_id}",
        "",
        f"**Status:** {proof.proof_status.value.upper()}",
        f"**Thesis:** {proof.thesis}",
        "",
        "### Components",
    ]
    for component in proof.components:
        lines.append(f"- **{component.name}**: {component.value:.3f} ({component.reason})")
    if proof.blocked_reasons:
        lines.append("")
        lines.append("### Blocked Because")
        for reason in proof.blocked_reasons:
            lines.append(f"- {reason}")
    lines.append("")
    lines.append("### Falsification Plan")
    lines.append(f"- Experiment: {proof.falsification_plan.disconfirming_experiment}")
    lines.append(f"- Failure signal: {proof.falsification_plan.expected_failure_signal}")
    return "\n".join(lines)
