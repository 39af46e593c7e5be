"""
Novelty recovery planning.

When the novelty gate says "recover", the plan tells the caller what to
change before re-running synthesis: a diagnosis per blocked reason,
sources worth adding for the inferred domain, and concrete interventions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ..evidence import ContradictionEvidence
from .scorer import (
    REASON_CONTRADICTION,
    REASON_FALSIFIABILITY,
    REASON_INTERVENTION_VALUE,
    REASON_LOOKUP_FAILED,
    REASON_PRIOR_ART_OVERLAP,
    NoveltyGateResult,
    NoveltyProof,
)


DOMAIN_SOURCE_HINTS: dict[str, list[str]] = {
    "biotech": ["clinical trial registry", "wet-lab replication protocol", "negative findings corpus"],
    "legal": ["case law contradictions", "jurisdiction split analysis", "dissenting opinions"],
    "finance": ["regulatory filings", "earnings call transcripts", "counter-cyclical datasets"],
    "education": ["longitudinal outcomes studies", "controlled intervention reports", "curriculum variance datasets"],
    "default": ["peer-reviewed replication studies", "mechanistic benchmark datasets", "counterexample corpora"],
}

# Checked in order; first domain with a keyword hit wins
DOMAIN_KEYWORDS: list[tuple[str, list[str]]] = [
    ("legal", ["court", "liability", "jurisdiction"]),
    ("biotech", ["drug", "cell", "biolog"]),
    ("finance", ["market", "risk", "portfolio"]),
    ("education", ["student", "learning", "curriculum"]),
]

DIAGNOSIS: dict[str, str] = {
    REASON_PRIOR_ART_OVERLAP: "Closest prior-art overlap is above novelty threshold; differentiator is currently insufficient.",
    REASON_FALSIFIABILITY: "Candidate hypotheses lack a concrete disconfirming experiment and measurable failure signal.",
    REASON_CONTRADICTION: "Ideas are not explicitly anchored to high-confidence contradiction rows.",
    REASON_INTERVENTION_VALUE: "Candidates do not name an actionable intervention with a concrete do-plan.",
    REASON_LOOKUP_FAILED: "Prior-art retrieval failed for at least one candidate; novelty could not be established.",
}

RECOVERY_MESSAGE = "Novelty blocked - recovery plan generated. Improve evidence quality, then rerun synthesis."


@dataclass
class RecoveryPlan:
    message: str
    domain: str
    diagnosis: list[str] = field(default_factory=list)
    suggested_sources: list[str] = field(default_factory=list)
    suggested_interventions: list[str] = field(default_factory=list)
    rerun_inputs: list[str] = field(default_factory=list)


def infer_domain(proofs: Sequence[NoveltyProof]) -> str:
    text = " ".join(proof.thesis.lower() for proof in proofs)
    for domain, keywords in DOMAIN_KEYWORDS:
        if any(kw in text for kw in keywords):
            return domain
    return "default"


def build_recovery_plan(
    gate: NoveltyGateResult,
    proofs: Sequence[NoveltyProof],
    contradiction_matrix: Sequence[ContradictionEvidence],
) -> RecoveryPlan:
    reasons = list(dict.fromkeys(r for proof in proofs for r in proof.blocked_reasons))
    for reason in gate.reasons:
        if reason not in reasons:
            reasons.append(reason)
    domain = infer_domain(proofs)

    diagnosis = [DIAGNOSIS[r] for r in reasons if r in DIAGNOSIS]
    if not any(row.high_confidence for row in contradiction_matrix):
        diagnosis.append("No high-confidence contradiction was found across supplied sources.")
    if not proofs:
        diagnosis.append("No candidate hypotheses were supplied.")

    interventions = [
        "Add one intervention scenario that changes a single mechanism variable while holding confounders constant.",
        "Attach one negative-control condition to force a falsifiable outcome boundary.",
    ]
    if REASON_PRIOR_ART_OVERLAP in reasons:
        interventions.append("Force mechanism rewrite using a different causal mediator than top prior-art results.")
    if REASON_CONTRADICTION in reasons:
        interventions.append("Reframe hypothesis so each candidate references at least one contradiction row ID.")

    return RecoveryPlan(
        message=RECOVERY_MESSAGE,
        domain=domain,
        diagnosis=diagnosis,
        suggested_sources=list(DOMAIN_SOURCE_HINTS[domain]),
        suggested_interventions=interventions,
        rerun_inputs=[
            "Add at least 2 sources containing explicit conflicting claims.",
            "Provide one mechanism-focused research prompt with target variable and expected direction.",
            "Include one disconfirming experiment statement per hypothesis candidate.",
        ],
    )
