"""
Overclaim checks and the causal status banner.

An answer overclaims when its wording is stronger than its evidence:
certainty verbs on an association, or an "Identified" banner without
intervention_supported backing. This module classifies the strongest
status a hypothesis can carry and flags text that exceeds it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..domain import Hypothesis, LifecycleState, OutputClass, Severity, Violation


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

CERTAINTY_LANGUAGE_PATTERN = re.compile(
    r"\b(proves?|demonstrates?|guarantee(?:d|s)?|certain(?:ly)?|"
    r"definitive(?:ly)?|undeniabl(?:e|y)|cannot fail)\b",
    re.IGNORECASE,
)

# Applied in order
SOFTENING_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\bproves?\b", re.IGNORECASE), "suggests"),
    (re.compile(r"\bdemonstrates?\b", re.IGNORECASE), "indicates"),
    (re.compile(r"\bshows that\b", re.IGNORECASE), "is consistent with"),
    (re.compile(r"\btherefore\b", re.IGNORECASE), "so"),
]

IDENTIFIED_CLAIM_PATTERN = re.compile(
    r"identified\s*\(\s*intervention[-\s]supported\s*\)|\bintervention[-\s]supported\b",
    re.IGNORECASE,
)

STRONG_IDENTIFIABILITY = 0.7
PARTIAL_IDENTIFIABILITY = 0.45


class StatusBanner(Enum):
    IDENTIFIED = "Identified (Intervention-Supported)"
    PARTIALLY_IDENTIFIED = "Partially Identified (Intervention-Inferred)"
    EXPLORATORY = "Exploratory (Association-Level)"
    FALSIFIED = "Falsified / Inconclusive"


class EvidenceClass(Enum):
    EMPIRICAL = "Empirical (Data-Grounded)"
    SIMULATED = "Simulated (Assumption-Bound)"
    STRUCTURAL = "Structural (Graph-Inferred Only)"


# =============================================================================
# TEXT HELPERS
# =============================================================================

def clean_text(value: Optional[str]) -> str:
    """Strip markdown emphasis and collapse whitespace."""
    if not value:
        return ""
    value = re.sub(r"\*+|`+", "", value)
    return re.sub(r"\s+", " ", value).strip()


def soften_certainty_language(value: Optional[str]) -> str:
    text = clean_text(value)
    for pattern, replacement in SOFTENING_RULES:
        text = pattern.sub(replacement, text)
    return text


def find_certainty_language(text: str) -> list[str]:
    """Distinct certainty terms in order of first appearance."""
    seen: list[str] = []
    for found in CERTAINTY_LANGUAGE_PATTERN.finditer(text or ""):
        term = found.group(0).lower()
        if term not in seen:
            seen.append(term)
    return seen


def _normalize_score(value: Optional[float]) -> float:
    if value is None:
        return 0.0
    if value > 1:
        value = value / 100
    return max(0.0, min(1.0, value))


def _sentence(value: str) -> str:
    return value if value.endswith((".", "!", "?")) else f"{value}."


# =============================================================================
# STATUS CLASSIFICATION
# =============================================================================

def classify_evidence_class(hypothesis: Hypothesis) -> EvidenceClass:
    validation = hypothesis.validation_result
    if validation is not None and validation.supports_intervention():
        return EvidenceClass.EMPIRICAL
    if clean_text(hypothesis.do_plan):
        return EvidenceClass.SIMULATED
    return EvidenceClass.STRUCTURAL


@dataclass
class CausalOutputSummary:
    """
    What an answer about one hypothesis is allowed to say.

    causal_claim is the thesis with certainty verbs softened.
    """
    hypothesis_id: str
    status: StatusBanner
    evidence_class: EvidenceClass
    causal_claim: str
    justification: str
    downgraded_by_missing_falsifier: bool = False
    unresolved_gaps: list[str] = field(default_factory=list)
    next_action: str = ""


def _unresolved_gaps(h: Hypothesis, status: StatusBanner, evidence: EvidenceClass) -> list[str]:
    gaps = []
    if not clean_text(h.falsifier):
        gaps.append("Missing falsifier for direct disconfirmation.")
    if not h.confounder_set:
        gaps.append("Confounders are under-specified.")
    if not clean_text(h.do_plan):
        gaps.append("No explicit do-intervention plan.")
    if evidence is not EvidenceClass.EMPIRICAL:
        gaps.append("No empirical interventional evidence.")
    if _normalize_score(h.identifiability_score) < 0.6:
        gaps.append("Identifiability support is below strong threshold.")
    if status is StatusBanner.FALSIFIED:
        gaps.append("Current evidence is internally inconsistent.")
    return gaps


def _next_action(h: Hypothesis, gaps: list[str]) -> str:
    joined = " ".join(gaps).lower()
    if "falsifier" in joined:
        return "Define one concrete falsifier with a pre-registered failure threshold and stop rule."
    if "do-intervention" in joined:
        return "Design and run one explicit do-intervention targeting the proposed cause variable."
    if "confounders" in joined:
        return "Measure and control the top confounders before estimating intervention effects."
    if "empirical" in joined:
        return "Collect one empirical intervention dataset to replace assumption-only propagation."
    cause = h.bridged_concepts[0] if len(h.bridged_concepts) > 0 else "cause"
    effect = h.bridged_concepts[1] if len(h.bridged_concepts) > 1 else "outcome"
    return f"Run a disconfirming experiment for {cause} -> {effect} under matched confounder controls."


def build_causal_output(hypothesis: Hypothesis) -> CausalOutputSummary:
    """
    Classify the status banner for a hypothesis.

    A failed validation run or a falsified lifecycle state always yields
    the Falsified banner, even when the hypothesis is also retracted. The
    Identified banner needs empirical validation, a do-plan, declared
    confounders and strong identifiability, and is downgraded when no
    falsifier is defined.
    """
    h = hypothesis
    has_do_plan = bool(clean_text(h.do_plan))
    has_confounders = bool(h.confounder_set)
    has_falsifier = bool(clean_text(h.falsifier))
    identifiability = _normalize_score(h.identifiability_score)
    evidence = classify_evidence_class(h)
    empirical = evidence is EvidenceClass.EMPIRICAL
    failed_validation = h.validation_result is not None and not h.validation_result.success

    if failed_validation or h.lifecycle_state is LifecycleState.FALSIFIED:
        status = StatusBanner.FALSIFIED
    elif empirical and has_do_plan and has_confounders and identifiability >= STRONG_IDENTIFIABILITY:
        status = StatusBanner.IDENTIFIED
    elif has_do_plan or has_confounders or identifiability >= PARTIAL_IDENTIFIABILITY:
        status = StatusBanner.PARTIALLY_IDENTIFIED
    else:
        status = StatusBanner.EXPLORATORY

    downgraded = False
    if status is StatusBanner.IDENTIFIED and not has_falsifier:
        status = StatusBanner.PARTIALLY_IDENTIFIED
        downgraded = True

    parts: list[str] = []
    if status is StatusBanner.FALSIFIED:
        parts.append("Validation signals conflict with the current causal claim.")
    else:
        parts.append(
            "An explicit intervention plan is present." if has_do_plan
            else "No explicit do-intervention plan is present."
        )
        parts.append(
            f"Confounders are declared ({', '.join(h.confounder_set[:3])})." if has_confounders
            else "Confounders are under-specified."
        )
        if identifiability > 0:
            parts.append(f"Identifiability support is {round(identifiability * 100)} out of 100.")
        if empirical:
            parts.append("Interventional validation evidence is available.")
        if not has_falsifier:
            parts.append("No falsifier is defined, so certainty is capped.")

    gaps = _unresolved_gaps(h, status, evidence)
    return CausalOutputSummary(
        hypothesis_id=h.id,
        status=status,
        evidence_class=evidence,
        causal_claim=_sentence(soften_certainty_language(h.thesis)) if h.thesis else "",
        justification=soften_certainty_language(" ".join(parts)),
        downgraded_by_missing_falsifier=downgraded,
        unresolved_gaps=gaps or ["None identified yet."],
        next_action=_next_action(h, gaps),
    )


# =============================================================================
# TEXT OVERCLAIM CHECK
# =============================================================================

def check_overclaim(text: str, output_class: OutputClass) -> list[Violation]:
    """
    Flag wording stronger than the disclosure gate allows.

    An "Identified / intervention-supported" claim without
    intervention_supported backing is fatal. Certainty verbs without that
    backing are warnings.
    """
    if output_class is OutputClass.INTERVENTION_SUPPORTED:
        return []

    violations: list[Violation] = []
    claim = IDENTIFIED_CLAIM_PATTERN.search(text or "")
    if claim:
        violations.append(Violation(
            "Overclaim",
            Severity.FATAL,
            claim.group(0),
            f"Claims intervention-supported identification but the gate allows only {output_class.value}",
        ))
    for term in find_certainty_language(text):
        violations.append(Violation(
            "Overclaim",
            Severity.WARNING,
            term,
            f"Certainty language under {output_class.value}",
        ))
    return violations
