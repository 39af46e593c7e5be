"""
Core Domain Objects for the CausalGuard Engine.

Every verdict the engine produces is expressed with the closed
vocabularies defined here. Free-form strings never carry a decision.

Domain Objects:
    Violation   — One detector hit inside a gate decision
    Hypothesis  — A candidate causal claim with its falsification contract
    BoundaryError — The only hard failure: malformed or non-finite input
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .evidence import ValidationResult

if TYPE_CHECKING:
    from .lifecycle import LifecycleDecision


# =============================================================================
# BOUNDARY REJECTION SYSTEM
# =============================================================================

class BoundaryRule(Enum):
    """
    Hard reject rules applied before input reaches the engine.

    B1: A numeric input is NaN or infinite
    B2: A payload does not have the expected shape
    B3: A required field is missing or blank
    """
    B1_NON_FINITE_INPUT = "non_finite_input"
    B2_MALFORMED_PAYLOAD = "malformed_payload"
    B3_MISSING_FIELD = "missing_field"


class BoundaryError(Exception):
    """Raised when input fails boundary validation and must be rejected."""

    def __init__(self, rule: BoundaryRule, reason: str, field_name: Optional[str] = None):
        self.rule = rule
        self.reason = reason
        self.field_name = field_name
        super().__init__(f"[{rule.value}] {reason}")


# =============================================================================
# CLOSED VOCABULARIES
# =============================================================================

class NodeKind(Enum):
    """How a graph variable is observed."""
    OBSERVABLE = "observable"
    LATENT = "latent"
    EXOGENOUS = "exogenous"
    INTERVENTION = "intervention"


class EdgeSign(Enum):
    """Declared direction of a causal effect."""
    POSITIVE = "+"
    NEGATIVE = "-"
    UNKNOWN = "unknown"

    @property
    def multiplier(self) -> int:
        # Unknown propagates as positive
        return -1 if self is EdgeSign.NEGATIVE else 1


class Severity(Enum):
    """Severity of a single violation."""
    FATAL = "fatal"
    WARNING = "warning"


class GatePolicy(Enum):
    """Per-axiom policy applied to detector output."""
    FATAL = "fatal"       # Keep the detector's own severity
    WARNING = "warning"   # Downgrade fatals to warnings
    SKIP = "skip"         # Drop the axiom entirely


class GateCheckpoint(Enum):
    """Where in the answer pipeline the gate runs."""
    PRE_SYNTHESIS = "pre_synthesis"
    POST_SYNTHESIS = "post_synthesis"
    PRE_RELEASE = "pre_release"


class GateStatus(Enum):
    PASS = "pass"
    WARNING = "warning"
    BLOCKED = "blocked"


class LifecycleState(Enum):
    """
    Hypothesis lifecycle states.

    Derived from the falsifier and the validation result on every read.
    There is no stored transition history.
    """
    PROPOSED = "proposed"
    TESTED = "tested"
    FALSIFIED = "falsified"
    RETRACTED = "retracted"


class OutputClass(Enum):
    """Strongest causal language an answer is permitted to use."""
    ASSOCIATION_ONLY = "association_only"
    INTERVENTION_INFERRED = "intervention_inferred"
    INTERVENTION_SUPPORTED = "intervention_supported"


class ProofStatus(Enum):
    PASS = "pass"
    BLOCKED = "blocked"


class NoveltyDecision(Enum):
    PASS = "pass"
    RECOVER = "recover"


# =============================================================================
# VIOLATIONS
# =============================================================================

@dataclass(frozen=True)
class Violation:
    """
    A single detector hit.

    The evidence is the matched text span, so every violation can be
    traced back to the words that triggered it.
    """
    axiom: str
    severity: Severity
    evidence: str
    reason: str

    @property
    def is_fatal(self) -> bool:
        return self.severity is Severity.FATAL

    def to_dict(self) -> dict:
        return {
            "axiom": self.axiom,
            "severity": self.severity.value,
            "evidence": self.evidence,
            "reason": self.reason,
        }


# =============================================================================
# HYPOTHESIS
# =============================================================================

MIN_FALSIFIER_LENGTH = 20


@dataclass(frozen=True)
class Hypothesis:
    """
    A candidate causal claim.

    The lifecycle state is never stored. It is recomputed from the
    falsifier and the validation result each time it is read, so the
    state can never drift from its evidence.
    """
    id: str
    thesis: str
    mechanism: str = ""
    prediction: str = ""
    falsifier: Optional[str] = None
    confounder_set: tuple[str, ...] = field(default_factory=tuple)
    novelty_score: Optional[float] = None
    intervention_value_score: Optional[float] = None
    identifiability_score: Optional[float] = None
    validation_result: Optional[ValidationResult] = None

    # Idea metadata used by the novelty scorer
    description: str = ""
    bridged_concepts: tuple[str, ...] = field(default_factory=tuple)
    do_plan: Optional[str] = None
    confidence: Optional[float] = None

    def __post_init__(self):
        self._validate()

    def _validate(self) -> None:
        if not self.id or not self.id.strip():
            raise BoundaryError(
                BoundaryRule.B3_MISSING_FIELD,
                "Hypothesis requires a non-empty id",
                "id",
            )
        for name in ("novelty_score", "intervention_value_score",
                     "identifiability_score", "confidence"):
            value = getattr(self, name)
            if value is not None and not math.isfinite(value):
                raise BoundaryError(
                    BoundaryRule.B1_NON_FINITE_INPUT,
                    f"Hypothesis {self.id} has non-finite {name}: {value}",
                    name,
                )

    @property
    def lifecycle(self) -> LifecycleDecision:
        from .lifecycle import evaluate_lifecycle
        return evaluate_lifecycle(self)

    @property
    def lifecycle_state(self) -> LifecycleState:
        return self.lifecycle.state

    @property
    def has_valid_falsifier(self) -> bool:
        return len((self.falsifier or "").strip()) >= MIN_FALSIFIER_LENGTH
