"""
Result records for the causal graph operators.

Every numeric field is rounded to four decimals by the operator that
produces it, so identical inputs compare equal across runs.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


OBSERVATIONAL_NOTE = (
    "Observational estimate only. Use do() operator for causal intervention claims."
)


@dataclass
class AssociationResult:
    """Rung 1: P(effect | cause) along the first directed path found."""
    estimand: str
    value: float
    path: list[str]
    path_weight: float
    note: str = OBSERVATIONAL_NOTE

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class InterventionResult:
    """Rung 2: P(outcome | do(variable = value))."""
    estimand: str
    baseline_outcome: float
    intervened_outcome: float
    delta: float
    affected_nodes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CounterfactualResult:
    """Rung 3: the outcome had the variable been set, given what was observed."""
    estimand: str
    actual_outcome: float
    counterfactual_outcome: float
    difference: float
    explanation: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DSeparationResult:
    d_separated: bool
    active_paths: list[list[str]]
    conditioned_on: list[str]
    paths_examined: int
    note: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class IdentifiabilityResult:
    """Backdoor identifiability of a treatment → outcome effect."""
    identifiable: bool
    required_confounders: list[str]
    adjustment_set: list[str]
    missing_confounders: list[str]
    note: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ConfounderCompletenessResult:
    complete: bool
    coverage: float
    missing: list[str]
    extras: list[str]

    def to_dict(self) -> dict:
        return asdict(self)
