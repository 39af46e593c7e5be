"""
Intervention Disclosure Gate.

Maps identifiability and external validation onto the strongest class of
causal language an answer may use:

    association_only        — no controls attempted and not identifiable
    intervention_inferred   — partial controls, or identified without
                              empirical validation; must carry a disclosure
    intervention_supported  — identified and empirically validated

Only intervention_supported is "allowed" to speak about interventions
without qualification.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ..cache import AnalysisCache
from ..domain import OutputClass
from ..evidence import ValidationResult
from ..graph.model import CausalGraphModel
from ..graph.results import IdentifiabilityResult
from ..validation import create_cache_key, sanitize_names

logger = logging.getLogger(__name__)


@dataclass
class InterventionGateResult:
    allowed: bool
    output_class: OutputClass
    rationale: str
    identifiability: Optional[IdentifiabilityResult] = None
    disclosure: Optional[str] = None

    @property
    def requires_disclosure(self) -> bool:
        return self.output_class is OutputClass.INTERVENTION_INFERRED

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "output_class": self.output_class.value,
            "rationale": self.rationale,
            "disclosure": self.disclosure,
            "identifiability": self.identifiability.to_dict() if self.identifiability else None,
        }


def _inferred_disclosure(treatment: str, outcome: str, reason: str) -> str:
    return (
        f"Uncertainty disclosure: the effect of do({treatment}) on {outcome} is inferred, "
        f"not empirically supported. {reason}"
    )


def evaluate_intervention_gate(
    model: CausalGraphModel,
    treatment: str,
    outcome: str,
    adjustment_set: Optional[Iterable[str]] = None,
    known_confounders: Optional[Iterable[str]] = None,
    validation: Optional[ValidationResult] = None,
    cache: Optional[AnalysisCache] = None,
) -> InterventionGateResult:
    """
    Decide the allowed output class for a treatment → outcome claim.

    Validation is never inferred from the graph. Without a supplied
    ValidationResult that supports intervention, the best class
    available is intervention_inferred.
    """
    treatment = (treatment or "").strip()
    outcome = (outcome or "").strip()
    if not treatment or not outcome:
        return InterventionGateResult(
            allowed=False,
            output_class=OutputClass.ASSOCIATION_ONLY,
            rationale="Treatment and outcome are required to evaluate identifiability.",
        )

    adjustment = sanitize_names(adjustment_set)
    known = sanitize_names(known_confounders)

    cache_key = None
    if cache is not None:
        cache_key = create_cache_key(
            "disclosure",
            model.fingerprint(),
            treatment,
            outcome,
            adjustment,
            known,
            repr(validation),
        )
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

    identifiability = model.check_identifiability(treatment, outcome, adjustment, known)
    validated = validation is not None and validation.supports_intervention()

    if identifiability.identifiable and validated:
        result = InterventionGateResult(
            allowed=True,
            output_class=OutputClass.INTERVENTION_SUPPORTED,
            rationale="Required confounders are adjusted and empirical validation supports the intervention.",
            identifiability=identifiability,
        )
    elif identifiability.identifiable:
        rationale = "Required confounders are adjusted, but no empirical validation supports the intervention."
        result = InterventionGateResult(
            allowed=False,
            output_class=OutputClass.INTERVENTION_INFERRED,
            rationale=rationale,
            identifiability=identifiability,
            disclosure=_inferred_disclosure(treatment, outcome, rationale),
        )
    elif adjustment or known:
        missing = ", ".join(identifiability.missing_confounders)
        rationale = f"Partial controls supplied; missing adjustment for {missing}."
        result = InterventionGateResult(
            allowed=False,
            output_class=OutputClass.INTERVENTION_INFERRED,
            rationale=rationale,
            identifiability=identifiability,
            disclosure=_inferred_disclosure(treatment, outcome, rationale),
        )
    else:
        result = InterventionGateResult(
            allowed=False,
            output_class=OutputClass.ASSOCIATION_ONLY,
            rationale="No adjustment set or known confounders supplied; only associational language is allowed.",
            identifiability=identifiability,
        )

    logger.debug(
        "disclosure gate %s -> %s: %s", treatment, outcome, result.output_class.value
    )
    if cache is not None and cache_key is not None:
        cache.set(cache_key, result)
    return result
