"""
Mechanism Constraint Gate.

Scans generated text with the Tier 1 detector families (and the selected
Tier 2 domain checker), applies per-axiom policy, and decides whether
the text may be released.

Status rules:
    blocked  — any effective fatal violation, or more warnings than allowed
    warning  — at least one warning, within the ceiling
    pass     — no violations

A blocked or warning result carries a correction prompt that tells the
generator what to delete and which output template to follow.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from ..cache import AnalysisCache
from ..config import GatePolicyConfig
from ..domain import GateCheckpoint, GatePolicy, GateStatus, Severity, Violation
from ..validation import create_cache_key
from .disclosure import InterventionGateResult
from .domains import DOMAIN_CHECKERS
from .overclaim import check_overclaim
from .patterns import (
    CORRECTION_INSTRUCTIONS,
    POLICY_DOMAIN,
    POLICY_OVERCLAIM,
    TIER1_FAMILIES,
)

logger = logging.getLogger(__name__)


REQUIRED_OUTPUT_FORMAT = """**REQUIRED OUTPUT FORMAT:**
1. Observation: [what phenomenon is under investigation]
2. Hypothesis: [falsifiable explanation]
3. Prediction: [testable consequence]
4. Falsification: [what would disprove]
5. Test: [how to verify]"""


# =============================================================================
# RESULT
# =============================================================================

@dataclass
class GateResult:
    """
    Outcome of one gate enforcement.

    violations holds the effective violations after policy. Violations
    dropped by a skip policy are kept in `suppressed` for audit only.
    """
    status: GateStatus
    checkpoint: GateCheckpoint
    violations: list[Violation] = field(default_factory=list)
    suppressed: list[Violation] = field(default_factory=list)
    correction_prompt: str = ""

    @property
    def passed(self) -> bool:
        return self.status is not GateStatus.BLOCKED

    @property
    def fatal_violations(self) -> list[Violation]:
        return [v for v in self.violations if v.severity is Severity.FATAL]

    @property
    def warning_violations(self) -> list[Violation]:
        return [v for v in self.violations if v.severity is Severity.WARNING]

    def to_event(self) -> dict[str, Any]:
        """Structured event for streaming to a client or log sink."""
        return {
            "type": "axiom_gate",
            "passed": self.passed,
            "status": self.status.value,
            "checkpoint": self.checkpoint.value,
            "fatal_count": len(self.fatal_violations),
            "warning_count": len(self.warning_violations),
            "violations": [v.to_dict() for v in self.violations],
        }


# =============================================================================
# POLICY AND PROMPT
# =============================================================================

def apply_policy(violation: Violation, policy: GatePolicy) -> Optional[Violation]:
    """Return the effective violation, or None when the axiom is skipped."""
    if policy is GatePolicy.SKIP:
        return None
    if policy is GatePolicy.WARNING and violation.severity is Severity.FATAL:
        return replace(violation, severity=Severity.WARNING)
    return violation


def decide_status(violations: list[Violation], max_warnings: int) -> GateStatus:
    fatal = sum(1 for v in violations if v.severity is Severity.FATAL)
    warnings = len(violations) - fatal
    if fatal > 0 or warnings > max_warnings:
        return GateStatus.BLOCKED
    if warnings > 0:
        return GateStatus.WARNING
    return GateStatus.PASS


def build_correction_prompt(violations: list[Violation]) -> str:
    """Fixed-format instruction for regenerating a violating answer."""
    if not violations:
        return ""

    if any(v.severity is Severity.FATAL for v in violations):
        header = "### BLOCKED: AXIOM VIOLATIONS DETECTED"
    else:
        header = "### WARNING: AXIOM VIOLATIONS DETECTED"

    lines = [
        header,
        "",
        "Your response violated the causal reasoning axioms:",
        "",
    ]
    for v in violations:
        lines.append(f'- **{v.axiom}** ({v.severity.value}): {v.reason} (Evidence: "{v.evidence}")')

    instructions: list[str] = []
    for v in violations:
        instruction = CORRECTION_INSTRUCTIONS.get(v.axiom, f"- Address {v.axiom} violation")
        if instruction not in instructions:
            instructions.append(instruction)

    lines.extend(["", "**CORRECTION INSTRUCTION:**", *instructions, "", REQUIRED_OUTPUT_FORMAT])
    return "\n".join(lines)


# =============================================================================
# GATE
# =============================================================================

class MechanismConstraintGate:
    """
    Deterministic text gate.

    The same text, policy and disclosure always produce the same result.
    An injected cache only memoizes detector output; policy is applied
    on every call.
    """

    def __init__(
        self,
        policy: Optional[GatePolicyConfig] = None,
        cache: Optional[AnalysisCache] = None,
    ):
        self.policy = policy or GatePolicyConfig()
        self.cache = cache

    def detect(
        self,
        text: str,
        disclosure: Optional[InterventionGateResult] = None,
    ) -> list[tuple[str, Violation]]:
        """Raw detector output as (policy axis, violation) pairs, before policy."""
        domain = self.policy.domain
        cache_key = None
        if self.cache is not None:
            cache_key = create_cache_key(
                "gate",
                text,
                domain.value if domain else None,
                disclosure.output_class.value if disclosure else None,
            )
            cached = self.cache.get(cache_key)
            if cached is not None:
                return list(cached)

        detected: list[tuple[str, Violation]] = []
        for family in TIER1_FAMILIES:
            detected.extend((family.policy_axis, v) for v in family.detect(text))
        if domain is not None:
            detected.extend((POLICY_DOMAIN, v) for v in DOMAIN_CHECKERS[domain](text))
        if disclosure is not None:
            detected.extend(
                (POLICY_OVERCLAIM, v) for v in check_overclaim(text, disclosure.output_class)
            )

        if self.cache is not None and cache_key is not None:
            self.cache.set(cache_key, tuple(detected))
        return detected

    def enforce(
        self,
        text: str,
        checkpoint: GateCheckpoint = GateCheckpoint.PRE_RELEASE,
        disclosure: Optional[InterventionGateResult] = None,
        policy: Optional[GatePolicyConfig] = None,
    ) -> GateResult:
        """
        Run every detector, apply policy and decide the gate status.

        Args:
            text: Generated answer text
            checkpoint: Pipeline position, recorded on the result
            disclosure: Disclosure gate result; enables the overclaim check
            policy: Per-call override of the gate's policy
        """
        effective_policy = policy or self.policy
        gate = self if policy is None else MechanismConstraintGate(effective_policy, self.cache)

        violations: list[Violation] = []
        suppressed: list[Violation] = []
        for axis, violation in gate.detect(text or "", disclosure):
            effective = apply_policy(violation, effective_policy.policy_for(axis))
            if effective is None:
                suppressed.append(violation)
            else:
                violations.append(effective)

        status = decide_status(violations, effective_policy.max_warnings)
        result = GateResult(
            status=status,
            checkpoint=checkpoint,
            violations=violations,
            suppressed=suppressed,
            correction_prompt=build_correction_prompt(violations),
        )
        logger.debug(
            "gate %s at %s: %d fatal, %d warning, %d suppressed",
            status.value,
            checkpoint.value,
            len(result.fatal_violations),
            len(result.warning_violations),
            len(suppressed),
        )
        return result

    def quick_check(self, text: str) -> bool:
        """True when the text would pass the pre-release checkpoint."""
        return self.enforce(text, GateCheckpoint.PRE_RELEASE).passed
