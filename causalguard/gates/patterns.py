"""
Tier 1 lexical detector families.

Each family is an ordered list of pattern rules tied to one axiom. The
content and order of the patterns are part of the gate's contract:
reordering them changes which evidence span is reported.

Families (in evaluation order):
    Reversibility   — retrocausation and backward-in-time language
    Entropy         — perpetual motion, free energy, entropy decrease
    Falsifiability  — unfalsifiable phrasing, hedges, missing falsifier
    NoSycophancy    — agreement, flattery, accommodation, hedging, surrender
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from ..domain import Severity, Violation


# =============================================================================
# POLICY AXES
# =============================================================================

# Each family is governed by exactly one policy field on GatePolicyConfig
POLICY_RETROCAUSALITY = "retrocausality"
POLICY_ENTROPY = "entropy"
POLICY_UNFALSIFIABILITY = "unfalsifiability"
POLICY_SYCOPHANCY = "sycophancy"
POLICY_DOMAIN = "domain"
POLICY_OVERCLAIM = "overclaim"


def _rx(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


# =============================================================================
# RULES AND FAMILIES
# =============================================================================

@dataclass(frozen=True)
class PatternRule:
    """
    One pattern with optional co-conditions.

    requires: the rule only fires if this also matches somewhere
    unless:   the rule is suppressed if this matches somewhere
    """
    pattern: re.Pattern
    reason: str
    severity: Severity = Severity.FATAL
    requires: Optional[re.Pattern] = None
    unless: Optional[re.Pattern] = None

    def match(self, text: str) -> Optional[str]:
        found = self.pattern.search(text)
        if found is None:
            return None
        if self.requires is not None and not self.requires.search(text):
            return None
        if self.unless is not None and self.unless.search(text):
            return None
        return found.group(0)


@dataclass(frozen=True)
class DetectorFamily:
    axiom: str
    policy_axis: str
    rules: tuple[PatternRule, ...]
    first_match_only: bool = False

    def detect(self, text: str) -> list[Violation]:
        violations: list[Violation] = []
        for rule in self.rules:
            evidence = rule.match(text)
            if evidence is None:
                continue
            violations.append(Violation(self.axiom, rule.severity, evidence, rule.reason))
            if self.first_match_only:
                break
        return violations


# =============================================================================
# REVERSIBILITY
# =============================================================================

REVERSIBILITY = DetectorFamily(
    axiom="Reversibility",
    policy_axis=POLICY_RETROCAUSALITY,
    rules=(
        PatternRule(_rx(r"retrocaus(e|al|ation)"),
                    "Mechanism implies retrocausation (effect precedes cause)"),
        PatternRule(_rx(r"backward.*time"),
                    "Causal influence cannot flow backward in time"),
        PatternRule(_rx(r"effect.*(before|precedes?).*cause"),
                    "Effect is stated to precede its cause"),
        PatternRule(_rx(r"time\s+travel|temporal\s+paradox|future.*past"),
                    "Mechanism requires information from the future"),
    ),
)


# =============================================================================
# ENTROPY / CONSERVATION
# =============================================================================

_WORK_INPUT = _rx(r"(work|energy)\s+input|external\s+field|cooling|refrigeration")

ENTROPY = DetectorFamily(
    axiom="Entropy",
    policy_axis=POLICY_ENTROPY,
    rules=(
        PatternRule(
            _rx(r"perpetual\s+motion|free\s+energy|infinite\s+resource|"
                r"energy\s+from\s+nothing|over[-\s]?unity"),
            "Violates conservation of energy (output without input)",
        ),
        PatternRule(
            _rx(r"100\s*%\s*efficien"),
            "No real process converts energy at 100% efficiency",
        ),
        PatternRule(
            _rx(r"recycle.*energy|feedback.*loop.*energy|self[-\s]sustaining"),
            "Closed-loop energy recycling without losses",
            requires=_rx(r"100%|perfect|complete"),
        ),
        PatternRule(
            _rx(r"decreas(e|ing)\s+entropy|reverse\s+entropy|negative\s+entropy"),
            "Entropy decrease claimed without external work input",
            unless=_WORK_INPUT,
        ),
        PatternRule(
            _rx(r"spontaneous.*order|self[-\s]organiz(e|ing).*equilibrium|perfect.*crystal.*form"),
            "Spontaneous ordering at constant temperature without free-energy gradient",
            requires=_rx(r"room\s+temperature|ambient|constant\s+temperature"),
        ),
        PatternRule(
            _rx(r"maxwell'?s?\s+demon|selective.*filter|intelligent.*sorting|perfect.*separation"),
            "Sorting without energy cost (Maxwell's demon)",
            unless=_WORK_INPUT,
        ),
    ),
)


# =============================================================================
# FALSIFIABILITY
# =============================================================================

UNFALSIFIABILITY = DetectorFamily(
    axiom="Falsifiability",
    policy_axis=POLICY_UNFALSIFIABILITY,
    first_match_only=True,
    rules=tuple(
        PatternRule(_rx(pattern), f"Unfalsifiable claim detected: {pattern}", severity)
        for pattern, severity in (
            (r"could be (anything|everything|any number of things)", Severity.FATAL),
            (r"impossible to (know|verify|test|determine|falsify)", Severity.FATAL),
            (r"beyond (scientific|empirical) (investigation|scope|reach)", Severity.FATAL),
            (r"we can't know", Severity.FATAL),
            (r"unknowable", Severity.FATAL),
            (r"cannot be questioned", Severity.FATAL),
            (r"no way to (prove|disprove|verify|falsify)", Severity.FATAL),
            (r"might possibly", Severity.WARNING),
            (r"could possibly", Severity.WARNING),
            (r"perhaps", Severity.WARNING),
            (r"\bmight\b", Severity.WARNING),
            (r"\bmaybe\b", Severity.WARNING),
            (r"it depends", Severity.WARNING),
            (r"\bsometimes\b", Severity.WARNING),
        )
    ),
)

MISSING_FALSIFIER = DetectorFamily(
    axiom="Falsifiability",
    policy_axis=POLICY_UNFALSIFIABILITY,
    rules=(
        PatternRule(
            _rx(r"hypothesis|causes|definitely|absolutely true"),
            "Hypothesis-like claim without explicit falsification criteria.",
            Severity.WARNING,
            unless=_rx(r"falsif|disprov|reject(ed)? if"),
        ),
    ),
)


# =============================================================================
# SYCOPHANCY
# =============================================================================

SYCOPHANCY_CATEGORIES: dict[str, tuple[Severity, str, tuple[str, ...]]] = {
    "agreement_without_evidence": (
        Severity.FATAL,
        "Agreement asserted without evidence",
        (
            r"you('re| are) (absolutely |completely |totally )?(right|correct)",
            r"that('s| is) (absolutely |completely )?correct",
            r"i (completely |totally |fully )?agree",
            r"exactly(!)?",
            r"precisely(!)?",
            r"you hit the nail on the head",
            r"spot on",
        ),
    ),
    "performative_validation": (
        Severity.WARNING,
        "Performative validation instead of analysis",
        (
            r"great (question|point|observation|insight)",
            r"excellent (question|point|observation|insight)",
            r"good (question|point|observation|insight)",
            r"really insightful observation",
            r"insightful observation( you've made)?",
            r"i appreciate (your |that )?(perspective|question|input|thought)",
            r"thank you for (asking|sharing|that)",
            r"interesting (perspective|point|question)",
            r"that('s| is) a (good|great|excellent) (question|point)",
        ),
    ),
    "accommodation_over_truth": (
        Severity.WARNING,
        "Accommodates the user's view instead of testing it",
        (
            r"from your perspective",
            r"if that('s| is) what you (prefer|want|believe)",
            r"i can (see|understand) why you would think",
            r"that makes sense from your (point of view|perspective)",
            r"your (intuition|instinct) (is|was) (right|correct|good)",
            r"you('re| are) (entitled to|welcome to) your (opinion|view)",
        ),
    ),
    "hedging_without_falsification": (
        Severity.WARNING,
        "Hedges without proposing a falsifying test",
        (
            r"that('s| is) (one |a )?(possible|plausible) (interpretation|explanation)",
            r"there are many ways to look at this",
            r"both (perspectives|views|sides) have merit",
            r"it depends on how you look at it",
            r"that('s| is) a valid perspective",
            r"i see what you('re| are) saying",
            r"i might be wrong",
            r"perhaps",
            r"could possibly",
            r"in a sense",
        ),
    ),
    "epistemic_surrender": (
        Severity.FATAL,
        "Declares the question unanswerable instead of proposing a test",
        (
            r"we can't know for sure",
            r"this is (ultimately |probably )?unknowable",
            r"there('s| is) no way to (know|verify|determine)",
            r"it('s| is) impossible to say",
            r"beyond our (ability|capacity) to know",
            r"we may never know",
        ),
    ),
}

SYCOPHANCY = DetectorFamily(
    axiom="NoSycophancy",
    policy_axis=POLICY_SYCOPHANCY,
    rules=tuple(
        PatternRule(_rx(pattern), f"{label} ({category})", severity)
        for category, (severity, label, patterns) in SYCOPHANCY_CATEGORIES.items()
        for pattern in patterns
    ),
)


TIER1_FAMILIES: tuple[DetectorFamily, ...] = (
    REVERSIBILITY,
    ENTROPY,
    UNFALSIFIABILITY,
    MISSING_FALSIFIER,
    SYCOPHANCY,
)

# The physical subset always runs before any domain checker
PHYSICAL_FAMILIES: tuple[DetectorFamily, ...] = (REVERSIBILITY, ENTROPY)


# =============================================================================
# CORRECTION INSTRUCTIONS
# =============================================================================

CORRECTION_INSTRUCTIONS: dict[str, str] = {
    "Reversibility": "- DELETE any retrocausal claims immediately - causation flows forward in time only",
    "Entropy": "- DELETE any thermodynamic violations (perpetual motion, free energy)",
    "Falsifiability": "- State what would disprove your claim - if nothing can, the claim is invalid",
    "NoSycophancy": "- Remove sycophantic agreement - proceed directly to hypothesis formulation",
    "Overclaim": "- Downgrade causal language to what the identifiability gate allows",
}
