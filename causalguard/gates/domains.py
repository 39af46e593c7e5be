"""
Tier 2 domain checkers.

A closed set of domains, each mapped to one checker function. Mechanism
validation always runs the Tier 1 physical families first and appends the
domain checker's violations after them.

Domains:
    ecology              — mycorrhizal network cooperation (Wohlleben)
    cognitive_psychology — prospect theory (Kahneman & Tversky)
    selfish_gene         — Hamilton's rule for kin selection
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..domain import Severity, Violation
from .patterns import PHYSICAL_FAMILIES

logger = logging.getLogger(__name__)


class Domain(Enum):
    ECOLOGY = "ecology"
    COGNITIVE_PSYCHOLOGY = "cognitive_psychology"
    SELFISH_GENE = "selfish_gene"


def _rx(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


def _first_hit(patterns: tuple[tuple[re.Pattern, str], ...], text: str) -> Optional[tuple[str, str]]:
    for pattern, reason in patterns:
        found = pattern.search(text)
        if found:
            return found.group(0), reason
    return None


# =============================================================================
# ECOLOGY
# =============================================================================

# Interventional comparison from the forest schema case study
HEALTHY_COUPLING = 0.3
FRAGMENTED_COUPLING = 0.05

_NETWORK_COOPERATION = (
    (_rx(r"(tree|forest).*purely.*compet|(tree|forest).*never.*shar|"
         r"(tree|forest).*isolated.*compet|(tree|forest).*only.*compet"),
     "Contradicts observed mycorrhizal resource sharing (Wohlleben 2016)"),
    (_rx(r"no.*nutrient.*shar|nutrient.*not.*transfer|resource.*not.*exchang|tree.*do.*not.*cooperat"),
     "Directly contradicts Wood Wide Web (mycorrhizal network) observations"),
    (_rx(r"(tree|forest).*solitary|(tree|forest).*independent.*organism|(tree|forest).*isolated.*unit"),
     "Contradicts empirical network structure with measurable K_ij connections"),
)

_ISOLATION_EFFECTS = (
    (_rx(r"(isolation|fragment).*no.*effect|(isolation|fragment).*harmless|"
         r"(isolation|fragment).*irrelevant|(isolation|fragment).*not.*impact"),
     f"Contradicts case study: do(gamma={FRAGMENTED_COUPLING}) shows a larger stability "
     f"drop under stress than do(gamma={HEALTHY_COUPLING})"),
    (_rx(r"(network|connect).*irrelevant|(network|connect).*not.*matter|(network|connect).*no.*role"),
     "Contradicts empirical finding that network connectivity determines resilience"),
)

_MATERNAL_SUPPORT = (
    (_rx(r"mother.*tree.*not.*support|mother.*tree.*ignore.*offspring|"
         r"sapling.*receive.*no.*help|parent.*tree.*not.*help"),
     "Contradicts tracer evidence of directional nutrient flow from mother trees to saplings"),
)


def check_ecology(text: str) -> list[Violation]:
    violations = []
    hit = _first_hit(_NETWORK_COOPERATION, text)
    if hit:
        violations.append(Violation("network_cooperation", Severity.FATAL, *hit))
    hit = _first_hit(_ISOLATION_EFFECTS, text)
    if hit:
        violations.append(Violation("empirical_contradiction", Severity.FATAL, *hit))
    hit = _first_hit(_MATERNAL_SUPPORT, text)
    if hit:
        violations.append(Violation("empirical_contradiction", Severity.WARNING, *hit))
    return violations


# =============================================================================
# COGNITIVE PSYCHOLOGY
# =============================================================================

UTILITY_KEYWORDS = [
    "utility", "value", "happiness", "well-being", "satisfaction",
    "preference", "benefit", "worth", "desire", "welfare",
    "life satisfaction", "subjective value", "perceived value",
    "emotional response", "affective", "morale",
]

LOSS_KEYWORDS = [
    "loss", "losses", "losing", "lost",
    "decrease", "reduction", "decline", "drop",
    "pay cut", "layoff", "downsizing",
    "sacrifice", "give up", "forgo",
    "penalty", "cost", "expense",
    "disadvantage", "harm", "damage",
    "negative impact", "adverse",
]

_REFERENCE_POINT = [
    _rx(p) for p in (
        r"reference\s+point", r"baseline", r"current\s+state", r"relative\s+to",
        r"compared\s+to", r"change\s+from", r"starting\s+point", r"initial\s+state",
        r"status\s+quo", r"\bref\s*=", r"gain.*from", r"loss.*from",
    )
]

_LOSS_AVERSION_AWARENESS = [
    _rx(p) for p in (
        r"loss\s+aversion", r"λ\s*[≈=~]\s*2\.25", r"lambda\s*[≈=~]\s*2", r"asymmetr",
        r"2\.25.*times", r"twice\s+as", r"stronger.*loss", r"disproportion",
        r"steeper.*loss", r"kahneman.*tversky",
    )
]


def _first_keyword(text_lower: str, keywords: list[str]) -> Optional[str]:
    return next((kw for kw in keywords if kw in text_lower), None)


def check_cognitive_psychology(text: str) -> list[Violation]:
    violations = []
    text_lower = text.lower()
    utility = _first_keyword(text_lower, UTILITY_KEYWORDS)
    if utility is None:
        return violations

    if not any(p.search(text) for p in _REFERENCE_POINT):
        violations.append(Violation(
            "reference_point",
            Severity.WARNING,
            utility,
            "Utility/value claim must specify a reference point; evaluation is relative "
            "to the current state, not an absolute level.",
        ))

    loss = _first_keyword(text_lower, LOSS_KEYWORDS)
    if loss is not None and not any(p.search(text) for p in _LOSS_AVERSION_AWARENESS):
        violations.append(Violation(
            "loss_aversion",
            Severity.WARNING,
            loss,
            "Mechanism involves losses but ignores loss aversion; losses weigh about "
            "2.25x equivalent gains (Kahneman & Tversky 1979).",
        ))
    return violations


# =============================================================================
# SELFISH GENE (HAMILTON'S RULE)
# =============================================================================

ALTRUISM_KEYWORDS = [
    "altruism", "altruistic", "sacrifice", "cooperat", "help",
    "kin selection", "inclusive fitness", "hamilton",
    "sterile worker", "eusocial", "colony", "nest defense",
    "alarm call", "sharing food", "parental care",
]

RELATEDNESS_TOLERANCE = 0.1

_NUMBER = r"(-?\d*\.?\d+)"

# Ordered: first match wins. The percentage form is divided by 100.
_RELATEDNESS_PATTERNS = (
    (_rx(rf"\br\s*=\s*{_NUMBER}"), 1.0),
    (_rx(rf"relatedness\s+of\s+{_NUMBER}"), 1.0),
    (_rx(rf"{_NUMBER}%\s+(?:of\s+)?DNA"), 100.0),
    (_rx(rf"coefficient\s+of\s+relatedness\s*[=:]\s*{_NUMBER}"), 1.0),
)

_KNOWN_RELATIONSHIPS = (
    ("parent-offspring", 0.5, _rx(r"parent|offspring|mother|father|child")),
    ("siblings (diploid)", 0.5, _rx(r"^(?!.*haplodiploid).*(sibling|brother|sister)")),
    ("haplodiploid sisters", 0.75, _rx(r"^(?=.*(haplodiploid|honeybee|\bbees?\b|\bants?\b|\bwasps?\b)).*sister")),
    ("grandparent-grandchild", 0.25, _rx(r"grandparent|grandchild|grandmother|grandfather")),
    ("cousins", 0.125, _rx(r"cousin")),
)


def extract_relatedness(text: str) -> Optional[tuple[float, str]]:
    """Return (r, matched span) for the first relatedness statement found."""
    for pattern, divisor in _RELATEDNESS_PATTERNS:
        found = pattern.search(text)
        if found:
            return float(found.group(1)) / divisor, found.group(0)
    return None


def check_selfish_gene(text: str) -> list[Violation]:
    violations: list[Violation] = []
    altruism = _first_keyword(text.lower(), ALTRUISM_KEYWORDS)
    if altruism is None:
        return violations

    extracted = extract_relatedness(text)
    if extracted is None:
        violations.append(Violation(
            "kin_selection",
            Severity.WARNING,
            altruism,
            "Altruistic behavior without a coefficient of relatedness (r); "
            "Hamilton's rule rB > C needs r to be defined.",
        ))
        return violations

    r, span = extracted
    flat = " ".join(text.split())
    for relationship, expected, pattern in _KNOWN_RELATIONSHIPS:
        if pattern.search(flat) and abs(r - expected) > RELATEDNESS_TOLERANCE:
            violations.append(Violation(
                "kin_selection",
                Severity.WARNING,
                span,
                f"Claims r={r:.2f} for {relationship}, but the standard coefficient is r={expected}.",
            ))

    if r > 1.0:
        violations.append(Violation(
            "kin_selection",
            Severity.FATAL,
            span,
            f"Relatedness r={r:.2f} exceeds 1.0, the maximum possible (identical genomes).",
        ))
    if r < 0.0:
        violations.append(Violation(
            "kin_selection",
            Severity.FATAL,
            span,
            f"Relatedness r={r:.2f} is negative; relatedness ranges from 0 to 1.",
        ))
    return violations


# =============================================================================
# DISPATCH
# =============================================================================

DOMAIN_CHECKERS: dict[Domain, Callable[[str], list[Violation]]] = {
    Domain.ECOLOGY: check_ecology,
    Domain.COGNITIVE_PSYCHOLOGY: check_cognitive_psychology,
    Domain.SELFISH_GENE: check_selfish_gene,
}


@dataclass
class MechanismReport:
    """Tier 1 physical checks plus the optional Tier 2 domain check."""
    domain: Optional[Domain]
    physical_violations: list[Violation] = field(default_factory=list)
    domain_violations: list[Violation] = field(default_factory=list)

    @property
    def violations(self) -> list[Violation]:
        return self.physical_violations + self.domain_violations

    @property
    def valid(self) -> bool:
        return not any(v.is_fatal for v in self.violations)


def validate_mechanism(text: str, domain: Optional[Domain] = None) -> MechanismReport:
    """Run the physical families, then the domain checker if one is selected."""
    report = MechanismReport(domain=domain)
    for family in PHYSICAL_FAMILIES:
        report.physical_violations.extend(family.detect(text))
    if domain is not None:
        report.domain_violations = DOMAIN_CHECKERS[domain](text)
    logger.debug(
        "mechanism check (%s): %d physical, %d domain violations",
        domain.value if domain else "none",
        len(report.physical_violations),
        len(report.domain_violations),
    )
    return report
