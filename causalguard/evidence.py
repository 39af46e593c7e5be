"""
External Evidence Records — what the engine is told, never what it infers.

The engine does not run experiments or search literature. Validation
results, prior art and contradiction rows arrive from outside and are
recorded here as immutable values.

Record Types:
    ValidationResult      — Outcome of an empirical intervention test
    PriorArt              — One retrieved prior-art item with similarity
    ContradictionEvidence — One row of the contradiction matrix
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional


# Significance cutoff for an intervention test
P_VALUE_THRESHOLD = 0.05


class EvidenceValidationError(Exception):
    """Raised when an external evidence record fails validation checks."""
    pass


def _finite_or_none(value: Any, field_name: str) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise EvidenceValidationError(f"{field_name} must be numeric, got {value!r}") from e
    if not math.isfinite(number):
        raise EvidenceValidationError(f"{field_name} must be finite, got {value!r}")
    return number


def _pick(payload: dict, *keys: str, default: Any = None) -> Any:
    """Return the first present key, accepting camelCase and snake_case payloads."""
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


# =============================================================================
# VALIDATION RESULTS
# =============================================================================

@dataclass(frozen=True)
class ValidationMetrics:
    p_value: Optional[float] = None
    conclusion_valid: Optional[bool] = None

    def __post_init__(self):
        _finite_or_none(self.p_value, "p_value")


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of an externally executed intervention test.

    A result supports intervention only when the test succeeded, the
    p-value (if reported) is below 0.05, and the conclusion was not
    explicitly marked invalid.
    """
    success: bool
    metrics: Optional[ValidationMetrics] = None

    @property
    def p_value(self) -> Optional[float]:
        return self.metrics.p_value if self.metrics else None

    @property
    def conclusion_valid(self) -> Optional[bool]:
        return self.metrics.conclusion_valid if self.metrics else None

    def supports_intervention(self) -> bool:
        if not self.success:
            return False
        if self.p_value is not None and self.p_value >= P_VALUE_THRESHOLD:
            return False
        return self.conclusion_valid is not False


# =============================================================================
# PRIOR ART
# =============================================================================

@dataclass(frozen=True)
class PriorArt:
    """
    A retrieved prior-art item.

    Similarity may be reported on a 0-1 or a 0-100 scale. The adjusted
    similarity, when present, takes precedence over the raw value.
    """
    source: str
    title: str
    similarity: float
    adjusted_similarity: Optional[float] = None
    differentiator: str = ""

    def __post_init__(self):
        _finite_or_none(self.similarity, "similarity")
        _finite_or_none(self.adjusted_similarity, "adjusted_similarity")

    @property
    def effective_similarity(self) -> float:
        raw = self.adjusted_similarity if self.adjusted_similarity is not None else self.similarity
        return raw / 100 if raw > 1 else raw


# =============================================================================
# CONTRADICTION MATRIX
# =============================================================================

@dataclass(frozen=True)
class ContradictionEvidence:
    """One pair of conflicting claims about a shared concept."""
    id: str
    concept: str
    claim_a: str = ""
    claim_b: str = ""
    source_a: str = ""
    source_b: str = ""
    semantic_conflict_score: float = 0.0
    conflict_tag: str = ""
    evidence_refs: tuple[str, ...] = field(default_factory=tuple)
    high_confidence: bool = False


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================

def validation_from_dict(payload: Optional[dict]) -> Optional[ValidationResult]:
    """Build a ValidationResult from an external payload (None passes through)."""
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise EvidenceValidationError(f"validation result must be an object, got {type(payload).__name__}")
    metrics_payload = payload.get("metrics")
    metrics = None
    if isinstance(metrics_payload, dict):
        metrics = ValidationMetrics(
            p_value=_finite_or_none(_pick(metrics_payload, "pValue", "p_value"), "p_value"),
            conclusion_valid=_pick(metrics_payload, "conclusionValid", "conclusion_valid"),
        )
    return ValidationResult(success=bool(payload.get("success", False)), metrics=metrics)


def prior_art_from_dict(payload: dict) -> PriorArt:
    return PriorArt(
        source=str(payload.get("source", "")),
        title=str(payload.get("title", "")),
        similarity=_finite_or_none(payload.get("similarity", 0.0), "similarity") or 0.0,
        adjusted_similarity=_finite_or_none(
            _pick(payload, "adjustedSimilarity", "adjusted_similarity"), "adjusted_similarity"
        ),
        differentiator=str(payload.get("differentiator", "")),
    )


def contradiction_from_dict(payload: dict) -> ContradictionEvidence:
    return ContradictionEvidence(
        id=str(payload.get("id", "")),
        concept=str(payload.get("concept", "")),
        claim_a=str(_pick(payload, "claimA", "claim_a", default="")),
        claim_b=str(_pick(payload, "claimB", "claim_b", default="")),
        source_a=str(_pick(payload, "sourceA", "source_a", default="")),
        source_b=str(_pick(payload, "sourceB", "source_b", default="")),
        semantic_conflict_score=_finite_or_none(
            _pick(payload, "semanticConflictScore", "semantic_conflict_score", default=0.0),
            "semantic_conflict_score",
        ) or 0.0,
        conflict_tag=str(_pick(payload, "conflictTag", "conflict_tag", default="")),
        evidence_refs=tuple(_pick(payload, "evidenceRefs", "evidence_refs", default=())),
        high_confidence=bool(_pick(payload, "highConfidence", "high_confidence", default=False)),
    )
