"""
Boundary Validation for the CausalGuard Engine.

Everything that crosses into the engine passes through here first.
The engine operators are total over well-formed input, so the only
hard failures happen at this boundary:
1. Non-finite numbers (NaN, +/-inf) are rejected
2. Payloads of the wrong shape are rejected
3. Variable names are normalized with one shared rule
"""

from __future__ import annotations

import hashlib
import json
import math
import re
from typing import Any, Iterable, Mapping, Optional

from .domain import BoundaryError, BoundaryRule, Hypothesis
from .evidence import EvidenceValidationError, validation_from_dict


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

# Everything that is not a lowercase letter or digit is dropped
_NON_ALNUM = re.compile(r"[^a-z0-9]")


# =============================================================================
# NAME NORMALIZATION
# =============================================================================

def normalize_name(name: str) -> str:
    """
    Canonical form used for every variable-name comparison.

    "Hours Studied", "hours_studied" and "HoursStudied" all map to
    "hoursstudied".
    """
    return _NON_ALNUM.sub("", str(name).lower())


def sanitize_names(values: Optional[Iterable[Any]]) -> list[str]:
    """Trim, drop blanks and dedupe by normalized name, keeping first spelling."""
    if not values:
        return []
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        text = str(value).strip()
        key = normalize_name(text)
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(text)
    return result


def normalized_lookup(values: Optional[Mapping[str, float]]) -> dict[str, float]:
    """Key a numeric mapping by normalized name. First spelling wins on collision."""
    lookup: dict[str, float] = {}
    for name, value in (values or {}).items():
        lookup.setdefault(normalize_name(name), value)
    return lookup


# =============================================================================
# NUMERIC BOUNDARY CHECKS
# =============================================================================

def require_finite(value: Any, field_name: str) -> float:
    """
    Validate that a value is a finite number.

    Raises:
        BoundaryError: If the value is not numeric (B2) or not finite (B1)
    """
    if isinstance(value, bool):
        raise BoundaryError(
            BoundaryRule.B2_MALFORMED_PAYLOAD,
            f"{field_name} must be a number, got bool",
            field_name,
        )
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise BoundaryError(
            BoundaryRule.B2_MALFORMED_PAYLOAD,
            f"{field_name} must be a number, got {value!r}",
            field_name,
        ) from e
    if not math.isfinite(number):
        raise BoundaryError(
            BoundaryRule.B1_NON_FINITE_INPUT,
            f"{field_name} must be finite, got {value!r}",
            field_name,
        )
    return number


def require_finite_mapping(
    values: Optional[Mapping[str, Any]],
    field_name: str,
) -> dict[str, float]:
    """Validate every value of a name → number mapping."""
    if values is None:
        return {}
    if not isinstance(values, Mapping):
        raise BoundaryError(
            BoundaryRule.B2_MALFORMED_PAYLOAD,
            f"{field_name} must be a mapping of variable names to numbers",
            field_name,
        )
    return {
        str(name): require_finite(value, f"{field_name}[{name}]")
        for name, value in values.items()
    }


def require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise BoundaryError(
            BoundaryRule.B3_MISSING_FIELD,
            f"{field_name} is required",
            field_name,
        )
    return value


# =============================================================================
# PAYLOAD PARSING
# =============================================================================

def _optional_score(payload: dict, *keys: str) -> Optional[float]:
    for key in keys:
        if payload.get(key) is not None:
            return require_finite(payload[key], key)
    return None


def hypothesis_from_dict(payload: dict) -> Hypothesis:
    """
    Build a Hypothesis from an external JSON payload.

    Accepts both camelCase and snake_case keys.

    Raises:
        BoundaryError: On missing id, non-finite scores or a malformed
            validation result
    """
    if not isinstance(payload, dict):
        raise BoundaryError(
            BoundaryRule.B2_MALFORMED_PAYLOAD,
            f"hypothesis must be an object, got {type(payload).__name__}",
        )
    hypothesis_id = require_text(payload.get("id"), "id")
    try:
        validation = validation_from_dict(
            payload.get("validationResult", payload.get("validation_result"))
        )
    except EvidenceValidationError as e:
        raise BoundaryError(
            BoundaryRule.B2_MALFORMED_PAYLOAD,
            f"hypothesis {hypothesis_id}: {e}",
            "validation_result",
        ) from e

    return Hypothesis(
        id=hypothesis_id,
        thesis=str(payload.get("thesis", "")),
        mechanism=str(payload.get("mechanism", "")),
        prediction=str(payload.get("prediction", "")),
        falsifier=payload.get("falsifier"),
        confounder_set=tuple(sanitize_names(
            payload.get("confounderSet", payload.get("confounder_set"))
        )),
        novelty_score=_optional_score(payload, "noveltyScore", "novelty_score"),
        intervention_value_score=_optional_score(
            payload, "interventionValueScore", "intervention_value_score"
        ),
        identifiability_score=_optional_score(
            payload, "identifiabilityScore", "identifiability_score"
        ),
        validation_result=validation,
        description=str(payload.get("description", "")),
        bridged_concepts=tuple(
            payload.get("bridgedConcepts", payload.get("bridged_concepts")) or ()
        ),
        do_plan=payload.get("doPlan", payload.get("do_plan")),
        confidence=_optional_score(payload, "confidence"),
    )


# =============================================================================
# CACHE KEYS
# =============================================================================

def create_cache_key(namespace: str, *parts: Any) -> str:
    """Deterministic cache key from JSON-serializable parts."""
    content = json.dumps(parts, sort_keys=True, default=str)
    return f"{namespace}:{hashlib.sha256(content.encode()).hexdigest()[:16]}"
