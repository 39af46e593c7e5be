"""
Engine configuration.

Source defines which thresholds and policies exist and their defaults.
An optional JSON file overrides the values:

    {
      "gate": {"sycophancy_policy": "warning", "max_warnings": 5, "domain": "ecology"},
      "novelty": {"novelty_threshold": 0.3},
      "cache": {"max_entries": 256}
    }

A missing file means code defaults.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional, Union

from .cache import DEFAULT_MAX_ENTRIES
from .domain import BoundaryError, BoundaryRule, GatePolicy
from .gates.domains import Domain
from .gates.patterns import (
    POLICY_DOMAIN,
    POLICY_ENTROPY,
    POLICY_OVERCLAIM,
    POLICY_RETROCAUSALITY,
    POLICY_SYCOPHANCY,
    POLICY_UNFALSIFIABILITY,
)
from .validation import require_finite

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

DEFAULT_MAX_WARNINGS = 3

DEFAULT_NOVELTY_THRESHOLD = 0.3
DEFAULT_FALSIFIABILITY_THRESHOLD = 0.55
DEFAULT_CONTRADICTION_THRESHOLD = 0.45
INTERVENTION_VALUE_FLOOR = 0.4


# =============================================================================
# GATE POLICY
# =============================================================================

@dataclass(frozen=True)
class GatePolicyConfig:
    """
    Per-axiom policy for the mechanism constraint gate.

    fatal keeps each detector's own severity, warning downgrades fatals,
    skip drops the axiom.
    """
    retrocausality_policy: GatePolicy = GatePolicy.FATAL
    entropy_policy: GatePolicy = GatePolicy.FATAL
    unfalsifiability_policy: GatePolicy = GatePolicy.FATAL
    sycophancy_policy: GatePolicy = GatePolicy.FATAL
    domain_policy: GatePolicy = GatePolicy.FATAL
    overclaim_policy: GatePolicy = GatePolicy.FATAL
    max_warnings: int = DEFAULT_MAX_WARNINGS
    domain: Optional[Domain] = None

    def policy_for(self, axis: str) -> GatePolicy:
        return {
            POLICY_RETROCAUSALITY: self.retrocausality_policy,
            POLICY_ENTROPY: self.entropy_policy,
            POLICY_UNFALSIFIABILITY: self.unfalsifiability_policy,
            POLICY_SYCOPHANCY: self.sycophancy_policy,
            POLICY_DOMAIN: self.domain_policy,
            POLICY_OVERCLAIM: self.overclaim_policy,
        }[axis]

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            payload[f.name] = value.value if hasattr(value, "value") else value
        return payload


# =============================================================================
# NOVELTY THRESHOLDS
# =============================================================================

@dataclass(frozen=True)
class NoveltyThresholds:
    novelty_threshold: float = DEFAULT_NOVELTY_THRESHOLD
    falsifiability_threshold: float = DEFAULT_FALSIFIABILITY_THRESHOLD
    contradiction_threshold: float = DEFAULT_CONTRADICTION_THRESHOLD
    intervention_value_floor: float = INTERVENTION_VALUE_FLOOR


@dataclass(frozen=True)
class EngineConfig:
    gate: GatePolicyConfig = field(default_factory=GatePolicyConfig)
    novelty: NoveltyThresholds = field(default_factory=NoveltyThresholds)
    cache_max_entries: int = DEFAULT_MAX_ENTRIES


# =============================================================================
# LOADING
# =============================================================================

def _parse_enum(enum_cls, value: Any, key: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_cls)
        raise BoundaryError(
            BoundaryRule.B2_MALFORMED_PAYLOAD,
            f"{key} must be one of: {allowed}; got {value!r}",
            key,
        ) from e


def gate_policy_from_dict(payload: dict) -> GatePolicyConfig:
    overrides: dict[str, Any] = {}
    for f in fields(GatePolicyConfig):
        if f.name not in payload:
            continue
        value = payload[f.name]
        if f.name.endswith("_policy"):
            overrides[f.name] = _parse_enum(GatePolicy, value, f.name)
        elif f.name == "domain":
            overrides[f.name] = None if value is None else _parse_enum(Domain, value, f.name)
        elif f.name == "max_warnings":
            overrides[f.name] = int(require_finite(value, f.name))
    unknown = set(payload) - {f.name for f in fields(GatePolicyConfig)}
    if unknown:
        logger.warning("ignoring unknown gate config keys: %s", ", ".join(sorted(unknown)))
    return replace(GatePolicyConfig(), **overrides)


def novelty_thresholds_from_dict(payload: dict) -> NoveltyThresholds:
    overrides = {
        f.name: require_finite(payload[f.name], f.name)
        for f in fields(NoveltyThresholds)
        if f.name in payload
    }
    return replace(NoveltyThresholds(), **overrides)


def load_config_dict(config_path: Optional[Union[str, Path]]) -> dict[str, Any]:
    """Load the raw config file, or an empty dict when there is none."""
    if config_path is None:
        return {}
    path = Path(config_path)
    if not path.exists():
        logger.info("config file %s not found, using defaults", path)
        return {}
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    if not isinstance(payload, dict):
        raise BoundaryError(
            BoundaryRule.B2_MALFORMED_PAYLOAD,
            f"config file {path} must contain a JSON object",
        )
    return payload


def load_config(config_path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """
    Load EngineConfig from a JSON file.

    Falls back to code defaults for anything the file does not set.
    """
    payload = load_config_dict(config_path)
    cache_section = payload.get("cache", {})
    return EngineConfig(
        gate=gate_policy_from_dict(payload.get("gate", {})),
        novelty=novelty_thresholds_from_dict(payload.get("novelty", {})),
        cache_max_entries=int(cache_section.get("max_entries", DEFAULT_MAX_ENTRIES)),
    )
