"""
Nodes, edges and the innate physical tier.

Edges may name variables that are not declared as nodes. Operators
treat any name that appears on an edge as a variable.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional

from ..domain import BoundaryError, BoundaryRule, EdgeSign, NodeKind


MIN_EDGE_STRENGTH = 0.1
MAX_EDGE_STRENGTH = 2.0
DEFAULT_EDGE_STRENGTH = 1.0


@dataclass(frozen=True)
class CausalNode:
    name: str
    kind: NodeKind
    domain: str = "custom"
    description: Optional[str] = None

    def to_dict(self) -> dict:
        payload = {"name": self.name, "type": self.kind.value, "domain": self.domain}
        if self.description:
            payload["description"] = self.description
        return payload


@dataclass(frozen=True)
class CausalEdge:
    """
    A directed causal link.

    Strength is clamped into [0.1, 2] when read. An absent strength
    means 1.
    """
    source: str
    target: str
    constraint_kind: str = "causal"
    reversible: bool = True
    sign: Optional[EdgeSign] = None
    strength: Optional[float] = None
    mechanism: Optional[str] = None

    def __post_init__(self):
        if self.strength is not None and not math.isfinite(self.strength):
            raise BoundaryError(
                BoundaryRule.B1_NON_FINITE_INPUT,
                f"Edge {self.source}->{self.target} has non-finite strength {self.strength}",
                "strength",
            )

    @property
    def effective_sign(self) -> int:
        return self.sign.multiplier if self.sign is not None else 1

    @property
    def effective_strength(self) -> float:
        if self.strength is None:
            return DEFAULT_EDGE_STRENGTH
        return max(MIN_EDGE_STRENGTH, min(MAX_EDGE_STRENGTH, self.strength))

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {
            "from": self.source,
            "to": self.target,
            "constraint": self.constraint_kind,
            "reversible": self.reversible,
        }
        if self.sign is not None:
            payload["sign"] = self.sign.value
        if self.strength is not None:
            payload["strength"] = self.strength
        if self.mechanism:
            payload["mechanism"] = self.mechanism
        return payload


# =============================================================================
# PAYLOAD PARSING
# =============================================================================

def node_from_dict(payload: dict) -> CausalNode:
    """
    Parse a node payload.

    Raises:
        BoundaryError: If the name is missing or the kind is unknown
    """
    if not isinstance(payload, dict) or not str(payload.get("name", "")).strip():
        raise BoundaryError(BoundaryRule.B3_MISSING_FIELD, "node requires a name", "name")
    kind_value = payload.get("type", payload.get("kind", NodeKind.OBSERVABLE.value))
    try:
        kind = NodeKind(kind_value)
    except ValueError as e:
        raise BoundaryError(
            BoundaryRule.B2_MALFORMED_PAYLOAD,
            f"unknown node type {kind_value!r} for {payload['name']}",
            "type",
        ) from e
    return CausalNode(
        name=str(payload["name"]),
        kind=kind,
        domain=str(payload.get("domain", "custom")),
        description=payload.get("description"),
    )


def edge_from_dict(payload: dict) -> CausalEdge:
    """
    Parse an edge payload with "from"/"to" (or "source"/"target") keys.

    Raises:
        BoundaryError: On missing endpoints, unknown sign or non-finite strength
    """
    if not isinstance(payload, dict):
        raise BoundaryError(BoundaryRule.B2_MALFORMED_PAYLOAD, "edge must be an object")
    source = payload.get("from", payload.get("source"))
    target = payload.get("to", payload.get("target"))
    if not source or not target:
        raise BoundaryError(BoundaryRule.B3_MISSING_FIELD, "edge requires from and to", "from")

    sign = None
    if payload.get("sign") is not None:
        try:
            sign = EdgeSign(payload["sign"])
        except ValueError as e:
            raise BoundaryError(
                BoundaryRule.B2_MALFORMED_PAYLOAD,
                f"unknown edge sign {payload['sign']!r}",
                "sign",
            ) from e

    strength = payload.get("strength")
    if strength is not None:
        if isinstance(strength, bool) or not isinstance(strength, (int, float)):
            raise BoundaryError(
                BoundaryRule.B2_MALFORMED_PAYLOAD,
                f"edge strength must be a number, got {strength!r}",
                "strength",
            )
        strength = float(strength)

    return CausalEdge(
        source=str(source),
        target=str(target),
        constraint_kind=str(payload.get("constraint", payload.get("constraint_kind", "causal"))),
        reversible=bool(payload.get("reversible", True)),
        sign=sign,
        strength=strength,
        mechanism=payload.get("mechanism"),
    )


# =============================================================================
# INNATE TIER
# =============================================================================

INNATE_NODES: tuple[CausalNode, ...] = (
    CausalNode("Energy", NodeKind.OBSERVABLE, "physics", "Conserved quantity"),
    CausalNode("Mass", NodeKind.OBSERVABLE, "physics", "Conserved quantity"),
    CausalNode("Time", NodeKind.EXOGENOUS, "physics", "Irreversible ordering of events"),
    CausalNode("Entropy", NodeKind.LATENT, "physics", "Non-decreasing in isolated systems"),
)

INNATE_EDGES: tuple[CausalEdge, ...] = (
    CausalEdge("Energy_in", "Energy_out", "conservation", reversible=False),
    CausalEdge("Time", "Entropy", "entropy", reversible=False),
)

INNATE_CONSTRAINTS: tuple[str, ...] = (
    "Conservation: energy and mass cannot be created or destroyed, only transformed.",
    "Entropy: the entropy of an isolated system never decreases without external work.",
    "Causality: a cause precedes its effect; no information flows backward in time.",
)
