"""
Causal Graph Model — the three rungs of causal reasoning over one graph.

The model has two tiers:
    Innate  — physical constraints shared by every model, never replaced
    Custom  — domain nodes and edges, replaced wholesale by hydrate()

Operators:
    query_association     — Rung 1, P(Y | X) along a directed path
    query_intervention    — Rung 2, P(Y | do(X = x)) by delta propagation
    query_counterfactual  — Rung 3, Y had X been x, given what was observed
    check_d_separation    — conditional independence over undirected paths
    check_identifiability — backdoor adjustment coverage
    check_confounder_completeness — required vs. provided confounders

Operators never raise on unknown variables. Non-finite numbers are
rejected at entry with BoundaryError.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from ..validation import (
    create_cache_key,
    normalize_name,
    normalized_lookup,
    require_finite,
    require_finite_mapping,
    sanitize_names,
)
from .results import (
    AssociationResult,
    ConfounderCompletenessResult,
    CounterfactualResult,
    DSeparationResult,
    IdentifiabilityResult,
    InterventionResult,
)
from .structure import (
    INNATE_CONSTRAINTS,
    INNATE_EDGES,
    INNATE_NODES,
    CausalEdge,
    CausalNode,
    edge_from_dict,
    node_from_dict,
)
from .traversal import (
    MAX_PATH_DEPTH,
    find_directed_path,
    parents_of,
    path_weight,
    propagate_intervention,
    undirected_paths,
)

logger = logging.getLogger(__name__)


def _format_number(value: float) -> str:
    return f"{value:g}"


class CausalGraphModel:
    """
    A two-tier causal graph.

    Hydration is single-writer: callers must not hydrate while queries
    are in flight on another thread. Each hydrate bumps `revision`, which
    downstream caches fold into their keys.
    """

    def __init__(
        self,
        nodes: Optional[Iterable[CausalNode]] = None,
        edges: Optional[Iterable[CausalEdge]] = None,
        model_id: str = "custom",
        description: Optional[str] = None,
    ):
        self.model_id = model_id
        self.description = description
        self.revision = 0
        self._custom_nodes: tuple[CausalNode, ...] = ()
        self._custom_edges: tuple[CausalEdge, ...] = ()
        if nodes is not None or edges is not None:
            self.hydrate(nodes or (), edges or ())

    @classmethod
    def from_dict(cls, payload: dict) -> CausalGraphModel:
        """Build a model from {"id", "description", "nodes": [...], "edges": [...]}."""
        nodes = [node_from_dict(item) for item in payload.get("nodes", [])]
        edges = [edge_from_dict(item) for item in payload.get("edges", [])]
        return cls(
            nodes=nodes,
            edges=edges,
            model_id=str(payload.get("id", "custom")),
            description=payload.get("description"),
        )

    # =========================================================================
    # STRUCTURE
    # =========================================================================

    def hydrate(self, nodes: Iterable[CausalNode], edges: Iterable[CausalEdge]) -> None:
        """Replace the custom tier. Hydrating twice with the same input is a no-op."""
        self._custom_nodes = tuple(nodes)
        self._custom_edges = tuple(edges)
        self.revision += 1
        logger.debug(
            "hydrated model %s rev %d: %d nodes, %d edges",
            self.model_id, self.revision, len(self._custom_nodes), len(self._custom_edges),
        )

    @property
    def custom_nodes(self) -> tuple[CausalNode, ...]:
        return self._custom_nodes

    @property
    def custom_edges(self) -> tuple[CausalEdge, ...]:
        return self._custom_edges

    @property
    def edges(self) -> tuple[CausalEdge, ...]:
        return INNATE_EDGES + self._custom_edges

    @property
    def nodes(self) -> tuple[CausalNode, ...]:
        return INNATE_NODES + self._custom_nodes

    def get_innate_structure(self) -> tuple[list[CausalNode], list[CausalEdge]]:
        return list(INNATE_NODES), list(INNATE_EDGES)

    def get_full_structure(self) -> tuple[list[CausalNode], list[CausalEdge]]:
        return list(self.nodes), list(self.edges)

    def get_constraints(self) -> list[str]:
        return list(INNATE_CONSTRAINTS)

    def to_dict(self) -> dict:
        return {
            "id": self.model_id,
            "description": self.description,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }

    def fingerprint(self) -> str:
        """Stable key for the current structure."""
        return create_cache_key("graph", self.model_id, self.revision, self.to_dict())

    # =========================================================================
    # RUNG 1: ASSOCIATION
    # =========================================================================

    def query_association(
        self,
        cause: str,
        effect: str,
        observed: Optional[Mapping[str, float]] = None,
    ) -> AssociationResult:
        """
        Observational association along the shortest directed path.

        When no directed path exists the direct pair [cause, effect] is
        used, which carries the missing-edge weight of 0.5.
        """
        observed_values = normalized_lookup(require_finite_mapping(observed, "observed"))
        edges = self.edges

        path = find_directed_path(edges, cause, effect) or [cause, effect]
        weight = path_weight(edges, path)
        cause_value = observed_values.get(normalize_name(cause), 0.0)

        return AssociationResult(
            estimand=f"P({effect} | {cause})",
            value=round(cause_value * weight, 4),
            path=path,
            path_weight=weight,
        )

    # =========================================================================
    # RUNG 2: INTERVENTION
    # =========================================================================

    def query_intervention(
        self,
        variable: str,
        value: float,
        outcome: str,
        baseline: Optional[Mapping[str, float]] = None,
    ) -> InterventionResult:
        """Set variable to value and propagate the delta downstream."""
        value = require_finite(value, "value")
        baseline_values = normalized_lookup(require_finite_mapping(baseline, "baseline"))

        deltas, names = propagate_intervention(self.edges, variable, value)
        outcome_key = normalize_name(outcome)
        baseline_outcome = baseline_values.get(outcome_key, 0.0)
        delta = deltas.get(outcome_key, 0.0)

        return InterventionResult(
            estimand=f"P({outcome} | do({variable}={_format_number(value)}))",
            baseline_outcome=round(baseline_outcome, 4),
            intervened_outcome=round(baseline_outcome + delta, 4),
            delta=round(delta, 4),
            affected_nodes=[names[key] for key in deltas],
        )

    # =========================================================================
    # RUNG 3: COUNTERFACTUAL
    # =========================================================================

    def query_counterfactual(
        self,
        variable: str,
        value: float,
        outcome: str,
        observed: Optional[Mapping[str, float]] = None,
    ) -> CounterfactualResult:
        """The outcome under do(variable = value) against the observed world."""
        observed_values = require_finite_mapping(observed, "observed")
        intervention = self.query_intervention(variable, value, outcome, observed_values)
        actual = normalized_lookup(observed_values).get(normalize_name(outcome), 0.0)
        difference = round(intervention.intervened_outcome - actual, 4)

        if difference == 0:
            explanation = "Counterfactual change is negligible under current structure."
        else:
            explanation = (
                f"Under do({variable}={_format_number(value)}), "
                f"{outcome} shifts by {_format_number(difference)}."
            )

        return CounterfactualResult(
            estimand=f"{outcome}_{variable}({_format_number(value)})",
            actual_outcome=round(actual, 4),
            counterfactual_outcome=intervention.intervened_outcome,
            difference=difference,
            explanation=explanation,
        )

    # =========================================================================
    # INDEPENDENCE AND IDENTIFIABILITY
    # =========================================================================

    def check_d_separation(
        self,
        x: str,
        y: str,
        conditioned_on: Optional[Iterable[str]] = None,
    ) -> DSeparationResult:
        """
        Path-blocking check over the undirected skeleton.

        A path is active when none of its interior nodes is conditioned
        on. x and y are d-separated iff no active path exists.
        """
        conditioned = sanitize_names(conditioned_on)
        conditioned_keys = {normalize_name(name) for name in conditioned}

        paths = undirected_paths(self.edges, x, y, max_hops=MAX_PATH_DEPTH)
        active = [
            path for path in paths
            if not any(normalize_name(node) in conditioned_keys for node in path[1:-1])
        ]
        separated = not active

        if separated:
            given = ", ".join(conditioned) if conditioned else "nothing"
            note = f"{x} and {y} are d-separated given {given}."
        else:
            note = f"{len(active)} active path(s) connect {x} and {y}; independence cannot be assumed."

        return DSeparationResult(
            d_separated=separated,
            active_paths=active,
            conditioned_on=conditioned,
            paths_examined=len(paths),
            note=note,
        )

    def check_identifiability(
        self,
        treatment: str,
        outcome: str,
        adjustment_set: Optional[Iterable[str]] = None,
        known_confounders: Optional[Iterable[str]] = None,
    ) -> IdentifiabilityResult:
        """
        Backdoor identifiability from common parents plus declared confounders.

        Required confounders are the direct causes shared by treatment and
        outcome, unioned with the caller's known confounders. The effect is
        identifiable when the adjustment set covers all of them.
        """
        edges = self.edges
        outcome_parents = {normalize_name(name) for name in parents_of(edges, outcome)}
        structural = [
            name for name in parents_of(edges, treatment)
            if normalize_name(name) in outcome_parents
        ]
        required = sanitize_names(structural + sanitize_names(known_confounders))
        adjustment = sanitize_names(adjustment_set)
        adjustment_keys = {normalize_name(name) for name in adjustment}
        missing = [name for name in required if normalize_name(name) not in adjustment_keys]

        if not required:
            note = "No confounding paths declared; effect is identifiable without adjustment."
        elif not missing:
            note = "Backdoor criterion satisfied: adjustment set covers all required confounders."
        else:
            note = f"Missing adjustment for: {', '.join(missing)}. Effect is not identifiable."

        return IdentifiabilityResult(
            identifiable=not missing,
            required_confounders=required,
            adjustment_set=adjustment,
            missing_confounders=missing,
            note=note,
        )

    def check_confounder_completeness(
        self,
        required: Optional[Iterable[str]],
        provided: Optional[Iterable[str]],
    ) -> ConfounderCompletenessResult:
        required_names = sanitize_names(required)
        provided_names = sanitize_names(provided)
        required_keys = {normalize_name(name) for name in required_names}
        provided_keys = {normalize_name(name) for name in provided_names}

        missing = [name for name in required_names if normalize_name(name) not in provided_keys]
        extras = [name for name in provided_names if normalize_name(name) not in required_keys]
        if required_names:
            coverage = round((len(required_names) - len(missing)) / len(required_names), 4)
        else:
            coverage = 1.0

        return ConfounderCompletenessResult(
            complete=not missing,
            coverage=coverage,
            missing=missing,
            extras=extras,
        )
