"""
Graph traversal primitives.

Directed search and delta propagation are breadth-first walks over an
adjacency index keyed by normalized name. Undirected path enumeration
for d-separation is delegated to networkx.

All walks are bounded by a depth cap, so cycles terminate.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, Optional, Sequence

import networkx as nx

from ..validation import normalize_name
from .structure import CausalEdge


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

MAX_PATH_DEPTH = 6
ASSOCIATION_ATTENUATION = 0.85
INTERVENTION_ATTENUATION = 0.7
MISSING_EDGE_FACTOR = 0.5
MIN_PROPAGATED_DELTA = 1e-4


# =============================================================================
# ADJACENCY
# =============================================================================

def build_adjacency(edges: Iterable[CausalEdge]) -> dict[str, list[CausalEdge]]:
    """Outgoing edges per normalized source, in declaration order."""
    adjacency: dict[str, list[CausalEdge]] = {}
    for edge in edges:
        adjacency.setdefault(normalize_name(edge.source), []).append(edge)
    return adjacency


def find_edge(edges: Iterable[CausalEdge], source: str, target: str) -> Optional[CausalEdge]:
    """First declared edge between two names, compared after normalization."""
    source_key = normalize_name(source)
    target_key = normalize_name(target)
    for edge in edges:
        if normalize_name(edge.source) == source_key and normalize_name(edge.target) == target_key:
            return edge
    return None


def parents_of(edges: Iterable[CausalEdge], node: str) -> list[str]:
    """Direct causes of a node, deduped by normalized name."""
    node_key = normalize_name(node)
    seen: set[str] = set()
    parents: list[str] = []
    for edge in edges:
        if normalize_name(edge.target) != node_key:
            continue
        key = normalize_name(edge.source)
        if key not in seen:
            seen.add(key)
            parents.append(edge.source)
    return parents


# =============================================================================
# DIRECTED SEARCH
# =============================================================================

def find_directed_path(
    edges: Sequence[CausalEdge],
    start: str,
    end: str,
    max_depth: int = MAX_PATH_DEPTH,
) -> Optional[list[str]]:
    """
    Breadth-first search for the shortest directed path.

    Ties between equally short paths go to the edge declared first.
    Returns None when no path exists within max_depth hops.
    """
    adjacency = build_adjacency(edges)
    target_key = normalize_name(end)
    queue: deque[list[str]] = deque([[start]])
    visited: set[str] = set()

    while queue:
        path = queue.popleft()
        key = normalize_name(path[-1])
        if key == target_key:
            return path
        if key in visited:
            continue
        visited.add(key)
        if len(path) - 1 >= max_depth:
            continue
        for edge in adjacency.get(key, []):
            if normalize_name(edge.target) not in visited:
                queue.append(path + [edge.target])

    return None


def path_weight(
    edges: Sequence[CausalEdge],
    path: Sequence[str],
    attenuation: float = ASSOCIATION_ATTENUATION,
) -> float:
    """
    Product of signed, attenuated edge strengths along a path.

    A hop with no declared edge contributes a flat 0.5. A path with
    fewer than two nodes carries no association at all.
    """
    if len(path) < 2:
        return 0.0
    weight = 1.0
    for source, target in zip(path, path[1:]):
        edge = find_edge(edges, source, target)
        if edge is None:
            weight *= MISSING_EDGE_FACTOR
        else:
            weight *= edge.effective_sign * edge.effective_strength * attenuation
    return round(weight, 4)


# =============================================================================
# INTERVENTION PROPAGATION
# =============================================================================

def propagate_intervention(
    edges: Sequence[CausalEdge],
    variable: str,
    value: float,
    max_depth: int = MAX_PATH_DEPTH,
    attenuation: float = INTERVENTION_ATTENUATION,
    min_delta: float = MIN_PROPAGATED_DELTA,
) -> tuple[dict[str, float], dict[str, str]]:
    """
    Push a do() delta through the graph breadth-first.

    Each hop multiplies by sign × strength × attenuation. Deltas reaching
    the same node along different routes are summed. The origin node is
    included with the full delta.

    Returns:
        (deltas keyed by normalized name, display name per normalized key),
        both in first-visit order
    """
    adjacency = build_adjacency(edges)
    deltas: dict[str, float] = {}
    names: dict[str, str] = {}
    queue: deque[tuple[str, float, int]] = deque([(variable, value, 0)])

    while queue:
        node, delta, depth = queue.popleft()
        if depth > max_depth:
            continue
        key = normalize_name(node)
        names.setdefault(key, node)
        deltas[key] = deltas.get(key, 0.0) + delta

        for edge in adjacency.get(key, []):
            propagated = delta * edge.effective_sign * edge.effective_strength * attenuation
            if abs(propagated) < min_delta:
                continue
            queue.append((edge.target, propagated, depth + 1))

    return deltas, names


# =============================================================================
# UNDIRECTED PATHS
# =============================================================================

def undirected_paths(
    edges: Iterable[CausalEdge],
    x: str,
    y: str,
    max_hops: int = MAX_PATH_DEPTH,
) -> list[list[str]]:
    """
    All simple paths between x and y ignoring edge direction.

    A variable is trivially connected to itself by the one-node path.
    """
    x_key = normalize_name(x)
    y_key = normalize_name(y)
    if x_key == y_key:
        return [[x]]

    graph = nx.Graph()
    names: dict[str, str] = {x_key: x, y_key: y}
    for edge in edges:
        source_key = normalize_name(edge.source)
        target_key = normalize_name(edge.target)
        names.setdefault(source_key, edge.source)
        names.setdefault(target_key, edge.target)
        graph.add_edge(source_key, target_key)

    if x_key not in graph or y_key not in graph:
        return []

    return [
        [names[key] for key in path]
        for path in nx.all_simple_paths(graph, x_key, y_key, cutoff=max_hops)
    ]
