# Graph package for the CausalGuard Engine
"""
Causal graph model and the association / intervention / counterfactual
operators.
"""

from .model import CausalGraphModel
from .structure import CausalEdge, CausalNode, edge_from_dict, node_from_dict

__all__ = [
    "CausalEdge",
    "CausalGraphModel",
    "CausalNode",
    "edge_from_dict",
    "node_from_dict",
]
