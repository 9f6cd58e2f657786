"""
Graph module - node kinds, the graph model, connection rules and propagation.
"""

from mflow.graph.kinds import (
    Handle,
    MediaKind,
    NodeKind,
    NodeRole,
    NodeDefinition,
    NODE_DEFINITIONS,
    get_nodes_json,
)
from mflow.graph.model import Node, Edge, Pipeline, NULL_PLACEHOLDER, has_value
from mflow.graph.validator import is_valid_connection
from mflow.graph.lifecycle import EdgeLifecycle
from mflow.graph.propagation import PropagationEngine, propagate
from mflow.graph.store import GraphStore

__all__ = [
    "Handle",
    "MediaKind",
    "NodeKind",
    "NodeRole",
    "NodeDefinition",
    "NODE_DEFINITIONS",
    "get_nodes_json",
    "Node",
    "Edge",
    "Pipeline",
    "NULL_PLACEHOLDER",
    "has_value",
    "is_valid_connection",
    "EdgeLifecycle",
    "PropagationEngine",
    "propagate",
    "GraphStore",
]
