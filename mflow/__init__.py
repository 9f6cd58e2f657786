"""
mflow - Media Flow Graph
========================

A graph engine for node-based media workflows: typed ports, connection
rules, automatic propagation of upstream files and parameters, and
orchestration of runs on an external media engine.

Main modules:
- mflow.graph: node kinds, graph model, connection rules, propagation, store
- mflow.execution: engine transports, result types, orchestrator
- mflow.workflows: workflow documents and presets
- mflow.nodes: HTTP API server and command-line runner

Quick start:
    >>> from mflow import GraphStore, Node, Edge, NodeKind
    >>> store = GraphStore()
    >>> source = store.add_node(Node("in1", NodeKind.VIDEO_SOURCE, {"filePath": "clip.mp4"}))
    >>> viewer = store.add_node(Node("view1", NodeKind.VIEWER))
    >>> edge = store.connect(Edge("in1", "view1", "video-output", "video-input"))
    >>> store.get_node("view1").data["videoPath"]
    'clip.mp4'
"""

__version__ = "0.1.0"

from mflow.graph import (
    Edge,
    GraphStore,
    Handle,
    Node,
    NodeKind,
    is_valid_connection,
    propagate,
)
from mflow.execution import (
    ExecutionResult,
    HttpExecutionEngine,
    CommandExecutionEngine,
    PipelineOrchestrator,
)
from mflow.core import Settings, configure_logging

__all__ = [
    "__version__",
    "Edge",
    "GraphStore",
    "Handle",
    "Node",
    "NodeKind",
    "is_valid_connection",
    "propagate",
    "ExecutionResult",
    "HttpExecutionEngine",
    "CommandExecutionEngine",
    "PipelineOrchestrator",
    "Settings",
    "configure_logging",
]
