"""
Exception types shared across the mflow packages.
"""


class MflowError(Exception):
    """Base class for all mflow errors."""


class EngineError(MflowError):
    """The external execution engine could not be reached or answered badly."""


class GraphCycleError(MflowError):
    """A resolver walked back into a node already on its path."""

    def __init__(self, node_id: str):
        super().__init__(f"Cycle detected at node '{node_id}'")
        self.node_id = node_id


class NodeNotFoundError(MflowError, KeyError):
    """A graph edit referenced a node id that is not in the store."""

    def __init__(self, node_id: str):
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"Node not found: {self.node_id}"


class WorkflowError(MflowError, ValueError):
    """A workflow document could not be parsed."""
