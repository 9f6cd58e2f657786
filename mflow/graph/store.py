"""
The graph store: single owner of the node and edge sets.

All edits go through one re-entrant lock. Each edit is applied in full
and then the graph is re-propagated inside the same critical section,
so readers never see an edge set without its propagated node data.
"""

import threading
from typing import Callable, Iterable

from mflow.core.errors import NodeNotFoundError
from mflow.core.logging import get_logger
from mflow.graph.kinds import NodeKind
from mflow.graph.lifecycle import EdgeLifecycle
from mflow.graph.model import Edge, Node, Pipeline
from mflow.graph.propagation import PropagationEngine
from mflow.graph.validator import is_valid_connection

_log = get_logger(__name__)


class GraphStore:
    """
    Mutable graph with validated connections and automatic propagation.

    Example:
        >>> store = GraphStore()
        >>> source = store.add_node(Node("in1", NodeKind.VIDEO_SOURCE, {"filePath": "clip.mp4"}))
        >>> viewer = store.add_node(Node("view1", NodeKind.VIEWER))
        >>> edge = store.connect(Edge("in1", "view1", "video-output", "video-input"))
        >>> store.get_node("view1").data["videoPath"]
        'clip.mp4'
    """

    def __init__(
        self,
        nodes: Iterable[Node] = (),
        edges: Iterable[Edge] = (),
        logger=None,
    ):
        self.log = logger or _log
        self.lifecycle = EdgeLifecycle(self.log)
        self.propagation = PropagationEngine(self.log)
        self._lock = threading.RLock()
        self._nodes: list[Node] = []
        self._edges: list[Edge] = []
        self._counter = 0
        self.replace(nodes, edges)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @property
    def nodes(self) -> list[Node]:
        with self._lock:
            return list(self._nodes)

    @property
    def edges(self) -> list[Edge]:
        with self._lock:
            return list(self._edges)

    def snapshot(self) -> Pipeline:
        """Consistent copy of the current nodes and edges."""
        with self._lock:
            return Pipeline(nodes=list(self._nodes), edges=list(self._edges))

    def get_node(self, node_id: str) -> Node:
        with self._lock:
            for node in self._nodes:
                if node.id == node_id:
                    return node
        raise NodeNotFoundError(node_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        with self._lock:
            return any(n.id == node_id for n in self._nodes)

    # -------------------------------------------------------------------------
    # Edits
    # -------------------------------------------------------------------------

    def _settle(self) -> None:
        # Caller holds the lock
        self._nodes = self.propagation.propagate(self._nodes, self._edges)

    def _next_id(self, kind: NodeKind) -> str:
        while True:
            self._counter += 1
            candidate = f"{kind.value}-{self._counter}"
            if candidate not in self:
                return candidate

    def replace(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        """Swap in a whole graph (e.g. a loaded workflow)."""
        with self._lock:
            self._nodes = list(nodes)
            self._edges = []
            for edge in edges:
                self._edges = self.lifecycle.connect(self._edges, edge)
            self._settle()

    def add_node(self, node: Node) -> Node:
        """Add a node; raises ValueError if its id is taken."""
        with self._lock:
            if node.id in self:
                raise ValueError(f"Duplicate node id: {node.id}")
            self._nodes.append(node)
            self._settle()
            self.log.debug("graph.node_added", node=node.id,
                           kind=node.kind.value if node.kind else None)
            return self.get_node(node.id)

    def create_node(self, kind: NodeKind, data: dict | None = None, node_id: str | None = None) -> Node:
        """Add a node of ``kind`` with its default data merged under ``data``."""
        with self._lock:
            node = Node(node_id or self._next_id(kind), kind, {**kind.default_data(), **(data or {})})
            return self.add_node(node)

    def update_node_data(self, node_id: str, patch: dict) -> Node:
        """Merge ``patch`` into a node's data and re-propagate."""
        with self._lock:
            self.get_node(node_id)
            self._nodes = [n.with_data(patch) if n.id == node_id else n for n in self._nodes]
            self._settle()
            self.log.debug("graph.node_updated", node=node_id, fields=sorted(patch))
            return self.get_node(node_id)

    def remove_node(self, node_id: str) -> None:
        """Remove a node together with every edge touching it."""
        with self._lock:
            self.get_node(node_id)
            for edge in [e for e in self._edges if node_id in (e.source, e.target)]:
                self._nodes, self._edges = self.lifecycle.remove(self._nodes, self._edges, edge.id)
            self._nodes = [n for n in self._nodes if n.id != node_id]
            self._settle()
            self.log.debug("graph.node_removed", node=node_id)

    def can_connect(self, candidate: Edge) -> bool:
        with self._lock:
            return is_valid_connection(candidate, self._nodes, logger=self.log)

    def connect(self, candidate: Edge) -> Edge | None:
        """
        Validate and insert an edge, replacing any edge on the same input port.

        Returns:
            The stored edge, or None if the connection was rejected
        """
        with self._lock:
            if not self.can_connect(candidate):
                return None
            self._edges = self.lifecycle.connect(self._edges, candidate)
            self._settle()
            return next(e for e in self._edges if e.id == candidate.id)

    def disconnect(self, edge_id: str) -> bool:
        """Remove an edge; returns False if no such edge exists."""
        with self._lock:
            if not any(e.id == edge_id for e in self._edges):
                return False
            self._nodes, self._edges = self.lifecycle.remove(self._nodes, self._edges, edge_id)
            self._settle()
            return True

    def apply(self, transform: Callable[[list[Node], list[Edge]], list[Node]]) -> list[Node]:
        """
        Replace node data with ``transform(nodes, edges)`` and re-propagate.

        Used to merge execution results into the graph as it is *now*,
        which may differ from the snapshot that was executed.
        """
        with self._lock:
            self._nodes = list(transform(list(self._nodes), list(self._edges)))
            self._settle()
            return list(self._nodes)
