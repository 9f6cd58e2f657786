"""
Graph data model: nodes, edges and the "no value" sentinel.
"""

from dataclasses import dataclass, field, replace
from typing import Any

from mflow.graph.kinds import Handle, MediaKind, NodeKind

# Placeholder older editors wrote into unset path fields
NULL_PLACEHOLDER = "$ null"


def has_value(value: Any) -> bool:
    """True if ``value`` is a real string value rather than the unset sentinel."""
    if not isinstance(value, str):
        return False
    stripped = value.strip()
    return stripped != "" and stripped != NULL_PLACEHOLDER


@dataclass
class Node:
    """A graph node. ``kind`` is None when the type name was not recognized."""
    id: str
    kind: NodeKind | None
    data: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict) -> "Node":
        """Build a node from ``{id, type|kind, data}``."""
        kind_name = raw.get('kind', raw.get('type'))
        return cls(
            id=str(raw['id']),
            kind=NodeKind.parse(kind_name),
            data=dict(raw.get('data') or {}),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'type': self.kind.value if self.kind else None,
            'data': dict(self.data),
        }

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def with_data(self, patch: dict) -> "Node":
        """Return a copy with ``patch`` merged over the current data."""
        return replace(self, data={**self.data, **patch})


def tag(handle: Handle | str | None) -> str | None:
    """Plain string form of a port tag."""
    return handle.value if isinstance(handle, Handle) else handle


def edge_style(source_handle, target_handle) -> MediaKind | None:
    """Media kind an edge carries, judged from its port tags (cosmetic only)."""
    tags = [tag(h) for h in (source_handle, target_handle) if h]
    for media in (MediaKind.VIDEO, MediaKind.AUDIO, MediaKind.DATA):
        if any(media.value in t for t in tags):
            return media
    return None


@dataclass
class Edge:
    """A directed connection from an output port to an input port."""
    source: str
    target: str
    source_handle: Handle | str | None = None
    target_handle: Handle | str | None = None
    id: str = ""
    style: MediaKind | None = None
    animated: bool = False

    def __post_init__(self):
        self.source_handle = Handle.parse(self.source_handle)
        self.target_handle = Handle.parse(self.target_handle)
        if not self.id:
            self.id = (f"xy-edge__{self.source}{tag(self.source_handle) or ''}"
                       f"-{self.target}{tag(self.target_handle) or ''}")

    @classmethod
    def from_dict(cls, raw: dict) -> "Edge":
        """
        Build an edge from either editor format (source/target/sourceHandle/
        targetHandle) or engine format (from/to/fromHandle/toHandle).
        """
        return cls(
            id=str(raw.get('id') or ''),
            source=str(raw['source'] if 'source' in raw else raw['from']),
            target=str(raw['target'] if 'target' in raw else raw['to']),
            source_handle=raw.get('sourceHandle', raw.get('fromHandle')),
            target_handle=raw.get('targetHandle', raw.get('toHandle')),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'source': self.source,
            'target': self.target,
            'sourceHandle': tag(self.source_handle),
            'targetHandle': tag(self.target_handle),
            'style': self.style.value if self.style else None,
            'animated': self.animated,
        }

    def occupies(self, target: str, target_handle) -> bool:
        """True if this edge plugs into ``(target, target_handle)``."""
        return self.target == target and self.target_handle == Handle.parse(target_handle)


@dataclass
class Pipeline:
    """The ``{nodes, edges}`` pair handed to the execution orchestrator."""
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    def node_map(self) -> dict[str, Node]:
        return {n.id: n for n in self.nodes}

    def to_dict(self) -> dict:
        return {
            'nodes': [n.to_dict() for n in self.nodes],
            'edges': [e.to_dict() for e in self.edges],
        }
