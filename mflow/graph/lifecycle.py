"""
Edge lifecycle: connecting into occupied ports and cleanup on removal.
"""

from dataclasses import replace
from typing import Callable

from mflow.core.logging import get_logger
from mflow.graph.kinds import Handle, MediaKind, NodeKind
from mflow.graph.model import Edge, Node, edge_style

_log = get_logger(__name__)


def _reset_spectrum(node: Node, edge: Edge) -> dict:
    return {
        'videoPath': None,
        'audioPath': None,
        'audioFile': '',
        'resetKey': int(node.get('resetKey') or 0) + 1,
        'processedPath': None,
        'processedFrom': None,
    }


def _reset_transform(node: Node, edge: Edge) -> dict:
    if edge.target_handle == Handle.DATA_INPUT:
        return {}
    return {'processedPath': None, 'processedFrom': None}


_COMPARISON_FIELDS = {
    Handle.REFERENCE_INPUT: 'referenceVideoPath',
    Handle.TEST_INPUT: 'testVideoPath',
}


def _reset_comparison(node: Node, edge: Edge) -> dict:
    patch = {'vmafScore': None}
    field_name = _COMPARISON_FIELDS.get(edge.target_handle)
    if field_name:
        patch[field_name] = None
    return patch


# Kind -> patch builder applied to the target of a removed edge
CLEANUP_ON_DISCONNECT: dict[NodeKind, Callable[[Node, Edge], dict]] = {
    NodeKind.SPECTRUM_ANALYZER: _reset_spectrum,
    NodeKind.VIDEO_TRIM: _reset_transform,
    NodeKind.AUDIO_TRIM: _reset_transform,
    NodeKind.VIDEO_CONVERT: _reset_transform,
    NodeKind.AUDIO_CONVERT: _reset_transform,
    NodeKind.QUALITY_COMPARE: _reset_comparison,
}


class EdgeLifecycle:
    """
    Applies edge-set changes while keeping at most one edge per input port.

    Both operations return new lists; the inputs are never modified.
    """

    def __init__(self, logger=None):
        self.log = logger or _log

    def connect(self, edges: list[Edge], candidate: Edge) -> list[Edge]:
        """Insert ``candidate``, dropping whatever occupied its target port."""
        kept = []
        for edge in edges:
            if edge.occupies(candidate.target, candidate.target_handle):
                self.log.debug("edge.replaced", removed=edge.id, added=candidate.id,
                               target=candidate.target)
                continue
            if edge.id == candidate.id:
                continue
            kept.append(edge)

        style = edge_style(candidate.source_handle, candidate.target_handle)
        kept.append(replace(candidate, style=style, animated=style is MediaKind.DATA))
        self.log.debug("edge.connected", edge=candidate.id, style=style.value if style else None)
        return kept

    def remove(
        self,
        nodes: list[Node],
        edges: list[Edge],
        edge_id: str,
    ) -> tuple[list[Node], list[Edge]]:
        """
        Remove an edge and run the cleanup hook of its target node's kind.

        Unknown edge ids leave both lists unchanged.
        """
        removed = next((e for e in edges if e.id == edge_id), None)
        if removed is None:
            self.log.debug("edge.remove_unknown", edge=edge_id)
            return nodes, edges

        remaining = [e for e in edges if e.id != edge_id]
        self.log.debug("edge.removed", edge=edge_id, target=removed.target)

        updated = []
        for node in nodes:
            hook = CLEANUP_ON_DISCONNECT.get(node.kind) if node.id == removed.target else None
            patch = hook(node, removed) if hook else {}
            if patch:
                self.log.debug("edge.cleanup", node=node.id, kind=node.kind.value,
                               fields=sorted(patch))
                node = node.with_data(patch)
            updated.append(node)
        return updated, remaining
