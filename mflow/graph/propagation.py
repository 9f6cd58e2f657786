"""
Data propagation through the node graph.

After every graph change the whole graph is recomputed: for each edge
the value visible at the target's input is resolved by walking back
through pass-through and transform nodes to a leaf producer, and the
result is written into the target's data.

Propagation rules:

VIDEO
- videoSource: ``filePath`` becomes ``videoPath`` downstream
- videoTrim: forwards its input unchanged
- videoConvert: forwards its input until executed, then its ``processedPath``
- an executed trim or convert keeps forwarding its ``processedPath`` only
  while its input is still the ``processedFrom`` it was rendered from

AUDIO
- same shape over audioSource / audioTrim / audioConvert, written to
  ``audioPath`` and its alias ``audioFile``
- audioSource edges count as audio whatever port they leave from

DATA
- trim nodes' ``data-output`` becomes ``trimParams`` on converters and
  the sequence extractor

COMPARISON
- ``reference-input`` -> ``referenceVideoPath``
- ``test-input`` -> ``testVideoPath``
"""

from typing import Any, Iterator

from mflow.core.errors import GraphCycleError
from mflow.core.logging import get_logger
from mflow.graph.kinds import Handle, MediaKind, NodeKind, NodeRole
from mflow.graph.model import Edge, Node, has_value

_log = get_logger(__name__)

_MEDIA_INPUT = {
    MediaKind.VIDEO: Handle.VIDEO_INPUT,
    MediaKind.AUDIO: Handle.AUDIO_INPUT,
}

_TRIM_DEFAULTS = (('startTime', 0), ('endTime', 60), ('duration', 60))


def _is_defined(value: Any) -> bool:
    if isinstance(value, str):
        return has_value(value)
    return value is not None


def _artifact_for(node: Node, upstream: str | None) -> str | None:
    """
    The execution artifact bound to ``node``, if it was produced from ``upstream``.

    ``processedFrom`` records the input an artifact was made from; once
    the input changes the artifact is stale and ignored. Artifacts
    without a recorded input (older workflow files) are always used.
    """
    processed = node.get('processedPath')
    if not has_value(processed):
        return None
    produced_from = node.get('processedFrom')
    if produced_from is not None and produced_from != upstream:
        return None
    return processed


def find_input_edge(node_id: str, handle: Handle, edges: list[Edge]) -> Edge | None:
    """The edge plugged into ``(node_id, handle)``, if any."""
    return next((e for e in edges if e.target == node_id and e.target_handle == handle), None)


class PropagationEngine:
    """
    Recomputes consumer-side node data from the current graph.

    The engine is stateless; ``propagate`` returns a new node list in
    which nodes without changes are the very same objects that were
    passed in.
    """

    def __init__(self, logger=None):
        self.log = logger or _log

    # -------------------------------------------------------------------------
    # Resolvers
    # -------------------------------------------------------------------------

    def resolve(
        self,
        node: Node,
        media: MediaKind,
        node_map: dict[str, Node],
        edges: list[Edge],
        path: tuple = (),
    ) -> str | None:
        """
        Resolve the ``media`` file visible at ``node``'s primary output.

        Raises:
            GraphCycleError: If the walk returns to a node already on its path
        """
        if node.id in path:
            raise GraphCycleError(node.id)
        if node.kind is None or node.kind.media is not media:
            return None

        role = node.kind.role
        if role is NodeRole.LEAF_PRODUCER:
            file_path = node.get('filePath')
            return file_path if has_value(file_path) else None

        if role in (NodeRole.PASS_THROUGH, NodeRole.TRANSFORM):
            upstream = self.resolve_input(node, media, node_map, edges, path)
            return _artifact_for(node, upstream) or upstream

        return None

    def resolve_input(
        self,
        node: Node,
        media: MediaKind,
        node_map: dict[str, Node],
        edges: list[Edge],
        path: tuple = (),
    ) -> str | None:
        """The ``media`` file arriving on ``node``'s input port."""
        edge = find_input_edge(node.id, _MEDIA_INPUT[media], edges)
        upstream = node_map.get(edge.source) if edge else None
        if upstream is None:
            return None
        return self.resolve(upstream, media, node_map, edges, path + (node.id,))

    def resolve_video(self, node: Node, node_map: dict[str, Node], edges: list[Edge]) -> str | None:
        return self.resolve(node, MediaKind.VIDEO, node_map, edges)

    def resolve_audio(self, node: Node, node_map: dict[str, Node], edges: list[Edge]) -> str | None:
        return self.resolve(node, MediaKind.AUDIO, node_map, edges)

    @staticmethod
    def resolve_params(node: Node) -> dict | None:
        """Trim parameters emitted on a node's ``data-output`` port."""
        if node.kind is None or not node.kind.produces_params:
            return None
        return {key: node.get(key) or default for key, default in _TRIM_DEFAULTS}

    # -------------------------------------------------------------------------
    # Propagation
    # -------------------------------------------------------------------------

    def _audio_into(
        self,
        target: Node,
        source: Node,
        node_map: dict[str, Node],
        edges: list[Edge],
    ) -> str | None:
        # Terminal analyzers keep the audio the engine rendered for them
        # for as long as their input is the one it was rendered from.
        audio = self.resolve_audio(source, node_map, edges)
        if target.kind.role is NodeRole.TERMINAL and target.get('processedFrom') is not None:
            return _artifact_for(target, audio) or audio
        return audio

    def _writes(
        self,
        edge: Edge,
        source: Node,
        target: Node,
        node_map: dict[str, Node],
        edges: list[Edge],
    ) -> Iterator[tuple[str, Any, str]]:
        """Yield ``(field, value, channel)`` for everything ``edge`` carries."""
        if target.kind.is_comparison:
            video = self.resolve_video(source, node_map, edges)
            if edge.target_handle == Handle.REFERENCE_INPUT:
                yield 'referenceVideoPath', video, 'comparison'
            else:
                yield 'testVideoPath', video, 'comparison'
            return

        if edge.source_handle in (None, Handle.VIDEO_OUTPUT):
            if target.kind.consumes_video:
                yield 'videoPath', self.resolve_video(source, node_map, edges), 'video'
        elif edge.source_handle == Handle.AUDIO_OUTPUT:
            if target.kind.consumes_audio:
                audio = self._audio_into(target, source, node_map, edges)
                yield 'audioPath', audio, 'audio'
                yield 'audioFile', audio, 'audio'

        if source.kind is NodeKind.AUDIO_SOURCE and target.kind.consumes_audio:
            audio = self._audio_into(target, source, node_map, edges)
            yield 'audioPath', audio, 'legacy audio'
            yield 'audioFile', audio, 'legacy audio'

        if edge.source_handle == Handle.DATA_OUTPUT and target.kind.consumes_params:
            yield 'trimParams', self.resolve_params(source), 'data'

    def propagate(self, nodes: list[Node], edges: list[Edge]) -> list[Node]:
        """
        Recompute every consumer's input values.

        A field is only overwritten when the resolved value is defined,
        not the unset sentinel, and different from what is stored.
        """
        node_map = {n.id: n for n in nodes}
        patches: dict[str, dict] = {}

        for edge in edges:
            source = node_map.get(edge.source)
            target = node_map.get(edge.target)
            if source is None or target is None or source.kind is None or target.kind is None:
                continue

            pending = patches.setdefault(target.id, {})
            try:
                for field_name, value, channel in self._writes(edge, source, target, node_map, edges):
                    current = pending.get(field_name, target.get(field_name))
                    if not _is_defined(value) or value == current:
                        continue
                    pending[field_name] = value
                    self.log.debug(f"propagation.{channel.replace(' ', '_')}",
                                   source=source.id, target=target.id,
                                   field=field_name, value=value)
            except GraphCycleError as exc:
                self.log.warning("propagation.cycle_detected", edge=edge.id,
                                 target=target.id, node=exc.node_id)

        return [n.with_data(patches[n.id]) if patches.get(n.id) else n for n in nodes]


def propagate(nodes: list[Node], edges: list[Edge], logger=None) -> list[Node]:
    """Convenience wrapper around ``PropagationEngine.propagate``."""
    return PropagationEngine(logger).propagate(nodes, edges)
