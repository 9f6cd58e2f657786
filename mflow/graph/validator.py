"""
Connection validation.

``is_valid_connection`` decides whether an editor may offer a candidate
edge. It never raises; every decision is logged so rejected drags can
be diagnosed.
"""

from typing import Iterable, Mapping

from mflow.core.logging import get_logger
from mflow.graph.kinds import Handle, NodeKind
from mflow.graph.model import Edge, Node, tag

_log = get_logger(__name__)


def _node_lookup(nodes: Iterable[Node] | Mapping[str, Node]) -> Mapping[str, Node]:
    if isinstance(nodes, Mapping):
        return nodes
    return {n.id: n for n in nodes}


def _audio_rule(src: NodeKind, dst: NodeKind) -> bool:
    return src.produces_audio and dst.consumes_audio


def _video_rule(src: NodeKind, dst: NodeKind) -> bool:
    return src.produces_video and dst.consumes_video


def _data_rule(src: NodeKind, dst: NodeKind) -> bool:
    return True


def _comparison_rule(src: NodeKind, dst: NodeKind) -> bool:
    return src.produces_video and dst.is_comparison


def _legacy_audio_rule(src: NodeKind, dst: NodeKind) -> bool:
    # Audio inputs wired through their video-shaped port
    return src is NodeKind.AUDIO_SOURCE and dst.consumes_audio


# Evaluated in order; the first row whose tags match decides.
COMPATIBILITY_TABLE = [
    (Handle.AUDIO_OUTPUT, Handle.AUDIO_INPUT, _audio_rule, "audio"),
    (Handle.VIDEO_OUTPUT, Handle.VIDEO_INPUT, _video_rule, "video"),
    (Handle.DATA_OUTPUT, Handle.DATA_INPUT, _data_rule, "data"),
    (Handle.VIDEO_OUTPUT, Handle.REFERENCE_INPUT, _comparison_rule, "comparison"),
    (Handle.VIDEO_OUTPUT, Handle.TEST_INPUT, _comparison_rule, "comparison"),
    (Handle.VIDEO_OUTPUT, Handle.AUDIO_INPUT, _legacy_audio_rule, "legacy audio"),
]


def is_valid_connection(candidate: Edge, nodes, logger=None) -> bool:
    """
    Check whether ``candidate`` may be created.

    Args:
        candidate: Proposed edge (its id is ignored)
        nodes: Node list or id -> Node mapping
        logger: Optional structlog logger receiving the decision

    Returns:
        True if the port tags and node kinds are compatible
    """
    log = logger or _log
    lookup = _node_lookup(nodes)
    source = lookup.get(candidate.source)
    target = lookup.get(candidate.target)
    src_tag = tag(candidate.source_handle)
    dst_tag = tag(candidate.target_handle)

    if source is None or target is None:
        log.debug("connection.rejected", reason="missing node",
                  source=candidate.source, target=candidate.target)
        return False

    if source.kind is None or target.kind is None:
        log.debug("connection.rejected", reason="unrecognized kind",
                  source=source.id, target=target.id)
        return False

    if not candidate.source_handle or not candidate.target_handle:
        log.warning("connection.accepted_without_handles",
                    source=source.id, target=target.id,
                    source_handle=src_tag, target_handle=dst_tag)
        return True

    for out_handle, in_handle, rule, label in COMPATIBILITY_TABLE:
        if candidate.source_handle != out_handle or candidate.target_handle != in_handle:
            continue
        if rule(source.kind, target.kind):
            log.debug("connection.accepted", rule=label,
                      source_kind=source.kind.value, target_kind=target.kind.value)
            return True
        log.debug("connection.rejected", rule=label, reason="incompatible node kinds",
                  source_kind=source.kind.value, target_kind=target.kind.value)
        return False

    log.debug("connection.rejected", reason="incompatible ports",
              source_kind=source.kind.value, source_handle=src_tag,
              target_kind=target.kind.value, target_handle=dst_tag)
    return False
