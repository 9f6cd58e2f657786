"""
Tests for GraphStore.
"""

import threading

import pytest

from mflow.core.errors import NodeNotFoundError
from mflow.graph import Edge, GraphStore, Node, NodeKind


@pytest.fixture
def store():
    store = GraphStore()
    store.add_node(Node("in1", NodeKind.VIDEO_SOURCE, {"filePath": "clip.mp4"}))
    store.add_node(Node("view1", NodeKind.VIEWER))
    return store


class TestGraphStore:
    """Tests for validated edits and automatic propagation."""

    def test_connect_propagates(self, store):
        edge = store.connect(Edge("in1", "view1", "video-output", "video-input"))
        assert edge is not None
        assert edge.style.value == "video"
        assert store.get_node("view1").data["videoPath"] == "clip.mp4"

    def test_rejected_connect(self, store):
        assert store.connect(Edge("view1", "in1", "video-output", "video-input")) is None
        assert store.edges == []

    def test_reconnect_replaces(self, store):
        store.add_node(Node("in2", NodeKind.VIDEO_SOURCE, {"filePath": "other.mp4"}))
        store.connect(Edge("in1", "view1", "video-output", "video-input"))
        store.connect(Edge("in2", "view1", "video-output", "video-input"))
        assert len(store.edges) == 1
        assert store.get_node("view1").data["videoPath"] == "other.mp4"

    def test_update_node_data_repropagates(self, store):
        store.connect(Edge("in1", "view1", "video-output", "video-input"))
        store.update_node_data("in1", {"filePath": "new.mp4"})
        assert store.get_node("view1").data["videoPath"] == "new.mp4"

    def test_disconnect(self, store):
        edge = store.connect(Edge("in1", "view1", "video-output", "video-input"))
        assert store.disconnect(edge.id) is True
        assert store.disconnect(edge.id) is False
        assert store.edges == []

    def test_remove_node_removes_edges(self, store):
        store.connect(Edge("in1", "view1", "video-output", "video-input"))
        store.remove_node("in1")
        assert "in1" not in store
        assert store.edges == []
        assert len(store) == 1

    def test_remove_node_runs_cleanup(self):
        store = GraphStore()
        store.add_node(Node("a", NodeKind.AUDIO_SOURCE, {"filePath": "song.wav"}))
        store.create_node(NodeKind.SPECTRUM_ANALYZER, node_id="s")
        store.connect(Edge("a", "s", "audio-output", "audio-input"))
        assert store.get_node("s").data["audioPath"] == "song.wav"
        store.remove_node("a")
        assert store.get_node("s").data["audioPath"] is None
        assert store.get_node("s").data["resetKey"] == 1

    def test_create_node_defaults(self):
        store = GraphStore()
        node = store.create_node(NodeKind.VIDEO_TRIM, {"startTime": 3})
        assert node.id == "videoTrim-1"
        assert node.data == {"startTime": 3, "endTime": 60, "duration": 60}
        assert store.create_node(NodeKind.VIDEO_TRIM).id == "videoTrim-2"

    def test_duplicate_node(self, store):
        with pytest.raises(ValueError):
            store.add_node(Node("in1", NodeKind.VIEWER))

    def test_unknown_node(self, store):
        with pytest.raises(NodeNotFoundError) as exc_info:
            store.get_node("ghost")
        assert str(exc_info.value) == "Node not found: ghost"
        with pytest.raises(KeyError):
            store.update_node_data("ghost", {})

    def test_can_connect_does_not_modify(self, store):
        assert store.can_connect(Edge("in1", "view1", "video-output", "video-input"))
        assert store.edges == []

    def test_replace_propagates(self):
        store = GraphStore(
            [Node("in1", NodeKind.VIDEO_SOURCE, {"filePath": "clip.mp4"}), Node("v", NodeKind.VIEWER)],
            [Edge("in1", "v", "video-output", "video-input")],
        )
        assert store.get_node("v").data["videoPath"] == "clip.mp4"

    def test_apply(self, store):
        store.connect(Edge("in1", "view1", "video-output", "video-input"))
        store.apply(lambda nodes, edges: [
            n.with_data({"filePath": "merged.mp4"}) if n.id == "in1" else n for n in nodes
        ])
        assert store.get_node("view1").data["videoPath"] == "merged.mp4"

    def test_snapshot_is_a_copy(self, store):
        snapshot = store.snapshot()
        store.add_node(Node("extra", NodeKind.VIEWER))
        assert len(snapshot.nodes) == 2

    def test_len_waits_for_edit(self, store):
        sizes = []
        reader = threading.Thread(target=lambda: sizes.append(len(store)))

        def add_extra(nodes, edges):
            reader.start()
            reader.join(timeout=0.2)
            assert reader.is_alive()
            return nodes + [Node("extra", NodeKind.VIEWER)]

        store.apply(add_extra)
        reader.join(timeout=5)
        assert sizes == [3]
