"""
Tests for pipeline validation, serialization, merging and execution.
"""

import asyncio

import pytest

from mflow.core.errors import EngineError
from mflow.execution import (
    ExecutionResult,
    ExecutionState,
    PipelineOrchestrator,
    merge_results,
    serialize_pipeline,
    validate_pipeline,
)
from mflow.execution.orchestrator import BUSY_MESSAGE, NO_INPUT_MESSAGE
from mflow.graph import Edge, GraphStore, Node, NodeKind

from conftest import FakeEngine


class TestValidate:
    def test_terminal_only_is_invalid(self):
        result = validate_pipeline([Node("v", NodeKind.VIEWER, {"videoPath": "x.mp4"})])
        assert result.is_valid is False
        assert result.message == NO_INPUT_MESSAGE

    def test_audio_leaf(self):
        result = validate_pipeline([Node("a", NodeKind.AUDIO_SOURCE, {"filePath": "x.mp3"})])
        assert result.is_valid is True
        assert result.message is None

    def test_unset_leaf(self):
        result = validate_pipeline([Node("a", NodeKind.VIDEO_SOURCE, {"filePath": "$ null"})])
        assert result.is_valid is False

    def test_pass_through_with_input(self):
        result = validate_pipeline([Node("t", NodeKind.VIDEO_TRIM, {"videoPath": "x.mp4"})])
        assert result.is_valid is True

    def test_empty(self):
        assert validate_pipeline([]).to_dict() == {"isValid": False, "message": NO_INPUT_MESSAGE}


class TestSerialize:
    def test_handle_defaults(self):
        nodes = [Node("a", NodeKind.VIDEO_SOURCE, {"filePath": "a.mp4"}), Node("v", NodeKind.VIEWER)]
        request = serialize_pipeline(nodes, [Edge("a", "v", id="c1")])
        assert request["nodes"][0] == {"id": "a", "type": "videoSource", "data": {"filePath": "a.mp4"}}
        assert request["connections"] == [{
            "id": "c1", "from": "a", "to": "v",
            "fromHandle": "video-output", "toHandle": "video-input",
        }]

    def test_explicit_handles(self):
        nodes = [Node("t", NodeKind.VIDEO_TRIM), Node("c", NodeKind.VIDEO_CONVERT)]
        request = serialize_pipeline(nodes, [Edge("t", "c", "data-output", "data-input", id="d")])
        assert request["connections"][0]["fromHandle"] == "data-output"
        assert request["connections"][0]["toHandle"] == "data-input"


class TestMerge:
    """Tests for binding results into node data."""

    def test_failed_result_changes_nothing(self, video_chain):
        nodes, edges = video_chain
        merged = merge_results(nodes, edges, ExecutionResult.failure("boom"))
        assert all(a is b for a, b in zip(nodes, merged))

    def test_convert_and_viewer(self, video_chain):
        nodes, edges = video_chain
        result = ExecutionResult.from_response({
            "success": True, "message": "done",
            "outputs": {"t": {"path": "b.mp4", "format": "mp4"}},
        })
        merged = {n.id: n for n in merge_results(nodes, edges, result)}
        assert merged["t"].data["processedPath"] == "b.mp4"
        assert merged["v"].data["videoPath"] == "b.mp4"

    def test_viewer_on_leaf_uses_file(self):
        nodes = [Node("a", NodeKind.VIDEO_SOURCE, {"filePath": "a.mp4"}), Node("v", NodeKind.GRID_VIEWER)]
        edges = [Edge("a", "v", "video-output", "video-input")]
        merged = merge_results(nodes, edges, ExecutionResult(success=True))
        assert merged[1].data["videoPath"] == "a.mp4"

    def test_quality_and_spectrum(self):
        nodes = [
            Node("q", NodeKind.QUALITY_COMPARE, {"isAnalyzing": True}),
            Node("s", NodeKind.SPECTRUM_ANALYZER, {"isProcessing": True}),
            Node("ac", NodeKind.AUDIO_CONVERT, {}),
        ]
        result = ExecutionResult.from_response({
            "success": True,
            "outputs": {},
            "vmaf_results": {"q": {"mean": 93.5, "min": 80.0, "max": 99.0,
                                   "harmonic_mean": 92.8, "frame_count": 240}},
            "audio_outputs": {
                "s": {"path": "s.wav", "format": "wav", "duration": 3.5},
                "ac": {"path": "out.mp3", "format": "mp3", "sampleRate": 44100},
            },
        })
        merged = {n.id: n for n in merge_results(nodes, [], result)}
        assert merged["q"].data["vmafScore"]["mean"] == 93.5
        assert merged["q"].data["isAnalyzing"] is False
        assert merged["s"].data["audioPath"] == "s.wav"
        assert merged["s"].data["audioFile"] == "s.wav"
        assert merged["s"].data["isProcessing"] is False
        assert merged["ac"].data["processedPath"] == "out.mp3"


class TestResponseParsing:
    def test_missing_success(self):
        with pytest.raises(EngineError):
            ExecutionResult.from_response({"message": "?"})

    def test_not_an_object(self):
        with pytest.raises(EngineError):
            ExecutionResult.from_response(["success"])

    def test_bad_artifact(self):
        with pytest.raises(EngineError):
            ExecutionResult.from_response({"success": True, "outputs": {"t": {"format": "mp4"}}})


class TestPipelineOrchestrator:
    """Tests for execution through a fake engine."""

    @pytest.mark.asyncio
    async def test_success_updates_chain(self, video_chain):
        nodes, edges = video_chain
        engine = FakeEngine({"success": True, "message": "ok",
                             "outputs": {"t": {"path": "b.mp4"}}})
        store = GraphStore(nodes, edges)
        result = await PipelineOrchestrator(engine).run(store)
        assert result.success
        assert store.get_node("v").data["videoPath"] == "b.mp4"
        assert store.get_node("t").data["processedPath"] == "b.mp4"
        assert engine.requests[0]["connections"][0]["from"] == "a"

    @pytest.mark.asyncio
    async def test_invalid_pipeline_skips_engine(self):
        engine = FakeEngine()
        orchestrator = PipelineOrchestrator(engine)
        result = await orchestrator.execute([Node("v", NodeKind.VIEWER)], [])
        assert result.success is False
        assert result.message == NO_INPUT_MESSAGE
        assert engine.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("engine", [
        FakeEngine(error=EngineError("connection refused")),
        FakeEngine(error=RuntimeError("unexpected")),
        FakeEngine({"success": False, "message": "ffmpeg crashed"}),
        FakeEngine({"outputs": {}}),
    ])
    async def test_failures_leave_graph_unchanged(self, video_chain, engine):
        nodes, edges = video_chain
        store = GraphStore(nodes, edges)
        before = [n.data for n in store.nodes]
        result = await PipelineOrchestrator(engine).run(store)
        assert result.success is False
        assert result.outputs == {}
        assert [n.data for n in store.nodes] == before

    @pytest.mark.asyncio
    async def test_failure_messages(self, video_chain):
        nodes, edges = video_chain
        result = await PipelineOrchestrator(FakeEngine(error=EngineError("refused"))).execute(nodes, edges)
        assert result.message == "Execution failed: refused"
        result = await PipelineOrchestrator(
            FakeEngine({"success": False, "message": "ffmpeg crashed"})).execute(nodes, edges)
        assert result.message == "ffmpeg crashed"

    @pytest.mark.asyncio
    async def test_reject_while_busy(self, video_chain):
        nodes, edges = video_chain
        gate = asyncio.Event()
        engine = FakeEngine(gate=gate)
        orchestrator = PipelineOrchestrator(engine, policy="reject")

        first = asyncio.create_task(orchestrator.execute(nodes, edges))
        await engine.started.wait()
        assert orchestrator.state is ExecutionState.EXECUTING

        second = await orchestrator.execute(nodes, edges)
        assert second.success is False
        assert second.message == BUSY_MESSAGE

        gate.set()
        assert (await first).success is True
        assert orchestrator.state is ExecutionState.IDLE
        assert len(engine.requests) == 1

    @pytest.mark.asyncio
    async def test_queue_while_busy(self, video_chain):
        nodes, edges = video_chain
        gate = asyncio.Event()
        engine = FakeEngine(gate=gate)
        orchestrator = PipelineOrchestrator(engine, policy="queue")

        first = asyncio.create_task(orchestrator.execute(nodes, edges))
        await engine.started.wait()
        second = asyncio.create_task(orchestrator.execute(nodes, edges))
        await asyncio.sleep(0)
        assert len(engine.requests) == 1

        gate.set()
        results = await asyncio.gather(first, second)
        assert all(r.success for r in results)
        assert len(engine.requests) == 2

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            PipelineOrchestrator(FakeEngine(), policy="parallel")


class TestRunKeepsArtifacts:
    """Tests for results merged through ``run(store)`` surviving re-propagation."""

    @pytest.fixture
    def full_chain(self):
        nodes = [
            Node("a", NodeKind.VIDEO_SOURCE, {"filePath": "a.mp4"}),
            Node("trim", NodeKind.VIDEO_TRIM, {"startTime": 5}),
            Node("t", NodeKind.VIDEO_CONVERT, {}),
            Node("v", NodeKind.VIEWER, {}),
        ]
        edges = [
            Edge("a", "trim", "video-output", "video-input", id="e1"),
            Edge("trim", "t", "video-output", "video-input", id="e2"),
            Edge("trim", "t", "data-output", "data-input", id="e2d"),
            Edge("t", "v", "video-output", "video-input", id="e3"),
        ]
        return GraphStore(nodes, edges)

    @pytest.mark.asyncio
    async def test_full_chain(self, full_chain):
        store = full_chain
        assert store.get_node("t").data["videoPath"] == "a.mp4"
        assert store.get_node("t").data["trimParams"]["startTime"] == 5
        assert store.get_node("v").data["videoPath"] == "a.mp4"

        engine = FakeEngine({"success": True, "outputs": {"t": {"path": "b.mp4"}}})
        result = await PipelineOrchestrator(engine).run(store)

        assert result.success
        assert store.get_node("trim").data.get("processedPath") is None
        assert store.get_node("t").data["videoPath"] == "a.mp4"
        assert store.get_node("v").data["videoPath"] == "b.mp4"

    @pytest.mark.asyncio
    async def test_trim_artifact_reaches_viewer(self):
        store = GraphStore(
            [Node("a", NodeKind.VIDEO_SOURCE, {"filePath": "a.mp4"}),
             Node("trim", NodeKind.VIDEO_TRIM, {}),
             Node("v", NodeKind.VIEWER, {})],
            [Edge("a", "trim", "video-output", "video-input"),
             Edge("trim", "v", "video-output", "video-input")],
        )
        engine = FakeEngine({"success": True, "outputs": {"trim": {"path": "trimmed.mp4"}}})
        await PipelineOrchestrator(engine).run(store)

        assert store.get_node("v").data["videoPath"] == "trimmed.mp4"
        assert store.get_node("trim").data["processedFrom"] == "a.mp4"

    @pytest.mark.asyncio
    async def test_artifacts_on_trim_and_convert(self, full_chain):
        store = full_chain
        engine = FakeEngine({"success": True, "outputs": {
            "trim": {"path": "trimmed.mp4"},
            "t": {"path": "converted.mp4"},
        }})
        await PipelineOrchestrator(engine).run(store)

        assert store.get_node("t").data["videoPath"] == "trimmed.mp4"
        assert store.get_node("t").data["processedFrom"] == "trimmed.mp4"
        assert store.get_node("v").data["videoPath"] == "converted.mp4"

    @pytest.mark.asyncio
    async def test_spectrum_artifact_survives_edits(self):
        store = GraphStore(
            [Node("a", NodeKind.AUDIO_SOURCE, {"filePath": "song.wav"}),
             Node("s", NodeKind.SPECTRUM_ANALYZER, {"isProcessing": True})],
            [Edge("a", "s", "audio-output", "audio-input")],
        )
        engine = FakeEngine({"success": True, "outputs": {},
                             "audio_outputs": {"s": {"path": "spectrum.wav"}}})
        await PipelineOrchestrator(engine).run(store)

        spectrum = store.get_node("s")
        assert spectrum.data["audioPath"] == "spectrum.wav"
        assert spectrum.data["audioFile"] == "spectrum.wav"
        assert spectrum.data["isProcessing"] is False

        store.update_node_data("s", {"barCount": 32})
        assert store.get_node("s").data["audioPath"] == "spectrum.wav"

        store.update_node_data("a", {"filePath": "other.wav"})
        assert store.get_node("s").data["audioPath"] == "other.wav"

    @pytest.mark.asyncio
    async def test_new_input_file_drops_stale_artifact(self, video_chain):
        nodes, edges = video_chain
        store = GraphStore(nodes, edges)
        engine = FakeEngine({"success": True, "outputs": {"t": {"path": "b.mp4"}}})
        await PipelineOrchestrator(engine).run(store)
        assert store.get_node("v").data["videoPath"] == "b.mp4"

        store.update_node_data("a", {"filePath": "new.mp4"})
        assert store.get_node("t").data["videoPath"] == "new.mp4"
        assert store.get_node("v").data["videoPath"] == "new.mp4"

        store.update_node_data("a", {"filePath": "a.mp4"})
        assert store.get_node("v").data["videoPath"] == "b.mp4"

    @pytest.mark.asyncio
    async def test_full_chain_input_change_after_run(self, full_chain):
        store = full_chain
        engine = FakeEngine({"success": True, "outputs": {
            "trim": {"path": "trimmed.mp4"},
            "t": {"path": "converted.mp4"},
        }})
        await PipelineOrchestrator(engine).run(store)

        store.update_node_data("a", {"filePath": "new.mp4"})
        assert store.get_node("t").data["videoPath"] == "new.mp4"
        assert store.get_node("v").data["videoPath"] == "new.mp4"
