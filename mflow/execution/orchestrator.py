"""
Pipeline execution orchestration.

Validates that a graph has something to process, serializes it for the
external engine, awaits the engine and merges the returned artifacts
into node data. A failed run never changes node data.

Result merging:
- qualityCompare   <- vmaf_results[node]          (vmafScore)
- spectrumAnalyzer <- audio_outputs[node].path    (audioPath, audioFile, processedPath)
- video trim/convert <- outputs[node].path        (processedPath, processedFrom)
- audio trim/convert <- audio_outputs / outputs   (processedPath, processedFrom)
- viewer, gridViewer, videoInfo
                   <- outputs[upstream].path, or the upstream file
                      when the upstream node is a leaf producer
"""

import asyncio
from enum import Enum

from mflow.core.errors import EngineError, GraphCycleError
from mflow.core.logging import get_logger
from mflow.execution.engine import ExecutionEngine
from mflow.execution.results import ExecutionResult, ValidationResult
from mflow.graph.kinds import DISPLAY_KINDS, Handle, MediaKind, NodeKind, NodeRole
from mflow.graph.model import Edge, Node, Pipeline, has_value, tag
from mflow.graph.propagation import PropagationEngine
from mflow.graph.store import GraphStore

_log = get_logger(__name__)

NO_INPUT_MESSAGE = (
    "Please select at least one input file (video or audio) before executing the pipeline."
)
BUSY_MESSAGE = "An execution is already in progress"


class ExecutionState(Enum):
    IDLE = "idle"
    EXECUTING = "executing"


def validate_pipeline(nodes: list[Node]) -> ValidationResult:
    """A pipeline is runnable once any input node exposes a real file."""
    for node in nodes:
        if node.kind is None:
            continue
        if node.kind.role is NodeRole.LEAF_PRODUCER and has_value(node.get('filePath')):
            return ValidationResult(True)
        if node.kind.role is NodeRole.PASS_THROUGH and (
            has_value(node.get('videoPath')) or has_value(node.get('audioPath'))
        ):
            return ValidationResult(True)
    return ValidationResult(False, NO_INPUT_MESSAGE)


def serialize_pipeline(nodes: list[Node], edges: list[Edge]) -> dict:
    """Build the engine request body."""
    return {
        'nodes': [n.to_dict() for n in nodes],
        'connections': [
            {
                'id': e.id,
                'from': e.source,
                'to': e.target,
                'fromHandle': tag(e.source_handle) or Handle.VIDEO_OUTPUT.value,
                'toHandle': tag(e.target_handle) or Handle.VIDEO_INPUT.value,
            }
            for e in edges
        ],
    }


def _display_binding(node: Node, node_map: dict[str, Node], edges: list[Edge],
                     result: ExecutionResult) -> str | None:
    inbound = next((e for e in edges if e.target == node.id), None)
    source = node_map.get(inbound.source) if inbound else None
    if source is None:
        return None
    artifact = result.outputs.get(source.id)
    if artifact is not None:
        return artifact.path
    if source.kind is not None and source.kind.role is NodeRole.LEAF_PRODUCER:
        file_path = source.get('filePath')
        return file_path if has_value(file_path) else None
    return None


def _artifact_path(node: Node, result: ExecutionResult) -> str | None:
    """Path of the artifact the engine rendered for ``node`` itself."""
    kind = node.kind
    if kind is NodeKind.SPECTRUM_ANALYZER:
        artifact = result.audio_outputs.get(node.id)
    elif kind.role in (NodeRole.PASS_THROUGH, NodeRole.TRANSFORM):
        artifact = result.outputs.get(node.id)
        if kind.media is MediaKind.AUDIO:
            artifact = result.audio_outputs.get(node.id) or artifact
    else:
        return None
    return artifact.path if artifact is not None else None


def _produced_from(executed: Pipeline, produced: dict[str, str]) -> dict[str, str | None]:
    """
    Input each artifact was rendered from.

    Inputs are resolved on the executed graph with this run's artifacts
    in place, so a convert downstream of an executed trim records the
    trimmed file rather than the original one.
    """
    view = [
        n.with_data({'processedPath': produced[n.id], 'processedFrom': None})
        if n.id in produced else n
        for n in executed.nodes
    ]
    node_map = {n.id: n for n in view}
    resolver = PropagationEngine()

    sources = {}
    for node_id in produced:
        node = node_map[node_id]
        try:
            sources[node_id] = resolver.resolve_input(node, node.kind.media, node_map, executed.edges)
        except GraphCycleError:
            sources[node_id] = None
    return sources


def merge_results(
    nodes: list[Node],
    edges: list[Edge],
    result: ExecutionResult,
    executed: Pipeline | None = None,
) -> list[Node]:
    """
    Bind a successful result's artifacts into node data.

    Trims, converts and the spectrum analyzer record their artifact as
    ``processedPath`` together with the input it was rendered from
    (``processedFrom``), so propagation keeps forwarding it until that
    input changes.

    Args:
        nodes, edges: Graph to merge into
        result: Engine result
        executed: Graph that was sent to the engine (default: ``nodes``/``edges``)

    Nodes with nothing to bind are returned unchanged (same object).
    """
    if not result.success:
        return list(nodes)
    if executed is None:
        executed = Pipeline(list(nodes), list(edges))

    produced = {}
    for node in executed.nodes:
        if node.kind is None:
            continue
        path = _artifact_path(node, result)
        if path:
            produced[node.id] = path
    sources = _produced_from(executed, produced)

    node_map = {n.id: n for n in nodes}
    merged = []
    for node in nodes:
        patch = {}
        kind = node.kind

        if node.id in produced and kind is not None:
            patch = {'processedPath': produced[node.id], 'processedFrom': sources[node.id]}
            if kind is NodeKind.SPECTRUM_ANALYZER:
                patch.update({'audioPath': produced[node.id], 'audioFile': produced[node.id],
                              'isProcessing': False, 'error': None})

        elif kind is NodeKind.QUALITY_COMPARE:
            score = result.vmaf_results.get(node.id)
            if score is not None:
                patch = {'vmafScore': score.to_dict(), 'isAnalyzing': False, 'error': None}

        elif kind in DISPLAY_KINDS:
            video_path = _display_binding(node, node_map, edges, result)
            if video_path:
                patch = {'videoPath': video_path}

        merged.append(node.with_data(patch) if patch else node)
    return merged


class PipelineOrchestrator:
    """
    Runs pipelines against an execution engine, one at a time.

    ``policy`` decides what happens to a call that arrives while another
    execution is outstanding: ``"reject"`` answers it with a failure
    result immediately, ``"queue"`` waits for the running one to finish.

    Example:
        orchestrator = PipelineOrchestrator(HttpExecutionEngine(url))
        result = await orchestrator.run(store)
    """

    def __init__(self, engine: ExecutionEngine, policy: str = "reject", logger=None):
        if policy not in ("reject", "queue"):
            raise ValueError(f"Unknown execution policy: {policy}")
        self.engine = engine
        self.policy = policy
        self.log = logger or _log
        self.state = ExecutionState.IDLE
        self._lock: asyncio.Lock | None = None

    @property
    def is_executing(self) -> bool:
        return self.state is ExecutionState.EXECUTING

    def validate(self, nodes: list[Node]) -> ValidationResult:
        return validate_pipeline(nodes)

    def merge(
        self,
        nodes: list[Node],
        edges: list[Edge],
        result: ExecutionResult,
        executed: Pipeline | None = None,
    ) -> list[Node]:
        return merge_results(nodes, edges, result, executed)

    async def _invoke(self, nodes: list[Node], edges: list[Edge]) -> ExecutionResult:
        validation = self.validate(nodes)
        if not validation.is_valid:
            self.log.info("execution.invalid_pipeline", message=validation.message)
            return ExecutionResult.failure(validation.message or "Pipeline validation failed")

        request = serialize_pipeline(nodes, edges)
        self.log.info("execution.started", nodes=len(request['nodes']),
                      connections=len(request['connections']))
        try:
            raw = await self.engine.execute_pipeline(request)
            result = ExecutionResult.from_response(raw)
        except EngineError as e:
            self.log.error("execution.engine_error", error=str(e))
            return ExecutionResult.failure(f"Execution failed: {e}")
        except Exception as e:
            self.log.exception("execution.unexpected_error")
            return ExecutionResult.failure(f"Execution failed: {e}")

        if not result.success:
            self.log.warning("execution.failed", message=result.message)
            return ExecutionResult.failure(result.message or "Execution failed")

        self.log.info("execution.completed", outputs=len(result.outputs),
                      vmaf_results=len(result.vmaf_results),
                      audio_outputs=len(result.audio_outputs))
        return result

    async def execute(self, nodes: list[Node], edges: list[Edge]) -> ExecutionResult:
        """
        Validate, serialize and run a pipeline.

        Never raises for engine problems; they come back as a failed
        result with a message.
        """
        if self._lock is None:
            self._lock = asyncio.Lock()

        if self.is_executing and self.policy == "reject":
            self.log.warning("execution.rejected_busy")
            return ExecutionResult.failure(BUSY_MESSAGE)

        async with self._lock:
            self.state = ExecutionState.EXECUTING
            try:
                return await self._invoke(list(nodes), list(edges))
            finally:
                self.state = ExecutionState.IDLE

    async def run(self, store: GraphStore) -> ExecutionResult:
        """
        Execute the store's current graph and merge a successful result.

        The merge is applied to the graph as it is when the engine
        answers, so edits made meanwhile are kept.
        """
        snapshot = store.snapshot()
        result = await self.execute(snapshot.nodes, snapshot.edges)
        if result.success:
            store.apply(lambda nodes, edges: self.merge(nodes, edges, result, snapshot))
        return result
