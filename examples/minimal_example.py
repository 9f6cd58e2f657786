#!/usr/bin/env python3
"""
Minimal Example: mflow API Usage
================================

Shows the essential API calls without extra boilerplate.
This is the "quick reference" version.
"""

import asyncio

from mflow.core import configure_logging, load_config
from mflow.execution import PipelineOrchestrator, create_engine
from mflow.graph import Edge, GraphStore, NodeKind


# =============================================================================
# STEP 1: BUILD A GRAPH
# Equivalent to loading the "trim-and-convert" preset and picking a file
# =============================================================================

configure_logging(level="DEBUG")

store = GraphStore()
store.create_node(NodeKind.VIDEO_SOURCE, {"filePath": "input.mp4"}, node_id="input-1")
store.create_node(NodeKind.VIDEO_TRIM, {"startTime": 5, "endTime": 20}, node_id="trim-1")
store.create_node(NodeKind.VIDEO_CONVERT, {"format": "webm"}, node_id="convert-1")
store.create_node(NodeKind.VIEWER, node_id="view-1")

# Rejected connections come back as None
for edge in [
    Edge("input-1", "trim-1", "video-output", "video-input"),
    Edge("trim-1", "convert-1", "video-output", "video-input"),
    Edge("trim-1", "convert-1", "data-output", "data-input"),
    Edge("convert-1", "view-1", "video-output", "video-input"),
]:
    if store.connect(edge) is None:
        print(f"Rejected: {edge.id}")


# =============================================================================
# STEP 2: INSPECT PROPAGATED VALUES
# =============================================================================

convert = store.get_node("convert-1")
print(f"convert-1 input:  {convert.data['videoPath']}")
print(f"convert-1 trim:   {convert.data['trimParams']}")
print(f"view-1 preview:   {store.get_node('view-1').data['videoPath']}")


# =============================================================================
# STEP 3: EXECUTE
# Engine location comes from MFLOW_ENGINE_URL / MFLOW_ENGINE_COMMAND
# =============================================================================

settings = load_config()
orchestrator = PipelineOrchestrator(create_engine(settings), policy=settings.execution_policy)

validation = orchestrator.validate(store.nodes)
if not validation.is_valid:
    print(validation.message)
else:
    result = asyncio.run(orchestrator.run(store))
    print(f"Success: {result.success} {result.message}")
    if result.success:
        print(f"view-1 preview:   {store.get_node('view-1').data['videoPath']}")
