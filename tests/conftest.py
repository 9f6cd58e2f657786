"""
Shared fixtures for mflow tests.
"""

import asyncio

import pytest

from mflow.graph import Edge, Node, NodeKind


class FakeEngine:
    """In-process engine double that records requests."""

    def __init__(self, response=None, error=None, gate: asyncio.Event | None = None):
        self.response = response if response is not None else {"success": True, "message": "ok", "outputs": {}}
        self.error = error
        self.gate = gate
        self.started = asyncio.Event()
        self.requests = []

    async def execute_pipeline(self, request):
        self.requests.append(request)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def video_chain():
    """videoSource -> videoConvert -> viewer, with a file selected."""
    nodes = [
        Node("a", NodeKind.VIDEO_SOURCE, {"filePath": "a.mp4"}),
        Node("t", NodeKind.VIDEO_CONVERT, {}),
        Node("v", NodeKind.VIEWER, {}),
    ]
    edges = [
        Edge("a", "t", "video-output", "video-input", id="e1"),
        Edge("t", "v", "video-output", "video-input", id="e2"),
    ]
    return nodes, edges
