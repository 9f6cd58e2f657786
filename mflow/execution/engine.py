"""
Transports to the external media execution engine.

The engine is opaque: it receives ``{nodes, connections}`` and answers
with ``{success, message, outputs, vmaf_results?, audio_outputs?}``.
Every transport raises EngineError for anything other than a parsed
JSON object.
"""

import asyncio
import json
import shlex
from typing import Any, Protocol, runtime_checkable

import httpx

from mflow.core.config import Settings
from mflow.core.errors import EngineError
from mflow.core.logging import get_logger

_log = get_logger(__name__)


@runtime_checkable
class ExecutionEngine(Protocol):
    """Anything that can run a serialized pipeline."""

    async def execute_pipeline(self, request: dict[str, Any]) -> dict[str, Any]:
        ...


class HttpExecutionEngine:
    """
    Engine reached over HTTP.

    Posts ``{"pipeline": request}`` to ``{base_url}/execute_pipeline``.

    Example:
        engine = HttpExecutionEngine("http://127.0.0.1:9000")
        response = await engine.execute_pipeline(request)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 600.0,
        transport: httpx.AsyncBaseTransport | None = None,
        logger=None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._transport = transport
        self.log = logger or _log

    async def execute_pipeline(self, request: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/execute_pipeline"
        self.log.debug("engine.http_request", url=url, nodes=len(request.get('nodes', [])))
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json={'pipeline': request})
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            raise EngineError(
                f"Engine returned HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise EngineError(f"Engine request failed: {e}") from e
        except json.JSONDecodeError as e:
            raise EngineError(f"Engine returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise EngineError(f"Engine returned {type(payload).__name__}, expected an object")
        return payload


class CommandExecutionEngine:
    """
    Engine run as a subprocess speaking JSON over stdio.

    The request is written to stdin; the response is read from stdout.
    """

    def __init__(self, command: str | list[str], timeout: float = 600.0, logger=None):
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        if not self.command:
            raise ValueError("Engine command is empty")
        self.timeout = timeout
        self.log = logger or _log

    async def execute_pipeline(self, request: dict[str, Any]) -> dict[str, Any]:
        self.log.debug("engine.command_start", command=self.command[0])
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EngineError(f"Cannot start engine command {self.command[0]!r}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(json.dumps(request).encode()),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise EngineError(f"Engine command timed out after {self.timeout}s") from e

        if proc.returncode != 0:
            detail = stderr.decode(errors='replace').strip()[:200]
            raise EngineError(f"Engine command exited with {proc.returncode}: {detail}")

        try:
            payload = json.loads(stdout.decode())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise EngineError(f"Engine command returned invalid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise EngineError(f"Engine returned {type(payload).__name__}, expected an object")
        return payload


def create_engine(settings: Settings) -> ExecutionEngine:
    """Build the transport selected by ``settings`` (a command wins over a URL)."""
    if settings.engine_command:
        return CommandExecutionEngine(settings.engine_command, timeout=settings.engine_timeout)
    return HttpExecutionEngine(settings.engine_url, timeout=settings.engine_timeout)
