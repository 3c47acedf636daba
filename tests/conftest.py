"""
Shared pytest fixtures for Storage MCP tests

Centralized stubs for the backend client, transport streams, config and logger.
"""

import asyncio
import io
import json
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import pytest
from unittest.mock import Mock

# Add project root to Python path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


# ============================================================================
# Stub Helper Classes
# ============================================================================

class StubBackend:
    """
    In-memory backend client.

    Results are looked up by operation name; a callable result is called with
    the effective arguments. Errors are raised by operation name.

    Usage:
        backend = StubBackend(results={'list_folder': {'entries': []}})
        await backend.invoke('list_folder', {})
    """

    name = "Stub"

    def __init__(
        self,
        results: Optional[Dict[str, Any]] = None,
        errors: Optional[Dict[str, Exception]] = None,
        probe_error: Optional[Exception] = None,
    ):
        self.results = results or {}
        self.errors = errors or {}
        self.probe_error = probe_error
        self.calls: List[tuple] = []
        self.probed = False
        self.closed = False

    async def probe(self):
        self.probed = True
        if self.probe_error:
            raise self.probe_error
        return {"account_id": "stub"}

    async def invoke(self, operation: str, arguments: Dict[str, Any]):
        self.calls.append((operation, arguments))
        if operation in self.errors:
            raise self.errors[operation]
        result = self.results.get(operation, {})
        if callable(result):
            result = result(arguments)
            if asyncio.iscoroutine(result):
                result = await result
        return result

    async def aclose(self):
        self.closed = True


def frame(payload: Union[Dict[str, Any], str]) -> str:
    """Encode one protocol line."""
    if isinstance(payload, str):
        return payload + "\n"
    return json.dumps(payload) + "\n"


def call_request(request_id: Any, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    params: Dict[str, Any] = {"name": name}
    if arguments is not None:
        params["arguments"] = arguments
    return {"jsonrpc": "2.0", "id": request_id, "method": "tools/call", "params": params}


class LineInput:
    """
    Stands in for stdin: yields queued lines, then ends once closed.

    Usage:
        stdin = LineInput([frame({...})], eof=False)
        stdin.feed(frame({...}))
        stdin.close()
    """

    def __init__(self, lines: Iterable[str] = (), eof: bool = True):
        self._queue: asyncio.Queue = asyncio.Queue()
        for line in lines:
            self.feed(line)
        if eof:
            self.close()

    def feed(self, line: str) -> None:
        self._queue.put_nowait(line)

    def close(self) -> None:
        self._queue.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        line = await self._queue.get()
        if line is None:
            raise StopAsyncIteration
        return line


class CapturedOutput:
    """Stands in for stdout and keeps everything written to it."""

    def __init__(self):
        self._buffer = io.StringIO()

    async def write(self, text: str) -> int:
        return self._buffer.write(text)

    async def flush(self) -> None:
        pass

    def getvalue(self) -> str:
        return self._buffer.getvalue()


def read_responses(output) -> List[Dict[str, Any]]:
    """Decode every line written to the protocol stream."""
    return [json.loads(line) for line in output.getvalue().splitlines() if line.strip()]


def two_entry_listing(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "path": arguments.get("path") or "/",
        "entries": [
            {"path": "/Documents", "name": "Documents", "type": "folder", "size": None, "modified": None},
            {"path": "/notes.txt", "name": "notes.txt", "type": "file", "size": 12,
             "modified": "2024-01-01T00:00:00Z"},
        ],
        "has_more": False,
    }


# ============================================================================
# Base Fixtures
# ============================================================================

@pytest.fixture
def mock_config():
    """
    Standard configuration for all tests.
    """
    from storage_mcp.config.settings import Config

    return Config(
        environment="test",
        log_level="DEBUG",
        backend="dropbox",
        drain_timeout=0.5,
        request_timeout=5.0,
    )


@pytest.fixture
def logger():
    """
    Standard mock logger for all tests.
    """
    from storage_mcp.utils.logger import Logger
    return Mock(spec=Logger)


@pytest.fixture
def stub_backend():
    """Backend stub whose list_folder returns two fixed entries."""
    return StubBackend(results={"list_folder": two_entry_listing})


@pytest.fixture
def registry():
    """Registry over the Dropbox catalog."""
    from storage_mcp.backends.dropbox import DROPBOX_TOOLS
    from storage_mcp.tools import ToolRegistry
    return ToolRegistry(DROPBOX_TOOLS)
