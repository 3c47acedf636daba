"""Tests for ProtocolSession request routing and concurrency."""

import asyncio
import json

import pytest

from conftest import CapturedOutput, LineInput, StubBackend, call_request, frame, read_responses, two_entry_listing
from storage_mcp.session import ProtocolSession
from storage_mcp.tools import Dispatcher
from storage_mcp.transport import StdioTransport


async def _serve(registry, backend, logger, lines, drain_timeout=1.0):
    """Serve the given input to the end, then drain."""
    output = CapturedOutput()
    async with StdioTransport.open(logger, stdin=LineInput(lines), stdout=output) as transport:
        dispatcher = Dispatcher(registry, backend, logger)
        session = ProtocolSession(registry, dispatcher, transport, logger, server_name="dropbox-mcp")
        await session.serve()
        abandoned = await session.drain(timeout=drain_timeout)
    return session, output, abandoned


@pytest.mark.asyncio
class TestProtocolSession:
    """Test the MCP methods end to end over an in-memory transport."""

    async def test_list_folder_end_to_end(self, registry, stub_backend, logger):
        """tools/call list_folder against a two-entry stub yields one JSON text item."""
        _, output, _ = await _serve(registry, stub_backend, logger, [
            frame(call_request(1, "list_folder", {})),
        ])

        [response] = read_responses(output)
        assert response["id"] == 1
        assert set(response["result"]) == {"content"}
        [item] = response["result"]["content"]
        assert item["type"] == "text"
        payload = json.loads(item["text"])
        assert len(payload["entries"]) == 2
        assert payload["has_more"] is False

    async def test_unknown_tool_result(self, registry, stub_backend, logger):
        _, output, _ = await _serve(registry, stub_backend, logger, [
            frame(call_request(3, "X", {})),
        ])

        assert read_responses(output) == [{
            "jsonrpc": "2.0",
            "id": 3,
            "result": {"content": [{"type": "text", "text": "Error: Unknown tool: X"}]},
        }]

    async def test_tools_list(self, registry, stub_backend, logger):
        """tools/list returns the catalog in declaration order, identically each time."""
        request = {"jsonrpc": "2.0", "method": "tools/list"}
        _, output, _ = await _serve(registry, stub_backend, logger, [
            frame({**request, "id": 1}),
            frame({**request, "id": 2}),
        ])

        responses = sorted(read_responses(output), key=lambda r: r["id"])
        first, second = (r["result"]["tools"] for r in responses)
        assert first == second
        assert [t["name"] for t in first] == [t.name for t in registry.listTools()]
        assert {"name", "description", "inputSchema"} <= set(first[0])
        assert first[0]["inputSchema"]["required"] == ["query"]

    async def test_initialize_and_ping(self, registry, stub_backend, logger):
        _, output, _ = await _serve(registry, stub_backend, logger, [
            frame({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {
                "protocolVersion": "2024-11-05",
                "capabilities": {},
                "clientInfo": {"name": "test", "version": "0"},
            }}),
            frame({"jsonrpc": "2.0", "method": "notifications/initialized"}),
            frame({"jsonrpc": "2.0", "id": 2, "method": "ping"}),
        ])

        responses = {r["id"]: r for r in read_responses(output)}
        assert len(responses) == 2
        init = responses[1]["result"]
        assert init["protocolVersion"] == "2024-11-05"
        assert init["serverInfo"]["name"] == "dropbox-mcp"
        assert "tools" in init["capabilities"]
        assert responses[2]["result"] == {}

    async def test_unknown_method(self, registry, stub_backend, logger):
        _, output, _ = await _serve(registry, stub_backend, logger, [
            frame({"jsonrpc": "2.0", "id": 9, "method": "resources/list"}),
        ])

        [response] = read_responses(output)
        assert response["error"]["code"] == -32601

    async def test_invalid_call_params(self, registry, stub_backend, logger):
        """Broken tools/call params still produce a ToolResult."""
        _, output, _ = await _serve(registry, stub_backend, logger, [
            frame({"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {}}),
            frame({"jsonrpc": "2.0", "id": 2, "method": "tools/call",
                   "params": {"name": "list_folder", "arguments": [1]}}),
        ])

        texts = {r["id"]: r["result"]["content"][0]["text"] for r in read_responses(output)}
        assert texts[1].startswith("Error: Invalid tool call")
        assert texts[2] == "Error: Invalid tool call: arguments must be an object"
        assert stub_backend.calls == []

    async def test_failure_then_success(self, registry, logger):
        """A failing call does not disturb the next one."""
        backend = StubBackend(
            results={"list_folder": two_entry_listing},
            errors={"delete": RuntimeError("boom")},
        )
        _, output, _ = await _serve(registry, backend, logger, [
            frame(call_request(1, "delete", {"path": "/x"})),
            frame(call_request(2, "list_folder")),
        ])

        texts = {r["id"]: r["result"]["content"][0]["text"] for r in read_responses(output)}
        assert texts[1] == "Error: boom"
        assert json.loads(texts[2])["has_more"] is False

    async def test_slow_call_does_not_block_accept(self, registry, logger):
        """A later request can complete before an earlier slow one."""
        release = asyncio.Event()

        async def slow(arguments):
            await release.wait()
            return {"slow": True}

        def fast(arguments):
            release.set()
            return {"fast": True}

        backend = StubBackend(results={"get_metadata": slow, "list_folder": fast})
        _, output, _ = await _serve(registry, backend, logger, [
            frame(call_request("slow", "get_metadata", {"path": "/big"})),
            frame(call_request("fast", "list_folder")),
        ])

        assert [r["id"] for r in read_responses(output)] == ["fast", "slow"]

    async def test_drain_abandons_stuck_calls(self, registry, logger):
        """Calls still running after the drain window are abandoned without a response."""
        never = asyncio.Event()

        async def stuck(arguments):
            await never.wait()

        backend = StubBackend(results={"get_metadata": stuck})
        session, output, abandoned = await _serve(registry, backend, logger, [
            frame(call_request(1, "get_metadata", {"path": "/x"})),
        ], drain_timeout=0.05)

        assert abandoned == 1
        assert read_responses(output) == []
        assert not session.in_flight
