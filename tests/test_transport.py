"""Tests for StdioTransport."""

import asyncio
import io
import os
import threading
import time

import anyio
import pytest
from mcp.types import JSONRPCNotification, JSONRPCRequest, JSONRPCResponse

from conftest import CapturedOutput, LineInput, frame, read_responses
from storage_mcp.transport import StdioTransport


async def _collect(logger, lines, output=None):
    async with StdioTransport.open(logger, stdin=LineInput(lines), stdout=output or CapturedOutput()) as transport:
        messages = [message async for message in transport.messages()]
    return transport, messages


@pytest.mark.asyncio
class TestStdioTransport:
    """Test framing, malformed frame handling and serialized writes."""

    async def test_decodes_requests(self, logger):
        """Should yield one request per well-formed line."""
        _, messages = await _collect(logger, [
            frame({"jsonrpc": "2.0", "id": 1, "method": "tools/list"}),
            frame({"jsonrpc": "2.0", "id": "b", "method": "ping"}),
        ])

        assert [m.id for m in messages] == [1, "b"]
        assert all(isinstance(m, JSONRPCRequest) for m in messages)

    async def test_malformed_frames_dropped(self, logger):
        """Bad frames are logged and skipped; decoding continues."""
        output = CapturedOutput()

        transport, messages = await _collect(logger, [
            frame("{not json"),
            frame("[1, 2, 3]"),
            frame({"id": 7, "method": "tools/list"}),
            frame({"jsonrpc": "2.0", "id": 2, "method": "tools/list"}),
        ], output)

        assert [m.id for m in messages] == [2]
        assert transport.dropped_frames == 3
        assert logger.warning.call_count == 3
        assert output.getvalue() == ""

    async def test_notifications_decoded(self, logger):
        _, messages = await _collect(logger, [frame({"jsonrpc": "2.0", "method": "notifications/initialized"})])

        assert isinstance(messages[0], JSONRPCNotification)

    async def test_ends_on_eof(self, logger):
        _, messages = await _collect(logger, [])

        assert messages == []

    async def test_send_writes_one_line(self, logger):
        output = CapturedOutput()

        async with StdioTransport.open(logger, stdin=LineInput(), stdout=output) as transport:
            await transport.send(JSONRPCResponse(jsonrpc="2.0", id=5, result={"text": "a\nb"}))

        assert output.getvalue().count("\n") == 1
        assert read_responses(output) == [{"jsonrpc": "2.0", "id": 5, "result": {"text": "a\nb"}}]

    async def test_concurrent_sends_do_not_interleave(self, logger):
        """Many concurrent writers still produce whole lines."""
        output = CapturedOutput()

        async with StdioTransport.open(logger, stdin=LineInput(), stdout=output) as transport:
            await asyncio.gather(*[
                transport.send(JSONRPCResponse(jsonrpc="2.0", id=i, result={"text": "x" * 1000}))
                for i in range(50)
            ])

        responses = read_responses(output)
        assert sorted(r["id"] for r in responses) == list(range(50))

    async def test_input_after_close_is_discarded(self, logger):
        """Closing waits for end of input without answering late frames."""
        stdin = LineInput(eof=False)
        output = CapturedOutput()

        async with StdioTransport.open(logger, stdin=stdin, stdout=output):
            stdin.feed(frame({"jsonrpc": "2.0", "id": 1, "method": "ping"}))
            stdin.close()

        assert output.getvalue() == ""

    async def test_slow_stdout_does_not_stall_loop(self, logger):
        """A large response to a slow reader leaves the event loop free."""
        read_fd, write_fd = os.pipe()
        stdout = anyio.wrap_file(io.TextIOWrapper(os.fdopen(write_fd, "wb"), encoding="utf-8"))
        received = []

        def slow_reader():
            time.sleep(0.5)
            with os.fdopen(read_fd, "rb") as pipe:
                received.append(pipe.read())

        reader = threading.Thread(target=slow_reader)
        reader.start()

        loop = asyncio.get_running_loop()
        gaps = []
        ticking = True

        async def ticker():
            last = loop.time()
            while ticking:
                await asyncio.sleep(0.02)
                now = loop.time()
                gaps.append(now - last)
                last = now

        async with StdioTransport.open(logger, stdin=LineInput(), stdout=stdout) as transport:
            tick = asyncio.create_task(ticker())
            await transport.send(JSONRPCResponse(jsonrpc="2.0", id=1, result={"text": "x" * 1_000_000}))
            await asyncio.sleep(0.3)
            ticking = False
            await tick

        await stdout.aclose()
        await asyncio.to_thread(reader.join)

        assert max(gaps) < 0.2
        assert len(received[0]) > 1_000_000
