"""
Stdio transport for MCP.

A thin adapter over the SDK's ``stdio_server()``. The SDK reads stdin and
writes stdout on worker threads, one JSON-RPC message per line, so a slow
host never stalls the event loop. Lines it cannot parse arrive as exceptions;
they are reported on the diagnostics log (stderr) and dropped, never answered.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Union

import anyio
from mcp.server.stdio import stdio_server
from mcp.shared.message import SessionMessage
from mcp.types import (
    JSONRPCError,
    JSONRPCMessage,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
)

from storage_mcp.utils import Logger

InboundMessage = Union[JSONRPCRequest, JSONRPCNotification, JSONRPCResponse, JSONRPCError]
OutboundMessage = Union[JSONRPCResponse, JSONRPCError]

# Raised by send() once the write side has gone away
TransportClosed = (anyio.ClosedResourceError, anyio.BrokenResourceError)


class StdioTransport:
    """
    Decoded messages in, responses out.

    The SDK's single writer task owns stdout, so concurrent send() calls are
    serialized without a lock here.
    """

    def __init__(self, read_stream, write_stream, logger: Logger):
        self._read_stream = read_stream
        self._write_stream = write_stream
        self.logger = logger
        self.dropped_frames = 0

    @classmethod
    @asynccontextmanager
    async def open(cls, logger: Logger, stdin=None, stdout=None) -> AsyncIterator["StdioTransport"]:
        """Attach to the process's stdin/stdout for the duration of the block."""
        async with stdio_server(stdin, stdout) as (read_stream, write_stream):
            transport = cls(read_stream, write_stream, logger)
            try:
                yield transport
            finally:
                await transport.close()

    async def messages(self) -> AsyncIterator[InboundMessage]:
        """Yield decoded messages until the input stream closes."""
        async for item in self._read_stream:
            if isinstance(item, Exception):
                self._drop(f"Malformed frame: {item}")
                continue
            yield item.message.root
        self.logger.debug("Input stream closed")

    async def send(self, message: OutboundMessage) -> None:
        """Hand one message to the stdout writer."""
        await self._write_stream.send(SessionMessage(JSONRPCMessage(message)))

    async def close(self) -> None:
        """Stop writing, then discard input until the host closes stdin."""
        await self._write_stream.aclose()
        # The SDK reader only finishes at end of input; keep it from blocking on a full stream
        async for _ in self._read_stream:
            self.logger.debug("Discarding frame received after shutdown")
        await self._read_stream.aclose()

    def _drop(self, reason: str) -> None:
        self.dropped_frames += 1
        self.logger.warning(f"Dropping frame: {reason}")
