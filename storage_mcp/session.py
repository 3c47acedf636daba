"""
Protocol session.

Routes decoded JSON-RPC requests to method handlers. Every request runs in
its own task, so a slow backend call never holds up reading the next frame;
responses carry the request id and may go out in any order.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from mcp.types import (
    INTERNAL_ERROR,
    LATEST_PROTOCOL_VERSION,
    METHOD_NOT_FOUND,
    ErrorData,
    JSONRPCError,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
)

from storage_mcp import __version__
from storage_mcp.mcp_types import ToolCallRequest, ToolResult
from storage_mcp.tools import Dispatcher, ToolRegistry
from storage_mcp.transport import StdioTransport, TransportClosed
from storage_mcp.utils import Logger

MethodHandler = Callable[[Optional[Dict[str, Any]], Any], Awaitable[Dict[str, Any]]]


class ProtocolSession:
    """Serves one transport until it closes or serving is stopped."""

    def __init__(
        self,
        registry: ToolRegistry,
        dispatcher: Dispatcher,
        transport: StdioTransport,
        logger: Logger,
        server_name: str,
        server_version: str = __version__,
    ):
        self.registry = registry
        self.dispatcher = dispatcher
        self.transport = transport
        self.logger = logger
        self.server_name = server_name
        self.server_version = server_version
        self.in_flight: Set[asyncio.Task] = set()
        self.handled = 0

        self._methods: Dict[str, MethodHandler] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    async def serve(self) -> None:
        """Accept requests until the input stream closes."""
        async for message in self.transport.messages():
            if isinstance(message, JSONRPCRequest):
                task = asyncio.create_task(self._respond(message))
                self.in_flight.add(task)
                task.add_done_callback(self.in_flight.discard)
            elif isinstance(message, JSONRPCNotification):
                self.logger.debug(f"Notification ignored: {message.method}")
            else:
                self.logger.debug("Ignoring response message from client")

    async def drain(self, timeout: float) -> int:
        """Wait up to ``timeout`` seconds for in-flight calls, then abandon the rest.

        Returns how many calls were abandoned.
        """
        pending = set(self.in_flight)
        if not pending:
            return 0

        self.logger.info(f"Waiting up to {timeout}s for {len(pending)} in-flight call(s)")
        _, still_running = await asyncio.wait(pending, timeout=timeout)

        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            self.logger.warning(f"Abandoned {len(still_running)} call(s) after drain window")
        return len(still_running)

    async def handle(self, request: JSONRPCRequest):
        """Build the response for one request."""
        handler = self._methods.get(request.method)
        if handler is None:
            self.logger.warning(f"Method not found: {request.method}")
            return JSONRPCError(
                jsonrpc="2.0",
                id=request.id,
                error=ErrorData(code=METHOD_NOT_FOUND, message=f"Method not found: {request.method}"),
            )

        try:
            result = await handler(request.params, request.id)
        except Exception as e:
            self.logger.error(f"Error handling {request.method}: {e}", exc_info=True)
            return JSONRPCError(
                jsonrpc="2.0",
                id=request.id,
                error=ErrorData(code=INTERNAL_ERROR, message=f"Internal error: {e}"),
            )
        return JSONRPCResponse(jsonrpc="2.0", id=request.id, result=result)

    async def _respond(self, request: JSONRPCRequest) -> None:
        response = await self.handle(request)
        self.handled += 1
        try:
            await self.transport.send(response)
        except TransportClosed as e:
            self.logger.error(f"Failed to write response {request.id}: {e}")

    async def _initialize(self, params: Optional[Dict[str, Any]], request_id: Any) -> Dict[str, Any]:
        requested = (params or {}).get("protocolVersion")
        protocol_version = requested if isinstance(requested, str) and requested else LATEST_PROTOCOL_VERSION
        self.logger.info(f"Client initialized session (protocol {protocol_version})")
        return {
            "protocolVersion": protocol_version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": self.server_name, "version": self.server_version},
        }

    async def _ping(self, params: Optional[Dict[str, Any]], request_id: Any) -> Dict[str, Any]:
        return {}

    async def _list_tools(self, params: Optional[Dict[str, Any]], request_id: Any) -> Dict[str, Any]:
        tools = self.registry.getToolSchemas()
        self.logger.debug(f"Exposing {len(tools)} tools")
        return {"tools": [tool.model_dump(by_alias=True, exclude_none=True) for tool in tools]}

    async def _call_tool(self, params: Optional[Dict[str, Any]], request_id: Any) -> Dict[str, Any]:
        params = params or {}
        name = params.get("name")
        arguments = params.get("arguments")

        if not isinstance(name, str) or not name:
            result = ToolResult.text("Error: Invalid tool call: name must be a non-empty string")
        elif arguments is not None and not isinstance(arguments, dict):
            result = ToolResult.text("Error: Invalid tool call: arguments must be an object")
        else:
            result = await self.dispatcher.dispatch(
                ToolCallRequest(correlationId=request_id, name=name, arguments=arguments or {})
            )
        return result.toDict()
