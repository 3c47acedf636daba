"""
Tool Dispatcher
Routes tools/call requests to the bound backend operation.

Every outcome, including unknown tools, bad arguments and backend failures,
is returned as a ToolResult. Nothing raised by a backend escapes dispatch().
"""

import json
import time
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Mapping

from storage_mcp.mcp_types import (
    MCPErrorCode,
    ToolCallRequest,
    ToolMetrics,
    ToolResult,
)
from storage_mcp.tools.registry import ToolRegistry

ToolHandler = Callable[[Dict[str, Any]], Awaitable[Any]]

# Metrics bucket shared by every call to a name outside the catalog
UNKNOWN_TOOL = "<unknown>"


def render_result(data: Any) -> str:
    """Render a backend result as readable text (indented JSON)."""
    if isinstance(data, str):
        return data.strip()
    return json.dumps(data, indent=2, default=str, ensure_ascii=False)


class Dispatcher:
    """Binds each catalog entry to a backend operation and runs calls."""

    def __init__(self, registry: ToolRegistry, backend, logger):
        self.registry = registry
        self.logger = logger
        self.metrics: Dict[str, ToolMetrics] = {}
        self._handlers: Mapping[str, ToolHandler] = {
            tool.name: partial(backend.invoke, tool.operation)
            for tool in registry.listTools()
        }

    async def dispatch(self, request: ToolCallRequest) -> ToolResult:
        """Execute one tool call and wrap whatever happens in a ToolResult."""
        started = time.monotonic()
        name = request.name

        handler = self._handlers.get(name)
        if handler is None:
            self.logger.warning(f"Call to unknown tool: {name}", extra={
                'code': MCPErrorCode.TOOL_NOT_FOUND.value,
                'requestId': request.correlationId
            })
            self._record(UNKNOWN_TOOL, False, started)
            return self.createErrorResult(f"Unknown tool: {name}")

        validation = self.registry.normalize(name, request.arguments)
        if not validation.valid:
            self.logger.warning(f"Invalid arguments for {name}: {validation.reason}", extra={
                'code': MCPErrorCode.VALIDATION_ERROR.value,
                'requestId': request.correlationId
            })
            self._record(name, False, started)
            return self.createErrorResult(f"Invalid arguments for {name}: {validation.reason}")

        try:
            data = await handler(validation.arguments)
        except Exception as error:
            # Full detail stays on stderr; the caller only sees the message.
            self.logger.error(f"Tool execution error in {name}: {error}", extra={
                'code': MCPErrorCode.TOOL_EXECUTION_ERROR.value,
                'requestId': request.correlationId
            }, exc_info=True)
            self._record(name, False, started)
            return self.createErrorResult(str(error) or error.__class__.__name__)

        self._record(name, True, started)
        self.logger.debug(f"Tool executed: {name}", extra={'requestId': request.correlationId})
        return self.createSuccessResult(data)

    def createSuccessResult(self, data: Any) -> ToolResult:
        """Create a successful tool result with exactly one text item."""
        try:
            text = render_result(data)
        except (TypeError, ValueError) as e:
            self.logger.warning(f"Failed to serialize tool result: {e}")
            return self.createErrorResult("Failed to serialize result")
        return ToolResult.text(text)

    def createErrorResult(self, message: str) -> ToolResult:
        return ToolResult.text(f"Error: {message}")

    def getMetrics(self, toolName: str) -> ToolMetrics:
        return self.metrics.get(toolName) or ToolMetrics(toolName=toolName)

    def _record(self, toolName: str, success: bool, started: float) -> None:
        metrics = self.metrics.setdefault(toolName, ToolMetrics(toolName=toolName))
        metrics.record(success, (time.monotonic() - started) * 1000)
