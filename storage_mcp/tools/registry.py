"""
Tool Registry
Immutable catalog of tool definitions and argument normalization.
"""

import copy
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from mcp.types import Tool as MCPTool

from storage_mcp.mcp_types import (
    FieldSpec,
    ToolDefinition,
    ToolValidationError,
    ToolValidationResult,
)


def _matches_type(expected_type: str, value: Any) -> bool:
    if expected_type == "string":
        return isinstance(value, str)
    if expected_type == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected_type == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if expected_type == "boolean":
        return isinstance(value, bool)
    if expected_type == "object":
        return isinstance(value, dict)
    if expected_type == "array":
        return isinstance(value, list)
    return True


class ToolRegistry:
    """Tool Registry Implementation.

    Built once from an ordered sequence of definitions. The order given here
    is the order ``tools/list`` reports, for the lifetime of the process.
    """

    def __init__(self, tools: Iterable[ToolDefinition], logger=None):
        self.logger = logger
        ordered: List[ToolDefinition] = []
        index: Dict[str, ToolDefinition] = {}

        for tool in tools:
            if tool.name in index:
                raise ValueError(f"Tool {tool.name} is already registered")
            index[tool.name] = tool
            ordered.append(tool)

        self._tools: Tuple[ToolDefinition, ...] = tuple(ordered)
        self._index = index

        if self.logger:
            self.logger.debug(f"Tool registry built with {len(self._tools)} tools")

    def __len__(self) -> int:
        return len(self._tools)

    def listTools(self) -> List[ToolDefinition]:
        """List all registered tools in declaration order."""
        return list(self._tools)

    def lookup(self, toolName: str) -> Optional[ToolDefinition]:
        """Get a tool by name, or None."""
        return self._index.get(toolName)

    def hasTool(self, toolName: str) -> bool:
        """Check if a tool is registered."""
        return toolName in self._index

    def getToolSchemas(self) -> List[MCPTool]:
        """Get tool schemas for MCP protocol - returns proper MCP Tool objects."""
        return [
            MCPTool(
                name=tool.name,
                description=tool.description,
                inputSchema=tool.toJsonSchema()
            )
            for tool in self._tools
        ]

    def normalize(self, toolName: str, arguments: Optional[Mapping[str, Any]]) -> ToolValidationResult:
        """Validate arguments and fill in declared defaults.

        Returns a fresh dict in ``result.arguments``; ``arguments`` is left
        untouched. Fields the schema does not declare are dropped.
        """
        tool = self.lookup(toolName)
        if tool is None:
            raise KeyError(f"Unknown tool: {toolName}")

        raw = arguments or {}
        errors: List[ToolValidationError] = []
        effective: Dict[str, Any] = {}

        for field_name, spec in tool.inputSchema.items():
            value = raw.get(field_name)

            if value is None:
                if spec.required:
                    errors.append(ToolValidationError(
                        field=field_name,
                        message="required field is missing",
                        code="MISSING_REQUIRED_FIELD"
                    ))
                elif spec.has_default:
                    effective[field_name] = copy.deepcopy(spec.default)
                continue

            error = self._check_value(field_name, spec, value)
            if error:
                errors.append(error)
            else:
                effective[field_name] = value

        if errors:
            return ToolValidationResult(valid=False, errors=errors)

        ignored = sorted(set(raw) - set(tool.inputSchema))
        if ignored and self.logger:
            self.logger.debug(f"Ignoring undeclared arguments for {toolName}: {ignored}")

        return ToolValidationResult(valid=True, arguments=effective)

    def _check_value(self, field_name: str, spec: FieldSpec, value: Any) -> Optional[ToolValidationError]:
        if not _matches_type(spec.type, value):
            return ToolValidationError(
                field=field_name,
                message=f"must be of type {spec.type}",
                code="INVALID_TYPE"
            )
        if spec.enum is not None and value not in spec.enum:
            allowed = ", ".join(str(option) for option in spec.enum)
            return ToolValidationError(
                field=field_name,
                message=f"must be one of: {allowed}",
                code="INVALID_ENUM_VALUE"
            )
        return None
