"""
Tool-related types
Types for the tool catalog, tool calls and their results - follows the MCP protocol shapes.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


class MCPErrorCode(Enum):
    """Error codes used in tool results and logs."""
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TOOL_EXECUTION_ERROR = "TOOL_EXECUTION_ERROR"


class _NoDefault:
    """Marker for schema fields without a declared default."""

    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT: Any = _NoDefault()


@dataclass(frozen=True)
class FieldSpec:
    """One field of a restricted tool input schema."""
    type: str
    description: str = ""
    required: bool = False
    enum: Optional[Tuple[Any, ...]] = None
    default: Any = NO_DEFAULT

    def __post_init__(self):
        if self.enum is not None and not isinstance(self.enum, tuple):
            object.__setattr__(self, "enum", tuple(self.enum))

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT

    def toJsonSchema(self) -> Dict[str, Any]:
        """Render as a JSON Schema property."""
        schema: Dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        if self.enum is not None:
            schema["enum"] = list(self.enum)
        if self.has_default:
            schema["default"] = self.default
        return schema


@dataclass(frozen=True)
class ToolDefinition:
    """MCP Tool definition.

    ``operation`` names the backend operation the tool is bound to and
    defaults to the tool name.
    """
    name: str
    description: str
    inputSchema: Mapping[str, FieldSpec] = field(default_factory=dict)
    operation: str = ""

    def __post_init__(self):
        if not self.name:
            raise ValueError("Tool definition has no name")
        object.__setattr__(self, "inputSchema", MappingProxyType(dict(self.inputSchema)))
        if not self.operation:
            object.__setattr__(self, "operation", self.name)

    def toJsonSchema(self) -> Dict[str, Any]:
        """Render the input schema as a JSON Schema object."""
        schema: Dict[str, Any] = {
            "type": "object",
            "properties": {
                field_name: spec.toJsonSchema()
                for field_name, spec in self.inputSchema.items()
            },
        }
        required = [name for name, spec in self.inputSchema.items() if spec.required]
        if required:
            schema["required"] = required
        return schema


@dataclass(frozen=True)
class ToolCallRequest:
    """A decoded tools/call request."""
    correlationId: Any
    name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class TextContent:
    """Text content for tool results - follows the MCP protocol shapes."""
    type: str
    text: str


@dataclass
class ToolResult:
    """Tool execution result.

    Failures are ordinary results too; there is no separate error shape.
    """
    content: List[TextContent]

    @classmethod
    def text(cls, text: str) -> "ToolResult":
        return cls(content=[TextContent(type="text", text=text)])

    def toDict(self) -> Dict[str, Any]:
        return {"content": [{"type": item.type, "text": item.text} for item in self.content]}


@dataclass
class ToolValidationError:
    """Tool validation error."""
    field: str
    message: str
    code: str

    def __str__(self) -> str:
        return f"field '{self.field}': {self.message}"


@dataclass
class ToolValidationResult:
    """Tool validation result, carrying the effective arguments when valid."""
    valid: bool
    errors: List[ToolValidationError] = field(default_factory=list)
    arguments: Dict[str, Any] = field(default_factory=dict)

    @property
    def reason(self) -> str:
        return "; ".join(str(error) for error in self.errors)


@dataclass
class ToolMetrics:
    """Tool execution metrics."""
    toolName: str
    totalExecutions: int = 0
    successfulExecutions: int = 0
    failedExecutions: int = 0
    averageExecutionTime: float = 0.0

    @property
    def errorRate(self) -> float:
        if not self.totalExecutions:
            return 0.0
        return self.failedExecutions / self.totalExecutions

    def record(self, success: bool, duration_ms: float) -> None:
        self.totalExecutions += 1
        if success:
            self.successfulExecutions += 1
        else:
            self.failedExecutions += 1
        total_time = self.averageExecutionTime * (self.totalExecutions - 1) + duration_ms
        self.averageExecutionTime = total_time / self.totalExecutions
