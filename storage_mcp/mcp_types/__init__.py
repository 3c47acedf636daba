"""
MCP Types Module
Types and dataclasses for the MCP server implementation.
"""

from .tools import (
    # Enums
    MCPErrorCode,
    
    # Tool definition
    FieldSpec,
    ToolDefinition,
    NO_DEFAULT,
    
    # Calls and results
    ToolCallRequest,
    TextContent,
    ToolResult,
    
    # Validation
    ToolValidationError,
    ToolValidationResult,
    
    # Monitoring
    ToolMetrics,
)
from .server import (
    ServerState,
    ALLOWED_TRANSITIONS,
    InvalidStateTransition,
    StartupError,
    BackendError,
    CredentialError,
    NoCredentialsAvailable,
)

__all__ = [
    # Enums
    "MCPErrorCode",
    
    # Tool definition
    "FieldSpec",
    "ToolDefinition",
    "NO_DEFAULT",
    
    # Calls and results
    "ToolCallRequest",
    "TextContent",
    "ToolResult",
    
    # Validation
    "ToolValidationError",
    "ToolValidationResult",
    
    # Monitoring
    "ToolMetrics",
    
    # Lifecycle
    "ServerState",
    "ALLOWED_TRANSITIONS",
    "InvalidStateTransition",
    "StartupError",
    
    # Errors
    "BackendError",
    "CredentialError",
    "NoCredentialsAvailable",
]
