"""
Tools Module

Catalog and dispatch for MCP tools:
- ToolRegistry: ordered, immutable catalog with argument normalization
- Dispatcher: binds catalog entries to backend operations and isolates failures
"""

from .registry import ToolRegistry
from .dispatcher import Dispatcher, render_result

__all__ = [
    "ToolRegistry",
    "Dispatcher",
    "render_result",
]
