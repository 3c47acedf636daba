"""
Storage MCP
Model Context Protocol tool server for cloud storage backends.
"""

__version__ = "1.0.0"
__package_name__ = "storage-mcp"
