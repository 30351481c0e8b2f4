from .server import McpServer, serve_stdio
from .types import ToolContent, ToolResult

__all__ = ["McpServer", "ToolContent", "ToolResult", "serve_stdio"]
