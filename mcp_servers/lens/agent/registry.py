"""
Tool registry with dispatch table for the agent MCP server.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..bridge.client import BridgeClient
from ..config import LensConfig
from .types import ToolResult

logger = logging.getLogger("mcp.lens.agent")

HandlerFunc = Callable[[BridgeClient, LensConfig, dict[str, Any]], ToolResult]


class ToolRegistry:
    def __init__(self) -> None:
        self._handlers: dict[str, HandlerFunc] = {}

    def register(self, name: str, handler: HandlerFunc) -> None:
        self._handlers[name] = handler

    def register_many(self, handlers: dict[str, HandlerFunc]) -> None:
        self._handlers.update(handlers)

    def has(self, name: str) -> bool:
        return name in self._handlers

    def dispatch(self, name: str, client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
        """Run a tool handler.

        Raises:
            KeyError: If tool not found
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise KeyError(f"Unknown tool: {name}")
        return handler(client, config, arguments)

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers.keys())

    def __len__(self) -> int:
        return len(self._handlers)


def create_default_registry() -> ToolRegistry:
    from .tools import TOOL_HANDLERS

    registry = ToolRegistry()
    registry.register_many(TOOL_HANDLERS)
    logger.debug("Registered %d tool handlers", len(registry))
    return registry
