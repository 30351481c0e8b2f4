"""
Agent-facing MCP server (JSON-RPC over stdio).

Each browser_* tool call is forwarded to the bridge through `BridgeClient`.
Tool failures come back as `isError` results; the stdio channel never sees an
exception.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any

from ..bridge.client import BridgeClient, BridgeClientError, BridgeUnavailableError
from ..config import LensConfig
from .contract import initialize_result, select_protocol, tools_list
from .registry import ToolRegistry, create_default_registry
from .tools import ToolArgumentError
from .types import ToolResult

logger = logging.getLogger("mcp.lens.agent")

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601


def _write_message(payload: dict[str, Any]) -> None:
    frame = json.dumps(payload, ensure_ascii=False) + "\n"
    out = sys.stdout.buffer
    out.write(frame.encode())
    out.flush()


def _read_message() -> dict[str, Any] | None:
    """Next newline-delimited frame; None at EOF and {} for a blank line."""
    raw = sys.stdin.buffer.readline()
    if not raw:
        return None
    if not raw.strip():
        return {}
    frame = json.loads(raw.decode())
    if os.environ.get("MCP_TRACE"):
        logger.info("recv %s", frame)
    return frame


def _reply(request_id: Any, result: dict[str, Any]) -> None:
    _write_message({"jsonrpc": "2.0", "id": request_id, "result": result})


def _fail(request_id: Any, code: int, message: str) -> None:
    _write_message({"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}})


def _redacted(arguments: dict[str, Any]) -> dict[str, Any]:
    shown = dict(arguments)
    url = shown.get("url")
    if isinstance(url, str):
        shown["url"] = url.partition("?")[0]
    text = shown.get("text")
    if isinstance(text, str):
        shown["text"] = f"<{len(text)} chars>"
    return shown


class McpServer:
    def __init__(
        self,
        config: LensConfig | None = None,
        client: BridgeClient | None = None,
        registry: ToolRegistry | None = None,
    ) -> None:
        self.config = config or LensConfig.from_env()
        self.client = client or BridgeClient.from_config(self.config)
        self.registry = registry or create_default_registry()
        self._methods = {
            "initialize": self._on_initialize,
            "tools/list": self._on_list_tools,
            "list_tools": self._on_list_tools,
            "tools/call": self._on_call_tool,
            "call_tool": self._on_call_tool,
            "ping": lambda _params: {},
        }

    def _on_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        return initialize_result(select_protocol(params.get("protocolVersion")))

    def _on_list_tools(self, _params: dict[str, Any]) -> dict[str, Any]:
        return {"tools": tools_list()}

    def _on_call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        arguments = params.get("arguments") or params.get("args") or {}
        result = self.call_tool(params.get("name") or "", arguments)
        return {"content": result.to_content_list(), "isError": result.is_error}

    def call_tool(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Run one tool; every failure becomes an error result."""
        logger.info("tool=%s args=%s", name, _redacted(arguments))
        if not name:
            return ToolResult.error("Missing tool name")
        if not self.registry.has(name):
            return ToolResult.error(f"Unknown tool: {name}", tool=name)
        try:
            return self.registry.dispatch(name, self.client, self.config, arguments)
        except ToolArgumentError as e:
            return ToolResult.error(str(e), tool=name)
        except BridgeUnavailableError as e:
            logger.info("bridge_unavailable %s", e)
            return ToolResult.error(str(e), tool=name, suggestion="Start the bridge with `lens-bridge serve`.")
        except BridgeClientError as e:
            logger.info("bridge_error tool=%s status=%s %s", name, e.status, e)
            return ToolResult.error(str(e), tool=name)
        except Exception as exc:  # noqa: BLE001
            logger.exception("tool_call_failed tool=%s", name)
            return ToolResult.error(str(exc), tool=name)

    def dispatch(self, message: dict[str, Any]) -> None:
        # Frames without an id are notifications and never get a reply.
        if not isinstance(message, dict) or "id" not in message:
            return
        request_id = message["id"]
        method = message.get("method")
        params = message.get("params")
        handler = self._methods.get(method) if isinstance(method, str) else None
        if handler is None:
            _fail(request_id, METHOD_NOT_FOUND, f"Method {method} not found")
            return
        _reply(request_id, handler(params if isinstance(params, dict) else {}))


def serve_stdio(server: McpServer | None = None) -> None:
    server = server or McpServer()
    while True:
        try:
            frame = _read_message()
        except ValueError as exc:
            logger.warning("invalid_jsonrpc_frame: %s", exc)
            _fail(None, PARSE_ERROR, "Parse error")
            continue
        if frame is None:
            return
        server.dispatch(frame)
