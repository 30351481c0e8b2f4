"""Handshake data for the agent-facing MCP server: identity, protocol versions, tools."""

from __future__ import annotations

from typing import Any

from .definitions import TOOL_DEFINITIONS

SERVER_INFO: dict[str, str] = {"name": "lens-bridge", "version": "0.1.0"}

# First entry wins when a client asks for a version we do not speak.
SUPPORTED_PROTOCOL_VERSIONS = ["2025-06-18", "2024-11-05", "0.1.0"]

# Tools only: no prompts or resources are served.
CAPABILITIES: dict[str, Any] = {"tools": {"listChanged": False}, "logging": {}}

INSTRUCTIONS = "Inspect and drive the live page through the lens bridge. Start with browser_state."


def select_protocol(requested: Any) -> str:
    if requested in SUPPORTED_PROTOCOL_VERSIONS:
        return str(requested)
    return SUPPORTED_PROTOCOL_VERSIONS[0]


def initialize_result(protocol: str) -> dict[str, Any]:
    return {
        "protocolVersion": protocol,
        "serverInfo": dict(SERVER_INFO),
        "capabilities": CAPABILITIES,
        "instructions": INSTRUCTIONS,
    }


def tools_list() -> list[dict[str, Any]]:
    return list(TOOL_DEFINITIONS)
