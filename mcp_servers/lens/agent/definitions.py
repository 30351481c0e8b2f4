"""browser_* tool schemas exposed to the agent."""

from __future__ import annotations

from typing import Any

_SELECTOR = {"type": "string", "description": "CSS selector (standard syntax; jQuery pseudos like :contains are rejected)"}
_TIMEOUT = {"type": "integer", "minimum": 1, "description": "Timeout in milliseconds"}


def _tool(name: str, description: str, properties: dict[str, Any] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    return {
        "name": name,
        "description": description,
        "inputSchema": {
            "$schema": "http://json-schema.org/draft-07/schema#",
            "type": "object",
            "properties": properties or {},
            "required": required or [],
            "additionalProperties": False,
        },
    }


TOOL_DEFINITIONS: list[dict[str, Any]] = [
    _tool(
        "browser_state",
        "Current page state: connection, URL, last inspected element and the most recent console messages.",
    ),
    _tool(
        "browser_navigate",
        "Navigate the page to a URL. Only loopback hosts are allowed unless LENS_ALLOW_HOSTS says otherwise.",
        {"url": {"type": "string", "description": "Absolute http(s) URL"}},
        ["url"],
    ),
    _tool(
        "browser_inspect",
        """Inspect one element and return its structured description.

USAGE:
- By selector: browser_inspect(selector="#submit")
- By point: browser_inspect(x=120, y=340)
- Re-inspect the last element: browser_inspect()

The result includes tag, attributes, computed styles, bounding box, parent chain,
and when detected: framework component, form state, overlay, stacking, iframe,
shadow DOM, scroll context and loading state.""",
        {
            "selector": _SELECTOR,
            "x": {"type": "number", "description": "Viewport x coordinate"},
            "y": {"type": "number", "description": "Viewport y coordinate"},
        },
    ),
    _tool(
        "browser_highlight",
        "Draw an outline over every element matching the selector.",
        {
            "selector": _SELECTOR,
            "color": {"type": "string", "default": "#3b82f6", "description": "CSS color"},
            "duration": {"type": "integer", "minimum": 0, "default": 3000, "description": "Milliseconds; 0 keeps it"},
        },
        ["selector"],
    ),
    _tool("browser_clear_highlights", "Remove all highlight overlays."),
    _tool(
        "browser_screenshot",
        "PNG screenshot of the viewport, or of one element when a selector is given.",
        {"selector": _SELECTOR},
    ),
    _tool(
        "browser_console",
        "Recent console messages, oldest first.",
        {
            "level": {"type": "string", "enum": ["all", "log", "info", "warn", "error", "debug"], "default": "all"},
            "limit": {"type": "integer", "minimum": 0, "default": 20},
        },
    ),
    _tool("browser_reload", "Reload the page."),
    _tool(
        "browser_click",
        "Click an element (waits for it to appear, retried on transient failures).",
        {
            "selector": _SELECTOR,
            "button": {"type": "string", "enum": ["left", "right", "middle"], "default": "left"},
            "click_count": {"type": "integer", "minimum": 1, "default": 1},
            "delay": {"type": "integer", "minimum": 0, "description": "Delay between press and release (ms)"},
            "timeout": _TIMEOUT,
        },
        ["selector"],
    ),
    _tool(
        "browser_type",
        "Type text into an element.",
        {
            "selector": _SELECTOR,
            "text": {"type": "string"},
            "clear_first": {"type": "boolean", "default": False},
            "delay": {"type": "integer", "minimum": 0, "description": "Delay between keystrokes (ms)"},
            "timeout": _TIMEOUT,
        },
        ["selector", "text"],
    ),
    _tool(
        "browser_wait_for",
        "Wait until an element exists (and is visible unless visible=false).",
        {"selector": _SELECTOR, "visible": {"type": "boolean", "default": True}, "timeout": _TIMEOUT},
        ["selector"],
    ),
    _tool(
        "browser_fill",
        "Set an input's value directly and fire input/change events.",
        {"selector": _SELECTOR, "value": {"type": "string"}},
        ["selector", "value"],
    ),
    _tool(
        "browser_select_option",
        "Select options of a <select> by value or label.",
        {
            "selector": _SELECTOR,
            "values": {
                "oneOf": [{"type": "string"}, {"type": "array", "items": {"type": "string"}, "minItems": 1}],
            },
        },
        ["selector", "values"],
    ),
    _tool("browser_hover", "Move the mouse over an element.", {"selector": _SELECTOR}, ["selector"]),
    _tool(
        "browser_press_key",
        "Press a key or combination, e.g. Enter, Escape, Control+A.",
        {"key": {"type": "string"}},
        ["key"],
    ),
    _tool(
        "browser_drag",
        "Drag one element onto another.",
        {"source": _SELECTOR, "target": _SELECTOR},
        ["source", "target"],
    ),
    _tool(
        "browser_scroll",
        "Scroll the window, or an element. A selector without direction scrolls the element into view.",
        {
            "selector": _SELECTOR,
            "direction": {"type": "string", "enum": ["up", "down", "left", "right"]},
            "distance": {"type": "integer", "minimum": 0, "default": 300},
        },
    ),
    _tool(
        "browser_wait_for_response",
        "Wait for a network response whose URL matches a glob or substring.",
        {"url_pattern": {"type": "string"}, "timeout": _TIMEOUT},
        ["url_pattern"],
    ),
    _tool("browser_get_text", "Visible text of an element.", {"selector": _SELECTOR}, ["selector"]),
    _tool(
        "browser_get_attribute",
        "Attribute value of an element (null when absent).",
        {"selector": _SELECTOR, "name": {"type": "string"}},
        ["selector", "name"],
    ),
    _tool("browser_is_visible", "Whether an element exists and is visible.", {"selector": _SELECTOR}, ["selector"]),
    _tool("browser_is_enabled", "Whether an element is enabled.", {"selector": _SELECTOR}, ["selector"]),
    _tool("browser_is_checked", "Whether a checkbox or radio is checked.", {"selector": _SELECTOR}, ["selector"]),
    _tool(
        "browser_evaluate",
        "Evaluate a JavaScript expression in the page and return its JSON value.",
        {"script": {"type": "string"}},
        ["script"],
    ),
    _tool("browser_snapshot", "Accessibility tree of the page (roles and names)."),
    _tool("browser_go_back", "Go back in history."),
    _tool("browser_go_forward", "Go forward in history."),
    _tool(
        "browser_handle_dialog",
        "Set how alert/confirm/prompt dialogs are answered from now on.",
        {"action": {"type": "string", "enum": ["accept", "dismiss"]}},
        ["action"],
    ),
]
