"""
browser_* tool handlers.

Each handler maps tool arguments onto one bridge call. Bridge errors propagate
and are turned into `isError` results by the server.
"""

from __future__ import annotations

import urllib.parse
from typing import Any

from ..bridge.client import BridgeClient
from ..config import LensConfig
from ..console import DEFAULT_LIMIT as CONSOLE_DEFAULT_LIMIT
from .types import ToolResult


class ToolArgumentError(ValueError):
    pass


def _require(arguments: dict[str, Any], name: str) -> Any:
    value = arguments.get(name)
    if value is None or (isinstance(value, str) and not value.strip() and name != "text"):
        raise ToolArgumentError(f"Missing required argument: {name}")
    return value


def _options(arguments: dict[str, Any], mapping: dict[str, str]) -> dict[str, Any] | None:
    options = {wire: arguments[arg] for arg, wire in mapping.items() if arguments.get(arg) is not None}
    return options or None


def check_navigation_url(url: str, config: LensConfig) -> None:
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ToolArgumentError("Only http/https URLs can be opened")
    if not config.is_host_allowed(parsed.hostname or ""):
        raise ToolArgumentError(f"Host {parsed.hostname} is not in allowlist (set LENS_ALLOW_HOSTS)")


def handle_state(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json(client.get_state())


def handle_navigate(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    url = str(_require(arguments, "url")).strip()
    check_navigation_url(url, config)
    result = client.navigate(url)
    if isinstance(result, dict) and result.get("success") is False:
        return ToolResult.error(str(result.get("error") or "Navigation failed"), tool="browser_navigate")
    return ToolResult.json(result)


def handle_inspect(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    info = client.inspect(arguments.get("selector"), arguments.get("x"), arguments.get("y"))
    if info is None:
        return ToolResult.text("No element found")
    return ToolResult.json(info)


def handle_highlight(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json(client.highlight(_require(arguments, "selector"), arguments.get("color"), arguments.get("duration")))


def handle_clear_highlights(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json(client.clear_highlights())


def handle_screenshot(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.image(client.screenshot(arguments.get("selector")))


def handle_console(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    limit = arguments.get("limit")
    logs = client.console(arguments.get("level"), CONSOLE_DEFAULT_LIMIT if limit is None else limit)
    return ToolResult.json({"logs": logs, "count": len(logs)})


def handle_reload(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json(client.reload())


def handle_click(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    options = _options(arguments, {"button": "button", "click_count": "clickCount", "delay": "delay", "timeout": "timeout"})
    return ToolResult.json(client.click(_require(arguments, "selector"), options))


def handle_type(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    options = _options(arguments, {"clear_first": "clearFirst", "delay": "delay", "timeout": "timeout"})
    return ToolResult.json(client.type(_require(arguments, "selector"), _require(arguments, "text"), options))


def handle_wait_for(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    options = _options(arguments, {"visible": "visible", "timeout": "timeout"})
    return ToolResult.json(client.wait_for(_require(arguments, "selector"), options))


def handle_fill(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    value = arguments.get("value")
    if value is None:
        raise ToolArgumentError("Missing required argument: value")
    return ToolResult.json(client.fill(_require(arguments, "selector"), value))


def handle_select_option(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json(client.select_option(_require(arguments, "selector"), _require(arguments, "values")))


def handle_hover(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json(client.hover(_require(arguments, "selector")))


def handle_press_key(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    key = arguments.get("key")
    if not isinstance(key, str) or not key:
        raise ToolArgumentError("Missing required argument: key")
    return ToolResult.json(client.press_key(key))


def handle_drag(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json(client.drag_and_drop(_require(arguments, "source"), _require(arguments, "target")))


def handle_scroll(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    options = _options(arguments, {"selector": "selector", "direction": "direction", "distance": "distance"})
    return ToolResult.json(client.scroll(options))


def handle_wait_for_response(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json(client.wait_for_response(_require(arguments, "url_pattern"), arguments.get("timeout")))


def handle_get_text(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.text(client.get_text(_require(arguments, "selector")))


def handle_get_attribute(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    value = client.get_attribute(_require(arguments, "selector"), _require(arguments, "name"))
    return ToolResult.json({"value": value})


def handle_is_visible(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json({"visible": client.is_visible(_require(arguments, "selector"))})


def handle_is_enabled(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json({"enabled": client.is_enabled(_require(arguments, "selector"))})


def handle_is_checked(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json({"checked": client.is_checked(_require(arguments, "selector"))})


def handle_evaluate(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json({"result": client.evaluate(_require(arguments, "script"))})


def handle_snapshot(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json(client.accessibility_snapshot())


def handle_go_back(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json(client.go_back())


def handle_go_forward(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json(client.go_forward())


def handle_dialog(client: BridgeClient, config: LensConfig, arguments: dict[str, Any]) -> ToolResult:
    return ToolResult.json(client.set_dialog_handler(_require(arguments, "action")))


TOOL_HANDLERS = {
    "browser_state": handle_state,
    "browser_navigate": handle_navigate,
    "browser_inspect": handle_inspect,
    "browser_highlight": handle_highlight,
    "browser_clear_highlights": handle_clear_highlights,
    "browser_screenshot": handle_screenshot,
    "browser_console": handle_console,
    "browser_reload": handle_reload,
    "browser_click": handle_click,
    "browser_type": handle_type,
    "browser_wait_for": handle_wait_for,
    "browser_fill": handle_fill,
    "browser_select_option": handle_select_option,
    "browser_hover": handle_hover,
    "browser_press_key": handle_press_key,
    "browser_drag": handle_drag,
    "browser_scroll": handle_scroll,
    "browser_wait_for_response": handle_wait_for_response,
    "browser_get_text": handle_get_text,
    "browser_get_attribute": handle_get_attribute,
    "browser_is_visible": handle_is_visible,
    "browser_is_enabled": handle_is_enabled,
    "browser_is_checked": handle_is_checked,
    "browser_evaluate": handle_evaluate,
    "browser_snapshot": handle_snapshot,
    "browser_go_back": handle_go_back,
    "browser_go_forward": handle_go_forward,
    "browser_handle_dialog": handle_dialog,
}
