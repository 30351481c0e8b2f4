"""
Bridge operation table.

Each operation pairs a pure `parse(body)` step with a `call(handler, args)` step so
input validation always finishes before the handler is touched.
"""

from __future__ import annotations

import base64
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..capability import OPTIONAL_OPERATIONS, REQUIRED_OPERATIONS
from ..errors import ValidationError
from ..models import CONSOLE_LEVELS
from ..selectors import validate_selector
from . import validation as v
from .handler import BridgeHandler

DEFAULT_HIGHLIGHT_COLOR = "#3b82f6"
DEFAULT_HIGHLIGHT_DURATION_MS = 3000
DIALOG_ACTIONS = ("accept", "dismiss")

SUCCESS: dict[str, Any] = {"success": True}


@dataclass(frozen=True, slots=True)
class Operation:
    name: str
    required: bool
    parse: Callable[[dict[str, Any]], dict[str, Any]]
    call: Callable[[BridgeHandler, dict[str, Any]], Any]

    @property
    def path(self) -> str:
        return "/" + self.name


class OperationRegistry:
    """Registry of bridge operations keyed by name (path without the slash)."""

    def __init__(self) -> None:
        self._operations: dict[str, Operation] = {}

    def register(
        self,
        name: str,
        parse: Callable[[dict[str, Any]], dict[str, Any]],
        call: Callable[[BridgeHandler, dict[str, Any]], Any],
    ) -> None:
        if name not in REQUIRED_OPERATIONS and name not in OPTIONAL_OPERATIONS:
            raise ValueError(f"Unknown bridge operation: {name}")
        self._operations[name] = Operation(name, name in REQUIRED_OPERATIONS, parse, call)

    def get(self, name: str) -> Operation | None:
        return self._operations.get(name)

    def names(self) -> list[str]:
        return sorted(self._operations)

    def __len__(self) -> int:
        return len(self._operations)


def to_jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    return value


# Parsers


def _none(body: dict[str, Any]) -> dict[str, Any]:
    return {}


def _selector(body: dict[str, Any]) -> dict[str, Any]:
    return {"selector": validate_selector(body.get("selector"))}


def _parse_navigate(body: dict[str, Any]) -> dict[str, Any]:
    return {"url": v.require_string(body, "url")}


def _parse_inspect(body: dict[str, Any]) -> dict[str, Any]:
    if body.get("x") is not None or body.get("y") is not None:
        return {"x": v.require_number(body, "x"), "y": v.require_number(body, "y")}
    if body.get("selector") is not None:
        return _selector(body)
    return {}


def _parse_highlight(body: dict[str, Any]) -> dict[str, Any]:
    duration = v.optional_number(body, "duration", minimum=0)
    return {
        **_selector(body),
        "color": v.optional_string(body, "color") or DEFAULT_HIGHLIGHT_COLOR,
        "duration_ms": DEFAULT_HIGHLIGHT_DURATION_MS if duration is None else int(duration),
    }


def _parse_screenshot(body: dict[str, Any]) -> dict[str, Any]:
    if body.get("selector") is None:
        return {"selector": None}
    return _selector(body)


def _parse_console(body: dict[str, Any]) -> dict[str, Any]:
    return {
        "level": v.optional_choice(body, "level", ("all", *CONSOLE_LEVELS)),
        "limit": v.optional_int(body, "limit", minimum=0),
    }


def _parse_click(body: dict[str, Any]) -> dict[str, Any]:
    return {**_selector(body), "options": v.click_options(v.optional_object(body, "options"))}


def _parse_type(body: dict[str, Any]) -> dict[str, Any]:
    return {
        **_selector(body),
        "text": v.require_string(body, "text", allow_blank=True),
        "options": v.type_options(v.optional_object(body, "options")),
    }


def _parse_wait_for(body: dict[str, Any]) -> dict[str, Any]:
    return {**_selector(body), "options": v.wait_for_options(v.optional_object(body, "options"))}


def _parse_fill(body: dict[str, Any]) -> dict[str, Any]:
    return {**_selector(body), "value": v.require_string(body, "value", allow_blank=True)}


def _parse_select_option(body: dict[str, Any]) -> dict[str, Any]:
    return {**_selector(body), "values": v.require_string_list(body, "values")}


def _parse_press_key(body: dict[str, Any]) -> dict[str, Any]:
    key = body.get("key")
    # A single space is a valid key.
    if key == " ":
        return {"key": key}
    return {"key": v.require_string(body, "key")}


def _parse_drag(body: dict[str, Any]) -> dict[str, Any]:
    return {
        "source": validate_selector(body.get("source"), field="source"),
        "target": validate_selector(body.get("target"), field="target"),
    }


def _parse_scroll(body: dict[str, Any]) -> dict[str, Any]:
    options = v.scroll_options(v.optional_object(body, "options"))
    if options.selector is not None:
        validate_selector(options.selector)
    return {"options": options}


def _parse_wait_for_response(body: dict[str, Any]) -> dict[str, Any]:
    return {
        "url_pattern": v.require_string(body, "urlPattern"),
        "timeout_ms": v.optional_int(body, "timeout", minimum=1),
    }


def _parse_get_attribute(body: dict[str, Any]) -> dict[str, Any]:
    return {**_selector(body), "name": v.require_string(body, "name")}


def _parse_evaluate(body: dict[str, Any]) -> dict[str, Any]:
    return {"script": v.require_string(body, "script")}


def _parse_dialog(body: dict[str, Any]) -> dict[str, Any]:
    return {"action": v.require_choice(body, "action", DIALOG_ACTIONS)}


# Calls


def _inspect(handler: BridgeHandler, a: dict[str, Any]) -> Any:
    if "x" in a:
        return handler.inspect_element_at_point(a["x"], a["y"])
    if "selector" in a:
        return handler.inspect_element(a["selector"])
    return handler.inspect_last_element()


def _done(fn: Callable[[BridgeHandler, dict[str, Any]], Any]) -> Callable[[BridgeHandler, dict[str, Any]], Any]:
    def call(handler: BridgeHandler, a: dict[str, Any]) -> dict[str, Any]:
        fn(handler, a)
        return SUCCESS

    return call


def create_default_registry() -> OperationRegistry:
    registry = OperationRegistry()
    r = registry.register

    r("state", _none, lambda h, a: h.get_state())
    r("navigate", _parse_navigate, lambda h, a: h.navigate(a["url"]))
    r("inspect", _parse_inspect, _inspect)
    r("highlight", _parse_highlight, _done(lambda h, a: h.highlight(a["selector"], a["color"], a["duration_ms"])))
    r("clear-highlights", _none, _done(lambda h, a: h.clear_highlights()))
    r(
        "screenshot",
        _parse_screenshot,
        lambda h, a: {"image": base64.b64encode(h.screenshot(a["selector"])).decode("ascii")},
    )
    r("console", _parse_console, lambda h, a: {"logs": h.get_console_logs(a["level"], a["limit"])})
    r("reload", _none, _done(lambda h, a: h.reload()))
    r("click", _parse_click, _done(lambda h, a: h.click(a["selector"], a["options"])))
    r("type", _parse_type, _done(lambda h, a: h.type(a["selector"], a["text"], a["options"])))
    r("wait-for", _parse_wait_for, _done(lambda h, a: h.wait_for(a["selector"], a["options"])))

    r("fill", _parse_fill, _done(lambda h, a: h.fill(a["selector"], a["value"])))
    r(
        "select-option",
        _parse_select_option,
        lambda h, a: {"success": True, "selected": h.select_option(a["selector"], a["values"])},
    )
    r("hover", _selector, _done(lambda h, a: h.hover(a["selector"])))
    r("press-key", _parse_press_key, _done(lambda h, a: h.press_key(a["key"])))
    r("drag-and-drop", _parse_drag, _done(lambda h, a: h.drag_and_drop(a["source"], a["target"])))
    r("scroll", _parse_scroll, _done(lambda h, a: h.scroll(a["options"])))
    r("wait-for-response", _parse_wait_for_response, lambda h, a: h.wait_for_response(a["url_pattern"], a["timeout_ms"]))
    r("get-text", _selector, lambda h, a: {"text": h.get_text(a["selector"])})
    r("get-attribute", _parse_get_attribute, lambda h, a: {"value": h.get_attribute(a["selector"], a["name"])})
    r("is-visible", _selector, lambda h, a: {"visible": h.is_visible(a["selector"])})
    r("is-enabled", _selector, lambda h, a: {"enabled": h.is_enabled(a["selector"])})
    r("is-checked", _selector, lambda h, a: {"checked": h.is_checked(a["selector"])})
    r("evaluate", _parse_evaluate, lambda h, a: {"result": h.evaluate(a["script"])})
    r("accessibility-snapshot", _none, lambda h, a: {"snapshot": h.accessibility_snapshot()})
    r("go-back", _none, _done(lambda h, a: h.go_back()))
    r("go-forward", _none, _done(lambda h, a: h.go_forward()))
    r("set-dialog-handler", _parse_dialog, _done(lambda h, a: h.set_dialog_handler(a["action"])))
    return registry


def parse_request_body(body: Any) -> dict[str, Any]:
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body
