"""Parameter validation for bridge request bodies."""

from __future__ import annotations

import math
from typing import Any

from ..errors import ValidationError
from ..models import ClickOptions, ScrollOptions, TypeOptions, WaitForOptions

MOUSE_BUTTONS = ("left", "right", "middle")
SCROLL_DIRECTIONS = ("up", "down", "left", "right")


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def require_string(body: dict[str, Any], name: str, *, allow_blank: bool = False) -> str:
    if name not in body or body[name] is None:
        raise ValidationError(f"Missing required parameter: {name}", field=name)
    value = body[name]
    if not isinstance(value, str):
        raise ValidationError(f"Invalid parameter {name}: expected string, got {_type_name(value)}", field=name)
    if not allow_blank and not value.strip():
        raise ValidationError(f"Parameter {name} cannot be empty", field=name)
    return value if allow_blank else value.strip()


def optional_string(body: dict[str, Any], name: str) -> str | None:
    if body.get(name) is None:
        return None
    value = body[name]
    if not isinstance(value, str):
        raise ValidationError(f"Invalid parameter {name}: expected string, got {_type_name(value)}", field=name)
    return value.strip() or None


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValidationError(f"Invalid parameter {name}: expected finite number, got {value!r}", field=name)
    return float(value)


def require_number(body: dict[str, Any], name: str) -> float:
    if body.get(name) is None:
        raise ValidationError(f"Missing required parameter: {name}", field=name)
    return _number(body[name], name)


def optional_number(body: dict[str, Any], name: str, *, minimum: float | None = None) -> float | None:
    if body.get(name) is None:
        return None
    value = _number(body[name], name)
    if minimum is not None and value < minimum:
        raise ValidationError(f"Invalid parameter {name}: must be >= {minimum:g}", field=name)
    return value


def optional_int(body: dict[str, Any], name: str, *, minimum: int = 0) -> int | None:
    value = optional_number(body, name, minimum=minimum)
    return None if value is None else int(value)


def optional_bool(body: dict[str, Any], name: str) -> bool | None:
    if body.get(name) is None:
        return None
    value = body[name]
    if not isinstance(value, bool):
        raise ValidationError(f"Invalid parameter {name}: expected boolean, got {_type_name(value)}", field=name)
    return value


def optional_object(body: dict[str, Any], name: str) -> dict[str, Any]:
    if body.get(name) is None:
        return {}
    value = body[name]
    if not isinstance(value, dict):
        raise ValidationError(f"Invalid parameter {name}: expected object, got {_type_name(value)}", field=name)
    return value


def require_choice(body: dict[str, Any], name: str, choices: tuple[str, ...]) -> str:
    value = require_string(body, name)
    if value not in choices:
        raise ValidationError(f"Invalid parameter {name}: expected one of {', '.join(choices)}, got {value!r}", field=name)
    return value


def optional_choice(body: dict[str, Any], name: str, choices: tuple[str, ...]) -> str | None:
    value = optional_string(body, name)
    if value is not None and value not in choices:
        raise ValidationError(f"Invalid parameter {name}: expected one of {', '.join(choices)}, got {value!r}", field=name)
    return value


def require_string_list(body: dict[str, Any], name: str) -> list[str]:
    """A single string or a non-empty list of strings."""
    if body.get(name) is None:
        raise ValidationError(f"Missing required parameter: {name}", field=name)
    value = body[name]
    items = [value] if isinstance(value, str) else value
    if not isinstance(items, list) or not items or not all(isinstance(v, str) for v in items):
        raise ValidationError(
            f"Invalid parameter {name}: expected string or array of strings, got {_type_name(value)}", field=name
        )
    return list(items)


def click_options(raw: dict[str, Any]) -> ClickOptions:
    return ClickOptions(
        button=optional_choice(raw, "button", MOUSE_BUTTONS) or "left",
        click_count=optional_int(raw, "clickCount", minimum=1) or 1,
        delay_ms=optional_int(raw, "delay") or 0,
        timeout_ms=optional_int(raw, "timeout", minimum=1),
    )


def type_options(raw: dict[str, Any]) -> TypeOptions:
    return TypeOptions(
        clear_first=bool(optional_bool(raw, "clearFirst")),
        delay_ms=optional_int(raw, "delay") or 0,
        timeout_ms=optional_int(raw, "timeout", minimum=1),
    )


def wait_for_options(raw: dict[str, Any]) -> WaitForOptions:
    visible = optional_bool(raw, "visible")
    return WaitForOptions(
        timeout_ms=optional_int(raw, "timeout", minimum=1),
        visible=True if visible is None else visible,
    )


def scroll_options(raw: dict[str, Any]) -> ScrollOptions:
    selector = optional_string(raw, "selector")
    direction = optional_choice(raw, "direction", SCROLL_DIRECTIONS)
    if selector is None and direction is None:
        direction = "down"
    return ScrollOptions(
        selector=selector,
        direction=direction,
        distance=optional_int(raw, "distance", minimum=0) or 300,
    )
