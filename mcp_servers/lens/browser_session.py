from __future__ import annotations

import time
from typing import Any
from urllib.parse import urldefrag

from .errors import NavigationError, OperationTimeoutError, ScriptError
from .session_cdp import CdpConnection

# Windows virtual key codes for non-printable keys.
KEY_CODES: dict[str, int] = {
    "Enter": 13,
    "Tab": 9,
    "Escape": 27,
    "Backspace": 8,
    "Delete": 46,
    "ArrowUp": 38,
    "ArrowDown": 40,
    "ArrowLeft": 37,
    "ArrowRight": 39,
    "Home": 36,
    "End": 35,
    "PageUp": 33,
    "PageDown": 34,
    " ": 32,
}

_MODIFIER_BITS = {"Alt": 1, "Control": 2, "Meta": 4, "Shift": 8}


def parse_key_combo(combo: str) -> tuple[str, int]:
    """Split "Control+Shift+K" into ("K", modifier bitmask)."""
    parts = [p for p in combo.split("+") if p] if len(combo) > 1 else [combo]
    modifiers = 0
    for part in parts[:-1]:
        modifiers |= _MODIFIER_BITS.get(part, 0)
    return (parts[-1] if parts else combo), modifiers


def _same_document(a: str, b: str) -> bool:
    """True when two URLs differ at most in their fragment."""
    return bool(a) and urldefrag(a).url == urldefrag(b).url


class BrowserSession:
    """
    CDP command helpers for one page.

    Wraps CdpConnection with the input, navigation and evaluation calls the
    page driver is built from.
    """

    def __init__(self, connection: CdpConnection, target_id: str, url: str = ""):
        self.conn = connection
        self.target_id = target_id
        self.url = url
        self._enabled: set[str] = set()

    def __enter__(self) -> BrowserSession:
        self.enable_domains("Page", "Runtime")
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        self.conn.close()

    def enable_domains(self, *domains: str) -> None:
        """Enable CDP domains once per connection."""
        for domain in domains:
            if domain in self._enabled:
                continue
            self.conn.send(f"{domain}.enable")
            self._enabled.add(domain)

    # Navigation

    def navigate(self, url: str, *, timeout: float) -> None:
        deadline = time.monotonic() + timeout
        self.enable_domains("Page")
        self.conn.clear_events("Page.loadEventFired")
        result = self.conn.send("Page.navigate", {"url": url}, timeout=timeout)
        error_text = result.get("errorText")
        if error_text:
            raise NavigationError(f"Navigation to {url} failed: {error_text}")
        # No loaderId means a same-document navigation, which fires no load event.
        if result.get("loaderId"):
            self._await_load("navigate", url, deadline, timeout)
        self.url = url

    def wait_load(self, timeout: float) -> bool:
        return self.conn.wait_for_event("Page.loadEventFired", max(0.0, timeout)) is not None

    def _await_load(self, action: str, target: str | None, deadline: float, timeout: float) -> None:
        if not self.wait_load(deadline - time.monotonic()):
            raise OperationTimeoutError(
                action,
                target,
                round(timeout * 1000),
                reason="did not finish loading",
                suggestion="Check that the dev server is responding, then retry.",
            )

    def reload(self, *, timeout: float) -> None:
        deadline = time.monotonic() + timeout
        self.enable_domains("Page")
        self.conn.clear_events("Page.loadEventFired")
        self.conn.send("Page.reload", {"ignoreCache": False}, timeout=timeout)
        self._await_load("reload", self.url or None, deadline, timeout)

    def go_history(self, delta: int, *, timeout: float) -> bool:
        """Move through session history. Returns False when there is no entry to move to."""
        deadline = time.monotonic() + timeout
        history = self.conn.send("Page.getNavigationHistory", timeout=timeout)
        entries = history.get("entries") or []
        current = int(history.get("currentIndex", 0))
        index = current + delta
        if index < 0 or index >= len(entries):
            return False
        url = str(entries[index].get("url") or "")
        self.conn.clear_events("Page.loadEventFired")
        self.conn.send("Page.navigateToHistoryEntry", {"entryId": entries[index]["id"]}, timeout=timeout)
        if 0 <= current < len(entries) and not _same_document(str(entries[current].get("url") or ""), url):
            self._await_load("go back" if delta < 0 else "go forward", url or None, deadline, timeout)
        self.url = url or self.url
        return True

    # JavaScript

    def eval_js(self, expression: str, *, timeout: float | None = None) -> Any:
        """Evaluate JavaScript and return the by-value result (undefined/null -> None)."""
        self.enable_domains("Runtime")
        result = self.conn.send(
            "Runtime.evaluate",
            {"expression": expression, "returnByValue": True, "awaitPromise": True},
            timeout=timeout,
        )
        details = result.get("exceptionDetails")
        if details:
            exc = details.get("exception") if isinstance(details, dict) else None
            text = (exc or {}).get("description") or details.get("text") or "Script threw"
            raise ScriptError(str(text).splitlines()[0])
        value = result.get("result")
        if not isinstance(value, dict):
            return None
        if value.get("type") == "undefined":
            return None
        if value.get("type") == "object" and value.get("subtype") == "null":
            return None
        return value.get("value")

    def get_url(self) -> str:
        return self.eval_js("window.location.href") or ""

    # Mouse input

    def _mouse_event(self, event_type: str, x: float, y: float, button: str = "none", click_count: int = 0) -> None:
        self.conn.send(
            "Input.dispatchMouseEvent",
            {"type": event_type, "x": x, "y": y, "button": button, "clickCount": click_count},
        )

    def click(self, x: float, y: float, button: str = "left", click_count: int = 1, delay: float = 0.0) -> None:
        self._mouse_event("mouseMoved", x, y)
        self._mouse_event("mousePressed", x, y, button, click_count)
        if delay > 0:
            time.sleep(delay)
        self._mouse_event("mouseReleased", x, y, button, click_count)

    def move_mouse(self, x: float, y: float) -> None:
        self._mouse_event("mouseMoved", x, y)

    def drag(self, from_x: float, from_y: float, to_x: float, to_y: float, steps: int = 10) -> None:
        steps = max(1, int(steps))
        self._mouse_event("mouseMoved", from_x, from_y)
        self._mouse_event("mousePressed", from_x, from_y, "left", 1)
        for i in range(1, steps + 1):
            progress = i / steps
            self.conn.send(
                "Input.dispatchMouseEvent",
                {
                    "type": "mouseMoved",
                    "x": from_x + (to_x - from_x) * progress,
                    "y": from_y + (to_y - from_y) * progress,
                    "button": "left",
                    "buttons": 1,
                },
            )
            time.sleep(0.01)
        self._mouse_event("mouseReleased", to_x, to_y, "left", 1)

    def wheel(self, x: float, y: float, delta_x: float, delta_y: float) -> None:
        self.conn.send(
            "Input.dispatchMouseEvent",
            {"type": "mouseWheel", "x": x, "y": y, "deltaX": delta_x, "deltaY": delta_y},
        )

    # Keyboard input

    def press_key(self, combo: str) -> None:
        key, modifiers = parse_key_combo(combo)
        key_code = KEY_CODES.get(key, ord(key[0].upper()) if len(key) == 1 else 0)
        if key == " ":
            code = "Space"
        elif len(key) == 1 and key.isalpha():
            code = f"Key{key.upper()}"
        else:
            code = key
        params: dict[str, Any] = {
            "key": key,
            "code": code,
            "windowsVirtualKeyCode": key_code,
            "modifiers": modifiers,
        }
        down = {"type": "keyDown", **params}
        if len(key) == 1 and not modifiers & ~_MODIFIER_BITS["Shift"]:
            down["text"] = key
        self.conn.send("Input.dispatchKeyEvent", down)
        self.conn.send("Input.dispatchKeyEvent", {"type": "keyUp", **params})

    def type_text(self, text: str, delay: float = 0.0) -> None:
        if not text:
            return
        if delay <= 0:
            self.conn.send("Input.insertText", {"text": text})
            return
        for char in text:
            self.conn.send("Input.dispatchKeyEvent", {"type": "char", "text": char})
            time.sleep(delay)

    # Screenshots

    def screenshot(self, clip: dict[str, float] | None = None) -> str:
        """Capture a PNG, return base64 data."""
        params: dict[str, Any] = {"format": "png", "fromSurface": True}
        if clip:
            params["clip"] = {**clip, "scale": 1}
            params["captureBeyondViewport"] = True
        return str(self.conn.send("Page.captureScreenshot", params).get("data") or "")
