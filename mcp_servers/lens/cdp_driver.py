"""
Chrome DevTools Protocol implementation of the capability interface.

`CdpTransport` talks to the browser's /json HTTP endpoints; `CdpPage` drives one
page over its own WebSocket and keeps a `PageEventBus` alive for console,
navigation, dialog and network events.
"""

from __future__ import annotations

import base64
import fnmatch
import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from .browser_session import BrowserSession
from .capability import OPTIONAL_OPERATIONS, BrowserCapability, BrowserTransport
from .config import LensConfig
from .console import ConsoleBuffer
from .errors import (
    ElementNotFoundError,
    LensError,
    PageClosedError,
    ScriptError,
    SelectorError,
    TransportError,
    TransportTimeoutError,
    ValidationError,
)
from .models import ClickOptions, ConsoleMessage, PageTarget, ScrollOptions, TypeOptions, WaitForOptions
from .page_events import DIALOG_ACTIONS, PageEventBus
from .page_scripts import (
    ACCESSIBILITY_SNAPSHOT_JS,
    ATTRIBUTE_BODY,
    CENTER_BODY,
    CHECKED_BODY,
    ENABLED_BODY,
    FILL_BODY,
    FOCUS_BODY,
    HIGHLIGHT_BODY,
    HIGHLIGHT_CLASS,
    RECT_BODY,
    SCROLL_BODY,
    SELECT_BODY,
    TEXT_BODY,
    VISIBLE_BODY,
    WAIT_BODY,
    clear_highlights_script,
    element_script,
    scroll_window_script,
)
from .session_cdp import CdpConnection, http_get_json

logger = logging.getLogger("mcp.lens.cdp")

WAIT_POLL_INTERVAL = 0.1


def url_matches_pattern(url: str, pattern: str) -> bool:
    """Glob when the pattern has wildcards, substring otherwise."""
    if any(ch in pattern for ch in "*?["):
        return fnmatch.fnmatchcase(url, pattern)
    return pattern in url


class CdpPage(BrowserCapability):
    """One page driven over CDP."""

    supported_operations = OPTIONAL_OPERATIONS

    def __init__(
        self,
        target: PageTarget,
        *,
        console: ConsoleBuffer,
        timeout: float = 10.0,
        connect: Callable[[str], CdpConnection] | None = None,
    ) -> None:
        super().__init__(target)
        self.console = console
        self.timeout = timeout
        self._connect = connect or (lambda url: CdpConnection(url, timeout=timeout))
        self.session: BrowserSession | None = None
        self.bus: PageEventBus | None = None
        self._url = target.url

    # Lifecycle

    def connect(self) -> None:
        if not self.target.ws_url:
            raise TransportError(f"Page {self.target.id} has no debugger URL (already attached elsewhere?)")
        conn = self._connect(self.target.ws_url)
        self.session = BrowserSession(conn, self.target.id, self.target.url)
        self.session.enable_domains("Page", "Runtime")
        self.bus = PageEventBus(
            ws_url=self.target.ws_url,
            events=self.events,
            console=self.console,
            name=f"lens-events-{self.target.id[:8]}",
            connect=self._connect,
        )
        self.events.navigate.subscribe(self._on_navigate)
        self.bus.start()

    def disconnect(self) -> None:
        if self.bus is not None:
            self.bus.stop()
            self.bus = None
        if self.session is not None:
            self.session.close()
            self.session = None
        self.events.clear()

    def is_connected(self) -> bool:
        return self.session is not None and not self.session.conn.closed

    def is_closed(self) -> bool:
        if self.session is None or self.session.conn.closed:
            return True
        return self.bus is not None and self.bus.lost.is_set()

    def _on_navigate(self, url: str) -> None:
        self._url = url

    def _require(self) -> BrowserSession:
        if self.session is None or self.session.conn.closed:
            raise PageClosedError(f"Page {self.target.id} is not attached")
        return self.session

    # Navigation

    def current_url(self) -> str:
        return self._url

    def navigate(self, url: str, *, timeout_ms: int) -> None:
        self._require().navigate(url, timeout=timeout_ms / 1000.0)
        self._url = url

    def reload(self, *, timeout_ms: int) -> None:
        self._require().reload(timeout=timeout_ms / 1000.0)

    def go_back(self, *, timeout_ms: int) -> None:
        self._history(-1, timeout_ms)

    def go_forward(self, *, timeout_ms: int) -> None:
        self._history(1, timeout_ms)

    def _history(self, delta: int, timeout_ms: int) -> None:
        session = self._require()
        if not session.go_history(delta, timeout=timeout_ms / 1000.0):
            raise LensError("No history entry to go " + ("back" if delta < 0 else "forward") + " to")
        self._url = session.url

    # Scripts

    def execute_script(self, source: str) -> Any:
        return self._require().eval_js(source, timeout=self.timeout)

    def evaluate(self, script: str) -> Any:
        return self.execute_script(script)

    def _element(self, selector: str, body: str, args: Any = None) -> Any:
        result = self.execute_script(element_script(selector, body, args))
        if not isinstance(result, dict):
            raise ScriptError(f"Unexpected page script result for {selector!r}")
        if result.get("ok"):
            return result.get("value")
        reason = result.get("reason")
        if reason == "not_found":
            raise ElementNotFoundError(selector)
        if reason == "invalid_selector":
            raise SelectorError(selector, str(result.get("message") or "querySelector rejected the selector"))
        raise LensError(str(result.get("message") or reason or "Page script failed"))

    def _center(self, selector: str) -> tuple[float, float]:
        box = self._element(selector, CENTER_BODY)
        if not box.get("visible"):
            raise ElementNotFoundError(selector)
        return float(box["x"]), float(box["y"])

    # Page access

    def screenshot(self, selector: str | None = None) -> bytes:
        clip = None
        if selector:
            rect = self._element(selector, RECT_BODY)
            if rect["width"] <= 0 or rect["height"] <= 0:
                raise ElementNotFoundError(selector)
            clip = {k: float(rect[k]) for k in ("x", "y", "width", "height")}
        data = self._require().screenshot(clip)
        if not data:
            raise ScriptError("Screenshot data is empty")
        return base64.b64decode(data)

    def highlight(self, selector: str, *, color: str, duration_ms: int) -> None:
        self._element(selector, HIGHLIGHT_BODY, {"color": color, "duration": duration_ms, "cls": HIGHLIGHT_CLASS})

    def clear_highlights(self) -> None:
        self.execute_script(clear_highlights_script())

    def get_console_logs(self, *, level: str | None = None, limit: int | None = None) -> list[ConsoleMessage]:
        return self.console.query(level=level, limit=limit)

    # Automation primitives

    def click(self, selector: str, options: ClickOptions) -> None:
        x, y = self._center(selector)
        self._require().click(x, y, options.button, options.click_count, delay=options.delay_ms / 1000.0)

    def type(self, selector: str, text: str, options: TypeOptions) -> None:
        focused = self._element(selector, FOCUS_BODY, {"clear": options.clear_first})
        if not focused:
            x, y = self._center(selector)
            self._require().click(x, y)
        self._require().type_text(text, delay=options.delay_ms / 1000.0)

    def wait_for(self, selector: str, options: WaitForOptions, *, timeout_ms: int) -> None:
        deadline = time.monotonic() + timeout_ms / 1000.0
        args = {"visible": options.visible}
        while True:
            try:
                self._element(selector, WAIT_BODY, args)
                return
            except ElementNotFoundError:
                if time.monotonic() >= deadline:
                    raise
            time.sleep(WAIT_POLL_INTERVAL)

    def fill(self, selector: str, value: str) -> None:
        self._element(selector, FILL_BODY, {"value": value})

    def select_option(self, selector: str, values: list[str]) -> list[str]:
        return list(self._element(selector, SELECT_BODY, {"values": values}) or [])

    def hover(self, selector: str) -> None:
        x, y = self._center(selector)
        self._require().move_mouse(x, y)

    def press_key(self, key: str) -> None:
        self._require().press_key(key)

    def drag_and_drop(self, source: str, target: str) -> None:
        sx, sy = self._center(source)
        tx, ty = self._center(target)
        self._require().drag(sx, sy, tx, ty)

    def scroll(self, options: ScrollOptions) -> None:
        if options.selector:
            args = {"direction": options.direction, "distance": options.distance}
            self._element(options.selector, SCROLL_BODY, args)
        else:
            self.execute_script(scroll_window_script(options.direction or "down", options.distance))

    def wait_for_response(self, url_pattern: str, *, timeout_ms: int) -> dict[str, Any]:
        matched: dict[str, Any] = {}
        done = threading.Event()

        def on_response(response: dict[str, Any]) -> None:
            if not done.is_set() and url_matches_pattern(response.get("url", ""), url_pattern):
                matched.update(response)
                done.set()

        with self.events.response.subscribe(on_response):
            if not done.wait(timeout_ms / 1000.0):
                raise TransportTimeoutError(f"No response matching {url_pattern!r}")
        return matched

    def get_text(self, selector: str) -> str:
        return str(self._element(selector, TEXT_BODY) or "")

    def get_attribute(self, selector: str, name: str) -> str | None:
        return self._element(selector, ATTRIBUTE_BODY, {"name": name})

    def is_visible(self, selector: str) -> bool:
        try:
            return bool(self._element(selector, VISIBLE_BODY))
        except ElementNotFoundError:
            return False

    def is_enabled(self, selector: str) -> bool:
        return bool(self._element(selector, ENABLED_BODY))

    def is_checked(self, selector: str) -> bool:
        return bool(self._element(selector, CHECKED_BODY))

    def accessibility_snapshot(self) -> Any:
        return self.execute_script(ACCESSIBILITY_SNAPSHOT_JS)

    def set_dialog_handler(self, action: str) -> None:
        if action not in DIALOG_ACTIONS:
            raise ValidationError(f"Invalid dialog action: {action}", field="action")
        if self.bus is None:
            raise PageClosedError(f"Page {self.target.id} is not attached")
        self.bus.dialog_action = action


class CdpTransport(BrowserTransport):
    """Remote-debugging browser reachable over HTTP + WebSocket."""

    page_class = CdpPage

    def __init__(self, config: LensConfig, console: ConsoleBuffer) -> None:
        self.config = config
        self.console = console
        self.version: dict[str, Any] | None = None

    def connect(self) -> None:
        version = http_get_json(f"{self.config.cdp_url}/json/version")
        if not isinstance(version, dict):
            raise TransportError("DevTools /json/version returned an unexpected payload")
        self.version = version
        logger.info("cdp connected browser=%s", version.get("Browser", "?"))

    def close(self) -> None:
        self.version = None

    def is_connected(self) -> bool:
        return self.version is not None

    def list_pages(self) -> list[PageTarget]:
        try:
            raw = http_get_json(f"{self.config.cdp_url}/json/list")
        except TransportError:
            self.version = None
            raise
        pages: list[PageTarget] = []
        for item in raw if isinstance(raw, list) else []:
            if not isinstance(item, dict) or item.get("type") != "page":
                continue
            pages.append(
                PageTarget(
                    id=str(item.get("id") or ""),
                    url=str(item.get("url") or ""),
                    title=str(item.get("title") or ""),
                    type="page",
                    ws_url=item.get("webSocketDebuggerUrl"),
                    context_id=item.get("browserContextId"),
                )
            )
        return pages

    def attach(self, target: PageTarget) -> CdpPage:
        page = CdpPage(target, console=self.console, timeout=self.config.operation_timeout_ms / 1000.0)
        page.connect()
        return page
