"""
Bridge handler backed by the session manager.

Every page operation goes through `SessionManager.run`, so calls arriving on
concurrent bridge threads are serialized onto the one attached page.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from .bridge.handler import BridgeHandler
from .capability import BrowserCapability
from .config import LensConfig
from .console import DEFAULT_LIMIT as CONSOLE_DEFAULT_LIMIT
from .console import ConsoleBuffer
from .errors import NavigationError
from .models import (
    BridgeState,
    ClickOptions,
    ConsoleMessage,
    ElementInfo,
    ScrollOptions,
    TypeOptions,
    WaitForOptions,
)
from .session_manager import SessionManager

logger = logging.getLogger("mcp.lens.bridge")

T = TypeVar("T")

STATE_CONSOLE_LIMIT = 50


class LensBridgeHandler(BridgeHandler):
    def __init__(self, manager: SessionManager, console: ConsoleBuffer, config: LensConfig | None = None) -> None:
        self.manager = manager
        self.console = console
        self.config = config or manager.config
        self._last_element: ElementInfo | None = None

    def supports(self, operation: str) -> bool:
        return self.manager.supports(operation)

    # Helpers

    def _retries(self) -> int:
        return max(0, self.config.operation_retries)

    def _element_action(
        self,
        action: str,
        selector: str,
        fn: Callable[[BrowserCapability], T],
        timeout_ms: int | None = None,
    ) -> T:
        """Wait for `selector` to exist, then run `fn`; both inside one session call."""
        timeout_ms = timeout_ms or self.config.operation_timeout_ms
        per_attempt = max(1, timeout_ms // (self._retries() + 1))

        def run(page: BrowserCapability) -> T:
            page.wait_for(selector, WaitForOptions(visible=False), timeout_ms=per_attempt)
            return fn(page)

        return self.manager.run(action, run, target=selector, timeout_ms=timeout_ms)

    def _remember(self, info: ElementInfo | None) -> ElementInfo | None:
        if info is not None:
            self._last_element = info
        return info

    # Required operations

    def get_state(self) -> BridgeState:
        return BridgeState(
            connected=self.manager.is_connected(),
            current_url=self.manager.current_url(),
            last_inspected_element=self._last_element,
            console_logs=self.console.query(limit=STATE_CONSOLE_LIMIT),
        )

    def navigate(self, url: str) -> dict[str, Any]:
        timeout_ms = self.config.navigation_timeout_ms
        try:
            self.manager.run(
                "navigate",
                lambda page: page.navigate(url, timeout_ms=timeout_ms),
                target=url,
                navigation=True,
                retries=0,
            )
        except NavigationError as exc:
            logger.info("navigate failed url=%s: %s", url, exc)
            return {"success": False, "error": str(exc)}
        return {"success": True, "url": self.manager.current_url() or url}

    def inspect_element(self, selector: str) -> ElementInfo | None:
        info = self.manager.run("inspect", lambda page: page.inspect_element(selector), target=selector)
        return self._remember(info)

    def inspect_element_at_point(self, x: float, y: float) -> ElementInfo | None:
        info = self.manager.run(
            "inspect",
            lambda page: page.inspect_element_at_point(x, y),
            target=f"({x:g}, {y:g})",
        )
        return self._remember(info)

    def inspect_last_element(self) -> ElementInfo | None:
        info = self.manager.run("inspect", lambda page: page.inspect_last_element())
        return self._remember(info)

    def highlight(self, selector: str, color: str, duration_ms: int) -> None:
        self._element_action(
            "highlight",
            selector,
            lambda page: page.highlight(selector, color=color, duration_ms=duration_ms),
        )

    def clear_highlights(self) -> None:
        self.manager.run("clear highlights", lambda page: page.clear_highlights())

    def screenshot(self, selector: str | None) -> bytes:
        if selector:
            return self._element_action("screenshot", selector, lambda page: page.screenshot(selector))
        return self.manager.run("screenshot", lambda page: page.screenshot(None))

    def get_console_logs(self, level: str | None, limit: int | None) -> list[ConsoleMessage]:
        # The buffer is filled by the page event bus; reading it needs no session.
        return self.console.query(level=level, limit=CONSOLE_DEFAULT_LIMIT if limit is None else limit)

    def reload(self) -> None:
        timeout_ms = self.config.navigation_timeout_ms
        self.manager.run("reload", lambda page: page.reload(timeout_ms=timeout_ms), navigation=True, retries=0)

    def click(self, selector: str, options: ClickOptions) -> None:
        self._element_action("click", selector, lambda page: page.click(selector, options), options.timeout_ms)

    def type(self, selector: str, text: str, options: TypeOptions) -> None:
        self._element_action("type", selector, lambda page: page.type(selector, text, options), options.timeout_ms)

    def wait_for(self, selector: str, options: WaitForOptions) -> None:
        timeout_ms = options.timeout_ms or self.config.wait_for_timeout_ms
        self.manager.run(
            "wait for",
            lambda page: page.wait_for(selector, options, timeout_ms=timeout_ms),
            target=selector,
            timeout_ms=timeout_ms,
            retries=0,
        )

    # Optional operations

    def fill(self, selector: str, value: str) -> None:
        self._element_action("fill", selector, lambda page: page.fill(selector, value))

    def select_option(self, selector: str, values: list[str]) -> list[str]:
        return self._element_action("select option", selector, lambda page: page.select_option(selector, values))

    def hover(self, selector: str) -> None:
        self._element_action("hover", selector, lambda page: page.hover(selector))

    def press_key(self, key: str) -> None:
        self.manager.run("press key", lambda page: page.press_key(key), target=key)

    def drag_and_drop(self, source: str, target: str) -> None:
        def drag(page: BrowserCapability) -> None:
            page.wait_for(target, WaitForOptions(visible=False), timeout_ms=self.config.operation_timeout_ms)
            page.drag_and_drop(source, target)

        self._element_action("drag", source, drag)

    def scroll(self, options: ScrollOptions) -> None:
        if options.selector:
            self._element_action("scroll", options.selector, lambda page: page.scroll(options))
        else:
            self.manager.run("scroll", lambda page: page.scroll(options))

    def wait_for_response(self, url_pattern: str, timeout_ms: int | None) -> dict[str, Any]:
        timeout_ms = timeout_ms or self.config.operation_timeout_ms
        return self.manager.run(
            "wait for response",
            lambda page: page.wait_for_response(url_pattern, timeout_ms=timeout_ms),
            target=url_pattern,
            timeout_ms=timeout_ms,
            retries=0,
        )

    def get_text(self, selector: str) -> str:
        return self._element_action("get text", selector, lambda page: page.get_text(selector))

    def get_attribute(self, selector: str, name: str) -> str | None:
        return self._element_action("get attribute", selector, lambda page: page.get_attribute(selector, name))

    def is_visible(self, selector: str) -> bool:
        # Absence is an answer here, not a failure.
        return self.manager.run("is visible", lambda page: page.is_visible(selector), target=selector, retries=0)

    def is_enabled(self, selector: str) -> bool:
        return self._element_action("is enabled", selector, lambda page: page.is_enabled(selector))

    def is_checked(self, selector: str) -> bool:
        return self._element_action("is checked", selector, lambda page: page.is_checked(selector))

    def evaluate(self, script: str) -> Any:
        return self.manager.run("evaluate", lambda page: page.evaluate(script), retries=0)

    def accessibility_snapshot(self) -> Any:
        return self.manager.run("accessibility snapshot", lambda page: page.accessibility_snapshot())

    def go_back(self) -> None:
        timeout_ms = self.config.navigation_timeout_ms
        self.manager.run("go back", lambda page: page.go_back(timeout_ms=timeout_ms), navigation=True, retries=0)

    def go_forward(self) -> None:
        timeout_ms = self.config.navigation_timeout_ms
        self.manager.run("go forward", lambda page: page.go_forward(timeout_ms=timeout_ms), navigation=True, retries=0)

    def set_dialog_handler(self, action: str) -> None:
        self.manager.run("set dialog handler", lambda page: page.set_dialog_handler(action), retries=0)
