"""
Browser capability interface.

`BrowserTransport` discovers and attaches pages; `BrowserCapability` drives one
attached page. Optional operations are declared per driver class through
`supported_operations` and queried with `supports(op)`; an undeclared optional
operation raises `CapabilityUnsupportedError` instead of being missing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from .errors import CapabilityUnsupportedError
from .events import PageEvents
from .inspection import inspect_at_point, inspect_last, inspect_selector
from .models import ClickOptions, ElementInfo, PageTarget, ScrollOptions, TypeOptions, WaitForOptions

REQUIRED_OPERATIONS = frozenset(
    {
        "state",
        "navigate",
        "inspect",
        "highlight",
        "clear-highlights",
        "screenshot",
        "console",
        "reload",
        "click",
        "type",
        "wait-for",
    }
)

OPTIONAL_OPERATIONS = frozenset(
    {
        "fill",
        "select-option",
        "hover",
        "press-key",
        "drag-and-drop",
        "scroll",
        "wait-for-response",
        "get-text",
        "get-attribute",
        "is-visible",
        "is-enabled",
        "is-checked",
        "evaluate",
        "accessibility-snapshot",
        "go-back",
        "go-forward",
        "set-dialog-handler",
    }
)


def method_name(operation: str) -> str:
    return operation.replace("-", "_")


class BrowserCapability(ABC):
    """One attached page."""

    supported_operations: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, target: PageTarget) -> None:
        self.target = target
        self.events = PageEvents()

    @classmethod
    def supports(cls, operation: str) -> bool:
        return operation in REQUIRED_OPERATIONS or operation in cls.supported_operations

    def _unsupported(self, operation: str) -> CapabilityUnsupportedError:
        return CapabilityUnsupportedError(operation)

    # Lifecycle
    @abstractmethod
    def connect(self) -> None: ...

    @abstractmethod
    def disconnect(self) -> None: ...

    @abstractmethod
    def is_connected(self) -> bool: ...

    @abstractmethod
    def is_closed(self) -> bool: ...

    # Navigation
    @abstractmethod
    def current_url(self) -> str:
        """Last known URL; must not block on the browser."""

    @abstractmethod
    def navigate(self, url: str, *, timeout_ms: int) -> None: ...

    @abstractmethod
    def reload(self, *, timeout_ms: int) -> None: ...

    # Page access
    @abstractmethod
    def execute_script(self, source: str) -> Any: ...

    @abstractmethod
    def screenshot(self, selector: str | None = None) -> bytes: ...

    @abstractmethod
    def highlight(self, selector: str, *, color: str, duration_ms: int) -> None: ...

    @abstractmethod
    def clear_highlights(self) -> None: ...

    # Inspection runs the pipeline scripts through execute_script.
    def inspect_element(self, selector: str) -> ElementInfo | None:
        return inspect_selector(self.execute_script, selector)

    def inspect_element_at_point(self, x: float, y: float) -> ElementInfo | None:
        return inspect_at_point(self.execute_script, x, y)

    def inspect_last_element(self) -> ElementInfo | None:
        return inspect_last(self.execute_script)

    # Automation primitives
    @abstractmethod
    def click(self, selector: str, options: ClickOptions) -> None: ...

    @abstractmethod
    def type(self, selector: str, text: str, options: TypeOptions) -> None: ...

    @abstractmethod
    def wait_for(self, selector: str, options: WaitForOptions, *, timeout_ms: int) -> None: ...

    # Optional operations
    def fill(self, selector: str, value: str) -> None:
        raise self._unsupported("fill")

    def select_option(self, selector: str, values: list[str]) -> list[str]:
        raise self._unsupported("select-option")

    def hover(self, selector: str) -> None:
        raise self._unsupported("hover")

    def press_key(self, key: str) -> None:
        raise self._unsupported("press-key")

    def drag_and_drop(self, source: str, target: str) -> None:
        raise self._unsupported("drag-and-drop")

    def scroll(self, options: ScrollOptions) -> None:
        raise self._unsupported("scroll")

    def wait_for_response(self, url_pattern: str, *, timeout_ms: int) -> dict[str, Any]:
        raise self._unsupported("wait-for-response")

    def get_text(self, selector: str) -> str:
        raise self._unsupported("get-text")

    def get_attribute(self, selector: str, name: str) -> str | None:
        raise self._unsupported("get-attribute")

    def is_visible(self, selector: str) -> bool:
        raise self._unsupported("is-visible")

    def is_enabled(self, selector: str) -> bool:
        raise self._unsupported("is-enabled")

    def is_checked(self, selector: str) -> bool:
        raise self._unsupported("is-checked")

    def evaluate(self, script: str) -> Any:
        raise self._unsupported("evaluate")

    def accessibility_snapshot(self) -> Any:
        raise self._unsupported("accessibility-snapshot")

    def go_back(self, *, timeout_ms: int) -> None:
        raise self._unsupported("go-back")

    def go_forward(self, *, timeout_ms: int) -> None:
        raise self._unsupported("go-forward")

    def set_dialog_handler(self, action: str) -> None:
        raise self._unsupported("set-dialog-handler")


class BrowserTransport(ABC):
    """Connection to a browser that can enumerate and attach pages."""

    page_class: ClassVar[type[BrowserCapability]] = BrowserCapability

    def supports(self, operation: str) -> bool:
        return self.page_class.supports(operation)

    @abstractmethod
    def connect(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def is_connected(self) -> bool: ...

    @abstractmethod
    def list_pages(self) -> list[PageTarget]:
        """Candidate pages across all browsing contexts, in browser order."""

    @abstractmethod
    def attach(self, target: PageTarget) -> BrowserCapability: ...
