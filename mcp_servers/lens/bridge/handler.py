"""Browser-side handler interface served by the bridge."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..capability import REQUIRED_OPERATIONS
from ..errors import CapabilityUnsupportedError
from ..models import (
    BridgeState,
    ClickOptions,
    ConsoleMessage,
    ElementInfo,
    ScrollOptions,
    TypeOptions,
    WaitForOptions,
)


class BridgeHandler(ABC):
    """Browser-side implementation behind the bridge.

    Required operations are abstract; optional ones raise
    CapabilityUnsupportedError unless the subclass reports them through
    `supports()` and overrides them.
    """

    def supports(self, operation: str) -> bool:
        return operation in REQUIRED_OPERATIONS

    @abstractmethod
    def get_state(self) -> BridgeState: ...

    @abstractmethod
    def navigate(self, url: str) -> dict[str, Any]: ...

    @abstractmethod
    def inspect_element(self, selector: str) -> ElementInfo | None: ...

    @abstractmethod
    def inspect_element_at_point(self, x: float, y: float) -> ElementInfo | None: ...

    @abstractmethod
    def inspect_last_element(self) -> ElementInfo | None: ...

    @abstractmethod
    def highlight(self, selector: str, color: str, duration_ms: int) -> None: ...

    @abstractmethod
    def clear_highlights(self) -> None: ...

    @abstractmethod
    def screenshot(self, selector: str | None) -> bytes: ...

    @abstractmethod
    def get_console_logs(self, level: str | None, limit: int | None) -> list[ConsoleMessage]: ...

    @abstractmethod
    def reload(self) -> None: ...

    @abstractmethod
    def click(self, selector: str, options: ClickOptions) -> None: ...

    @abstractmethod
    def type(self, selector: str, text: str, options: TypeOptions) -> None: ...

    @abstractmethod
    def wait_for(self, selector: str, options: WaitForOptions) -> None: ...

    def fill(self, selector: str, value: str) -> None:
        raise CapabilityUnsupportedError("fill")

    def select_option(self, selector: str, values: list[str]) -> list[str]:
        raise CapabilityUnsupportedError("select-option")

    def hover(self, selector: str) -> None:
        raise CapabilityUnsupportedError("hover")

    def press_key(self, key: str) -> None:
        raise CapabilityUnsupportedError("press-key")

    def drag_and_drop(self, source: str, target: str) -> None:
        raise CapabilityUnsupportedError("drag-and-drop")

    def scroll(self, options: ScrollOptions) -> None:
        raise CapabilityUnsupportedError("scroll")

    def wait_for_response(self, url_pattern: str, timeout_ms: int | None) -> dict[str, Any]:
        raise CapabilityUnsupportedError("wait-for-response")

    def get_text(self, selector: str) -> str:
        raise CapabilityUnsupportedError("get-text")

    def get_attribute(self, selector: str, name: str) -> str | None:
        raise CapabilityUnsupportedError("get-attribute")

    def is_visible(self, selector: str) -> bool:
        raise CapabilityUnsupportedError("is-visible")

    def is_enabled(self, selector: str) -> bool:
        raise CapabilityUnsupportedError("is-enabled")

    def is_checked(self, selector: str) -> bool:
        raise CapabilityUnsupportedError("is-checked")

    def evaluate(self, script: str) -> Any:
        raise CapabilityUnsupportedError("evaluate")

    def accessibility_snapshot(self) -> Any:
        raise CapabilityUnsupportedError("accessibility-snapshot")

    def go_back(self) -> None:
        raise CapabilityUnsupportedError("go-back")

    def go_forward(self) -> None:
        raise CapabilityUnsupportedError("go-forward")

    def set_dialog_handler(self, action: str) -> None:
        raise CapabilityUnsupportedError("set-dialog-handler")
