from __future__ import annotations

import copy
from typing import Any

import pytest

from mcp_servers.lens.capability import OPTIONAL_OPERATIONS, BrowserCapability, BrowserTransport
from mcp_servers.lens.config import LensConfig
from mcp_servers.lens.errors import ElementNotFoundError, SelectorError, TransportError
from mcp_servers.lens.models import PageTarget

SAMPLE_ELEMENT: dict[str, Any] = {
    "selector": "#submit",
    "tagName": "button",
    "id": "submit",
    "classes": ["btn", "btn-primary"],
    "attributes": {"id": "submit", "type": "submit", "class": "btn btn-primary"},
    "computedStyles": {
        "display": "inline-block",
        "position": "static",
        "width": "120px",
        "height": "40px",
        "margin": "0px",
        "padding": "8px 16px",
        "color": "rgb(255, 255, 255)",
        "backgroundColor": "rgb(59, 130, 246)",
        "fontSize": "16px",
        "fontFamily": "Inter, sans-serif",
        "cursor": "pointer",
    },
    "boundingBox": {"x": 10.4, "y": 20.6, "width": 120, "height": 40},
    "parentChain": [
        {"tagName": "form", "selector": "form#login", "description": "Form"},
        {"tagName": "main", "selector": "main", "description": "Main content"},
    ],
    "siblingCount": 2,
    "childCount": 0,
    "description": "Button: Sign in",
}


def sample_element(**overrides: Any) -> dict[str, Any]:
    data = copy.deepcopy(SAMPLE_ELEMENT)
    data.update(overrides)
    return data


class FakePage(BrowserCapability):
    """In-memory page. Selectors in `missing` are never found; those in `invalid` are rejected."""

    supported_operations = OPTIONAL_OPERATIONS

    def __init__(self, target: PageTarget) -> None:
        super().__init__(target)
        self.url = target.url
        self.connected = False
        self.closed = False
        self.calls: list[tuple[Any, ...]] = []
        self.missing: set[str] = set()
        self.invalid: set[str] = set()
        self.script_result: Any = None
        self.dialog_action = "dismiss"

    def _check(self, selector: str) -> None:
        if selector in self.invalid:
            raise SelectorError(selector, "querySelector rejected the selector")
        if selector in self.missing:
            raise ElementNotFoundError(selector)

    def connect(self) -> None:
        self.connected = True

    def disconnect(self) -> None:
        self.connected = False
        self.calls.append(("disconnect",))

    def is_connected(self) -> bool:
        return self.connected and not self.closed

    def is_closed(self) -> bool:
        return self.closed

    def current_url(self) -> str:
        return self.url

    def navigate(self, url: str, *, timeout_ms: int) -> None:
        self.calls.append(("navigate", url, timeout_ms))
        self.url = url

    def reload(self, *, timeout_ms: int) -> None:
        self.calls.append(("reload", timeout_ms))

    def execute_script(self, source: str) -> Any:
        self.calls.append(("script", source))
        return self.script_result

    def screenshot(self, selector: str | None = None) -> bytes:
        if selector:
            self._check(selector)
        self.calls.append(("screenshot", selector))
        return b"\x89PNG fake"

    def highlight(self, selector: str, *, color: str, duration_ms: int) -> None:
        self._check(selector)
        self.calls.append(("highlight", selector, color, duration_ms))

    def clear_highlights(self) -> None:
        self.calls.append(("clear_highlights",))

    def click(self, selector, options) -> None:
        self._check(selector)
        self.calls.append(("click", selector, options))

    def type(self, selector, text, options) -> None:
        self._check(selector)
        self.calls.append(("type", selector, text, options))

    def wait_for(self, selector, options, *, timeout_ms: int) -> None:
        self.calls.append(("wait_for", selector, options, timeout_ms))
        self._check(selector)

    def fill(self, selector: str, value: str) -> None:
        self._check(selector)
        self.calls.append(("fill", selector, value))

    def get_text(self, selector: str) -> str:
        self._check(selector)
        return "Sign in"

    def is_visible(self, selector: str) -> bool:
        return selector not in self.missing

    def evaluate(self, script: str) -> Any:
        self.calls.append(("evaluate", script))
        return self.script_result

    def set_dialog_handler(self, action: str) -> None:
        self.dialog_action = action

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


class FakeTransport(BrowserTransport):
    page_class = FakePage

    def __init__(self, pages: list[PageTarget] | None = None) -> None:
        self.pages = list(pages) if pages is not None else [PageTarget(id="p1", url="http://localhost:5173/")]
        self.connected = False
        self.unreachable = False
        self.connects = 0
        self.list_calls = 0
        self.attached: list[FakePage] = []

    def connect(self) -> None:
        self.connects += 1
        if self.unreachable:
            raise TransportError("connection refused")
        self.connected = True

    def close(self) -> None:
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected

    def list_pages(self) -> list[PageTarget]:
        self.list_calls += 1
        return list(self.pages)

    def attach(self, target: PageTarget) -> FakePage:
        page = FakePage(target)
        page.connect()
        self.attached.append(page)
        return page

    @property
    def page(self) -> FakePage:
        return self.attached[-1]


@pytest.fixture
def config() -> LensConfig:
    return LensConfig(connect_retry_delay=0.0, retry_delay=0.0)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
