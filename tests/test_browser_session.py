from __future__ import annotations

from typing import Any

import pytest

from mcp_servers.lens.browser_session import BrowserSession, parse_key_combo
from mcp_servers.lens.errors import NavigationError, OperationTimeoutError, ScriptError


class DummyConn:
    def __init__(self, responses: dict[str, dict[str, Any]] | None = None, *, loads: bool = True) -> None:
        self.responses = responses or {}
        self.calls: list[tuple[str, dict[str, Any] | None]] = []
        self.waited: list[str] = []
        self.loads = loads

    def send(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None) -> dict[str, Any]:  # noqa: ARG002
        self.calls.append((method, params))
        return self.responses.get(method, {})

    def clear_events(self, event_name: str | None = None) -> None:  # noqa: ARG002
        return None

    def wait_for_event(self, event_name: str, timeout: float = 10.0) -> dict[str, Any] | None:  # noqa: ARG002
        self.waited.append(event_name)
        return {} if self.loads else None

    def methods(self) -> list[str]:
        return [m for m, _p in self.calls]


def test_eval_js_returns_by_value() -> None:
    conn = DummyConn({"Runtime.evaluate": {"result": {"type": "object", "value": {"a": 1}}}})
    session = BrowserSession(conn, "t1")

    assert session.eval_js("({a: 1})") == {"a": 1}
    params = conn.calls[-1][1] or {}
    assert params["returnByValue"] is True
    assert params["awaitPromise"] is True
    assert conn.methods().count("Runtime.enable") == 1


def test_eval_js_maps_undefined_and_null_to_none() -> None:
    session = BrowserSession(DummyConn({"Runtime.evaluate": {"result": {"type": "undefined"}}}), "t1")
    assert session.eval_js("void 0") is None

    session = BrowserSession(DummyConn({"Runtime.evaluate": {"result": {"type": "object", "subtype": "null"}}}), "t1")
    assert session.eval_js("null") is None


def test_eval_js_exception_is_script_error() -> None:
    conn = DummyConn(
        {
            "Runtime.evaluate": {
                "result": {"type": "object", "subtype": "error"},
                "exceptionDetails": {
                    "text": "Uncaught",
                    "exception": {"description": "TypeError: x is not a function\n    at <anonymous>:1:1"},
                },
            }
        }
    )
    with pytest.raises(ScriptError) as exc:
        BrowserSession(conn, "t1").eval_js("x()")
    assert str(exc.value) == "TypeError: x is not a function"


def test_navigate_waits_for_load() -> None:
    conn = DummyConn({"Page.navigate": {"frameId": "f1", "loaderId": "l1"}})
    session = BrowserSession(conn, "t1")

    session.navigate("http://localhost:3000/", timeout=5)

    assert ("Page.navigate", {"url": "http://localhost:3000/"}) in conn.calls
    assert conn.waited == ["Page.loadEventFired"]
    assert session.url == "http://localhost:3000/"


def test_navigate_error_text_is_raised() -> None:
    conn = DummyConn({"Page.navigate": {"frameId": "f1", "errorText": "net::ERR_CONNECTION_REFUSED"}})
    with pytest.raises(NavigationError, match="ERR_CONNECTION_REFUSED"):
        BrowserSession(conn, "t1").navigate("http://localhost:1/", timeout=5)
    assert conn.waited == []


def test_navigation_that_never_loads_times_out() -> None:
    conn = DummyConn({"Page.navigate": {"frameId": "f1", "loaderId": "l1"}}, loads=False)
    session = BrowserSession(conn, "t1", "http://localhost:5173/")

    with pytest.raises(OperationTimeoutError) as exc:
        session.navigate("http://localhost:5173/slow", timeout=0.25)

    assert exc.value.action == "navigate"
    assert exc.value.target == "http://localhost:5173/slow"
    assert exc.value.timeout_ms == 250
    assert session.url == "http://localhost:5173/"


def test_same_document_navigation_skips_load_wait() -> None:
    conn = DummyConn({"Page.navigate": {"frameId": "f1"}}, loads=False)
    session = BrowserSession(conn, "t1")

    session.navigate("http://localhost:5173/#settings", timeout=30)

    assert conn.waited == []
    assert session.url == "http://localhost:5173/#settings"


def test_reload_that_never_loads_times_out() -> None:
    session = BrowserSession(DummyConn(loads=False), "t1", "http://localhost:5173/")
    with pytest.raises(OperationTimeoutError, match="Reload timeout"):
        session.reload(timeout=0.1)


def test_history_move_that_never_loads_times_out() -> None:
    entries = [{"id": 1, "url": "http://localhost:3000/a"}, {"id": 2, "url": "http://localhost:3000/b"}]
    conn = DummyConn({"Page.getNavigationHistory": {"currentIndex": 1, "entries": entries}}, loads=False)

    with pytest.raises(OperationTimeoutError) as exc:
        BrowserSession(conn, "t1").go_history(-1, timeout=0.1)
    assert exc.value.action == "go back"


def test_history_fragment_move_skips_load_wait() -> None:
    entries = [{"id": 1, "url": "http://localhost:3000/a"}, {"id": 2, "url": "http://localhost:3000/a#tab"}]
    conn = DummyConn({"Page.getNavigationHistory": {"currentIndex": 1, "entries": entries}}, loads=False)
    session = BrowserSession(conn, "t1")

    assert session.go_history(-1, timeout=5) is True
    assert conn.waited == []
    assert session.url == "http://localhost:3000/a"


def test_history_at_the_edge_is_refused() -> None:
    conn = DummyConn({"Page.getNavigationHistory": {"currentIndex": 0, "entries": [{"id": 1, "url": "http://a/"}]}})
    session = BrowserSession(conn, "t1")

    assert session.go_history(-1, timeout=1) is False
    assert "Page.navigateToHistoryEntry" not in conn.methods()


def test_history_moves_to_entry() -> None:
    entries = [{"id": 1, "url": "http://localhost:3000/a"}, {"id": 2, "url": "http://localhost:3000/b"}]
    conn = DummyConn({"Page.getNavigationHistory": {"currentIndex": 1, "entries": entries}})
    session = BrowserSession(conn, "t1")

    assert session.go_history(-1, timeout=1) is True
    assert ("Page.navigateToHistoryEntry", {"entryId": 1}) in conn.calls
    assert session.url == "http://localhost:3000/a"


def test_parse_key_combo() -> None:
    assert parse_key_combo("Control+Shift+K") == ("K", 10)
    assert parse_key_combo("Enter") == ("Enter", 0)
    assert parse_key_combo("+") == ("+", 0)
    assert parse_key_combo(" ") == (" ", 0)


def test_press_key_sends_down_and_up() -> None:
    conn = DummyConn()
    BrowserSession(conn, "t1").press_key("a")

    down, up = (p for m, p in conn.calls if m == "Input.dispatchKeyEvent")
    assert down["type"] == "keyDown"
    assert down["text"] == "a"
    assert down["code"] == "KeyA"
    assert down["windowsVirtualKeyCode"] == 65
    assert up["type"] == "keyUp"


def test_press_named_key_has_no_text() -> None:
    conn = DummyConn()
    BrowserSession(conn, "t1").press_key("Control+Enter")

    down = conn.calls[0][1] or {}
    assert down["key"] == "Enter"
    assert down["windowsVirtualKeyCode"] == 13
    assert down["modifiers"] == 2
    assert "text" not in down


def test_type_text_inserts_at_once() -> None:
    conn = DummyConn()
    session = BrowserSession(conn, "t1")

    session.type_text("")
    session.type_text("hello")

    assert conn.calls == [("Input.insertText", {"text": "hello"})]


def test_click_dispatches_mouse_sequence() -> None:
    conn = DummyConn()
    BrowserSession(conn, "t1").click(5, 6, "right", 2)

    types = [(p or {})["type"] for m, p in conn.calls if m == "Input.dispatchMouseEvent"]
    assert types == ["mouseMoved", "mousePressed", "mouseReleased"]
    pressed = conn.calls[1][1] or {}
    assert pressed["button"] == "right"
    assert pressed["clickCount"] == 2
