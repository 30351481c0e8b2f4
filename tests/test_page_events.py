from __future__ import annotations

import time
from typing import Any

from mcp_servers.lens.console import ConsoleBuffer
from mcp_servers.lens.errors import TransportError
from mcp_servers.lens.events import PageEvents
from mcp_servers.lens.page_events import PageEventBus, console_message_from_event


class DummyConn:
    def __init__(self, events: list[dict[str, Any]] | None = None) -> None:
        self.events = list(events or [])
        self.calls: list[tuple[str, dict[str, Any] | None]] = []
        self.nowait: list[tuple[str, dict[str, Any] | None]] = []
        self.closed = False

    def send(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None) -> dict[str, Any]:  # noqa: ARG002
        self.calls.append((method, params))
        return {}

    def send_nowait(self, method: str, params: dict[str, Any] | None = None) -> int:
        self.nowait.append((method, params))
        return 1

    def read_event(self, timeout: float = 0.5) -> dict[str, Any] | None:
        if self.events:
            return self.events.pop(0)
        time.sleep(0.01)
        return None

    def close(self) -> None:
        self.closed = True


def _bus(**kwargs: Any) -> PageEventBus:
    return PageEventBus(ws_url="ws://127.0.0.1:9222/devtools/page/p1", events=PageEvents(), console=ConsoleBuffer(50), name="test-bus", **kwargs)


def test_console_api_call_conversion() -> None:
    message = console_message_from_event(
        "Runtime.consoleAPICalled",
        {
            "type": "warning",
            "args": [{"type": "string", "value": "low stock"}, {"type": "number", "value": 3}],
            "timestamp": 1700000000000.0,
            "stackTrace": {"callFrames": [{"url": "http://localhost:5173/src/app.js", "lineNumber": 4, "columnNumber": 9}]},
        },
    )

    assert message is not None
    assert message.level == "warn"
    assert message.text == "low stock 3"
    assert (message.source, message.line, message.column) == ("http://localhost:5173/src/app.js", 5, 10)
    assert message.stack_trace is None


def test_exception_becomes_error_message() -> None:
    message = console_message_from_event(
        "Runtime.exceptionThrown",
        {
            "timestamp": 5.0,
            "exceptionDetails": {
                "text": "Uncaught",
                "url": "http://localhost:5173/main.js",
                "lineNumber": 0,
                "exception": {"description": "ReferenceError: foo is not defined\n    at main.js:1:1"},
            },
        },
    )

    assert message is not None
    assert message.level == "error"
    assert message.text == "ReferenceError: foo is not defined"
    assert message.line == 1
    assert "at main.js:1:1" in (message.stack_trace or "")


def test_log_entries_and_unknown_events() -> None:
    message = console_message_from_event("Log.entryAdded", {"entry": {"level": "verbose", "text": "GC", "timestamp": 1.0}})
    assert message is not None
    assert message.level == "debug"
    assert console_message_from_event("Page.loadEventFired", {}) is None


def test_console_events_feed_buffer_and_channel() -> None:
    bus = _bus()
    published: list[Any] = []
    errors: list[Any] = []
    bus.events.console.subscribe(published.append)
    bus.events.error.subscribe(errors.append)

    bus.handle_event({"method": "Runtime.consoleAPICalled", "params": {"type": "log", "args": [{"value": "hi"}], "timestamp": 1.0}})
    bus.handle_event({"method": "Runtime.exceptionThrown", "params": {"timestamp": 2.0, "exceptionDetails": {"text": "boom"}}})

    assert [m.text for m in bus.console.snapshot()] == ["hi", "boom"]
    assert len(published) == 2
    assert [m.text for m in errors] == ["boom"]


def test_top_frame_navigation_updates_url() -> None:
    bus = _bus()
    seen: list[str] = []
    bus.events.navigate.subscribe(seen.append)

    bus.handle_event({"method": "Page.frameNavigated", "params": {"frame": {"id": "f2", "parentId": "f1", "url": "http://ads/"}}})
    bus.handle_event({"method": "Page.frameNavigated", "params": {"frame": {"id": "f1", "url": "http://localhost:5173/b"}}})
    bus.handle_event({"method": "Page.navigatedWithinDocument", "params": {"url": "http://localhost:5173/b#tab"}})

    assert seen == ["http://localhost:5173/b", "http://localhost:5173/b#tab"]
    assert bus.current_url == "http://localhost:5173/b#tab"


def test_dialogs_follow_policy() -> None:
    bus = _bus()
    conn = DummyConn()
    event = {"method": "Page.javascriptDialogOpening", "params": {"type": "confirm", "message": "Sure?"}}

    bus.handle_event(event, conn)  # type: ignore[arg-type]
    bus.dialog_action = "accept"
    bus.handle_event(event, conn)  # type: ignore[arg-type]

    assert conn.nowait == [
        ("Page.handleJavaScriptDialog", {"accept": False}),
        ("Page.handleJavaScriptDialog", {"accept": True}),
    ]


def test_responses_are_published() -> None:
    bus = _bus()
    seen: list[dict[str, Any]] = []
    bus.events.response.subscribe(seen.append)

    bus.handle_event(
        {
            "method": "Network.responseReceived",
            "params": {"response": {"url": "http://localhost:3000/api", "status": 201, "mimeType": "application/json"}},
        }
    )

    assert seen == [{"url": "http://localhost:3000/api", "status": 201, "mimeType": "application/json"}]


def test_detach_marks_page_lost() -> None:
    bus = _bus()
    bus.handle_event({"method": "Inspector.detached", "params": {"reason": "target_closed"}})
    assert bus.lost.is_set()


def test_malformed_events_are_ignored() -> None:
    bus = _bus()
    bus.handle_event({"method": "Runtime.consoleAPICalled"})
    bus.handle_event({"params": {}})
    assert len(bus.console) == 0


def test_failed_connect_marks_page_lost() -> None:
    def refuse(url: str) -> Any:
        raise TransportError(f"CDP connect failed: {url}")

    bus = _bus(connect=refuse)
    bus.start(wait=2.0)

    assert bus.lost.wait(2.0)


def test_running_bus_reads_events() -> None:
    conn = DummyConn([{"method": "Runtime.consoleAPICalled", "params": {"type": "error", "args": [{"value": "x"}], "timestamp": 1.0}}])
    bus = _bus(connect=lambda _url: conn)
    bus.start(wait=2.0)
    try:
        deadline = time.monotonic() + 2.0
        while len(bus.console) == 0 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        bus.stop()

    assert [m.text for m in bus.console.snapshot()] == ["x"]
    assert ("Network.enable", None) in conn.calls
    assert conn.closed
    assert not bus.lost.is_set()
