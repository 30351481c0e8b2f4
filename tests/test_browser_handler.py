from __future__ import annotations

import pytest
from conftest import FakeTransport, sample_element

from mcp_servers.lens.browser_handler import LensBridgeHandler
from mcp_servers.lens.config import LensConfig
from mcp_servers.lens.console import ConsoleBuffer
from mcp_servers.lens.errors import CapabilityUnsupportedError, OperationTimeoutError, SelectorError
from mcp_servers.lens.models import ClickOptions, ConsoleMessage, ScrollOptions, TypeOptions, WaitForOptions
from mcp_servers.lens.session_manager import SessionManager


@pytest.fixture
def console() -> ConsoleBuffer:
    return ConsoleBuffer(100)


@pytest.fixture
def handler(transport: FakeTransport, config: LensConfig, console: ConsoleBuffer) -> LensBridgeHandler:
    manager = SessionManager(transport, config, sleep=lambda _s: None)
    return LensBridgeHandler(manager, console, config)


def test_state_before_connecting(handler: LensBridgeHandler) -> None:
    state = handler.get_state().to_dict()
    assert state == {"connected": False, "currentUrl": "", "lastInspectedElement": None, "consoleLogs": []}


def test_navigate_connects_and_reports_url(handler: LensBridgeHandler, transport: FakeTransport) -> None:
    result = handler.navigate("http://localhost:5173/settings")

    assert result == {"success": True, "url": "http://localhost:5173/settings"}
    assert transport.page.calls[0] == ("navigate", "http://localhost:5173/settings", 30_000)
    assert handler.get_state().connected is True


def test_inspect_remembers_last_element(handler: LensBridgeHandler, transport: FakeTransport) -> None:
    handler.manager.connect()
    transport.page.script_result = sample_element()

    info = handler.inspect_element("#submit")

    assert info is not None
    assert info.tag_name == "button"
    assert handler.get_state().last_inspected_element == info


def test_inspect_nothing_found_keeps_previous(handler: LensBridgeHandler, transport: FakeTransport) -> None:
    handler.manager.connect()
    transport.page.script_result = sample_element()
    first = handler.inspect_element_at_point(15, 25)
    transport.page.script_result = None

    assert handler.inspect_element(".nope") is None
    assert handler.get_state().last_inspected_element == first


def test_click_waits_for_element_first(handler: LensBridgeHandler, transport: FakeTransport) -> None:
    handler.click("#submit", ClickOptions(click_count=2))

    names = [call[0] for call in transport.page.calls]
    assert names == ["wait_for", "click"]
    wait_call = transport.page.calls[0]
    assert wait_call[2] == WaitForOptions(visible=False)
    assert wait_call[3] == 10_000 // 3
    assert transport.page.calls[1][2].click_count == 2


def test_click_missing_element_exhausts_retries(handler: LensBridgeHandler, transport: FakeTransport) -> None:
    handler.manager.connect()
    transport.page.missing.add("#missing")

    with pytest.raises(OperationTimeoutError) as exc:
        handler.click("#missing", ClickOptions())

    assert str(exc.value).startswith('Click timeout: "#missing" not found within 10000ms.')
    assert transport.page.count("wait_for") == 3
    assert transport.page.count("click") == 0


def test_click_uses_option_timeout(handler: LensBridgeHandler, transport: FakeTransport) -> None:
    handler.manager.connect()
    transport.page.missing.add("#late")

    with pytest.raises(OperationTimeoutError) as exc:
        handler.click("#late", ClickOptions(timeout_ms=1500))
    assert "within 1500ms" in str(exc.value)


def test_invalid_selector_is_reported_once(handler: LensBridgeHandler, transport: FakeTransport) -> None:
    handler.manager.connect()
    transport.page.invalid.add("div[")

    with pytest.raises(SelectorError):
        handler.type("div[", "hello", TypeOptions())
    assert transport.page.count("wait_for") == 1


def test_wait_for_is_not_retried(handler: LensBridgeHandler, transport: FakeTransport) -> None:
    handler.manager.connect()
    transport.page.missing.add(".toast")

    with pytest.raises(OperationTimeoutError) as exc:
        handler.wait_for(".toast", WaitForOptions())

    assert str(exc.value).startswith('Wait for timeout: ".toast" not found within 5000ms.')
    assert transport.page.count("wait_for") == 1


def test_console_reads_do_not_need_a_session(handler: LensBridgeHandler, console: ConsoleBuffer) -> None:
    console.append(ConsoleMessage(level="error", text="boom", timestamp=1.0))
    console.append(ConsoleMessage(level="log", text="hi", timestamp=2.0))

    logs = handler.get_console_logs("error", None)

    assert [m.text for m in logs] == ["boom"]
    assert handler.manager.page is None


def test_screenshot_of_page_and_element(handler: LensBridgeHandler, transport: FakeTransport) -> None:
    assert handler.screenshot(None).startswith(b"\x89PNG")
    assert handler.screenshot("#submit").startswith(b"\x89PNG")
    assert ("screenshot", "#submit") in transport.page.calls


def test_is_visible_answers_false_for_missing(handler: LensBridgeHandler, transport: FakeTransport) -> None:
    handler.manager.connect()
    transport.page.missing.add("#gone")
    assert handler.is_visible("#gone") is False
    assert handler.is_visible("#submit") is True


def test_optional_operation_without_driver_support(handler: LensBridgeHandler) -> None:
    # FakePage declares scroll but keeps the base implementation.
    with pytest.raises(CapabilityUnsupportedError):
        handler.scroll(ScrollOptions())


def test_supports_follows_transport(handler: LensBridgeHandler) -> None:
    assert handler.supports("click")
    assert handler.supports("hover")
    assert not handler.supports("set-viewport")


def test_point_inspection_is_stable(handler: LensBridgeHandler, transport: FakeTransport) -> None:
    handler.manager.connect()
    transport.page.script_result = sample_element(overlay={"type": "dialog", "isBackdrop": False, "canDismiss": True})

    first = handler.inspect_element_at_point(10, 10)
    second = handler.inspect_element_at_point(10, 10)

    assert first is not None
    assert first == second
    assert first.to_dict() == second.to_dict()
    assert first.overlay is not None
    assert first.overlay.type == "dialog"


def test_console_without_limit_returns_recent_twenty(handler: LensBridgeHandler, console: ConsoleBuffer) -> None:
    for i in range(100):
        console.append(ConsoleMessage(level="log", text=f"m{i}", timestamp=float(i)))

    logs = handler.get_console_logs(None, None)

    assert len(logs) == 20
    assert logs[-1].text == "m99"
    assert len(handler.get_console_logs(None, 50)) == 50


def test_navigation_is_not_retried(handler: LensBridgeHandler, transport: FakeTransport) -> None:
    handler.manager.connect()
    page = transport.page

    def never_loads(url: str, *, timeout_ms: int) -> None:
        page.calls.append(("navigate", url, timeout_ms))
        raise OperationTimeoutError("navigate", url, timeout_ms, reason="did not finish loading")

    page.navigate = never_loads  # type: ignore[method-assign]

    with pytest.raises(OperationTimeoutError) as exc:
        handler.navigate("http://localhost:5173/slow")

    assert 'Navigate timeout: "http://localhost:5173/slow" did not finish loading within 30000ms.' in str(exc.value)
    assert page.count("navigate") == 1
