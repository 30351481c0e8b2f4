from __future__ import annotations

from collections.abc import Iterator

import pytest
from test_bridge_server import RecordingHandler

from mcp_servers.lens.bridge.client import BridgeClient, BridgeClientError, BridgeUnavailableError
from mcp_servers.lens.bridge.server import BridgeServer


@pytest.fixture
def served() -> Iterator[tuple[BridgeServer, RecordingHandler, BridgeClient]]:
    server = BridgeServer("127.0.0.1", 0)
    handler = RecordingHandler(optional={"fill"})
    server.set_handler(handler)
    port = server.start()
    try:
        yield server, handler, BridgeClient(f"http://127.0.0.1:{port}", timeout=5)
    finally:
        server.stop()


def test_client_calls_routes(served) -> None:
    _server, handler, client = served

    assert client.health()["handlerReady"] is True
    assert client.get_state()["currentUrl"] == "http://localhost:5173/"
    assert client.navigate("http://localhost:3000/") == {"success": True, "url": "http://localhost:3000/"}
    assert client.click("#go", {"button": "right"}) == {"success": True}
    assert client.type("#q", "", {"clearFirst": True}) == {"success": True}
    assert client.screenshot() == "cG5nLWJ5dGVz"
    assert client.console(level="warn", limit=1)[0]["text"] == "careful"
    assert client.fill("#email", "a@b.c") == {"success": True}

    click = next(call for call in handler.calls if call[0] == "click")
    assert click[2].button == "right"
    typed = next(call for call in handler.calls if call[0] == "type")
    assert typed[2] == ""
    assert typed[3].clear_first is True


def test_client_surfaces_bridge_errors(served) -> None:
    _server, _handler, client = served

    with pytest.raises(BridgeClientError) as exc:
        client.hover("#menu")
    assert exc.value.status == 501
    assert str(exc.value) == "hover not supported"

    with pytest.raises(BridgeClientError) as exc:
        client.click("li:first")
    assert exc.value.status == 400
    assert "first-of-type" in str(exc.value)


def test_client_reports_unreachable_bridge() -> None:
    server = BridgeServer("127.0.0.1", 0)
    port = server.start()
    server.stop()

    client = BridgeClient(f"http://127.0.0.1:{port}", timeout=1)
    with pytest.raises(BridgeUnavailableError):
        client.health()
