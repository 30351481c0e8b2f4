from __future__ import annotations

import http.client
import io
import json
from collections.abc import Iterator
from typing import Any

import pytest

from mcp_servers.lens.bridge.handler import BridgeHandler
from mcp_servers.lens.bridge.server import BridgeServer, query_params, read_limited_body
from mcp_servers.lens.errors import BodyTooLargeError, ElementNotFoundError, MalformedBodyError, ValidationError
from mcp_servers.lens.models import BridgeState, ConsoleMessage, ElementInfo


class RecordingHandler(BridgeHandler):
    def __init__(self, optional: set[str] | None = None) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.optional = optional or set()

    def supports(self, operation: str) -> bool:
        return super().supports(operation) or operation in self.optional

    def get_state(self) -> BridgeState:
        return BridgeState(connected=True, current_url="http://localhost:5173/")

    def navigate(self, url: str) -> dict[str, Any]:
        self.calls.append(("navigate", url))
        return {"success": True, "url": url}

    def inspect_element(self, selector: str) -> ElementInfo | None:
        self.calls.append(("inspect", selector))
        return None

    def inspect_element_at_point(self, x: float, y: float) -> ElementInfo | None:
        self.calls.append(("inspect_point", x, y))
        return None

    def inspect_last_element(self) -> ElementInfo | None:
        self.calls.append(("inspect_last",))
        return None

    def highlight(self, selector: str, color: str, duration_ms: int) -> None:
        self.calls.append(("highlight", selector, color, duration_ms))

    def clear_highlights(self) -> None:
        self.calls.append(("clear_highlights",))

    def screenshot(self, selector: str | None) -> bytes:
        return b"png-bytes"

    def get_console_logs(self, level: str | None, limit: int | None) -> list[ConsoleMessage]:
        self.calls.append(("console", level, limit))
        return [ConsoleMessage(level="warn", text="careful", timestamp=5.0)]

    def reload(self) -> None:
        self.calls.append(("reload",))

    def click(self, selector, options) -> None:
        if selector == "#boom":
            raise RuntimeError("driver exploded")
        if selector == "#missing":
            raise ElementNotFoundError(selector)
        self.calls.append(("click", selector, options))

    def type(self, selector, text, options) -> None:
        self.calls.append(("type", selector, text, options))

    def wait_for(self, selector, options) -> None:
        self.calls.append(("wait_for", selector, options))

    def fill(self, selector: str, value: str) -> None:
        self.calls.append(("fill", selector, value))


@pytest.fixture
def server() -> Iterator[BridgeServer]:
    srv = BridgeServer("127.0.0.1", 0)
    srv.start()
    try:
        yield srv
    finally:
        srv.stop()


def _request(
    server: BridgeServer,
    method: str,
    path: str,
    body: Any = None,
    headers: dict[str, str] | None = None,
) -> tuple[int, http.client.HTTPResponse, Any]:
    conn = http.client.HTTPConnection("127.0.0.1", server.port, timeout=5)
    try:
        data = body if isinstance(body, bytes) or body is None else json.dumps(body).encode()
        hdrs = {"Content-Type": "application/json", **(headers or {})}
        conn.request(method, path, body=data, headers=hdrs)
        resp = conn.getresponse()
        raw = resp.read()
        payload = json.loads(raw) if raw else None
        return resp.status, resp, payload
    finally:
        conn.close()


def test_health_without_handler(server: BridgeServer) -> None:
    status, _resp, payload = _request(server, "GET", "/health")
    assert status == 200
    assert payload["status"] == "ok"
    assert payload["handlerReady"] is False
    assert payload["connected"] is False
    assert isinstance(payload["timestamp"], int)


def test_health_uses_bound_probe(server: BridgeServer) -> None:
    server.set_handler(RecordingHandler())
    server.bind_health_probe(lambda: True)
    _status, _resp, payload = _request(server, "GET", "/health")
    assert payload["handlerReady"] is True
    assert payload["connected"] is True


def test_operation_without_handler_is_503(server: BridgeServer) -> None:
    status, _resp, payload = _request(server, "POST", "/click", {"selector": "#a"})
    assert status == 503
    assert payload == {"error": "Handler not ready"}


def test_unknown_path_is_404(server: BridgeServer) -> None:
    server.set_handler(RecordingHandler())
    status, _resp, payload = _request(server, "POST", "/set-viewport", {"width": 10})
    assert status == 404
    assert payload == {"error": "Not found"}


def test_click_round_trip(server: BridgeServer) -> None:
    handler = RecordingHandler()
    server.set_handler(handler)

    status, _resp, payload = _request(server, "POST", "/click", {"selector": " #submit ", "options": {"clickCount": 2}})

    assert status == 200
    assert payload == {"success": True}
    _name, selector, options = handler.calls[0]
    assert selector == "#submit"
    assert options.click_count == 2


def test_missing_parameter_never_reaches_handler(server: BridgeServer) -> None:
    handler = RecordingHandler()
    server.set_handler(handler)

    status, _resp, payload = _request(server, "POST", "/click", {})

    assert status == 400
    assert payload == {"error": "Missing required parameter: selector"}
    assert handler.calls == []


def test_jquery_selector_is_rejected(server: BridgeServer) -> None:
    handler = RecordingHandler()
    server.set_handler(handler)

    status, _resp, payload = _request(server, "POST", "/click", {"selector": "button:contains('Go')"})

    assert status == 400
    assert ":contains()" in payload["error"]
    assert handler.calls == []


def test_malformed_json_is_400(server: BridgeServer) -> None:
    server.set_handler(RecordingHandler())
    status, _resp, payload = _request(server, "POST", "/navigate", b"{not json")
    assert status == 400
    assert payload == {"error": "Invalid JSON body"}


def test_non_object_body_is_400(server: BridgeServer) -> None:
    server.set_handler(RecordingHandler())
    status, _resp, payload = _request(server, "POST", "/navigate", b"[1, 2]")
    assert status == 400
    assert payload == {"error": "Request body must be a JSON object"}


def test_optional_operation_without_support_is_501(server: BridgeServer) -> None:
    server.set_handler(RecordingHandler())
    status, _resp, payload = _request(server, "POST", "/hover", {"selector": "#menu"})
    assert status == 501
    assert payload == {"error": "hover not supported"}


def test_supported_optional_operation(server: BridgeServer) -> None:
    handler = RecordingHandler(optional={"fill"})
    server.set_handler(handler)
    status, _resp, payload = _request(server, "POST", "/fill", {"selector": "#email", "value": ""})
    assert status == 200
    assert payload == {"success": True}
    assert handler.calls == [("fill", "#email", "")]


def test_handler_exception_is_500(server: BridgeServer) -> None:
    server.set_handler(RecordingHandler())
    status, _resp, payload = _request(server, "POST", "/click", {"selector": "#boom"})
    assert status == 500
    assert payload == {"error": "driver exploded"}


def test_lens_error_without_status_is_500(server: BridgeServer) -> None:
    server.set_handler(RecordingHandler())
    status, _resp, payload = _request(server, "POST", "/click", {"selector": "#missing"})
    assert status == 500
    assert payload == {"error": 'Element not found: "#missing"'}


def test_get_uses_query_parameters(server: BridgeServer) -> None:
    handler = RecordingHandler()
    server.set_handler(handler)

    status, _resp, payload = _request(server, "GET", "/console?level=warn&limit=5")

    assert status == 200
    assert payload == {"logs": [{"level": "warn", "text": "careful", "source": "", "timestamp": 5.0}]}
    assert handler.calls == [("console", "warn", 5)]


def test_state_and_screenshot_payloads(server: BridgeServer) -> None:
    server.set_handler(RecordingHandler())

    _status, _resp, state = _request(server, "GET", "/state")
    assert state["connected"] is True
    assert state["currentUrl"] == "http://localhost:5173/"

    _status, _resp, shot = _request(server, "POST", "/screenshot", {})
    assert shot == {"image": "cG5nLWJ5dGVz"}


def test_inspect_variants(server: BridgeServer) -> None:
    handler = RecordingHandler()
    server.set_handler(handler)

    for body in ({"selector": "#a"}, {"x": 10, "y": 20.5}, {}):
        status, _resp, payload = _request(server, "POST", "/inspect", body)
        assert status == 200
        assert payload is None

    assert handler.calls == [("inspect", "#a"), ("inspect_point", 10.0, 20.5), ("inspect_last",)]


def test_inspect_point_needs_both_coordinates(server: BridgeServer) -> None:
    server.set_handler(RecordingHandler())
    status, _resp, payload = _request(server, "POST", "/inspect", {"x": 10})
    assert status == 400
    assert payload == {"error": "Missing required parameter: y"}


def test_highlight_defaults(server: BridgeServer) -> None:
    handler = RecordingHandler()
    server.set_handler(handler)
    _request(server, "POST", "/highlight", {"selector": ".card"})
    assert handler.calls == [("highlight", ".card", "#3b82f6", 3000)]


def test_cors_echoes_loopback_origin_only(server: BridgeServer) -> None:
    server.set_handler(RecordingHandler())

    _status, resp, _payload = _request(server, "GET", "/state", headers={"Origin": "http://localhost:5173"})
    assert resp.getheader("Access-Control-Allow-Origin") == "http://localhost:5173"

    _status, resp, _payload = _request(server, "GET", "/state", headers={"Origin": "https://evil.example"})
    assert resp.getheader("Access-Control-Allow-Origin") is None


def test_preflight_is_204(server: BridgeServer) -> None:
    status, resp, payload = _request(server, "OPTIONS", "/click", headers={"Origin": "http://127.0.0.1:3000"})
    assert status == 204
    assert payload is None
    assert resp.getheader("Access-Control-Allow-Origin") == "http://127.0.0.1:3000"
    assert "POST" in resp.getheader("Access-Control-Allow-Methods")


def test_oversized_body_is_rejected_before_reading(server: BridgeServer) -> None:
    server.set_handler(RecordingHandler())
    conn = http.client.HTTPConnection("127.0.0.1", server.port, timeout=5)
    try:
        # Announce 2 MiB but send nothing: the server must answer from the header alone.
        conn.putrequest("POST", "/type")
        conn.putheader("Content-Type", "application/json")
        conn.putheader("Content-Length", str(2 * 1024 * 1024))
        conn.endheaders()
        resp = conn.getresponse()
        payload = json.loads(resp.read())
    finally:
        conn.close()

    assert resp.status == 413
    assert payload == {"error": "Request body too large (max 1MB)"}
    assert resp.getheader("Connection") == "close"


def test_non_loopback_bind_is_refused() -> None:
    with pytest.raises(ValueError):
        BridgeServer("0.0.0.0", 0)


def test_read_limited_body_chunked_limit() -> None:
    body = b"400\r\n" + b"x" * 0x400 + b"\r\n0\r\n\r\n"
    with pytest.raises(BodyTooLargeError):
        read_limited_body(io.BytesIO(body), {"Transfer-Encoding": "chunked"}, limit=512)


def test_read_limited_body_chunked_json() -> None:
    raw = b'{"url": "http://localhost:3000"}'
    body = f"{len(raw):x}\r\n".encode() + raw + b"\r\n0\r\n\r\n"
    parsed = read_limited_body(io.BytesIO(body), {"Transfer-Encoding": "chunked"})
    assert parsed == {"url": "http://localhost:3000"}


def test_read_limited_body_errors() -> None:
    with pytest.raises(MalformedBodyError):
        read_limited_body(io.BytesIO(b"{"), {"Content-Length": "1"})
    with pytest.raises(ValidationError):
        read_limited_body(io.BytesIO(b'"text"'), {"Content-Length": "6"})
    assert read_limited_body(io.BytesIO(b""), {}) == {}


def test_query_params_decode_json_values() -> None:
    assert query_params("limit=5&level=error&selector=%23main") == {"limit": 5, "level": "error", "selector": "#main"}
