"""
Localhost bridge server.

JSON over HTTP. One path per operation (`/click`, `/inspect`, ...) plus
`/health`, which never needs the handler. Request bodies are capped and read
incrementally; every failure is answered as `{"error": "<message>"}`.
"""

from __future__ import annotations

import json
import logging
import threading
import time
import urllib.parse
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, BinaryIO

from ..config import DEFAULT_BRIDGE_PORT, LOOPBACK_HOSTS, MAX_BODY_BYTES
from ..errors import BodyTooLargeError, LensError, MalformedBodyError, ProtocolError, http_status_for
from .handler import BridgeHandler
from .operations import OperationRegistry, create_default_registry, parse_request_body, to_jsonable

logger = logging.getLogger("mcp.lens.bridge")

READ_CHUNK = 64 * 1024


def is_loopback_origin(origin: str | None) -> bool:
    if not origin:
        return False
    try:
        host = urllib.parse.urlsplit(origin).hostname
    except ValueError:
        return False
    return bool(host) and host.lower() in LOOPBACK_HOSTS


def query_params(query: str) -> dict[str, Any]:
    """GET parameters; each value is decoded as JSON when it parses, else kept as text."""
    params: dict[str, Any] = {}
    for key, values in urllib.parse.parse_qs(query, keep_blank_values=True).items():
        raw = values[-1]
        try:
            params[key] = json.loads(raw)
        except ValueError:
            params[key] = raw
    return params


def _read_chunked(rfile: BinaryIO, limit: int) -> bytes:
    data = bytearray()
    while True:
        line = rfile.readline(1024)
        if not line:
            raise MalformedBodyError("Truncated chunked body")
        try:
            size = int(line.split(b";", 1)[0].strip() or b"0", 16)
        except ValueError as exc:
            raise MalformedBodyError("Invalid chunk size") from exc
        if size == 0:
            # Trailer section ends with an empty line.
            while rfile.readline(1024) not in (b"\r\n", b"\n", b""):
                pass
            return bytes(data)
        if len(data) + size > limit:
            raise BodyTooLargeError(limit)
        data += rfile.read(size)
        rfile.readline(1024)


def read_limited_body(rfile: BinaryIO, headers: Any, limit: int = MAX_BODY_BYTES) -> dict[str, Any]:
    """Read and decode a JSON object body without ever buffering more than `limit` bytes."""
    if "chunked" in (headers.get("Transfer-Encoding") or "").lower():
        raw = _read_chunked(rfile, limit)
    else:
        length_header = headers.get("Content-Length")
        try:
            length = int(length_header) if length_header else 0
        except ValueError as exc:
            raise MalformedBodyError("Invalid Content-Length") from exc
        if length < 0:
            raise MalformedBodyError("Invalid Content-Length")
        if length > limit:
            raise BodyTooLargeError(limit)
        chunks: list[bytes] = []
        remaining = length
        while remaining > 0:
            chunk = rfile.read(min(READ_CHUNK, remaining))
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        raw = b"".join(chunks)
    if not raw.strip():
        return {}
    try:
        decoded = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedBodyError() from exc
    return parse_request_body(decoded)


class BridgeServer:
    """Routes bridge requests to the registered handler."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = DEFAULT_BRIDGE_PORT,
        *,
        max_body_bytes: int = MAX_BODY_BYTES,
        registry: OperationRegistry | None = None,
    ) -> None:
        if host not in LOOPBACK_HOSTS:
            raise ValueError(f"Bridge must bind a loopback address, got {host!r}")
        self.host = host
        self.port = port
        self.max_body_bytes = max_body_bytes
        self.registry = registry or create_default_registry()
        self._handler: BridgeHandler | None = None
        self._health_probe: Callable[[], bool] | None = None
        self._httpd: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None
        self._started_at = time.monotonic()

    # Wiring

    def set_handler(self, handler: BridgeHandler | None) -> None:
        self._handler = handler

    @property
    def handler(self) -> BridgeHandler | None:
        return self._handler

    def bind_health_probe(self, probe: Callable[[], bool] | None) -> None:
        self._health_probe = probe

    # Lifecycle

    def _make_httpd(self) -> ThreadingHTTPServer:
        httpd = ThreadingHTTPServer((self.host, self.port), _RequestHandler)
        httpd.daemon_threads = True
        httpd.bridge = self  # type: ignore[attr-defined]
        self.port = httpd.server_address[1]
        self._started_at = time.monotonic()
        return httpd

    def start(self) -> int:
        """Serve in a background thread and return the bound port."""
        if self._httpd is not None:
            return self.port
        self._httpd = self._make_httpd()
        self._thread = threading.Thread(target=self._httpd.serve_forever, name="lens-bridge", daemon=True)
        self._thread.start()
        logger.info("bridge listening on http://%s:%d", self.host, self.port)
        return self.port

    def serve_forever(self) -> None:
        self._httpd = self._make_httpd()
        logger.info("bridge listening on http://%s:%d", self.host, self.port)
        try:
            self._httpd.serve_forever()
        finally:
            self._httpd.server_close()
            self._httpd = None

    def stop(self) -> None:
        httpd = self._httpd
        if httpd is None:
            return
        httpd.shutdown()
        httpd.server_close()
        self._httpd = None
        if self._thread is not None:
            self._thread.join(timeout=2)
            self._thread = None

    # Routing

    def health(self) -> dict[str, Any]:
        connected = False
        if self._health_probe is not None:
            try:
                connected = bool(self._health_probe())
            except Exception as exc:  # noqa: BLE001
                logger.debug("health probe failed: %s", exc)
        return {
            "status": "ok",
            "handlerReady": self._handler is not None,
            "connected": connected,
            "timestamp": int(time.time() * 1000),
            "uptime": round(time.monotonic() - self._started_at, 3),
        }

    def handle_request(
        self,
        method: str,
        path: str,
        query: str,
        read_body: Callable[[], dict[str, Any]],
    ) -> tuple[int, Any]:
        """Return `(status, payload)` for one request."""
        if path == "/health":
            return 200, self.health()
        operation = self.registry.get(path.strip("/"))
        if operation is None:
            return 404, {"error": "Not found"}
        handler = self._handler
        if handler is None:
            return 503, {"error": "Handler not ready"}
        try:
            if not handler.supports(operation.name):
                return 501, {"error": f"{operation.name} not supported"}
            body = read_body() if method == "POST" else query_params(query)
            args = operation.parse(body)
            result = operation.call(handler, args)
        except ProtocolError as exc:
            logger.info("bridge %s %s rejected: %s", method, path, exc)
            return exc.status, {"error": str(exc)}
        except LensError as exc:
            status = http_status_for(exc)
            logger.info("bridge %s %s failed (%d): %s", method, path, status, exc)
            return status, {"error": str(exc)}
        except Exception as exc:  # noqa: BLE001
            logger.exception("bridge %s %s crashed", method, path)
            return 500, {"error": str(exc) or exc.__class__.__name__}
        return 200, to_jsonable(result)


class _RequestHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"
    server_version = "LensBridge/1.0"

    @property
    def bridge(self) -> BridgeServer:
        return self.server.bridge  # type: ignore[attr-defined]

    def do_OPTIONS(self) -> None:  # noqa: N802
        self.send_response(204)
        self._send_cors_headers()
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self) -> None:  # noqa: N802
        self._dispatch("GET")

    def do_POST(self) -> None:  # noqa: N802
        self._dispatch("POST")

    def _dispatch(self, method: str) -> None:
        parsed = urllib.parse.urlsplit(self.path)
        consumed = method != "POST"

        def read_body() -> dict[str, Any]:
            nonlocal consumed
            body = read_limited_body(self.rfile, self.headers, self.bridge.max_body_bytes)
            consumed = True
            return body

        status, payload = self.bridge.handle_request(method, parsed.path, parsed.query, read_body)
        if not consumed:
            # Unread body bytes would corrupt the next request on this connection.
            self.close_connection = True
        self._send_json(status, payload)

    def _send_cors_headers(self) -> None:
        origin = self.headers.get("Origin")
        if is_loopback_origin(origin):
            self.send_header("Access-Control-Allow-Origin", origin)
            self.send_header("Vary", "Origin")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")

    def _send_json(self, status: int, payload: Any) -> None:
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self._send_cors_headers()
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        if self.close_connection:
            self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A003
        logger.debug("bridge %s - %s", self.address_string(), format % args)
