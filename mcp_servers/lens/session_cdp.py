"""Raw CDP transport: one WebSocket per page plus the /json HTTP endpoints."""

from __future__ import annotations

import itertools
import json
import socket
import time
from collections import deque
from collections.abc import Iterator
from contextlib import suppress
from typing import Any
from urllib.error import URLError
from urllib.request import urlopen

import websocket

from .errors import LensError, TransportError, TransportTimeoutError


class CdpProtocolError(LensError):
    """The browser answered a command with an error object."""


def http_get_json(url: str, timeout: float = 2.0) -> Any:
    """Fetch JSON from a DevTools HTTP endpoint."""
    try:
        with urlopen(url, timeout=timeout) as resp:
            return json.loads(resp.read().decode())
    except (URLError, TimeoutError, ConnectionError) as exc:
        raise TransportError(f"DevTools endpoint unreachable: {url} ({exc})") from exc
    except json.JSONDecodeError as exc:
        raise TransportError(f"DevTools endpoint returned invalid JSON: {url}") from exc


def _is_timeout(exc: BaseException) -> bool:
    return isinstance(exc, (TimeoutError, websocket.WebSocketTimeoutException)) or "timed out" in str(exc).lower()


def _is_event(data: dict[str, Any]) -> bool:
    return isinstance(data.get("method"), str) and "id" not in data


def _event_params(event: dict[str, Any]) -> dict[str, Any]:
    params = event.get("params")
    return params if isinstance(params, dict) else {}


class CdpConnection:
    """One DevTools WebSocket. Not thread-safe: callers serialize commands."""

    BACKLOG_LIMIT = 2000

    def __init__(self, ws_url: str, timeout: float = 5.0):
        try:
            self.ws = websocket.create_connection(ws_url, timeout=timeout, suppress_origin=True)
        except (OSError, websocket.WebSocketException) as exc:
            raise TransportError(f"CDP connect failed: {exc}") from exc
        self.ws_url = ws_url
        self.timeout = timeout
        self._ids = itertools.count(1)
        # Events read while a command was in flight, oldest first.
        self._backlog: deque[dict[str, Any]] = deque(maxlen=self.BACKLOG_LIMIT)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed or not getattr(self.ws, "connected", False)

    def _take_backlog(self, event_name: str) -> dict[str, Any] | None:
        for event in self._backlog:
            if event.get("method") == event_name:
                self._backlog.remove(event)
                return _event_params(event)
        return None

    def clear_events(self, event_name: str | None = None) -> None:
        """Forget backlogged events, all of them or one kind."""
        if event_name is None:
            self._backlog.clear()
            return
        kept = [event for event in self._backlog if event.get("method") != event_name]
        self._backlog = deque(kept, maxlen=self.BACKLOG_LIMIT)

    def abort(self) -> None:
        """Shut the socket down under any reader; usable from another thread."""
        self._closed = True
        sock = getattr(self.ws, "sock", None)
        if sock is None:
            return
        with suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)
        with suppress(OSError):
            sock.close()

    def _write(self, method: str, params: dict[str, Any] | None) -> int:
        msg_id = next(self._ids)
        frame: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            frame["params"] = params
        try:
            self.ws.settimeout(min(2.0, max(0.5, float(self.timeout))))
            self.ws.send(json.dumps(frame))
        except Exception as exc:  # noqa: BLE001
            if _is_timeout(exc):
                raise TransportTimeoutError(f"CDP send timed out: {method}") from exc
            raise TransportError(f"CDP send failed: {exc}") from exc
        return msg_id

    def send(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None) -> dict[str, Any]:
        """Send a CDP command and block until its response arrives."""
        msg_id = self._write(method, params)
        return self._await_response(msg_id, method, self.timeout if timeout is None else timeout)

    def send_nowait(self, method: str, params: dict[str, Any] | None = None) -> int:
        """Fire a command; its response is dropped whenever it is read."""
        return self._write(method, params)

    def _read_frame(self, remaining: float) -> dict[str, Any] | None:
        """One decoded frame, or None on a read timeout or a non-object frame."""
        try:
            self.ws.settimeout(min(0.5, remaining))
            raw = self.ws.recv()
        except Exception as exc:  # noqa: BLE001
            if _is_timeout(exc):
                return None
            self._closed = True
            raise TransportError(f"CDP connection lost: {exc}") from exc
        try:
            data = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return None
        return data if isinstance(data, dict) else None

    def _frames_until(self, deadline: float) -> Iterator[dict[str, Any]]:
        while (remaining := deadline - time.monotonic()) > 0:
            data = self._read_frame(remaining)
            if data is not None:
                yield data

    def _await_response(self, msg_id: int, method: str, timeout: float) -> dict[str, Any]:
        for data in self._frames_until(time.monotonic() + timeout):
            if _is_event(data):
                self._backlog.append(data)
            elif data.get("id") == msg_id:
                error = data.get("error")
                if error is not None:
                    detail = error.get("message") if isinstance(error, dict) else error
                    raise CdpProtocolError(f"{method}: {detail}")
                result = data.get("result")
                return result if isinstance(result, dict) else {}
        raise TransportTimeoutError(f"CDP response timed out: {method}")

    def wait_for_event(self, event_name: str, timeout: float = 10.0) -> dict[str, Any] | None:
        """Params of the next `event_name` event, backlog first; None on timeout."""
        backlogged = self._take_backlog(event_name)
        if backlogged is not None:
            return backlogged
        for data in self._frames_until(time.monotonic() + timeout):
            if not _is_event(data):
                continue
            if data["method"] == event_name:
                return _event_params(data)
            self._backlog.append(data)
        return None

    def read_event(self, timeout: float = 0.5) -> dict[str, Any] | None:
        """Read a single frame for the event bus; command responses are dropped."""
        data = self._read_frame(max(0.01, timeout))
        return data if data is not None and _is_event(data) else None

    def close(self) -> None:
        """Close the page socket."""
        self.abort()


__all__ = ["CdpConnection", "CdpProtocolError", "http_get_json"]
