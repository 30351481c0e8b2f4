"""Background CDP event reader for one attached page."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from .console import ConsoleBuffer
from .errors import LensError
from .events import PageEvents
from .models import ConsoleMessage
from .session_cdp import CdpConnection

logger = logging.getLogger("mcp.lens.cdp")

DIALOG_ACTIONS = ("accept", "dismiss")

_LOG_LEVELS = {"verbose": "debug", "info": "info", "warning": "warn", "error": "error"}


def _arg_text(arg: dict[str, Any]) -> str:
    if "value" in arg:
        value = arg["value"]
        return value if isinstance(value, str) else str(value)
    return str(arg.get("unserializableValue") or arg.get("description") or arg.get("type") or "")


def _format_stack(stack: dict[str, Any] | None) -> str | None:
    frames = (stack or {}).get("callFrames") or []
    if not frames:
        return None
    lines = []
    for frame in frames[:20]:
        fn = frame.get("functionName") or "<anonymous>"
        lines.append(f"    at {fn} ({frame.get('url', '')}:{frame.get('lineNumber', 0) + 1}:{frame.get('columnNumber', 0) + 1})")
    return "\n".join(lines)


def console_message_from_event(method: str, params: dict[str, Any]) -> ConsoleMessage | None:
    """Convert a CDP console/exception/log event into a ConsoleMessage."""
    if method == "Runtime.consoleAPICalled":
        frames = ((params.get("stackTrace") or {}).get("callFrames")) or []
        top = frames[0] if frames else {}
        level = ConsoleMessage.normalize_level(params.get("type"))
        return ConsoleMessage(
            level=level,
            text=" ".join(_arg_text(a) for a in params.get("args") or []),
            timestamp=float(params.get("timestamp") or time.time() * 1000),
            source=str(top.get("url") or ""),
            line=top["lineNumber"] + 1 if "lineNumber" in top else None,
            column=top["columnNumber"] + 1 if "columnNumber" in top else None,
            stack_trace=_format_stack(params.get("stackTrace")) if level == "error" else None,
        )
    if method == "Runtime.exceptionThrown":
        details = params.get("exceptionDetails") or {}
        exc = details.get("exception") or {}
        text = str(exc.get("description") or details.get("text") or "Uncaught exception")
        return ConsoleMessage(
            level="error",
            text=text.splitlines()[0] if text else text,
            timestamp=float(params.get("timestamp") or time.time() * 1000),
            source=str(details.get("url") or ""),
            line=details["lineNumber"] + 1 if "lineNumber" in details else None,
            column=details["columnNumber"] + 1 if "columnNumber" in details else None,
            stack_trace=_format_stack(details.get("stackTrace")) or (text if "\n" in text else None),
        )
    if method == "Log.entryAdded":
        entry = params.get("entry") or {}
        return ConsoleMessage(
            level=_LOG_LEVELS.get(str(entry.get("level")), "log"),
            text=str(entry.get("text") or ""),
            timestamp=float(entry.get("timestamp") or time.time() * 1000),
            source=str(entry.get("url") or entry.get("source") or ""),
            line=entry["lineNumber"] + 1 if "lineNumber" in entry else None,
        )
    return None


class PageEventBus:
    """Reads page events on a dedicated connection and fans them out.

    Feeds the console ring buffer, publishes typed events on `PageEvents`, answers
    JS dialogs according to the current policy and records when the page goes away.
    """

    def __init__(
        self,
        *,
        ws_url: str,
        events: PageEvents,
        console: ConsoleBuffer,
        name: str,
        connect: Callable[[str], CdpConnection] | None = None,
    ) -> None:
        self.ws_url = ws_url
        self.events = events
        self.console = console
        self.current_url = ""
        self.dialog_action = "dismiss"
        self.lost = threading.Event()
        self._connect = connect or (lambda url: CdpConnection(url, timeout=5.0))
        self._stop = threading.Event()
        self._ready = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._conn: CdpConnection | None = None

    def start(self, wait: float = 2.0) -> None:
        if self._thread.is_alive():
            return
        self._thread.start()
        self._ready.wait(wait)

    def stop(self) -> None:
        self._stop.set()
        conn = self._conn
        if conn is not None:
            conn.close()

    def _run(self) -> None:
        conn: CdpConnection | None = None
        try:
            conn = self._connect(self.ws_url)
            self._conn = conn
            for domain in ("Page", "Runtime", "Network", "Log"):
                try:
                    conn.send(f"{domain}.enable")
                except LensError:
                    logger.debug("event_bus enable %s failed", domain)
            self._ready.set()
            while not self._stop.is_set():
                event = conn.read_event(0.5)
                if event is not None:
                    self.handle_event(event, conn)
        except LensError as exc:
            if not self._stop.is_set():
                logger.info("event_bus lost page %s: %s", self.ws_url, exc)
                self.lost.set()
        finally:
            self._ready.set()
            if conn is not None:
                conn.close()
            self._conn = None

    def handle_event(self, event: dict[str, Any], conn: CdpConnection | None = None) -> None:
        method = event.get("method")
        params = event.get("params")
        if not isinstance(method, str) or not isinstance(params, dict):
            return

        message = console_message_from_event(method, params)
        if message is not None:
            self.console.append(message)
            self.events.console.publish(message)
            if method == "Runtime.exceptionThrown":
                self.events.error.publish(message)
            return

        if method == "Page.frameNavigated":
            frame = params.get("frame") or {}
            if not frame.get("parentId"):
                self.current_url = str(frame.get("url") or "")
                self.events.navigate.publish(self.current_url)
        elif method == "Page.navigatedWithinDocument":
            self.current_url = str(params.get("url") or self.current_url)
            self.events.navigate.publish(self.current_url)
        elif method == "Page.loadEventFired":
            self.events.load.publish(self.current_url)
        elif method == "Page.javascriptDialogOpening":
            self.events.dialog.publish(params)
            if conn is not None:
                accept = self.dialog_action == "accept"
                conn.send_nowait("Page.handleJavaScriptDialog", {"accept": accept})
                logger.info("dialog %s type=%s", "accepted" if accept else "dismissed", params.get("type"))
        elif method == "Network.responseReceived":
            response = params.get("response") or {}
            self.events.response.publish(
                {
                    "url": str(response.get("url") or ""),
                    "status": int(response.get("status") or 0),
                    "mimeType": str(response.get("mimeType") or ""),
                }
            )
        elif method in ("Inspector.detached", "Inspector.targetCrashed"):
            self.lost.set()
