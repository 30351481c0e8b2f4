"""
Automation session manager.

Owns the single browser session of the process. Every operation that touches the
page goes through `SessionManager.run`, which holds one lock for the whole
call: connect or re-validate the page, run the operation against a hard
timeout, retry the retryable failures, then release.

State machine:
    DISCONNECTED -> CONNECTING -> CONNECTED
    CONNECTED -> STALE -> RECONNECTING -> CONNECTED | DISCONNECTED
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from .capability import BrowserCapability, BrowserTransport
from .config import LensConfig
from .errors import (
    CapabilityUnsupportedError,
    ElementNotFoundError,
    LensError,
    OperationTimeoutError,
    PageNotFoundError,
    ProtocolError,
    SelectorError,
    SessionError,
    TransportError,
    TransportTimeoutError,
)
from .events import EventChannel
from .page_matching import locate_page, urls_match

logger = logging.getLogger("mcp.lens.session")

T = TypeVar("T")

# Extra time the hard timeout allows over the operation's own budget.
HARD_TIMEOUT_GRACE_MS = 500


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    STALE = "stale"
    RECONNECTING = "reconnecting"


@dataclass(slots=True)
class Session:
    transport: BrowserTransport
    page: BrowserCapability
    last_known_url: str


class _HardTimeout(LensError):
    pass


class SessionManager:
    """Serializes all page operations onto one connection."""

    def __init__(
        self,
        transport: BrowserTransport,
        config: LensConfig | None = None,
        *,
        view_url: Callable[[], str | None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = transport
        self.config = config or LensConfig()
        self._view_url = view_url
        self._sleep = sleep
        self._lock = threading.Lock()
        self._session: Session | None = None
        self._state = SessionState.DISCONNECTED
        self.state_changes: EventChannel[tuple[SessionState, SessionState]] = EventChannel("session-state")

    # Introspection (lock-free reads)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def page(self) -> BrowserCapability | None:
        session = self._session
        return session.page if session is not None else None

    def is_connected(self) -> bool:
        session = self._session
        if session is None or self._state is not SessionState.CONNECTED:
            return False
        return session.page.is_connected()

    def current_url(self) -> str:
        session = self._session
        if session is None:
            return ""
        return session.page.current_url() or session.last_known_url

    def supports(self, operation: str) -> bool:
        return self.transport.supports(operation)

    # Explicit lifecycle

    def connect(self) -> BrowserCapability:
        with self._lock:
            return self._ensure_connected_locked()

    def reconnect(self) -> BrowserCapability:
        with self._lock:
            if self._session is not None:
                self._set_state(SessionState.STALE)
            return self._ensure_connected_locked()

    def disconnect(self) -> None:
        with self._lock:
            self._drop_page_locked()
            self.transport.close()
            self._set_state(SessionState.DISCONNECTED)

    # Operations

    def run(
        self,
        action: str,
        operation: Callable[[BrowserCapability], T],
        *,
        target: str | None = None,
        timeout_ms: int | None = None,
        retries: int | None = None,
        navigation: bool = False,
    ) -> T:
        """Run `operation(page)` under the session lock with the retry policy.

        Element-not-found, CDP timeouts and lost pages are retried; selector,
        validation and capability errors propagate at once. A lost page is
        always reconnected and tried once more, even when `retries` is 0.
        """
        if timeout_ms is None:
            timeout_ms = self.config.navigation_timeout_ms if navigation else self.config.operation_timeout_ms
        if retries is None:
            retries = self.config.operation_retries
        with self._lock:
            last_error: Exception | None = None
            attempts = 0
            reconnected = False
            while True:
                attempts += 1
                page = self._ensure_connected_locked()
                try:
                    result = self._call_with_timeout(action, operation, page, timeout_ms)
                except (SelectorError, ProtocolError, CapabilityUnsupportedError):
                    raise
                except ElementNotFoundError as exc:
                    last_error = exc
                except _HardTimeout as exc:
                    last_error = exc
                    self._mark_stale_locked(f"{action} exceeded {timeout_ms}ms", abandon=True)
                except TransportTimeoutError as exc:
                    last_error = exc
                except SessionError as exc:
                    last_error = exc
                    self._mark_stale_locked(str(exc), abandon=True)
                    if attempts > retries and not reconnected:
                        reconnected = True
                        logger.info("reconnect action=%s target=%s after: %s", action, target, exc)
                        continue
                else:
                    self._remember_url_locked()
                    return result
                if attempts > retries:
                    break
                logger.debug("retry action=%s target=%s attempt=%d error=%s", action, target, attempts, last_error)
                self._sleep(self.config.retry_delay)
            raise self._exhausted(action, target, timeout_ms, attempts, last_error)

    def _call_with_timeout(
        self,
        action: str,
        operation: Callable[[BrowserCapability], T],
        page: BrowserCapability,
        timeout_ms: int,
    ) -> T:
        box: dict[str, Any] = {}
        done = threading.Event()

        def runner() -> None:
            try:
                box["result"] = operation(page)
            except BaseException as exc:  # noqa: BLE001
                box["error"] = exc
            finally:
                done.set()

        # Daemon thread: an abandoned operation must not keep the process alive.
        thread = threading.Thread(target=runner, name=f"lens-op-{action}", daemon=True)
        thread.start()
        if not done.wait((timeout_ms + HARD_TIMEOUT_GRACE_MS) / 1000.0):
            raise _HardTimeout(f"{action} timed out")
        if "error" in box:
            raise box["error"]
        return box.get("result")

    def _exhausted(
        self,
        action: str,
        target: str | None,
        timeout_ms: int,
        attempts: int,
        last_error: Exception | None,
    ) -> LensError:
        if isinstance(last_error, SessionError) and not isinstance(last_error, TransportTimeoutError):
            return last_error
        reason = "not found" if isinstance(last_error, ElementNotFoundError) else "did not complete"
        details = {"attempts": attempts, "lastError": str(last_error) if last_error else None}
        logger.info("operation_failed action=%s target=%s attempts=%d", action, target, attempts)
        return OperationTimeoutError(action, target, timeout_ms, reason, details=details)

    # Connection management (callers hold the lock)

    def _set_state(self, state: SessionState) -> None:
        previous = self._state
        if previous is state:
            return
        self._state = state
        logger.info("session %s -> %s", previous.value, state.value)
        self.state_changes.publish((previous, state))

    def _view(self) -> str | None:
        if self._view_url is None:
            return None
        return self._view_url() or None

    def _search_url(self) -> str | None:
        view = self._view()
        if view:
            return view
        if self._session is not None and self._session.last_known_url:
            return self._session.last_known_url
        return self.config.target_url or None

    def _stale_reason(self, session: Session) -> str | None:
        page = session.page
        if page.is_closed():
            return "page closed"
        view = self._view()
        if view and not urls_match(page.current_url(), view):
            return f"view moved to {view}"
        return None

    def _ensure_connected_locked(self) -> BrowserCapability:
        session = self._session
        if session is not None and self._state is SessionState.CONNECTED:
            reason = self._stale_reason(session)
            if reason is None:
                return session.page
            self._mark_stale_locked(reason)
        if self._session is not None and self._state is SessionState.STALE:
            return self._reconnect_locked()
        self._set_state(SessionState.CONNECTING)
        return self._connect_locked(self._search_url())

    def _mark_stale_locked(self, reason: str, *, abandon: bool = False) -> None:
        if self._session is None:
            return
        logger.info("session stale: %s", reason)
        if abandon:
            # Break the page connection so an abandoned call cannot interleave with the next one.
            self._safe_disconnect(self._session.page)
        self._set_state(SessionState.STALE)

    def _reconnect_locked(self) -> BrowserCapability:
        search_url = self._search_url()
        self._set_state(SessionState.RECONNECTING)
        self._drop_page_locked()
        if self.transport.is_connected():
            try:
                return self._attach_locked(search_url)
            except (TransportError, PageNotFoundError) as exc:
                logger.info("relocate on existing transport failed: %s", exc)
        return self._connect_locked(search_url)

    def _connect_locked(self, search_url: str | None) -> BrowserCapability:
        attempts = max(1, self.config.connect_attempts)
        last_error: SessionError | None = None
        for attempt in range(attempts):
            try:
                if not self.transport.is_connected():
                    self.transport.connect()
                return self._attach_locked(search_url)
            except TransportError as exc:
                last_error = exc
                self.transport.close()
            except PageNotFoundError as exc:
                last_error = exc
            if attempt < attempts - 1:
                self._sleep(self.config.connect_retry_delay)
        self._drop_page_locked()
        self._set_state(SessionState.DISCONNECTED)
        if isinstance(last_error, TransportError):
            raise TransportError(f"Could not find matching page: browser unreachable ({last_error})") from last_error
        raise PageNotFoundError(search_url) from last_error

    def _attach_locked(self, search_url: str | None) -> BrowserCapability:
        target = locate_page(self.transport.list_pages(), search_url)
        page = self.transport.attach(target)
        self._session = Session(transport=self.transport, page=page, last_known_url=page.current_url() or target.url)
        self._set_state(SessionState.CONNECTED)
        logger.info("attached page id=%s url=%s", target.id, target.url)
        return page

    def _drop_page_locked(self) -> None:
        session = self._session
        self._session = None
        if session is not None:
            self._safe_disconnect(session.page)

    @staticmethod
    def _safe_disconnect(page: BrowserCapability) -> None:
        try:
            page.disconnect()
        except LensError as exc:
            logger.debug("page disconnect failed: %s", exc)

    def _remember_url_locked(self) -> None:
        session = self._session
        if session is not None:
            url = session.page.current_url()
            if url:
                session.last_known_url = url
