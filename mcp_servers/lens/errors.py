"""
Error taxonomy shared by the bridge, the session manager and the CDP driver.

Every error that crosses the bridge is rendered as a single `{"error": str}` body;
the class decides the HTTP status and whether the session manager may retry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class LensError(Exception):
    """Base class for all expected failures."""


# Protocol (bridge input) errors
class ProtocolError(LensError):
    status = 400


class MalformedBodyError(ProtocolError):
    def __init__(self, message: str = "Invalid JSON body") -> None:
        super().__init__(message)


class BodyTooLargeError(ProtocolError):
    status = 413

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Request body too large (max {_format_size(limit)})")


class ValidationError(ProtocolError):
    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class CapabilityUnsupportedError(LensError):
    status = 501

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} not supported")


# Session errors
class SessionError(LensError):
    """No live connection, page not found, or page closed."""


class PageNotFoundError(SessionError):
    def __init__(self, target_url: str | None = None) -> None:
        self.target_url = target_url
        if target_url:
            message = f"Could not find matching page for {target_url}"
        else:
            message = "Could not find matching page"
        super().__init__(message)


class PageClosedError(SessionError):
    pass


class TransportError(SessionError):
    """The browser transport is unusable (socket closed, endpoint unreachable)."""


class TransportTimeoutError(TransportError):
    pass


class SelectorError(LensError):
    """Syntactically invalid selector. Never retried."""

    status = 400

    def __init__(self, selector: str, reason: str, *, suggestion: str | None = None) -> None:
        self.selector = selector
        self.reason = reason
        self.suggestion = suggestion
        message = f'Invalid selector "{selector}": {reason}'
        if suggestion:
            message = f"{message}. {suggestion}"
        super().__init__(message)


class ElementNotFoundError(LensError):
    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f'Element not found: "{selector}"')


class ScriptError(LensError):
    """A script evaluated in the page threw."""


class NavigationError(LensError):
    """The browser refused or failed a navigation."""


@dataclass(eq=False)
class OperationTimeoutError(LensError):
    """An action exhausted its retry budget or hard timeout."""

    action: str
    target: str | None
    timeout_ms: int
    reason: str = "did not complete"
    suggestion: str = "Try browser_snapshot to see available elements."
    details: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        super().__init__(str(self))

    def __str__(self) -> str:
        label = self.action[:1].upper() + self.action[1:]
        subject = f'"{self.target}"' if self.target else "operation"
        return f"{label} timeout: {subject} {self.reason} within {self.timeout_ms}ms. {self.suggestion}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "target": self.target,
            "timeoutMs": self.timeout_ms,
            "reason": self.reason,
            "suggestion": self.suggestion,
            "details": self.details or {},
        }


def _format_size(limit: int) -> str:
    if limit % (1024 * 1024) == 0:
        return f"{limit // (1024 * 1024)}MB"
    if limit % 1024 == 0:
        return f"{limit // 1024}KB"
    return f"{limit} bytes"


def http_status_for(exc: BaseException) -> int:
    """Map an exception to the bridge HTTP status."""
    status = getattr(exc, "status", None)
    if isinstance(exc, LensError) and isinstance(status, int):
        return status
    return 500
