"""Publish/subscribe channels for page events (console, navigate, load, error, ...)."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from .errors import LensError

logger = logging.getLogger("mcp.lens.events")

T = TypeVar("T")

MAX_SUBSCRIBERS = 64


class SubscriptionLimitError(LensError):
    pass


class Subscription:
    """Token returned by `EventChannel.subscribe`; unsubscribes on close or context exit."""

    __slots__ = ("_channel", "_id", "active")

    def __init__(self, channel: EventChannel[Any], sub_id: int) -> None:
        self._channel = channel
        self._id = sub_id
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._channel._remove(self._id)  # noqa: SLF001

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *args: Any) -> None:
        self.unsubscribe()


class EventChannel(Generic[T]):
    """Bounded observer list. Subscriber failures are logged and never reach the publisher."""

    def __init__(self, name: str, *, max_subscribers: int = MAX_SUBSCRIBERS) -> None:
        self.name = name
        self.max_subscribers = max_subscribers
        self._subscribers: dict[int, Callable[[T], None]] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription:
        with self._lock:
            if len(self._subscribers) >= self.max_subscribers:
                raise SubscriptionLimitError(f"{self.name}: subscriber limit ({self.max_subscribers}) reached")
            sub_id = self._next_id
            self._next_id += 1
            self._subscribers[sub_id] = callback
        return Subscription(self, sub_id)

    def _remove(self, sub_id: int) -> None:
        with self._lock:
            self._subscribers.pop(sub_id, None)

    def publish(self, event: T) -> int:
        with self._lock:
            callbacks = list(self._subscribers.values())
        delivered = 0
        for callback in callbacks:
            try:
                callback(event)
                delivered += 1
            except Exception:  # noqa: BLE001
                logger.debug("subscriber failed on channel %s", self.name, exc_info=True)
        return delivered

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()


class PageEvents:
    """The channel set every attached page exposes."""

    def __init__(self) -> None:
        self.console: EventChannel[Any] = EventChannel("console")
        self.navigate: EventChannel[str] = EventChannel("navigate")
        self.load: EventChannel[str] = EventChannel("load")
        self.error: EventChannel[Any] = EventChannel("error")
        self.dialog: EventChannel[dict[str, Any]] = EventChannel("dialog")
        self.response: EventChannel[dict[str, Any]] = EventChannel("response")

    def channels(self) -> tuple[EventChannel[Any], ...]:
        return (self.console, self.navigate, self.load, self.error, self.dialog, self.response)

    def clear(self) -> None:
        for channel in self.channels():
            channel.clear()
