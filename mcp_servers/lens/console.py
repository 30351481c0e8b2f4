from __future__ import annotations

import threading
from collections import deque

from .models import CONSOLE_LEVELS, ConsoleMessage

DEFAULT_CAPACITY = 500
DEFAULT_LIMIT = 20


class ConsoleBuffer:
    """Fixed-capacity ring of console messages; oldest evicted first.

    Written by the page event bus thread, read by bridge request threads.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self.capacity = max(1, int(capacity))
        self._items: deque[ConsoleMessage] = deque(maxlen=self.capacity)
        self._lock = threading.Lock()
        self._dropped = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def dropped(self) -> int:
        return self._dropped

    def append(self, message: ConsoleMessage) -> None:
        with self._lock:
            if len(self._items) == self.capacity:
                self._dropped += 1
            self._items.append(message)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def snapshot(self) -> list[ConsoleMessage]:
        with self._lock:
            return list(self._items)

    def query(
        self,
        *,
        level: str | None = None,
        limit: int | None = DEFAULT_LIMIT,
        since: float | None = None,
    ) -> list[ConsoleMessage]:
        """Most recent messages, oldest first. `level="all"` (or None) disables the filter."""
        wanted = (level or "all").strip().lower()
        if wanted == "warning":
            wanted = "warn"
        if wanted != "all" and wanted not in CONSOLE_LEVELS:
            return []
        items = self.snapshot()
        if wanted != "all":
            items = [m for m in items if m.level == wanted]
        if since is not None:
            items = [m for m in items if m.timestamp >= since]
        if limit is not None:
            limit = max(0, int(limit))
            items = items[-limit:] if limit else []
        return items
