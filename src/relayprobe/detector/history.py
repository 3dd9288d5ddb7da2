"""Bounded, insertion-ordered store of detection results."""

from __future__ import annotations

import threading
from collections import deque

from .config import DEFAULT_MAX_HISTORY
from .models import Result


class ResultHistory:
    def __init__(self, capacity: int = DEFAULT_MAX_HISTORY):
        self._lock = threading.Lock()
        self._items: deque[Result] = deque(maxlen=self._normalize(capacity))

    @staticmethod
    def _normalize(capacity: int) -> int:
        return capacity if capacity > 0 else DEFAULT_MAX_HISTORY

    @property
    def capacity(self) -> int:
        with self._lock:
            return self._items.maxlen or DEFAULT_MAX_HISTORY

    def append(self, result: Result) -> None:
        # deque(maxlen=...) evicts from the head on overflow.
        with self._lock:
            self._items.append(result)

    def latest(self) -> Result | None:
        with self._lock:
            if not self._items:
                return None
            return self._items[-1]

    def all(self) -> list[Result]:
        with self._lock:
            return list(self._items)

    def resize(self, capacity: int) -> None:
        capacity = self._normalize(capacity)
        with self._lock:
            if capacity == self._items.maxlen:
                return
            self._items = deque(self._items, maxlen=capacity)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
