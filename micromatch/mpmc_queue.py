"""Bounded FIFO queue safe for many producers and many consumers."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class MPMCQueue(Generic[T]):
    """Bounded multi-producer multi-consumer queue.

    The capacity must be a power of two. ``try_dequeue`` and ``dequeue``
    return ``None`` when nothing is available, so ``None`` should not be
    used as an item.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0 or capacity & (capacity - 1):
            raise ValueError(f"capacity must be a power of 2, got {capacity}")
        self._capacity = capacity
        self._items: deque[T] = deque()
        self._lock = threading.Lock()

    def try_enqueue(self, value: T) -> bool:
        """Append an item; return False if the queue is full."""
        with self._lock:
            if len(self._items) >= self._capacity:
                return False
            self._items.append(value)
            return True

    def try_dequeue(self) -> T | None:
        """Remove and return the oldest item, or ``None`` if empty."""
        with self._lock:
            if not self._items:
                return None
            return self._items.popleft()

    def enqueue(self, value: T, max_retries: int = 1000) -> bool:
        """Retry ``try_enqueue`` up to ``max_retries`` times."""
        for _ in range(max_retries):
            if self.try_enqueue(value):
                return True
            time.sleep(0)
        return False

    def dequeue(self, max_retries: int = 1000) -> T | None:
        """Retry ``try_dequeue`` up to ``max_retries`` times."""
        for _ in range(max_retries):
            with self._lock:
                if self._items:
                    return self._items.popleft()
            time.sleep(0)
        return None

    def empty(self) -> bool:
        with self._lock:
            return not self._items

    def size_approx(self) -> int:
        """Number of queued items; may be stale under concurrent use."""
        with self._lock:
            return len(self._items)

    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return self.size_approx()