"""Unbounded FIFO queue for one producer and one consumer thread."""

from __future__ import annotations

from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class SPSCQueue(Generic[T]):
    """Unbounded single-producer single-consumer queue.

    ``dequeue`` returns ``None`` when the queue is empty, so ``None``
    should not be used as an item.
    """

    def __init__(self) -> None:
        # deque.append and deque.popleft are atomic, which is all one
        # producer and one consumer need.
        self._items: deque[T] = deque()

    def enqueue(self, value: T) -> bool:
        """Append an item; always succeeds."""
        self._items.append(value)
        return True

    def dequeue(self) -> T | None:
        """Remove and return the oldest item, or ``None`` if empty."""
        try:
            return self._items.popleft()
        except IndexError:
            return None

    def empty(self) -> bool:
        return not self._items

    def size_approx(self) -> int:
        """Number of queued items; may be stale under concurrent use."""
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)