"""
Thread-safe bounded queue decoupling producers from delivery.

Producers on arbitrary threads enqueue; the sender's event loop dequeues.
Every operation is non-blocking: a full queue rejects the item instead of
waiting, and an empty queue reports ``(False, None)``. Closing the queue is
atomic with respect to enqueues, so nothing can be added once the final
drain has started.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class NonBlockingRingQueue(Generic[T]):
    """Bounded multi-producer queue with try-only operations."""

    __slots__ = ("_capacity", "_closed", "_items", "_lock")

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self._capacity = capacity
        self._items: deque[T] = deque()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        with self._lock:
            return len(self._items)

    def is_empty(self) -> bool:
        return self.qsize() == 0

    def is_full(self) -> bool:
        return self.qsize() >= self._capacity

    def try_enqueue(self, item: T) -> bool:
        """Add ``item``; returns False if the queue is full or closed."""
        with self._lock:
            if self._closed or len(self._items) >= self._capacity:
                return False
            self._items.append(item)
            return True

    def try_dequeue(self) -> tuple[bool, T | None]:
        """Remove the oldest item; returns ``(False, None)`` if empty."""
        with self._lock:
            if not self._items:
                return False, None
            return True, self._items.popleft()

    def drain(self, max_items: int) -> list[T]:
        """Remove up to ``max_items`` items in FIFO order without blocking."""
        with self._lock:
            count = min(max_items, len(self._items))
            return [self._items.popleft() for _ in range(count)]

    def close(self) -> None:
        """Reject all further enqueues. Already queued items stay drainable."""
        with self._lock:
            self._closed = True
