"""FIFO hand-off between the blackboard notifier and the publisher thread.

The notifier side must never block, so `push()` is always non-blocking: the
queue is unbounded by default, and a bounded queue needs an explicit overflow
policy. The publisher side blocks in `pop()` until an entry arrives or the
queue is closed. Closing is the cooperative shutdown signal: blocked poppers
wake up and get `None` straight away, even when entries are still queued.
"""

from __future__ import annotations

import enum
import threading
from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class OverflowPolicy(enum.Enum):
    DROP_NEWEST = "drop_newest"  # refuse the entry being pushed
    DROP_OLDEST = "drop_oldest"  # evict the head to make room


class PublishQueue(Generic[T]):
    def __init__(self, *, maxsize: int = 0, overflow: OverflowPolicy = OverflowPolicy.DROP_NEWEST) -> None:
        if maxsize < 0:
            raise ValueError("maxsize must be >= 0")
        self.maxsize = maxsize
        self.overflow = overflow

        self._items: deque[T] = deque()
        self._cond = threading.Condition()
        self._closed = False

        # Counters (read without the lock; they only ever grow).
        self.pushed = 0  # entries accepted into the queue
        self.evicted = 0  # accepted entries later pushed out by DROP_OLDEST
        self.refused = 0  # entries never accepted (closed, or DROP_NEWEST overflow)

    def push(self, item: T) -> bool:
        """Append an entry without blocking.

        Returns False when the entry was not queued (queue closed, or full
        under DROP_NEWEST).
        """
        with self._cond:
            if self._closed:
                self.refused += 1
                return False
            if self.maxsize and len(self._items) >= self.maxsize:
                if self.overflow is OverflowPolicy.DROP_NEWEST:
                    self.refused += 1
                    return False
                self._items.popleft()
                self.evicted += 1
            self._items.append(item)
            self.pushed += 1
            self._cond.notify()
            return True

    def pop(self, timeout: float | None = None) -> T | None:
        """Take the oldest entry, waiting while the queue is empty.

        Returns None once the queue is closed or when `timeout` expires.
        """
        with self._cond:
            self._cond.wait_for(lambda: self._closed or bool(self._items), timeout=timeout)
            if self._closed or not self._items:
                return None
            return self._items.popleft()

    def drain(self) -> list[T]:
        """Remove and return everything currently queued, oldest first."""
        with self._cond:
            items = list(self._items)
            self._items.clear()
            return items

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    @property
    def dropped(self) -> int:
        return self.evicted + self.refused

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)
