"""Message queues: a bounded blocking queue and an unbounded non-blocking one."""

from __future__ import annotations

import queue
import threading
from collections import deque
from typing import Iterator

MIN_SIZE = 10
_DONE_POLL = 0.05


class DefaultQueue:
    """Bounded FIFO queue; put blocks when full."""

    def __init__(self, size: int) -> None:
        self.size = max(size, MIN_SIZE)
        self._queue: queue.Queue[bytes] = queue.Queue(maxsize=self.size)

    def put(self, item: bytes) -> None:
        self._queue.put(item)

    def get(self) -> bytes:
        """Return the next item, blocking until one is available."""
        return self._queue.get()

    def __len__(self) -> int:
        return self._queue.qsize()


class NonBlockingQueue:
    """Unbounded FIFO queue whose put never blocks.

    After close(), remaining items can still be read; once drained, get raises
    EOFError. Setting the optional done event stops reads at once.
    """

    def __init__(self, size: int, done: threading.Event | None = None) -> None:
        self.size = max(size, MIN_SIZE)
        self._done = done
        self._items: deque[bytes] = deque()
        self._closed = False
        self._cond = threading.Condition()

    def put(self, item: bytes) -> None:
        with self._cond:
            if self._closed:
                raise RuntimeError("put on closed queue")
            self._items.append(item)
            self._cond.notify()

    def get(self) -> bytes:
        """Return the next item; raises EOFError when closed and drained or stopped."""
        wait = _DONE_POLL if self._done is not None else None
        with self._cond:
            while True:
                if self._done is not None and self._done.is_set():
                    raise EOFError("queue stopped")
                if self._items:
                    return self._items.popleft()
                if self._closed:
                    raise EOFError("queue closed")
                self._cond.wait(wait)

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __iter__(self) -> Iterator[bytes]:
        while True:
            try:
                yield self.get()
            except EOFError:
                return

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)