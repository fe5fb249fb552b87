"""Snowflake-style 64-bit unique id generator."""

from __future__ import annotations

import threading
import time
from typing import Callable

EPOCH = 1577808000000
WORKER_ID_BITS = 5
DATACENTER_ID_BITS = 5
MAX_WORKER_ID = -1 ^ (-1 << WORKER_ID_BITS)
MAX_DATACENTER_ID = -1 ^ (-1 << DATACENTER_ID_BITS)
SEQUENCE_BITS = 12
WORKER_ID_SHIFT = SEQUENCE_BITS
DATACENTER_ID_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS
TIMESTAMP_LEFT_SHIFT = SEQUENCE_BITS + WORKER_ID_BITS + DATACENTER_ID_BITS
SEQUENCE_MASK = -1 ^ (-1 << SEQUENCE_BITS)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Generator:
    """Thread-safe generator of time-ordered 64-bit ids."""

    def __init__(
        self,
        worker_id: int,
        datacenter_id: int,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        if not 0 <= worker_id <= MAX_WORKER_ID:
            raise ValueError(
                f"worker id can't be greater than {MAX_WORKER_ID} or less than 0"
            )
        if not 0 <= datacenter_id <= MAX_DATACENTER_ID:
            raise ValueError(
                f"datacenter id can't be greater than {MAX_DATACENTER_ID} or less than 0"
            )
        self.worker_id = worker_id
        self.datacenter_id = datacenter_id
        self._clock = clock
        self._lock = threading.Lock()
        self._last_timestamp = 0
        self._sequence = 0

    def generate(self) -> int:
        """Return the next id; raises RuntimeError if the clock went backwards."""
        with self._lock:
            now = self._clock()
            if now == self._last_timestamp:
                self._sequence = (self._sequence + 1) & SEQUENCE_MASK
                if self._sequence == 0:
                    while now <= self._last_timestamp:
                        now = self._clock()
            else:
                self._sequence = 0

            if now < self._last_timestamp:
                raise RuntimeError("clock moved backwards")

            self._last_timestamp = now
            return (
                ((now - EPOCH) << TIMESTAMP_LEFT_SHIFT)
                | (self.datacenter_id << DATACENTER_ID_SHIFT)
                | (self.worker_id << WORKER_ID_SHIFT)
                | self._sequence
            )


_generator: Generator | None = None


def init(worker_id: int, datacenter_id: int) -> None:
    """Set up the process-wide generator."""
    global _generator
    _generator = Generator(worker_id, datacenter_id)


def generate() -> int:
    """Return the next id from the process-wide generator."""
    if _generator is None:
        raise RuntimeError("uuid generator not initialized")
    return _generator.generate()