"""Small shared helpers: pairs, item briefs, conversions, panic guard, signals."""

from __future__ import annotations

import contextlib
import logging
import random
import signal
import string
import threading
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence

log = logging.getLogger(__name__)

MAX_UINT = 0xFF_FF_FF_FF
INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1
LETTERS = string.ascii_lowercase + string.ascii_uppercase


@dataclass
class I64Pair:
    k: int
    v: int


@dataclass
class I64SlicePair:
    k: int
    v: list[int] = field(default_factory=list)


@dataclass
class ItemBrief:
    id: int
    count: int


def sort_pairs(pairs: list[I64Pair]) -> None:
    """Sort pairs in place by key."""
    pairs.sort(key=lambda p: p.k)


def sort_slice_pairs(pairs: list[I64SlicePair]) -> None:
    """Sort slice pairs in place by key."""
    pairs.sort(key=lambda p: p.k)


def build_item_briefs(source: Iterable[Sequence[int]]) -> list[ItemBrief]:
    """Build briefs from [id, count] rows, skipping rows of any other length."""
    return [ItemBrief(row[0], row[1]) for row in source if len(row) == 2]


def str_to_int64(s: str) -> int:
    """Parse a base-10 signed 64-bit integer strictly."""
    body = s[1:] if s[:1] in ("+", "-") else s
    if not body or not (body.isascii() and body.isdigit()):
        raise ValueError(f"invalid syntax: {s!r}")
    value = int(s)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"value out of range: {s!r}")
    return value


def to_int64(value: object) -> int:
    """Return value if it is a 64-bit integer, otherwise raise."""
    if value is None:
        raise ValueError("ToInt64 nil")
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError("ToInt64 type error")
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError("ToInt64 out of range")
    return value


def in_slice(values: Iterable[int], v: int) -> bool:
    return v in values


@contextlib.contextmanager
def protect_error() -> Iterator[None]:
    """Log and swallow any exception raised inside the block."""
    try:
        yield
    except Exception as exc:  # noqa: BLE001 - the point is to keep the caller alive
        log.error("panic: %s", exc, exc_info=True)


def wait_for_terminate() -> signal.Signals:
    """Block until SIGINT or SIGTERM arrives and return the signal received."""
    received: list[int] = []
    stop = threading.Event()

    def _handler(signum, _frame):
        received.append(signum)
        stop.set()

    watched = (signal.SIGINT, signal.SIGTERM)
    previous = {sig: signal.signal(sig, _handler) for sig in watched}
    try:
        while not stop.wait(0.2):
            pass
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    return signal.Signals(received[0])


def rand_string(n: int) -> str:
    """Return n random ASCII letters."""
    if n < 0:
        raise ValueError("length must not be negative")
    return "".join(random.choices(LETTERS, k=n))