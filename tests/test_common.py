import logging
import os
import signal
import threading

import pytest

from babo import common
from babo.common import (
    I64Pair,
    I64SlicePair,
    ItemBrief,
    build_item_briefs,
    in_slice,
    protect_error,
    rand_string,
    sort_pairs,
    sort_slice_pairs,
    str_to_int64,
    to_int64,
    wait_for_terminate,
)


def _boom():
    raise RuntimeError("boom")


def _missing():
    raise KeyError("missing")


def test_sort_pairs_by_key():
    pairs = [I64Pair(3, 30), I64Pair(1, 10), I64Pair(2, 20)]
    sort_pairs(pairs)
    assert [p.k for p in pairs] == [1, 2, 3]
    assert [p.v for p in pairs] == [10, 20, 30]


def test_sort_slice_pairs_by_key():
    pairs = [I64SlicePair(5, [1]), I64SlicePair(-1, [2, 3])]
    sort_slice_pairs(pairs)
    assert pairs == [I64SlicePair(-1, [2, 3]), I64SlicePair(5, [1])]


def test_build_item_briefs_skips_bad_rows():
    briefs = build_item_briefs([[1, 2], [3], [4, 5, 6], [7, 8]])
    assert briefs == [ItemBrief(1, 2), ItemBrief(7, 8)]


@pytest.mark.parametrize("text, value", [("42", 42), ("-42", -42), ("+5", 5), ("9223372036854775807", (1 << 63) - 1)])
def test_str_to_int64(text, value):
    assert str_to_int64(text) == value


@pytest.mark.parametrize("text", ["", " 1", "1_0", "abc", "-", "9223372036854775808", "1.5"])
def test_str_to_int64_invalid(text):
    with pytest.raises(ValueError):
        str_to_int64(text)


def test_to_int64():
    assert to_int64(7) == 7
    with pytest.raises(ValueError):
        to_int64(None)
    with pytest.raises(TypeError):
        to_int64("7")
    with pytest.raises(TypeError):
        to_int64(True)


def test_in_slice():
    assert in_slice([1, 2, 3], 2) is True
    assert in_slice([1, 2, 3], 4) is False


def test_protect_error_logs_and_suppresses(caplog):
    caplog.set_level(logging.ERROR, logger="babo.common")
    with protect_error():
        _boom()
    errors = [r for r in caplog.records if r.name == "babo.common"]
    assert len(errors) == 1
    assert errors[0].exc_info[0] is RuntimeError
    assert "boom" in errors[0].getMessage()


def test_protect_error_as_decorator(caplog):
    caplog.set_level(logging.ERROR, logger="babo.common")
    guarded = protect_error()(_missing)
    result = guarded()
    assert result is None
    errors = [r for r in caplog.records if r.name == "babo.common"]
    assert len(errors) == 1
    assert errors[0].exc_info[0] is KeyError


def test_rand_string():
    s = rand_string(50)
    assert len(s) == 50
    assert set(s) <= set(common.LETTERS)
    assert rand_string(0) == ""
    with pytest.raises(ValueError):
        rand_string(-1)


def test_wait_for_terminate_returns_signal():
    timer = threading.Timer(0.1, os.kill, (os.getpid(), signal.SIGTERM))
    timer.start()
    try:
        assert wait_for_terminate() == signal.SIGTERM
    finally:
        timer.cancel()