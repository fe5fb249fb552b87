"""Logging setup: rotating info and error files plus an optional colored console."""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "babo"
MAX_BYTES = 100 * 1024 * 1024
BACKUP_COUNT = 90

_COLORS = {
    logging.DEBUG: "\x1b[35m",
    logging.INFO: "\x1b[34m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[31m",
}
_RESET = "\x1b[0m"


class _Formatter(logging.Formatter):
    def __init__(self, with_caller: bool, color: bool) -> None:
        caller = "%(filename)s:%(lineno)d " if with_caller else ""
        super().__init__(f"%(asctime)s %(levelname)s {caller}%(message)s")
        self._color = color

    def formatTime(self, record, datefmt=None):
        return datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="milliseconds")

    def format(self, record):
        if not self._color:
            return super().format(record)
        original = record.levelname
        record.levelname = f"{_COLORS.get(record.levelno, '')}{original}{_RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def _gzip_rotator(source: str, dest: str) -> None:
    with open(source, "rb") as src, gzip.open(dest, "wb") as dst:
        shutil.copyfileobj(src, dst)
    os.remove(source)


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8")
    handler.namer = lambda name: name + ".gz"
    handler.rotator = _gzip_rotator
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def init(name: str, no_std: bool, no_trace: bool) -> logging.Logger:
    """Configure the package logger to write under ./log/ and, unless no_std, to stdout."""
    logger = get_logger()
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    formatter = _Formatter(with_caller=not no_trace, color=False)
    info_level = logging.INFO if no_std else logging.DEBUG
    logger.addHandler(_rotating_handler(Path("log", "info", f"{name}.log"), info_level, formatter))
    logger.addHandler(_rotating_handler(Path("log", "err", f"{name}.err.log"), logging.ERROR, formatter))

    if not no_std:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(logging.DEBUG)
        console.setFormatter(_Formatter(with_caller=not no_trace, color=True))
        logger.addHandler(console)

    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger


def sync() -> None:
    """Flush every handler of the package logger."""
    for handler in get_logger().handlers:
        handler.flush()