"""Database connection with SQL statement logging."""

from __future__ import annotations

import dataclasses
import logging
import time
from enum import IntEnum
from typing import Callable, Optional
from urllib.parse import quote

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoResultFound, SQLAlchemyError

log = logging.getLogger(__name__)

MAX_OPEN_CONNS = 240
MAX_IDLE_CONNS = 24
CONN_MAX_LIFETIME = 6 * 60
_START_KEY = "babo_query_start"


class LogLevel(IntEnum):
    SILENT = 1
    ERROR = 2
    WARN = 3
    INFO = 4


@dataclasses.dataclass
class SqlLogger:
    """Routes SQL activity to the package log; slow_threshold is in seconds."""

    slow_threshold: float = 1.0
    log_level: LogLevel = LogLevel.WARN

    def log_mode(self, level: LogLevel) -> "SqlLogger":
        """Return a copy of this logger at another level."""
        return dataclasses.replace(self, log_level=level)

    def info(self, msg: str, *args) -> None:
        if self.log_level >= LogLevel.INFO:
            log.info(msg, *args)

    def warn(self, msg: str, *args) -> None:
        if self.log_level >= LogLevel.WARN:
            log.warning(msg, *args)

    def error(self, msg: str, *args) -> None:
        if self.log_level >= LogLevel.ERROR:
            log.error(msg, *args)

    def trace(
        self,
        begin: float,
        fc: Callable[[], tuple[str, int]],
        err: Optional[BaseException],
    ) -> None:
        """Log one statement; begin is a time.perf_counter() reading taken before it ran."""
        if self.log_level <= LogLevel.SILENT:
            return
        elapsed = time.perf_counter() - begin
        sql, rows = fc()
        fields = "sql=%s time=%.6fs rows=%d"
        values = [sql, elapsed, rows]

        if err is not None and not isinstance(err, NoResultFound):
            log.error("SQL Error " + fields + " error=%s", *values, err)

        if self.slow_threshold and elapsed > self.slow_threshold:
            log.warning("SQL Slow Log " + fields, *values)

        if self.log_level == LogLevel.INFO:
            log.info("SQL " + fields, *values)


_engine: Engine | None = None


def build_dsn(addr: str, user: str, pwd: str, db_name: str) -> str:
    """Return the MySQL connection URL for the given server and credentials."""
    return (
        f"mysql+pymysql://{quote(user, safe='')}:{quote(pwd, safe='')}"
        f"@{addr}/{db_name}?charset=utf8mb4"
    )


def _pop_start(conn) -> float:
    starts = conn.info.get(_START_KEY) if conn is not None else None
    return starts.pop() if starts else time.perf_counter()


def _install_logger(engine: Engine, sql_logger: SqlLogger) -> None:
    @event.listens_for(engine, "before_cursor_execute")
    def _before(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault(_START_KEY, []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def _after(conn, cursor, statement, parameters, context, executemany):
        sql_logger.trace(_pop_start(conn), lambda: (statement, cursor.rowcount), None)

    @event.listens_for(engine, "handle_error")
    def _on_error(ctx):
        sql_logger.trace(
            _pop_start(ctx.connection),
            lambda: (ctx.statement or "", -1),
            ctx.original_exception,
        )


def _open(url: str, **engine_kwargs) -> Engine:
    global _engine
    engine = create_engine(url, **engine_kwargs)
    _install_logger(engine, SqlLogger())
    try:
        with engine.connect():
            pass
    except SQLAlchemyError as exc:
        log.error("Connect database failed: %s", exc)
        engine.dispose()
        raise
    _engine = engine
    return engine


def connect(addr: str, user: str, pwd: str, db_name: str) -> Engine:
    """Connect to MySQL, verify the connection and make it the process-wide engine."""
    return _open(
        build_dsn(addr, user, pwd, db_name),
        pool_size=MAX_IDLE_CONNS,
        max_overflow=MAX_OPEN_CONNS - MAX_IDLE_CONNS,
        pool_recycle=CONN_MAX_LIFETIME,
    )


def connect_url(url: str) -> Engine:
    """Connect to any database URL and make it the process-wide engine."""
    return _open(url)


def db() -> Engine | None:
    """Return the process-wide engine, or None before connecting."""
    return _engine