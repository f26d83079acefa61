from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import time, timedelta
from typing import Any, Dict, Iterator, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import StateConflict
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

LOCK_CONFLICT_ERRNOS = frozenset({errorcode.ER_LOCK_DEADLOCK, errorcode.ER_LOCK_WAIT_TIMEOUT})

# Connection owned by the enclosing db_transaction(), if any.
_current_conn: ContextVar[Optional[Any]] = ContextVar("shift_tracker_current_conn", default=None)


def is_lock_conflict(err: BaseException) -> bool:
    return isinstance(err, mysql.connector.Error) and err.errno in LOCK_CONFLICT_ERRNOS


def _as_conflict(err: mysql.connector.Error) -> StateConflict:
    logger.info("lock conflict (errno=%s), failing the request", err.errno)
    return StateConflict(errno=err.errno)


@contextmanager
def db_transaction(conn_factory: DatabaseConnection) -> Iterator[Any]:
    """Run the block in one transaction; nested blocks join the outer one.

    A deadlock or lock wait timeout surfaces as ``StateConflict``.
    """

    outer = _current_conn.get()
    if outer is not None:
        yield outer
        return

    conn = conn_factory.connect()
    token = _current_conn.set(conn)
    try:
        conn.start_transaction()
        yield conn
        conn.commit()
    except Exception as e:
        conn.rollback()
        logger.debug("transaction rolled back", exc_info=True)
        if is_lock_conflict(e):
            raise _as_conflict(e) from e
        raise
    finally:
        _current_conn.reset(token)
        conn.close()


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    shared = _current_conn.get()
    if shared is not None:
        cur = shared.cursor(dictionary=dictionary)
        try:
            yield shared, cur
        finally:
            cur.close()
        return

    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception as e:
        conn.rollback()
        if is_lock_conflict(e):
            raise _as_conflict(e) from e
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def in_clause(values) -> str:
    return ",".join(["%s"] * len(values))


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, default=str)


def load_json(value: Any, default: Any = None) -> Any:
    if value is None or value == "":
        return default
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    return json.loads(value)


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Normalize MySQL TIME values across connector implementations.

    mysql-connector can return TIME as:
    - datetime.time
    - datetime.timedelta
    - string (e.g. '08:30:00')
    """

    if value is None:
        return None

    if isinstance(value, time):
        return value

    if isinstance(value, timedelta):
        total_seconds = int(value.total_seconds()) % 86400
        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        seconds = total_seconds % 60
        return time(hour=hours, minute=minutes, second=seconds)

    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
        return time(hour=hours, minute=minutes, second=seconds)

    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")
