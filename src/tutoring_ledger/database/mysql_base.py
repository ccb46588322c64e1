from __future__ import annotations

from contextlib import contextmanager
from datetime import time, timedelta
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import DomainError, SlotConflict, TransientStorageFailure
from .connection import DatabaseConnection

_TRANSIENT_ERRNOS = frozenset(
    {
        errorcode.ER_LOCK_WAIT_TIMEOUT,
        errorcode.ER_LOCK_DEADLOCK,
        errorcode.CR_CONN_HOST_ERROR,
        errorcode.CR_SERVER_GONE_ERROR,
        errorcode.CR_SERVER_LOST,
        2055,  # CR_SERVER_LOST_EXTENDED
    }
)


def translate_mysql_error(err: mysql.connector.Error) -> Optional[DomainError]:
    """Map connector errors onto the domain taxonomy.

    Returns None when the error has no domain meaning and should propagate as is.
    """

    if getattr(err, "errno", None) == errorcode.ER_DUP_ENTRY:
        return SlotConflict(f"Slot already taken: {err.msg}")
    if getattr(err, "errno", None) in _TRANSIENT_ERRNOS:
        return TransientStorageFailure(str(err))
    if isinstance(err, (mysql.connector.errors.OperationalError, mysql.connector.errors.InterfaceError)):
        return TransientStorageFailure(str(err))
    return None


def _raise_translated(err: mysql.connector.Error):
    translated = translate_mysql_error(err)
    if translated is None:
        raise err
    raise translated from err


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        _raise_translated(e)

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        conn.rollback()
        _raise_translated(e)
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


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


def in_clause(values) -> str:
    """Placeholder list for `IN (...)`; callers guarantee a non-empty sequence."""
    return ",".join(["%s"] * len(values))
