from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import time, timedelta
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import DuplicateRecordError, PersistenceError, TransientStoreError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


def _rollback_quietly(conn) -> None:
    # A dropped connection cannot roll back; the error that caused it is what callers need.
    try:
        conn.rollback()
    except mysql.connector.Error as e:
        logger.warning("Rollback failed: %s", e)


def _translate(err: mysql.connector.Error) -> Exception:
    if isinstance(err, mysql.connector.IntegrityError) and err.errno == errorcode.ER_DUP_ENTRY:
        return DuplicateRecordError(str(err))
    if isinstance(err, (mysql.connector.OperationalError, mysql.connector.InterfaceError)):
        return TransientStoreError(str(err))
    return PersistenceError(str(err))


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield (conn, cursor) inside one transaction.

    Commits when the block exits cleanly, rolls back otherwise. Driver errors
    are re-raised as domain persistence errors.
    """
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        raise TransientStoreError(str(e)) from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        _rollback_quietly(conn)
        raise _translate(e) from e
    except Exception:
        _rollback_quietly(conn)
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


def optional_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None
