from __future__ import annotations

from contextlib import contextmanager
from datetime import time, timedelta
from typing import Any, Dict, Iterator, List, Optional, Tuple

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True) -> Iterator[Tuple[Any, Any]]:
    """Yield ``(conn, cursor)``; commit on success, roll back on any error."""

    conn = conn_factory.connect()
    cur = conn.cursor(dictionary=dictionary)
    try:
        yield conn, cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    return cur.fetchone() or None


def fetchall(cur) -> List[Dict[str, Any]]:
    return list(cur.fetchall() or [])


def is_duplicate_key(err: Exception) -> bool:
    return isinstance(err, IntegrityError) and getattr(err, "errno", None) == errorcode.ER_DUP_ENTRY


def to_time(value: Any) -> Optional[time]:
    """Coerce a MySQL TIME column into ``datetime.time``.

    The connector hands TIME back as ``timedelta``; string values appear when rows
    were written by other tools.
    """

    if value is None or isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        seconds = int(value.total_seconds()) % 86400
        return time(seconds // 3600, (seconds % 3600) // 60, seconds % 60)
    if isinstance(value, str):
        pieces = [int(p) for p in value.strip().split(":") if p]
        if len(pieces) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        return time(*pieces[:3])
    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")


def to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)
