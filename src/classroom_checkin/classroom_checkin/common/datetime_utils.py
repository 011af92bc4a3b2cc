from __future__ import annotations

from datetime import date, datetime, time
from zoneinfo import ZoneInfo


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_hhmm(value: str) -> time:
    """Parse HH:MM (seconds optional) into time."""
    value = (value or "").strip()
    fmt = "%H:%M:%S" if value.count(":") == 2 else "%H:%M"
    return datetime.strptime(value, fmt).time()


def now_local(tz_name: str) -> datetime:
    """Current civil time in ``tz_name`` as a naive datetime.

    Note: Everything stored and compared is naive civil time in the configured zone,
    so late-night classes never straddle a UTC date boundary.
    """
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed from ``start`` to ``end`` (floored, may be negative)."""
    return int((end - start).total_seconds() // 60)


def format_datetime(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S")
