from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    - naive input is taken as UTC already
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_date_bound(value: Optional[str], *, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a report filter bound.

    A bare date ("2026-03-01") expands to the start of that day, or to its
    last second when end_of_day is set, so "to" filters include the whole day.
    """
    if value is None or not value.strip():
        return None
    s = value.strip()
    if len(s) == 10:
        day = datetime.strptime(s, "%Y-%m-%d").date()
        return datetime.combine(day, time(23, 59, 59) if end_of_day else time.min)
    return parse_iso_datetime(s)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Aware datetimes (e.g. from a timestamptz column) are converted to UTC-naive."""
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)
