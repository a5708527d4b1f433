"""
Domain time utilities (pure).

Centralized timestamp validation and calendar-day helpers.

Invariants:
- Every persisted timestamp is timezone-aware UTC.
- "Today" is a calendar date in the business time zone, never in UTC.

Behavior and error messages must remain consistent across the domain model.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

DEFAULT_BUSINESS_TIMEZONE: str = "Asia/Kolkata"


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces the contract requirement that timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def require_optional_utc_timestamp(name: str, value: datetime | None) -> None:
    if value is not None:
        require_utc_timestamp(name, value)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def business_date(value: datetime, tz_name: str = DEFAULT_BUSINESS_TIMEZONE) -> date:
    """Calendar date of a UTC timestamp as seen in the business time zone."""

    return value.astimezone(ZoneInfo(tz_name)).date()


def is_due(value: datetime | None, now: datetime, tz_name: str = DEFAULT_BUSINESS_TIMEZONE) -> bool:
    """
    True when `value` falls on today or an earlier day.

    Comparison is by calendar day, so anything dated today is due even if its
    time of day is still ahead of `now`.
    """

    if value is None:
        return False
    return business_date(value, tz_name) <= business_date(now, tz_name)


def start_of_business_day(day: date, tz_name: str = DEFAULT_BUSINESS_TIMEZONE) -> datetime:
    """UTC timestamp of local midnight for `day`."""

    local = datetime(day.year, day.month, day.day, tzinfo=ZoneInfo(tz_name))
    return local.astimezone(timezone.utc)


__all__ = [
    "DEFAULT_BUSINESS_TIMEZONE",
    "business_date",
    "is_due",
    "require_optional_utc_timestamp",
    "require_utc_timestamp",
    "start_of_business_day",
    "utc_now",
]
