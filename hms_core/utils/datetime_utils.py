"""
Common date/time utility functions for consistent date/time handling across the application

Storage: All timestamps are stored in UTC in the backend
Slots: Doctor availability is expressed in clinic wall-clock time (weekday + HH:MM)

A requested booking time is resolved to the clinic's wall clock before it
is compared with a slot:
- Naive datetimes are taken to already be clinic wall-clock time
- Aware datetimes are converted into the clinic timezone
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def as_utc(dt: datetime) -> datetime:
    """
    Convert dt to tz-aware UTC.
    If dt is naive, we treat it as UTC (consistent with what the database hands back).

    Args:
        dt: datetime object (naive or timezone-aware)

    Returns:
        datetime object in UTC timezone
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        Current datetime in UTC timezone
    """
    return datetime.now(timezone.utc)


def to_clinic_time(dt: datetime, tz_name: str) -> datetime:
    """
    Resolve dt to an aware datetime on the clinic's wall clock.

    Args:
        dt: requested datetime; naive values are clinic wall-clock time
        tz_name: IANA zone of the clinic, e.g. "Asia/Kolkata"
    """
    tz = ZoneInfo(tz_name)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def clinic_today(tz_name: str, now: datetime | None = None) -> date:
    """Current calendar date on the clinic's wall clock."""
    return (now or utc_now()).astimezone(ZoneInfo(tz_name)).date()


def weekday_name(dt: datetime) -> str:
    return WEEKDAYS[dt.weekday()]


def minute_of_day(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


def parse_hhmm(value: str) -> int:
    """
    Parse "HH:MM" into minutes since midnight.

    Raises:
        ValueError: if the string is not a valid 24h time
    """
    parts = value.split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 24 and 0 <= minutes < 60) or (hours == 24 and minutes != 0):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return hours * 60 + minutes
