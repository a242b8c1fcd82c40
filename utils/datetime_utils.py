"""
Datetime utilities for consistent timezone handling across the application.
All datetime operations should use timezone-aware datetimes.

Stored timestamps are UTC; business hours and calendar days are evaluated
in the salon's reference timezone.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_iso_datetime(iso_string: str) -> datetime:
    """
    Parse ISO format datetime string to timezone-aware datetime.
    Handles both 'Z' suffix and '+00:00' timezone formats.

    Args:
        iso_string: ISO format datetime string

    Returns:
        Timezone-aware datetime object

    Raises:
        ValueError: If datetime string cannot be parsed
    """
    normalized = iso_string.replace("Z", "+00:00")

    try:
        return ensure_aware(datetime.fromisoformat(normalized))
    except ValueError as e:
        raise ValueError(f"Invalid datetime string: {iso_string}") from e


def to_iso_string(dt: datetime) -> str:
    """
    Convert datetime to ISO format string in UTC.

    Args:
        dt: Datetime object (timezone-aware or naive)

    Returns:
        ISO format string
    """
    return ensure_aware(dt).astimezone(timezone.utc).isoformat()


def get_zone(name: str) -> tzinfo:
    """
    Resolve an IANA timezone name.

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def to_local(dt: datetime, tz: tzinfo) -> datetime:
    """Convert a datetime to the reference timezone."""
    return ensure_aware(dt).astimezone(tz)


def local_datetime(day: date, at: time, tz: tzinfo) -> datetime:
    """Build an aware datetime for a wall-clock time on a local calendar day."""
    return datetime.combine(day, at, tzinfo=tz)


def local_day_bounds(day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """
    Half-open bounds of a local calendar day.

    Returns:
        (start of day, start of next day), both timezone-aware
    """
    start = local_datetime(day, time.min, tz)
    end = local_datetime(day + timedelta(days=1), time.min, tz)
    return start, end


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end."""
    return int((end - start).total_seconds() // 60)
