"""
Date and timezone helpers shared by the activation services.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to an aware UTC value.

    Naive values are treated as UTC (some drivers drop tzinfo on read).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_zone(name: str) -> ZoneInfo:
    """Return the ZoneInfo for an IANA name, raising ValueError if unknown."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def is_valid_timezone(name: str) -> bool:
    try:
        get_zone(name)
    except ValueError:
        return False
    return True


def add_business_days(start: datetime, days: int) -> datetime:
    """Add ``days`` weekdays to ``start``, skipping Saturdays and Sundays."""
    result = start
    added = 0
    while added < days:
        result += timedelta(days=1)
        if result.weekday() < 5:
            added += 1
    return result


def format_in_timezone(value: datetime, tz_name: str) -> str:
    """Human readable time in the given zone, e.g. 'Monday, November 2 at 10:00 AM'."""
    try:
        zone = get_zone(tz_name)
    except ValueError:
        zone = timezone.utc
    local = ensure_utc(value).astimezone(zone)
    hour = local.strftime("%I").lstrip("0") or "12"
    return f"{local.strftime('%A, %B')} {local.day} at {hour}:{local.strftime('%M %p')}"
