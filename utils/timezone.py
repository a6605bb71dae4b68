"""
UTC-everywhere time handling with business-calendar helpers.

Timestamps are stored and compared in UTC. Calendar dates (follow-up
dates, action dates, list filters) are evaluated in the business timezone
configured for the engine, so "today" means the same day for every caller.
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Raises ValueError if datetime is naive (no timezone).
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime to UTC. Datetime must be timezone-aware."
        )
    return dt.astimezone(timezone.utc)


def _zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {tz_name}")


def to_local(dt: datetime, tz_name: str) -> datetime:
    """
    Convert UTC datetime to a local timezone.

    Args:
        dt: Timezone-aware datetime
        tz_name: IANA timezone name (e.g., "Asia/Kolkata")

    Raises:
        ValueError: If datetime is naive or timezone name is invalid
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime. Datetime must be timezone-aware."
        )
    return dt.astimezone(_zone(tz_name))


def from_local(dt: datetime, tz_name: str) -> datetime:
    """
    Interpret a naive wall-clock datetime in a timezone and convert to UTC.

    Aware datetimes are only converted.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=_zone(tz_name))
    return to_utc(dt)


def local_today(tz_name: str) -> date:
    """Today's calendar date in the given timezone."""
    return now_utc().astimezone(_zone(tz_name)).date()


def calendar_date(dt: datetime, tz_name: str) -> date:
    """
    Calendar date of a timestamp in the given timezone, ignoring time of day.

    Naive datetimes are assumed to already be UTC; remote stores are not
    always consistent about offsets.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return to_local(dt, tz_name).date()


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 datetime string to UTC datetime.

    A trailing 'Z' is accepted. Raises ValueError if string has no
    timezone info.
    """
    if iso_string.endswith("Z"):
        iso_string = iso_string[:-1] + "+00:00"
    dt = datetime.fromisoformat(iso_string)
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot parse naive datetime string. "
            "Include timezone offset (e.g., 'Z' or '+00:00')."
        )
    return to_utc(dt)
