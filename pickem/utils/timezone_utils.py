"""
Timezone utility functions for the pick'em application
"""

from datetime import datetime, timezone

import pytz


def get_timezone(timezone_name):
    """Resolve a timezone name, falling back to UTC when it is unknown"""
    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def as_utc(dt):
    """Return ``dt`` as an aware UTC datetime; naive values are taken as UTC"""
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def parse_datetime(value):
    """Parse an ISO 8601 string (or pass through a datetime) into aware UTC"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    # fromisoformat does not accept a trailing "Z" before Python 3.11
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))


def convert_to_timezone(dt, tz):
    """Convert a datetime to the given pytz timezone"""
    if dt is None:
        return None
    return as_utc(dt).astimezone(tz)
