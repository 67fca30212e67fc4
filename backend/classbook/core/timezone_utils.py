"""
Timezone utilities for the class schedule.

Class dates and start times are stored as wall-clock values in the school's
timezone; these helpers turn them into aware datetimes for policy checks.
"""

from datetime import date, datetime, time, timezone

import pytz

from .config import settings


def get_school_timezone() -> pytz.BaseTzInfo:
    """Return the configured school timezone as a pytz timezone object."""
    return pytz.timezone(settings.school_timezone)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def class_start_datetime(class_date: date, start_time: time) -> datetime:
    """
    Combine a class date and start time into an aware UTC datetime.

    Args:
        class_date: Calendar date in the school timezone
        start_time: Wall-clock start time in the school timezone

    Returns:
        The start instant expressed in UTC
    """
    school_tz = get_school_timezone()
    local_start = school_tz.localize(datetime.combine(class_date, start_time))
    return local_start.astimezone(timezone.utc)


def hours_until(start: datetime, now: datetime) -> float:
    return (start - now).total_seconds() / 3600.0
