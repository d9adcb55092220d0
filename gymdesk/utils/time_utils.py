"""
gymdesk/utils/time_utils.py

Purpose: Time and date helpers

- Wall-clock "now" at store precision
- Calendar month arithmetic with end-of-month clamping
- Day boundaries for daily passes and daily reports
"""

import calendar
from datetime import datetime, date, time, timedelta
from typing import Optional


def local_now() -> datetime:
    """
    Current local wall-clock time, truncated to milliseconds.

    BSON datetimes carry millisecond precision, so truncating here keeps
    a value read back from the store equal to the value written.
    """
    return truncate_to_millis(datetime.now())


def truncate_to_millis(dt: datetime) -> datetime:
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def add_months(start: datetime, months: int) -> datetime:
    """
    Calculates the datetime N calendar months after start.
    Handles year rollovers and end-of-month adjustments (e.g., Jan 31 + 1 month -> Feb 28/29).
    Time of day is preserved.
    """
    month = start.month - 1 + months
    year = start.year + month // 12
    month = month % 12 + 1

    # monthrange returns (weekday_of_first_day, number_of_days)
    days_in_new_month = calendar.monthrange(year, month)[1]
    day = min(start.day, days_in_new_month)

    return start.replace(year=year, month=month, day=day)


def next_midnight(value: datetime) -> datetime:
    """Midnight at the start of the day following value's calendar date."""
    return datetime.combine(value.date() + timedelta(days=1), time.min)


def day_bounds(day: Optional[date] = None) -> tuple:
    """
    Returns the [start, end) datetimes of a calendar day (today by default).
    """
    day = day or datetime.now().date()
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def to_local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalizes a datetime to naive local wall-clock time at store precision.
    Aware values (e.g. "...Z" from API clients) are converted to local time.
    """
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return truncate_to_millis(value)
