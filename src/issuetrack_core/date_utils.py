"""Date helpers for due dates."""
from datetime import date, datetime, timedelta
from typing import Optional, Union

DEFAULT_DUE_BUSINESS_DAYS = 10


def add_business_days(days: int, start: Optional[datetime] = None) -> datetime:
    """
    Return the date ``days`` business days (Monday-Friday) after ``start``.

    The start day itself is never counted.
    """
    current = start or datetime.utcnow()
    added = 0
    while added < days:
        current += timedelta(days=1)
        if current.weekday() < 5:
            added += 1
    return current


def is_not_past_date(value: Union[datetime, date], now: Optional[datetime] = None) -> bool:
    """True if ``value`` is today or later. Time of day is ignored for today."""
    today = (now or datetime.utcnow()).date()
    if isinstance(value, datetime):
        value = value.date()
    return value >= today


def get_default_due_date(now: Optional[datetime] = None) -> datetime:
    """Default due date for new issues: ten business days from now."""
    return add_business_days(DEFAULT_DUE_BUSINESS_DAYS, now)
