"""Date utility functions."""

import math
from datetime import date, datetime, time
from typing import Optional, Union

DateLike = Union[date, datetime]

SECONDS_PER_DAY = 86400


def to_datetime(value: DateLike) -> datetime:
    """
    Normalize a date or datetime to a naive datetime.

    Plain dates map to midnight so records dated either way sort together.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def to_date(value: DateLike) -> date:
    """Drop the time component of a date or datetime."""
    if isinstance(value, datetime):
        return value.date()
    return value


def calculate_days_to_expiry(expiry: DateLike, as_of: Optional[DateLike] = None) -> int:
    """
    Calculate calendar days until expiration.

    The expiry is taken at midnight and partial days round up, so an option
    expiring tomorrow is 1 day out for the whole of today and 0 once its
    expiration date is reached.

    Args:
        expiry: Expiration date
        as_of: Valuation time (default: now)

    Returns:
        Days to expiry, never negative
    """
    as_of_dt = to_datetime(as_of) if as_of is not None else datetime.now()
    expiry_dt = datetime.combine(to_date(expiry), time.min)
    seconds = (expiry_dt - as_of_dt).total_seconds()
    return max(0, math.ceil(seconds / SECONDS_PER_DAY))


def is_past_expiry(expiry: DateLike, as_of: Optional[DateLike] = None) -> bool:
    """True once the expiration date is strictly before the as-of date."""
    as_of_day = to_date(as_of) if as_of is not None else date.today()
    return to_date(expiry) < as_of_day


def calculate_holding_days(opened: DateLike, closed: DateLike) -> int:
    """Whole calendar days between two dates (minimum 0)."""
    return max(0, (to_date(closed) - to_date(opened)).days)
