"""
Epoch-millisecond helpers.

Price samples carry UTC timestamps in milliseconds, halving events carry
calendar dates. Calendar dates are interpreted as UTC midnight.
"""

from datetime import date, datetime, timezone

DAY_MS = 24 * 60 * 60 * 1000


def date_to_ms(d: date) -> int:
    """Convert a calendar date to epoch milliseconds at UTC midnight."""
    return datetime_to_ms(datetime(d.year, d.month, d.day))


def datetime_to_ms(dt: datetime) -> int:
    """
    Convert a datetime to epoch milliseconds.

    Naive datetimes are taken to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def ms_to_date(timestamp_ms: int | float) -> date:
    """Return the UTC calendar date of an epoch-millisecond timestamp."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).date()
