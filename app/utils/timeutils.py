"""UTC helpers.

Timestamps are stored as naive UTC datetimes. Anything coming in from the
API is normalised with ``to_naive_utc``; anything going out is tagged with
``as_utc`` so it serialises as an ISO-8601 instant ending in ``Z``.
"""

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC. Naive input is assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return ``[00:00, next day 00:00)`` for ``day``."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)
