"""
Time helpers.

All timestamps are stored as naive UTC datetimes.
"""
import math
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current UTC time without tzinfo (matches the DateTime columns)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_isoformat(value: datetime) -> str:
    """ISO-8601 string with an explicit UTC suffix"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"


def as_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def minutes_until(now: datetime, target: datetime) -> int:
    """Whole minutes from now until target, rounded up"""
    return math.ceil((target - now).total_seconds() / 60)
