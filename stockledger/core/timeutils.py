"""
Time helpers

All ledger timestamps are UTC. Some backends (SQLite) hand back naive
datetimes, so values read from the store go through ``as_utc`` before any
arithmetic.
"""
from datetime import datetime, timezone
from typing import Optional

from stockledger.core.exceptions import InvalidArgumentError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Complete days from start to end, never negative"""
    delta = as_utc(end) - as_utc(start)
    return max(0, delta.days)


def whole_minutes_between(start: datetime, end: datetime) -> int:
    delta = as_utc(end) - as_utc(start)
    return max(0, int(delta.total_seconds() // 60))


def parse_timestamp(value, field: str) -> datetime:
    """Accept a datetime or an ISO 8601 string and return it in UTC"""
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value))
        except ValueError:
            pass
    raise InvalidArgumentError(f"Invalid {field}")
