"""Clock capability injected wherever the pipeline needs the current time."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""


class SystemClock(Clock):
    """Reads the host clock, always in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Normalise an aware datetime to UTC; naive datetimes are rejected."""

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"Naive datetime {value.isoformat()} has no time zone; expected UTC.")
    return value.astimezone(timezone.utc)


def is_utc(value: datetime) -> bool:
    return value.tzinfo is not None and value.utcoffset() == timedelta(0)
