"""
Canonical time handling for the scheduling engine.

Every instant the engine compares is a timezone-aware UTC datetime. Naive
values are taken to already be UTC; values carrying an offset are converted.
Local-time formatting is a display concern and never feeds back in here.
"""
from datetime import datetime, timedelta, timezone
from typing import Union

from pydantic import BaseModel, field_validator

InstantLike = Union[datetime, str]


def to_utc(value: InstantLike) -> datetime:
    """
    Normalize a datetime or ISO-8601 string to an aware UTC datetime.

    "2024-01-15T14:00:00"       -> assumed UTC
    "2024-01-15T14:00:00Z"      -> UTC
    "2024-01-15T14:00:00+02:00" -> converted to 12:00 UTC
    "2024-01-15 14:00:00"       -> space separator accepted
    """
    if isinstance(value, str):
        raw = value.strip().replace(" ", "T", 1)
        if raw.endswith("Z") or raw.endswith("z"):
            raw = raw[:-1] + "+00:00"
        value = datetime.fromisoformat(raw)
    if not isinstance(value, datetime):
        raise TypeError(f"Expected datetime or ISO string, got {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_minutes(instant: InstantLike, minutes: int) -> datetime:
    """Return instant + minutes (minutes must be a non-negative integer)."""
    if minutes < 0:
        raise ValueError(f"Duration must be non-negative, got {minutes} minutes")
    return to_utc(instant) + timedelta(minutes=minutes)


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open interval overlap: [start_a, end_a) and [start_b, end_b).

    Back-to-back intervals (end_a == start_b) do not overlap.
    """
    return to_utc(start_a) < to_utc(end_b) and to_utc(start_b) < to_utc(end_a)


def format_utc(instant: InstantLike) -> str:
    """ISO string with a trailing Z, e.g. 2024-01-15T14:00:00Z."""
    return to_utc(instant).strftime("%Y-%m-%dT%H:%M:%SZ")


class TimeWindow(BaseModel):
    """A half-open [start, end) interval in UTC."""

    start: datetime
    end: datetime

    @field_validator("start", "end", mode="before")
    @classmethod
    def _normalize(cls, value: InstantLike) -> datetime:
        return to_utc(value)

    @classmethod
    def from_start(cls, start: InstantLike, duration_minutes: int) -> "TimeWindow":
        return cls(start=to_utc(start), end=add_minutes(start, duration_minutes))

    def overlaps(self, other: "TimeWindow") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def __str__(self) -> str:
        return f"{format_utc(self.start)}-{format_utc(self.end)}"
