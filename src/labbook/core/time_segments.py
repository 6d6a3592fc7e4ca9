"""Minute-precision time-of-day arithmetic for the booking grid."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from .exceptions import FormatError

SLOT_MINUTES = 30
MINUTES_PER_DAY = 24 * 60
DAYS_PER_WEEK = 7


@dataclass(frozen=True, slots=True)
class MinuteRange:
    """Half-open ``[start, end)`` interval expressed in minutes since midnight."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError("MinuteRange end must be after start")

    @property
    def minutes(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "MinuteRange") -> bool:
        return self.start < other.end and self.end > other.start

    def touches(self, other: "MinuteRange") -> bool:
        return self.end == other.start or self.start == other.end

    def contains(self, minute: int) -> bool:
        return self.start <= minute < self.end


def to_minutes(value: str) -> int:
    """Parse an ``HH:MM`` (or ``HH:MM:SS``) string into minutes since midnight."""

    if not isinstance(value, str) or ":" not in value:
        raise FormatError(f"Malformed time of day: {value!r}")
    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(part.isascii() and part.isdigit() for part in parts):
        raise FormatError(f"Malformed time of day: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if minutes > 59 or hours > 24 or (hours == 24 and minutes):
        raise FormatError(f"Time of day out of range: {value!r}")
    return hours * 60 + minutes


def to_time_string(minutes: int | float) -> str:
    """Format minutes since midnight as ``HH:MM``.

    A rounded minute component of 60 carries into the hour. Values past 23:59
    are not wrapped; callers are expected to bounds-check first.
    """

    if minutes < 0:
        raise ValueError("minutes must be non-negative")
    hours = int(minutes // 60)
    remainder = round(minutes % 60)
    if remainder == 60:
        hours += 1
        remainder = 0
    return f"{hours:02d}:{remainder:02d}"


def round_to_slot(minutes: int | float, slot_size: int = SLOT_MINUTES) -> int:
    """Round to the nearest multiple of ``slot_size``; halves round up."""

    if slot_size <= 0:
        raise ValueError("slot_size must be positive")
    return int(math.floor(minutes / slot_size + 0.5)) * slot_size


def next_slot(value: str, slot_size: int = SLOT_MINUTES) -> str:
    return to_time_string(to_minutes(value) + slot_size)


def slot_times(day_start: int, day_end: int, slot_size: int = SLOT_MINUTES) -> list[int]:
    """Start minutes of every slot in the ``[day_start, day_end)`` window."""

    return list(range(day_start, day_end - slot_size + 1, slot_size))


def generate_slots(day: date, start: int, end: int, slot_size: int = SLOT_MINUTES) -> list[tuple[date, int]]:
    """Expand a range into its ``(date, slot start)`` pairs, stopping at midnight."""

    slots: list[tuple[date, int]] = []
    current = start
    while current < end and current < MINUTES_PER_DAY:
        slots.append((day, current))
        current += slot_size
    return slots


def week_dates(anchor: date) -> list[date]:
    """Return the Monday-based week containing ``anchor``."""

    monday = anchor - timedelta(days=anchor.weekday())
    return [monday + timedelta(days=offset) for offset in range(DAYS_PER_WEEK)]


def combine(day: date, minutes: int) -> datetime:
    """Naive local datetime for ``minutes`` after midnight on ``day``."""

    return datetime.combine(day, time.min) + timedelta(minutes=minutes)


def parse_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise FormatError(f"Malformed date: {value!r}") from exc
