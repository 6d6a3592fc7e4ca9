"""Domain models for lab resource bookings."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Hashable, Mapping, Protocol

from .exceptions import FormatError
from .time_segments import SLOT_MINUTES, MinuteRange, combine, parse_date, to_minutes, to_time_string

RecordId = Hashable


class EffectiveInterval(Protocol):
    """Anything that can report the resource, day and minute range it occupies."""

    @property
    def resource_id(self) -> int: ...

    @property
    def date(self) -> date: ...

    @property
    def ids(self) -> tuple[RecordId, ...]: ...

    def interval(self, slot_minutes: int = SLOT_MINUTES) -> MinuteRange: ...


@dataclass(frozen=True, slots=True)
class Slot:
    """A persisted single time point, implicitly one slot long."""

    slot_id: RecordId
    resource_id: int
    owner_id: str
    date: date
    time: int
    context_key: str = ""
    created_batch_key: str = ""

    @property
    def ids(self) -> tuple[RecordId, ...]:
        return (self.slot_id,)

    def interval(self, slot_minutes: int = SLOT_MINUTES) -> MinuteRange:
        return MinuteRange(start=self.time, end=self.time + slot_minutes)

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "id": self.slot_id,
            "tool_id": self.resource_id,
            "user_id": self.owner_id,
            "project": self.context_key,
            "date": self.date.isoformat(),
            "time": to_time_string(self.time),
            "created_at": self.created_batch_key,
        }


@dataclass(frozen=True, slots=True)
class RangedRecord:
    """A persisted record that already stores both ends of its range."""

    record_id: RecordId
    resource_id: int
    owner_id: str
    date: date
    start: int
    end: int
    context_key: str = ""
    created_batch_key: str = ""

    @property
    def ids(self) -> tuple[RecordId, ...]:
        return (self.record_id,)

    def interval(self, slot_minutes: int = SLOT_MINUTES) -> MinuteRange:
        return MinuteRange(start=self.start, end=self.end)

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "id": self.record_id,
            "tool_id": self.resource_id,
            "user_id": self.owner_id,
            "project": self.context_key,
            "date": self.date.isoformat(),
            "time": to_time_string(self.start),
            "end_time": to_time_string(self.end),
            "created_at": self.created_batch_key,
        }


@dataclass(frozen=True, slots=True)
class Booking:
    """A contiguous reservation, possibly reconstructed from several slots."""

    ids: tuple[RecordId, ...]
    resource_id: int
    owner_id: str
    date: date
    start: int
    end: int
    context_key: str = ""
    created_batch_key: str = ""

    @property
    def start_time(self) -> str:
        return to_time_string(self.start)

    @property
    def end_time(self) -> str:
        return to_time_string(self.end)

    @property
    def label(self) -> str:
        return f"{self.start_time} - {self.end_time}"

    def interval(self, slot_minutes: int = SLOT_MINUTES) -> MinuteRange:
        return MinuteRange(start=self.start, end=self.end)

    def starts_at(self) -> datetime:
        return combine(self.date, self.start)

    def ends_at(self) -> datetime:
        return combine(self.date, self.end)

    def has_ended(self, now: datetime) -> bool:
        return self.ends_at() < now

    def is_in_progress(self, now: datetime) -> bool:
        return self.starts_at() <= now < self.ends_at()

    def moved_to(self, day: date, start: int, end: int) -> "Booking":
        return replace(self, date=day, start=start, end=end)


@dataclass(frozen=True, slots=True)
class BookingDraft:
    """A not-yet-persisted ranged booking produced by the creation path."""

    resource_id: int
    owner_id: str
    date: date
    start: int
    end: int
    context_key: str = ""
    created_batch_key: str = ""

    @property
    def ids(self) -> tuple[RecordId, ...]:
        return ()

    def interval(self, slot_minutes: int = SLOT_MINUTES) -> MinuteRange:
        return MinuteRange(start=self.start, end=self.end)

    def ends_at(self) -> datetime:
        return combine(self.date, self.end)


@dataclass(frozen=True, slots=True)
class PositionedBooking:
    """Column placement of a booking for a single day's render pass."""

    booking: Booking
    column_index: int
    width_percent: float
    left_percent: float


def booking_from_record(record: Slot | RangedRecord, slot_minutes: int = SLOT_MINUTES) -> Booking:
    span = record.interval(slot_minutes)
    return Booking(
        ids=record.ids,
        resource_id=record.resource_id,
        owner_id=record.owner_id,
        date=record.date,
        start=span.start,
        end=span.end,
        context_key=record.context_key,
        created_batch_key=record.created_batch_key,
    )


def _first(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return None


def parse_record(payload: Mapping[str, Any]) -> Slot | RangedRecord:
    """Normalize a stored booking row into a :class:`Slot` or :class:`RangedRecord`.

    Rows written before ranged storage only carry ``time``; newer rows also
    carry ``end_time``. Time strings with seconds are truncated to ``HH:MM``.
    """

    record_id = _first(payload, "id", "record_id")
    resource = _first(payload, "tool_id", "resource_id")
    raw_date = _first(payload, "date")
    raw_start = _first(payload, "startTime", "start_time", "time")
    if record_id is None or resource is None or raw_date is None or raw_start is None:
        raise FormatError(f"Booking record is missing required fields: {dict(payload)!r}")
    try:
        resource_id = int(resource)
    except (TypeError, ValueError) as exc:
        raise FormatError(f"Invalid resource id: {resource!r}") from exc

    owner_id = str(_first(payload, "user_id", "owner_id") or "")
    context_key = str(_first(payload, "project", "context_key") or "")
    batch_key = str(_first(payload, "created_at", "created_batch_key") or "")
    day = parse_date(raw_date)
    start = to_minutes(str(raw_start)[:5])

    raw_end = _first(payload, "endTime", "end_time")
    if raw_end is None:
        return Slot(
            slot_id=record_id,
            resource_id=resource_id,
            owner_id=owner_id,
            date=day,
            time=start,
            context_key=context_key,
            created_batch_key=batch_key,
        )
    end = to_minutes(str(raw_end)[:5])
    if end <= start:
        raise FormatError(f"Booking record {record_id!r} ends before it starts")
    return RangedRecord(
        record_id=record_id,
        resource_id=resource_id,
        owner_id=owner_id,
        date=day,
        start=start,
        end=end,
        context_key=context_key,
        created_batch_key=batch_key,
    )
