"""Half-open interval collision checks between bookings of one resource."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Collection, Iterable, Optional

from .models import EffectiveInterval, RecordId
from .time_segments import SLOT_MINUTES, MinuteRange


@dataclass(frozen=True, slots=True)
class Candidate:
    """A proposed placement that has not been persisted yet."""

    resource_id: int
    date: date
    start: int
    end: int

    @property
    def ids(self) -> tuple[RecordId, ...]:
        return ()

    def interval(self, slot_minutes: int = SLOT_MINUTES) -> MinuteRange:
        return MinuteRange(start=self.start, end=self.end)


def find_collision(
    candidate: EffectiveInterval,
    existing: Iterable[EffectiveInterval],
    ignored_ids: Collection[RecordId] = (),
    slot_minutes: int = SLOT_MINUTES,
) -> Optional[EffectiveInterval]:
    """Return the first existing record overlapping ``candidate``, if any.

    Records whose ids intersect ``ignored_ids`` are skipped so a booking being
    moved or resized never collides with its own previous position.
    """

    requested = candidate.interval(slot_minutes)
    ignored = set(ignored_ids)
    for other in existing:
        if ignored and any(record_id in ignored for record_id in other.ids):
            continue
        if other.resource_id != candidate.resource_id or other.date != candidate.date:
            continue
        if requested.overlaps(other.interval(slot_minutes)):
            return other
    return None


def has_collision(
    candidate: EffectiveInterval,
    existing: Iterable[EffectiveInterval],
    ignored_ids: Collection[RecordId] = (),
    slot_minutes: int = SLOT_MINUTES,
) -> bool:
    return find_collision(candidate, existing, ignored_ids, slot_minutes) is not None


def slots_collide(
    resource_id: int,
    slots: Iterable[tuple[date, int]],
    existing: Iterable[EffectiveInterval],
    ignored_ids: Collection[RecordId] = (),
    slot_minutes: int = SLOT_MINUTES,
) -> bool:
    """Check a freehand selection, one slot-long candidate per selected slot."""

    pool = list(existing)
    for day, start in slots:
        candidate = Candidate(resource_id=resource_id, date=day, start=start, end=start + slot_minutes)
        if has_collision(candidate, pool, ignored_ids, slot_minutes):
            return True
    return False
