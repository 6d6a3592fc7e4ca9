"""Validity rules shared by drag gestures, the edit dialog and commits."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional, Sequence

from .collision import Candidate, has_collision
from .exceptions import (
    BookingError,
    CollisionError,
    EditPermissionError,
    OutOfBoundsError,
    PastTimeError,
)
from .models import Booking, BookingDraft, EffectiveInterval
from .time_segments import SLOT_MINUTES, MINUTES_PER_DAY, combine


class Reason(str, Enum):
    OUT_OF_BOUNDS = "out_of_bounds"
    PAST = "past"
    ACTIVE_END_IN_PAST = "active_end_in_past"
    COLLISION = "collision"
    PERMISSION = "permission"
    ENDED = "ended"
    IN_PROGRESS_MOVE = "in_progress_move"
    IN_PROGRESS_START = "in_progress_start"
    IN_PROGRESS_CANCEL = "in_progress_cancel"
    NOT_BOOKABLE = "not_bookable"
    EMPTY_SELECTION = "empty_selection"
    MISSING_FIELDS = "missing_fields"
    INVALID_RANGE = "invalid_range"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    Reason.OUT_OF_BOUNDS: "Booking must stay within bookable hours.",
    Reason.PAST: "Cannot move booking to the past.",
    Reason.ACTIVE_END_IN_PAST: "Cannot shorten active booking to end in the past.",
    Reason.COLLISION: "Booking overlaps with another booking.",
    Reason.PERMISSION: "You can only edit your own bookings.",
    Reason.ENDED: "Cannot modify past bookings.",
    Reason.IN_PROGRESS_MOVE: "Cannot move an in-progress booking. Only duration can be adjusted.",
    Reason.IN_PROGRESS_START: "Cannot change start time of an in-progress booking.",
    Reason.IN_PROGRESS_CANCEL: "Cannot cancel an in-progress booking.",
    Reason.NOT_BOOKABLE: "This slot cannot be booked.",
    Reason.EMPTY_SELECTION: "Please select at least one time slot.",
    Reason.MISSING_FIELDS: "All fields are required.",
    Reason.INVALID_RANGE: "End time must be after start time.",
}

_ERRORS: dict[Reason, type[BookingError]] = {
    Reason.OUT_OF_BOUNDS: OutOfBoundsError,
    Reason.PAST: PastTimeError,
    Reason.ACTIVE_END_IN_PAST: PastTimeError,
    Reason.ENDED: PastTimeError,
    Reason.COLLISION: CollisionError,
    Reason.PERMISSION: EditPermissionError,
    Reason.IN_PROGRESS_MOVE: EditPermissionError,
    Reason.IN_PROGRESS_START: EditPermissionError,
    Reason.IN_PROGRESS_CANCEL: EditPermissionError,
}


def raise_for_reason(reason: Optional[Reason]) -> None:
    """Turn a rejection into the matching exception at a commit boundary."""

    if reason is None:
        return
    raise _ERRORS.get(reason, BookingError)(reason.message)


@dataclass(frozen=True, slots=True)
class DayWindow:
    """Bookable time-of-day window, ``[start, end)`` in minutes."""

    start: int = 8 * 60
    end: int = 20 * 60

    def __post_init__(self) -> None:
        if not 0 <= self.start < self.end <= MINUTES_PER_DAY:
            raise ValueError("DayWindow must satisfy 0 <= start < end <= 1440")

    def contains(self, start: int, end: int) -> bool:
        return self.start <= start and end <= self.end


def check_drag_start(
    booking: Booking, *, moves_start: bool, moves_end: bool, permitted: bool, now: datetime
) -> Optional[Reason]:
    """Decide whether a move or resize gesture may open at all."""

    if not permitted:
        return Reason.PERMISSION
    if booking.has_ended(now):
        return Reason.ENDED
    if booking.is_in_progress(now) and moves_start:
        return Reason.IN_PROGRESS_MOVE if moves_end else Reason.IN_PROGRESS_START
    return None


def evaluate_placement(
    original: Booking,
    day: date,
    start: int,
    end: int,
    *,
    now: datetime,
    window: DayWindow,
    existing: Iterable[EffectiveInterval],
    slot_minutes: int = SLOT_MINUTES,
) -> Optional[Reason]:
    """Return why moving ``original`` to ``day``/``start``-``end`` is invalid, or None.

    An in-progress booking keeps its own past start; any other placement must
    start now or later. In-progress bookings must still end in the future.
    """

    if not window.contains(start, end):
        return Reason.OUT_OF_BOUNDS
    active = original.is_in_progress(now)
    keeps_start = day == original.date and start == original.start
    if combine(day, start) < now and not (active and keeps_start):
        return Reason.PAST
    if active and combine(day, end) <= now:
        return Reason.ACTIVE_END_IN_PAST
    candidate = Candidate(resource_id=original.resource_id, date=day, start=start, end=end)
    if has_collision(candidate, existing, original.ids, slot_minutes):
        return Reason.COLLISION
    return None


def validate_edit(
    original: Booking,
    day: Optional[date],
    start: Optional[int],
    end: Optional[int],
    *,
    now: datetime,
    window: DayWindow,
    existing: Iterable[EffectiveInterval],
    slot_minutes: int = SLOT_MINUTES,
) -> Optional[Reason]:
    """Validate a booking edited through a form rather than a drag."""

    if day is None or start is None or end is None:
        return Reason.MISSING_FIELDS
    if start >= end:
        return Reason.INVALID_RANGE
    return evaluate_placement(
        original, day, start, end, now=now, window=window, existing=existing, slot_minutes=slot_minutes
    )


def can_book_resource(*, is_admin: bool, has_license: bool, resource_up: bool) -> bool:
    return is_admin or (has_license and resource_up)


def validate_new_bookings(
    drafts: Sequence[BookingDraft], *, now: datetime, admin_override: bool = False
) -> Optional[Reason]:
    if not drafts:
        return Reason.EMPTY_SELECTION
    if not admin_override and any(draft.ends_at() < now for draft in drafts):
        return Reason.PAST
    return None


def check_cancel(
    bookings: Sequence[Booking], *, now: datetime, admin_override: bool = False
) -> Optional[Reason]:
    if not admin_override and any(booking.is_in_progress(now) for booking in bookings):
        return Reason.IN_PROGRESS_CANCEL
    return None
