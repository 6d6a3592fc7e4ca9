"""Pointer-driven state machine for creating, moving and resizing bookings.

Each gesture is an immutable session value threaded through pure transition
functions::

    session = begin_drag(booking, SessionKind.MOVE, down_event, context)
    session = pointer_move(session, move_event, context)   # any number of times
    outcome = pointer_up(session, context)

``begin_selection``/``begin_drag`` return :class:`Rejected` instead of a session
when the gesture may not open. ``pointer_up`` and ``cancel`` always resolve to
exactly one of :class:`CreateRequest`, :class:`UpdateRequest`, :class:`Click`
or :class:`Noop`. Nothing here performs I/O; callers persist the outcome.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Callable, Optional, Sequence, Union

from .collision import slots_collide
from .grouping import merge_selection
from .models import Booking, BookingDraft, EffectiveInterval
from .time_segments import SLOT_MINUTES, combine, to_time_string
from .validation import DayWindow, Reason, check_drag_start, evaluate_placement

LOGGER = logging.getLogger("labbook.interaction")

Clock = Callable[[], datetime]
Permission = Callable[[Booking], bool]

DEFAULT_MOVE_THRESHOLD_PX = 5.0
DEFAULT_PIXELS_PER_SLOT = 48.0


class PointerPhase(str, Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"


class SessionKind(str, Enum):
    SELECT = "select"
    MOVE = "move"
    RESIZE_START = "resize_start"
    RESIZE_END = "resize_end"


@dataclass(frozen=True, slots=True)
class PointerEvent:
    """Device-independent pointer sample in grid-local pixels."""

    phase: PointerPhase
    x: float
    y: float
    source: str = "mouse"


@dataclass(frozen=True, slots=True)
class Cell:
    day_index: int
    slot_index: int


@dataclass(frozen=True, slots=True)
class GridGeometry:
    """Pixel layout of the weekly grid; row 0 starts at the window start."""

    week: tuple[date, ...]
    day_width: float
    pixels_per_slot: float = DEFAULT_PIXELS_PER_SLOT

    def __post_init__(self) -> None:
        if not self.week:
            raise ValueError("GridGeometry needs at least one day column")
        if self.day_width <= 0 or self.pixels_per_slot <= 0:
            raise ValueError("GridGeometry dimensions must be positive")

    def day_index(self, day: date) -> int:
        try:
            return self.week.index(day)
        except ValueError:
            return -1

    def cell_at(self, x: float, y: float, slot_count: int) -> Optional[Cell]:
        day_index = math.floor(x / self.day_width)
        slot_index = math.floor(y / self.pixels_per_slot)
        if not (0 <= day_index < len(self.week) and 0 <= slot_index < slot_count):
            return None
        return Cell(day_index=day_index, slot_index=slot_index)

    def clamped_cell_at(self, x: float, y: float, slot_count: int) -> Cell:
        day_index = min(max(math.floor(x / self.day_width), 0), len(self.week) - 1)
        slot_index = min(max(math.floor(y / self.pixels_per_slot), 0), slot_count - 1)
        return Cell(day_index=day_index, slot_index=slot_index)


@dataclass(frozen=True, slots=True)
class InteractionContext:
    """Everything a transition needs from the hosting UI for one gesture."""

    geometry: GridGeometry
    clock: Clock
    may_edit: Permission
    existing: Sequence[EffectiveInterval] = ()
    window: DayWindow = field(default_factory=DayWindow)
    slot_minutes: int = SLOT_MINUTES
    move_threshold: float = DEFAULT_MOVE_THRESHOLD_PX

    @property
    def slot_count(self) -> int:
        return (self.window.end - self.window.start) // self.slot_minutes

    def slot_start(self, slot_index: int) -> int:
        return self.window.start + slot_index * self.slot_minutes


@dataclass(frozen=True, slots=True)
class Proposal:
    date: date
    start: int
    end: int

    @property
    def label(self) -> str:
        if self.start < 0:
            return f"{self.date.isoformat()} <before midnight>"
        return f"{self.date.isoformat()} {to_time_string(self.start)} - {to_time_string(self.end)}"


@dataclass(frozen=True, slots=True)
class SelectSession:
    resource_id: int
    owner_id: str
    context_key: str
    anchor: Cell
    pointer_origin: tuple[float, float]
    selection: tuple[tuple[date, int], ...]

    @property
    def kind(self) -> SessionKind:
        return SessionKind.SELECT


@dataclass(frozen=True, slots=True)
class DragSession:
    kind: SessionKind
    anchor: Booking
    pointer_origin: tuple[float, float]
    proposal: Proposal
    is_valid: bool = True
    reason: Optional[Reason] = None
    has_crossed_threshold: bool = False


InteractionSession = Union[SelectSession, DragSession]


@dataclass(frozen=True, slots=True)
class Rejected:
    reason: Reason


@dataclass(frozen=True, slots=True)
class CreateRequest:
    drafts: tuple[BookingDraft, ...]


@dataclass(frozen=True, slots=True)
class UpdateRequest:
    original: Booking
    booking: Booking

    @property
    def old_ids(self) -> tuple:
        return self.original.ids


@dataclass(frozen=True, slots=True)
class Click:
    booking: Booking


@dataclass(frozen=True, slots=True)
class Noop:
    reason: Optional[Reason] = None


Outcome = Union[CreateRequest, UpdateRequest, Click, Noop]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# ----------------------------------------------------------------------
# Selection (create path)
# ----------------------------------------------------------------------
def _cell_rejection(
    context: InteractionContext, resource_id: int, cell: Cell, now: datetime
) -> Optional[Reason]:
    day = context.geometry.week[cell.day_index]
    start = context.slot_start(cell.slot_index)
    if combine(day, start) < now:
        return Reason.PAST
    if slots_collide(resource_id, [(day, start)], context.existing, slot_minutes=context.slot_minutes):
        return Reason.NOT_BOOKABLE
    return None


def begin_selection(
    event: PointerEvent,
    *,
    resource_id: int,
    owner_id: str,
    context: InteractionContext,
    context_key: str = "",
    allowed: bool = True,
) -> SelectSession | Rejected:
    """Anchor a drag-select on the empty, bookable, non-past cell under the pointer."""

    cell = context.geometry.cell_at(event.x, event.y, context.slot_count)
    if cell is None or not allowed:
        return Rejected(Reason.NOT_BOOKABLE)
    reason = _cell_rejection(context, resource_id, cell, context.clock())
    if reason is not None:
        LOGGER.debug(
            "Selection refused",
            extra={"event": "selection_refused", "reason": reason.value, "resource_id": resource_id},
        )
        return Rejected(reason)
    day = context.geometry.week[cell.day_index]
    return SelectSession(
        resource_id=resource_id,
        owner_id=owner_id,
        context_key=context_key,
        anchor=cell,
        pointer_origin=(event.x, event.y),
        selection=((day, context.slot_start(cell.slot_index)),),
    )


def _select_to(session: SelectSession, event: PointerEvent, context: InteractionContext) -> SelectSession:
    current = context.geometry.clamped_cell_at(event.x, event.y, context.slot_count)
    anchor = session.anchor
    now = context.clock()
    selection: list[tuple[date, int]] = []
    for day_index in range(min(anchor.day_index, current.day_index), max(anchor.day_index, current.day_index) + 1):
        for slot_index in range(min(anchor.slot_index, current.slot_index), max(anchor.slot_index, current.slot_index) + 1):
            cell = Cell(day_index=day_index, slot_index=slot_index)
            if _cell_rejection(context, session.resource_id, cell, now) is None:
                selection.append((context.geometry.week[day_index], context.slot_start(slot_index)))
    return replace(session, selection=tuple(selection))


def _finish_selection(session: SelectSession, context: InteractionContext) -> Outcome:
    if not session.selection:
        return Noop(Reason.EMPTY_SELECTION)
    batch_key = context.clock().isoformat(timespec="seconds")
    drafts = tuple(
        BookingDraft(
            resource_id=session.resource_id,
            owner_id=session.owner_id,
            date=day,
            start=span.start,
            end=span.end,
            context_key=session.context_key,
            created_batch_key=batch_key,
        )
        for day, span in merge_selection(session.selection, context.slot_minutes)
    )
    LOGGER.info(
        "Selection finalized",
        extra={
            "event": "selection_finalized",
            "resource_id": session.resource_id,
            "slots": len(session.selection),
            "ranges": len(drafts),
        },
    )
    return CreateRequest(drafts=drafts)


# ----------------------------------------------------------------------
# Dragging (edit path)
# ----------------------------------------------------------------------
def begin_drag(
    booking: Booking, kind: SessionKind, event: PointerEvent, context: InteractionContext
) -> DragSession | Rejected:
    """Open a move/resize session, or refuse it before any state exists."""

    if kind is SessionKind.SELECT:
        raise ValueError("begin_drag handles move and resize gestures only")
    reason = check_drag_start(
        booking,
        moves_start=kind in (SessionKind.MOVE, SessionKind.RESIZE_START),
        moves_end=kind in (SessionKind.MOVE, SessionKind.RESIZE_END),
        permitted=context.may_edit(booking),
        now=context.clock(),
    )
    if reason is not None:
        LOGGER.info(
            "Drag refused",
            extra={"event": "drag_refused", "kind": kind.value, "reason": reason.value, "ids": list(booking.ids)},
        )
        return Rejected(reason)
    return DragSession(
        kind=kind,
        anchor=booking,
        pointer_origin=(event.x, event.y),
        proposal=Proposal(date=booking.date, start=booking.start, end=booking.end),
    )


def _propose(session: DragSession, dx: float, dy: float, context: InteractionContext) -> Proposal:
    original = session.anchor
    minutes_delta = _round_half_up(dy / context.geometry.pixels_per_slot) * context.slot_minutes
    day = original.date
    start, end = original.start, original.end

    if session.kind is SessionKind.MOVE:
        start += minutes_delta
        end += minutes_delta
        origin_index = context.geometry.day_index(original.date)
        target_index = origin_index + _round_half_up(dx / context.geometry.day_width)
        if origin_index >= 0:
            target_index = min(max(target_index, 0), len(context.geometry.week) - 1)
            day = context.geometry.week[target_index]
    elif session.kind is SessionKind.RESIZE_END:
        end = max(end + minutes_delta, start + context.slot_minutes)
    else:
        start = min(start + minutes_delta, end - context.slot_minutes)
    return Proposal(date=day, start=start, end=end)


def _evaluate(session: DragSession, proposal: Proposal, context: InteractionContext) -> Optional[Reason]:
    if not context.may_edit(session.anchor):
        return Reason.PERMISSION
    return evaluate_placement(
        session.anchor,
        proposal.date,
        proposal.start,
        proposal.end,
        now=context.clock(),
        window=context.window,
        existing=context.existing,
        slot_minutes=context.slot_minutes,
    )


def _drag_to(session: DragSession, event: PointerEvent, context: InteractionContext) -> DragSession:
    dx = event.x - session.pointer_origin[0]
    dy = event.y - session.pointer_origin[1]
    crossed = session.has_crossed_threshold or math.hypot(dx, dy) >= context.move_threshold
    if not crossed:
        return session
    proposal = _propose(session, dx, dy, context)
    reason = _evaluate(session, proposal, context)
    if reason is not None and reason is not session.reason:
        LOGGER.debug(
            "Drag proposal invalid",
            extra={"event": "drag_invalid", "reason": reason.value, "proposal": proposal.label},
        )
    return replace(
        session,
        proposal=proposal,
        is_valid=reason is None,
        reason=reason,
        has_crossed_threshold=True,
    )


def _finish_drag(session: DragSession, context: InteractionContext) -> Outcome:
    if not session.has_crossed_threshold:
        return Click(booking=session.anchor)
    reason = _evaluate(session, session.proposal, context)
    if reason is not None:
        LOGGER.info(
            "Drag discarded",
            extra={"event": "drag_discarded", "reason": reason.value, "ids": list(session.anchor.ids)},
        )
        return Noop(reason)
    proposal = session.proposal
    updated = session.anchor.moved_to(proposal.date, proposal.start, proposal.end)
    LOGGER.info(
        "Drag committed",
        extra={
            "event": "drag_committed",
            "kind": session.kind.value,
            "ids": list(session.anchor.ids),
            "proposal": proposal.label,
        },
    )
    return UpdateRequest(original=session.anchor, booking=updated)


# ----------------------------------------------------------------------
# Dispatch
# ----------------------------------------------------------------------
def pointer_move(session: InteractionSession, event: PointerEvent, context: InteractionContext) -> InteractionSession:
    if isinstance(session, SelectSession):
        return _select_to(session, event, context)
    return _drag_to(session, event, context)


def pointer_up(session: InteractionSession, context: InteractionContext) -> Outcome:
    if isinstance(session, SelectSession):
        return _finish_selection(session, context)
    return _finish_drag(session, context)


def cancel(session: InteractionSession) -> Noop:
    """Resolve a session whose pointer was lost without committing anything."""

    LOGGER.debug("Gesture cancelled", extra={"event": "gesture_cancelled", "kind": session.kind.value})
    return Noop()
