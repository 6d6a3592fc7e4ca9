"""Qt glue that hosts the booking interaction state machine."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from PySide6.QtCore import QEvent, QObject, QTimer, Signal

from ..core.interaction import (
    Click,
    Clock,
    CreateRequest,
    GridGeometry,
    InteractionContext,
    InteractionSession,
    Noop,
    Outcome,
    Permission,
    PointerEvent,
    PointerPhase,
    Rejected,
    SessionKind,
    UpdateRequest,
    begin_drag,
    begin_selection,
    cancel,
    pointer_move,
    pointer_up,
)
from ..core.models import Booking, EffectiveInterval
from ..core.settings import BookingSettings
from .pointer_events import pointer_phase, to_pointer_event

LOGGER = logging.getLogger("labbook.ui.interaction")

_RELEASE_EVENTS = {QEvent.Type.WindowDeactivate, QEvent.Type.ApplicationDeactivate}


class InteractionController(QObject):
    """Owns at most one gesture session and reports its single outcome via signals."""

    create_requested: Signal = Signal(object)
    update_requested: Signal = Signal(object)
    clicked: Signal = Signal(object)
    rejected: Signal = Signal(object, str)
    session_changed: Signal = Signal(object)
    snapshot_refresh_due: Signal = Signal()

    def __init__(
        self,
        settings: BookingSettings,
        geometry: GridGeometry,
        may_edit: Permission,
        clock: Clock = datetime.now,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings
        self._geometry = geometry
        self._may_edit = may_edit
        self._clock = clock
        self._existing: tuple[EffectiveInterval, ...] = ()
        self._session: Optional[InteractionSession] = None
        self._context: Optional[InteractionContext] = None
        self._refresh_timer = QTimer(self)
        self._refresh_timer.setInterval(settings.refresh_interval_seconds * 1000)
        self._refresh_timer.timeout.connect(self.snapshot_refresh_due)

    # ------------------------------------------------------------------
    @property
    def session(self) -> Optional[InteractionSession]:
        return self._session

    def is_active(self) -> bool:
        return self._session is not None

    def set_snapshot(self, records: Iterable[EffectiveInterval]) -> None:
        """Replace the bookings used by the next gesture; an open gesture keeps its own."""
        self._existing = tuple(records)

    def set_geometry(self, geometry: GridGeometry) -> None:
        self._geometry = geometry

    def start_refresh(self) -> None:
        if not self._refresh_timer.isActive():
            self._refresh_timer.start()

    def stop_refresh(self) -> None:
        self._refresh_timer.stop()

    # ------------------------------------------------------------------
    def press_cell(
        self,
        event: PointerEvent,
        *,
        resource_id: int,
        owner_id: str,
        context_key: str = "",
        allowed: bool = True,
    ) -> bool:
        if self._session is not None:
            return False
        context = self._build_context()
        result = begin_selection(
            event,
            resource_id=resource_id,
            owner_id=owner_id,
            context=context,
            context_key=context_key,
            allowed=allowed,
        )
        return self._open(result, context)

    def press_booking(self, event: PointerEvent, booking: Booking, kind: SessionKind) -> bool:
        if self._session is not None:
            return False
        context = self._build_context()
        return self._open(begin_drag(booking, kind, event, context), context)

    def handle_pointer(self, event: PointerEvent) -> Optional[Outcome]:
        if event.phase is PointerPhase.MOVE:
            self.move(event)
            return None
        if event.phase is PointerPhase.UP:
            return self.release()
        return None

    def move(self, event: PointerEvent) -> None:
        if self._session is None or self._context is None:
            return
        updated = pointer_move(self._session, event, self._context)
        if updated != self._session:
            self._session = updated
            self.session_changed.emit(updated)

    def release(self) -> Optional[Outcome]:
        if self._session is None or self._context is None:
            return None
        outcome = pointer_up(self._session, self._context)
        self._close()
        self._emit(outcome)
        return outcome

    def abandon(self) -> Optional[Outcome]:
        """Resolve the open gesture after the pointer was lost (e.g. window blur)."""
        if self._session is None:
            return None
        outcome = cancel(self._session)
        self._close()
        return outcome

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:  # noqa: N802 - Qt API
        if self._session is None:
            return False
        if event.type() in _RELEASE_EVENTS:
            self.abandon()
        elif pointer_phase(event) is PointerPhase.UP:
            sample = to_pointer_event(event)
            if sample is not None:
                self.handle_pointer(sample)
        return False

    # ------------------------------------------------------------------
    def _build_context(self) -> InteractionContext:
        return InteractionContext(
            geometry=self._geometry,
            clock=self._clock,
            may_edit=self._may_edit,
            existing=self._existing,
            window=self._settings.window(),
            slot_minutes=self._settings.slot_minutes,
            move_threshold=self._settings.move_threshold_px,
        )

    def _open(self, result: InteractionSession | Rejected, context: InteractionContext) -> bool:
        if isinstance(result, Rejected):
            self.rejected.emit(result.reason, result.reason.message)
            return False
        self._session = result
        self._context = context
        LOGGER.debug("Gesture opened", extra={"event": "gesture_open", "kind": result.kind.value})
        self.session_changed.emit(result)
        return True

    def _close(self) -> None:
        self._session = None
        self._context = None
        self.session_changed.emit(None)

    def _emit(self, outcome: Outcome) -> None:
        if isinstance(outcome, CreateRequest):
            self.create_requested.emit(outcome)
        elif isinstance(outcome, UpdateRequest):
            self.update_requested.emit(outcome)
        elif isinstance(outcome, Click):
            self.clicked.emit(outcome.booking)
        elif isinstance(outcome, Noop) and outcome.reason is not None:
            self.rejected.emit(outcome.reason, outcome.reason.message)
