"""Translate Qt mouse and touch events into device-independent pointer events."""

from __future__ import annotations

from typing import Optional

from PySide6.QtCore import QEvent, QPointF

from ..core.interaction import PointerEvent, PointerPhase

_MOUSE_PHASES = {
    QEvent.Type.MouseButtonPress: PointerPhase.DOWN,
    QEvent.Type.MouseMove: PointerPhase.MOVE,
    QEvent.Type.MouseButtonRelease: PointerPhase.UP,
}

_TOUCH_PHASES = {
    QEvent.Type.TouchBegin: PointerPhase.DOWN,
    QEvent.Type.TouchUpdate: PointerPhase.MOVE,
    QEvent.Type.TouchEnd: PointerPhase.UP,
    QEvent.Type.TouchCancel: PointerPhase.UP,
}


def pointer_phase(event: QEvent) -> Optional[PointerPhase]:
    event_type = event.type()
    return _MOUSE_PHASES.get(event_type) or _TOUCH_PHASES.get(event_type)


def to_pointer_event(event: QEvent, origin: QPointF | None = None) -> Optional[PointerEvent]:
    """Return the pointer sample carried by ``event`` relative to ``origin``.

    Touch events use their first touch point. Non-pointer events yield None.
    A touch release without points still reports an ``UP`` sample because
    release handling does not depend on position.
    """

    event_type = event.type()
    if event_type in _MOUSE_PHASES:
        phase = _MOUSE_PHASES[event_type]
        position = event.position()
        source = "mouse"
    elif event_type in _TOUCH_PHASES:
        phase = _TOUCH_PHASES[event_type]
        points = event.points()
        if not points:
            if phase is not PointerPhase.UP:
                return None
            return PointerEvent(phase=phase, x=0.0, y=0.0, source="touch")
        position = points[0].position()
        source = "touch"
    else:
        return None

    offset_x = origin.x() if origin is not None else 0.0
    offset_y = origin.y() if origin is not None else 0.0
    return PointerEvent(phase=phase, x=position.x() - offset_x, y=position.y() - offset_y, source=source)
