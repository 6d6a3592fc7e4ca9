from datetime import date, datetime

import pytest
from PySide6.QtCore import QCoreApplication, QEvent

from labbook.core.interaction import (
    CreateRequest,
    DragSession,
    PointerEvent,
    PointerPhase,
    SessionKind,
    UpdateRequest,
)
from labbook.core.settings import BookingSettings
from labbook.core.validation import Reason
from labbook.ui.interaction_controller import InteractionController

NOW = datetime(2023, 10, 23, 9, 10)


class FakeEvent:
    def __init__(self, event_type):
        self._type = event_type

    def type(self):
        return self._type


@pytest.fixture(scope="module")
def qt_app():
    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture
def controller(qt_app, geometry, tmp_path):
    settings = BookingSettings(snapshot_path=str(tmp_path / "bookings.jsonl"))
    controller = InteractionController(settings, geometry, may_edit=lambda booking: True, clock=lambda: NOW)
    signals = {name: [] for name in ("create", "update", "click", "rejected", "session")}
    controller.create_requested.connect(signals["create"].append)
    controller.update_requested.connect(signals["update"].append)
    controller.clicked.connect(signals["click"].append)
    controller.rejected.connect(lambda reason, message: signals["rejected"].append((reason, message)))
    controller.session_changed.connect(signals["session"].append)
    controller.signals = signals
    return controller


def ev(phase, x, y):
    return PointerEvent(phase, x, y)


def test_selection_emits_create_request(controller):
    assert controller.press_cell(ev(PointerPhase.DOWN, 150, 10), resource_id=1, owner_id="alice")
    controller.handle_pointer(ev(PointerPhase.MOVE, 150, 58))
    outcome = controller.handle_pointer(ev(PointerPhase.UP, 150, 58))
    assert isinstance(outcome, CreateRequest)
    assert controller.signals["create"] == [outcome]
    assert not controller.is_active()
    assert controller.signals["session"][-1] is None


def test_only_one_session_at_a_time(controller, make_booking):
    assert controller.press_cell(ev(PointerPhase.DOWN, 150, 10), resource_id=1, owner_id="alice")
    assert not controller.press_booking(ev(PointerPhase.DOWN, 150, 100), make_booking("10:00", "11:00"), SessionKind.MOVE)
    assert not controller.press_cell(ev(PointerPhase.DOWN, 250, 10), resource_id=1, owner_id="alice")


def test_drag_emits_update_request(controller, make_booking):
    booking = make_booking("10:00", "11:00")
    controller.set_snapshot([booking])
    assert controller.press_booking(ev(PointerPhase.DOWN, 150, 100), booking, SessionKind.MOVE)
    controller.move(ev(PointerPhase.MOVE, 150, 148))
    assert isinstance(controller.session, DragSession)
    controller.release()
    (request,) = controller.signals["update"]
    assert isinstance(request, UpdateRequest)
    assert request.booking.start_time == "10:30"


def test_small_drag_is_a_click(controller, make_booking):
    booking = make_booking("10:00", "11:00")
    controller.press_booking(ev(PointerPhase.DOWN, 150, 100), booking, SessionKind.MOVE)
    controller.move(ev(PointerPhase.MOVE, 152, 101))
    controller.release()
    assert controller.signals["click"] == [booking]


def test_refused_gesture_reports_reason(controller, make_booking):
    ended = make_booking("08:00", "08:30", day=date(2023, 10, 23))
    assert not controller.press_booking(ev(PointerPhase.DOWN, 50, 10), ended, SessionKind.MOVE)
    assert controller.signals["rejected"] == [(Reason.ENDED, Reason.ENDED.message)]
    assert not controller.is_active()


def test_invalid_drop_reports_reason(controller, make_booking):
    booking = make_booking("08:00", "09:00")
    controller.press_booking(ev(PointerPhase.DOWN, 150, 10), booking, SessionKind.MOVE)
    controller.move(ev(PointerPhase.MOVE, 150, -38))
    controller.release()
    assert controller.signals["update"] == []
    assert controller.signals["rejected"] == [(Reason.OUT_OF_BOUNDS, Reason.OUT_OF_BOUNDS.message)]


def test_snapshot_is_captured_when_gesture_starts(controller, make_booking):
    booking = make_booking("08:00", "09:00", ids=(1,))
    controller.press_booking(ev(PointerPhase.DOWN, 150, 10), booking, SessionKind.MOVE)
    controller.set_snapshot([booking, make_booking("10:00", "11:00", ids=(2,))])
    controller.move(ev(PointerPhase.MOVE, 150, 10 + 120))
    controller.release()
    assert len(controller.signals["update"]) == 1


def test_window_deactivation_abandons_without_signals(controller, make_booking):
    booking = make_booking("10:00", "11:00")
    controller.press_booking(ev(PointerPhase.DOWN, 150, 100), booking, SessionKind.MOVE)
    controller.move(ev(PointerPhase.MOVE, 150, 148))
    assert controller.eventFilter(controller, FakeEvent(QEvent.Type.WindowDeactivate)) is False
    assert not controller.is_active()
    assert controller.signals["update"] == []
    assert controller.signals["click"] == []


def test_event_filter_ignores_events_without_session(controller):
    assert controller.eventFilter(controller, FakeEvent(QEvent.Type.WindowDeactivate)) is False
    assert controller.abandon() is None
    assert controller.release() is None
