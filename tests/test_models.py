from datetime import date, datetime

import pytest

from labbook.core.exceptions import FormatError
from labbook.core.models import Booking, RangedRecord, Slot, booking_from_record, parse_record


def test_parse_record_legacy_slot():
    record = parse_record(
        {
            "id": 7,
            "tool_id": "3",
            "user_id": "u-1",
            "project": "Optics",
            "date": "2023-10-23",
            "time": "08:00:00",
            "created_at": "2023-10-20T12:00:00",
        }
    )
    assert isinstance(record, Slot)
    assert record.resource_id == 3
    assert record.time == 480
    assert record.interval().end == 510
    assert record.ids == (7,)


def test_parse_record_ranged_variants():
    snake = parse_record({"id": 1, "tool_id": 1, "date": "2023-10-23", "time": "08:00", "end_time": "09:30"})
    camel = parse_record({"id": 2, "tool_id": 1, "date": "2023-10-23", "startTime": "10:00", "endTime": "11:00"})
    assert isinstance(snake, RangedRecord)
    assert (snake.start, snake.end) == (480, 570)
    assert isinstance(camel, RangedRecord)
    assert (camel.start, camel.end) == (600, 660)


@pytest.mark.parametrize(
    "payload",
    [
        {"tool_id": 1, "date": "2023-10-23", "time": "08:00"},
        {"id": 1, "tool_id": "x", "date": "2023-10-23", "time": "08:00"},
        {"id": 1, "tool_id": 1, "date": "2023-10-23", "time": "8h"},
        {"id": 1, "tool_id": 1, "date": "2023-10-23", "time": "09:00", "end_time": "08:00"},
    ],
)
def test_parse_record_rejects_bad_rows(payload):
    with pytest.raises(FormatError):
        parse_record(payload)


def test_ranged_record_json_uses_storage_keys():
    record = RangedRecord(
        record_id="abc",
        resource_id=2,
        owner_id="u-1",
        date=date(2023, 10, 24),
        start=600,
        end=690,
        context_key="Optics",
        created_batch_key="2023-10-23T09:10:00",
    )
    assert record.to_json_dict() == {
        "id": "abc",
        "tool_id": 2,
        "user_id": "u-1",
        "project": "Optics",
        "date": "2023-10-24",
        "time": "10:00",
        "end_time": "11:30",
        "created_at": "2023-10-23T09:10:00",
    }
    assert parse_record(record.to_json_dict()) == record


def test_booking_progress_helpers():
    booking = booking_from_record(
        RangedRecord(record_id=1, resource_id=1, owner_id="a", date=date(2023, 10, 23), start=540, end=600)
    )
    assert isinstance(booking, Booking)
    assert booking.label == "09:00 - 10:00"
    assert booking.is_in_progress(datetime(2023, 10, 23, 9, 0))
    assert not booking.is_in_progress(datetime(2023, 10, 23, 10, 0))
    assert not booking.has_ended(datetime(2023, 10, 23, 10, 0))
    assert booking.has_ended(datetime(2023, 10, 23, 10, 1))
