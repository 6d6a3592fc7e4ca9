from datetime import date

from labbook.core.layout import bookings_for_day, calculate_event_layout


def test_empty_day_has_no_layout():
    assert calculate_event_layout([]) == []


def test_same_start_different_lengths_split_into_two_columns(make_booking):
    short = make_booking("09:00", "09:30", ids=(1,))
    long = make_booking("09:00", "11:00", ids=(2,))
    positioned = calculate_event_layout([short, long])
    by_id = {item.booking.ids: item for item in positioned}
    assert by_id[(2,)].column_index == 0
    assert by_id[(1,)].column_index == 1
    assert all(item.width_percent == 50 for item in positioned)
    assert by_id[(1,)].left_percent == 50


def test_sequential_bookings_share_column_zero(make_booking):
    bookings = [
        make_booking("08:00", "09:00", ids=(1,)),
        make_booking("09:00", "10:00", ids=(2,)),
        make_booking("10:30", "11:00", ids=(3,)),
    ]
    positioned = calculate_event_layout(bookings)
    assert [item.column_index for item in positioned] == [0, 0, 0]
    assert all(item.width_percent == 100 for item in positioned)
    assert all(item.left_percent == 0 for item in positioned)


def test_width_is_uniform_across_the_day(make_booking):
    bookings = [
        make_booking("08:00", "09:00", ids=(1,)),
        make_booking("08:30", "09:30", ids=(2,)),
        make_booking("08:45", "10:00", ids=(3,)),
        make_booking("15:00", "16:00", ids=(4,)),
    ]
    positioned = calculate_event_layout(bookings)
    columns = {item.booking.ids: item.column_index for item in positioned}
    assert columns == {(1,): 0, (2,): 1, (3,): 2, (4,): 0}
    assert {round(item.width_percent, 4) for item in positioned} == {33.3333}


def test_freed_column_is_reused(make_booking):
    bookings = [
        make_booking("08:00", "10:00", ids=(1,)),
        make_booking("08:00", "09:00", ids=(2,)),
        make_booking("09:00", "09:30", ids=(3,)),
    ]
    columns = {item.booking.ids: item.column_index for item in calculate_event_layout(bookings)}
    assert columns == {(1,): 0, (2,): 1, (3,): 1}


def test_identical_bookings_keep_input_order(make_booking):
    first = make_booking("08:00", "09:00", ids=(1,))
    second = make_booking("08:00", "09:00", ids=(2,))
    positioned = calculate_event_layout([first, second])
    assert [item.booking.ids for item in positioned] == [(1,), (2,)]
    assert [item.column_index for item in positioned] == [0, 1]


def test_bookings_for_day_filters_and_orders(make_booking):
    tuesday = date(2023, 10, 24)
    bookings = [
        make_booking("10:00", "11:00", ids=(1,)),
        make_booking("08:00", "09:00", ids=(2,)),
        make_booking("08:00", "09:00", ids=(3,), resource_id=2),
        make_booking("08:00", "09:00", ids=(4,), day=date(2023, 10, 25)),
    ]
    assert [b.ids for b in bookings_for_day(bookings, tuesday, resource_id=1)] == [(2,), (1,)]
    assert len(bookings_for_day(bookings, tuesday)) == 3
