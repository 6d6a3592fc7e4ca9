"""Side-by-side column packing for overlapping bookings on one day."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Sequence

from .models import Booking, PositionedBooking


def bookings_for_day(bookings: Iterable[Booking], day: date, resource_id: int | None = None) -> list[Booking]:
    """Bookings on ``day`` (optionally for one resource), ordered by start."""

    selected = [
        booking
        for booking in bookings
        if booking.date == day and (resource_id is None or booking.resource_id == resource_id)
    ]
    return sorted(selected, key=lambda booking: booking.start)


def calculate_event_layout(bookings: Sequence[Booking]) -> list[PositionedBooking]:
    """Assign each booking a column so overlapping bookings sit side by side.

    Bookings are placed greedily into the first column whose last booking has
    already ended. Width is shared uniformly across the whole day using the
    final column count, not per overlapping cluster.
    """

    if not bookings:
        return []

    ordered = sorted(bookings, key=lambda booking: (booking.start, -booking.end))
    column_ends: list[int] = []
    placements: list[tuple[Booking, int]] = []

    for booking in ordered:
        for index, last_end in enumerate(column_ends):
            if last_end <= booking.start:
                column_ends[index] = booking.end
                placements.append((booking, index))
                break
        else:
            column_ends.append(booking.end)
            placements.append((booking, len(column_ends) - 1))

    width = 100 / len(column_ends)
    return [
        PositionedBooking(
            booking=booking,
            column_index=column,
            width_percent=width,
            left_percent=column * width,
        )
        for booking, column in placements
    ]
