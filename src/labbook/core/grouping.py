"""Reconstruction of contiguous bookings from persisted slots."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Mapping

from .models import Booking, RangedRecord, Slot, booking_from_record, parse_record
from .time_segments import SLOT_MINUTES, MinuteRange

LOGGER = logging.getLogger("labbook.grouping")


def _extends(group: Booking, slot: Slot) -> bool:
    return (
        slot.date == group.date
        and slot.resource_id == group.resource_id
        and slot.owner_id == group.owner_id
        and slot.context_key == group.context_key
        and slot.created_batch_key == group.created_batch_key
        and slot.time == group.end
    )


def group_bookings(records: Iterable[Slot | RangedRecord], slot_minutes: int = SLOT_MINUTES) -> list[Booking]:
    """Merge slots into bookings; ranged records pass through one-to-one.

    Slots join the running group only when every identifying attribute matches
    and the slot starts exactly where the group ends. Ranged bookings come first
    in input order, followed by the reconstructed ones in sorted order.
    """

    ranged: list[Booking] = []
    slots: list[Slot] = []
    for record in records:
        if isinstance(record, Slot):
            slots.append(record)
        else:
            ranged.append(booking_from_record(record, slot_minutes))

    slots.sort(key=lambda slot: (slot.date, slot.resource_id, slot.time))

    grouped: list[Booking] = []
    current: Booking | None = None
    for slot in slots:
        if current is not None and _extends(current, slot):
            current = Booking(
                ids=current.ids + (slot.slot_id,),
                resource_id=current.resource_id,
                owner_id=current.owner_id,
                date=current.date,
                start=current.start,
                end=slot.time + slot_minutes,
                context_key=current.context_key,
                created_batch_key=current.created_batch_key,
            )
            continue
        if current is not None:
            grouped.append(current)
        current = booking_from_record(slot, slot_minutes)
    if current is not None:
        grouped.append(current)

    LOGGER.debug(
        "Grouped booking records",
        extra={
            "event": "bookings_grouped",
            "ranged": len(ranged),
            "slots": len(slots),
            "bookings": len(ranged) + len(grouped),
        },
    )
    return ranged + grouped


def group_payloads(payloads: Iterable[Mapping[str, Any]], slot_minutes: int = SLOT_MINUTES) -> list[Booking]:
    return group_bookings((parse_record(payload) for payload in payloads), slot_minutes)


def merge_selection(
    slots: Iterable[tuple[date, int]], slot_minutes: int = SLOT_MINUTES
) -> list[tuple[date, MinuteRange]]:
    """Collapse selected ``(date, start)`` cells into contiguous per-day ranges."""

    ranges: list[tuple[date, MinuteRange]] = []
    for day, start in sorted(set(slots)):
        if ranges:
            last_day, last = ranges[-1]
            if last_day == day and last.end == start:
                ranges[-1] = (day, MinuteRange(start=last.start, end=start + slot_minutes))
                continue
        ranges.append((day, MinuteRange(start=start, end=start + slot_minutes)))
    return ranges
