from __future__ import annotations

from datetime import date, datetime

import pytest

from labbook.core.interaction import GridGeometry, InteractionContext
from labbook.core.models import Booking
from labbook.core.paths import set_app_data_directory
from labbook.core.time_segments import to_minutes, week_dates
from labbook.core.validation import DayWindow

MONDAY = date(2023, 10, 23)
TUESDAY = date(2023, 10, 24)
WEDNESDAY = date(2023, 10, 25)
NOW = datetime(2023, 10, 23, 9, 10)
DAY_WIDTH = 100.0
PIXELS_PER_SLOT = 48.0


@pytest.fixture(autouse=True)
def isolated_app_data(tmp_path):
    set_app_data_directory(tmp_path / "app-data")
    yield tmp_path / "app-data"
    set_app_data_directory(None)


@pytest.fixture
def geometry() -> GridGeometry:
    return GridGeometry(week=tuple(week_dates(MONDAY)), day_width=DAY_WIDTH, pixels_per_slot=PIXELS_PER_SLOT)


@pytest.fixture
def make_booking():
    def factory(
        start: str,
        end: str,
        *,
        ids: tuple = (1,),
        day: date = TUESDAY,
        resource_id: int = 1,
        owner_id: str = "alice",
        context_key: str = "General",
    ) -> Booking:
        return Booking(
            ids=ids,
            resource_id=resource_id,
            owner_id=owner_id,
            date=day,
            start=to_minutes(start),
            end=to_minutes(end),
            context_key=context_key,
        )

    return factory


@pytest.fixture
def make_context(geometry):
    def factory(existing=(), now=NOW, clock=None, may_edit=None, window=None) -> InteractionContext:
        return InteractionContext(
            geometry=geometry,
            clock=clock or (lambda: now),
            may_edit=may_edit or (lambda booking: True),
            existing=tuple(existing),
            window=window or DayWindow(),
        )

    return factory
