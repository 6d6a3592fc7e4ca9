"""Settings management for labbook."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable

from .exceptions import FormatError, SettingsError
from .interaction import DEFAULT_MOVE_THRESHOLD_PX, DEFAULT_PIXELS_PER_SLOT
from .paths import bookings_path, settings_path
from .time_segments import to_minutes
from .validation import DayWindow

DEFAULT_SLOT_MINUTES = 30
DEFAULT_DAY_START = "08:00"
DEFAULT_DAY_END = "20:00"
DEFAULT_REFRESH_INTERVAL_SECONDS = 10


@dataclass(slots=True)
class BookingSettings:
    slot_minutes: int = DEFAULT_SLOT_MINUTES
    day_start: str = DEFAULT_DAY_START
    day_end: str = DEFAULT_DAY_END
    move_threshold_px: float = DEFAULT_MOVE_THRESHOLD_PX
    pixels_per_slot: float = DEFAULT_PIXELS_PER_SLOT
    refresh_interval_seconds: int = DEFAULT_REFRESH_INTERVAL_SECONDS
    snapshot_path: str = field(default_factory=lambda: str(bookings_path()))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "BookingSettings":
        try:
            settings = cls(
                slot_minutes=int(payload.get("slot_minutes", DEFAULT_SLOT_MINUTES)),
                day_start=str(payload.get("day_start", DEFAULT_DAY_START)).strip(),
                day_end=str(payload.get("day_end", DEFAULT_DAY_END)).strip(),
                move_threshold_px=float(payload.get("move_threshold_px", DEFAULT_MOVE_THRESHOLD_PX)),
                pixels_per_slot=float(payload.get("pixels_per_slot", DEFAULT_PIXELS_PER_SLOT)),
                refresh_interval_seconds=int(
                    payload.get("refresh_interval_seconds", DEFAULT_REFRESH_INTERVAL_SECONDS)
                ),
                snapshot_path=str(payload.get("snapshot_path") or bookings_path()).strip(),
            )
        except (TypeError, ValueError) as exc:
            raise SettingsError("Settings payload has invalid values") from exc
        validate_settings(settings)
        return settings

    def window(self) -> DayWindow:
        return DayWindow(start=to_minutes(self.day_start), end=to_minutes(self.day_end))


def validate_settings(settings: BookingSettings) -> None:
    if settings.slot_minutes <= 0 or 60 % settings.slot_minutes:
        raise SettingsError("Slot length must be a positive divisor of 60 minutes")
    try:
        start = to_minutes(settings.day_start)
        end = to_minutes(settings.day_end)
    except FormatError as exc:
        raise SettingsError(str(exc)) from exc
    if start >= end:
        raise SettingsError("Bookable day must end after it starts")
    if start % settings.slot_minutes or end % settings.slot_minutes:
        raise SettingsError("Bookable day bounds must fall on slot boundaries")
    if settings.move_threshold_px < 0:
        raise SettingsError("Move threshold must be zero or greater")
    if settings.pixels_per_slot <= 0:
        raise SettingsError("Pixels per slot must be positive")
    if settings.refresh_interval_seconds < 1:
        raise SettingsError("Refresh interval must be at least 1 second")


class SettingsManager:
    def __init__(self, path: Path | None = None, logger: logging.Logger | None = None) -> None:
        self._path = Path(path) if path is not None else settings_path()
        self._logger = logger or logging.getLogger("labbook.settings")

    def load(self) -> BookingSettings:
        if not self._path.exists():
            self._logger.info(
                "Settings file missing; using defaults",
                extra={"event": "settings_load_default", "path": str(self._path)},
            )
            return BookingSettings()

        try:
            with self._path.open("r", encoding="utf-8") as infile:
                payload = json.load(infile)
        except json.JSONDecodeError as exc:
            self._logger.exception(
                "Invalid JSON in settings file",
                extra={"event": "settings_load_invalid_json"},
            )
            raise SettingsError("Settings file is malformed") from exc
        except OSError as exc:
            self._logger.exception("Unexpected error loading settings")
            raise SettingsError("Unable to load settings") from exc

        if not isinstance(payload, dict):
            raise SettingsError("Settings payload is invalid")
        settings = BookingSettings.from_dict(payload)

        self._logger.info(
            "Settings loaded successfully",
            extra={
                "event": "settings_loaded",
                "slot_minutes": settings.slot_minutes,
                "day_start": settings.day_start,
                "day_end": settings.day_end,
                "snapshot_path": settings.snapshot_path,
            },
        )
        return settings

    def save(self, settings: BookingSettings) -> None:
        self._logger.info(
            "Saving settings",
            extra={
                "event": "settings_save",
                "slot_minutes": settings.slot_minutes,
                "day_start": settings.day_start,
                "day_end": settings.day_end,
            },
        )
        validate_settings(settings)

        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_suffix(".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as outfile:
                json.dump(settings.to_dict(), outfile, indent=2)
                outfile.flush()
                os.fsync(outfile.fileno())
            temp_path.replace(self._path)
        except OSError as exc:
            self._logger.exception("Failed to save settings")
            raise SettingsError("Unable to save settings") from exc

    def update(self, transform: Callable[[BookingSettings], BookingSettings]) -> BookingSettings:
        current = self.load()
        updated = transform(current)
        self.save(updated)
        return updated
