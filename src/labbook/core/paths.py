"""Filesystem path utilities for labbook."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

APP_NAME = "labbook"
DATA_DIR_ENV = "LABBOOK_DATA_DIR"
SETTINGS_FILENAME = "settings.json"
LOG_FILENAME = "labbook.log"
BOOKINGS_FILENAME = "bookings.jsonl"

_DATA_DIR_OVERRIDE: Path | None = None


def _user_data_root() -> Path:
    """Return the per-user application data root for the current platform."""
    appdata = os.environ.get("APPDATA")
    if appdata:
        return Path(appdata)
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".local" / "share"


def default_app_data_dir() -> Path:
    env_override = os.environ.get(DATA_DIR_ENV)
    if env_override:
        return Path(env_override).expanduser()
    return _user_data_root() / APP_NAME


def set_app_data_directory(path: Path | str | None) -> Path:
    global _DATA_DIR_OVERRIDE
    _DATA_DIR_OVERRIDE = Path(path).expanduser() if path else None
    app_data_dir.cache_clear()
    return app_data_dir()


@lru_cache(maxsize=1)
def app_data_dir() -> Path:
    """Return the base application data directory, ensuring it exists."""
    base = _DATA_DIR_OVERRIDE or default_app_data_dir()
    base.mkdir(parents=True, exist_ok=True)
    return base


def settings_path() -> Path:
    return app_data_dir() / SETTINGS_FILENAME


def log_path() -> Path:
    return app_data_dir() / LOG_FILENAME


def bookings_path() -> Path:
    return app_data_dir() / BOOKINGS_FILENAME


def ensure_app_structure() -> None:
    """Proactively create the files the app relies on."""
    app_data_dir()
    store = bookings_path()
    if not store.exists():
        store.touch()
