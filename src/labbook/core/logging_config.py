"""Application-wide logging configuration."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import Iterable

from .paths import ensure_app_structure, log_path

_LOGGER_INITIALIZED = False

LOGGER_NAME = "labbook"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s"
DEFAULT_LOG_LEVEL = logging.INFO

_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


class EventFormatter(logging.Formatter):
    """Formatter that appends structured ``extra`` fields (event, reason, ids)."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}
        if not fields:
            return line
        rendered = " ".join(f"{key}={fields[key]!r}" for key in sorted(fields))
        return f"{line} | {rendered}"


def _build_handlers(console: bool) -> list[logging.Handler]:
    file_handler = RotatingFileHandler(
        log_path(), maxBytes=5_000_000, backupCount=5, encoding="utf-8", delay=True
    )
    handlers: list[logging.Handler] = [file_handler]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(EventFormatter(LOG_FORMAT))
    return handlers


def configure_logging(
    level: int | str = DEFAULT_LOG_LEVEL,
    extra_handlers: Iterable[logging.Handler] | None = None,
    *,
    console: bool = False,
) -> logging.Logger:
    """Configure the shared ``labbook`` logger and return it."""
    global _LOGGER_INITIALIZED
    logger = logging.getLogger(LOGGER_NAME)
    if _LOGGER_INITIALIZED:
        if level:
            logger.setLevel(level)
        return logger

    ensure_app_structure()

    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handlers = _build_handlers(console)
    if extra_handlers:
        handlers.extend(extra_handlers)

    for handler in handlers:
        logger.addHandler(handler)

    logging.captureWarnings(True)

    _LOGGER_INITIALIZED = True
    logger.info("Logging initialized", extra={"event": "logging_configured", "level": level})
    return logger


def reset_logging(level: int | str = DEFAULT_LOG_LEVEL, *, reconfigure: bool = True) -> logging.Logger:
    """Close existing handlers and optionally rebuild logging configuration."""
    global _LOGGER_INITIALIZED
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        try:
            handler.close()
        finally:
            logger.removeHandler(handler)
    logger.propagate = True
    _LOGGER_INITIALIZED = False
    if reconfigure:
        return configure_logging(level)
    return logger
