import logging

import pytest

from labbook.core.logging_config import EventFormatter, LOG_FORMAT, configure_logging, reset_logging
from labbook.core.paths import log_path


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.lines = []

    def emit(self, record):
        self.lines.append(self.format(record))


@pytest.fixture
def handler():
    handler = _ListHandler()
    handler.setFormatter(EventFormatter("%(name)s %(message)s"))
    yield handler
    reset_logging(reconfigure=False)


def test_child_loggers_reach_configured_handlers(handler):
    configure_logging(logging.DEBUG, extra_handlers=[handler])
    logging.getLogger("labbook.interaction").info(
        "Drag committed", extra={"event": "drag_committed", "ids": [1, 2]}
    )
    assert handler.lines[-1] == "labbook.interaction Drag committed | event='drag_committed' ids=[1, 2]"


def test_configure_is_idempotent(handler):
    first = configure_logging(logging.INFO, extra_handlers=[handler])
    count = len(first.handlers)
    second = configure_logging(logging.WARNING)
    assert second is first
    assert len(second.handlers) == count
    assert second.level == logging.WARNING
    assert second.propagate is False


def test_file_handler_writes_to_app_data(handler):
    logger = configure_logging(logging.INFO, extra_handlers=[handler])
    logger.info("hello", extra={"event": "test"})
    for item in logger.handlers:
        item.flush()
    assert "hello | event='test'" in log_path().read_text(encoding="utf-8")


def test_formatter_without_extras_is_plain():
    record = logging.makeLogRecord({"name": "labbook", "msg": "plain", "levelname": "INFO"})
    assert EventFormatter("%(message)s").format(record) == "plain"
    assert "%(threadName)s" in LOG_FORMAT
