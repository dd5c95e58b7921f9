import sys
from io import StringIO

import pytest
from loguru import logger

from methodfabric.log_config import configure_logging


def test_configure_logging_default_level():
    """Test configure_logging with default INFO level and stderr sink."""
    logger.remove()
    configure_logging()

    assert len(logger._core.handlers) == 1
    handler_id = list(logger._core.handlers.keys())[-1]
    handler = logger._core.handlers[handler_id]
    assert handler._levelno == logger.level("INFO").no


@pytest.mark.parametrize("level", ["debug", "WARNING", "error"])
def test_configure_logging_custom_level(level):
    logger.remove()
    configure_logging(level=level)
    handler_id = list(logger._core.handlers.keys())[-1]
    handler = logger._core.handlers[handler_id]
    assert handler._levelno == logger.level(level.upper()).no


def test_configure_logging_removes_existing_handlers():
    """Test that configure_logging removes pre-existing handlers."""
    logger.remove()
    logger.add(lambda _: None, level="ERROR")
    assert len(logger._core.handlers) == 1

    configure_logging(level="INFO")

    assert len(logger._core.handlers) == 1


def test_configure_logging_writes_to_custom_sink():
    stream = StringIO()
    configure_logging(level="DEBUG", sink=stream)

    logger.debug("dispatching show_status")

    output = stream.getvalue()
    assert "DEBUG" in output
    assert "dispatching show_status" in output
    # Only the stderr handler is colorized.
    assert "\x1b[" not in output


def test_configure_logging_filters_below_level():
    stream = StringIO()
    configure_logging(level="WARNING", sink=stream)

    logger.info("not shown")
    logger.warning("shown")

    output = stream.getvalue()
    assert "not shown" not in output
    assert "shown" in output


@pytest.fixture(autouse=True)
def reset_logger_after_test():
    """Fixture to reset Loguru to a default state after each test in this module."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="INFO")
