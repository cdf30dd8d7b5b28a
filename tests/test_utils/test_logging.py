"""Tests for logging configuration."""

import json
import logging

import pytest
from pythonjsonlogger.json import JsonFormatter

from fulfillment.config import Settings
from fulfillment.utils.logging import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_format_uses_json_formatter(restore_root_logger) -> None:
    setup_logging(Settings(_env_file=None, log_format="json", log_level="DEBUG"))

    (handler,) = restore_root_logger.handlers
    assert isinstance(handler.formatter, JsonFormatter)
    assert restore_root_logger.level == logging.DEBUG

    record = logging.LogRecord("fulfillment", logging.INFO, __file__, 1, "order_created", None, None)
    line = json.loads(handler.formatter.format(record))
    assert line["level"] == "INFO"
    assert line["message"] == "order_created"
    assert "timestamp" in line


def test_text_format_and_quiet_httpx(restore_root_logger) -> None:
    setup_logging(Settings(_env_file=None, log_format="text"))

    (handler,) = restore_root_logger.handlers
    assert not isinstance(handler.formatter, JsonFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING
