"""
test_logging_config.py — Tests for leadflow/logging_config.py

Verifies Loguru setup, stdlib logging interception, JSON selection and
request context binding. Uses loguru's sink capture for assertions.

Called by: pytest
Depends on: leadflow/logging_config.py
"""

import logging
import os
from unittest.mock import patch

import pytest
from loguru import logger

from leadflow.logging_config import setup_logging


@pytest.fixture(autouse=True)
def _clean_loguru():
    """Remove all handlers and default extras before/after each test for isolation."""
    logger.remove()
    logger.configure(extra={})
    yield
    logger.remove()
    logger.configure(extra={})


def test_setup_logging_adds_handler():
    """setup_logging() should add at least one Loguru handler."""
    assert len(logger._core.handlers) == 0
    with patch.dict(os.environ, {"APP_URL": "http://localhost:8000", "LOG_FORMAT": ""}):
        setup_logging()
    assert len(logger._core.handlers) > 0


def test_stdlib_logging_intercepted():
    """After setup, stdlib logging.getLogger() messages go through Loguru."""
    with patch.dict(os.environ, {"APP_URL": "http://localhost:8000"}):
        setup_logging()

    messages = []
    logger.add(lambda m: messages.append(str(m)), format="{message}")

    logging.getLogger("test.intercept").warning("intercepted message")

    assert any("intercepted message" in m for m in messages)


def test_log_level_from_env():
    """LOG_LEVEL env var controls minimum log level."""
    with patch.dict(os.environ, {"APP_URL": "http://localhost:8000", "LOG_LEVEL": "WARNING"}):
        with patch("loguru.logger.add") as mock_add:
            setup_logging()
    assert all(c.kwargs.get("level") == "WARNING" for c in mock_add.call_args_list)


def test_request_id_defaults_to_dash():
    """Records outside a request carry request_id="-" so the format never breaks."""
    with patch.dict(os.environ, {"APP_URL": "http://localhost:8000"}):
        setup_logging()
    records = []
    logger.add(lambda m: records.append(m.record), format="{message}")

    logger.info("background work")
    assert records[-1]["extra"]["request_id"] == "-"


def test_context_binding():
    """logger.contextualize() adds fields to log records."""
    records = []
    logger.add(lambda m: records.append(m.record), format="{message}")

    with logger.contextualize(request_id="abc123"):
        logger.info("request log")
    logger.info("after request")

    assert records[0]["extra"].get("request_id") == "abc123"
    assert "request_id" not in records[1]["extra"]


def test_production_mode_uses_serialize():
    """When APP_URL is not localhost, serialize=True (JSON output)."""
    with patch.dict(os.environ, {"APP_URL": "https://leads.example.com", "LOG_FORMAT": ""}):
        with patch("loguru.logger.add") as mock_add:
            setup_logging()
    assert any(c.kwargs.get("serialize") is True for c in mock_add.call_args_list)


def test_log_format_env_forces_json_locally():
    with patch.dict(os.environ, {"APP_URL": "http://localhost:8000", "LOG_FORMAT": "json"}):
        with patch("loguru.logger.add") as mock_add:
            setup_logging()
    assert any(c.kwargs.get("serialize") is True for c in mock_add.call_args_list)


def test_noisy_loggers_quieted():
    with patch.dict(os.environ, {"APP_URL": "http://localhost:8000"}):
        setup_logging()
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
