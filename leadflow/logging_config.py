"""
logging_config.py — Centralized Logging Configuration for Leadflow

Sets up Loguru as the single logging backend. Intercepts Python's stdlib
logging module so uvicorn, SQLAlchemy and httpx records route through
Loguru with the same format and the bound request ID.

Business Rules:
- All logs go through Loguru (no direct print() or stdlib handlers)
- JSON format outside localhost, or whenever LOG_FORMAT=json
- Human-readable format in development
- Request ID from middleware is included when available
- Tokens and passwords are never logged

Called by: leadflow/main.py (on startup)
Depends on: environment (LOG_LEVEL, LOG_FORMAT, APP_URL)
"""

import logging
import os
import sys

from loguru import logger


def _wants_json() -> bool:
    fmt = os.getenv("LOG_FORMAT", "").lower()
    if fmt:
        return fmt == "json"
    app_url = os.getenv("APP_URL", "http://localhost:8000")
    return "localhost" not in app_url and "127.0.0.1" not in app_url


def setup_logging() -> None:
    """Configure Loguru and intercept stdlib logging.

    Call once at app startup, before any other imports that log.
    """
    logger.remove()
    logger.configure(extra={"request_id": "-"})

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    is_json = _wants_json()

    if is_json:
        # JSON lines to stdout (container runtime captures these)
        logger.add(
            sys.stdout,
            level=log_level,
            format="{message}",
            serialize=True,
        )
    else:
        logger.add(
            sys.stdout,
            level=log_level,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<magenta>{extra[request_id]}</magenta> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "{message}"
            ),
            colorize=True,
        )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info("Logging configured", level=log_level, json=is_json)


class _InterceptHandler(logging.Handler):
    """Route stdlib logging records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip frames from stdlib logging internals
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )
