"""Logging configuration for the checkout backend.

Standard library logging carries the records, structlog renders them. Call
``configure_logging()`` once at startup; modules get their logger with
``get_logger(__name__)``.
"""
from __future__ import annotations
import logging
import sys
from typing import Any

import structlog

from config import Settings, get_settings


def get_log_level(settings: Settings) -> str:
    """Get log level based on environment."""
    level_map = {
        "production": "INFO",
        "staging": "INFO",
        "development": "DEBUG",
        "test": "WARNING",
    }
    return settings.LOG_LEVEL or level_map.get(settings.ENVIRONMENT.lower(), "INFO")


def setup_stdlib_logging(settings: Settings) -> None:
    log_level = get_log_level(settings)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    # Suppress noisy library loggers
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def setup_structlog(settings: Settings) -> None:
    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.contextvars.merge_contextvars,
    ]

    if settings.ENVIRONMENT.lower() in ["production", "staging"]:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(settings: Settings | None = None) -> None:
    """Configure all logging for the application."""
    settings = settings or get_settings()
    setup_stdlib_logging(settings)
    setup_structlog(settings)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_order_context(**kwargs: Any) -> None:
    """Attach values (e.g. the funnel's size and quantity) to every log line of this request."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_order_context() -> None:
    structlog.contextvars.clear_contextvars()
