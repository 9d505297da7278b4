"""Logging configuration helpers."""

from __future__ import annotations

import logging
import logging.config
from typing import Any

from fare_check.config import get_settings


def get_logging_config(stream: str = "ext://sys.stdout") -> dict[str, Any]:
    """
    Get logging configuration based on settings.

    Args:
        stream: Handler stream; the stdio transport passes stderr because
            stdout carries protocol frames.

    Returns:
        Logging configuration dictionary
    """
    settings = get_settings()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": (
                    "%(asctime)s | %(levelname)s | %(name)s | "
                    "request_id=%(request_id)s | %(message)s"
                ),
            },
        },
        "filters": {
            "request_id": {
                "()": "fare_check.logging_config.RequestIdFilter",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": ["request_id"],
                "stream": stream,
            },
        },
        "root": {
            "level": settings.log_level,
            "handlers": ["console"],
        },
    }


class RequestIdFilter(logging.Filter):
    """Ensure `request_id` key is always available in log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


def configure_logging(config: dict[str, Any] | None = None) -> None:
    """
    Apply logging configuration once.

    Args:
        config: Optional logging configuration dict. If None, uses config from settings.
    """
    if config is None:
        config = get_logging_config()
    logging.config.dictConfig(config)
