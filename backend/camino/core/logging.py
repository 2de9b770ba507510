"""Centralized logging configuration."""
from __future__ import annotations

import logging
from logging.config import dictConfig

from camino.core.context import get_plan_id, get_request_id


class CorrelationFilter(logging.Filter):
    """Stamp request_id and plan_id onto every log record."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - minimal logic
        record.request_id = get_request_id() or "-"
        record.plan_id = get_plan_id() or "-"
        return True


def configure_logging(*, log_level: str = "INFO") -> None:
    """Configure application logging once at startup."""
    if getattr(configure_logging, "_configured", False):
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(plan_id)s | %(message)s",
                }
            },
            "filters": {
                "correlation": {
                    "()": "camino.core.logging.CorrelationFilter",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": log_level,
                    "filters": ["correlation"],
                }
            },
            "loggers": {
                "httpx": {"level": "WARNING"},
                "apscheduler": {"level": "WARNING"},
            },
            "root": {
                "handlers": ["console"],
                "level": log_level,
            },
        }
    )

    logging.getLogger(__name__).debug("Logging configured at %s", log_level)
    setattr(configure_logging, "_configured", True)
