"""
Logging configuration.

Development gets human-readable console lines, everything else
gets one JSON object per line on stdout so the output can be
shipped to a log aggregator as-is.

Controlled by LOG_FORMAT ("json" or "console") and LOG_LEVEL.
"""

import json
import logging
import logging.config
from datetime import datetime, timezone

from residence_ledger.config import Settings, get_settings


class JsonFormatter(logging.Formatter):
    """Render a log record as a single JSON line."""

    # Attributes every LogRecord has; anything else came from extra=
    RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in self.RESERVED and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def get_logging_config(settings: Settings) -> dict:
    """Build a dictConfig for the application loggers."""
    if settings.LOG_FORMAT == "json":
        formatter = {"()": "residence_ledger.logging_config.JsonFormatter"}
    else:
        formatter = {
            "format": "[{asctime}] {levelname} {name} {message}",
            "style": "{",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "residence_ledger": {
                "handlers": ["console"],
                "level": settings.LOG_LEVEL,
                "propagate": False,
            },
            # SQL echo is too noisy outside debugging sessions
            "sqlalchemy.engine": {
                "handlers": ["console"],
                "level": "INFO" if settings.DEBUG else "WARNING",
                "propagate": False,
            },
        },
    }


def configure_logging(settings: Settings | None = None) -> None:
    """Apply the logging configuration. Safe to call more than once."""
    logging.config.dictConfig(get_logging_config(settings or get_settings()))
