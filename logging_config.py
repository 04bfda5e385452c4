"""
Logging setup: plain text for local runs, JSON lines when LOG_JSON is set.
"""

import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from settings import Settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that always carries timestamp, level, logger and environment."""

    environment = "development"

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["environment"] = self.environment


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    formatter = "json" if settings.LOG_JSON else "standard"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            },
            "json": {
                "()": CustomJsonFormatter,
                "format": "%(timestamp)s %(level)s %(logger)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "handlers": ["console"],
            "level": settings.LOG_LEVEL.upper(),
        },
        "loggers": {
            "pymongo": {"level": "WARNING"},
            "uvicorn.access": {"level": "WARNING"},
        },
    }


def setup_logging(settings: Settings) -> None:
    CustomJsonFormatter.environment = settings.ENVIRONMENT
    logging.config.dictConfig(build_logging_config(settings))
