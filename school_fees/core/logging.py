"""
Logging configuration. Console output in plain text by default, or one JSON
object per line when LOG_JSON is set.
"""

import logging
import logging.config
from datetime import datetime
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from school_fees.core.config import settings


class FeesJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding timestamp, level, logger and request context fields."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.utcnow().isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        for key in ("tenant_id", "actor_id", "fee_item_id"):
            if hasattr(record, key):
                log_record[key] = str(getattr(record, key))


def build_logging_config(level: str, json_output: bool) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            },
            "json": {
                "()": FeesJsonFormatter,
                "format": "%(timestamp)s %(level)s %(logger)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json" if json_output else "standard",
            },
        },
        "loggers": {
            "school_fees": {
                "handlers": ["console"],
                "level": level.upper(),
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
            "uvicorn": {
                "handlers": ["console"],
                "level": "INFO",
                "propagate": False,
            },
        },
    }


def setup_logging() -> None:
    logging.config.dictConfig(build_logging_config(settings.log_level, settings.log_json))
