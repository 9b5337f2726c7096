"""Logging configuration.

Console output is colourised; an optional rotating JSON file keeps a
machine-readable trail of sync runs and period/payroll transitions.
"""

from __future__ import annotations

import logging
import logging.config
from typing import Any, Optional

from pythonjsonlogger import jsonlogger


class AuditJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that always carries level, logger and device/period context."""

    def add_fields(self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        for key in ("device_id", "period_id", "actor_id"):
            if hasattr(record, key):
                log_record[key] = getattr(record, key)


def build_logging_config(level: str = "INFO", json_file: Optional[str] = None) -> dict[str, Any]:
    handlers: dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "colored",
        }
    }
    if json_file:
        handlers["json_file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "INFO",
            "filename": json_file,
            "maxBytes": 10485760,  # 10MB
            "backupCount": 10,
            "formatter": "json",
            "encoding": "utf8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "colored": {
                "()": "colorlog.ColoredFormatter",
                "format": "%(log_color)s%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "log_colors": {
                    "DEBUG": "cyan",
                    "INFO": "green",
                    "WARNING": "yellow",
                    "ERROR": "red",
                    "CRITICAL": "red,bg_white",
                },
            },
            "json": {
                "()": AuditJsonFormatter,
                "format": "%(asctime)s %(level)s %(logger)s %(message)s",
            },
        },
        "handlers": handlers,
        "root": {"handlers": list(handlers), "level": level},
        "loggers": {
            "zk": {"handlers": ["console"], "level": "WARNING", "propagate": False},
            "werkzeug": {"level": "WARNING"},
        },
    }


def setup_logging(level: str = "INFO", json_file: Optional[str] = None) -> logging.Logger:
    logging.config.dictConfig(build_logging_config(level.upper(), json_file))
    logger = logging.getLogger(__name__)
    logger.info("Logging initialized with level: %s", level.upper())
    return logger
