"""
Structured JSON logging for applications embedding the SDK.

SDK modules log through ``get_logger(__name__)`` only. Nothing is printed
until the application calls :func:`setup_logging`.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

from pythonjsonlogger import jsonlogger

from realitydefender.settings import Settings, get_settings

SERVICE_NAME = "realitydefender-sdk"

# Fields SDK modules attach through ``extra=``
CONTEXT_FIELDS = ("request_id", "media_id", "mode")

QUIET_LOGGERS = ("httpx", "httpcore")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps records with the SDK service and poll context."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(
            record.created, timezone.utc
        ).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = SERVICE_NAME
        log_record["logger"] = record.name
        log_record["source"] = f"{record.module}.{record.funcName}:{record.lineno}"

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value


def setup_logging(
    settings: Settings | None = None,
    *,
    level: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Install a JSON handler on the root logger.

    Args:
        settings: Settings whose ``log_level`` applies; defaults to the
            environment-backed ``get_settings()``
        level: Explicit level that overrides the settings value
        stream: Output stream, stdout by default
    """
    log_level = level or (settings or get_settings()).log_level

    formatter = CustomJsonFormatter(
        fmt="%(timestamp)s %(level)s %(name)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger"},
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(name)
