"""Logging utilities for sheettiles workers and the CLI."""

from __future__ import annotations

import json
import logging
from logging import Logger
from logging.config import dictConfig
from typing import Any, Dict, Optional

# Attributes present on every LogRecord; anything else arrived through ``extra``.
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the structured ``extra`` fields attached to a record."""

    return {key: value for key, value in vars(record).items() if key not in _RESERVED}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, including ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(record_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


class KeyValueFormatter(logging.Formatter):
    """Plain-text formatter that appends ``extra`` fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = record_fields(record)
        if not fields:
            return line
        rendered = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
        return f"{line} | {rendered}"


def configure_logging(
    *,
    level: str = "INFO",
    json_logs: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure root handlers for console output and an optional log file."""

    formatters: Dict[str, Dict[str, Any]] = {
        "standard": {
            "()": KeyValueFormatter,
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            "datefmt": "%Y-%m-%dT%H:%M:%SZ",
        }
    }
    if json_logs:
        formatters["json"] = {
            "()": JSONFormatter,
            "datefmt": "%Y-%m-%dT%H:%M:%SZ",
        }
    formatter = "json" if json_logs else "standard"

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": formatter,
        }
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": log_file,
            "encoding": "utf-8",
            "formatter": formatter,
        }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": formatters,
            "handlers": handlers,
            "root": {
                "handlers": list(handlers),
                "level": level.upper(),
            },
        }
    )


def get_logger(name: str) -> Logger:
    """Return a module-scoped logger."""

    return logging.getLogger(name)
