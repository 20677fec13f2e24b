"""Console logging for the ingest service.

Submission and export code logs through module loggers and passes request
context (device ids, timestamps, export format) via ``extra=``. The formatter
below renders that context after the message as ``key=value`` pairs, e.g.::

    2024-01-01T12:00:00Z | INFO | services.submission | Received submission: devices=1:a | device_count=1
"""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Iterable, Sequence

from settings import get_settings

SUBMISSION_CONTEXT_KEYS = ("timestamp", "latitude", "longitude", "device_id", "device_count")
EXPORT_CONTEXT_KEYS = ("format", "row_count")
OUTCOME_KEYS = ("reason", "status")

# SQLAlchemy echoes every statement at INFO; keep it quiet unless asked for DEBUG.
_LIBRARY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")

_configured = False


class ContextualFormatter(logging.Formatter):
    """Append selected ``extra=`` attributes of a record as ``key=value`` pairs."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        if extra_keys is None:
            extra_keys = SUBMISSION_CONTEXT_KEYS + EXPORT_CONTEXT_KEYS + OUTCOME_KEYS
        self._extra_keys: Sequence[str] = tuple(extra_keys)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{key}={getattr(record, key)}"
            for key in self._extra_keys
            if getattr(record, key, None) is not None
        )
        return f"{message} | {context}" if context else message


def configure_logging(level: str | int | None = None) -> None:
    """Route service and SQLAlchemy logs to stderr; later calls are no-ops.

    ``level`` overrides ``LOG_LEVEL`` from the settings. SQLAlchemy's own
    loggers only follow it when it is DEBUG.
    """
    global _configured
    if _configured:
        return

    log_level = level if level is not None else get_settings().log_level
    library_level = "DEBUG" if log_level in ("DEBUG", logging.DEBUG) else "WARNING"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": "contextual",
                }
            },
            "loggers": {name: {"level": library_level} for name in _LIBRARY_LOGGERS},
            "root": {"handlers": ["console"], "level": log_level},
        }
    )

    _configured = True
