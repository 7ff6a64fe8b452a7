"""
Logging setup for the quiz service.

Every record carries the id of the request it was emitted under. Development
gets one readable line per record; production gets one JSON object per line
with the request, player and anti-cheat fields a log search needs.
"""
import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from picquiz.core.config import settings

# Set by RequestLoggingMiddleware for the lifetime of one request
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

NO_REQUEST = "-"

# LogRecord extras copied into JSON output when present
STRUCTURED_FIELDS = (
    "method",
    "path",
    "status_code",
    "duration_ms",
    "client_host",
    "username",
    "session_token",
    "anti_cheat",
    "error_id",
)

# Third-party loggers and the level they are held at
LIBRARY_LEVELS = {
    "sqlalchemy.engine": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}

TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Stamps ``record.request_id`` so both formats can print it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_context.get() or NO_REQUEST
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation in production."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None) or request_id_context.get()
        if request_id and request_id != NO_REQUEST:
            entry["request_id"] = request_id

        entry.update(
            {field: getattr(record, field) for field in STRUCTURED_FIELDS if hasattr(record, field)}
        )

        if record.levelno >= logging.ERROR:
            entry["source"] = f"{record.pathname}:{record.lineno}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def build_logging_config(level_name: str, json_output: bool, debug: bool) -> Dict[str, Any]:
    """dictConfig payload for the given level and output format."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    console = {"handlers": ["console"], "propagate": False}

    loggers: Dict[str, Any] = {
        "picquiz": {"level": level, **console},
        # Access lines duplicate RequestLoggingMiddleware; keep them for debugging only
        "uvicorn.access": {"level": logging.INFO if debug else logging.WARNING, **console},
    }
    for name, library_level in LIBRARY_LEVELS.items():
        loggers[name] = {"level": library_level, **console}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": RequestIdFilter}},
        "formatters": {
            "text": {"format": TEXT_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
            "json": {"()": JSONFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "json" if json_output else "text",
                "filters": ["request_id"],
                "stream": sys.stdout,
            },
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": loggers,
    }


def setup_logging() -> None:
    """Apply the configuration derived from settings (JSON in production)."""
    logging.config.dictConfig(
        build_logging_config(
            settings.LOG_LEVEL,
            json_output=settings.ENV == "production",
            debug=settings.DEBUG,
        )
    )
