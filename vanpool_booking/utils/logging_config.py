"""
Logging configuration for the Vanpool Booking platform.

Everything goes to stdout; a rotating file (and, in production, a separate
error file) can be added on top. Records carry the id of the request that
produced them so a join can be followed from the access line to its audit
record.
"""

import json
import logging
import logging.config
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import get_settings
from ..middleware.logging import request_id_var

APP_LOGGER = "vanpool_booking"

# Third-party loggers routed through our handlers, with their floor level
LIBRARY_LOGGERS = {
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
    "sqlalchemy.engine": "WARNING",
    "sqlalchemy.pool": "WARNING",
}

MAX_LOG_BYTES = 10 * 1024 * 1024

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(request_id)s] %(message)s"


def _rotating_handler(filename: str, level: str, formatter: str, backups: int) -> Dict[str, Any]:
    Path(filename).parent.mkdir(parents=True, exist_ok=True)
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filename": filename,
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": backups,
        "filters": ["request_id"],
    }


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_json_logging: bool = False,
) -> None:
    """
    Configure the app, uvicorn and SQLAlchemy loggers.

    Args:
        log_level: Level for the application loggers and the root logger
        log_file: Optional path of a rotating log file
        enable_json_logging: Emit one JSON document per record instead of text
    """
    formatter = "json" if enable_json_logging else "text"

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": formatter,
            "stream": sys.stdout,
            "filters": ["request_id"],
        }
    }
    if log_file:
        handlers["file"] = _rotating_handler(log_file, log_level, formatter, backups=5)

    shared: List[str] = list(handlers)
    app_handlers = list(shared)

    if get_settings().environment == "production":
        error_file = log_file.replace(".log", "_errors.log") if log_file else "logs/errors.log"
        handlers["error_file"] = _rotating_handler(error_file, "ERROR", formatter, backups=10)
        app_handlers.append("error_file")

    loggers: Dict[str, Dict[str, Any]] = {
        APP_LOGGER: {"level": log_level, "handlers": app_handlers, "propagate": False},
    }
    for name, level in LIBRARY_LOGGERS.items():
        loggers[name] = {"level": level, "handlers": list(shared), "propagate": False}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {"format": TEXT_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
            "json": {"()": f"{__name__}.JSONFormatter"},
        },
        "filters": {
            "request_id": {"()": f"{__name__}.RequestIDFilter"},
        },
        "handlers": handlers,
        "loggers": loggers,
        "root": {"level": log_level, "handlers": list(shared)},
    })


class RequestIDFilter(logging.Filter):
    """Stamp records with the id of the request being served."""

    def filter(self, record):
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get()
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``extra`` fields are nested under ``context``."""

    # Attributes every LogRecord has; anything else came in through ``extra``
    RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
        "message", "asctime", "request_id", "taskName",
    }

    def format(self, record):
        document: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", None),
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        context = {key: value for key, value in vars(record).items() if key not in self.RESERVED}
        if context:
            document["context"] = context

        if record.exc_info:
            document["exception"] = self.formatException(record.exc_info)

        return json.dumps(document, default=str, ensure_ascii=False)


def mask_name(full_name: str) -> str:
    """Shorten a rider's name for log lines, e.g. 'Alice Smith' -> 'A*** S***'."""
    return " ".join(f"{part[0]}***" for part in re.split(r"\s+", full_name.strip()) if part)


def log_business_event(event_type: str, details: Dict[str, Any]) -> None:
    """Log a domain fact alongside its audit record, with rider names masked."""
    context: Dict[str, Any] = {}
    for key, value in details.items():
        if key == "full_name" and isinstance(value, str):
            value = mask_name(value)
        # LogRecord refuses extras that shadow its own attributes
        context[f"detail_{key}" if key in JSONFormatter.RESERVED else key] = value

    logging.getLogger(f"{APP_LOGGER}.business").info(
        f"Business event: {event_type}",
        extra={"event_type": event_type, "business_event": True, **context},
    )
