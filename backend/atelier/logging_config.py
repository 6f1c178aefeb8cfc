"""
Atelier ERP - Structured Logging Configuration

JSON (or plain text) application logs plus a separate audit channel for
business events such as status changes and task edits.

Usage:
    from atelier.logging_config import get_logger, audit_log

    logger = get_logger(__name__)
    logger.info("Advancing order", extra={"order_id": 12})

    audit_log("UPDATE_BESPOKE_STATUS", user_id=3, resource_type="bespoke_order",
              resource_id=12, details={"from": "INQUIRY", "to": "QUOTED"})
"""
import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Tuple

from atelier.core.settings import settings

AUDIT_LOGGER_NAME = "audit"

# Attributes every LogRecord carries; anything else came in through `extra=`
_RECORD_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
})


def _extra_fields(record: logging.LogRecord) -> Iterator[Tuple[str, Any]]:
    for key, value in record.__dict__.items():
        if key not in _RECORD_ATTRS:
            yield key, value


def _json_safe(value: Any) -> Any:
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line, for log aggregation.

    {"timestamp": "...", "level": "INFO", "logger": "atelier.services...",
     "message": "...", "order_id": 12}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.levelno >= logging.ERROR:
            entry["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key, value in _extra_fields(record):
            entry[key] = _json_safe(value)

        return json.dumps(entry)


class TextFormatter(logging.Formatter):
    """Human-readable single line format for local development."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        line = f"{stamp} [{record.levelname}] {record.name}: {record.getMessage()}"

        extras = " ".join(f"{key}={value}" for key, value in _extra_fields(record))
        if extras:
            line = f"{line} {extras}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


class AuditFormatter(logging.Formatter):
    """
    Audit trail entries: who did what to which resource.

    {"timestamp": "...", "event": "DELETE_PRODUCTION_TASK", "user_id": 1,
     "resource_type": "production_task", "resource_id": 7, "details": {...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": getattr(record, "event", record.getMessage()),
            "user_id": getattr(record, "user_id", None),
            "resource_type": getattr(record, "resource_type", None),
            "resource_id": getattr(record, "resource_id", None),
            "details": _json_safe(getattr(record, "details", {})),
        }
        return json.dumps({k: v for k, v in entry.items() if v is not None})


def _rotating_handler(path: str, max_mb: int, backups: int) -> logging.Handler:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_mb * 1024 * 1024,
        backupCount=backups,
    )


def setup_logging() -> None:
    """
    Configure root and audit loggers from settings.

    Call once at application startup.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    formatter: logging.Formatter = (
        JSONFormatter() if settings.LOG_FORMAT.lower() == "json" else TextFormatter()
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    console.setLevel(level)
    root.addHandler(console)

    if settings.LOG_FILE:
        file_handler = _rotating_handler(settings.LOG_FILE, max_mb=10, backups=5)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        root.addHandler(file_handler)

    setup_audit_logging()

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def setup_audit_logging() -> None:
    """Configure the non-propagating audit logger."""
    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()
    audit_logger.propagate = False

    if settings.AUDIT_LOG_FILE:
        # Kept longer than application logs
        handler = _rotating_handler(settings.AUDIT_LOG_FILE, max_mb=50, backups=10)
        handler.setFormatter(AuditFormatter())
        handler.setLevel(logging.INFO)
        audit_logger.addHandler(handler)

    if settings.DEBUG:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(AuditFormatter())
        audit_logger.addHandler(console)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module (pass __name__)."""
    return logging.getLogger(name)


def audit_log(
    event: str,
    *,
    user_id: Optional[int] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[Any] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Record a business event on the audit channel.

    Args:
        event: Event name, e.g. "UPDATE_BESPOKE_STATUS"
        user_id: Actor who triggered the event
        resource_type: "bespoke_order", "production_task", ...
        resource_id: ID of the affected resource
        details: Event-specific context (order number, from/to status, ...)
    """
    logging.getLogger(AUDIT_LOGGER_NAME).info(
        event,
        extra={
            "event": event,
            "user_id": user_id,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "details": details or {},
        },
    )
