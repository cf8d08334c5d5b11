"""
Logging setup for the time clock service.

Plain text by default. LOG_JSON=true switches to one JSON object per line so
session transitions and store failures can be filtered by entry, user or
collection.
"""
import logging
import sys
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict

# Extra attributes copied into records when a call site passes them.
_EXTRA_FIELDS = ("user_id", "entry_id", "collection", "status_category", "transition")


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    return {field: getattr(record, field) for field in _EXTRA_FIELDS if hasattr(record, field)}


class ContextFormatter(logging.Formatter):
    """Plain text lines with session extras appended as key=value pairs."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if context:
            line += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"
        return line


class JSONFormatter(logging.Formatter):
    """Formats records as JSON with the service name and any session extras."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
            "service": "timeclock",
        }
        log_obj.update(_context(record))

        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


def configure_logging(level: int = logging.INFO) -> None:
    """Route module loggers to stdout, as JSON when LOG_JSON is set."""
    use_json = os.getenv("LOG_JSON", "").lower() in ("true", "1", "yes")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if use_json else ContextFormatter())

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )
