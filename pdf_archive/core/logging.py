from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

CONTEXT_FIELDS = ("file_id", "file_name", "status_code", "path")


def _context(record: logging.LogRecord) -> dict[str, Any]:
    values = {field: getattr(record, field, None) for field in CONTEXT_FIELDS}
    return {field: value for field, value in values.items() if value is not None}


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ContextTextFormatter(logging.Formatter):
    """Plain-text formatter that appends ``extra=`` context as ``key=value`` pairs."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = _context(record)
        if context:
            line += " " + " ".join(f"{key}={value}" for key, value in context.items())
        return line


def configure_logging(debug: bool = False) -> None:
    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler()
    if debug:
        handler.setFormatter(ContextTextFormatter())
        root.setLevel(logging.DEBUG)
    else:
        handler.setFormatter(JsonLogFormatter())
        root.setLevel(logging.INFO)

    root.addHandler(handler)
    # SQL echo is noisy even in debug mode.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
