"""Structured logging for orchestrated runs.

Every line is one JSON object. Concurrent invocations interleave on the same
stream, so the fields that tie a line to a run (`run_name`, `continuation`,
`state`) are lifted to the top level where they can be filtered on directly;
any other `extra=` fields stay nested under `"extra"`.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

# Attributes every LogRecord carries, plus those `Formatter.format` may add.
_STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

RUN_CONTEXT_FIELDS = ("run_name", "continuation", "state")

_QUIET_LOGGERS = {
    "urllib3": logging.WARNING,
    "redis": logging.INFO,
}


class JsonFormatter(logging.Formatter):
    """Render a record as JSON with run-correlation fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
        }

        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        for key in RUN_CONTEXT_FIELDS:
            if key in fields:
                payload[key] = fields.pop(key)
        if fields:
            payload["extra"] = fields

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Handler payloads and errors logged via `extra` are not always JSON-native.
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str, *, stream: TextIO | None = None) -> None:
    """Send JSON lines for the whole process to `stream` (stdout by default).

    Safe to call once per warm action invocation: existing root handlers are
    replaced, never stacked.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name, floor in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(root.level, floor))
