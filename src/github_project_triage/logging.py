"""JSON log output for triage runs.

Each record becomes one line of JSON so a sweep over hundreds of repositories can be
filtered by the ``repository``, ``project_id`` or ``count`` fields passed via ``extra=``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord carries; anything else on a record came from ``extra=``.
_STANDARD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"asctime", "message", "taskName"}

# Chatty transport loggers are held at INFO even when the run logs at DEBUG.
_QUIET_LOGGERS = ("github", "urllib3")


def _record_context(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """Formats a record as ``{timestamp, level, logger, message[, extra][, exception]}``."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = _record_context(record)
        if context:
            entry["extra"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(level: str) -> None:
    """Send all logging to stdout as JSON at ``level``; safe to call more than once."""

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)

    stdout = logging.StreamHandler(stream=sys.stdout)
    stdout.setFormatter(JsonFormatter())
    root.addHandler(stdout)
    root.setLevel(level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.INFO))
