"""Structured JSON logging set up for the controller."""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import TextIO

_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}

_LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "FATAL",
}


class _JsonFormatter(logging.Formatter):
    """Renders each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, timezone.utc).astimezone()
        entry = {
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname.upper()),
            "date": created.isoformat(timespec="microseconds"),
            "caller": f"{record.filename}:{record.lineno}",
            "msg": record.getMessage(),
        }
        if record.levelno >= logging.ERROR:
            if record.exc_info:
                entry["stacktrace"] = self.formatException(record.exc_info)
            else:
                entry["stacktrace"] = "".join(traceback.format_stack())
        entry["context"] = {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS
        }
        return json.dumps(entry, default=str)


def config_logger(stream: TextIO | None = None) -> logging.Logger:
    """Return a logger writing JSON lines at INFO level and above to ``stream``."""
    logger = logging.Logger("kdeclare", logging.INFO)
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(_JsonFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger