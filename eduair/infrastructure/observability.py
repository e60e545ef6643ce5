"""Structured Logging — one JSON object per line, carrying attendance context.

Invariants:
    - Each line has timestamp, level, logger, message
    - Known context extras (class_id, session_id, topic_id, sequence_marker,
      error_code, attempt, path) are copied when set; any other extra is dropped,
      so a raw identity token passed by mistake never reaches the output
    - setup_logging is idempotent: calling it again replaces its own handler
    - httpx and sqlalchemy.engine are capped at WARNING (request lines would
      otherwise log every publish twice)
"""

import json
import logging
import sys
from datetime import datetime, timezone

CONTEXT_KEYS = (
    "class_id", "session_id", "topic_id", "sequence_marker",
    "error_code", "attempt", "path",
)
_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")
_HANDLER_NAME = "eduair"


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, getattr(record, key)) for key in CONTEXT_KEYS
            if getattr(record, key, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class _TextFormatter(logging.Formatter):
    """Human-readable lines for local development, context appended as k=v."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(
            f"{key}={getattr(record, key)}" for key in CONTEXT_KEYS
            if getattr(record, key, None) is not None
        )
        return f"{line} [{context}]" if context else line


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the EduAir handler on the root logger (called from the lifespan)."""
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if fmt == "json" else _TextFormatter())
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
