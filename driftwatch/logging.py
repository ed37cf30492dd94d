"""
Structured Logging — JSON Output for Production

Configures Python logging to emit structured JSON logs.
Each log entry includes timestamp, level, module, and
any assessment context passed through ``extra``.

Usage:
    from driftwatch.logging import get_logger
    logger = get_logger("assessor")
    logger.info("Assessment complete", extra={"category": "courts", "status": "Drift"})
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone


LOG_LEVEL = os.getenv("DRIFTWATCH_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("DRIFTWATCH_LOG_FORMAT", "json")  # "json" or "text"

CONTEXT_FIELDS = (
    "category", "status", "provider", "model", "stage", "outcome",
    "week_of", "keyword", "ratio", "item_count", "duration_ms",
    "error", "error_type", "cache_key",
)


class JSONFormatter(logging.Formatter):
    """Formats log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in CONTEXT_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable format for development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging(fmt: str | None = None) -> logging.Logger:
    """Configure the driftwatch logger. Call once at process startup."""
    root = logging.getLogger("driftwatch")
    root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if (fmt or LOG_FORMAT) == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())

    root.addHandler(handler)

    # SDK transport chatter
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    """Get a named logger under the driftwatch namespace."""
    return logging.getLogger(f"driftwatch.{name}")
