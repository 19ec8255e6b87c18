"""Logging setup for the `middlechain` logger namespace.

Every module logs through a stdlib logger under `middlechain.*`. This
module attaches a single handler to the `middlechain` logger:

- "text": human-readable lines for development
- "json": JSON Lines (via orjson) for log aggregation

Quick Start:
    >>> from middlechain.runtime.observability import configure_logging
    >>> configure_logging(format="json", level="DEBUG")

Defaults come from `MIDDLECHAIN_LOG_FORMAT` / `MIDDLECHAIN_LOG_LEVEL`.
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from typing import TextIO

import orjson

from middlechain.foundation.config import get_settings

ROOT_LOGGER = "middlechain"
_HANDLER_ATTR = "_middlechain_handler"


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(entry, option=orjson.OPT_NON_STR_KEYS, default=str).decode()


TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    format: str | None = None,  # noqa: A002 - shadows builtin but matches settings field
    level: str | None = None,
    *,
    stream: TextIO | None = None,
) -> logging.Handler:
    """Attach (or replace) the middlechain log handler. Format: "text" or "json"."""
    settings = get_settings().logging
    format = format or settings.format
    level = (level or settings.level).upper()

    match format:
        case "text": formatter: logging.Formatter = logging.Formatter(TEXT_FORMAT)
        case "json": formatter = JsonFormatter()
        case _: raise ValueError(f"Unknown format: {format}. Use 'text' or 'json'")

    root = logging.getLogger(ROOT_LOGGER)
    for existing in [h for h in root.handlers if getattr(h, _HANDLER_ATTR, False)]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)
    setattr(handler, _HANDLER_ATTR, True)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.INFO))
    return handler
