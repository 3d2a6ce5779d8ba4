"""
Logging bootstrap for the buildmux CLI.

Engine modules log through `logging.getLogger(__name__)` and never configure
handlers. The CLI calls `init_logging` once at startup: a stderr handler for
humans and, optionally, a JSONL sink with one structured object per record.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

DEFAULT_LEVEL = "WARNING"

# LogRecord attributes that are not user-supplied extras.
_RESERVED = frozenset(
    {
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "name",
        "message",
        "asctime",
        "taskName",
    }
)


class JsonlHandler(logging.Handler):
    """Append one JSON object per log record to a file."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            payload = {
                "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
                "lvl": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }
            if record.exc_info:
                payload["exc"] = self.format(record).splitlines()[-1]
            for key, value in record.__dict__.items():
                if key not in _RESERVED:
                    payload.setdefault(key, value)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
        except Exception:
            self.handleError(record)


def init_logging(level: str | None = None, jsonl_path: Path | None = None) -> None:
    """
    Configure the root logger.

    Parameters
    ----------
    level:
        Level name. Defaults to $BUILDMUX_LOG_LEVEL, then WARNING.
    jsonl_path:
        Optional JSONL log file.
    """
    name = (level or os.environ.get("BUILDMUX_LOG_LEVEL") or DEFAULT_LEVEL).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, name, logging.WARNING))

    # Re-initialization replaces our handlers instead of stacking them.
    for handler in list(root.handlers):
        if getattr(handler, "_buildmux", False):
            root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    console._buildmux = True  # type: ignore[attr-defined]
    root.addHandler(console)

    if jsonl_path is not None:
        sink = JsonlHandler(jsonl_path)
        sink._buildmux = True  # type: ignore[attr-defined]
        root.addHandler(sink)
