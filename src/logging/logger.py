# src/logging/logger.py — v2
"""Logger factory with JSON and text formatters.

Records are written to stderr: stdout belongs to the CLI and to tool output
relayed by the host build system.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import IO, Any

from weaverkit.logging.context import LogContext, get_context

ROOT_LOGGER = "weaverkit"

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


def _markers(ctx: LogContext) -> list[str]:
    markers = []
    if ctx.project:
        markers.append(f"[{ctx.project}]")
    if ctx.operation:
        markers.append(f"({ctx.operation})")
    if ctx.tool_version:
        markers.append(f"<v{ctx.tool_version}>")
    return markers


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with the active build context attached."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": _timestamp(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            payload["context"] = context

        data = getattr(record, "data", None)
        if data:
            payload["data"] = data

        if record.exc_info and record.exc_info[1] is not None:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Single-line terminal format: time, level, logger, context markers, message."""

    def format(self, record: logging.LogRecord) -> str:
        head = [
            _timestamp(record).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
            *_markers(get_context()),
        ]
        line = f"{' '.join(head)} - {record.getMessage()}"
        if record.exc_info and record.exc_info[1] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


_FORMATTERS: dict[str, type[logging.Formatter]] = {
    "json": JsonFormatter,
    "text": TextFormatter,
}


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Configuration is applied by setup_logging()."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 5,
    stream: IO[str] | None = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Configure the weaverkit logger tree.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: "json" or "text"; anything else falls back to text.
        log_file: Optional path of a size-rotated log file.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
        stream: Console stream, stderr by default.
        quiet: Third-party loggers capped at WARNING.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Re-running replaces handlers instead of stacking them
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = _FORMATTERS.get(log_format, TextFormatter)()

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        from weaverkit.logging.handlers import create_rotating_handler

        rotating = create_rotating_handler(log_file, rotation=rotation, retention=retention)
        rotating.setFormatter(formatter)
        root.addHandler(rotating)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
