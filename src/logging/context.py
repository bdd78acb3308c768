# src/logging/context.py — v2
"""Contextual logging support — attach project, operation and tool version to log records."""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set once per build task.
_project: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "project", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)
_tool_version: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "tool_version", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    project: str | None = None
    operation: str | None = None
    tool_version: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        project=_project.get(),
        operation=_operation.get(),
        tool_version=_tool_version.get(),
    )


def set_operation_context(project: str, operation: str | None = None) -> None:
    """Set task-level context (called once per cached operation)."""
    _project.set(project)
    _operation.set(operation)


def set_tool_context(tool_version: str) -> None:
    """Set the tool version being acquired or invoked."""
    _tool_version.set(tool_version)


def clear_context() -> None:
    """Reset all context variables."""
    _project.set(None)
    _operation.set(None)
    _tool_version.set(None)


@contextmanager
def operation_context(project: str, operation: str | None = None) -> Iterator[None]:
    """Scope project/operation context to a block; prior values are restored on exit."""
    project_token = _project.set(project)
    operation_token = _operation.set(operation)
    try:
        yield
    finally:
        _operation.reset(operation_token)
        _project.reset(project_token)


@contextmanager
def tool_context(tool_version: str) -> Iterator[None]:
    """Scope the tool version to a block; the prior value is restored on exit."""
    token = _tool_version.set(tool_version)
    try:
        yield
    finally:
        _tool_version.reset(token)
