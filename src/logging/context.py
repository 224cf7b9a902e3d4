# src/logging/context.py — v1
"""Contextual logging support: attach attempt_id, stage and site_id to log records.

Context variables are task-local, so the in-flight detection task and any
superseded one never see each other's values.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_attempt_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "attempt_id", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)
_site_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "site_id", default=None
)


@dataclass
class LogContext:
    """Snapshot of current logging context."""

    attempt_id: str | None = None
    stage: str | None = None
    site_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        attempt_id=_attempt_id.get(),
        stage=_stage.get(),
        site_id=_site_id.get(),
    )


def set_attempt_context(attempt_id: str) -> None:
    """Set attempt-level context (called once per detection attempt)."""
    _attempt_id.set(attempt_id)
    _stage.set(None)
    _site_id.set(None)


def set_stage(stage: str) -> None:
    """Record the engine stage currently executing."""
    _stage.set(stage)


def set_site_context(site_id: str | None) -> None:
    _site_id.set(site_id)


def clear_context() -> None:
    """Reset all context variables."""
    _attempt_id.set(None)
    _stage.set(None)
    _site_id.set(None)
