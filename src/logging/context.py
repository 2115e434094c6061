# src/logging/context.py — v1
"""Contextual logging support — attach run_id, step_id, artifact_type to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set per pipeline run / per step by the orchestrator, per artifact by the graph builder.
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_step_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step_id", default=None
)
_artifact_type: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "artifact_type", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    step_id: str | None = None
    artifact_type: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        step_id=_step_id.get(),
        artifact_type=_artifact_type.get(),
    )


def set_run_context(run_id: str) -> None:
    """Set run-level context (called once per pipeline run)."""
    _run_id.set(run_id)


def set_step_context(step_id: str | None) -> None:
    """Set step-level context; the produced artifact type is the step id."""
    _step_id.set(step_id)
    _artifact_type.set(step_id)


def set_artifact_context(artifact_type: str | None) -> None:
    _artifact_type.set(artifact_type)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _step_id.set(None)
    _artifact_type.set(None)
