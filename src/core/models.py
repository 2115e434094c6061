# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

Artifacts, step run state, pipeline events and the execution context
that flows from step to step. No module redefines these types.
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

StepStatus = Literal["pending", "running", "success", "failed"]

EventType = Literal[
    "step_start",
    "step_progress",
    "step_complete",
    "step_failed",
    "run_complete",
    "run_failed",
]

# Allowed state machine moves; anything else is a programming error.
_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"running"},
    "running": {"success", "failed"},
    "success": set(),
    "failed": set(),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# === ARTIFACTS ===


class Artifact(BaseModel):
    """One step's structured JSON output. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    role: str
    content: Any
    timestamp: datetime = Field(default_factory=utcnow)

    def with_content(self, content: Any) -> Artifact:
        """Return a new artifact carrying ``content``; self is left untouched."""
        return self.model_copy(
            update={"content": copy.deepcopy(content), "timestamp": utcnow()}
        )


# === RUN STATE ===


class StepRun(BaseModel):
    """State of one step within one pipeline run."""

    step_id: str
    role: str
    status: StepStatus = "pending"
    artifact: Artifact | None = None
    error: str | None = None
    attempts: int = 0
    duration_ms: int = 0
    timestamp: datetime = Field(default_factory=utcnow)

    def transition(self, status: StepStatus) -> None:
        """Move to ``status``; transitions are monotonic."""
        if status not in _TRANSITIONS[self.status]:
            raise ValueError(
                f"Illegal step transition for '{self.step_id}': {self.status} -> {status}"
            )
        self.status = status
        self.timestamp = utcnow()


class PipelineEvent(BaseModel):
    """Progress event emitted by the orchestrator, in emission order."""

    type: EventType
    step_id: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)
    payload: dict[str, Any] = Field(default_factory=dict)


# === CONTEXT ===


class SupplementalDocument(BaseModel):
    """User-supplied reference document passed to every step."""

    name: str = "Untitled"
    content: str = ""


class RunOptions(BaseModel):
    """Per-run generation options."""

    include_state_management: bool = False
    include_apis: bool = True
    include_database: bool = True
    documents: list[SupplementalDocument] = Field(default_factory=list)
    clarification_answers: dict[str, str] = Field(default_factory=dict)


class ExecutionContext(BaseModel):
    """Input handed to a step: user request plus artifacts of earlier steps.

    The orchestrator gives each step its own snapshot, so a step only
    ever sees artifacts of strictly earlier steps of the same run.
    """

    user_request: str
    artifacts: dict[str, Artifact] = Field(default_factory=dict)
    cache_handle: str | None = None
    # Artifacts already present in the shared cache behind cache_handle.
    cached_steps: list[str] = Field(default_factory=list)
    options: RunOptions = Field(default_factory=RunOptions)

    _progress: Callable[[dict[str, Any]], None] | None = PrivateAttr(default=None)

    def artifact_content(self, step_id: str) -> Any:
        """Content of an upstream artifact, or None when it was not produced."""
        artifact = self.artifacts.get(step_id)
        return artifact.content if artifact is not None else None

    def bind_progress(self, callback: Callable[[dict[str, Any]], None] | None) -> None:
        self._progress = callback

    def report_progress(self, **payload: Any) -> None:
        """Emit a ``step_progress`` event (no-op outside an orchestrated run)."""
        if self._progress is not None:
            self._progress(payload)


# === RESULTS ===


class PipelineResult(BaseModel):
    """Outcome of a full pipeline run."""

    success: bool
    artifacts: dict[str, Artifact] = Field(default_factory=dict)
    steps: list[StepRun] = Field(default_factory=list)
    events: list[PipelineEvent] = Field(default_factory=list)
    error: str | None = None
    duration_ms: int = 0

    @property
    def failed_steps(self) -> list[str]:
        return [s.step_id for s in self.steps if s.status == "failed"]
