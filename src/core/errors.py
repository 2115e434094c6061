# src/core/errors.py — v1
"""Error taxonomy shared by the pipeline, the oracle boundary and the planner."""

from __future__ import annotations

# Message carried by the cancellation sentinel (client disconnected).
CANCELLED = "STREAM_CLOSED"


class SpecweaverError(Exception):
    """Base class for all package errors."""


class OracleError(SpecweaverError):
    """The structured-generation oracle failed."""


class RateLimitError(OracleError):
    """Provider-side rate limiting; retried with longer cool-downs."""

    def __init__(self, message: str = "rate limit exceeded") -> None:
        super().__init__(message)


class CancellationError(SpecweaverError):
    """Caller cancelled the run. Never retried."""

    def __init__(self, message: str = CANCELLED) -> None:
        super().__init__(message)


class StepExecutionError(SpecweaverError):
    """A step's oracle call failed or returned schema-invalid data."""

    def __init__(self, step_id: str, message: str, attempts: int = 0) -> None:
        self.step_id = step_id
        self.attempts = attempts
        super().__init__(message)


class GraphBuildWarning(UserWarning):
    """Non-fatal graph build problem, reported in the build warnings."""


class TargetNotFoundError(SpecweaverError):
    """The refinement target has no node in the knowledge graph."""

    def __init__(self, artifact_type: str, path: str) -> None:
        self.artifact_type = artifact_type
        self.path = path
        super().__init__(f"Target node not found: {artifact_type}.{path}")


class PlanValidationError(SpecweaverError):
    """A refinement plan is not executable."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))


class CircularDependencyError(PlanValidationError):
    """Updates of a refinement plan depend on each other in a cycle."""


def is_cancellation(error: BaseException) -> bool:
    """True for the cancellation sentinel, by type or by message."""
    return isinstance(error, CancellationError) or str(error) == CANCELLED
