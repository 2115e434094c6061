# src/pipeline/orchestrator.py — v1
"""Pipeline orchestrator — runs the fixed generation steps in order.

Each step runs under the RetryExecutor with a per-step policy and a
wall-clock timeout, sees a snapshot holding only the artifacts of
strictly earlier steps, and reports progress as ordered events.

Failure policy: stop at the first failed step. With
``continue_on_failure`` enabled, later steps still run when their
explicit dependencies exclude every failed (or skipped) step; steps with
implicit dependencies are skipped. The run succeeds only when every
enabled step succeeded.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from specweaver.config.pipeline import STEP_ORDER
from specweaver.config.settings import Settings, load_settings
from specweaver.core.errors import CANCELLED, StepExecutionError, is_cancellation
from specweaver.core.models import (
    Artifact,
    EventType,
    ExecutionContext,
    PipelineEvent,
    PipelineResult,
    RunOptions,
    StepRun,
)
from specweaver.llm.retry import RetryExecutor
from specweaver.logging.context import clear_context, set_run_context, set_step_context
from specweaver.pipeline.steps._prompting import CACHE_SYSTEM_INSTRUCTION, cache_seed

if TYPE_CHECKING:
    from specweaver.llm.base_client import BaseOracle
    from specweaver.pipeline.step import StepDefinition

logger = logging.getLogger(__name__)

EventCallback = Callable[[PipelineEvent], Union[None, Awaitable[None]]]


class _EventSink:
    """Records events in emission order and forwards them to the caller."""

    def __init__(self, on_event: EventCallback | None) -> None:
        self.events: list[PipelineEvent] = []
        self._on_event = on_event
        self._pending: list[Awaitable[None]] = []

    def emit(self, type_: EventType, step_id: str | None = None, **payload: Any) -> None:
        event = PipelineEvent(type=type_, step_id=step_id, payload=payload)
        self.events.append(event)
        if self._on_event is None:
            return
        outcome = self._on_event(event)
        if inspect.isawaitable(outcome):
            self._pending.append(outcome)

    async def flush(self) -> None:
        """Await async callbacks in emission order."""
        while self._pending:
            await self._pending.pop(0)


class PipelineOrchestrator:
    """Run the generation pipeline for one user request at a time.

    Args:
        oracle: Structured-generation oracle (owned by the caller).
        settings: Application settings.
        steps: Step definitions; defaults to the seven registered steps.
        retry_executor: Executor used per step (inject a fake sleep in tests).
        on_event: Optional sync or async event callback.
    """

    def __init__(
        self,
        oracle: BaseOracle,
        settings: Settings | None = None,
        steps: list[StepDefinition] | None = None,
        retry_executor: RetryExecutor | None = None,
        on_event: EventCallback | None = None,
    ) -> None:
        self._oracle = oracle
        self._settings = settings or load_settings()
        if steps is None:
            from specweaver.pipeline.registry import build_default_steps

            steps = build_default_steps(oracle, self._settings)
        self._steps = list(steps)
        self._retry = retry_executor or RetryExecutor()
        self._on_event = on_event

    @property
    def steps(self) -> list[StepDefinition]:
        """Steps that will run, after applying the enabled-step list."""
        enabled = set(self._settings.enabled_steps_list)
        # Custom step ids outside the canonical order are always enabled.
        return [s for s in self._steps if s.id not in STEP_ORDER or s.id in enabled]

    async def run(
        self,
        user_request: str,
        options: RunOptions | None = None,
        is_cancelled: Callable[[], bool] | None = None,
    ) -> PipelineResult:
        """Execute every enabled step in order.

        Args:
            user_request: Free-text request driving every step.
            options: Per-run generation options.
            is_cancelled: Polled before each step; truthy ends the run.

        Returns:
            PipelineResult; never raises for step failures.
        """
        start = time.monotonic()
        run_id = uuid.uuid4().hex
        set_run_context(run_id)

        sink = _EventSink(self._on_event)
        options = options or RunOptions()
        artifacts: dict[str, Artifact] = {}
        runs: list[StepRun] = []
        unavailable: set[str] = set()
        processed: list[str] = []
        cache_handle: str | None = None
        cached_steps: list[str] = []
        first_error: str | None = None

        steps = self.steps
        logger.info(
            "Pipeline run started with %d steps", len(steps),
            extra={"data": {"run_id": run_id, "steps": [s.id for s in steps]}},
        )

        try:
            for step in steps:
                if is_cancelled is not None and is_cancelled():
                    logger.info("Run cancelled before step '%s'", step.id)
                    first_error = first_error or CANCELLED
                    return await self._finish(sink, False, artifacts, runs, first_error, start)

                if unavailable:
                    if not self._settings.continue_on_failure:
                        break
                    deps = step.resolved_dependencies(processed)
                    if step.depends_on is None or deps & unavailable:
                        logger.info(
                            "Skipping step '%s': depends on unavailable %s",
                            step.id, sorted(deps & unavailable) or "earlier steps",
                        )
                        unavailable.add(step.id)
                        processed.append(step.id)
                        continue

                set_step_context(step.id)
                step_run = StepRun(step_id=step.id, role=step.role)
                runs.append(step_run)

                context = ExecutionContext(
                    user_request=user_request,
                    artifacts={k: v.model_copy(deep=True) for k, v in artifacts.items()},
                    cache_handle=cache_handle,
                    cached_steps=list(cached_steps),
                    options=options,
                )
                context.bind_progress(
                    lambda payload, sid=step.id: sink.emit("step_progress", sid, **payload)
                )

                step_run.transition("running")
                sink.emit("step_start", step.id, role=step.role)
                await sink.flush()

                result = await self._retry.execute_with_retry(
                    lambda s=step, c=context: self._attempt(s, c),
                    step.retry_policy or self._settings.retry_policy_for(step.id),
                    context={"step_id": step.id},
                )
                step_run.attempts = result.attempts
                step_run.duration_ms = result.total_duration_ms
                processed.append(step.id)

                if result.success:
                    artifact = result.result
                    step_run.artifact = artifact
                    step_run.transition("success")
                    artifacts[step.id] = artifact
                    sink.emit(
                        "step_complete", step.id,
                        attempts=result.attempts, duration_ms=result.total_duration_ms,
                    )
                    logger.info(
                        "Step '%s' complete in %dms (%d attempt(s))",
                        step.id, result.total_duration_ms, result.attempts,
                    )
                    if self._should_seed_cache(step.id):
                        new_handle = await self._refresh_cache(
                            user_request, artifacts, options
                        )
                        if new_handle is not None:
                            cache_handle = new_handle
                            cached_steps = list(artifacts)
                    await sink.flush()
                    continue

                error = result.error
                message = str(error) if error is not None else "unknown error"
                step_run.error = message
                step_run.transition("failed")
                first_error = first_error or message
                unavailable.add(step.id)
                sink.emit("step_failed", step.id, error=message, attempts=result.attempts)
                await sink.flush()
                logger.error(
                    "Step '%s' failed after %d attempt(s): %s",
                    step.id, result.attempts, message,
                )

                if error is not None and is_cancellation(error):
                    return await self._finish(sink, False, artifacts, runs, first_error, start)

            success = len(runs) == len(steps) and all(r.status == "success" for r in runs)
            return await self._finish(sink, success, artifacts, runs, first_error, start)
        finally:
            clear_context()

    async def _attempt(self, step: StepDefinition, context: ExecutionContext) -> Artifact:
        timeout = step.timeout_s or self._settings.timeout_for(step.id)
        try:
            artifact = await asyncio.wait_for(step.run(context), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise StepExecutionError(
                step.id, f"Step '{step.id}' timed out after {timeout:g}s"
            ) from exc
        if not isinstance(artifact, Artifact):
            raise StepExecutionError(
                step.id, f"Step '{step.id}' returned {type(artifact).__name__}, not an Artifact"
            )
        return artifact

    def _should_seed_cache(self, step_id: str) -> bool:
        return self._settings.cache_enabled and step_id in self._settings.cache_seed_steps_list

    async def _refresh_cache(
        self,
        user_request: str,
        artifacts: dict[str, Artifact],
        options: RunOptions,
    ) -> str | None:
        """Create a cache handle over the current context; None on failure."""
        seed = cache_seed(
            ExecutionContext(user_request=user_request, artifacts=artifacts, options=options)
        )
        try:
            handle = await self._oracle.create_cache(
                seed,
                system_instruction=CACHE_SYSTEM_INSTRUCTION,
                ttl_seconds=self._settings.cache_ttl_s,
            )
        except Exception as exc:
            logger.warning(
                "Context cache creation failed, continuing without it: %s", exc,
                extra={"data": {"error": str(exc), "artifacts": list(artifacts)}},
            )
            return None
        logger.info("Context cache ready: %s", handle)
        return handle

    async def _finish(
        self,
        sink: _EventSink,
        success: bool,
        artifacts: dict[str, Artifact],
        runs: list[StepRun],
        error: str | None,
        start: float,
    ) -> PipelineResult:
        duration_ms = int((time.monotonic() - start) * 1000)
        if success:
            sink.emit("run_complete", artifacts=list(artifacts), duration_ms=duration_ms)
        else:
            sink.emit("run_failed", error=error, duration_ms=duration_ms)
        await sink.flush()

        logger.info(
            "Pipeline %s: %d/%d steps succeeded in %dms",
            "complete" if success else "failed",
            sum(1 for r in runs if r.status == "success"), len(runs), duration_ms,
        )
        return PipelineResult(
            success=success,
            artifacts=dict(artifacts),
            steps=runs,
            events=list(sink.events),
            error=error,
            duration_ms=duration_ms,
        )
