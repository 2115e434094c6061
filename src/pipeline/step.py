# src/pipeline/step.py — v1
"""Step definitions and the standard step interface.

A step is a named unit of work ``(ExecutionContext) -> Artifact``. The
orchestrator only sees StepDefinition; BaseStep is the oracle-backed
implementation used by the fixed pipeline.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from specweaver.config.pipeline import ARTIFACT_DEPENDENCY_MAP
from specweaver.core.errors import StepExecutionError
from specweaver.core.models import Artifact, ExecutionContext
from specweaver.llm.models import GenerationOptions

if TYPE_CHECKING:
    from specweaver.llm.base_client import BaseOracle
    from specweaver.llm.retry import RetryPolicy

logger = logging.getLogger(__name__)

StepFn = Callable[[ExecutionContext], Awaitable[Artifact]]


@dataclass(frozen=True)
class StepDefinition:
    """Immutable pipeline entry.

    ``depends_on=None`` means the step depends on every earlier step.
    ``retry_policy`` / ``timeout_s`` override the pipeline defaults.
    """

    id: str
    role: str
    run: StepFn
    depends_on: frozenset[str] | None = None
    retry_policy: RetryPolicy | None = None
    timeout_s: float | None = None

    def resolved_dependencies(self, prior_ids: list[str]) -> frozenset[str]:
        """Explicit dependencies, or all ``prior_ids`` when implicit."""
        if self.depends_on is None:
            return frozenset(prior_ids)
        return self.depends_on


class BaseStep(ABC):
    """Standard interface for all oracle-backed generation steps.

    Args:
        oracle: Structured-generation oracle injected by the caller.
        temperature: Sampling temperature for this step. Defaults to the
            class attribute, then to ``default_temperature``.
        max_tokens: Output token budget for this step.
        default_temperature: Configured temperature for steps that do not
            pin their own.
    """

    temperature: float | None = None

    def __init__(
        self,
        oracle: BaseOracle,
        temperature: float | None = None,
        max_tokens: int = 16000,
        default_temperature: float = 0.2,
    ) -> None:
        self._oracle = oracle
        if temperature is None:
            temperature = self.temperature
        self._temperature = default_temperature if temperature is None else temperature
        self._max_tokens = max_tokens

    @property
    @abstractmethod
    def step_id(self) -> str:
        """Unique step identifier, also the artifact type it produces."""

    @property
    @abstractmethod
    def role(self) -> str:
        """Human-readable role (e.g. 'Architect')."""

    @property
    @abstractmethod
    def content_model(self) -> type[BaseModel]:
        """Pydantic model the artifact content must satisfy."""

    @property
    def dependencies(self) -> frozenset[str]:
        """Upstream step ids whose artifacts this step reads."""
        return frozenset(ARTIFACT_DEPENDENCY_MAP.get(self.step_id, []))

    @property
    def system_prompt(self) -> str | None:
        return None

    @abstractmethod
    def build_prompt(self, context: ExecutionContext) -> str:
        """Render the generation prompt from the context."""

    async def run(self, context: ExecutionContext) -> Artifact:
        """Generate, validate and wrap this step's artifact.

        Raises:
            StepExecutionError: If the oracle output does not match the schema.
        """
        prompt = self.build_prompt(context)
        context.report_progress(message=f"{self.role} generating", prompt_chars=len(prompt))

        raw = await self._oracle.generate_structured(
            prompt,
            self.content_model.model_json_schema(),
            GenerationOptions(
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                cache_handle=context.cache_handle,
                system=self.system_prompt,
            ),
        )

        try:
            content = self.content_model.model_validate(raw)
        except ValidationError as exc:
            raise StepExecutionError(
                self.step_id,
                f"Artifact validation failed for {self.step_id}: {_summarize(exc)}",
            ) from exc

        logger.debug("Step '%s' produced valid content", self.step_id)
        return Artifact(
            step_id=self.step_id,
            role=self.role,
            content=content.model_dump(mode="json"),
        )

    def definition(self) -> StepDefinition:
        """Wrap this step for the orchestrator."""
        return StepDefinition(
            id=self.step_id,
            role=self.role,
            run=self.run,
            depends_on=self.dependencies,
        )


def dump_json(value: Any, limit: int | None = None) -> str:
    """Pretty JSON for prompts, optionally truncated."""
    text = json.dumps(value, indent=2, ensure_ascii=False, default=str)
    if limit is not None and len(text) > limit:
        return text[:limit] + "\n... (truncated)"
    return text


def _summarize(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])} - {err['msg']}" for err in exc.errors()
    )
