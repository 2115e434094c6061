# src/pipeline/steps/engineer.py — v1
"""Engineer step: phased implementation plan and file structure."""

from __future__ import annotations

from pydantic import BaseModel

from specweaver.artifacts.schemas import EngineeringPlan
from specweaver.config.pipeline import ARTIFACT_DEPENDENCY_MAP
from specweaver.core.models import ExecutionContext
from specweaver.pipeline.step import BaseStep
from specweaver.pipeline.steps._prompting import options_section, request_section, upstream_section

_PROMPT = """You are a Staff Software Engineer. Turn the design artifacts into an implementation plan.

{request}

{upstream}

{options}
{state}
=== MISSION OBJECTIVES ===
1. A markdown implementation plan referencing the architecture by name.
2. Ordered phases, each with concrete tasks.
3. Third-party dependencies with versions.
4. Required environment variables.
5. A proposed file structure.

Respond with ONLY the structured JSON object matching the schema."""


class EngineerStep(BaseStep):

    temperature = 0.1

    @property
    def step_id(self) -> str:
        return "engineer_impl"

    @property
    def role(self) -> str:
        return "Engineer"

    @property
    def content_model(self) -> type[BaseModel]:
        return EngineeringPlan

    def build_prompt(self, context: ExecutionContext) -> str:
        state = ""
        if context.options.include_state_management:
            state = "\nInclude a state management approach for the client application.\n"
        available = [s for s in ARTIFACT_DEPENDENCY_MAP[self.step_id] if s in context.artifacts]
        context.report_progress(message="Planning implementation", upstream=available)
        return _PROMPT.format(
            request=request_section(context),
            upstream=upstream_section(context, ARTIFACT_DEPENDENCY_MAP[self.step_id]),
            options=options_section(context),
            state=state,
        )
