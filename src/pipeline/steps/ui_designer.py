# src/pipeline/steps/ui_designer.py — v1
"""UI Designer step: design tokens, screens and component library."""

from __future__ import annotations

from pydantic import BaseModel

from specweaver.artifacts.schemas import ProductSpec, UIDesign, try_parse_artifact_content
from specweaver.core.models import ExecutionContext
from specweaver.pipeline.step import BaseStep
from specweaver.pipeline.steps._prompting import request_section, upstream_section

_PROMPT = """You are a Lead UI/UX Designer. Design the user interface.

{request}

{journeys}

{upstream}

=== MISSION OBJECTIVES ===
1. Design tokens: colors, typography, spacing.
2. One screen per key user journey, with its purpose and components.
3. A reusable component library.
4. WCAG 2.1 AA accessibility requirements.

Respond with ONLY the structured JSON object matching the schema."""


class UIDesignerStep(BaseStep):

    temperature = 0.4

    @property
    def step_id(self) -> str:
        return "ui_design"

    @property
    def role(self) -> str:
        return "UI Designer"

    @property
    def content_model(self) -> type[BaseModel]:
        return UIDesign

    def build_prompt(self, context: ExecutionContext) -> str:
        spec = try_parse_artifact_content("pm_spec", context.artifact_content("pm_spec"))
        if isinstance(spec, ProductSpec) and spec.user_stories:
            journeys = "=== USER JOURNEYS ===\n" + "\n".join(
                f"- {s.title}" for s in spec.user_stories
            )
        else:
            journeys = "=== USER JOURNEYS ===\n(derive from the request)"

        return _PROMPT.format(
            request=request_section(context),
            journeys=journeys,
            upstream=upstream_section(context, ["pm_spec", "arch_design"]),
        )
