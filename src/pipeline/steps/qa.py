# src/pipeline/steps/qa.py — v1
"""QA step: test strategy, test cases and risk analysis."""

from __future__ import annotations

from pydantic import BaseModel

from specweaver.artifacts.schemas import ProductSpec, QAPlan, try_parse_artifact_content
from specweaver.config.pipeline import ARTIFACT_DEPENDENCY_MAP
from specweaver.core.models import ExecutionContext
from specweaver.pipeline.step import BaseStep
from specweaver.pipeline.steps._prompting import request_section, upstream_section

_PROMPT = """You are a QA Lead. Define how the system will be verified.

{request}

{criteria}

{upstream}

=== MISSION OBJECTIVES ===
1. A test strategy for unit, integration and end-to-end levels.
2. Test cases with ids (TC-1, TC-2, ...), priority and expected result;
   every acceptance criterion must be covered by at least one case.
3. A risk analysis with impact and mitigation.
4. Manual verification steps.

Respond with ONLY the structured JSON object matching the schema."""


class QAStep(BaseStep):
    """Last step; sees every upstream artifact."""

    @property
    def step_id(self) -> str:
        return "qa_verification"

    @property
    def role(self) -> str:
        return "QA"

    @property
    def content_model(self) -> type[BaseModel]:
        return QAPlan

    def build_prompt(self, context: ExecutionContext) -> str:
        spec = try_parse_artifact_content("pm_spec", context.artifact_content("pm_spec"))
        if isinstance(spec, ProductSpec) and spec.acceptance_criteria:
            criteria = "=== ACCEPTANCE CRITERIA TO COVER ===\n" + "\n".join(
                f"- {c.id or '?'}: {c.criteria}" for c in spec.acceptance_criteria
            )
        else:
            criteria = "=== ACCEPTANCE CRITERIA TO COVER ===\n(derive from the request)"

        return _PROMPT.format(
            request=request_section(context),
            criteria=criteria,
            upstream=upstream_section(context, ARTIFACT_DEPENDENCY_MAP[self.step_id]),
        )
