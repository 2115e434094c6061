# src/pipeline/steps/product_manager.py — v1
"""Product Manager step: turns the user request into a product spec."""

from __future__ import annotations

from pydantic import BaseModel

from specweaver.artifacts.schemas import ProductSpec
from specweaver.core.models import ExecutionContext
from specweaver.pipeline.step import BaseStep
from specweaver.pipeline.steps._prompting import options_section, request_section

_PROMPT = """You are a Senior Product Manager. Produce a product specification for the request below.

{request}

{options}

=== MISSION OBJECTIVES ===
1. A short product title and an executive summary.
2. 5-8 user stories ("As a <user>, I want <goal> so that <benefit>") with priority,
   story points and testable acceptance criteria.
3. Global acceptance criteria with stable ids (AC-1, AC-2, ...).
4. Explicit assumptions and out-of-scope items.
5. Stakeholders with their interest and influence.

Respond with ONLY the structured JSON object matching the schema."""


class ProductManagerStep(BaseStep):
    """First step of the pipeline; has no upstream artifacts."""

    @property
    def step_id(self) -> str:
        return "pm_spec"

    @property
    def role(self) -> str:
        return "Product Manager"

    @property
    def content_model(self) -> type[BaseModel]:
        return ProductSpec

    def build_prompt(self, context: ExecutionContext) -> str:
        return _PROMPT.format(
            request=request_section(context),
            options=options_section(context),
        )
