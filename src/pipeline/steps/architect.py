# src/pipeline/steps/architect.py — v1
"""Architect step: system design, APIs, database schema and ADRs."""

from __future__ import annotations

from pydantic import BaseModel

from specweaver.artifacts.schemas import ArchitectureDesign, ProductSpec, try_parse_artifact_content
from specweaver.core.models import ExecutionContext
from specweaver.pipeline.step import BaseStep
from specweaver.pipeline.steps._prompting import options_section, request_section, upstream_section

_PROMPT = """You are a Principal Software Architect. Design a production-ready system architecture.

{request}

{project}

{upstream}

{options}

=== MISSION OBJECTIVES ===
1. A markdown design document covering components, interactions and data flow.
2. RESTful API endpoints with method, path, description and auth requirement.
3. A normalized database schema: tables, columns and types.
4. 4-6 architectural decisions with status, rationale and tradeoffs.
5. A technology stack grouped by layer.

Respond with ONLY the structured JSON object matching the schema."""


class ArchitectStep(BaseStep):
    """Reads the product spec; falls back to the raw request without it."""

    @property
    def step_id(self) -> str:
        return "arch_design"

    @property
    def role(self) -> str:
        return "Architect"

    @property
    def content_model(self) -> type[BaseModel]:
        return ArchitectureDesign

    def build_prompt(self, context: ExecutionContext) -> str:
        spec = try_parse_artifact_content("pm_spec", context.artifact_content("pm_spec"))
        if isinstance(spec, ProductSpec):
            stories = ", ".join(s.title for s in spec.user_stories[:3]) or "N/A"
            project = f"Project Goals: {spec.summary}\nKey User Stories: {stories}"
        else:
            project = f"Project Goals: {context.user_request}"

        if not context.options.include_database:
            project += "\nNo database design is required; leave database_schema empty."

        return _PROMPT.format(
            request=request_section(context),
            project=project,
            upstream=upstream_section(context, sorted(self.dependencies)),
            options=options_section(context),
        )
