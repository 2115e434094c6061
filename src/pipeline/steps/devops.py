# src/pipeline/steps/devops.py — v1
"""DevOps step: infrastructure, CI/CD, environments and monitoring."""

from __future__ import annotations

from pydantic import BaseModel

from specweaver.artifacts.schemas import DevOpsInfrastructure, SecurityArchitecture, try_parse_artifact_content
from specweaver.core.models import ExecutionContext
from specweaver.pipeline.step import BaseStep
from specweaver.pipeline.steps._prompting import request_section, upstream_section

_PROMPT = """You are a Senior DevOps Engineer. Plan the infrastructure and delivery pipeline.

{request}

{constraints}

{upstream}

=== MISSION OBJECTIVES ===
1. Cloud provider, managed services and regions.
2. CI/CD pipeline stages and tooling.
3. Environments (at least development, staging, production).
4. Monitoring, alerting and logging.

Respond with ONLY the structured JSON object matching the schema."""


class DevOpsStep(BaseStep):

    @property
    def step_id(self) -> str:
        return "devops_infrastructure"

    @property
    def role(self) -> str:
        return "DevOps"

    @property
    def content_model(self) -> type[BaseModel]:
        return DevOpsInfrastructure

    def build_prompt(self, context: ExecutionContext) -> str:
        security = try_parse_artifact_content(
            "security_architecture", context.artifact_content("security_architecture")
        )
        lines: list[str] = []
        if isinstance(security, SecurityArchitecture):
            lines.append(f"- Authentication: {security.authentication.method}")
            if security.compliance:
                lines.append(f"- Compliance: {', '.join(security.compliance)}")
        constraints = "=== SECURITY CONSTRAINTS ===\n" + ("\n".join(lines) or "(none)")

        return _PROMPT.format(
            request=request_section(context),
            constraints=constraints,
            upstream=upstream_section(
                context, ["security_architecture", "arch_design", "pm_spec"]
            ),
        )
