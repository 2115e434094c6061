# src/pipeline/steps/security.py — v1
"""Security step: authentication, authorization and threat model."""

from __future__ import annotations

from pydantic import BaseModel

from specweaver.artifacts.schemas import ArchitectureDesign, SecurityArchitecture, try_parse_artifact_content
from specweaver.core.models import ExecutionContext
from specweaver.pipeline.step import BaseStep
from specweaver.pipeline.steps._prompting import request_section, upstream_section

_PROMPT = """You are a Security Architect. Define the security architecture for the system below.

{request}

{surface}

{upstream}

=== MISSION OBJECTIVES ===
1. Authentication method, identity providers and MFA policy.
2. Authorization model and roles.
3. A STRIDE-style threat model: threat, severity, mitigation, affected components.
4. Applicable compliance frameworks.

Respond with ONLY the structured JSON object matching the schema."""


class SecurityStep(BaseStep):

    temperature = 0.1

    @property
    def step_id(self) -> str:
        return "security_architecture"

    @property
    def role(self) -> str:
        return "Security"

    @property
    def content_model(self) -> type[BaseModel]:
        return SecurityArchitecture

    def build_prompt(self, context: ExecutionContext) -> str:
        arch = try_parse_artifact_content("arch_design", context.artifact_content("arch_design"))
        if isinstance(arch, ArchitectureDesign) and arch.apis:
            endpoints = "\n".join(
                f"- {api.method} {api.path} (auth: {'yes' if api.auth_required else 'no'})"
                for api in arch.apis
            )
            surface = f"=== ATTACK SURFACE ===\n{endpoints}"
        else:
            surface = "=== ATTACK SURFACE ===\n(no API inventory available)"

        context.report_progress(message="Threat modeling", endpoints=len(getattr(arch, "apis", [])))
        return _PROMPT.format(
            request=request_section(context),
            surface=surface,
            upstream=upstream_section(context, ["arch_design", "pm_spec"]),
        )
