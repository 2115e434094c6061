# src/artifacts/schemas.py — v1
"""Typed content models, one per artifact type.

Graph building walks artifact content as plain JSON; these models are
used where content is consumed structurally (step prompts) and to
validate what the oracle returns. Extra fields are kept.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Content(BaseModel):
    model_config = ConfigDict(extra="allow")


# === PRODUCT MANAGER ===


class UserStory(_Content):
    id: str | None = None
    title: str
    story: str = ""
    priority: Literal["critical", "high", "medium", "low"] = "medium"
    story_points: int | None = None
    acceptance_criteria: list[str] = Field(default_factory=list)


class AcceptanceCriterion(_Content):
    id: str | None = None
    criteria: str


class Stakeholder(_Content):
    role: str
    interest: str = ""
    influence: Literal["high", "medium", "low"] = "medium"


class ProductSpec(_Content):
    title: str = ""
    summary: str
    user_stories: list[UserStory] = Field(default_factory=list)
    acceptance_criteria: list[AcceptanceCriterion] = Field(default_factory=list)
    assumptions: list[str] = Field(default_factory=list)
    out_of_scope: list[str] = Field(default_factory=list)
    stakeholders: list[Stakeholder] = Field(default_factory=list)


# === ARCHITECT ===


class ApiEndpoint(_Content):
    path: str
    method: Literal["GET", "POST", "PUT", "DELETE", "PATCH"] = "GET"
    description: str = ""
    auth_required: bool = True


class Decision(_Content):
    decision: str
    status: Literal["accepted", "proposed", "superseded"] = "accepted"
    reason: str = ""
    tradeoffs: str = ""


class Column(_Content):
    name: str
    type: str


class Table(_Content):
    name: str
    description: str = ""
    columns: list[Column] = Field(default_factory=list)


class DatabaseSchema(_Content):
    tables: list[Table] = Field(default_factory=list)


class ArchitectureDesign(_Content):
    summary: str = ""
    design_doc: str
    apis: list[ApiEndpoint] = Field(default_factory=list)
    decisions: list[Decision] = Field(default_factory=list)
    database_schema: DatabaseSchema = Field(default_factory=DatabaseSchema)
    technology_stack: dict[str, list[str]] = Field(default_factory=dict)


# === SECURITY ===


class Authentication(_Content):
    method: str
    providers: list[str] = Field(default_factory=list)
    mfa_enabled: bool = False


class Authorization(_Content):
    model: Literal["RBAC", "ABAC", "PBAC", "ACL", "none"] = "RBAC"
    roles: list[str] = Field(default_factory=list)


class Threat(_Content):
    threat: str
    severity: Literal["critical", "high", "medium", "low"] = "medium"
    mitigation: str = ""
    affected_components: list[str] = Field(default_factory=list)


class SecurityArchitecture(_Content):
    summary: str = ""
    authentication: Authentication
    authorization: Authorization = Field(default_factory=Authorization)
    threat_model: list[Threat] = Field(default_factory=list)
    compliance: list[str] = Field(default_factory=list)


# === DEVOPS ===


class InfraService(_Content):
    name: str
    type: str = "compute"
    description: str = ""


class Infrastructure(_Content):
    cloud_provider: str = "AWS"
    services: list[InfraService] = Field(default_factory=list)
    regions: list[str] = Field(default_factory=list)


class PipelineStage(_Content):
    name: str
    steps: list[str] = Field(default_factory=list)


class CiCd(_Content):
    pipeline_stages: list[PipelineStage] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)


class DevOpsInfrastructure(_Content):
    summary: str = ""
    infrastructure: Infrastructure = Field(default_factory=Infrastructure)
    cicd: CiCd = Field(default_factory=CiCd)
    environments: list[str] = Field(default_factory=list)
    monitoring: list[str] = Field(default_factory=list)


# === UI DESIGNER ===


class Screen(_Content):
    name: str
    purpose: str = ""
    components: list[str] = Field(default_factory=list)


class UIDesign(_Content):
    summary: str = ""
    design_tokens: dict[str, Any] = Field(default_factory=dict)
    screens: list[Screen] = Field(default_factory=list)
    component_library: list[str] = Field(default_factory=list)
    accessibility: list[str] = Field(default_factory=list)


# === ENGINEER ===


class ImplementationPhase(_Content):
    name: str
    description: str = ""
    tasks: list[str] = Field(default_factory=list)


class EnvironmentVariable(_Content):
    name: str
    description: str = ""


class EngineeringPlan(_Content):
    summary: str = ""
    implementation_plan: str
    phases: list[ImplementationPhase] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    environment_variables: list[EnvironmentVariable] = Field(default_factory=list)
    file_structure: dict[str, Any] = Field(default_factory=dict)


# === QA ===


class TestCase(_Content):
    __test__ = False  # not a pytest class

    id: str
    name: str
    priority: Literal["high", "medium", "low"] = "medium"
    expected_result: str = ""


class TestStrategy(_Content):
    __test__ = False

    unit: str = ""
    integration: str = ""
    e2e: str = ""


class Risk(_Content):
    risk: str
    impact: Literal["high", "medium", "low"] = "medium"
    mitigation: str = ""


class QAPlan(_Content):
    summary: str = ""
    test_strategy: TestStrategy = Field(default_factory=TestStrategy)
    test_cases: list[TestCase] = Field(default_factory=list)
    risk_analysis: list[Risk] = Field(default_factory=list)
    manual_verification_steps: list[str] = Field(default_factory=list)


ArtifactContent = Union[
    ProductSpec,
    ArchitectureDesign,
    SecurityArchitecture,
    DevOpsInfrastructure,
    UIDesign,
    EngineeringPlan,
    QAPlan,
]

ARTIFACT_SCHEMAS: dict[str, type[BaseModel]] = {
    "pm_spec": ProductSpec,
    "arch_design": ArchitectureDesign,
    "security_architecture": SecurityArchitecture,
    "devops_infrastructure": DevOpsInfrastructure,
    "ui_design": UIDesign,
    "engineer_impl": EngineeringPlan,
    "qa_verification": QAPlan,
}


def parse_artifact_content(artifact_type: str, content: Any) -> ArtifactContent:
    """Validate raw JSON content against the model for ``artifact_type``.

    Raises:
        KeyError: Unknown artifact type.
        pydantic.ValidationError: Content does not match the schema.
    """
    model = ARTIFACT_SCHEMAS[artifact_type]
    return model.model_validate(content)  # type: ignore[return-value]


def try_parse_artifact_content(artifact_type: str, content: Any) -> ArtifactContent | None:
    """Like parse_artifact_content, but None for missing or invalid content."""
    if content is None or artifact_type not in ARTIFACT_SCHEMAS:
        return None
    try:
        return parse_artifact_content(artifact_type, content)
    except ValueError:
        return None
