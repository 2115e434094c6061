# src/refinement/models.py — v1
"""Refinement plan models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from specweaver.graph.models import SchemaNode

UpdatePriority = Literal["critical", "high", "medium"]
IntentType = Literal["modify", "add", "remove", "restructure"]


class UpdateContext(BaseModel):
    upstream_change: str
    reason: str
    reference_values: dict[str, Any] | None = None


class SurgicalUpdate(BaseModel):
    """Targeted instruction to edit one artifact after an upstream change."""

    artifact_type: str
    target_paths: list[str] = Field(default_factory=list)
    instruction: str
    context: UpdateContext
    priority: UpdatePriority
    depends_on: list[str] = Field(default_factory=list)


class RefinementPlan(BaseModel):
    """Ordered surgical updates for one field change. Upstream artifacts come first."""

    original_intent: str
    target_node: SchemaNode | None
    new_value: Any = None
    updates: list[SurgicalUpdate] = Field(default_factory=list)
    unaffected_artifacts: list[str] = Field(default_factory=list)
    impact_score: float = Field(ge=0.0, le=1.0)

    @property
    def affected_artifacts(self) -> list[str]:
        return [u.artifact_type for u in self.updates]

    def update_for(self, artifact_type: str) -> SurgicalUpdate | None:
        return next((u for u in self.updates if u.artifact_type == artifact_type), None)


class PlanValidation(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)


class IntentAnalysis(BaseModel):
    """Coarse keyword classification of a refinement request."""

    type: IntentType = "modify"
    confidence: float = 0.4
    keywords: list[str] = Field(default_factory=list)
