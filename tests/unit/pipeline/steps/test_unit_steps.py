# tests/unit/pipeline/steps/test_unit_steps.py — v1
"""Tests for the generation steps' prompt construction."""

from __future__ import annotations

import pytest

from specweaver.core.models import ExecutionContext, RunOptions, SupplementalDocument
from specweaver.pipeline.steps.architect import ArchitectStep
from specweaver.pipeline.steps.devops import DevOpsStep
from specweaver.pipeline.steps.engineer import EngineerStep
from specweaver.pipeline.steps.product_manager import ProductManagerStep
from specweaver.pipeline.steps.qa import QAStep
from specweaver.pipeline.steps.security import SecurityStep
from specweaver.pipeline.steps.ui_designer import UIDesignerStep

ALL_STEPS = [
    ProductManagerStep,
    ArchitectStep,
    SecurityStep,
    DevOpsStep,
    UIDesignerStep,
    EngineerStep,
    QAStep,
]


@pytest.fixture
def full_context(sample_artifacts) -> ExecutionContext:
    return ExecutionContext(user_request="A todo app", artifacts=sample_artifacts)


class TestAllSteps:
    @pytest.mark.parametrize("step_cls", ALL_STEPS)
    def test_prompt_contains_request(self, step_cls, mock_oracle):
        prompt = step_cls(mock_oracle).build_prompt(ExecutionContext(user_request="A todo app"))
        assert '"A todo app"' in prompt
        assert "Respond with ONLY the structured JSON object" in prompt

    @pytest.mark.parametrize("step_cls", ALL_STEPS)
    def test_dependencies_are_upstream(self, step_cls, mock_oracle):
        step = step_cls(mock_oracle)
        assert step.step_id not in step.dependencies

    def test_temperatures(self, mock_oracle):
        assert SecurityStep(mock_oracle)._temperature == 0.1
        assert EngineerStep(mock_oracle)._temperature == 0.1
        assert UIDesignerStep(mock_oracle)._temperature == 0.4
        assert ArchitectStep(mock_oracle)._temperature == 0.2


class TestRequestSection:
    def test_clarifications_and_documents(self, mock_oracle):
        context = ExecutionContext(
            user_request="x",
            options=RunOptions(
                clarification_answers={"Platform": "web"},
                documents=[SupplementalDocument(name="brief.md", content="Brief text")],
            ),
        )
        prompt = ProductManagerStep(mock_oracle).build_prompt(context)
        assert "Platform: web" in prompt
        assert "Document 1: brief.md" in prompt

    def test_documents_omitted_with_cache(self, mock_oracle):
        context = ExecutionContext(
            user_request="x",
            cache_handle="cache-1",
            options=RunOptions(documents=[SupplementalDocument(name="brief.md")]),
        )
        assert "brief.md" not in ProductManagerStep(mock_oracle).build_prompt(context)


class TestUpstream:
    def test_architect_uses_product_spec(self, mock_oracle, sample_artifacts):
        context = ExecutionContext(
            user_request="x", artifacts={"pm_spec": sample_artifacts["pm_spec"]}
        )
        prompt = ArchitectStep(mock_oracle).build_prompt(context)
        assert "Project Goals: A collaborative todo list with reminders" in prompt
        assert "Key User Stories: Create tasks" in prompt

    def test_architect_without_upstream(self, mock_oracle):
        prompt = ArchitectStep(mock_oracle).build_prompt(ExecutionContext(user_request="todo"))
        assert "Project Goals: todo" in prompt
        assert "(not available for this run)" in prompt

    def test_cached_upstream_referenced(self, mock_oracle, sample_artifacts):
        context = ExecutionContext(
            user_request="x",
            artifacts={"pm_spec": sample_artifacts["pm_spec"]},
            cache_handle="cache-1",
            cached_steps=["pm_spec"],
        )
        prompt = ArchitectStep(mock_oracle).build_prompt(context)
        assert "(provided in shared context)" in prompt
        assert "TaskMaster" not in prompt

    def test_security_lists_endpoints(self, mock_oracle, full_context):
        seen: list[dict] = []
        full_context.bind_progress(seen.append)
        prompt = SecurityStep(mock_oracle).build_prompt(full_context)
        assert "- POST /api/tasks (auth: yes)" in prompt
        assert seen == [{"message": "Threat modeling", "endpoints": 1}]

    def test_security_without_architecture(self, mock_oracle):
        prompt = SecurityStep(mock_oracle).build_prompt(ExecutionContext(user_request="x"))
        assert "(no API inventory available)" in prompt

    def test_qa_lists_acceptance_criteria(self, mock_oracle, full_context):
        prompt = QAStep(mock_oracle).build_prompt(full_context)
        assert "- AC-1: Tasks persist after reload" in prompt

    def test_ui_lists_journeys(self, mock_oracle, full_context):
        prompt = UIDesignerStep(mock_oracle).build_prompt(full_context)
        assert "- Create tasks" in prompt

    def test_engineer_reports_available_upstream(self, mock_oracle, full_context):
        seen: list[dict] = []
        full_context.bind_progress(seen.append)
        EngineerStep(mock_oracle).build_prompt(full_context)
        assert seen[0]["upstream"] == ["arch_design", "pm_spec", "security_architecture"]

    def test_devops_security_constraints(self, mock_oracle, full_context):
        prompt = DevOpsStep(mock_oracle).build_prompt(full_context)
        assert "- Authentication: JWT" in prompt
