# tests/unit/pipeline/test_unit_step.py — v1
"""Tests for pipeline/step.py — BaseStep contract and StepDefinition."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from specweaver.core.errors import StepExecutionError
from specweaver.core.models import ExecutionContext
from specweaver.pipeline.step import BaseStep, StepDefinition, dump_json


class _Content(BaseModel):
    name: str
    count: int = 0


class _EchoStep(BaseStep):
    temperature = 0.3

    @property
    def step_id(self) -> str:
        return "arch_design"

    @property
    def role(self) -> str:
        return "Architect"

    @property
    def content_model(self) -> type[BaseModel]:
        return _Content

    def build_prompt(self, context: ExecutionContext) -> str:
        return f"design {context.user_request}"


class TestBaseStep:
    @pytest.mark.asyncio
    async def test_run_wraps_valid_content(self, mock_oracle):
        mock_oracle.generate_structured.return_value = {"name": "api", "count": 2}
        step = _EchoStep(mock_oracle, max_tokens=500)

        artifact = await step.run(ExecutionContext(user_request="todo", cache_handle="h1"))

        assert artifact.step_id == "arch_design"
        assert artifact.role == "Architect"
        assert artifact.content == {"name": "api", "count": 2}

        prompt, schema, options = mock_oracle.generate_structured.await_args.args
        assert prompt == "design todo"
        assert schema["properties"]["name"]["type"] == "string"
        assert options.temperature == 0.3
        assert options.max_tokens == 500
        assert options.cache_handle == "h1"

    @pytest.mark.asyncio
    async def test_temperature_override(self, mock_oracle):
        mock_oracle.generate_structured.return_value = {"name": "x"}
        await _EchoStep(mock_oracle, temperature=0.9).run(ExecutionContext(user_request="x"))
        assert mock_oracle.generate_structured.await_args.args[2].temperature == 0.9

    @pytest.mark.asyncio
    async def test_default_temperature_when_unpinned(self, mock_oracle):
        class _Unpinned(_EchoStep):
            temperature = None

        mock_oracle.generate_structured.return_value = {"name": "x"}
        await _Unpinned(mock_oracle, default_temperature=0.9).run(ExecutionContext(user_request="x"))
        assert mock_oracle.generate_structured.await_args.args[2].temperature == 0.9

    def test_pinned_temperature_beats_default(self, mock_oracle):
        assert _EchoStep(mock_oracle, default_temperature=0.9)._temperature == 0.3

    @pytest.mark.asyncio
    async def test_invalid_content_raises(self, mock_oracle):
        mock_oracle.generate_structured.return_value = {"count": "many"}

        with pytest.raises(StepExecutionError, match="Artifact validation failed for arch_design") as exc_info:
            await _EchoStep(mock_oracle).run(ExecutionContext(user_request="x"))
        assert exc_info.value.step_id == "arch_design"
        assert "name" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_oracle_error_propagates(self, mock_oracle):
        mock_oracle.generate_structured.side_effect = RuntimeError("429 Too Many Requests")
        with pytest.raises(RuntimeError, match="429"):
            await _EchoStep(mock_oracle).run(ExecutionContext(user_request="x"))

    @pytest.mark.asyncio
    async def test_reports_progress(self, mock_oracle):
        mock_oracle.generate_structured.return_value = {"name": "x"}
        seen: list[dict] = []
        context = ExecutionContext(user_request="x")
        context.bind_progress(seen.append)

        await _EchoStep(mock_oracle).run(context)

        assert seen[0]["message"] == "Architect generating"

    def test_definition(self, mock_oracle):
        definition = _EchoStep(mock_oracle).definition()
        assert definition.id == "arch_design"
        assert definition.depends_on == frozenset({"pm_spec"})


class TestStepDefinition:
    async def _noop(self, context):  # pragma: no cover
        return None

    def test_implicit_dependencies(self):
        step = StepDefinition(id="c", role="C", run=self._noop)
        assert step.resolved_dependencies(["a", "b"]) == frozenset({"a", "b"})

    def test_explicit_dependencies(self):
        step = StepDefinition(id="c", role="C", run=self._noop, depends_on=frozenset({"a"}))
        assert step.resolved_dependencies(["a", "b"]) == frozenset({"a"})


def test_dump_json_truncates():
    text = dump_json({"key": "x" * 100}, limit=20)
    assert text.endswith("... (truncated)")
    assert len(text) < 60
