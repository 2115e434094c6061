# tests/unit/llm/test_unit_anthropic_adapter.py — v1
"""Tests for llm/adapters/anthropic_adapter.py — SDK mocked, no network."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from specweaver.core.errors import OracleError
from specweaver.llm.adapters.anthropic_adapter import AnthropicOracle
from specweaver.llm.models import GenerationOptions, ReferenceCandidate


def _response(blocks, stop_reason="tool_use"):
    return SimpleNamespace(
        content=blocks,
        stop_reason=stop_reason,
        usage=SimpleNamespace(input_tokens=10, output_tokens=5, cache_read_input_tokens=0),
    )


def _tool_block(data):
    return SimpleNamespace(type="tool_use", input=data)


@pytest.fixture
def client() -> MagicMock:
    mock = MagicMock()
    mock.messages.create = AsyncMock(return_value=_response([_tool_block({"summary": "ok"})]))
    return mock


@pytest.fixture
def oracle(client) -> AnthropicOracle:
    adapter = AnthropicOracle(model="claude-test", api_key="sk-test")
    adapter._AnthropicOracle__client = client
    return adapter


class TestGenerateStructured:
    @pytest.mark.asyncio
    async def test_returns_tool_input(self, oracle, client):
        result = await oracle.generate_structured("prompt", {"type": "object"})
        assert result == {"summary": "ok"}
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["tool_choice"] == {"type": "tool", "name": "structured_output"}
        assert kwargs["tools"][0]["input_schema"] == {"type": "object"}
        assert "system" not in kwargs

    @pytest.mark.asyncio
    async def test_no_tool_block_raises(self, oracle, client):
        client.messages.create.return_value = _response(
            [SimpleNamespace(type="text", text="hi")], stop_reason="end_turn"
        )
        with pytest.raises(OracleError, match="no structured output"):
            await oracle.generate_structured("prompt", {})

    @pytest.mark.asyncio
    async def test_options_forwarded(self, oracle, client):
        await oracle.generate_structured(
            "p", {}, GenerationOptions(temperature=0.7, max_tokens=123, system="be brief")
        )
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 123
        assert kwargs["system"] == [{"type": "text", "text": "be brief"}]

    @pytest.mark.asyncio
    async def test_non_sdk_errors_propagate(self, oracle, client):
        client.messages.create.side_effect = ValueError("bad")
        with pytest.raises(ValueError, match="bad"):
            await oracle.generate_structured("p", {})


class TestCache:
    @pytest.mark.asyncio
    async def test_handle_is_stable_and_attached(self, oracle, client):
        handle = await oracle.create_cache("shared context", system_instruction="team")
        assert handle.startswith("cache-")
        assert handle == await oracle.create_cache("shared context", system_instruction="team")

        await oracle.generate_structured("p", {}, GenerationOptions(cache_handle=handle))
        system = client.messages.create.call_args.kwargs["system"]
        assert system[0] == {"type": "text", "text": "team"}
        assert system[1]["text"] == "shared context"
        assert system[1]["cache_control"] == {"type": "ephemeral"}

    @pytest.mark.asyncio
    async def test_empty_seed_rejected(self, oracle):
        with pytest.raises(OracleError):
            await oracle.create_cache("   ")

    @pytest.mark.asyncio
    async def test_expired_cache_dropped(self, oracle, client):
        handle = await oracle.create_cache("ctx", ttl_seconds=-1)
        await oracle.generate_structured("p", {}, GenerationOptions(cache_handle=handle))
        assert "system" not in client.messages.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_create_prunes_expired_entries(self, oracle):
        stale = await oracle.create_cache("old ctx", ttl_seconds=-1)
        fresh = await oracle.create_cache("new ctx")
        assert stale not in oracle._caches
        assert list(oracle._caches) == [fresh]

    @pytest.mark.asyncio
    async def test_unknown_handle_ignored(self, oracle, client):
        await oracle.generate_structured("p", {}, GenerationOptions(cache_handle="cache-nope"))
        assert "system" not in client.messages.create.call_args.kwargs


class TestDetectReferences:
    @pytest.mark.asyncio
    async def test_maps_indices_to_ids(self, oracle, client):
        client.messages.create.return_value = _response([_tool_block({
            "matches": [
                {"index": 2, "confidence": 0.9},
                {"index": 7, "confidence": 0.9},
                {"index": 1, "confidence": 1.5},
            ]
        })])
        candidates = [
            ReferenceCandidate(id="pm_spec.title", value="Todo"),
            ReferenceCandidate(id="pm_spec.summary", value="Task list"),
        ]
        matches = await oracle.detect_references("the task list app", candidates)
        assert [(m.id, m.confidence) for m in matches] == [
            ("pm_spec.summary", 0.9),
            ("pm_spec.title", 1.0),
        ]

    @pytest.mark.asyncio
    async def test_empty_inputs_skip_call(self, oracle, client):
        assert await oracle.detect_references("", [ReferenceCandidate(id="a", value="b")]) == []
        assert await oracle.detect_references("text", []) == []
        client.messages.create.assert_not_called()


def test_provider_name():
    assert AnthropicOracle().provider_name == "anthropic"
