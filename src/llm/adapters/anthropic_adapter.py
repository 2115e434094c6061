# src/llm/adapters/anthropic_adapter.py — v1
"""Anthropic Claude adapter implementing BaseOracle.

Uses the official anthropic SDK. Structured outputs are obtained through
a forced tool call whose input_schema is the requested JSON schema.
Cache handles map to seed content that is re-sent as a system block
marked for prompt caching.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any

from specweaver.core.errors import OracleError, RateLimitError
from specweaver.llm.base_client import BaseOracle
from specweaver.llm.models import GenerationOptions, ReferenceCandidate, ReferenceMatch

logger = logging.getLogger(__name__)

_TOOL_NAME = "structured_output"

_DETECT_PROMPT = """Analyze which of the following values are semantically referenced in the text.

TEXT:
\"\"\"{text}\"\"\"

CANDIDATE VALUES:
{candidates}

For each candidate, determine if the TEXT references, uses, implements, or depends on it.
Consider semantic equivalence, not just exact matches.
Only include candidates that are actually referenced. Confidence is 0.0-1.0."""

_DETECT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "matches": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "index": {"type": "integer"},
                    "confidence": {"type": "number"},
                },
                "required": ["index", "confidence"],
            },
        }
    },
    "required": ["matches"],
}


@dataclass(frozen=True)
class _CacheEntry:
    content: str
    system_instruction: str | None
    expires_at: float


class AnthropicOracle(BaseOracle):
    """Oracle backed by Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        max_tokens_default: int = 16000,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._max_tokens_default = max_tokens_default
        self._caches: dict[str, _CacheEntry] = {}
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            import anthropic

            self.__client = anthropic.AsyncAnthropic(api_key=self._api_key or None)
        return self.__client

    @property
    def provider_name(self) -> str:
        return "anthropic"

    async def generate_structured(
        self,
        prompt: str,
        schema: dict[str, Any],
        options: GenerationOptions | None = None,
    ) -> Any:
        """Structured generation via a forced tool call."""
        opts = options or GenerationOptions(max_tokens=self._max_tokens_default)
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": opts.max_tokens,
            "temperature": opts.temperature,
            "messages": [{"role": "user", "content": prompt}],
            "tools": [
                {
                    "name": _TOOL_NAME,
                    "description": "Return structured data matching the schema",
                    "input_schema": schema,
                }
            ],
            "tool_choice": {"type": "tool", "name": _TOOL_NAME},
        }
        system_blocks = self._system_blocks(opts)
        if system_blocks:
            kwargs["system"] = system_blocks

        start = time.monotonic()
        try:
            response = await self._client.messages.create(**kwargs)
        except Exception as exc:
            translated = _translate_error(exc)
            if translated is exc:
                raise
            raise translated from exc
        latency_ms = int((time.monotonic() - start) * 1000)

        logger.debug(
            "Structured call: model=%s in=%d out=%d cache_read=%d latency=%dms",
            self._model,
            response.usage.input_tokens,
            response.usage.output_tokens,
            getattr(response.usage, "cache_read_input_tokens", 0) or 0,
            latency_ms,
        )

        for block in response.content:
            if getattr(block, "type", None) == "tool_use":
                return block.input
        raise OracleError(
            f"Model returned no structured output (stop_reason={response.stop_reason})"
        )

    async def create_cache(
        self,
        seed_content: str,
        system_instruction: str | None = None,
        ttl_seconds: int = 3600,
    ) -> str:
        """Register seed content; returns a handle usable in GenerationOptions."""
        if not seed_content.strip():
            raise OracleError("Cannot create a cache from empty content")
        digest = hashlib.sha256(
            f"{system_instruction or ''}\n{seed_content}".encode()
        ).hexdigest()[:16]
        now = time.monotonic()
        for stale in [h for h, e in self._caches.items() if e.expires_at < now]:
            del self._caches[stale]
        handle = f"cache-{digest}"
        self._caches[handle] = _CacheEntry(
            content=seed_content,
            system_instruction=system_instruction,
            expires_at=now + ttl_seconds,
        )
        logger.info("Registered context cache %s (%d chars)", handle, len(seed_content))
        return handle

    async def detect_references(
        self,
        text: str,
        candidates: list[ReferenceCandidate],
    ) -> list[ReferenceMatch]:
        """Ask the model which candidates ``text`` references."""
        if not text or not candidates:
            return []
        listing = "\n".join(
            f'{i + 1}. "{c.value}" (type: {c.value_type})' for i, c in enumerate(candidates)
        )
        prompt = _DETECT_PROMPT.format(text=text[:800], candidates=listing)
        data = await self.generate_structured(
            prompt,
            _DETECT_SCHEMA,
            GenerationOptions(temperature=0.1, max_tokens=500),
        )

        matches: list[ReferenceMatch] = []
        for item in (data or {}).get("matches", []):
            index = item.get("index")
            if not isinstance(index, int) or not 1 <= index <= len(candidates):
                continue
            confidence = min(max(float(item.get("confidence", 0.0)), 0.0), 1.0)
            matches.append(ReferenceMatch(id=candidates[index - 1].id, confidence=confidence))
        return matches

    # --- Internal helpers ---

    def _system_blocks(self, opts: GenerationOptions) -> list[dict[str, Any]]:
        blocks: list[dict[str, Any]] = []
        entry = self._caches.get(opts.cache_handle) if opts.cache_handle else None
        if entry is not None and entry.expires_at < time.monotonic():
            logger.debug("Cache %s expired, sending without it", opts.cache_handle)
            self._caches.pop(opts.cache_handle, None)
            entry = None
        if entry is not None:
            if entry.system_instruction:
                blocks.append({"type": "text", "text": entry.system_instruction})
            blocks.append(
                {
                    "type": "text",
                    "text": entry.content,
                    "cache_control": {"type": "ephemeral"},
                }
            )
        if opts.system:
            blocks.append({"type": "text", "text": opts.system})
        return blocks


def _translate_error(exc: Exception) -> Exception:
    """Map SDK errors onto the oracle error taxonomy."""
    import anthropic

    if isinstance(exc, anthropic.RateLimitError):
        return RateLimitError(f"rate limit: {exc}")
    if isinstance(exc, anthropic.APIError):
        return OracleError(str(exc))
    return exc
