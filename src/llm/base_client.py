# src/llm/base_client.py — v1
"""Abstract oracle interface: structured generation, cache handles, reference detection.

Implementations either return schema-valid JSON or raise OracleError
(RateLimitError for provider throttling). Repairing malformed model
output is the implementation's job, never the caller's.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from specweaver.llm.models import GenerationOptions, ReferenceCandidate, ReferenceMatch


class BaseOracle(ABC):
    """Unified interface for all structured-generation providers."""

    @abstractmethod
    async def generate_structured(
        self,
        prompt: str,
        schema: dict[str, Any],
        options: GenerationOptions | None = None,
    ) -> Any:
        """Generate a JSON value conforming to ``schema``."""

    @abstractmethod
    async def create_cache(
        self,
        seed_content: str,
        system_instruction: str | None = None,
        ttl_seconds: int = 3600,
    ) -> str:
        """Register shared context and return an opaque cache handle."""

    @abstractmethod
    async def detect_references(
        self,
        text: str,
        candidates: list[ReferenceCandidate],
    ) -> list[ReferenceMatch]:
        """Score which candidates ``text`` semantically references."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, ...)."""
