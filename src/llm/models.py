# src/llm/models.py — v1
"""Oracle boundary types: GenerationOptions, ReferenceCandidate, ReferenceMatch."""

from __future__ import annotations

from pydantic import BaseModel, Field


class GenerationOptions(BaseModel):
    """Per-call options for structured generation."""

    temperature: float = 0.2
    max_tokens: int = 16000
    cache_handle: str | None = None
    system: str | None = None


class ReferenceCandidate(BaseModel):
    """Upstream value a downstream text may reference."""

    id: str
    value: str
    value_type: str = "string"


class ReferenceMatch(BaseModel):
    """Scored match returned by a reference detector."""

    id: str
    confidence: float = Field(ge=0.0, le=1.0)
