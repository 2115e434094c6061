# src/pipeline/steps/_prompting.py — v1
"""Prompt fragments shared by all generation steps."""

from __future__ import annotations

from specweaver.config.pipeline import STEP_ROLES
from specweaver.core.models import ExecutionContext
from specweaver.pipeline.step import dump_json

# Per-artifact character budget when upstream content is inlined.
UPSTREAM_CHAR_LIMIT = 12000

CACHE_SYSTEM_INSTRUCTION = (
    "You are a professional software development team. This is a shared "
    "context cache for collaborative agent work. Use it to avoid redundancy."
)


def request_section(context: ExecutionContext) -> str:
    """User request plus clarifications and supplemental documents."""
    parts = [f'=== USER REQUEST ===\n"{context.user_request}"']

    answers = context.options.clarification_answers
    if answers:
        lines = "\n".join(f"{k}: {v}" for k, v in answers.items())
        parts.append(f"=== USER CLARIFICATIONS (use these to scope the spec) ===\n{lines}")

    # Documents travel in the cache once one exists.
    if context.options.documents and context.cache_handle is None:
        docs = "\n\n".join(
            f"Document {i + 1}: {d.name}\nContent: {d.content}"
            for i, d in enumerate(context.options.documents)
        )
        parts.append(f"=== SUPPLEMENTAL DOCUMENTS ===\n{docs}")

    return "\n\n".join(parts)


def upstream_section(context: ExecutionContext, step_ids: list[str]) -> str:
    """Inline upstream artifacts; missing ones are noted, cached ones referenced."""
    blocks: list[str] = []
    for step_id in step_ids:
        title = STEP_ROLES.get(step_id, step_id).upper()
        if step_id in context.cached_steps and context.cache_handle:
            blocks.append(f"=== {title} ARTIFACT ===\n(provided in shared context)")
            continue
        content = context.artifact_content(step_id)
        if content is None:
            blocks.append(f"=== {title} ARTIFACT ===\n(not available for this run)")
            continue
        blocks.append(f"=== {title} ARTIFACT ===\n{dump_json(content, UPSTREAM_CHAR_LIMIT)}")
    return "\n\n".join(blocks)


def options_section(context: ExecutionContext) -> str:
    opts = context.options
    flags = [
        f"- State management guidance: {'yes' if opts.include_state_management else 'no'}",
        f"- API design: {'yes' if opts.include_apis else 'no'}",
        f"- Database design: {'yes' if opts.include_database else 'no'}",
    ]
    return "=== GENERATION OPTIONS ===\n" + "\n".join(flags)


def cache_seed(context: ExecutionContext) -> str:
    """Seed text for the shared context cache, built from the whole context."""
    parts = [f"=== SHARED CONTEXT: USER REQUEST ===\n{context.user_request}"]
    if context.options.documents:
        docs = "\n\n".join(
            f"Document {i + 1}: {d.name}\nContent: {d.content}"
            for i, d in enumerate(context.options.documents)
        )
        parts.append(f"=== SHARED CONTEXT: SUPPLEMENTAL DOCUMENTS ===\n{docs}")
    for step_id, artifact in context.artifacts.items():
        title = STEP_ROLES.get(step_id, step_id).upper()
        parts.append(f"=== SHARED CONTEXT: {title} ===\n{dump_json(artifact.content)}")
    return "\n\n".join(parts)
