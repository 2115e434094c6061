# src/config/pipeline.py — v1
"""Declarative pipeline configuration.

Fixed step order, step roles, and the static artifact dependency map
used both by the orchestrator (context propagation) and by the schema
knowledge graph (which artifact pairs may be linked by edges).
"""

from __future__ import annotations

# Canonical processing order. Refinement updates are sorted by it too.
STEP_ORDER: list[str] = [
    "pm_spec",
    "arch_design",
    "security_architecture",
    "devops_infrastructure",
    "ui_design",
    "engineer_impl",
    "qa_verification",
]

# Fully qualified class paths for dynamic import by pipeline/registry.py.
STEP_REGISTRY: list[str] = [
    "specweaver.pipeline.steps.product_manager.ProductManagerStep",
    "specweaver.pipeline.steps.architect.ArchitectStep",
    "specweaver.pipeline.steps.security.SecurityStep",
    "specweaver.pipeline.steps.devops.DevOpsStep",
    "specweaver.pipeline.steps.ui_designer.UIDesignerStep",
    "specweaver.pipeline.steps.engineer.EngineerStep",
    "specweaver.pipeline.steps.qa.QAStep",
]

STEP_ROLES: dict[str, str] = {
    "pm_spec": "Product Manager",
    "arch_design": "Architect",
    "security_architecture": "Security",
    "devops_infrastructure": "DevOps",
    "ui_design": "UI Designer",
    "engineer_impl": "Engineer",
    "qa_verification": "QA",
}

# Downstream artifact type -> upstream artifact types it may reference.
# Graph edges are only searched between these pairs.
ARTIFACT_DEPENDENCY_MAP: dict[str, list[str]] = {
    "pm_spec": [],
    "arch_design": ["pm_spec"],
    "security_architecture": ["arch_design", "pm_spec"],
    "devops_infrastructure": ["security_architecture", "arch_design", "pm_spec"],
    "ui_design": ["pm_spec", "arch_design"],
    "engineer_impl": [
        "arch_design",
        "pm_spec",
        "security_architecture",
        "devops_infrastructure",
        "ui_design",
    ],
    "qa_verification": [
        "pm_spec",
        "arch_design",
        "security_architecture",
        "devops_infrastructure",
        "ui_design",
        "engineer_impl",
    ],
}

# Direct dependents in these artifacts raise a refinement's impact score.
CRITICAL_ARTIFACTS: frozenset[str] = frozenset({"security_architecture"})


def step_index(step_id: str) -> int:
    """Position of a step in the canonical order (unknown ids sort last)."""
    try:
        return STEP_ORDER.index(step_id)
    except ValueError:
        return len(STEP_ORDER)
