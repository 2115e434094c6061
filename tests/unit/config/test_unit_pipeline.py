# tests/unit/config/test_unit_pipeline.py — v1
"""Tests for config/pipeline.py — step order and dependency map."""

from __future__ import annotations

from specweaver.config.pipeline import (
    ARTIFACT_DEPENDENCY_MAP,
    STEP_ORDER,
    STEP_REGISTRY,
    STEP_ROLES,
    step_index,
)


def test_every_step_has_role_and_class():
    assert set(STEP_ROLES) == set(STEP_ORDER)
    assert len(STEP_REGISTRY) == len(STEP_ORDER)


def test_dependencies_point_upstream():
    for downstream, upstream in ARTIFACT_DEPENDENCY_MAP.items():
        for dep in upstream:
            assert step_index(dep) < step_index(downstream), (downstream, dep)


def test_qa_depends_on_all_upstream():
    assert set(ARTIFACT_DEPENDENCY_MAP["qa_verification"]) == set(STEP_ORDER[:-1])


def test_unknown_step_sorts_last():
    assert step_index("pm_spec") == 0
    assert step_index("nope") == len(STEP_ORDER)
