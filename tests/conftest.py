# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a mock oracle, settings isolated from the environment, sample
artifacts and a recorded-sleep retry executor. No network access.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from specweaver.config.settings import Settings
from specweaver.core.models import Artifact
from specweaver.llm.base_client import BaseOracle
from specweaver.llm.retry import RetryExecutor


# === FIXTURES: Settings ===


@pytest.fixture
def settings() -> Settings:
    """Settings that ignore any local .env file, with fast retries."""
    return Settings(
        _env_file=None,
        retry_initial_delay_s=0.01,
        retry_max_delay_s=0.05,
        retry_jitter=False,
    )


# === FIXTURES: Oracle ===


@pytest.fixture
def mock_oracle() -> MagicMock:
    """Oracle double with AsyncMock methods; configure return values per test."""
    oracle = MagicMock(spec=BaseOracle)
    oracle.generate_structured = AsyncMock(return_value={})
    oracle.create_cache = AsyncMock(return_value="cache-test")
    oracle.detect_references = AsyncMock(return_value=[])
    oracle.provider_name = "mock"
    return oracle


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def retry_executor(sleeps: list[float]) -> RetryExecutor:
    """RetryExecutor that records delays instead of sleeping."""

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    return RetryExecutor(sleep=fake_sleep)


# === FIXTURES: Sample artifacts ===


@pytest.fixture
def pm_content() -> dict:
    return {
        "title": "TaskMaster",
        "summary": "A collaborative todo list with reminders",
        "user_stories": [
            {
                "id": "US-1",
                "title": "Create tasks",
                "story": "As a user, I want to create tasks so that I remember them",
                "priority": "high",
            },
        ],
        "acceptance_criteria": [{"id": "AC-1", "criteria": "Tasks persist after reload"}],
    }


@pytest.fixture
def arch_content() -> dict:
    return {
        "summary": "Three-tier web application",
        "design_doc": "TaskMaster uses a REST API backed by PostgreSQL.",
        "apis": [
            {
                "path": "/api/tasks",
                "method": "POST",
                "description": "Create tasks for the current user",
                "auth_required": True,
            },
        ],
        "database_schema": {
            "tables": [{"name": "tasks", "columns": [{"name": "id", "type": "uuid"}]}],
        },
    }


@pytest.fixture
def security_content() -> dict:
    return {
        "authentication": {"method": "JWT", "providers": ["email"]},
        "threat_model": [
            {
                "threat": "Token theft on /api/tasks",
                "severity": "high",
                "mitigation": "Short-lived JWT tokens",
            },
        ],
    }


@pytest.fixture
def sample_artifacts(pm_content: dict, arch_content: dict, security_content: dict) -> dict[str, Artifact]:
    """pm_spec -> arch_design -> security_architecture snapshot."""
    return {
        "pm_spec": Artifact(step_id="pm_spec", role="Product Manager", content=pm_content),
        "arch_design": Artifact(step_id="arch_design", role="Architect", content=arch_content),
        "security_architecture": Artifact(
            step_id="security_architecture", role="Security", content=security_content
        ),
    }


@pytest.fixture
def todo_artifacts() -> dict[str, Artifact]:
    """Minimal two-artifact snapshot with one exact reference."""
    return {
        "pm_spec": Artifact(step_id="pm_spec", role="Product Manager", content={"title": "Todo"}),
        "arch_design": Artifact(
            step_id="arch_design", role="Architect",
            content={"design_doc": "Implements Todo app"},
        ),
    }


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "output"
    out.mkdir()
    return out
