# tests/integration/conftest.py — v1
"""Shared fixtures for integration tests.

ScriptedOracle implements the full BaseOracle interface offline: it
answers each structured request with canned content chosen by the
requested schema's title, so the real steps, orchestrator, graph and
planner run end to end without network access.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

import pytest

from specweaver.config.settings import Settings
from specweaver.llm.base_client import BaseOracle
from specweaver.llm.models import GenerationOptions, ReferenceCandidate, ReferenceMatch

logger = logging.getLogger(__name__)


# Content per schema title; TaskMaster is referenced by arch, engineer and QA only.
TODO_RESPONSES: dict[str, Any] = {
    "ProductSpec": {
        "title": "TaskMaster",
        "summary": "Collaborative todo lists with reminders",
        "user_stories": [{"id": "US-1", "title": "Create tasks", "priority": "high"}],
        "acceptance_criteria": [{"id": "AC-1", "criteria": "Tasks persist after reload"}],
    },
    "ArchitectureDesign": {
        "design_doc": "TaskMaster is a single web service over PostgreSQL.",
        "apis": [{"path": "/api/tasks", "method": "POST", "auth_required": True}],
    },
    "SecurityArchitecture": {
        "authentication": {"method": "OAuth2"},
        "threat_model": [{"threat": "Token replay on /api/tasks", "severity": "medium"}],
    },
    "DevOpsInfrastructure": {
        "infrastructure": {"cloud_provider": "GCP", "services": [{"name": "runner"}]},
    },
    "UIDesign": {
        "screens": [{"name": "Board", "purpose": "Overview of open items"}],
    },
    "EngineeringPlan": {
        "implementation_plan": "Build TaskMaster in three phases.",
    },
    "QAPlan": {
        "summary": "Verify TaskMaster end to end",
        "test_cases": [{"id": "TC-1", "name": "Persist after reload"}],
    },
}


class ScriptedOracle(BaseOracle):
    """Offline oracle returning canned JSON keyed by schema title."""

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self._responses = responses if responses is not None else TODO_RESPONSES
        self.calls: list[dict[str, Any]] = []
        self.caches: list[str] = []
        self.failures: dict[str, int] = {}

    def fail(self, schema_title: str, times: int) -> None:
        """Raise a transient error for the next ``times`` requests of a schema."""
        self.failures[schema_title] = times

    async def generate_structured(
        self,
        prompt: str,
        schema: dict[str, Any],
        options: GenerationOptions | None = None,
    ) -> Any:
        title = schema.get("title", "")
        self.calls.append({"title": title, "prompt": prompt, "options": options})
        if self.failures.get(title, 0) > 0:
            self.failures[title] -= 1
            raise RuntimeError(f"transient failure for {title}")
        if title not in self._responses:
            raise RuntimeError(f"No scripted response for {title}")
        return copy.deepcopy(self._responses[title])

    async def create_cache(
        self,
        seed_content: str,
        system_instruction: str | None = None,
        ttl_seconds: int = 3600,
    ) -> str:
        handle = f"cache-{len(self.caches) + 1}"
        self.caches.append(seed_content)
        return handle

    async def detect_references(
        self,
        text: str,
        candidates: list[ReferenceCandidate],
    ) -> list[ReferenceMatch]:
        return []

    @property
    def provider_name(self) -> str:
        return "scripted"


@pytest.fixture
def scripted_oracle() -> ScriptedOracle:
    return ScriptedOracle()


@pytest.fixture
def fast_settings() -> Settings:
    return Settings(
        _env_file=None,
        retry_initial_delay_s=0.001,
        retry_max_delay_s=0.002,
        retry_jitter=False,
    )
