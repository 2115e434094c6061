# src/api/facade.py — v1
"""Public API facade — entry points for generation and refinement planning.

Usage:
    from specweaver.api.facade import generate_specification, plan_refinement
    result = await generate_specification("A todo app with reminders")
    plan = await plan_refinement(result.artifacts, "rename", "pm_spec", "title", "TaskMaster")
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from specweaver.config.settings import Settings, load_settings
from specweaver.core.models import PipelineResult, RunOptions
from specweaver.graph.knowledge_graph import SchemaKnowledgeGraph
from specweaver.graph.reference_detector import OracleReferenceDetector, ReferenceDetector
from specweaver.pipeline.orchestrator import EventCallback, PipelineOrchestrator
from specweaver.refinement.models import RefinementPlan
from specweaver.refinement.planner import RefinementPlanner

if TYPE_CHECKING:
    from specweaver.llm.base_client import BaseOracle

logger = logging.getLogger(__name__)


async def generate_specification(
    user_request: str,
    *,
    settings: Settings | None = None,
    oracle: BaseOracle | None = None,
    options: RunOptions | None = None,
    on_event: EventCallback | None = None,
) -> PipelineResult:
    """Run the full generation pipeline for one request.

    Args:
        user_request: Free-text description of the system to specify.
        settings: Global settings. Loaded from .env if None.
        oracle: Oracle to use. Built from settings if None.
        options: Per-run generation options.
        on_event: Optional sync or async event callback.

    Raises:
        ValueError: If the request is empty.
    """
    if not user_request or not user_request.strip():
        raise ValueError("user_request must not be empty")

    settings = settings or load_settings()
    if oracle is None:
        from specweaver.llm.client_factory import create_oracle_from_settings

        oracle = create_oracle_from_settings(settings)

    logger.info(
        "Generating specification with %s/%s", settings.llm_provider, settings.llm_model
    )
    orchestrator = PipelineOrchestrator(oracle, settings, on_event=on_event)
    return await orchestrator.run(user_request, options)


async def build_knowledge_graph(
    artifacts: Mapping[str, Any],
    *,
    settings: Settings | None = None,
    detector: ReferenceDetector | None = None,
    oracle: BaseOracle | None = None,
) -> SchemaKnowledgeGraph:
    """Build a knowledge graph over an artifact snapshot.

    Uses ``detector`` when given, an oracle-backed detector when only
    ``oracle`` is given, and exact matching otherwise.
    """
    settings = settings or load_settings()
    if detector is None and oracle is not None:
        detector = OracleReferenceDetector(oracle, settings.kg_min_confidence)
    graph = SchemaKnowledgeGraph(detector=detector, settings=settings)
    await graph.build(artifacts)
    return graph


async def plan_refinement(
    artifacts: Mapping[str, Any],
    intent: str,
    target_artifact: str,
    target_path: str,
    new_value: Any,
    *,
    settings: Settings | None = None,
    detector: ReferenceDetector | None = None,
    oracle: BaseOracle | None = None,
) -> RefinementPlan:
    """Build the graph for ``artifacts`` and plan one field change.

    Raises:
        TargetNotFoundError: If the target path has no node.
        PlanValidationError: If the resulting plan is not executable.
    """
    graph = await build_knowledge_graph(
        artifacts, settings=settings, detector=detector, oracle=oracle
    )
    return RefinementPlanner(graph).create_plan(intent, target_artifact, target_path, new_value)
