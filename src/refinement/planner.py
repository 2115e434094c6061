# src/refinement/planner.py — v1
"""Refinement planner — turns a field change into ordered surgical updates.

Uses the schema knowledge graph to find which artifacts reference the
changed field, emits one update per affected artifact type, and sorts
them in pipeline order so upstream changes are applied first. The
planner never edits artifacts; ``apply_value`` only returns new copies.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any

from specweaver.config.pipeline import CRITICAL_ARTIFACTS, STEP_ORDER, step_index
from specweaver.core.errors import (
    CircularDependencyError,
    PlanValidationError,
    TargetNotFoundError,
)
from specweaver.core.models import Artifact
from specweaver.graph.knowledge_graph import SchemaKnowledgeGraph
from specweaver.graph.models import DependencyQueryResult, SchemaNode
from specweaver.graph.paths import node_id, parse_path, set_at_path
from specweaver.refinement.models import (
    IntentAnalysis,
    IntentType,
    PlanValidation,
    RefinementPlan,
    SurgicalUpdate,
    UpdateContext,
)

logger = logging.getLogger(__name__)

BASE_IMPACT = 0.2
DIRECT_WEIGHT = 0.15
TRANSITIVE_WEIGHT = 0.05
CRITICAL_WEIGHT = 0.1

# Order matters: ties keep the earlier bucket.
INTENT_KEYWORDS: dict[IntentType, list[str]] = {
    "modify": ["change", "update", "modify", "replace", "set to", "make it", "switch to"],
    "add": ["add", "create", "new", "include", "introduce", "implement"],
    "remove": ["remove", "delete", "drop", "eliminate", "get rid of", "take out"],
    "restructure": ["restructure", "reorganize", "refactor", "redesign", "rework"],
}

_PREVIEW_CHARS = 100


class RefinementPlanner:
    """Plan refinements against a built SchemaKnowledgeGraph.

    Args:
        graph: Graph built from the current artifact snapshot.
        critical_artifacts: Artifact types whose direct dependence raises impact.
    """

    def __init__(
        self,
        graph: SchemaKnowledgeGraph,
        critical_artifacts: frozenset[str] | set[str] = CRITICAL_ARTIFACTS,
    ) -> None:
        self._graph = graph
        self._critical = frozenset(critical_artifacts)

    def create_plan(
        self,
        intent: str,
        target_artifact: str,
        target_path: str,
        new_value: Any,
        validate: bool = True,
    ) -> RefinementPlan:
        """Build the plan for changing ``target_artifact.target_path``.

        Raises:
            TargetNotFoundError: No graph node at the target.
            CircularDependencyError: Updates depend on each other in a cycle.
            PlanValidationError: Any other validation failure (when ``validate``).
        """
        start = time.monotonic()
        logger.info(
            "Creating refinement plan for %s.%s", target_artifact, target_path,
            extra={"data": {"intent": intent}},
        )

        target = self._graph.get_node(node_id(target_artifact, target_path))
        if target is None:
            raise TargetNotFoundError(target_artifact, target_path)

        deps = self._graph.get_dependents(target_artifact, target_path)
        updates = [self._target_update(target, intent, new_value)]
        covered = {target.artifact_type}

        for dependent in deps.direct_dependents:
            if dependent.artifact_type not in covered:
                updates.append(self._dependent_update(dependent, deps, target, new_value, "direct"))
                covered.add(dependent.artifact_type)
        for dependent in deps.transitive_dependents:
            if dependent.artifact_type not in covered:
                updates.append(
                    self._dependent_update(dependent, deps, target, new_value, "transitive")
                )
                covered.add(dependent.artifact_type)

        # Stable sort keeps the target first within its own artifact type.
        updates.sort(key=lambda u: step_index(u.artifact_type))

        plan = RefinementPlan(
            original_intent=intent,
            target_node=target,
            new_value=new_value,
            updates=updates,
            unaffected_artifacts=[a for a in STEP_ORDER if a not in covered],
            impact_score=self.impact_score(deps),
        )

        if validate:
            result = self.validate_plan(plan)
            if not result.valid:
                if any(e.startswith("Circular dependency") for e in result.errors):
                    raise CircularDependencyError(result.errors)
                raise PlanValidationError(result.errors)

        logger.info(
            "Refinement plan created: %d updates, impact %.2f (%dms)",
            len(updates), plan.impact_score, int((time.monotonic() - start) * 1000),
        )
        return plan

    def impact_score(self, deps: DependencyQueryResult) -> float:
        """Heuristic risk signal in [0, 1]."""
        critical = sum(1 for n in deps.direct_dependents if n.artifact_type in self._critical)
        score = (
            BASE_IMPACT
            + DIRECT_WEIGHT * len(deps.direct_dependents)
            + TRANSITIVE_WEIGHT * len(deps.transitive_dependents)
            + CRITICAL_WEIGHT * critical
        )
        return round(min(max(score, 0.0), 1.0), 6)

    def validate_plan(self, plan: RefinementPlan) -> PlanValidation:
        """Check that ``plan`` can be applied as-is."""
        errors: list[str] = []
        if plan.target_node is None:
            errors.append("Target node is missing")

        by_type = {u.artifact_type: u for u in plan.updates}
        # Marked on failure too, so each cycle is reported once.
        done: set[str] = set()

        def check(update: SurgicalUpdate, path: list[str]) -> bool:
            if update.artifact_type in path:
                cycle = path[path.index(update.artifact_type):] + [update.artifact_type]
                errors.append(f"Circular dependency detected: {' -> '.join(cycle)}")
                return False
            if update.artifact_type in done:
                return True
            ok = True
            for dep in update.depends_on:
                dep_update = by_type.get(dep)
                if dep_update is not None and not check(dep_update, path + [update.artifact_type]):
                    ok = False
                    break
            done.add(update.artifact_type)
            return ok

        for update in plan.updates:
            if update.artifact_type not in done:
                check(update, [])

        for update in plan.updates:
            if not update.target_paths:
                errors.append(f"Update for {update.artifact_type} has no target paths")

        return PlanValidation(valid=not errors, errors=errors)

    def analyze_intent(self, intent: str) -> IntentAnalysis:
        """Classify a request into modify/add/remove/restructure by keyword counts."""
        text = intent.lower()
        best: IntentType = "modify"
        best_words: list[str] = []
        for kind, words in INTENT_KEYWORDS.items():
            matched = [w for w in words if w in text]
            if len(matched) > len(best_words):
                best, best_words = kind, matched
        return IntentAnalysis(
            type=best,
            confidence=min(len(best_words) * 0.3 + 0.4, 1.0),
            keywords=best_words,
        )

    @staticmethod
    def describe_path(path: str) -> str:
        """Readable label: ``apis[0].auth_required`` -> ``Apis Item 0 Auth Required``."""
        try:
            segments = parse_path(path)
        except ValueError:
            segments = [path]
        text = " ".join(
            f"item {s}" if isinstance(s, int) else s.replace("_", " ") for s in segments
        )
        return re.sub(r"\b\w", lambda m: m.group(0).upper(), text)

    @staticmethod
    def apply_value(artifact: Artifact, path: str, value: Any) -> Artifact:
        """New artifact with ``value`` at ``path``; ``artifact`` is untouched."""
        return artifact.with_content(set_at_path(artifact.content, path, value))

    # ------------------------------------------------------------------
    # Update builders
    # ------------------------------------------------------------------

    def _target_update(self, target: SchemaNode, intent: str, new_value: Any) -> SurgicalUpdate:
        return SurgicalUpdate(
            artifact_type=target.artifact_type,
            target_paths=[target.schema_path],
            instruction=self._target_instruction(target, new_value),
            context=UpdateContext(upstream_change=intent, reason="Direct user modification"),
            priority="critical",
            depends_on=[],
        )

    def _dependent_update(
        self,
        dependent: SchemaNode,
        deps: DependencyQueryResult,
        target: SchemaNode,
        new_value: Any,
        kind: str,
    ) -> SurgicalUpdate:
        paths: list[str] = []
        for node in deps.grouped_by_artifact.get(dependent.artifact_type, [dependent]):
            if node.schema_path not in paths:
                paths.append(node.schema_path)
        relation = "directly references" if kind == "direct" else "is transitively affected by"
        return SurgicalUpdate(
            artifact_type=dependent.artifact_type,
            target_paths=paths,
            instruction=self._dependent_instruction(dependent, target, new_value),
            context=UpdateContext(
                upstream_change=(
                    f"{target.artifact_type}.{target.schema_path} changed to: "
                    f"{_preview(new_value)}"
                ),
                reason=f"This artifact {relation} the changed field",
                reference_values={"old_value": target.value, "new_value": new_value},
            ),
            priority="high" if kind == "direct" else "medium",
            depends_on=[target.artifact_type],
        )

    def _target_instruction(self, node: SchemaNode, new_value: Any) -> str:
        label = self.describe_path(node.schema_path)
        value = new_value if isinstance(new_value, str) else json.dumps(new_value, default=str)
        if node.metadata.is_array_item:
            return f'Update the {label} to: "{value}". Preserve all other fields in this item.'
        if node.value_type == "object":
            return (
                f"Update the {label} object with the new values: {value}. "
                "Preserve any fields not explicitly changed."
            )
        return f'Change {label} from "{node.value}" to "{value}".'

    def _dependent_instruction(self, dependent: SchemaNode, target: SchemaNode, new_value: Any) -> str:
        target_label = self.describe_path(target.schema_path)
        value = _preview(new_value)

        if dependent.artifact_type == "engineer_impl" and target.artifact_type == "arch_design":
            if "apis" in target.schema_path:
                return (
                    f"Update your implementation to match the API changes. The {target_label} "
                    f'has changed to "{value}". Ensure your route handlers, controllers, '
                    "and types reflect this change."
                )
            if "database_schema" in target.schema_path:
                return (
                    "Update your data models and database interactions to match the schema "
                    f'changes. The {target_label} has been modified to "{value}".'
                )

        if dependent.artifact_type == "qa_verification":
            return (
                f"Update your test cases to reflect the changes in {target_label}. "
                f'The new value is "{value}". Ensure your test scenarios cover the updated behavior.'
            )

        if (
            dependent.artifact_type == "devops_infrastructure"
            and target.artifact_type == "security_architecture"
        ):
            return (
                "Update your infrastructure configuration to match the security changes. "
                f'{target_label} is now "{value}". Ensure your deployment scripts and '
                "environment variables are updated."
            )

        return (
            f"Synchronize your {self.describe_path(dependent.schema_path)} with the upstream "
            f'changes. The {target_label} has been updated to "{value}". Update any '
            "references while preserving your existing implementation quality."
        )


def _preview(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)[:_PREVIEW_CHARS]
