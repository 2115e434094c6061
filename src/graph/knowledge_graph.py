# src/graph/knowledge_graph.py — v1
"""Schema knowledge graph — field-level dependencies between artifacts.

Nodes are every JSON path of every artifact's content (the artifact root
itself is implicit). Edges point from a downstream string field to the
upstream value it references, and are only searched between artifact
pairs declared in the static dependency map.

Storage is a NetworkX DiGraph rebuilt from scratch on every build().
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping
from typing import Any

import networkx as nx

from specweaver.config.pipeline import ARTIFACT_DEPENDENCY_MAP
from specweaver.config.settings import Settings, load_settings
from specweaver.core.errors import GraphBuildWarning
from specweaver.graph.models import (
    DependencyQueryResult,
    GraphBuildResult,
    NodeMetadata,
    SchemaEdge,
    SchemaNode,
    ValueType,
)
from specweaver.graph.paths import array_index, join_index, join_key, last_key, node_id
from specweaver.graph.reference_detector import (
    ExactMatchDetector,
    ReferenceDetector,
    find_exact_matches,
)
from specweaver.llm.models import ReferenceCandidate
from specweaver.logging.context import set_artifact_context

logger = logging.getLogger(__name__)

# Characters of the referencing text kept on an edge.
_EDGE_CONTEXT_CHARS = 100


class SchemaKnowledgeGraph:
    """Build and query field-level dependencies across artifacts.

    Args:
        detector: Reference detector for non-exact matches. Defaults to
            the offline ExactMatchDetector.
        settings: Thresholds, depth, batch size and field lists.
        dependency_map: Downstream type -> upstream types that may be linked.
    """

    def __init__(
        self,
        detector: ReferenceDetector | None = None,
        settings: Settings | None = None,
        dependency_map: Mapping[str, list[str]] | None = None,
    ) -> None:
        self._settings = settings or load_settings()
        self._detector = detector or ExactMatchDetector()
        self._dependency_map = dict(dependency_map or ARTIFACT_DEPENDENCY_MAP)
        self._min_confidence = self._settings.kg_min_confidence
        self._max_depth = self._settings.kg_max_depth
        self._batch_size = self._settings.kg_batch_size
        self._min_candidate_length = self._settings.kg_min_candidate_length
        self._identifier_fields = self._settings.kg_identifier_fields_list
        self._ignored_fields = set(self._settings.kg_ignored_fields_list)
        self._graph: nx.DiGraph = nx.DiGraph()
        self._last_build: GraphBuildResult | None = None

    @property
    def graph(self) -> nx.DiGraph:
        """Underlying DiGraph; edges run from dependent to dependency."""
        return self._graph

    @property
    def last_build(self) -> GraphBuildResult | None:
        return self._last_build

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    async def build(self, artifacts: Mapping[str, Any]) -> GraphBuildResult:
        """Rebuild the graph from an artifact snapshot.

        Args:
            artifacts: artifact type -> Artifact (or mapping with 'content').

        Returns:
            GraphBuildResult; detection failures appear in ``warnings``.
        """
        self._graph = nx.DiGraph()
        build_warnings: list[str] = []
        processed: list[str] = []
        contents: dict[str, Any] = {}

        for artifact_type, artifact in artifacts.items():
            content = _content_of(artifact)
            if content is None:
                self._warn(build_warnings, f"Artifact {artifact_type} has no content")
                continue
            set_artifact_context(artifact_type)
            self._add_nodes(artifact_type, content, "")
            contents[artifact_type] = content
            processed.append(artifact_type)

        for artifact_type, content in contents.items():
            set_artifact_context(artifact_type)
            for upstream_type in self._dependency_map.get(artifact_type, []):
                if upstream_type not in contents:
                    continue
                await self._link(
                    artifact_type, content, upstream_type, contents[upstream_type],
                    build_warnings,
                )
        set_artifact_context(None)

        self._last_build = GraphBuildResult(
            node_count=self._graph.number_of_nodes(),
            edge_count=self._graph.number_of_edges(),
            artifacts_processed=processed,
            warnings=build_warnings,
        )
        logger.info(
            "Schema knowledge graph built: %d nodes, %d edges, %d artifacts",
            self._last_build.node_count,
            self._last_build.edge_count,
            len(processed),
            extra={"data": {"warnings": len(build_warnings)}},
        )
        return self._last_build

    def _add_nodes(self, artifact_type: str, content: Any, path: str) -> None:
        if content is None:
            return
        if path:
            node = SchemaNode(
                id=node_id(artifact_type, path),
                artifact_type=artifact_type,
                schema_path=path,
                value=content,
                value_type=_value_type(content),
                metadata=NodeMetadata(
                    is_array_item=path.endswith("]"),
                    array_index=array_index(path),
                    identifier=self._identifier_of(content),
                    description=_description_of(content),
                ),
            )
            self._graph.add_node(node.id, node=node)

        if isinstance(content, list):
            for index, item in enumerate(content):
                self._add_nodes(artifact_type, item, join_index(path, index))
        elif isinstance(content, dict):
            for key, value in content.items():
                self._add_nodes(artifact_type, value, join_key(path, str(key)))

    async def _link(
        self,
        from_type: str,
        from_content: Any,
        to_type: str,
        to_content: Any,
        build_warnings: list[str],
    ) -> None:
        candidates = self._candidates(to_type, to_content)
        if not candidates:
            return
        for path, text in _string_leaves(from_content, "", self._ignored_fields):
            from_id = node_id(from_type, path)
            if not text or not self._graph.has_node(from_id):
                continue

            exact = find_exact_matches(text, candidates)
            for match in exact:
                self._add_edge(from_id, match.id, match.confidence, "exact", text)

            if not self._detector.semantic:
                continue
            matched = {m.id for m in exact}
            remaining = [c for c in candidates if c.id not in matched]
            for start in range(0, len(remaining), self._batch_size):
                batch = remaining[start:start + self._batch_size]
                try:
                    found = await self._detector.detect(text, batch)
                except Exception as exc:
                    logger.warning(
                        "Reference detection failed for %s -> %s, treating as no match: %s",
                        from_id, to_type, exc,
                    )
                    build_warnings.append(
                        f"Reference detection failed for {from_id} -> {to_type}: {exc}"
                    )
                    continue
                batch_ids = {c.id for c in batch}
                for match in found:
                    if match.id in batch_ids and match.confidence >= self._min_confidence:
                        self._add_edge(from_id, match.id, match.confidence, "semantic", text)

    def _candidates(self, artifact_type: str, content: Any) -> list[ReferenceCandidate]:
        """Upstream values a downstream field may reference, deduplicated by node."""
        seen: set[str] = set()
        result: list[ReferenceCandidate] = []

        def add(path: str, value: str, value_type: str) -> None:
            cid = node_id(artifact_type, path)
            if cid in seen or len(value.strip()) < self._min_candidate_length:
                return
            seen.add(cid)
            result.append(ReferenceCandidate(id=cid, value=value, value_type=value_type))

        def walk(value: Any, path: str) -> None:
            if value is None or last_key(path) in self._ignored_fields:
                return
            if isinstance(value, bool):
                add(path, str(value).lower(), "boolean")
            elif isinstance(value, (int, float)):
                add(path, str(value), "number")
            elif isinstance(value, str):
                if path:
                    add(path, value, "string")
            elif isinstance(value, list):
                for index, item in enumerate(value):
                    walk(item, join_index(path, index))
            elif isinstance(value, dict):
                identifier = self._identifier_of(value)
                # The artifact root has no node to point at.
                if identifier is not None and path:
                    add(path, identifier, "identifier")
                for key, item in value.items():
                    walk(item, join_key(path, str(key)))

        walk(content, "")
        return result

    def _add_edge(
        self, from_id: str, to_id: str, confidence: float, method: str, text: str
    ) -> None:
        if from_id == to_id or not self._graph.has_node(to_id):
            return
        if self._graph.has_edge(from_id, to_id):
            existing: SchemaEdge = self._graph.edges[from_id, to_id]["edge"]
            if existing.confidence >= confidence:
                return
        edge = SchemaEdge(
            from_id=from_id,
            to_id=to_id,
            confidence=confidence,
            detection_method=method,
            context=text[:_EDGE_CONTEXT_CHARS],
        )
        self._graph.add_edge(from_id, to_id, edge=edge)

    def _identifier_of(self, content: Any) -> str | None:
        if not isinstance(content, dict):
            return None
        for field in self._identifier_fields:
            value = content.get(field)
            if isinstance(value, str):
                return value
        return None

    def _warn(self, build_warnings: list[str], message: str) -> None:
        logger.warning(message)
        warnings.warn(message, GraphBuildWarning, stacklevel=3)
        build_warnings.append(message)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_dependents(self, artifact_type: str, schema_path: str) -> DependencyQueryResult:
        """Nodes depending on ``artifact_type.schema_path``.

        Direct dependents point at the target; transitive dependents are
        found breadth-first up to ``kg_max_depth`` hops from the target,
        each node counted once. Unknown targets yield an empty result.
        """
        target_id = node_id(artifact_type, schema_path)
        if not self._graph.has_node(target_id):
            return DependencyQueryResult()

        direct_ids = list(self._graph.predecessors(target_id))
        direct_set = set(direct_ids)
        visited = {target_id}
        transitive_ids: list[str] = []
        level = direct_ids
        depth = 0
        while level and depth < self._max_depth:
            next_level: list[str] = []
            for current in level:
                if current in visited:
                    continue
                visited.add(current)
                if current not in direct_set:
                    transitive_ids.append(current)
                next_level.extend(self._graph.predecessors(current))
            level = next_level
            depth += 1

        direct = [self._node(n) for n in direct_ids]
        transitive = [self._node(n) for n in transitive_ids]
        grouped: dict[str, list[SchemaNode]] = {}
        for node in direct + transitive:
            grouped.setdefault(node.artifact_type, []).append(node)

        return DependencyQueryResult(
            source_node=self._node(target_id),
            direct_dependents=direct,
            transitive_dependents=transitive,
            edges=[self._graph.edges[n, target_id]["edge"] for n in direct_ids],
            grouped_by_artifact=grouped,
        )

    def get_node(self, node_id_: str) -> SchemaNode | None:
        if not self._graph.has_node(node_id_):
            return None
        return self._node(node_id_)

    def get_nodes_for_artifact(self, artifact_type: str) -> list[SchemaNode]:
        return [
            data["node"]
            for _, data in self._graph.nodes(data=True)
            if data["node"].artifact_type == artifact_type
        ]

    def get_edges(self) -> list[SchemaEdge]:
        return [data["edge"] for _, _, data in self._graph.edges(data=True)]

    def get_stats(self) -> dict[str, Any]:
        artifacts: list[str] = []
        for _, data in self._graph.nodes(data=True):
            if data["node"].artifact_type not in artifacts:
                artifacts.append(data["node"].artifact_type)
        return {
            "nodes": self._graph.number_of_nodes(),
            "edges": self._graph.number_of_edges(),
            "artifacts": artifacts,
        }

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def export(self) -> dict[str, Any]:
        """JSON-serializable snapshot of nodes, edges and the last build."""
        return {
            "nodes": [
                data["node"].model_dump(mode="json")
                for _, data in self._graph.nodes(data=True)
            ],
            "edges": [e.model_dump(mode="json", by_alias=True) for e in self.get_edges()],
            "build_result": (
                self._last_build.model_dump(mode="json") if self._last_build else None
            ),
        }

    def load(self, data: Mapping[str, Any]) -> None:
        """Replace the graph with an exported snapshot.

        Edges whose endpoints are missing are dropped with a GraphBuildWarning.
        """
        graph = nx.DiGraph()
        for raw in data.get("nodes", []):
            node = SchemaNode.model_validate(raw)
            graph.add_node(node.id, node=node)
        for raw in data.get("edges", []):
            edge = SchemaEdge.model_validate(raw)
            if not (graph.has_node(edge.from_id) and graph.has_node(edge.to_id)):
                message = f"Dropping edge with unknown endpoint: {edge.from_id} -> {edge.to_id}"
                logger.warning(message)
                warnings.warn(message, GraphBuildWarning, stacklevel=2)
                continue
            graph.add_edge(edge.from_id, edge.to_id, edge=edge)
        self._graph = graph
        build = data.get("build_result")
        self._last_build = GraphBuildResult.model_validate(build) if build else None

    def _node(self, node_id_: str) -> SchemaNode:
        return self._graph.nodes[node_id_]["node"]


def _content_of(artifact: Any) -> Any:
    if artifact is None:
        return None
    if isinstance(artifact, Mapping):
        return artifact.get("content")
    return getattr(artifact, "content", None)


def _value_type(value: Any) -> ValueType:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _description_of(content: Any) -> str | None:
    if not isinstance(content, dict):
        return None
    value = content.get("description") or content.get("summary")
    return value if isinstance(value, str) else None


def _string_leaves(content: Any, path: str, ignored: set[str]) -> list[tuple[str, str]]:
    """(path, text) for every string leaf, skipping ignored field names."""
    if content is None or (path and last_key(path) in ignored):
        return []
    if isinstance(content, str):
        return [(path, content)] if path else []
    leaves: list[tuple[str, str]] = []
    if isinstance(content, list):
        for index, item in enumerate(content):
            leaves.extend(_string_leaves(item, join_index(path, index), ignored))
    elif isinstance(content, dict):
        for key, value in content.items():
            leaves.extend(_string_leaves(value, join_key(path, str(key)), ignored))
    return leaves
