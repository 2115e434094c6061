# src/graph/models.py — v1
"""Schema knowledge graph models: nodes, edges, build and query results."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from specweaver.core.models import utcnow

ValueType = Literal["string", "number", "boolean", "object", "array"]


class NodeMetadata(BaseModel):
    is_array_item: bool = False
    array_index: int | None = None
    identifier: str | None = None
    description: str | None = None


class SchemaNode(BaseModel):
    """One JSON path inside one artifact. id = '<artifact_type>.<schema_path>'."""

    id: str
    artifact_type: str
    schema_path: str
    value: Any = None
    value_type: ValueType
    metadata: NodeMetadata = Field(default_factory=NodeMetadata)


class SchemaEdge(BaseModel):
    """Directed reference: the ``from`` node depends on the ``to`` node."""

    model_config = ConfigDict(populate_by_name=True)

    from_id: str = Field(alias="from")
    to_id: str = Field(alias="to")
    type: Literal["references"] = "references"
    confidence: float = Field(ge=0.0, le=1.0)
    detection_method: Literal["exact", "semantic"]
    context: str = ""


class GraphBuildResult(BaseModel):
    node_count: int
    edge_count: int
    artifacts_processed: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)


class DependencyQueryResult(BaseModel):
    """Nodes that depend on a source node, directly and transitively."""

    source_node: SchemaNode | None = None
    direct_dependents: list[SchemaNode] = Field(default_factory=list)
    transitive_dependents: list[SchemaNode] = Field(default_factory=list)
    edges: list[SchemaEdge] = Field(default_factory=list)
    grouped_by_artifact: dict[str, list[SchemaNode]] = Field(default_factory=dict)

    @property
    def found(self) -> bool:
        return self.source_node is not None
