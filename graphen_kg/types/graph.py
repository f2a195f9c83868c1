"""
Graph Types

Final, persisted objects produced by entity resolution.

Models:
    - GraphNode: Canonical entity (aliases, provenance, optional embedding)
    - GraphEdge: Deduplicated relation between two nodes
    - ResolvedGraph: Node/edge set from one resolution run

Invariants:
    - Both endpoints of every edge exist in the accompanying node list
    - No edge has source_node_id == target_node_id
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from graphen_kg.types.documents import utc_now


class GraphNode(BaseModel):
    """
    A canonical entity in the knowledge graph.

    Attributes:
        id: Stable identifier (the id of the first mention that absorbed the others)
        name: Preferred (longest) name
        type: Entity type label ("Unknown" when never specified)
        description: Distinct description segments joined with " | "
        aliases: Every surface form merged into this node
        source_document_ids: Documents that mention the entity
        source_chunk_ids: Chunks that mention the entity
        confidence: Aggregated extraction confidence
        embedding: Vector from name + description (attached by the pipeline)
    """

    id: str
    name: str
    type: str
    description: str = ""
    properties: dict[str, Any] = Field(default_factory=dict)
    aliases: list[str] = Field(default_factory=list)
    embedding: list[float] | None = None
    source_document_ids: list[str] = Field(default_factory=list)
    source_chunk_ids: list[str] = Field(default_factory=list)
    confidence: float = 0.0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class GraphEdge(BaseModel):
    """A directed, typed relation between two graph nodes."""

    id: str
    source_node_id: str
    target_node_id: str
    relation_type: str
    description: str = ""
    properties: dict[str, Any] = Field(default_factory=dict)
    weight: float = 1.0
    source_document_ids: list[str] = Field(default_factory=list)
    confidence: float = 0.0
    created_at: datetime = Field(default_factory=utc_now)


class ResolvedGraph(BaseModel):
    """Deduplicated nodes and edges produced by one resolution run."""

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
