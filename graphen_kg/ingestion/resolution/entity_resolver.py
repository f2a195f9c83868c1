"""
In-Document Entity Resolution

Reconciles the per-chunk entity/relation mentions of one document into a
deduplicated ResolvedGraph. Pure and synchronous: no I/O, no LLM calls.

Stages (each consumes only the previous stage's output):
    1. Exact: group by normalized name (lowercase, collapsed whitespace,
       synonym table), merging left to right in encounter order
    2. Fuzzy: greedy first-fit against already-accepted entities of the same
       type, blended Levenshtein/Jaccard name score >= 0.85
    3. Semantic: FIFO work queue; the front entity absorbs remaining entities
       of the same type whose hashed description vectors have cosine >= 0.92

Clustering is deliberately greedy and order-sensitive; reordering the input
can change which entities merge.

Relations are remapped through an alias map (normalized names and aliases of
the surviving entities) and accumulated per (source id, target id, type).

Example:
    >>> graph = EntityResolver().resolve(extractions, document_id="doc-1")
    >>> print(f"{len(graph.nodes)} nodes, {len(graph.edges)} edges")
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from graphen_kg.types import (
    ChunkExtractionResult,
    ExtractedEntity,
    GraphEdge,
    GraphNode,
    ResolvedGraph,
)
from graphen_kg.types.documents import utc_now
from graphen_kg.utils.similarity import description_similarity, name_similarity
from graphen_kg.utils.text import SEGMENT_SEPARATOR, merge_text_segments, normalize_name

logger = logging.getLogger(__name__)

UNKNOWN_TYPE = "Unknown"
DEFAULT_RELATION_TYPE = "RELATED_TO"
FUZZY_MATCH_THRESHOLD = 0.85
SEMANTIC_MATCH_THRESHOLD = 0.92


def _add_unique(target: list[str], values: list[str]) -> None:
    """Ordered set union in place."""
    for value in values:
        if value not in target:
            target.append(value)


@dataclass(eq=False)
class _WorkingEntity:
    """Mutable canonical-entity candidate; never escapes resolve()."""

    id: str
    name: str
    type: str
    description: str
    confidence: float
    properties: dict[str, Any] = field(default_factory=dict)
    source_document_ids: list[str] = field(default_factory=list)
    source_chunk_ids: list[str] = field(default_factory=list)
    aliases: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_mention(
        cls, entity: ExtractedEntity, document_id: str, chunk_id: str
    ) -> "_WorkingEntity":
        name = entity.name.strip()
        return cls(
            id=str(uuid4()),
            name=name,
            type=entity.type.strip() or UNKNOWN_TYPE,
            description=entity.description.strip(),
            confidence=entity.confidence,
            source_document_ids=[document_id],
            source_chunk_ids=[chunk_id],
            aliases=[name],
        )

    def absorb(self, other: "_WorkingEntity") -> None:
        """
        Merge ``other`` into this entity. This entity's id and created_at survive.

        - name: the longer of the two (ties keep ours)
        - type: ours, unless ours is "Unknown"
        - description: distinct non-empty segments joined with " | "
        - confidence: mean of the two
        - provenance and aliases: ordered union
        """
        if len(other.name) > len(self.name):
            self.name = other.name
        if self.type == UNKNOWN_TYPE and other.type != UNKNOWN_TYPE:
            self.type = other.type
        self.description = merge_text_segments(self.description, other.description)
        self.confidence = (self.confidence + other.confidence) / 2
        _add_unique(self.source_document_ids, other.source_document_ids)
        _add_unique(self.source_chunk_ids, other.source_chunk_ids)
        _add_unique(self.aliases, other.aliases)
        self.updated_at = utc_now()

    def to_node(self) -> GraphNode:
        return GraphNode(
            id=self.id,
            name=self.name,
            type=self.type,
            description=self.description,
            properties=dict(self.properties),
            aliases=list(self.aliases),
            source_document_ids=list(self.source_document_ids),
            source_chunk_ids=list(self.source_chunk_ids),
            confidence=self.confidence,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class EntityResolver:
    """
    Three-stage entity resolution for a single document.

    Args:
        fuzzy_threshold: Minimum blended name score for the fuzzy stage
        semantic_threshold: Minimum description cosine for the semantic stage
    """

    def __init__(
        self,
        fuzzy_threshold: float = FUZZY_MATCH_THRESHOLD,
        semantic_threshold: float = SEMANTIC_MATCH_THRESHOLD,
    ) -> None:
        self.fuzzy_threshold = fuzzy_threshold
        self.semantic_threshold = semantic_threshold

    def resolve(
        self,
        extractions: list[ChunkExtractionResult],
        document_id: str,
    ) -> ResolvedGraph:
        """
        Resolve all chunk extractions of one document.

        Args:
            extractions: Per-chunk results, in chunk order
            document_id: Owning document (recorded as provenance)

        Returns:
            ResolvedGraph whose edges only reference returned nodes
        """
        mentions: list[_WorkingEntity] = []
        for item in extractions:
            for entity in item.result.entities:
                mentions.append(_WorkingEntity.from_mention(entity, document_id, item.chunk_id))

        exact = self._exact_match(mentions)
        fuzzy = self._fuzzy_match(exact)
        entities = self._semantic_match(fuzzy)

        alias_map = self._build_alias_map(entities)
        edges = self._remap_edges(extractions, alias_map, document_id)

        logger.debug(
            f"Resolved {len(mentions)} mentions -> {len(exact)} exact -> "
            f"{len(fuzzy)} fuzzy -> {len(entities)} entities, {len(edges)} edges"
        )
        return ResolvedGraph(nodes=[e.to_node() for e in entities], edges=edges)

    # -------------------------------------------------------------------------
    # Clustering Stages
    # -------------------------------------------------------------------------

    def _exact_match(self, entities: list[_WorkingEntity]) -> list[_WorkingEntity]:
        grouped: dict[str, _WorkingEntity] = {}
        for entity in entities:
            key = normalize_name(entity.name)
            existing = grouped.get(key)
            if existing is None:
                grouped[key] = entity
            else:
                existing.absorb(entity)
        return list(grouped.values())

    def _fuzzy_match(self, entities: list[_WorkingEntity]) -> list[_WorkingEntity]:
        accepted: list[_WorkingEntity] = []
        for entity in entities:
            target = next(
                (
                    existing
                    for existing in accepted
                    if existing.type == entity.type
                    and name_similarity(existing.name, entity.name) >= self.fuzzy_threshold
                ),
                None,
            )
            if target is None:
                accepted.append(entity)
            else:
                target.absorb(entity)
        return accepted

    def _semantic_match(self, entities: list[_WorkingEntity]) -> list[_WorkingEntity]:
        remaining = deque(entities)
        result: list[_WorkingEntity] = []

        while remaining:
            current = remaining.popleft()
            matched = True
            # Absorbing changes current.description, so rescan until a pass is clean
            while matched:
                matched = False
                for candidate in reversed(list(remaining)):
                    if candidate.type != current.type:
                        continue
                    score = description_similarity(current.description, candidate.description)
                    if score >= self.semantic_threshold:
                        current.absorb(candidate)
                        remaining.remove(candidate)
                        matched = True
            result.append(current)

        return result

    # -------------------------------------------------------------------------
    # Relation Remapping
    # -------------------------------------------------------------------------

    def _build_alias_map(self, entities: list[_WorkingEntity]) -> dict[str, str]:
        """Normalized name/alias -> entity id. The first entity to claim a key keeps it."""
        alias_map: dict[str, str] = {}
        for entity in entities:
            for alias in [entity.name, *entity.aliases]:
                alias_map.setdefault(normalize_name(alias), entity.id)
        return alias_map

    def _remap_edges(
        self,
        extractions: list[ChunkExtractionResult],
        alias_map: dict[str, str],
        document_id: str,
    ) -> list[GraphEdge]:
        edges: dict[tuple[str, str, str], GraphEdge] = {}
        mention_counts: dict[tuple[str, str, str], int] = {}
        dropped = 0

        for item in extractions:
            for relation in item.result.relations:
                source_id = alias_map.get(normalize_name(relation.source))
                target_id = alias_map.get(normalize_name(relation.target))
                if source_id is None or target_id is None or source_id == target_id:
                    dropped += 1
                    continue

                relation_type = relation.type.strip() or DEFAULT_RELATION_TYPE
                key = (source_id, target_id, relation_type)
                description = relation.description.strip()

                edge = edges.get(key)
                if edge is None:
                    edges[key] = GraphEdge(
                        id=str(uuid4()),
                        source_node_id=source_id,
                        target_node_id=target_id,
                        relation_type=relation_type,
                        description=description,
                        weight=1.0,
                        source_document_ids=[document_id],
                        confidence=relation.confidence,
                    )
                    mention_counts[key] = 1
                    continue

                count = mention_counts[key]
                edge.confidence = (edge.confidence * count + relation.confidence) / (count + 1)
                mention_counts[key] = count + 1
                if description and description not in edge.description:
                    edge.description = (
                        f"{edge.description}{SEGMENT_SEPARATOR}{description}"
                        if edge.description
                        else description
                    )

        if dropped:
            logger.debug(f"Dropped {dropped} relation mentions (unresolved endpoint or self-loop)")
        return list(edges.values())
