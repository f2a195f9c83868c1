"""
Type Definitions

Pydantic models for all data structures.

Document Models:
    - Document, DocumentMetadata, DocumentStatus, DocumentFileType
    - DocumentChunk, ChunkMetadata

Extraction Models (per-chunk mentions):
    - ExtractedEntity, ExtractedRelation, ExtractionResult, ChunkExtractionResult

Graph Models (resolution output):
    - GraphNode, GraphEdge, ResolvedGraph

Pipeline Models:
    - PipelinePhase, PipelineStatusEvent, ProcessOptions, DocumentPipelineResult

All types are:
    - Pydantic BaseModel subclasses (or str enums)
    - Serializable to/from JSON (the on-disk cache uses model_dump(mode="json"))
"""

from graphen_kg.types.documents import (
    ChunkMetadata,
    Document,
    DocumentChunk,
    DocumentFileType,
    DocumentMetadata,
    DocumentStatus,
)
from graphen_kg.types.extraction import (
    ChunkExtractionResult,
    ExtractedEntity,
    ExtractedRelation,
    ExtractionResult,
)
from graphen_kg.types.graph import GraphEdge, GraphNode, ResolvedGraph
from graphen_kg.types.pipeline import (
    PHASE_PROGRESS,
    DocumentPipelineResult,
    PipelinePhase,
    PipelineStatusEvent,
    ProcessOptions,
)

__all__ = [
    # Document Models
    "Document",
    "DocumentMetadata",
    "DocumentStatus",
    "DocumentFileType",
    "DocumentChunk",
    "ChunkMetadata",
    # Extraction Models
    "ExtractedEntity",
    "ExtractedRelation",
    "ExtractionResult",
    "ChunkExtractionResult",
    # Graph Models
    "GraphNode",
    "GraphEdge",
    "ResolvedGraph",
    # Pipeline Models
    "PipelinePhase",
    "PHASE_PROGRESS",
    "PipelineStatusEvent",
    "ProcessOptions",
    "DocumentPipelineResult",
]
