"""
Pipeline Types

Inputs, outputs, and progress notifications of the DocumentPipeline.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from graphen_kg.types.documents import Document, DocumentChunk
from graphen_kg.types.graph import ResolvedGraph


class PipelinePhase(str, Enum):
    """Phases of document processing, in execution order."""

    PARSING = "parsing"
    CHUNKING = "chunking"
    EXTRACTING = "extracting"
    RESOLVING = "resolving"
    EMBEDDING = "embedding"
    SAVING = "saving"
    COMPLETED = "completed"
    ERROR = "error"


# Progress percentage reported at the start of each phase
PHASE_PROGRESS: dict[PipelinePhase, int] = {
    PipelinePhase.PARSING: 0,
    PipelinePhase.CHUNKING: 20,
    PipelinePhase.EXTRACTING: 30,
    PipelinePhase.RESOLVING: 70,
    PipelinePhase.EMBEDDING: 80,
    PipelinePhase.SAVING: 90,
    PipelinePhase.COMPLETED: 100,
    PipelinePhase.ERROR: 100,
}


class PipelineStatusEvent(BaseModel):
    """Fire-and-forget progress notification."""

    document_id: str
    phase: PipelinePhase
    progress: int = Field(..., ge=0, le=100)
    message: str | None = None


class ProcessOptions(BaseModel):
    """
    Per-call options for DocumentPipeline.process().

    Attributes:
        raw_text: Override text; skips parsing and rebuilds chunks from it
        force_rebuild: Ignore and overwrite all cached chunks and extractions
    """

    raw_text: str | None = None
    force_rebuild: bool = False


class DocumentPipelineResult(BaseModel):
    """Everything produced by one successful pipeline run."""

    document: Document
    chunks: list[DocumentChunk]
    resolved_graph: ResolvedGraph
    estimated_tokens: int
