"""
Document and Chunk Types

Documents are uploaded files; chunks are contiguous, ordered slices of a
document's text.

Storage Models:
    - Document: Uploaded document with lifecycle status and metadata
    - DocumentChunk: Persisted chunk with optional embedding

Enums:
    - DocumentStatus: uploading -> parsing -> extracting -> embedding -> completed | error
    - DocumentFileType: pdf, md, txt
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class DocumentStatus(str, Enum):
    """Lifecycle status of a document. Terminal states: completed, error."""

    UPLOADING = "uploading"
    PARSING = "parsing"
    EXTRACTING = "extracting"
    EMBEDDING = "embedding"
    COMPLETED = "completed"
    ERROR = "error"


class DocumentFileType(str, Enum):
    """Supported upload formats."""

    PDF = "pdf"
    MARKDOWN = "md"
    TEXT = "txt"


class DocumentMetadata(BaseModel):
    """Optional counters filled in by parsing and by the pipeline's save phase."""

    page_count: int | None = None
    word_count: int | None = None
    chunk_count: int | None = None
    entity_count: int | None = None
    edge_count: int | None = None


class Document(BaseModel):
    """
    An uploaded source document.

    Attributes:
        id: Unique identifier (also namespaces the on-disk cache)
        filename: Sanitized original filename
        file_type: Format used to select the parser
        file_size: Size of the upload in bytes
        status: Current lifecycle status
        uploaded_at: Upload timestamp
        parsed_at: Set when the pipeline completes
        metadata: Page/word/chunk/entity/edge counters
        error_message: Set by the caller when processing fails
    """

    id: str
    filename: str
    file_type: DocumentFileType
    file_size: int = 0
    status: DocumentStatus = DocumentStatus.UPLOADING
    uploaded_at: datetime = Field(default_factory=utc_now)
    parsed_at: datetime | None = None
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    error_message: str | None = None


class ChunkMetadata(BaseModel):
    """Where a chunk came from in the source text."""

    page_number: int | None = None
    start_line: int | None = None
    end_line: int | None = None


class DocumentChunk(BaseModel):
    """
    A contiguous slice of a document's text.

    ``index`` is zero-based and contiguous per document; later stages rely on
    it for stable ordering of cache snapshots, extraction results, and
    persisted chunks. Only ``embedding`` is attached after creation.
    """

    id: str
    document_id: str
    content: str
    index: int = Field(..., ge=0)
    embedding: list[float] | None = None
    metadata: ChunkMetadata = Field(default_factory=ChunkMetadata)
