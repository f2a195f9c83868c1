"""
Chunk Splitter

Deterministic character-based splitting with overlap, using LangChain's
RecursiveCharacterTextSplitter (paragraph > line > word > character).

Algorithm:
    1. Split text with the configured size/overlap
    2. Locate each chunk in the source via the splitter's start index
    3. Derive 1-based start/end line numbers from that offset
    4. Assign fresh ids and contiguous zero-based indices

Example:
    >>> chunks = chunk_document("doc-1", text, chunk_size=1500, chunk_overlap=200)
    >>> [c.index for c in chunks]
    [0, 1, 2]
"""

from __future__ import annotations

from uuid import uuid4

from langchain_text_splitters import RecursiveCharacterTextSplitter

from graphen_kg.errors import ConfigurationError
from graphen_kg.types import ChunkMetadata, DocumentChunk

_SEPARATORS = ["\n\n", "\n", " ", ""]


def _build_splitter(chunk_size: int, chunk_overlap: int) -> RecursiveCharacterTextSplitter:
    if chunk_size <= 0:
        raise ConfigurationError(
            f"chunk_size must be positive, got {chunk_size}",
            {"chunk_size": chunk_size},
        )
    if not 0 <= chunk_overlap < chunk_size:
        raise ConfigurationError(
            f"chunk_overlap must be in [0, {chunk_size}), got {chunk_overlap}",
            {"chunk_size": chunk_size, "chunk_overlap": chunk_overlap},
        )
    return RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=_SEPARATORS,
        add_start_index=True,
        length_function=len,
    )


def split_text(text: str, chunk_size: int, chunk_overlap: int) -> list[str]:
    """Split ``text`` into overlapping pieces. Blank text yields no pieces."""
    splitter = _build_splitter(chunk_size, chunk_overlap)
    if not text.strip():
        return []
    return splitter.split_text(text)


def chunk_document(
    document_id: str,
    text: str,
    *,
    chunk_size: int,
    chunk_overlap: int,
) -> list[DocumentChunk]:
    """
    Split a document's text into DocumentChunk objects.

    Args:
        document_id: Owning document
        text: Full document text
        chunk_size: Target chunk length in characters
        chunk_overlap: Characters shared with the previous chunk

    Returns:
        Chunks with contiguous indices and line metadata

    Raises:
        ConfigurationError: If chunk_size <= 0 or overlap is outside [0, chunk_size)
    """
    splitter = _build_splitter(chunk_size, chunk_overlap)
    if not text.strip():
        return []

    chunks: list[DocumentChunk] = []
    for index, piece in enumerate(splitter.create_documents([text])):
        start = piece.metadata.get("start_index", -1)
        metadata = ChunkMetadata()
        if start >= 0:
            start_line = text.count("\n", 0, start) + 1
            metadata = ChunkMetadata(
                start_line=start_line,
                end_line=start_line + piece.page_content.count("\n"),
            )
        chunks.append(
            DocumentChunk(
                id=str(uuid4()),
                document_id=document_id,
                content=piece.page_content,
                index=index,
                metadata=metadata,
            )
        )
    return chunks
