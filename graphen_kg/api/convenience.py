"""
Convenience Functions

Caller-boundary helpers: validate an upload, register the document, run the
pipeline, and record failures on the stored document.

Example:
    >>> from graphen_kg import ingest_file
    >>> async with ParquetGraphStore("./graph") as store:
    ...     result = await ingest_file("report.pdf", store, llm, embeddings)
    >>> print(result.document.metadata.entity_count)
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

from graphen_kg.config import GraphenConfig
from graphen_kg.ingestion.parsing import validate_upload
from graphen_kg.ingestion.pipeline import DocumentPipeline, StatusListener
from graphen_kg.types import Document, DocumentPipelineResult, DocumentStatus, ProcessOptions

if TYPE_CHECKING:
    from graphen_kg.providers.base import EmbeddingProvider, LLMProvider
    from graphen_kg.providers.dispatcher import CallDispatcher
    from graphen_kg.storage.base import GraphStore

logger = logging.getLogger(__name__)


async def ingest_file(
    path: str | Path,
    store: "GraphStore",
    llm: "LLMProvider",
    embeddings: "EmbeddingProvider",
    config: GraphenConfig | None = None,
    *,
    options: ProcessOptions | None = None,
    document_id: str | None = None,
    mime_type: str | None = None,
    dispatcher: "CallDispatcher | None" = None,
    on_status: StatusListener | None = None,
) -> DocumentPipelineResult:
    """
    Ingest one file into a graph store.

    The document is saved with status ``uploading`` before processing. If the
    pipeline fails, it is saved again with status ``error`` and the error
    message, and the original exception is re-raised.

    Args:
        path: File to ingest (.pdf, .md or .txt)
        store: Initialized graph store
        llm: Extraction provider
        embeddings: Embedding provider
        config: Configuration (default: GraphenConfig())
        options: Override text / forced rebuild
        document_id: Reuse an id (e.g. to resume from the cache); new uuid if omitted
        mime_type: Declared MIME type, checked against the extension
        dispatcher: Shared CallDispatcher
        on_status: Status listener attached for this run only

    Raises:
        UploadValidationError: The file failed validation (nothing is saved)
    """
    config = config or GraphenConfig()
    path = Path(path)
    content = await asyncio.to_thread(path.read_bytes)
    upload = validate_upload(
        path.name, content, declared_mime=mime_type, max_size=config.max_upload_size
    )

    document = Document(
        id=document_id or str(uuid4()),
        filename=upload.filename,
        file_type=upload.file_type,
        file_size=upload.size,
    )
    await store.save_document(document)
    logger.info(f"Registered document {document.id} ({document.filename}, {upload.size} bytes)")

    pipeline = DocumentPipeline(store, llm, embeddings, config, dispatcher=dispatcher)
    if on_status is not None:
        pipeline.on_status(on_status)

    try:
        return await pipeline.process(document, content, options)
    except Exception as e:
        failed = document.model_copy(
            update={"status": DocumentStatus.ERROR, "error_message": str(e) or type(e).__name__}
        )
        try:
            await store.save_document(failed)
        except Exception as save_error:
            logger.error(f"Could not record failure for {document.id}: {save_error}")
        raise


def ingest_file_sync(
    path: str | Path,
    store: "GraphStore",
    llm: "LLMProvider",
    embeddings: "EmbeddingProvider",
    config: GraphenConfig | None = None,
    **kwargs,
) -> DocumentPipelineResult:
    """Synchronous ingest_file() for scripts; initializes and closes the store."""

    async def _run() -> DocumentPipelineResult:
        async with store:
            return await ingest_file(path, store, llm, embeddings, config, **kwargs)

    return asyncio.run(_run())
