"""
Document Pipeline

Drives one document through strictly sequential phases:

    parsing (0%) -> chunking (20%) -> extracting (30%) -> resolving (70%)
    -> embedding (80%) -> saving (90%) -> completed (100%)

Any failure emits an ``error`` event (100%, with the error message) and is
re-raised unchanged; marking the persisted document as failed is the
caller's job (see graphen_kg.api.convenience.ingest_file).

Chunks and per-chunk extractions are cached on disk per document, so a
rerun only extracts the chunks that have no cached result. Every LLM and
embedding call goes through a CallDispatcher.

Example:
    >>> pipeline = DocumentPipeline(store, llm, embeddings, config=GraphenConfig())
    >>> unsubscribe = pipeline.on_status(lambda e: print(e.phase, e.progress))
    >>> result = await pipeline.process(document, file_bytes)
    >>> print(f"{len(result.resolved_graph.nodes)} nodes from {len(result.chunks)} chunks")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from graphen_kg.config import GraphenConfig
from graphen_kg.errors import DocumentTooLargeError
from graphen_kg.ingestion.cache import PipelineCache
from graphen_kg.ingestion.chunking import chunk_document
from graphen_kg.ingestion.parsing import ParsedDocument, count_words, get_parser
from graphen_kg.ingestion.resolution import EntityResolver
from graphen_kg.providers.dispatcher import CallDispatcher
from graphen_kg.types import (
    PHASE_PROGRESS,
    ChunkExtractionResult,
    Document,
    DocumentChunk,
    DocumentPipelineResult,
    DocumentStatus,
    PipelinePhase,
    PipelineStatusEvent,
    ProcessOptions,
    ResolvedGraph,
)
from graphen_kg.types.documents import utc_now
from graphen_kg.utils.concurrency import run_with_concurrency
from graphen_kg.utils.token_count import estimate_tokens_by_length

if TYPE_CHECKING:
    from graphen_kg.providers.base import EmbeddingProvider, LLMProvider
    from graphen_kg.storage.base import GraphStore

logger = logging.getLogger(__name__)

StatusListener = Callable[[PipelineStatusEvent], None]
TokenEstimator = Callable[[str], int]


def node_embedding_text(name: str, description: str) -> str:
    """Text embedded for a graph node."""
    return f"{name}\n{description}"


class DocumentPipeline:
    """
    Phased ingestion of a single document into graph nodes and edges.

    The pipeline holds no per-document state between calls, so separate
    documents may be processed concurrently with one instance.

    Args:
        store: Persistence collaborator
        llm: Extraction provider
        embeddings: Embedding provider
        config: Configuration (validated on construction)
        dispatcher: Shared CallDispatcher (default: built from config)
        token_estimator: Per-chunk token estimate for the size guard
            (default: the LLM's estimate_tokens, then ceil(len / 4))
        resolver: Entity resolution engine (default: EntityResolver())
    """

    def __init__(
        self,
        store: "GraphStore",
        llm: "LLMProvider",
        embeddings: "EmbeddingProvider",
        config: GraphenConfig | None = None,
        *,
        dispatcher: CallDispatcher | None = None,
        token_estimator: TokenEstimator | None = None,
        resolver: EntityResolver | None = None,
    ) -> None:
        self.config = (config or GraphenConfig()).validate()
        self.store = store
        self.llm = llm
        self.embeddings = embeddings
        self.dispatcher = dispatcher or CallDispatcher.from_config(self.config)
        self.resolver = resolver or EntityResolver()
        self.cache = PipelineCache(self.config.cache_dir)
        self._token_estimator = token_estimator
        self._listeners: list[StatusListener] = []

    # -------------------------------------------------------------------------
    # Status Events
    # -------------------------------------------------------------------------

    def on_status(self, listener: StatusListener) -> Callable[[], None]:
        """
        Register a status listener.

        Returns:
            A callable that unregisters the listener
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, document_id: str, phase: PipelinePhase, message: str | None = None) -> None:
        event = PipelineStatusEvent(
            document_id=document_id,
            phase=phase,
            progress=PHASE_PROGRESS[phase],
            message=message,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Status listener failed for {document_id} ({phase.value}): {e}")

    # -------------------------------------------------------------------------
    # Entry Point
    # -------------------------------------------------------------------------

    async def process(
        self,
        document: Document,
        file_bytes: bytes = b"",
        options: ProcessOptions | None = None,
    ) -> DocumentPipelineResult:
        """
        Run all phases for one document.

        Args:
            document: Document to process (its status is updated in place)
            file_bytes: Raw upload; ignored when options.raw_text is set
            options: Override text and/or forced rebuild

        Returns:
            DocumentPipelineResult with the saved document, chunks and graph

        Raises:
            DocumentTooLargeError: Size guard tripped (before any extraction)
            ParseError: The format adapter could not produce text
            Exception: Any extraction/embedding/storage failure, unchanged
        """
        options = options or ProcessOptions()
        rebuild = options.force_rebuild or options.raw_text is not None

        try:
            self._emit(document.id, PipelinePhase.PARSING)
            document.status = DocumentStatus.PARSING
            parsed: ParsedDocument | None = None
            if options.raw_text is not None:
                text = options.raw_text
            else:
                parser = get_parser(document.file_type)
                parsed = await asyncio.to_thread(parser.parse, file_bytes)
                text = parsed.text
            logger.info(f"Parsed {document.filename}: {len(text)} characters")

            self._emit(document.id, PipelinePhase.CHUNKING)
            if rebuild:
                await self.cache.clear(document.id)
            chunks = await self._load_or_create_chunks(document.id, text, rebuild=rebuild)

            estimated_tokens = sum(self._estimate_tokens(c.content) for c in chunks)
            self._guard_document_size(len(chunks), estimated_tokens)

            self._emit(
                document.id, PipelinePhase.EXTRACTING, f"Extracting from {len(chunks)} chunks"
            )
            document.status = DocumentStatus.EXTRACTING
            extractions = await self._load_or_extract(document.id, chunks)

            self._emit(document.id, PipelinePhase.RESOLVING)
            resolved_graph = self.resolver.resolve(extractions, document.id)

            self._emit(
                document.id,
                PipelinePhase.EMBEDDING,
                f"Embedding {len(resolved_graph.nodes)} nodes and {len(chunks)} chunks",
            )
            document.status = DocumentStatus.EMBEDDING
            await self._generate_embeddings(resolved_graph, chunks)

            self._emit(document.id, PipelinePhase.SAVING)
            saved = await self._save(document, chunks, resolved_graph, parsed, text)

            self._emit(document.id, PipelinePhase.COMPLETED)
            logger.info(
                f"Completed {document.filename}: {len(chunks)} chunks, "
                f"{len(resolved_graph.nodes)} nodes, {len(resolved_graph.edges)} edges"
            )
            return DocumentPipelineResult(
                document=saved,
                chunks=chunks,
                resolved_graph=resolved_graph,
                estimated_tokens=estimated_tokens,
            )
        except Exception as e:
            logger.error(f"Pipeline failed for {document.id}: {e}")
            self._emit(document.id, PipelinePhase.ERROR, str(e) or type(e).__name__)
            raise

    # -------------------------------------------------------------------------
    # Chunking + Size Guard
    # -------------------------------------------------------------------------

    async def _load_or_create_chunks(
        self, document_id: str, text: str, *, rebuild: bool
    ) -> list[DocumentChunk]:
        if not rebuild:
            cached = await self.cache.load_chunks(document_id)
            if cached and self._chunks_usable(document_id, cached):
                logger.debug(f"Reusing {len(cached)} cached chunks for {document_id}")
                return cached

        chunks = chunk_document(
            document_id,
            text,
            chunk_size=self.config.chunk_size,
            chunk_overlap=self.config.chunk_overlap,
        )
        await self.cache.save_chunks(document_id, chunks)
        return chunks

    @staticmethod
    def _chunks_usable(document_id: str, chunks: list[DocumentChunk]) -> bool:
        """Cached chunks must belong to the document and have indices 0..n-1."""
        return all(
            chunk.document_id == document_id and chunk.index == position
            for position, chunk in enumerate(chunks)
        )

    def _estimate_tokens(self, text: str) -> int:
        if self._token_estimator is not None:
            return self._token_estimator(text)
        estimate = getattr(self.llm, "estimate_tokens", None)
        if callable(estimate):
            value = estimate(text)
            if isinstance(value, int):
                return value
        return estimate_tokens_by_length(text)

    def _guard_document_size(self, chunk_count: int, estimated_tokens: int) -> None:
        max_chunks = self.config.max_chunks_per_document
        if chunk_count > max_chunks:
            raise DocumentTooLargeError(
                f"Chunk count limit exceeded: {chunk_count} > {max_chunks}. "
                "Please split the document.",
                {"chunk_count": chunk_count, "limit": max_chunks},
            )

        max_tokens = self.config.max_estimated_tokens
        if estimated_tokens > max_tokens:
            raise DocumentTooLargeError(
                f"Estimated token usage too high: {estimated_tokens} > {max_tokens}. "
                "Please split or trim the document.",
                {"estimated_tokens": estimated_tokens, "limit": max_tokens},
            )

    # -------------------------------------------------------------------------
    # Extraction
    # -------------------------------------------------------------------------

    async def _load_or_extract(
        self, document_id: str, chunks: list[DocumentChunk]
    ) -> list[ChunkExtractionResult]:
        chunk_ids = {chunk.id for chunk in chunks}
        results: dict[str, ChunkExtractionResult] = {
            item.chunk_id: item
            for item in await self.cache.load_extractions(document_id)
            if item.chunk_id in chunk_ids
        }
        pending = [chunk for chunk in chunks if chunk.id not in results]
        logger.info(
            f"Extraction for {document_id}: {len(results)} cached, {len(pending)} pending"
        )

        async def _extract(chunk: DocumentChunk, _index: int) -> None:
            result = await self.dispatcher.run(lambda: self.llm.extract(chunk.content))
            results[chunk.id] = ChunkExtractionResult(
                chunk_id=chunk.id,
                chunk_index=chunk.index,
                result=result,
            )
            logger.debug(
                f"Chunk {chunk.index}: {len(result.entities)} entities, "
                f"{len(result.relations)} relations"
            )
            await self.cache.save_extractions(document_id, list(results.values()))

        await run_with_concurrency(pending, _extract, self.config.extraction_concurrency)

        return sorted(results.values(), key=lambda item: item.chunk_index)

    # -------------------------------------------------------------------------
    # Embedding
    # -------------------------------------------------------------------------

    async def _generate_embeddings(
        self, resolved_graph: ResolvedGraph, chunks: list[DocumentChunk]
    ) -> None:
        width = self.config.embedding_concurrency

        async def _embed(text: str) -> list[float]:
            return await self.dispatcher.run(lambda: self.embeddings.embed_single(text))

        node_vectors = await run_with_concurrency(
            resolved_graph.nodes,
            lambda node, _i: _embed(node_embedding_text(node.name, node.description)),
            width,
        )
        for node, vector in zip(resolved_graph.nodes, node_vectors):
            node.embedding = vector

        chunk_vectors = await run_with_concurrency(
            chunks, lambda chunk, _i: _embed(chunk.content), width
        )
        for chunk, vector in zip(chunks, chunk_vectors):
            chunk.embedding = vector

    # -------------------------------------------------------------------------
    # Saving
    # -------------------------------------------------------------------------

    async def _save(
        self,
        document: Document,
        chunks: list[DocumentChunk],
        resolved_graph: ResolvedGraph,
        parsed: ParsedDocument | None,
        text: str,
    ) -> Document:
        metadata_update: dict[str, int] = {
            "chunk_count": len(chunks),
            "entity_count": len(resolved_graph.nodes),
            "edge_count": len(resolved_graph.edges),
            "word_count": parsed.word_count if parsed else count_words(text),
        }
        if parsed is not None and parsed.page_count is not None:
            metadata_update["page_count"] = parsed.page_count

        document.status = DocumentStatus.COMPLETED
        saved = document.model_copy(
            update={
                "status": DocumentStatus.COMPLETED,
                "parsed_at": utc_now(),
                "metadata": document.metadata.model_copy(update=metadata_update),
                "error_message": None,
            }
        )

        await self.store.save_document(saved)
        await self.store.save_chunks(sorted(chunks, key=lambda c: c.index))
        await self.store.save_nodes(resolved_graph.nodes)
        await self.store.save_edges(resolved_graph.edges)
        for node in resolved_graph.nodes:
            if node.embedding:
                await self.store.save_node_embedding(node.id, node.embedding)

        return saved
