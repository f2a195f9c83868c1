"""Shared fixtures: in-memory graph store and scripted providers."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from graphen_kg.config import GraphenConfig
from graphen_kg.providers.base import EmbeddingProvider, LLMProvider
from graphen_kg.storage.base import GraphStore
from graphen_kg.types import (
    Document,
    DocumentChunk,
    DocumentFileType,
    ExtractedEntity,
    ExtractedRelation,
    ExtractionResult,
    GraphEdge,
    GraphNode,
    ResolvedGraph,
)


class FakeGraphStore(GraphStore):
    """Dict-backed GraphStore that records the order of save calls."""

    def __init__(self) -> None:
        self.documents: dict[str, Document] = {}
        self.chunks: dict[str, DocumentChunk] = {}
        self.nodes: dict[str, GraphNode] = {}
        self.edges: dict[str, GraphEdge] = {}
        self.node_embeddings: dict[str, list[float]] = {}
        self.calls: list[str] = []
        self.initialized = False

    async def initialize(self) -> None:
        self.initialized = True

    async def close(self) -> None:
        self.initialized = False

    async def save_document(self, document: Document) -> None:
        self.calls.append("save_document")
        self.documents[document.id] = document.model_copy(deep=True)

    async def save_chunks(self, chunks: list[DocumentChunk]) -> None:
        self.calls.append("save_chunks")
        for chunk in chunks:
            self.chunks[chunk.id] = chunk

    async def save_nodes(self, nodes: list[GraphNode]) -> None:
        self.calls.append("save_nodes")
        for node in nodes:
            self.nodes[node.id] = node

    async def save_edges(self, edges: list[GraphEdge]) -> None:
        self.calls.append("save_edges")
        for edge in edges:
            self.edges[edge.id] = edge

    async def save_node_embedding(self, node_id: str, embedding: list[float]) -> None:
        self.calls.append("save_node_embedding")
        self.node_embeddings[node_id] = embedding

    async def get_document(self, document_id: str) -> Document | None:
        return self.documents.get(document_id)

    async def get_documents(self) -> list[Document]:
        return sorted(self.documents.values(), key=lambda d: d.uploaded_at, reverse=True)

    async def get_chunks_by_document(self, document_id: str) -> list[DocumentChunk]:
        chunks = [c for c in self.chunks.values() if c.document_id == document_id]
        return sorted(chunks, key=lambda c: c.index)

    async def get_nodes(self, document_id: str | None = None) -> list[GraphNode]:
        return [
            n for n in self.nodes.values()
            if document_id is None or document_id in n.source_document_ids
        ]

    async def get_edges(self, document_id: str | None = None) -> list[GraphEdge]:
        return [
            e for e in self.edges.values()
            if document_id is None or document_id in e.source_document_ids
        ]

    async def get_node_embedding(self, node_id: str) -> list[float] | None:
        return self.node_embeddings.get(node_id)

    async def count_nodes(self) -> int:
        return len(self.nodes)

    async def count_edges(self) -> int:
        return len(self.edges)


class FakeLLM(LLMProvider):
    """
    Scripted extraction provider.

    ``responder`` maps chunk text to an ExtractionResult (or raises); every
    extract() call is recorded in ``calls``.
    """

    def __init__(
        self,
        responder: Callable[[str], ExtractionResult] | None = None,
        tokens_per_char: float | None = None,
    ) -> None:
        self.responder = responder or (lambda text: ExtractionResult())
        self.tokens_per_char = tokens_per_char
        self.calls: list[str] = []

    @property
    def model_name(self) -> str:
        return "fake-llm"

    async def generate_structured(self, prompt: str, schema: type, *, system: str | None = None) -> Any:
        return schema()

    async def extract(self, text: str) -> ExtractionResult:
        self.calls.append(text)
        return self.responder(text)

    def estimate_tokens(self, text: str) -> int | None:
        if self.tokens_per_char is None:
            return None
        return int(len(text) * self.tokens_per_char)


class FakeEmbeddings(EmbeddingProvider):
    """Deterministic 3-d vectors derived from the text."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    @property
    def dimensions(self) -> int:
        return 3

    @property
    def model_name(self) -> str:
        return "fake-embeddings"

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        return [float(len(text)), float(text.count(" ")), 1.0]


def entity(name: str, type: str = "Organization", description: str = "", confidence: float = 0.9) -> ExtractedEntity:
    return ExtractedEntity(name=name, type=type, description=description, confidence=confidence)


def relation(
    source: str,
    target: str,
    type: str = "RELATED_TO",
    description: str = "",
    confidence: float = 0.8,
) -> ExtractedRelation:
    return ExtractedRelation(
        source=source, target=target, type=type, description=description, confidence=confidence
    )


def node_named(graph: ResolvedGraph, name: str) -> GraphNode | None:
    """Node whose name or aliases include ``name``."""
    return next((n for n in graph.nodes if n.name == name or name in n.aliases), None)


@pytest.fixture
def config(tmp_path: Path) -> GraphenConfig:
    """Fast config: no backoff, generous throttle, small chunks, tmp cache."""
    return GraphenConfig(
        cache_dir=str(tmp_path / "cache"),
        storage_path=str(tmp_path / "graph"),
        chunk_size=200,
        chunk_overlap=20,
        llm_retry_delay=0.0,
        llm_requests_per_minute=10_000,
        llm_timeout=5.0,
    )


@pytest.fixture
def store() -> FakeGraphStore:
    return FakeGraphStore()


@pytest.fixture
def embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture
def make_document() -> Callable[..., Document]:
    def _make(document_id: str = "doc-1", file_type: DocumentFileType = DocumentFileType.TEXT) -> Document:
        return Document(id=document_id, filename=f"{document_id}.{file_type.value}", file_type=file_type)

    return _make
