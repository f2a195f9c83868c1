"""Tests for ParquetGraphStore against real Parquet files."""

import json
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from graphen_kg.config import GraphenConfig
from graphen_kg.storage import ParquetGraphStore
from graphen_kg.types import (
    Document,
    DocumentChunk,
    DocumentMetadata,
    DocumentStatus,
    GraphEdge,
    GraphNode,
)


@pytest_asyncio.fixture
async def parquet_store(tmp_path):
    store = ParquetGraphStore(tmp_path / "graph", GraphenConfig(embedding_dimensions=3))
    await store.initialize()
    yield store
    await store.close()


def make_node(node_id: str, name: str, document_ids: list[str]) -> GraphNode:
    return GraphNode(
        id=node_id,
        name=name,
        type="Organization",
        description=f"{name} description",
        aliases=[name],
        source_document_ids=document_ids,
        source_chunk_ids=[f"{d}-chunk-0" for d in document_ids],
        confidence=0.9,
        properties={"ticker": name[:3].upper()},
    )


class TestInitialize:
    """Store setup."""

    @pytest.mark.asyncio
    async def test_metadata_written(self, parquet_store):
        """metadata.json records schema and embedding settings."""
        metadata = json.loads((parquet_store.store_path / "metadata.json").read_text())

        assert metadata["schema_version"] == ParquetGraphStore.SCHEMA_VERSION
        assert metadata["embedding_dimensions"] == 3

    @pytest.mark.asyncio
    async def test_empty_store_reads(self, parquet_store):
        """Reads on an empty store return nothing."""
        assert await parquet_store.get_documents() == []
        assert await parquet_store.get_document("missing") is None
        assert await parquet_store.get_chunks_by_document("missing") == []
        assert await parquet_store.get_nodes() == []
        assert await parquet_store.get_edges() == []
        assert await parquet_store.get_node_embedding("missing") is None
        assert await parquet_store.count_nodes() == 0
        assert await parquet_store.count_edges() == 0


class TestDocuments:
    """Document persistence."""

    @pytest.mark.asyncio
    async def test_round_trip(self, parquet_store):
        """Fields survive the trip through Parquet."""
        document = Document(
            id="doc-1",
            filename="report.txt",
            file_type="txt",
            file_size=42,
            metadata=DocumentMetadata(word_count=7, chunk_count=1),
        )
        await parquet_store.save_document(document)

        loaded = await parquet_store.get_document("doc-1")

        assert loaded.filename == "report.txt"
        assert loaded.file_size == 42
        assert loaded.status == DocumentStatus.UPLOADING
        assert loaded.parsed_at is None
        assert loaded.metadata.word_count == 7
        assert loaded.uploaded_at == document.uploaded_at

    @pytest.mark.asyncio
    async def test_latest_write_wins(self, parquet_store):
        """Saving the same id twice keeps the second version."""
        document = Document(id="doc-1", filename="a.txt", file_type="txt")
        await parquet_store.save_document(document)
        await parquet_store.save_document(
            document.model_copy(update={"status": DocumentStatus.ERROR, "error_message": "boom"})
        )

        loaded = await parquet_store.get_document("doc-1")
        documents = await parquet_store.get_documents()

        assert loaded.status == DocumentStatus.ERROR
        assert loaded.error_message == "boom"
        assert len(documents) == 1

    @pytest.mark.asyncio
    async def test_part_files_are_appended(self, parquet_store):
        """Each save is a new part file."""
        for i in range(3):
            await parquet_store.save_document(Document(id=f"doc-{i}", filename="a.txt", file_type="txt"))

        parts = list((parquet_store.store_path / "documents.parquet").glob("part-*.parquet"))
        assert len(parts) == 3

    @pytest.mark.asyncio
    async def test_documents_most_recent_first(self, parquet_store):
        """get_documents orders by upload time, newest first."""
        now = datetime.now(timezone.utc)
        await parquet_store.save_document(
            Document(id="old", filename="a.txt", file_type="txt", uploaded_at=now - timedelta(days=1))
        )
        await parquet_store.save_document(Document(id="new", filename="b.txt", file_type="txt", uploaded_at=now))

        assert [d.id for d in await parquet_store.get_documents()] == ["new", "old"]


class TestChunks:
    """Chunk persistence."""

    @pytest.mark.asyncio
    async def test_ordered_by_index(self, parquet_store):
        """Chunks are read back in index order with embeddings."""
        chunks = [
            DocumentChunk(id=f"doc-1-chunk-{i}", document_id="doc-1", content=f"c{i}", index=i, embedding=[float(i)] * 3)
            for i in (2, 0, 1)
        ]
        await parquet_store.save_chunks(chunks)
        await parquet_store.save_chunks(
            [DocumentChunk(id="doc-2-chunk-0", document_id="doc-2", content="other", index=0)]
        )

        loaded = await parquet_store.get_chunks_by_document("doc-1")

        assert [c.index for c in loaded] == [0, 1, 2]
        assert loaded[1].embedding == [1.0, 1.0, 1.0]
        other = await parquet_store.get_chunks_by_document("doc-2")
        assert other[0].embedding is None

    @pytest.mark.asyncio
    async def test_empty_list_writes_nothing(self, parquet_store):
        """No chunks, no part file."""
        await parquet_store.save_chunks([])

        assert not (parquet_store.store_path / "chunks.parquet").exists()


class TestGraph:
    """Node, edge and embedding persistence."""

    @pytest.mark.asyncio
    async def test_nodes_with_embeddings(self, parquet_store):
        """Saved embeddings are joined onto nodes."""
        await parquet_store.save_nodes([make_node("n1", "Apple", ["doc-1"]), make_node("n2", "Tim Cook", ["doc-1"])])
        await parquet_store.save_node_embedding("n1", [0.1, 0.2, 0.3])

        nodes = {n.id: n for n in await parquet_store.get_nodes()}

        assert nodes["n1"].embedding == pytest.approx([0.1, 0.2, 0.3])
        assert nodes["n2"].embedding is None
        assert nodes["n1"].properties == {"ticker": "APP"}
        assert nodes["n1"].aliases == ["Apple"]
        assert await parquet_store.get_node_embedding("n1") == pytest.approx([0.1, 0.2, 0.3])

    @pytest.mark.asyncio
    async def test_nodes_without_any_embeddings(self, parquet_store):
        """Nodes read fine before any embedding is saved."""
        await parquet_store.save_nodes([make_node("n1", "Apple", ["doc-1"])])

        nodes = await parquet_store.get_nodes()

        assert len(nodes) == 1
        assert nodes[0].embedding is None

    @pytest.mark.asyncio
    async def test_document_filter(self, parquet_store):
        """Nodes and edges filter by source document."""
        await parquet_store.save_nodes(
            [make_node("n1", "Apple", ["doc-1"]), make_node("n2", "Google", ["doc-2"]), make_node("n3", "Tim", ["doc-1", "doc-2"])]
        )
        await parquet_store.save_edges(
            [
                GraphEdge(id="e1", source_node_id="n3", target_node_id="n1", relation_type="WORKS_AT", source_document_ids=["doc-1"]),
                GraphEdge(id="e2", source_node_id="n3", target_node_id="n2", relation_type="VISITED", source_document_ids=["doc-2"]),
            ]
        )

        assert {n.id for n in await parquet_store.get_nodes("doc-1")} == {"n1", "n3"}
        assert {e.id for e in await parquet_store.get_edges("doc-2")} == {"e2"}
        assert await parquet_store.count_nodes() == 3
        assert await parquet_store.count_edges() == 2

    @pytest.mark.asyncio
    async def test_node_upsert(self, parquet_store):
        """Re-saving a node replaces it and the count is unchanged."""
        await parquet_store.save_nodes([make_node("n1", "Apple", ["doc-1"])])
        updated = make_node("n1", "Apple Inc.", ["doc-1", "doc-2"])
        await parquet_store.save_nodes([updated])
        await parquet_store.save_node_embedding("n1", [1.0, 0.0, 0.0])
        await parquet_store.save_node_embedding("n1", [0.0, 1.0, 0.0])

        nodes = await parquet_store.get_nodes()

        assert len(nodes) == 1
        assert nodes[0].name == "Apple Inc."
        assert nodes[0].source_document_ids == ["doc-1", "doc-2"]
        assert nodes[0].embedding == [0.0, 1.0, 0.0]
        assert await parquet_store.count_nodes() == 1

    @pytest.mark.asyncio
    async def test_reopen_reads_existing_data(self, tmp_path):
        """A fresh store instance sees earlier writes."""
        path = tmp_path / "graph"
        async with ParquetGraphStore(path) as first:
            await first.save_nodes([make_node("n1", "Apple", ["doc-1"])])

        async with ParquetGraphStore(path) as second:
            assert await second.count_nodes() == 1
