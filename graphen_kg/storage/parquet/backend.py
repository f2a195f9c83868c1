"""
Parquet Graph Store

Writes append-only Parquet part files and reads them back through DuckDB.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4

import pyarrow as pa
import pyarrow.parquet as pq
from filelock import FileLock

from graphen_kg.config import GraphenConfig
from graphen_kg.storage.base import GraphStore
from graphen_kg.storage.duckdb.queries import DuckDBQueries
from graphen_kg.types import Document, DocumentChunk, GraphEdge, GraphNode

logger = logging.getLogger(__name__)


class ParquetGraphStore(GraphStore):
    """
    Parquet-based graph store.

    Directory structure:
        store_path/
        ├── documents.parquet/        # part-<timestamp>-<hex>.parquet files
        ├── chunks.parquet/
        ├── nodes.parquet/
        ├── edges.parquet/
        ├── node_embeddings.parquet/
        └── metadata.json

    Every save appends a new part file stamped with ``written_at``; reads
    keep the latest row per id, so saving an existing id replaces it.

    Thread safety:
        - Write operations use file locking (.store.lock)
        - Read operations are concurrent-safe (part files are immutable)
    """

    SCHEMA_VERSION = "1.0.0"

    def __init__(
        self,
        store_path: Path | str,
        config: GraphenConfig | None = None,
    ) -> None:
        self._store_path = Path(store_path)
        self.config = config or GraphenConfig()
        self._lock = FileLock(self._store_path / ".store.lock", timeout=30)
        self._duckdb = DuckDBQueries(self._store_path)
        self._last_written_at = 0
        self._initialized = False

    @property
    def store_path(self) -> Path:
        return self._store_path

    async def initialize(self) -> None:
        """Create the store directory and metadata.json."""
        if self._initialized:
            return

        def _init() -> None:
            self.store_path.mkdir(parents=True, exist_ok=True)
            self._write_metadata_if_missing()

        await asyncio.to_thread(_init)
        await self._duckdb.initialize()
        self._initialized = True

    async def close(self) -> None:
        await self._duckdb.close()
        self._initialized = False

    def _write_metadata_if_missing(self) -> None:
        meta_path = self.store_path / "metadata.json"
        if not meta_path.exists():
            metadata = {
                "schema_version": self.SCHEMA_VERSION,
                "created_at": datetime.now(timezone.utc).isoformat(),
                "embedding_model": self.config.embedding_model,
                "embedding_dimensions": self.config.embedding_dimensions,
            }
            meta_path.write_text(json.dumps(metadata, indent=2))

    # -------------------------------------------------------------------------
    # Parquet Schemas
    # -------------------------------------------------------------------------

    @staticmethod
    def _document_schema() -> pa.Schema:
        return pa.schema([
            ("id", pa.string()),
            ("filename", pa.string()),
            ("file_type", pa.string()),
            ("file_size", pa.int64()),
            ("status", pa.string()),
            ("uploaded_at", pa.string()),
            ("parsed_at", pa.string()),
            ("metadata", pa.string()),  # JSON-encoded DocumentMetadata
            ("error_message", pa.string()),
            ("written_at", pa.int64()),
        ])

    @staticmethod
    def _chunk_schema() -> pa.Schema:
        return pa.schema([
            ("id", pa.string()),
            ("document_id", pa.string()),
            ("content", pa.string()),
            ("index", pa.int32()),
            ("embedding", pa.list_(pa.float64())),
            ("metadata", pa.string()),  # JSON-encoded ChunkMetadata
            ("written_at", pa.int64()),
        ])

    @staticmethod
    def _node_schema() -> pa.Schema:
        return pa.schema([
            ("id", pa.string()),
            ("name", pa.string()),
            ("type", pa.string()),
            ("description", pa.string()),
            ("properties", pa.string()),  # JSON-encoded dict
            ("aliases", pa.list_(pa.string())),
            ("source_document_ids", pa.list_(pa.string())),
            ("source_chunk_ids", pa.list_(pa.string())),
            ("confidence", pa.float64()),
            ("created_at", pa.string()),
            ("updated_at", pa.string()),
            ("written_at", pa.int64()),
        ])

    @staticmethod
    def _edge_schema() -> pa.Schema:
        return pa.schema([
            ("id", pa.string()),
            ("source_node_id", pa.string()),
            ("target_node_id", pa.string()),
            ("relation_type", pa.string()),
            ("description", pa.string()),
            ("properties", pa.string()),  # JSON-encoded dict
            ("weight", pa.float64()),
            ("source_document_ids", pa.list_(pa.string())),
            ("confidence", pa.float64()),
            ("created_at", pa.string()),
            ("written_at", pa.int64()),
        ])

    @staticmethod
    def _node_embedding_schema() -> pa.Schema:
        return pa.schema([
            ("node_id", pa.string()),
            ("embedding", pa.list_(pa.float64())),
            ("written_at", pa.int64()),
        ])

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    async def save_document(self, document: Document) -> None:
        def _write() -> None:
            with self._lock:
                data = {
                    "id": [document.id],
                    "filename": [document.filename],
                    "file_type": [document.file_type.value],
                    "file_size": [document.file_size],
                    "status": [document.status.value],
                    "uploaded_at": [document.uploaded_at.isoformat()],
                    "parsed_at": [document.parsed_at.isoformat() if document.parsed_at else ""],
                    "metadata": [document.metadata.model_dump_json()],
                    "error_message": [document.error_message],
                    "written_at": [self._next_written_at()],
                }
                self._append_to_parquet("documents", data, self._document_schema())

        await asyncio.to_thread(_write)

    async def save_chunks(self, chunks: list[DocumentChunk]) -> None:
        if not chunks:
            return

        def _write() -> None:
            with self._lock:
                written_at = self._next_written_at()
                data: dict[str, list[Any]] = {
                    "id": [c.id for c in chunks],
                    "document_id": [c.document_id for c in chunks],
                    "content": [c.content for c in chunks],
                    "index": [c.index for c in chunks],
                    "embedding": [c.embedding for c in chunks],
                    "metadata": [c.metadata.model_dump_json() for c in chunks],
                    "written_at": [written_at for _ in chunks],
                }
                self._append_to_parquet("chunks", data, self._chunk_schema())

        await asyncio.to_thread(_write)

    async def save_nodes(self, nodes: list[GraphNode]) -> None:
        if not nodes:
            return

        def _write() -> None:
            with self._lock:
                written_at = self._next_written_at()
                data: dict[str, list[Any]] = {
                    "id": [n.id for n in nodes],
                    "name": [n.name for n in nodes],
                    "type": [n.type for n in nodes],
                    "description": [n.description for n in nodes],
                    "properties": [json.dumps(n.properties) for n in nodes],
                    "aliases": [n.aliases for n in nodes],
                    "source_document_ids": [n.source_document_ids for n in nodes],
                    "source_chunk_ids": [n.source_chunk_ids for n in nodes],
                    "confidence": [n.confidence for n in nodes],
                    "created_at": [n.created_at.isoformat() for n in nodes],
                    "updated_at": [n.updated_at.isoformat() for n in nodes],
                    "written_at": [written_at for _ in nodes],
                }
                self._append_to_parquet("nodes", data, self._node_schema())

        await asyncio.to_thread(_write)

    async def save_edges(self, edges: list[GraphEdge]) -> None:
        if not edges:
            return

        def _write() -> None:
            with self._lock:
                written_at = self._next_written_at()
                data: dict[str, list[Any]] = {
                    "id": [e.id for e in edges],
                    "source_node_id": [e.source_node_id for e in edges],
                    "target_node_id": [e.target_node_id for e in edges],
                    "relation_type": [e.relation_type for e in edges],
                    "description": [e.description for e in edges],
                    "properties": [json.dumps(e.properties) for e in edges],
                    "weight": [e.weight for e in edges],
                    "source_document_ids": [e.source_document_ids for e in edges],
                    "confidence": [e.confidence for e in edges],
                    "created_at": [e.created_at.isoformat() for e in edges],
                    "written_at": [written_at for _ in edges],
                }
                self._append_to_parquet("edges", data, self._edge_schema())

        await asyncio.to_thread(_write)

    async def save_node_embedding(self, node_id: str, embedding: list[float]) -> None:
        def _write() -> None:
            with self._lock:
                data = {
                    "node_id": [node_id],
                    "embedding": [list(embedding)],
                    "written_at": [self._next_written_at()],
                }
                self._append_to_parquet(
                    "node_embeddings", data, self._node_embedding_schema()
                )

        await asyncio.to_thread(_write)

    def _next_written_at(self) -> int:
        """Strictly increasing write stamp (ns); called under the store lock."""
        stamp = max(time.time_ns(), self._last_written_at + 1)
        self._last_written_at = stamp
        return stamp

    def _append_to_parquet(
        self,
        table_name: str,
        data: dict[str, list[Any]],
        schema: pa.Schema,
    ) -> None:
        """
        Append rows as a new immutable part file in the table's dataset directory.

        The part is written to a hidden temp file first and then renamed, so
        readers globbing ``*.parquet`` never see a partial file.
        """
        path = self.store_path / f"{table_name}.parquet"
        table = pa.Table.from_pydict(data, schema=schema)
        path.mkdir(parents=True, exist_ok=True)

        now_part = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        part_name = f"part-{now_part}-{uuid4().hex}.parquet"
        part_path = path / part_name
        temp_part_path = path / f".{part_name}.tmp"
        pq.write_table(table, temp_part_path, compression="zstd")
        temp_part_path.replace(part_path)
        logger.debug(f"Appended {table.num_rows} rows to {table_name}")

    # -------------------------------------------------------------------------
    # Read Operations (delegate to DuckDB)
    # -------------------------------------------------------------------------

    async def get_document(self, document_id: str) -> Document | None:
        return await self._duckdb.get_document(document_id)

    async def get_documents(self) -> list[Document]:
        return await self._duckdb.get_documents()

    async def get_chunks_by_document(self, document_id: str) -> list[DocumentChunk]:
        return await self._duckdb.get_chunks_by_document(document_id)

    async def get_nodes(self, document_id: str | None = None) -> list[GraphNode]:
        return await self._duckdb.get_nodes(document_id)

    async def get_edges(self, document_id: str | None = None) -> list[GraphEdge]:
        return await self._duckdb.get_edges(document_id)

    async def get_node_embedding(self, node_id: str) -> list[float] | None:
        return await self._duckdb.get_node_embedding(node_id)

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    async def count_nodes(self) -> int:
        return await self._duckdb.count("nodes")

    async def count_edges(self) -> int:
        return await self._duckdb.count("edges")
