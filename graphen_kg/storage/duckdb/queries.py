"""
DuckDB Query Layer

SQL reads over the Parquet part-file datasets written by ParquetGraphStore.

Every table is an append-only directory of part files; the same id may be
written several times. Views collapse each table to the latest write per
key (highest ``written_at``), which gives the store its upsert semantics.
"""

from __future__ import annotations

import asyncio
import json
import threading
from pathlib import Path
from typing import Any

import duckdb

from graphen_kg.types import Document, DocumentChunk, GraphEdge, GraphNode

# table -> key column used for latest-write-wins
TABLE_KEYS: dict[str, str] = {
    "documents": "id",
    "chunks": "id",
    "nodes": "id",
    "edges": "id",
    "node_embeddings": "node_id",
}


def _sql_literal(path: Path) -> str:
    return "'" + str(path).replace("'", "''") + "'"


class DuckDBQueries:
    """
    DuckDB query layer for the graph store's Parquet datasets.

    Thread safety:
        Uses thread-local connections since DuckDB connections are not
        thread-safe and asyncio.to_thread() may use different threads.
    """

    def __init__(self, store_path: Path) -> None:
        self.store_path = store_path
        self._local = threading.local()
        self._connections: list[duckdb.DuckDBPyConnection] = []
        self._connections_lock = threading.Lock()
        self._initialized = False

    async def initialize(self) -> None:
        """Mark as ready; connections are created per thread."""
        self._initialized = True

    async def close(self) -> None:
        """Close every connection opened by this query layer."""
        self._initialized = False
        with self._connections_lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            conn.close()
        self._local = threading.local()

    def _get_conn(self) -> duckdb.DuckDBPyConnection:
        if not self._initialized:
            raise RuntimeError("DuckDB not initialized. Call initialize() first.")

        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = duckdb.connect()
            self._local.conn = conn
            with self._connections_lock:
                self._connections.append(conn)
        return conn

    def _refresh_view(self, conn: duckdb.DuckDBPyConnection, table: str) -> None:
        """(Re)register a table view if its dataset has any part files."""
        dataset = self.store_path / f"{table}.parquet"
        if not dataset.is_dir() or not any(dataset.glob("*.parquet")):
            return
        key = TABLE_KEYS[table]
        conn.execute(f"""
            CREATE OR REPLACE VIEW {table} AS
            SELECT * FROM read_parquet({_sql_literal(dataset / "*.parquet")})
            QUALIFY row_number() OVER (PARTITION BY {key} ORDER BY written_at DESC) = 1
        """)

    def _fetch(self, tables: list[str], sql: str, params: list[Any] | None = None) -> list[dict[str, Any]]:
        """Run a query; a missing table reads as empty."""
        conn = self._get_conn()
        for table in tables:
            self._refresh_view(conn, table)
        try:
            cursor = conn.execute(sql, params or [])
        except duckdb.CatalogException:
            return []
        columns = [d[0] for d in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    # -------------------------------------------------------------------------
    # Documents + Chunks
    # -------------------------------------------------------------------------

    async def get_document(self, document_id: str) -> Document | None:
        def _query() -> Document | None:
            rows = self._fetch(["documents"], "SELECT * FROM documents WHERE id = ?", [document_id])
            return self._row_to_document(rows[0]) if rows else None

        return await asyncio.to_thread(_query)

    async def get_documents(self) -> list[Document]:
        def _query() -> list[Document]:
            rows = self._fetch(["documents"], "SELECT * FROM documents ORDER BY uploaded_at DESC")
            return [self._row_to_document(row) for row in rows]

        return await asyncio.to_thread(_query)

    async def get_chunks_by_document(self, document_id: str) -> list[DocumentChunk]:
        def _query() -> list[DocumentChunk]:
            rows = self._fetch(
                ["chunks"],
                'SELECT * FROM chunks WHERE document_id = ? ORDER BY "index"',
                [document_id],
            )
            return [self._row_to_chunk(row) for row in rows]

        return await asyncio.to_thread(_query)

    # -------------------------------------------------------------------------
    # Nodes + Edges
    # -------------------------------------------------------------------------

    async def get_nodes(self, document_id: str | None = None) -> list[GraphNode]:
        """Nodes (with their embeddings, when saved), optionally for one document."""

        def _query() -> list[GraphNode]:
            conn = self._get_conn()
            self._refresh_view(conn, "node_embeddings")
            try:
                conn.execute("SELECT 1 FROM node_embeddings LIMIT 0")
                join = "LEFT JOIN node_embeddings e ON e.node_id = n.id"
                embedding = "e.embedding"
            except duckdb.CatalogException:
                join = ""
                embedding = "NULL"

            sql = f"SELECT n.*, {embedding} AS embedding FROM nodes n {join}"
            params: list[Any] = []
            if document_id is not None:
                sql += " WHERE list_contains(n.source_document_ids, ?)"
                params.append(document_id)
            sql += " ORDER BY n.created_at, n.id"
            rows = self._fetch(["nodes"], sql, params)
            return [self._row_to_node(row) for row in rows]

        return await asyncio.to_thread(_query)

    async def get_edges(self, document_id: str | None = None) -> list[GraphEdge]:
        def _query() -> list[GraphEdge]:
            sql = "SELECT * FROM edges"
            params: list[Any] = []
            if document_id is not None:
                sql += " WHERE list_contains(source_document_ids, ?)"
                params.append(document_id)
            sql += " ORDER BY created_at, id"
            rows = self._fetch(["edges"], sql, params)
            return [self._row_to_edge(row) for row in rows]

        return await asyncio.to_thread(_query)

    async def get_node_embedding(self, node_id: str) -> list[float] | None:
        def _query() -> list[float] | None:
            rows = self._fetch(
                ["node_embeddings"],
                "SELECT embedding FROM node_embeddings WHERE node_id = ?",
                [node_id],
            )
            return list(rows[0]["embedding"]) if rows else None

        return await asyncio.to_thread(_query)

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    async def count(self, table: str) -> int:
        """Distinct rows (latest write per key) in a table."""
        if table not in TABLE_KEYS:
            raise ValueError(f"Unknown table: {table}")

        def _query() -> int:
            rows = self._fetch([table], f"SELECT count(*) AS n FROM {table}")
            return int(rows[0]["n"]) if rows else 0

        return await asyncio.to_thread(_query)

    # -------------------------------------------------------------------------
    # Row Conversion
    # -------------------------------------------------------------------------

    @staticmethod
    def _row_to_document(row: dict[str, Any]) -> Document:
        return Document(
            id=row["id"],
            filename=row["filename"],
            file_type=row["file_type"],
            file_size=row["file_size"],
            status=row["status"],
            uploaded_at=row["uploaded_at"],
            parsed_at=row["parsed_at"] or None,
            metadata=json.loads(row["metadata"] or "{}"),
            error_message=row["error_message"],
        )

    @staticmethod
    def _row_to_chunk(row: dict[str, Any]) -> DocumentChunk:
        embedding = row["embedding"]
        return DocumentChunk(
            id=row["id"],
            document_id=row["document_id"],
            content=row["content"],
            index=row["index"],
            embedding=list(embedding) if embedding is not None else None,
            metadata=json.loads(row["metadata"] or "{}"),
        )

    @staticmethod
    def _row_to_node(row: dict[str, Any]) -> GraphNode:
        embedding = row["embedding"]
        return GraphNode(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            description=row["description"],
            properties=json.loads(row["properties"] or "{}"),
            aliases=list(row["aliases"] or []),
            embedding=list(embedding) if embedding is not None else None,
            source_document_ids=list(row["source_document_ids"] or []),
            source_chunk_ids=list(row["source_chunk_ids"] or []),
            confidence=row["confidence"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_edge(row: dict[str, Any]) -> GraphEdge:
        return GraphEdge(
            id=row["id"],
            source_node_id=row["source_node_id"],
            target_node_id=row["target_node_id"],
            relation_type=row["relation_type"],
            description=row["description"],
            properties=json.loads(row["properties"] or "{}"),
            weight=row["weight"],
            source_document_ids=list(row["source_document_ids"] or []),
            confidence=row["confidence"],
            created_at=row["created_at"],
        )
