"""
Graph Storage

Embedded storage using Parquet part files read through DuckDB.

Modules:
    base: Abstract GraphStore interface
    parquet/: Parquet-backed implementation
    duckdb/: Read queries over the Parquet datasets

Store Directory Structure:
    my_graph/
    ├── metadata.json              # Schema version, embedding model
    ├── documents.parquet/         # Source documents and their status
    ├── chunks.parquet/            # Text chunks (with embeddings)
    ├── nodes.parquet/             # Resolved entities
    ├── edges.parquet/             # Resolved relations
    └── node_embeddings.parquet/   # Node vectors
"""

from graphen_kg.storage.base import GraphStore
from graphen_kg.storage.parquet.backend import ParquetGraphStore

__all__ = [
    "GraphStore",
    "ParquetGraphStore",
]
