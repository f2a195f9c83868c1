"""
DuckDB Query Layer

Read queries over the Parquet datasets; each view keeps the latest write per id.
"""

from graphen_kg.storage.duckdb.queries import DuckDBQueries

__all__ = ["DuckDBQueries"]
