"""
Graphen - Documents to Knowledge Graph

Parses uploaded documents, extracts entities and relations per chunk with an
LLM, resolves duplicates within the document, embeds the result and saves it
to an embedded graph store.

Example:
    >>> from graphen_kg import DocumentPipeline, GraphenConfig, ParquetGraphStore
    >>> config = GraphenConfig()
    >>> async with ParquetGraphStore("./graph", config) as store:
    ...     pipeline = DocumentPipeline(store, llm, embeddings, config)
    ...     result = await pipeline.process(document, file_bytes)

Main Classes:
    DocumentPipeline: Phased ingestion of one document
    ParquetGraphStore: Embedded Parquet + DuckDB graph store
    GraphenConfig: Configuration management
"""

__version__ = "0.1.0"


# Public API - lazy imports to avoid loading optional dependencies
def __getattr__(name: str):
    """Lazy import public API components."""

    if name == "DocumentPipeline":
        from graphen_kg.ingestion.pipeline import DocumentPipeline
        return DocumentPipeline

    if name == "EntityResolver":
        from graphen_kg.ingestion.resolution import EntityResolver
        return EntityResolver

    if name == "CallDispatcher":
        from graphen_kg.providers.dispatcher import CallDispatcher
        return CallDispatcher

    if name in ("GraphStore", "ParquetGraphStore"):
        from graphen_kg import storage
        return getattr(storage, name)

    if name == "GraphenConfig":
        from graphen_kg.config.settings import GraphenConfig
        return GraphenConfig

    # Convenience functions
    if name in ("ingest_file", "ingest_file_sync"):
        from graphen_kg.api import convenience
        return getattr(convenience, name)

    # Types
    if name in (
        "Document",
        "DocumentChunk",
        "GraphNode",
        "GraphEdge",
        "ResolvedGraph",
        "PipelineStatusEvent",
        "ProcessOptions",
    ):
        from graphen_kg import types
        return getattr(types, name)

    raise AttributeError(f"module 'graphen_kg' has no attribute {name!r}")


__all__ = [
    # Main classes
    "DocumentPipeline",
    "EntityResolver",
    "CallDispatcher",
    "GraphStore",
    "ParquetGraphStore",
    "GraphenConfig",

    # Convenience functions
    "ingest_file",
    "ingest_file_sync",

    # Types
    "Document",
    "DocumentChunk",
    "GraphNode",
    "GraphEdge",
    "ResolvedGraph",
    "PipelineStatusEvent",
    "ProcessOptions",

    # Version
    "__version__",
]
