"""
Abstract Graph Store Interface

Defines the persistence contract the DocumentPipeline saves into.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from graphen_kg.types import Document, DocumentChunk, GraphEdge, GraphNode


class GraphStore(ABC):
    """
    Abstract interface for graph stores.

    Saves are upserts keyed by id: saving an object whose id already exists
    replaces the stored version.

    Lifecycle:
        store = ParquetGraphStore(path)
        await store.initialize()
        # ... operations ...
        await store.close()

    Or using context manager:
        async with ParquetGraphStore(path) as store:
            await store.save_nodes(nodes)
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare storage (create directories, metadata)."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release resources."""
        ...

    async def __aenter__(self) -> "GraphStore":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    @abstractmethod
    async def save_document(self, document: "Document") -> None:
        """Save a single document."""
        ...

    @abstractmethod
    async def save_chunks(self, chunks: list["DocumentChunk"]) -> None:
        """Save chunks (with their embeddings, when set)."""
        ...

    @abstractmethod
    async def save_nodes(self, nodes: list["GraphNode"]) -> None:
        """Save graph nodes."""
        ...

    @abstractmethod
    async def save_edges(self, edges: list["GraphEdge"]) -> None:
        """Save graph edges."""
        ...

    @abstractmethod
    async def save_node_embedding(self, node_id: str, embedding: list[float]) -> None:
        """Save the embedding vector for one node."""
        ...

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_document(self, document_id: str) -> "Document | None":
        """Get document by id."""
        ...

    @abstractmethod
    async def get_documents(self) -> list["Document"]:
        """Get all documents, most recently uploaded first."""
        ...

    @abstractmethod
    async def get_chunks_by_document(self, document_id: str) -> list["DocumentChunk"]:
        """Get a document's chunks ordered by index."""
        ...

    @abstractmethod
    async def get_nodes(self, document_id: str | None = None) -> list["GraphNode"]:
        """Get all nodes, or those sourced from one document."""
        ...

    @abstractmethod
    async def get_edges(self, document_id: str | None = None) -> list["GraphEdge"]:
        """Get all edges, or those sourced from one document."""
        ...

    @abstractmethod
    async def get_node_embedding(self, node_id: str) -> list[float] | None:
        """Get a node's embedding vector."""
        ...

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    @abstractmethod
    async def count_nodes(self) -> int:
        """Return total number of nodes."""
        ...

    @abstractmethod
    async def count_edges(self) -> int:
        """Return total number of edges."""
        ...
