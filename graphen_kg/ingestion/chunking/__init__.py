"""
Chunking

Modules:
    splitter: Overlapping character-based splitting into DocumentChunk objects
"""

from graphen_kg.ingestion.chunking.splitter import chunk_document, split_text

__all__ = ["chunk_document", "split_text"]
