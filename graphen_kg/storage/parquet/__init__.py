"""
Parquet Graph Store

Table Schemas (every row also carries an int64 ``written_at`` stamp):
    documents: id, filename, file_type, file_size, status, uploaded_at,
        parsed_at, metadata (JSON), error_message
    chunks: id, document_id, content, index, embedding, metadata (JSON)
    nodes: id, name, type, description, properties (JSON), aliases,
        source_document_ids, source_chunk_ids, confidence, created_at, updated_at
    edges: id, source_node_id, target_node_id, relation_type, description,
        properties (JSON), weight, source_document_ids, confidence, created_at
    node_embeddings: node_id, embedding
"""

from graphen_kg.storage.parquet.backend import ParquetGraphStore

__all__ = ["ParquetGraphStore"]
