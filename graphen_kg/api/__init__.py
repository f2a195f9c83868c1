"""
Public API

Modules:
    convenience: Ingest a file end to end (validation, pipeline, failure status)
"""

from graphen_kg.api.convenience import ingest_file, ingest_file_sync

__all__ = ["ingest_file", "ingest_file_sync"]
