"""
Ingestion Pipeline

Phased document processing that turns an uploaded file into graph nodes
and edges.

Phases:
    parsing -> chunking -> extracting -> resolving -> embedding -> saving

Modules:
    pipeline: DocumentPipeline orchestrator
    cache: Per-document chunk/extraction cache
    parsing/: Format adapters and upload validation
    chunking/: Overlapping text splitting
    extraction: Prompt and structured-output extraction per chunk
    resolution/: In-document entity resolution
"""

from graphen_kg.ingestion.cache import PipelineCache
from graphen_kg.ingestion.pipeline import DocumentPipeline
from graphen_kg.ingestion.resolution import EntityResolver

__all__ = ["DocumentPipeline", "PipelineCache", "EntityResolver"]
