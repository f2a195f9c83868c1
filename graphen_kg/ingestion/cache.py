"""
Pipeline Cache

Per-document JSON snapshots of intermediate artifacts, so that a crashed or
failed run can resume without redoing finished work:

    cache_dir/
    └── <document_id>/
        ├── chunks.json        # list[DocumentChunk]
        └── extractions.json   # list[ChunkExtractionResult], sorted by chunk index

A missing, unreadable or corrupt file is a cache miss, never an error.

Writes go to a temp file which then replaces the target; writes for one
document are serialized through an asyncio.Lock (in-process) and a
FileLock (cross-process).
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import weakref
from pathlib import Path
from typing import Any
from uuid import uuid4

from filelock import FileLock
from pydantic import BaseModel, ValidationError

from graphen_kg.types import ChunkExtractionResult, DocumentChunk

logger = logging.getLogger(__name__)

CHUNKS_FILE = "chunks.json"
EXTRACTIONS_FILE = "extractions.json"


class PipelineCache:
    """
    Chunk/extraction cache rooted at ``cache_dir``.

    One instance may serve many documents. Write locks are per document id
    and only live while a write or clear for that document is in progress.
    """

    def __init__(self, cache_dir: Path | str) -> None:
        self.cache_dir = Path(cache_dir)
        # Entries disappear once no writer holds the lock
        self._write_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def document_dir(self, document_id: str) -> Path:
        return self.cache_dir / document_id

    def chunks_path(self, document_id: str) -> Path:
        return self.document_dir(document_id) / CHUNKS_FILE

    def extractions_path(self, document_id: str) -> Path:
        return self.document_dir(document_id) / EXTRACTIONS_FILE

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def load_chunks(self, document_id: str) -> list[DocumentChunk] | None:
        """Cached chunks sorted by index, or None on a miss."""
        items = await self._read_list(self.chunks_path(document_id), DocumentChunk)
        if items is None:
            return None
        return sorted(items, key=lambda c: c.index)

    async def load_extractions(self, document_id: str) -> list[ChunkExtractionResult]:
        """Cached extraction results; an empty list on a miss."""
        items = await self._read_list(
            self.extractions_path(document_id), ChunkExtractionResult
        )
        return items or []

    async def _read_list(self, path: Path, model: type[BaseModel]) -> list[Any] | None:
        def _read() -> list[Any] | None:
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
            except FileNotFoundError:
                return None
            except (OSError, ValueError) as e:
                logger.warning(f"Ignoring unreadable cache file {path}: {e}")
                return None

            if not isinstance(raw, list):
                logger.warning(f"Ignoring cache file {path}: expected a JSON list")
                return None
            try:
                return [model.model_validate(item) for item in raw]
            except ValidationError as e:
                logger.warning(f"Ignoring corrupt cache file {path}: {e.error_count()} errors")
                return None

        items = await asyncio.to_thread(_read)
        logger.debug(f"Cache {'hit' if items is not None else 'miss'}: {path}")
        return items

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def save_chunks(self, document_id: str, chunks: list[DocumentChunk]) -> None:
        await self._write_list(document_id, self.chunks_path(document_id), chunks)

    async def save_extractions(
        self, document_id: str, extractions: list[ChunkExtractionResult]
    ) -> None:
        """Write a snapshot of all known extractions, sorted by chunk index."""
        ordered = sorted(extractions, key=lambda e: e.chunk_index)
        await self._write_list(document_id, self.extractions_path(document_id), ordered)

    async def clear(self, document_id: str) -> None:
        """Drop both cache files for a document."""
        async with self._lock_for(document_id):
            await asyncio.to_thread(
                shutil.rmtree, self.document_dir(document_id), ignore_errors=True
            )
        logger.debug(f"Cleared cache for document {document_id}")

    def _lock_for(self, document_id: str) -> asyncio.Lock:
        lock = self._write_locks.get(document_id)
        if lock is None:
            lock = self._write_locks[document_id] = asyncio.Lock()
        return lock

    async def _write_list(
        self, document_id: str, path: Path, items: list[BaseModel]
    ) -> None:
        payload = json.dumps([item.model_dump(mode="json") for item in items], indent=2)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            with FileLock(path.parent / ".cache.lock", timeout=30):
                temp_path = path.with_name(f".{path.name}.{uuid4().hex}.tmp")
                temp_path.write_text(payload, encoding="utf-8")
                temp_path.replace(path)

        # Serialized: each write waits for the previous one to finish
        async with self._lock_for(document_id):
            await asyncio.to_thread(_write)
