"""
Format Adapter Interface

Every adapter turns uploaded bytes into plain text plus a few counters.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel


class ParsedDocument(BaseModel):
    """Text extracted from an upload, with page/word/line counts."""

    text: str
    page_count: int | None = None
    word_count: int = 0
    line_count: int = 0


def count_words(text: str) -> int:
    return len(text.split())


def count_lines(text: str) -> int:
    return len(text.splitlines()) if text else 0


class DocumentParser(ABC):
    """Abstract interface for format adapters."""

    @abstractmethod
    def parse(self, data: bytes) -> ParsedDocument:
        """Extract text from raw file bytes."""
        ...
