"""Plain-text adapter."""

from __future__ import annotations

from graphen_kg.ingestion.parsing.base import (
    DocumentParser,
    ParsedDocument,
    count_lines,
    count_words,
)


class TextParser(DocumentParser):
    """UTF-8 decode; undecodable bytes are replaced rather than rejected."""

    def parse(self, data: bytes) -> ParsedDocument:
        text = data.decode("utf-8", errors="replace")
        return ParsedDocument(
            text=text,
            word_count=count_words(text),
            line_count=count_lines(text),
        )
