"""
PDF Adapter

Extracts page text with pypdf. Pages are joined with newlines; pages
without a text layer contribute nothing.
"""

from __future__ import annotations

import io
import logging

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from graphen_kg.errors import ParseError
from graphen_kg.ingestion.parsing.base import (
    DocumentParser,
    ParsedDocument,
    count_lines,
    count_words,
)

logger = logging.getLogger(__name__)


class PDFParser(DocumentParser):
    """pypdf text extraction with page count."""

    def parse(self, data: bytes) -> ParsedDocument:
        try:
            reader = PdfReader(io.BytesIO(data))
            texts = [page.extract_text() or "" for page in reader.pages]
        except (PyPdfError, ValueError) as e:
            raise ParseError(f"Unable to read PDF: {e}", {"size": len(data)}) from e

        text = "\n".join(texts)
        logger.debug(f"Extracted {len(text)} characters from {len(texts)} PDF pages")
        return ParsedDocument(
            text=text,
            page_count=len(texts),
            word_count=count_words(text),
            line_count=count_lines(text),
        )
