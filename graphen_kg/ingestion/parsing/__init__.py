"""
Format Adapters

Turn uploaded bytes into plain text for chunking.

Modules:
    base: DocumentParser interface and ParsedDocument result
    text: Plain text (.txt)
    markdown: Markdown (.md), markup stripped
    pdf: PDF via pypdf
    validation: Upload checks (extension, size, MIME, signature)
"""

from graphen_kg.errors import UnsupportedFileTypeError
from graphen_kg.ingestion.parsing.base import DocumentParser, ParsedDocument, count_words
from graphen_kg.ingestion.parsing.markdown import MarkdownParser, markdown_to_text
from graphen_kg.ingestion.parsing.pdf import PDFParser
from graphen_kg.ingestion.parsing.text import TextParser
from graphen_kg.ingestion.parsing.validation import (
    ValidatedUpload,
    sanitize_filename,
    validate_upload,
)
from graphen_kg.types import DocumentFileType

_PARSERS: dict[DocumentFileType, type[DocumentParser]] = {
    DocumentFileType.PDF: PDFParser,
    DocumentFileType.MARKDOWN: MarkdownParser,
    DocumentFileType.TEXT: TextParser,
}


def get_parser(file_type: DocumentFileType | str) -> DocumentParser:
    """Adapter for a file type; unknown types raise UnsupportedFileTypeError."""
    try:
        return _PARSERS[DocumentFileType(file_type)]()
    except (KeyError, ValueError):
        raise UnsupportedFileTypeError(str(file_type)) from None


__all__ = [
    "DocumentParser",
    "ParsedDocument",
    "count_words",
    "TextParser",
    "MarkdownParser",
    "markdown_to_text",
    "PDFParser",
    "ValidatedUpload",
    "sanitize_filename",
    "validate_upload",
    "get_parser",
]
