"""Tests for format adapters and upload validation."""

import io

import pytest
from pypdf import PdfWriter

from graphen_kg.errors import ParseError, UnsupportedFileTypeError, UploadValidationError
from graphen_kg.ingestion.parsing import (
    MarkdownParser,
    PDFParser,
    TextParser,
    get_parser,
    markdown_to_text,
    sanitize_filename,
    validate_upload,
)
from graphen_kg.types import DocumentFileType


def blank_pdf(pages: int) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class TestTextParser:
    """Tests for TextParser."""

    def test_counts(self):
        """Words and lines are counted."""
        parsed = TextParser().parse(b"one two\nthree\n")

        assert parsed.text == "one two\nthree\n"
        assert parsed.word_count == 3
        assert parsed.line_count == 2
        assert parsed.page_count is None

    def test_invalid_utf8_replaced(self):
        """Undecodable bytes do not fail parsing."""
        parsed = TextParser().parse(b"caf\xe9 au lait")

        assert parsed.text.startswith("caf")
        assert parsed.word_count == 3


class TestMarkdownParser:
    """Tests for Markdown text extraction."""

    def test_headings_and_emphasis(self):
        """Heading hashes and emphasis markers are removed."""
        text = markdown_to_text("# Title\n\nSome **bold** and *italic* text.")

        assert text == "Title\nSome bold and italic text."

    def test_links_and_images(self):
        """Links keep their label, images their alt text."""
        text = markdown_to_text("See [the docs](http://example.com) ![diagram](d.png)")

        assert text == "See the docs diagram"

    def test_lists_quotes_and_code(self):
        """List markers and quote markers are dropped, code is kept."""
        source = "- first item\n1. second item\n> quoted\n\n```python\nprint('hi')\n```"

        assert markdown_to_text(source) == "first item\nsecond item\nquoted\nprint('hi')"

    def test_tables_and_rules(self):
        """Table separators and rules vanish, cells are kept."""
        source = "| Name | Role |\n|------|------|\n| Ada | Engineer |\n\n---"

        assert markdown_to_text(source) == "Name Role\nAda Engineer"

    def test_html_tags(self):
        """Inline html is stripped."""
        assert markdown_to_text("Hello <b>world</b><br/>") == "Hello world"

    def test_parse_counts_source_lines(self):
        """line_count reflects the Markdown source."""
        parsed = MarkdownParser().parse(b"# A\n\nB c\n")

        assert parsed.text == "A\nB c"
        assert parsed.word_count == 3
        assert parsed.line_count == 3


class TestPDFParser:
    """Tests for PDFParser."""

    def test_page_count(self):
        """Page count comes from the PDF."""
        parsed = PDFParser().parse(blank_pdf(3))

        assert parsed.page_count == 3
        assert parsed.word_count == 0

    def test_garbage_raises_parse_error(self):
        """Unreadable bytes raise ParseError."""
        with pytest.raises(ParseError):
            PDFParser().parse(b"%PDF-1.4 this is not really a pdf")


class TestGetParser:
    """Tests for adapter lookup."""

    @pytest.mark.parametrize(
        "file_type,parser_type",
        [("pdf", PDFParser), ("md", MarkdownParser), ("txt", TextParser), (DocumentFileType.TEXT, TextParser)],
    )
    def test_known_types(self, file_type, parser_type):
        """Each file type has an adapter."""
        assert isinstance(get_parser(file_type), parser_type)

    def test_unknown_type(self):
        """Unknown types raise UnsupportedFileTypeError."""
        with pytest.raises(UnsupportedFileTypeError, match="docx"):
            get_parser("docx")


class TestSanitizeFilename:
    """Tests for sanitize_filename."""

    def test_strips_directories(self):
        """Path components are removed."""
        assert sanitize_filename("../../etc/passwd") == "passwd"
        assert sanitize_filename("C:\\Users\\me\\notes.txt") == "notes.txt"

    def test_replaces_unsafe_characters(self):
        """Spaces and symbols become underscores."""
        assert sanitize_filename("my report (v2).pdf") == "my_report__v2_.pdf"

    def test_empty_name(self):
        """An empty result falls back to a placeholder."""
        assert sanitize_filename("") == "file"


class TestValidateUpload:
    """Tests for validate_upload."""

    def test_text_upload(self):
        """A plain text upload validates."""
        upload = validate_upload("notes.txt", b"hello", "text/plain")

        assert upload.file_type == DocumentFileType.TEXT
        assert upload.filename == "notes.txt"
        assert upload.size == 5

    def test_markdown_accepts_text_plain(self):
        """Markdown may be declared as text/plain."""
        upload = validate_upload("README.md", b"# hi", "text/plain; charset=utf-8")

        assert upload.file_type == DocumentFileType.MARKDOWN

    def test_pdf_upload(self):
        """A PDF with the right signature validates."""
        upload = validate_upload("paper.PDF", blank_pdf(1), "application/pdf")

        assert upload.file_type == DocumentFileType.PDF

    def test_octet_stream_is_unknown(self):
        """application/octet-stream does not count as a mismatch."""
        upload = validate_upload("notes.txt", b"hello", "application/octet-stream")

        assert upload.file_type == DocumentFileType.TEXT

    def test_bad_extension(self):
        """Only .pdf, .md and .txt are allowed."""
        with pytest.raises(UploadValidationError, match="Unsupported file extension"):
            validate_upload("slides.pptx", b"data")

    def test_too_large(self):
        """Size limit is enforced."""
        with pytest.raises(UploadValidationError, match="too large"):
            validate_upload("notes.txt", b"x" * 11, max_size=10)

    def test_mime_mismatch(self):
        """Declared MIME must match the extension."""
        with pytest.raises(UploadValidationError, match="MIME type mismatch"):
            validate_upload("notes.txt", b"hello", "application/pdf")

    def test_signature_mismatch(self):
        """A PNG renamed to .txt is rejected."""
        with pytest.raises(UploadValidationError, match="signature mismatch"):
            validate_upload("notes.txt", b"\x89PNG\r\n\x1a\n....")

    def test_pdf_without_signature(self):
        """A .pdf must start with %PDF-."""
        with pytest.raises(UploadValidationError, match="PDF signature"):
            validate_upload("paper.pdf", b"plain text")
