"""
Upload Validation

Checks an uploaded file before a Document is created for it:
    1. Extension must be .pdf, .md or .txt
    2. Size must not exceed the configured limit
    3. Declared MIME type must be allowed for the extension
       (application/octet-stream is treated as "unknown")
    4. Known binary signatures must agree with the extension
"""

from __future__ import annotations

import re
from pathlib import PurePath

from pydantic import BaseModel

from graphen_kg.errors import UploadValidationError
from graphen_kg.types import DocumentFileType

EXTENSION_TO_TYPE: dict[str, DocumentFileType] = {
    ".pdf": DocumentFileType.PDF,
    ".md": DocumentFileType.MARKDOWN,
    ".txt": DocumentFileType.TEXT,
}

ALLOWED_MIME_TYPES: dict[DocumentFileType, tuple[str, ...]] = {
    DocumentFileType.PDF: ("application/pdf",),
    DocumentFileType.MARKDOWN: ("text/markdown", "text/x-markdown", "text/plain"),
    DocumentFileType.TEXT: ("text/plain",),
}

DEFAULT_MIME_TYPES: dict[DocumentFileType, str] = {
    DocumentFileType.PDF: "application/pdf",
    DocumentFileType.MARKDOWN: "text/markdown",
    DocumentFileType.TEXT: "text/plain",
}

# Leading magic bytes -> MIME type
_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"%PDF-", "application/pdf"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b", "application/gzip"),
)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.-]")


class ValidatedUpload(BaseModel):
    """Outcome of a successful validate_upload() call."""

    file_type: DocumentFileType
    filename: str
    mime_type: str
    size: int


def sanitize_filename(filename: str) -> str:
    """Base name with every character outside [A-Za-z0-9_.-] replaced by "_"."""
    base = PurePath(filename.replace("\\", "/")).name
    clean = _UNSAFE_FILENAME_CHARS.sub("_", base)
    return clean or "file"


def detect_mime_type(content: bytes) -> str | None:
    """MIME type from a known binary signature, or None."""
    for signature, mime_type in _SIGNATURES:
        if content.startswith(signature):
            return mime_type
    return None


def validate_upload(
    filename: str,
    content: bytes,
    declared_mime: str | None = None,
    max_size: int | None = None,
) -> ValidatedUpload:
    """
    Validate an uploaded file.

    Args:
        filename: Original client-side filename
        content: Raw bytes
        declared_mime: MIME type sent by the client, if any
        max_size: Upper bound in bytes (None disables the check)

    Returns:
        ValidatedUpload with the file type and a sanitized filename

    Raises:
        UploadValidationError: On the first failed check
    """
    extension = PurePath(filename).suffix.lower()
    file_type = EXTENSION_TO_TYPE.get(extension)
    if file_type is None:
        raise UploadValidationError(
            "Unsupported file extension. Only .pdf, .md, .txt are allowed.",
            {"filename": filename},
        )

    size = len(content)
    if max_size is not None and size > max_size:
        raise UploadValidationError(
            f"File is too large. Maximum size is {max_size} bytes.",
            {"size": size, "max_size": max_size},
        )

    allowed = ALLOWED_MIME_TYPES[file_type]
    declared = (declared_mime or "").lower().split(";")[0].strip()
    if declared == "application/octet-stream":
        declared = ""

    if declared and declared not in allowed:
        raise UploadValidationError(
            f"MIME type mismatch for {extension}. Received {declared}.",
            {"extension": extension, "declared_mime": declared},
        )

    detected = detect_mime_type(content)
    if detected and detected not in allowed:
        raise UploadValidationError(
            f"Binary signature mismatch for {extension}. Detected {detected}.",
            {"extension": extension, "detected_mime": detected},
        )

    if file_type is DocumentFileType.PDF and detected != "application/pdf":
        raise UploadValidationError(
            "File does not start with a PDF signature.",
            {"extension": extension},
        )

    return ValidatedUpload(
        file_type=file_type,
        filename=sanitize_filename(filename),
        mime_type=detected or declared or DEFAULT_MIME_TYPES[file_type],
        size=size,
    )
