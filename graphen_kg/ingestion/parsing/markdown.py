"""
Markdown Adapter

Extracts the textual content of a Markdown document line by line:
headings, paragraphs, list items, table cells and code are kept, while
markup (heading hashes, emphasis markers, link targets, images, html tags,
fences, rules) is dropped.

Example:
    >>> MarkdownParser().parse(b"# Title\\n\\nSee [docs](http://x).").text
    'Title\\nSee docs.'
"""

from __future__ import annotations

import re

from graphen_kg.ingestion.parsing.base import (
    DocumentParser,
    ParsedDocument,
    count_lines,
    count_words,
)

# Block-level patterns
_HEADER_PATTERN = re.compile(r"^\s{0,3}#{1,6}\s+(.*?)(?:\s+#+)?\s*$")
_FENCE_PATTERN = re.compile(r"^\s{0,3}(```|~~~)")
_RULE_PATTERN = re.compile(r"^\s{0,3}([-*_])(\s*\1){2,}\s*$")
_TABLE_SEPARATOR_PATTERN = re.compile(r"^\s*\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?\s*$")
_SETEXT_UNDERLINE_PATTERN = re.compile(r"^\s{0,3}(=+|-+)\s*$")
_LINK_DEFINITION_PATTERN = re.compile(r"^\s{0,3}\[[^\]]+\]:\s+\S+")
_BLOCKQUOTE_PATTERN = re.compile(r"^\s{0,3}(>\s?)+")
_LIST_MARKER_PATTERN = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(?:\[[ xX]\]\s+)?")

# Inline patterns, applied in order
_INLINE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"!\[([^\]]*)\]\([^)]*\)"), r"\1"),  # images -> alt text
    (re.compile(r"\[([^\]]+)\]\([^)]*\)"), r"\1"),  # inline links
    (re.compile(r"\[([^\]]+)\]\[[^\]]*\]"), r"\1"),  # reference links
    (re.compile(r"<[^>\n]+>"), ""),  # html tags and autolinks
    (re.compile(r"`([^`]+)`"), r"\1"),  # inline code
    (re.compile(r"(\*\*|__)(.+?)\1"), r"\2"),  # strong
    (re.compile(r"\*(?!\s)([^*]+?)\*"), r"\1"),  # emphasis
    (re.compile(r"(?<!\w)_(?!\s)([^_]+?)_(?!\w)"), r"\1"),
    (re.compile(r"~~(.+?)~~"), r"\1"),  # strikethrough
]


def _strip_inline(line: str) -> str:
    for pattern, replacement in _INLINE_PATTERNS:
        line = pattern.sub(replacement, line)
    return line


def markdown_to_text(source: str) -> str:
    """Textual content of a Markdown document, one fragment per line."""
    fragments: list[str] = []
    in_fence = False

    for raw_line in source.splitlines():
        if _FENCE_PATTERN.match(raw_line):
            in_fence = not in_fence
            continue
        if in_fence:
            if raw_line.strip():
                fragments.append(raw_line.rstrip())
            continue

        if (
            _RULE_PATTERN.match(raw_line)
            or _TABLE_SEPARATOR_PATTERN.match(raw_line)
            or _SETEXT_UNDERLINE_PATTERN.match(raw_line)
            or _LINK_DEFINITION_PATTERN.match(raw_line)
        ):
            continue

        line = raw_line
        header = _HEADER_PATTERN.match(line)
        if header:
            line = header.group(1)
        else:
            line = _BLOCKQUOTE_PATTERN.sub("", line)
            line = _LIST_MARKER_PATTERN.sub("", line)

        if "|" in line and line.strip().startswith("|"):
            line = " ".join(cell.strip() for cell in line.strip().strip("|").split("|"))

        line = _strip_inline(line).strip()
        if line:
            fragments.append(line)

    return "\n".join(fragments)


class MarkdownParser(DocumentParser):
    """Markdown to plain text; line_count counts source lines."""

    def parse(self, data: bytes) -> ParsedDocument:
        source = data.decode("utf-8", errors="replace")
        text = markdown_to_text(source)
        return ParsedDocument(
            text=text,
            word_count=count_words(text),
            line_count=count_lines(source),
        )
