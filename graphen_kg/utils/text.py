"""
Text Processing Utilities

Functions for entity name normalization and description merging.
"""

from __future__ import annotations

# Canonical expansions applied after normalization
SYNONYMS: dict[str, str] = {
    "llm": "large language model",
    "ai": "artificial intelligence",
}

SEGMENT_SEPARATOR = " | "


def normalize_name(name: str) -> str:
    """
    Canonical key for exact-match grouping.

    Trims, lowercases, collapses internal whitespace, then substitutes
    through the synonym table.

    Args:
        name: e.g., "  LLM "

    Returns:
        Normalized key e.g., "large language model"
    """
    normalized = " ".join(name.lower().split())
    return SYNONYMS.get(normalized, normalized)


def merge_text_segments(*texts: str) -> str:
    """
    Union of non-empty trimmed segments in first-seen order.

    Exact duplicates are dropped; the rest are joined with " | ".
    """
    segments: list[str] = []
    for text in texts:
        segment = text.strip()
        if segment and segment not in segments:
            segments.append(segment)
    return SEGMENT_SEPARATOR.join(segments)

