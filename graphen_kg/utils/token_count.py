"""
Token counting helpers for the document size guard.

Uses tiktoken for model-aware counts and a character heuristic where no
tokenizer is involved.
"""

from __future__ import annotations

import math

import tiktoken


def _encoding_for(model: str) -> tiktoken.Encoding:
    try:
        return tiktoken.encoding_for_model(model)
    except KeyError:
        return tiktoken.get_encoding("cl100k_base")


def count_text_tokens(text: str, model: str) -> int:
    """Count tokens for plain text with the model's tokenizer."""
    if not text:
        return 0
    return len(_encoding_for(model).encode(text))


def estimate_tokens_by_length(text: str) -> int:
    """
    Cheap estimate used when no tokenizer is configured.

    ~4 chars/token, rounded up.
    """
    return math.ceil(len(text) / 4)
