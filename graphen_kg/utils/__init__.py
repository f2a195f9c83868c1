"""
Utility Functions

Core algorithms and helper functions used throughout the package.

Modules:
    text: Entity name normalization and description merging
    similarity: Levenshtein / Jaccard / hashed-vector cosine scoring
    concurrency: Shared-cursor worker pool
    token_count: Token estimation for the size guard
"""

from graphen_kg.utils.concurrency import run_with_concurrency
from graphen_kg.utils.similarity import (
    cosine_similarity,
    description_similarity,
    jaccard_similarity,
    levenshtein_distance,
    name_similarity,
    normalized_levenshtein,
    text_vector,
)
from graphen_kg.utils.text import SYNONYMS, merge_text_segments, normalize_name
from graphen_kg.utils.token_count import count_text_tokens, estimate_tokens_by_length

__all__ = [
    "run_with_concurrency",
    "cosine_similarity",
    "description_similarity",
    "jaccard_similarity",
    "levenshtein_distance",
    "name_similarity",
    "normalized_levenshtein",
    "text_vector",
    "SYNONYMS",
    "merge_text_segments",
    "normalize_name",
    "count_text_tokens",
    "estimate_tokens_by_length",
]
