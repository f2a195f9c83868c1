"""
String, Set and Vector Similarity

Scoring functions used by the entity resolution stages.

    - name_similarity: mean of normalized Levenshtein and token Jaccard
    - text_vector / cosine_similarity: hashed bag-of-words comparison of
      entity descriptions (no embedding model involved)
"""

from __future__ import annotations

import re

import numpy as np

from graphen_kg.utils.text import normalize_name

VECTOR_DIMENSIONS = 128

_TOKEN_RE = re.compile(r"[^\W_]+")
_HASH_MASK = 0xFFFFFFFF


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit cost insert/delete/substitute."""
    prev = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current[j] = min(
                prev[j] + 1,  # deletion
                current[j - 1] + 1,  # insertion
                prev[j - 1] + cost,  # substitution
            )
        prev = current
    return prev[len(b)]


def normalized_levenshtein(a: str, b: str) -> float:
    """1 - distance / max(len). Two empty strings are identical."""
    max_length = max(len(a), len(b))
    if max_length == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / max_length


def jaccard_similarity(a: str, b: str) -> float:
    """Jaccard similarity of whitespace-separated token sets."""
    tokens_a = set(a.split())
    tokens_b = set(b.split())
    if not tokens_a and not tokens_b:
        return 1.0
    union = tokens_a | tokens_b
    return len(tokens_a & tokens_b) / len(union)


def name_similarity(a: str, b: str) -> float:
    """Blended similarity of two entity names after normalization."""
    norm_a = normalize_name(a)
    norm_b = normalize_name(b)
    if norm_a == norm_b:
        return 1.0
    return (normalized_levenshtein(norm_a, norm_b) + jaccard_similarity(norm_a, norm_b)) / 2


def hash_token(token: str) -> int:
    """Polynomial base-31 hash, kept within 32 bits."""
    value = 0
    for char in token:
        value = (value * 31 + ord(char)) & _HASH_MASK
    return value


def text_vector(text: str, dimensions: int = VECTOR_DIMENSIONS) -> np.ndarray:
    """Hashed bag-of-words counts over letter/digit tokens."""
    vector = np.zeros(dimensions, dtype=np.float64)
    for token in _TOKEN_RE.findall(text.lower()):
        vector[hash_token(token) % dimensions] += 1
    return vector


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity; 0.0 when either vector is all zeros."""
    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def description_similarity(a: str, b: str) -> float:
    """Cosine similarity of the hashed vectors of two descriptions."""
    return cosine_similarity(text_vector(a), text_vector(b))
