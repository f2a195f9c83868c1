"""
Entity Resolution

In-document reconciliation of per-chunk mentions into canonical nodes and
deduplicated edges.

Stages:
    1. Exact match on normalized names (synonym-aware)
    2. Fuzzy match on names (Levenshtein + Jaccard, greedy first-fit)
    3. Semantic match on descriptions (hashed bag-of-words cosine)

Relations are remapped through the surviving entities' aliases; unresolved
endpoints and self-loops are dropped.
"""

from graphen_kg.ingestion.resolution.entity_resolver import EntityResolver

__all__ = ["EntityResolver"]
