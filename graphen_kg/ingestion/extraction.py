"""
Entity / Relation Extractor

Asks an LLM for the entities and relations mentioned in one chunk of text.
The result is a set of mentions; canonicalization happens later in
graphen_kg.ingestion.resolution.

Example:
    >>> from graphen_kg.providers.llm import OpenAILLMProvider
    >>> llm = OpenAILLMProvider()
    >>> result = await extract_from_chunk("Apple designs the iPhone.", llm)
    >>> print(f"Found {len(result.entities)} entities, {len(result.relations)} relations")
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from graphen_kg.types import ExtractionResult

if TYPE_CHECKING:
    from graphen_kg.providers.base import LLMProvider


DEFAULT_ENTITY_TYPES: tuple[str, ...] = (
    "Person",
    "Organization",
    "Technology",
    "Concept",
    "Document",
    "Event",
    "Location",
    "Metric",
)

DEFAULT_RELATION_TYPES: tuple[str, ...] = (
    "BELONGS_TO",
    "DEPENDS_ON",
    "IMPLEMENTS",
    "USES",
    "CREATED_BY",
    "RELATED_TO",
    "PART_OF",
    "SUCCESSOR_OF",
    "COMPARED_WITH",
)

# -----------------------------------------------------------------------------
# System Prompts
# -----------------------------------------------------------------------------

_EXTRACTION_SYSTEM_TEMPLATE = """\
You are a knowledge graph construction assistant. Extract the entities and
relations mentioned in the input text.

## Output
- entities: name, type, description (1-2 sentences), confidence
- relations: source (entity name), target (entity name), type, description, confidence

## Candidate Entity Types
{entity_types}

## Candidate Relation Types
{relation_types}

## Rules
1. Only extract information stated explicitly in the text. Do not speculate.
2. Normalize names (use one consistent form for abbreviations and full names).
3. Relation source and target MUST be names from your entity list.
4. confidence is a number between 0 and 1."""

_EXTRACTION_USER_TEMPLATE = """\
TEXT:

{content}

Extract all entities first, then the relations between them."""


def build_extraction_system_prompt(
    entity_types: Sequence[str] | None = None,
    relation_types: Sequence[str] | None = None,
) -> str:
    """
    Render the system prompt with candidate types.

    Empty or missing type lists fall back to the defaults.
    """
    entities = entity_types or DEFAULT_ENTITY_TYPES
    relations = relation_types or DEFAULT_RELATION_TYPES
    return _EXTRACTION_SYSTEM_TEMPLATE.format(
        entity_types="\n".join(f"- {t}" for t in entities),
        relation_types="\n".join(f"- {t}" for t in relations),
    )


async def extract_from_chunk(
    text: str,
    llm: "LLMProvider",
    *,
    entity_types: Sequence[str] | None = None,
    relation_types: Sequence[str] | None = None,
) -> ExtractionResult:
    """
    Extract entities and relations from a single chunk.

    Failures propagate to the caller (the CallDispatcher decides whether
    they are retried).

    Args:
        text: Chunk content
        llm: LLM provider for structured generation
        entity_types: Candidate entity types (defaults to DEFAULT_ENTITY_TYPES)
        relation_types: Candidate relation types (defaults to DEFAULT_RELATION_TYPES)

    Returns:
        ExtractionResult with entity and relation mentions
    """
    prompt = _EXTRACTION_USER_TEMPLATE.format(content=text)
    return await llm.generate_structured(
        prompt,
        ExtractionResult,
        system=build_extraction_system_prompt(entity_types, relation_types),
    )
