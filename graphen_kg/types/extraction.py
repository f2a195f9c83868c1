"""
Extraction Types

Per-chunk output of the extraction capability. These are mentions, not
canonical objects: the same real-world entity may appear many times across
chunks under different names and confidences.

Models:
    - ExtractedEntity: One entity mention
    - ExtractedRelation: One relation mention between entity names
    - ExtractionResult: Everything extracted from one chunk
    - ChunkExtractionResult: ExtractionResult tagged with its chunk (cached on disk)
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIDENCE = 0.5


def _coerce_confidence(value: Any) -> float:
    """Missing or malformed confidences default to 0.5; others clamp to [0, 1]."""
    if value is None:
        return DEFAULT_CONFIDENCE
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, confidence))


def _coerce_text(value: Any) -> str:
    return "" if value is None else str(value)


class ExtractedEntity(BaseModel):
    """An entity mention as returned by the extraction capability."""

    name: str = Field(default="", description="Entity name as it appears in the text")
    type: str = Field(
        default="",
        description="Entity type, e.g. Person, Organization, Technology, Concept",
    )
    description: str = Field(default="", description="One or two sentence description")
    confidence: float = Field(
        default=DEFAULT_CONFIDENCE, description="Extraction confidence between 0 and 1"
    )

    @field_validator("name", "type", "description", mode="before")
    @classmethod
    def default_text(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, value: Any) -> float:
        return _coerce_confidence(value)


class ExtractedRelation(BaseModel):
    """A relation mention between two entity names."""

    source: str = Field(default="", description="Source entity name")
    target: str = Field(default="", description="Target entity name")
    type: str = Field(default="", description="Relation type, e.g. USES, PART_OF")
    description: str = Field(default="", description="Short relation description")
    confidence: float = Field(
        default=DEFAULT_CONFIDENCE, description="Extraction confidence between 0 and 1"
    )

    @field_validator("source", "target", "type", "description", mode="before")
    @classmethod
    def default_text(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, value: Any) -> float:
        return _coerce_confidence(value)


class ExtractionResult(BaseModel):
    """Entities and relations extracted from a single chunk."""

    entities: list[ExtractedEntity] = Field(
        default_factory=list, description="Entities mentioned in the text"
    )
    relations: list[ExtractedRelation] = Field(
        default_factory=list, description="Relations between the listed entities"
    )


class ChunkExtractionResult(BaseModel):
    """Extraction output for one chunk, keyed by chunk id and ordered by chunk index."""

    chunk_id: str
    chunk_index: int
    result: ExtractionResult = Field(default_factory=ExtractionResult)
