"""
Abstract Provider Interfaces

Base classes for LLM and embedding providers.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel

if TYPE_CHECKING:
    from graphen_kg.types import ExtractionResult

T = TypeVar("T", bound=BaseModel)


class LLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    async def generate_structured(
        self,
        prompt: str,
        schema: type[T],
        *,
        system: str | None = None,
    ) -> T:
        """Generate a structured response matching the schema."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Current model name."""
        ...

    async def extract(self, text: str) -> "ExtractionResult":
        """Extract entity and relation mentions from one chunk of text."""
        from graphen_kg.ingestion.extraction import extract_from_chunk

        return await extract_from_chunk(text, self)

    def estimate_tokens(self, text: str) -> int | None:
        """Token count for ``text`` with this provider's tokenizer, if it has one."""
        return None


class EmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for texts."""
        ...

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Embedding dimensions."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Current model name."""
        ...
