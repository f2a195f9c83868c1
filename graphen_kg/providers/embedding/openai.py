"""
OpenAI Embedding Provider (LangChain-based)

Implements EmbeddingProvider interface using LangChain's OpenAIEmbeddings.

Models:
    - text-embedding-3-small: 1536 dimensions (default)
    - text-embedding-3-large: 3072 dimensions

Example:
    >>> provider = OpenAIEmbeddingProvider()
    >>> vectors = await provider.embed(["Apple\\nConsumer electronics company"])
    >>> print(len(vectors[0]))
    1536
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from graphen_kg.providers.base import EmbeddingProvider

if TYPE_CHECKING:
    from langchain_openai import OpenAIEmbeddings


# Model dimensions mapping
MODEL_DIMENSIONS = {
    "text-embedding-3-large": 3072,
    "text-embedding-3-small": 1536,
    "text-embedding-ada-002": 1536,
}

DEFAULT_MODEL = "text-embedding-3-small"


def _get_openai_embeddings(
    api_key: str | None = None,
    model: str = DEFAULT_MODEL,
    base_url: str | None = None,
) -> "OpenAIEmbeddings":
    """
    Get an OpenAIEmbeddings instance.

    Args:
        api_key: Optional API key. If not provided, uses OPENAI_API_KEY env var.
        model: Model name to use.
        base_url: Optional OpenAI-compatible endpoint.

    Returns:
        OpenAIEmbeddings instance
    """
    from langchain_openai import OpenAIEmbeddings
    from pydantic import SecretStr

    kwargs: dict[str, Any] = {"model": model}
    if api_key:
        kwargs["api_key"] = SecretStr(api_key)
    if base_url:
        kwargs["base_url"] = base_url
    return OpenAIEmbeddings(**kwargs)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """
    OpenAI embedding provider implementation using LangChain.

    Args:
        api_key: OpenAI API key. If None, uses OPENAI_API_KEY environment variable.
        model: Model to use (default: "text-embedding-3-small")
        base_url: OpenAI-compatible endpoint (default: the OpenAI API)
        dimensions: Override for models missing from MODEL_DIMENSIONS
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        base_url: str | None = None,
        dimensions: int | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url
        self._dimensions = dimensions or MODEL_DIMENSIONS.get(model, 1536)
        # Lazy initialization
        self._client: OpenAIEmbeddings | None = None

    def _get_client(self) -> "OpenAIEmbeddings":
        """Get or create the OpenAIEmbeddings client."""
        if self._client is None:
            self._client = _get_openai_embeddings(
                api_key=self._api_key,
                model=self._model,
                base_url=self._base_url,
            )
        return self._client

    @property
    def dimensions(self) -> int:
        """Embedding dimensions for the current model."""
        return self._dimensions

    @property
    def model_name(self) -> str:
        """Current model name."""
        return self._model

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings for multiple texts.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors (same order as input)
        """
        if not texts:
            return []

        client = self._get_client()

        # LangChain's embed_documents is synchronous, run in thread pool
        return await asyncio.to_thread(client.embed_documents, texts)

    async def embed_single(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        client = self._get_client()

        # LangChain's embed_query is synchronous, run in thread pool
        return await asyncio.to_thread(client.embed_query, text)
