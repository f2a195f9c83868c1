"""
Provider Factory

Builds LLM / embedding providers from configuration. Imports are deferred
so that constructing a config never requires the provider packages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from graphen_kg.config import GraphenConfig
    from graphen_kg.providers.base import EmbeddingProvider, LLMProvider


def create_llm_provider(config: "GraphenConfig") -> "LLMProvider":
    """Create the extraction LLM named by ``config.llm_provider``."""
    if config.llm_provider == "openai":
        from graphen_kg.providers.llm.openai import OpenAILLMProvider

        return OpenAILLMProvider(
            api_key=config.openai_api_key,
            model=config.llm_model,
            base_url=config.openai_base_url,
        )
    raise ValueError(f"Unknown LLM provider: {config.llm_provider}")


def create_embedding_provider(config: "GraphenConfig") -> "EmbeddingProvider":
    """Create the embedding provider named by ``config.embedding_provider``."""
    if config.embedding_provider == "openai":
        from graphen_kg.providers.embedding.openai import OpenAIEmbeddingProvider

        return OpenAIEmbeddingProvider(
            api_key=config.openai_api_key,
            model=config.embedding_model,
            base_url=config.openai_base_url,
            dimensions=config.embedding_dimensions,
        )
    raise ValueError(f"Unknown embedding provider: {config.embedding_provider}")
