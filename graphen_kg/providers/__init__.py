"""
LLM and Embedding Providers

Provider-agnostic interfaces for LLM and embedding operations, plus the
CallDispatcher that every external call goes through.

Modules:
    base: Abstract provider interfaces
    dispatcher: Rate-limited, retrying call execution
    factory: Build providers from GraphenConfig
    llm/: LLM provider implementations
    embedding/: Embedding provider implementations

Supported Providers:
    - OpenAI chat models via LangChain (structured output)
    - OpenAI embeddings via LangChain

Example:
    >>> from graphen_kg.providers import CallDispatcher, create_llm_provider
    >>> llm = create_llm_provider(GraphenConfig())
    >>> dispatcher = CallDispatcher(max_concurrent=2)
    >>> result = await dispatcher.run(lambda: llm.extract("Apple designs the iPhone."))
"""

from graphen_kg.providers.base import EmbeddingProvider, LLMProvider
from graphen_kg.providers.dispatcher import CallDispatcher, DispatcherStats
from graphen_kg.providers.factory import create_embedding_provider, create_llm_provider

__all__ = [
    "LLMProvider",
    "EmbeddingProvider",
    "CallDispatcher",
    "DispatcherStats",
    "create_llm_provider",
    "create_embedding_provider",
]
