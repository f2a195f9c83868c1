"""
LLM Provider Implementations

Modules:
    openai: OpenAI provider (gpt-4o, gpt-4o-mini)

Each provider implements the LLMProvider interface with:
    - generate_structured(): Structured output (Pydantic schema)
    - extract(): Entity/relation mentions for one chunk
    - estimate_tokens(): Optional tokenizer-backed count

Example:
    >>> from graphen_kg.providers.llm import OpenAILLMProvider
    >>> provider = OpenAILLMProvider(model="gpt-4o-mini")
    >>> result = await provider.extract("Apple designs the iPhone.")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from graphen_kg.providers.llm.openai import OpenAILLMProvider


def __getattr__(name: str):
    """Lazy import of providers to avoid requiring all dependencies."""
    if name == "OpenAILLMProvider":
        from graphen_kg.providers.llm.openai import OpenAILLMProvider
        return OpenAILLMProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["OpenAILLMProvider"]
