"""
OpenAI LLM Provider (LangChain-based)

Implements LLMProvider interface using LangChain's ChatOpenAI.

Supports:
    - Structured output with Pydantic schemas (generate_structured)
    - Entity/relation extraction (extract, inherited from LLMProvider)
    - Tokenizer-backed token estimates for the document size guard

Models:
    - gpt-4o: Best quality
    - gpt-4o-mini: Fast and cheap, the default for extraction

Example:
    >>> provider = OpenAILLMProvider(api_key="sk-...", model="gpt-4o-mini")
    >>> result = await provider.extract("Apple designs the iPhone.")
    >>> [e.name for e in result.entities]
    ['Apple', 'iPhone']
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from graphen_kg.providers.base import LLMProvider
from graphen_kg.utils.token_count import count_text_tokens

if TYPE_CHECKING:
    from langchain_openai import ChatOpenAI
    from pydantic import BaseModel

T = TypeVar("T", bound="BaseModel")

DEFAULT_MODEL = "gpt-4o-mini"


def _get_chat_openai(
    api_key: str | None = None,
    model: str = DEFAULT_MODEL,
    temperature: float = 0.0,
    base_url: str | None = None,
) -> "ChatOpenAI":
    """
    Get a ChatOpenAI instance.

    Args:
        api_key: Optional API key. If not provided, uses OPENAI_API_KEY env var.
        model: Model name to use.
        temperature: Sampling temperature.
        base_url: Optional OpenAI-compatible endpoint.

    Returns:
        ChatOpenAI instance
    """
    from langchain_openai import ChatOpenAI

    kwargs: dict[str, Any] = {"model": model, "temperature": temperature}
    if api_key:
        kwargs["api_key"] = api_key
    if base_url:
        kwargs["base_url"] = base_url

    return ChatOpenAI(**kwargs)


class OpenAILLMProvider(LLMProvider):
    """
    OpenAI LLM provider implementation using LangChain.

    Args:
        api_key: OpenAI API key. If None, uses OPENAI_API_KEY environment variable.
        model: Model to use (default: "gpt-4o-mini")
        base_url: OpenAI-compatible endpoint (default: the OpenAI API)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        base_url: str | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url
        # Lazy initialization - create client on first use
        self._client: ChatOpenAI | None = None

    def _get_client(self) -> "ChatOpenAI":
        """Get or create the ChatOpenAI client."""
        if self._client is None:
            self._client = _get_chat_openai(
                api_key=self._api_key,
                model=self._model,
                temperature=0.0,  # Deterministic for structured output
                base_url=self._base_url,
            )
        return self._client

    @property
    def model_name(self) -> str:
        """Current model name."""
        return self._model

    async def generate_structured(
        self,
        prompt: str,
        schema: type[T],
        *,
        system: str | None = None,
    ) -> T:
        """
        Generate a structured response matching a Pydantic schema.

        Uses LangChain's with_structured_output for reliable
        structured output that conforms to the provided schema.

        Args:
            prompt: User prompt
            schema: Pydantic model class defining expected structure
            system: Optional system message

        Returns:
            Instance of schema class populated with generated values
        """
        from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

        messages: list[BaseMessage] = []
        if system:
            messages.append(SystemMessage(content=system))
        messages.append(HumanMessage(content=prompt))

        structured_client = self._get_client().with_structured_output(schema)
        result = await structured_client.ainvoke(messages)
        return result  # type: ignore[return-value]

    def estimate_tokens(self, text: str) -> int:
        """Token count with the model's tiktoken encoding."""
        return count_text_tokens(text, self._model)
