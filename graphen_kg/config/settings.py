"""
GraphenConfig - Configuration Management

Sensible defaults with full override capability.

Example:
    >>> # Use defaults (reads from environment)
    >>> pipeline = DocumentPipeline(store, llm, embeddings)

    >>> # Explicit configuration
    >>> config = GraphenConfig(chunk_size=800, chunk_overlap=100)
    >>> pipeline = DocumentPipeline(store, llm, embeddings, config=config)

    >>> # From config file
    >>> config = GraphenConfig.from_file("./graphen.toml")

Environment Variables:
    GRAPHEN_CACHE_DIR - Directory for per-document chunk/extraction caches
    GRAPHEN_CHUNK_SIZE / GRAPHEN_CHUNK_OVERLAP - Splitter size and overlap (characters)
    GRAPHEN_MAX_CHUNKS_PER_DOCUMENT - Size guard: chunk count ceiling
    GRAPHEN_MAX_DOCUMENT_ESTIMATED_TOKENS - Size guard: token estimate ceiling
    GRAPHEN_EXTRACTION_CONCURRENCY - Worker pool width for extraction
    GRAPHEN_EMBEDDING_CONCURRENCY - Worker pool width for embedding
    GRAPHEN_LLM_MAX_CONCURRENT - Dispatcher: calls in flight
    GRAPHEN_LLM_MAX_RETRIES - Dispatcher: retries for retryable failures
    GRAPHEN_LLM_RETRY_DELAY - Dispatcher: base backoff delay (seconds)
    GRAPHEN_LLM_REQUESTS_PER_MINUTE - Dispatcher: attempts per rolling minute
    GRAPHEN_LLM_TIMEOUT - Dispatcher: per-attempt timeout (seconds)
    GRAPHEN_LLM_PROVIDER / GRAPHEN_LLM_MODEL - Extraction model
    GRAPHEN_EMBEDDING_PROVIDER / GRAPHEN_EMBEDDING_MODEL / GRAPHEN_EMBEDDING_DIMENSIONS
    GRAPHEN_STORAGE_PATH - Directory of the Parquet graph store
    GRAPHEN_MAX_UPLOAD_SIZE - Upload size limit in bytes
    OPENAI_API_KEY / OPENAI_BASE_URL - OpenAI credentials (standard names)
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Callable

from graphen_kg.errors import ConfigurationError

# env var -> (attribute, converter)
_ENV_OVERRIDES: dict[str, tuple[str, Callable[[str], Any]]] = {
    "GRAPHEN_CACHE_DIR": ("cache_dir", str),
    "GRAPHEN_CHUNK_SIZE": ("chunk_size", int),
    "GRAPHEN_CHUNK_OVERLAP": ("chunk_overlap", int),
    "GRAPHEN_MAX_CHUNKS_PER_DOCUMENT": ("max_chunks_per_document", int),
    "GRAPHEN_MAX_DOCUMENT_ESTIMATED_TOKENS": ("max_estimated_tokens", int),
    "GRAPHEN_EXTRACTION_CONCURRENCY": ("extraction_concurrency", int),
    "GRAPHEN_EMBEDDING_CONCURRENCY": ("embedding_concurrency", int),
    "GRAPHEN_LLM_MAX_CONCURRENT": ("llm_max_concurrent", int),
    "GRAPHEN_LLM_MAX_RETRIES": ("llm_max_retries", int),
    "GRAPHEN_LLM_RETRY_DELAY": ("llm_retry_delay", float),
    "GRAPHEN_LLM_REQUESTS_PER_MINUTE": ("llm_requests_per_minute", int),
    "GRAPHEN_LLM_TIMEOUT": ("llm_timeout", float),
    "GRAPHEN_LLM_PROVIDER": ("llm_provider", str),
    "GRAPHEN_LLM_MODEL": ("llm_model", str),
    "GRAPHEN_EMBEDDING_PROVIDER": ("embedding_provider", str),
    "GRAPHEN_EMBEDDING_MODEL": ("embedding_model", str),
    "GRAPHEN_EMBEDDING_DIMENSIONS": ("embedding_dimensions", int),
    "GRAPHEN_STORAGE_PATH": ("storage_path", str),
    "GRAPHEN_MAX_UPLOAD_SIZE": ("max_upload_size", int),
}


class GraphenConfig:
    """Configuration for GraphenKG."""

    # === Pipeline Configuration ===

    cache_dir: str = "data/cache"
    """Root of the per-document chunk/extraction cache"""

    chunk_size: int = 1500
    """Target chunk length in characters"""

    chunk_overlap: int = 200
    """Characters repeated from the end of the previous chunk"""

    max_chunks_per_document: int = 500
    """Documents splitting into more chunks fail before extraction"""

    max_estimated_tokens: int = 500_000
    """Documents estimated above this many tokens fail before extraction"""

    extraction_concurrency: int = 5
    """Worker pool width for per-chunk extraction"""

    embedding_concurrency: int = 5
    """Worker pool width for node/chunk embedding"""

    max_upload_size: int = 50 * 1024 * 1024
    """Largest accepted upload in bytes"""

    # === Call Dispatcher Configuration ===

    llm_max_concurrent: int = 5
    """Max LLM/embedding calls in flight"""

    llm_max_retries: int = 3
    """Retries for rate-limited or timed-out calls"""

    llm_retry_delay: float = 1.0
    """Base backoff delay in seconds (doubles per retry)"""

    llm_requests_per_minute: int = 30
    """Attempts started per rolling minute"""

    llm_timeout: float = 60.0
    """Per-attempt timeout in seconds (0 disables)"""

    # === Provider Configuration ===

    llm_provider: str = "openai"
    """LLM provider: "openai" """

    llm_model: str = "gpt-4o-mini"
    """Model for entity/relation extraction"""

    embedding_provider: str = "openai"
    """Embedding provider: "openai" """

    embedding_model: str = "text-embedding-3-small"
    """Embedding model name"""

    embedding_dimensions: int = 1536
    """Embedding vector dimensions (provider-dependent)"""

    openai_api_key: str | None = None
    openai_base_url: str | None = None

    # === Storage Configuration ===

    storage_path: str = "data/graph"
    """Directory of the Parquet graph store"""

    def __init__(self, **kwargs: Any) -> None:
        """
        Initialize configuration.

        Args:
            **kwargs: Override any configuration option
        """
        # Load from environment first
        self._load_from_env()

        # Apply explicit overrides
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                raise ValueError(f"Unknown configuration option: {key}")

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        self.openai_api_key = os.getenv("OPENAI_API_KEY")
        self.openai_base_url = os.getenv("OPENAI_BASE_URL")

        for env_name, (attr, convert) in _ENV_OVERRIDES.items():
            if raw := os.getenv(env_name):
                try:
                    setattr(self, attr, convert(raw))
                except ValueError as e:
                    raise ConfigurationError(
                        f"Invalid value for {env_name}: {raw!r}",
                        {"env": env_name, "value": raw},
                    ) from e

    def validate(self) -> "GraphenConfig":
        """
        Reject configurations the pipeline cannot run with.

        Returns:
            self, for chaining

        Raises:
            ConfigurationError: On the first degenerate value found
        """
        if self.chunk_size <= 0:
            raise ConfigurationError(
                f"chunk_size must be positive, got {self.chunk_size}",
                {"chunk_size": self.chunk_size},
            )
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ConfigurationError(
                f"chunk_overlap must be in [0, {self.chunk_size}), got {self.chunk_overlap}",
                {"chunk_overlap": self.chunk_overlap},
            )
        for name in (
            "max_chunks_per_document",
            "max_estimated_tokens",
            "extraction_concurrency",
            "embedding_concurrency",
            "llm_max_concurrent",
            "llm_requests_per_minute",
        ):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigurationError(
                    f"{name} must be positive, got {value}", {name: value}
                )
        if self.llm_max_retries < 0:
            raise ConfigurationError(
                f"llm_max_retries must be >= 0, got {self.llm_max_retries}",
                {"llm_max_retries": self.llm_max_retries},
            )
        if self.llm_retry_delay < 0 or self.llm_timeout < 0:
            raise ConfigurationError(
                "llm_retry_delay and llm_timeout must be >= 0",
                {"llm_retry_delay": self.llm_retry_delay, "llm_timeout": self.llm_timeout},
            )
        return self

    @classmethod
    def from_file(cls, path: str | Path) -> "GraphenConfig":
        """
        Load configuration from TOML file.

        Nested sections are flattened with a per-section prefix.

        Example TOML:
            [pipeline]
            chunk_size = 1200
            extraction_concurrency = 8

            [dispatcher]
            max_retries = 5
            requests_per_minute = 60

            [llm]
            model = "gpt-4o"

        Args:
            path: Path to TOML configuration file

        Returns:
            GraphenConfig instance with values from file

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        # Map section names to config key prefixes
        section_mapping = {
            "pipeline": "",
            "dispatcher": "llm_",
            "llm": "llm_",
            "embedding": "embedding_",
            "storage": "",
        }

        flat_config: dict[str, Any] = {}
        for section, prefix in section_mapping.items():
            for key, value in data.get(section, {}).items():
                flat_config[f"{prefix}{key}"] = value

        # Also support flat top-level keys
        for key, value in data.items():
            if key not in section_mapping and not isinstance(value, dict):
                flat_config[key] = value

        return cls(**flat_config)

    @classmethod
    def from_env(cls) -> "GraphenConfig":
        """Load configuration from environment variables only."""
        return cls()

    def to_file(self, path: str | Path) -> None:
        """
        Save configuration to TOML file.

        API keys are excluded; set them via environment variables.

        Args:
            path: Path to write TOML configuration file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        sections: dict[str, dict[str, str | int | float | bool | None]] = {
            "pipeline": {
                "cache_dir": self.cache_dir,
                "chunk_size": self.chunk_size,
                "chunk_overlap": self.chunk_overlap,
                "max_chunks_per_document": self.max_chunks_per_document,
                "max_estimated_tokens": self.max_estimated_tokens,
                "extraction_concurrency": self.extraction_concurrency,
                "embedding_concurrency": self.embedding_concurrency,
                "max_upload_size": self.max_upload_size,
            },
            "dispatcher": {
                "max_concurrent": self.llm_max_concurrent,
                "max_retries": self.llm_max_retries,
                "retry_delay": self.llm_retry_delay,
                "requests_per_minute": self.llm_requests_per_minute,
                "timeout": self.llm_timeout,
            },
            "llm": {
                "provider": self.llm_provider,
                "model": self.llm_model,
            },
            "embedding": {
                "provider": self.embedding_provider,
                "model": self.embedding_model,
                "dimensions": self.embedding_dimensions,
            },
            "storage": {
                "storage_path": self.storage_path,
            },
        }

        # Build TOML string manually (tomllib is read-only)
        lines = ["# GraphenKG Configuration", ""]

        for section_name, section_values in sections.items():
            lines.append(f"[{section_name}]")
            for key, value in section_values.items():
                if isinstance(value, str):
                    lines.append(f'{key} = "{value}"')
                elif isinstance(value, bool):
                    lines.append(f"{key} = {str(value).lower()}")
                elif isinstance(value, (int, float)):
                    lines.append(f"{key} = {value}")
            lines.append("")

        lines.extend([
            "# API keys should be set via environment variables:",
            "# OPENAI_API_KEY, OPENAI_BASE_URL",
            "",
        ])

        path.write_text("\n".join(lines))

    def with_overrides(self, **kwargs: Any) -> "GraphenConfig":
        """Return new config with specified overrides."""
        new_config = GraphenConfig.__new__(GraphenConfig)
        for key in dir(self):
            if not key.startswith("_") and not callable(getattr(self, key)):
                setattr(new_config, key, getattr(self, key))
        for key, value in kwargs.items():
            if not hasattr(new_config, key):
                raise ValueError(f"Unknown configuration option: {key}")
            setattr(new_config, key, value)
        return new_config
