"""Embedding client abstraction for turning form content into vectors.

Supports the OpenAI embeddings API and a random-vector mock used before real
embeddings were wired in. Retries are opt-in through ``max_retries``.
"""

import asyncio
import random
from typing import Protocol

import httpx
from loguru import logger
from openai import APITimeoutError, AsyncOpenAI, RateLimitError
from pydantic import BaseModel, Field, field_validator


class EmbeddingConfig(BaseModel):
    """Configuration for embedding generation.

    Attributes:
        model: Model identifier (e.g., "openai/text-embedding-ada-002" or "random/mock")
        dimensions: Expected embedding dimensionality
        max_retries: Maximum attempts per call (1 means a single attempt)
        timeout_seconds: API request timeout
        api_key: API key for external services (empty when unset)
    """

    model: str
    dimensions: int = Field(default=1536, ge=1, le=4096)
    max_retries: int = Field(default=1, ge=1, le=10)
    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)
    api_key: str = ""

    @field_validator("api_key", mode="before")
    @classmethod
    def default_empty_key(cls, v: str | None) -> str:
        """Missing credentials become an empty string rather than an error."""
        return "" if v is None else str(v)


class EmbeddingClient(Protocol):
    """Protocol for embedding client implementations."""

    async def embed_single(self, text: str) -> list[float]:
        """Generate embedding for a single text.

        Args:
            text: Input text

        Returns:
            Embedding vector
        """
        ...


class OpenAIEmbedding:
    """OpenAI embedding client with optional retry logic."""

    def __init__(self, config: EmbeddingConfig):
        """Initialize OpenAI client.

        Args:
            config: Embedding configuration with API key
        """
        self.config = config
        self.model_name = config.model.removeprefix("openai/")
        self._client: AsyncOpenAI | None = None

    @property
    def client(self) -> AsyncOpenAI:
        # Built on first use: recent SDKs reject an empty key at construction
        if self._client is None:
            # Retries are driven by embed_single, not by the SDK
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding for one text.

        Args:
            text: Input text

        Returns:
            Embedding vector

        Raises:
            ValueError: If the text is empty or the vector has the wrong size
            httpx.HTTPError: For transport failures after all attempts
            openai.OpenAIError: For API failures after all attempts
        """
        if not text:
            raise ValueError("Cannot embed empty text")

        for attempt in range(self.config.max_retries):
            try:
                response = await self.client.embeddings.create(model=self.model_name, input=text)
                embedding = response.data[0].embedding

                if len(embedding) != self.config.dimensions:
                    raise ValueError(
                        f"Expected {self.config.dimensions} dimensions, got {len(embedding)}"
                    )

                logger.debug(
                    f"Embedded {len(text)} chars with {self.model_name} "
                    f"(attempt {attempt + 1}/{self.config.max_retries})"
                )
                return embedding

            except (APITimeoutError, httpx.TimeoutException) as e:
                logger.warning(
                    f"Timeout embedding text (attempt {attempt + 1}/{self.config.max_retries}): {e}"
                )
                if attempt < self.config.max_retries - 1:
                    await asyncio.sleep(2**attempt)
                else:
                    raise

            except RateLimitError as e:
                logger.warning(
                    f"Rate limited (attempt {attempt + 1}/{self.config.max_retries}): {e}"
                )
                if attempt < self.config.max_retries - 1:
                    await asyncio.sleep(2 ** (attempt + 1))
                else:
                    raise

        raise RuntimeError("Exhausted all retry attempts")


class RandomEmbedding:
    """Mock embedding that ignores the text and returns random floats."""

    def __init__(self, config: EmbeddingConfig, rng: random.Random | None = None):
        self.config = config
        self.rng = rng or random.Random()

    async def embed_single(self, text: str) -> list[float]:
        if not text:
            raise ValueError("Cannot embed empty text")
        return [self.rng.random() for _ in range(self.config.dimensions)]


def create_embedding_client(config: EmbeddingConfig) -> EmbeddingClient:
    """Factory function to create embedding client based on model config.

    Args:
        config: Embedding configuration

    Returns:
        Embedding client implementation

    Example:
        >>> config = EmbeddingConfig(model="random/mock", dimensions=8)
        >>> client = create_embedding_client(config)
    """
    if config.model.startswith("openai/"):
        return OpenAIEmbedding(config)
    elif config.model.startswith("random/"):
        return RandomEmbedding(config)
    else:
        raise ValueError(
            f"Unknown model prefix in {config.model!r}. " f"Expected 'openai/' or 'random/'"
        )
