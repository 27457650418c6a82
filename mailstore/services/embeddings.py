"""Embedding service with a provider-agnostic interface."""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import List, Optional

import structlog
from openai import AsyncOpenAI, OpenAIError

from ..config.settings import EmbeddingSettings
from ..database.models import EMBEDDING_DIMENSIONS
from ..exceptions import EmbeddingError

logger = structlog.get_logger(__name__)

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_EMBEDDING_DIMENSIONS = EMBEDDING_DIMENSIONS


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    model: str
    dimensions: int

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed one chunk of text, raising ``EmbeddingError`` on failure."""
        pass

    async def close(self) -> None:
        """Release client resources."""
        return None


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI embedding provider implementation."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_EMBEDDING_MODEL,
        dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS,
        timeout: float = 30.0,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        if client is None:
            if not api_key or not api_key.strip():
                raise ValueError("OPENAI_API_KEY must be set to create the embedding provider")
            # Retries are disabled: a failed chunk aborts the ingestion.
            client = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0, timeout=timeout)
        self.client = client
        self.model = model
        self.dimensions = dimensions
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: EmbeddingSettings) -> "OpenAIEmbeddingProvider":
        """Create a provider from embedding settings."""
        return cls(
            api_key=settings.openai_api_key or "",
            model=settings.model,
            dimensions=settings.dimensions,
            timeout=settings.timeout_seconds,
            base_url=settings.openai_base_url,
        )

    async def embed(self, text: str) -> List[float]:
        """Embed a single chunk with the OpenAI embeddings API."""
        start_time = time.time()
        try:
            response = await asyncio.wait_for(
                self.client.embeddings.create(model=self.model, input=text, dimensions=self.dimensions),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("OpenAI embedding timed out", model=self.model, timeout=self.timeout)
            raise EmbeddingError(f"Embedding request timed out after {self.timeout}s", cause=exc) from exc
        except OpenAIError as exc:
            logger.error("OpenAI embedding failed", model=self.model, error=str(exc))
            raise EmbeddingError(f"Embedding request failed: {exc}", cause=exc) from exc

        if not response.data:
            raise EmbeddingError("Embedding response contained no vectors")

        embedding = list(response.data[0].embedding)
        if len(embedding) != self.dimensions:
            raise EmbeddingError(
                f"Embedding has {len(embedding)} dimensions, expected {self.dimensions}"
            )

        logger.debug(
            "OpenAI embedding completed",
            model=self.model,
            chars=len(text),
            latency=time.time() - start_time,
        )
        return embedding

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()


def create_embedding_provider(settings: EmbeddingSettings) -> EmbeddingProvider:
    """Create the configured embedding provider.

    The vector width must match the ``email_sections.embedding`` column.
    """
    if settings.dimensions != EMBEDDING_DIMENSIONS:
        raise ValueError(
            f"EMBEDDING_DIMENSIONS is {settings.dimensions} but the email_sections.embedding "
            f"column stores {EMBEDDING_DIMENSIONS}-dimension vectors"
        )
    provider = OpenAIEmbeddingProvider.from_settings(settings)
    logger.info("Embedding provider created", model=provider.model, dimensions=provider.dimensions)
    return provider
