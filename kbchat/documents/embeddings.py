"""Embedding generator for chunk and query vectorization."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import openai

from kbchat.core.exceptions import EmbeddingUnavailable
from kbchat.core.logging import get_logger

if TYPE_CHECKING:
    from openai import AsyncOpenAI

logger = get_logger(__name__)

# Maximum attempts for transient failures
MAX_RETRIES = 3
# Base delay between retries (seconds)
RETRY_DELAY = 1.0

_RETRYABLE_ERRORS = (openai.RateLimitError, openai.APIConnectionError, openai.APITimeoutError)


class EmbeddingGenerator:
    """Generate embeddings using OpenAI's embedding models."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        base_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ):
        """Initialize the embedding generator.

        Args:
            model: OpenAI embedding model to use
            api_key: OpenAI API key
            base_url: Optional API base URL override
            client: Pre-built client, mainly for tests
        """
        self.model = model
        self._api_key = api_key
        self._base_url = base_url
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        """Get or create async OpenAI client.

        SDK retries are disabled; ``embed`` owns the retry schedule.
        """
        if self._client is None:
            if not self._api_key:
                raise EmbeddingUnavailable("OpenAI API key is not configured", model=self.model)
            self._client = openai.AsyncOpenAI(api_key=self._api_key, base_url=self._base_url, max_retries=0)
        return self._client

    async def embed(self, text: str) -> list[float]:
        """Embed a single text with one API call.

        Raises:
            EmbeddingUnavailable: On service/network failure or an empty response.
        """
        if not text.strip():
            raise EmbeddingUnavailable("Cannot embed empty text", model=self.model)

        client = self._get_client()
        last_error: Exception | None = None

        for attempt in range(MAX_RETRIES):
            try:
                response = await client.embeddings.create(model=self.model, input=text)
            except _RETRYABLE_ERRORS as e:
                last_error = e
                if attempt == MAX_RETRIES - 1:
                    break
                wait_time = RETRY_DELAY * (2**attempt)
                logger.warning(
                    "embedding_retry",
                    attempt=attempt + 1,
                    max_retries=MAX_RETRIES,
                    wait_time=wait_time,
                    error=str(e),
                )
                await asyncio.sleep(wait_time)
                continue
            except openai.OpenAIError as e:
                logger.error("embedding_failed", model=self.model, error=str(e))
                raise EmbeddingUnavailable(f"Embedding request failed: {e}", model=self.model) from e

            if not response.data or not response.data[0].embedding:
                raise EmbeddingUnavailable("Embedding response contained no vector", model=self.model)
            return list(response.data[0].embedding)

        logger.error("embedding_max_retries_exceeded", model=self.model, error=str(last_error))
        raise EmbeddingUnavailable(
            f"Embedding failed after {MAX_RETRIES} attempts: {last_error}", model=self.model
        ) from last_error


def create_embedding_generator(
    model: str = "text-embedding-3-small",
    api_key: str | None = None,
    base_url: str | None = None,
) -> EmbeddingGenerator:
    """Factory function used by the DI container."""
    return EmbeddingGenerator(model=model, api_key=api_key, base_url=base_url)
