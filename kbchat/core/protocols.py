"""Protocol interfaces for dependency injection.

Each external capability the chat core consumes is a narrow typed method here;
backends in ``kbchat.storage`` and ``kbchat.llm`` implement them.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from kbchat.chat.models import Bot, Message
    from kbchat.documents.models import Chunk, RankedChunk, Source, SourceStatus
    from kbchat.leads.models import Lead, LeadNotification


@runtime_checkable
class LLMProvider(Protocol):
    """Streamed chat completion interface."""

    def ensure_ready(self) -> None:
        """Raise ConfigurationError if required credentials are missing."""
        ...

    def stream(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[str]:
        """Generate a streaming response."""
        ...


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Text to fixed-length vector."""

    async def embed(self, text: str) -> list[float]:
        """Embed one text. Raises EmbeddingUnavailable on failure."""
        ...


@runtime_checkable
class BotStore(Protocol):
    """Read access to bot configuration."""

    async def get_bot(self, bot_id: str) -> Bot | None:
        """Get a bot by ID, or None if unknown."""
        ...


@runtime_checkable
class SourceStore(Protocol):
    """Document source rows."""

    async def create_source(self, source: Source) -> Source:
        ...

    async def get_source(self, source_id: str) -> Source | None:
        ...

    async def update_source_status(self, source_id: str, status: SourceStatus) -> None:
        ...

    async def list_sources(self, bot_id: str) -> list[Source]:
        """Sources of a bot, newest first."""
        ...

    async def delete_source(self, source_id: str) -> None:
        ...


@runtime_checkable
class ChunkStore(Protocol):
    """Durable chunk storage."""

    async def add_chunk(self, chunk: Chunk) -> None:
        """Persist one chunk; visible to retrieval as soon as this returns."""
        ...

    async def list_chunks(self, bot_id: str, limit: int) -> list[Chunk]:
        """Up to ``limit`` chunks of a bot in storage order, embeddings included."""
        ...

    async def count_chunks(self, source_id: str) -> int:
        ...

    async def delete_chunks_for_source(self, source_id: str) -> int:
        """Delete every chunk of a source and return how many were removed."""
        ...


@runtime_checkable
class IndexSearch(Protocol):
    """Index-side ranked similarity search."""

    async def match_chunks(
        self,
        query_vector: list[float],
        threshold: float,
        count: int,
        bot_id: str,
    ) -> list[RankedChunk]:
        """Chunks of ``bot_id`` with similarity >= threshold, best first."""
        ...


@runtime_checkable
class MessageStore(Protocol):
    """Append-only conversation log."""

    async def add_message(self, message: Message) -> None:
        ...

    async def get_messages(self, bot_id: str, session_id: str) -> list[Message]:
        ...


@runtime_checkable
class LeadStore(Protocol):
    """Captured leads."""

    async def find_lead(self, bot_id: str, email: str) -> Lead | None:
        ...

    async def create_lead(self, lead: Lead) -> Lead:
        """Insert a lead. Raises LeadAlreadyExists on a (bot_id, email) conflict."""
        ...

    async def mark_lead_sent(self, lead_id: str, sent_at: datetime) -> None:
        ...

    async def mark_lead_failed(self, lead_id: str, error: str) -> None:
        ...

    async def list_leads(self, bot_id: str | None = None, limit: int = 100) -> list[Lead]:
        """Leads newest first, optionally for one bot."""
        ...


@runtime_checkable
class Notifier(Protocol):
    """Outbound lead notification."""

    async def send(self, notification: LeadNotification) -> None:
        """Deliver the notification or raise."""
        ...
