"""Source and chunk models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SourceStatus(StrEnum):
    """Processing lifecycle of an uploaded document."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Source:
    """One uploaded document belonging to one bot."""

    bot_id: str
    name: str
    type: str
    status: SourceStatus = SourceStatus.PROCESSING
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class Chunk:
    """A slice of a source's text with its embedding.

    Never persisted without an embedding.
    """

    source_id: str
    bot_id: str
    content: str
    embedding: list[float]
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class RankedChunk:
    """A chunk returned by retrieval with its similarity to the query."""

    id: str
    content: str
    score: float
    source_id: str | None = None


@dataclass
class SourceSummary:
    """Source listing row with its current chunk count."""

    source: Source
    chunk_count: int


@dataclass
class IngestionResult:
    """Outcome of ingesting one document."""

    source_id: str
    chunks_created: int
    chunks_attempted: int

    @property
    def chunks_failed(self) -> int:
        return self.chunks_attempted - self.chunks_created
