"""Document ingestion: chunk, embed and store one source's text."""

from __future__ import annotations

from kbchat.core.exceptions import (
    AppError,
    EmptyDocument,
    IngestionTotalFailure,
    NotFoundError,
)
from kbchat.core.logging import get_logger
from kbchat.core.protocols import BotStore, ChunkStore, EmbeddingProvider, SourceStore
from kbchat.documents.chunker import SentenceChunker
from kbchat.documents.models import Chunk, IngestionResult, Source, SourceStatus, SourceSummary

logger = get_logger(__name__)


class IngestionPipeline:
    """Orchestrates chunker, embedder and chunk store for uploaded documents."""

    def __init__(
        self,
        chunker: SentenceChunker,
        embedder: EmbeddingProvider,
        bots: BotStore,
        sources: SourceStore,
        chunks: ChunkStore,
    ):
        self.chunker = chunker
        self.embedder = embedder
        self.bots = bots
        self.sources = sources
        self.chunks = chunks

    async def ingest(self, bot_id: str, name: str, text: str, file_type: str) -> IngestionResult:
        """Ingest extracted document text for a bot.

        Per-chunk embedding or storage failures are logged and skipped. The
        source ends ``completed`` once every chunk has been attempted and at
        least one was stored, otherwise ``failed``.

        Raises:
            NotFoundError: Unknown bot.
            EmptyDocument: The text produced no chunks.
            IngestionTotalFailure: No chunk could be embedded and stored.
        """
        if await self.bots.get_bot(bot_id) is None:
            raise NotFoundError("bot", bot_id)

        source = await self.sources.create_source(Source(bot_id=bot_id, name=name, type=file_type))
        logger.info("source_created", source_id=source.id, bot_id=bot_id, name=name, chars=len(text))

        pieces = self.chunker.split(text)
        if not pieces:
            await self.sources.update_source_status(source.id, SourceStatus.FAILED)
            logger.warning("source_empty", source_id=source.id, bot_id=bot_id)
            raise EmptyDocument(source.id)

        logger.info("source_chunked", source_id=source.id, chunk_count=len(pieces))

        stored = 0
        for index, content in enumerate(pieces):
            if await self._store_chunk(source, index, content):
                stored += 1

        if stored == 0:
            await self.sources.update_source_status(source.id, SourceStatus.FAILED)
            logger.error("source_ingestion_failed", source_id=source.id, attempted=len(pieces))
            raise IngestionTotalFailure(
                f"None of {len(pieces)} chunks could be embedded and stored", source.id
            )

        if stored < len(pieces):
            logger.warning(
                "source_ingestion_partial",
                source_id=source.id,
                chunks_failed=len(pieces) - stored,
                chunks_attempted=len(pieces),
            )

        await self.sources.update_source_status(source.id, SourceStatus.COMPLETED)
        logger.info(
            "source_ingested",
            source_id=source.id,
            bot_id=bot_id,
            chunks_created=stored,
            chunks_attempted=len(pieces),
        )
        return IngestionResult(source_id=source.id, chunks_created=stored, chunks_attempted=len(pieces))

    async def _store_chunk(self, source: Source, index: int, content: str) -> bool:
        try:
            embedding = await self.embedder.embed(content)
            await self.chunks.add_chunk(
                Chunk(source_id=source.id, bot_id=source.bot_id, content=content, embedding=embedding)
            )
        except AppError as e:
            logger.error("chunk_failed", source_id=source.id, chunk_index=index, error=e.message, code=e.code)
            return False
        except Exception as e:
            logger.error("chunk_failed", source_id=source.id, chunk_index=index, error=str(e))
            return False
        return True

    async def delete_source(self, bot_id: str, source_id: str) -> int:
        """Delete a source and all of its chunks.

        Chunks go first, then the source row. The source must belong to
        ``bot_id``.

        Returns:
            Number of chunks removed.
        """
        source = await self.sources.get_source(source_id)
        if source is None or source.bot_id != bot_id:
            raise NotFoundError("source", source_id)

        removed = await self.chunks.delete_chunks_for_source(source_id)
        await self.sources.delete_source(source_id)
        logger.info("source_deleted", source_id=source_id, bot_id=bot_id, chunks_deleted=removed)
        return removed

    async def list_sources(self, bot_id: str) -> list[SourceSummary]:
        """Sources of a bot, newest first, with chunk counts."""
        sources = await self.sources.list_sources(bot_id)
        return [
            SourceSummary(source=source, chunk_count=await self.chunks.count_chunks(source.id))
            for source in sources
        ]
