"""Retrieval strategies tried in order by the Retriever."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from kbchat.core.logging import get_logger
from kbchat.core.protocols import ChunkStore, IndexSearch
from kbchat.documents.models import RankedChunk
from kbchat.retrieval.similarity import rank_chunks

logger = get_logger(__name__)


@runtime_checkable
class RetrievalStrategy(Protocol):
    """One way of finding the top-K chunks above a threshold."""

    name: str

    async def search(
        self,
        query_vector: list[float],
        bot_id: str,
        threshold: float,
        top_k: int,
    ) -> list[RankedChunk]:
        """Return ranked chunks, best first. Raise if the path is unavailable."""
        ...


class IndexSearchStrategy:
    """Delegates ranking to the store's index-side search."""

    name = "index"

    def __init__(self, index: IndexSearch):
        self.index = index

    async def search(
        self,
        query_vector: list[float],
        bot_id: str,
        threshold: float,
        top_k: int,
    ) -> list[RankedChunk]:
        results = await self.index.match_chunks(
            query_vector=query_vector,
            threshold=threshold,
            count=top_k,
            bot_id=bot_id,
        )
        # Enforce the contract even if the index is loose about it
        return [r for r in results if r.score >= threshold][:top_k]


class ExhaustiveScanStrategy:
    """Reads a capped number of chunk rows and ranks them client-side."""

    name = "scan"

    def __init__(self, chunks: ChunkStore, scan_limit: int = 200):
        self.chunks = chunks
        self.scan_limit = scan_limit

    async def search(
        self,
        query_vector: list[float],
        bot_id: str,
        threshold: float,
        top_k: int,
    ) -> list[RankedChunk]:
        rows = await self.chunks.list_chunks(bot_id, limit=self.scan_limit)
        if not rows:
            logger.info("scan_no_chunks", bot_id=bot_id)
            return []

        ranked = rank_chunks(query_vector, rows, threshold=threshold, top_k=top_k)
        logger.info("scan_ranked", bot_id=bot_id, scanned=len(rows), matched=len(ranked))
        return ranked
