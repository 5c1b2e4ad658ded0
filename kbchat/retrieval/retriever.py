"""Retriever with ordered strategy fallback."""

from __future__ import annotations

from collections.abc import Sequence

from kbchat.core.exceptions import RetrievalDegraded
from kbchat.core.logging import get_logger
from kbchat.documents.models import RankedChunk
from kbchat.retrieval.strategies import RetrievalStrategy

logger = get_logger(__name__)


class Retriever:
    """Returns the top-K chunks above a similarity threshold for a bot.

    Strategies are tried sequentially. An error or an empty result moves on to
    the next strategy; the first non-empty result wins. Only when the last
    strategy raises is the whole retrieval considered degraded.
    """

    def __init__(
        self,
        strategies: Sequence[RetrievalStrategy],
        threshold: float = 0.70,
        top_k: int = 8,
    ):
        if not strategies:
            raise ValueError("Retriever needs at least one strategy")
        self.strategies = list(strategies)
        self.threshold = threshold
        self.top_k = top_k

    async def retrieve(
        self,
        query_vector: list[float],
        bot_id: str,
        threshold: float | None = None,
        top_k: int | None = None,
    ) -> list[RankedChunk]:
        """Rank chunks for a bot against a query vector.

        Returns:
            Chunks in descending similarity, at most ``top_k``, each scoring at
            least ``threshold``. Empty if nothing qualifies.

        Raises:
            RetrievalDegraded: The final strategy failed.
        """
        threshold = self.threshold if threshold is None else threshold
        top_k = self.top_k if top_k is None else top_k
        last_index = len(self.strategies) - 1

        for index, strategy in enumerate(self.strategies):
            try:
                results = await strategy.search(query_vector, bot_id, threshold, top_k)
            except Exception as e:
                logger.warning("retrieval_strategy_failed", strategy=strategy.name, bot_id=bot_id, error=str(e))
                if index == last_index:
                    raise RetrievalDegraded(f"All retrieval strategies failed; last error: {e}") from e
                continue

            if results:
                logger.info("retrieval_completed", strategy=strategy.name, bot_id=bot_id, results=len(results))
                return results

            logger.info("retrieval_strategy_empty", strategy=strategy.name, bot_id=bot_id)

        return []
