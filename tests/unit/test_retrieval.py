"""Tests for similarity ranking and the strategy-fallback retriever."""

import pytest

from kbchat.core.exceptions import RetrievalDegraded
from kbchat.documents.models import Chunk, RankedChunk
from kbchat.retrieval.retriever import Retriever
from kbchat.retrieval.similarity import cosine_similarity, rank_chunks
from kbchat.retrieval.strategies import ExhaustiveScanStrategy, IndexSearchStrategy


def make_chunk(content: str, embedding: list[float]) -> Chunk:
    return Chunk(source_id="src-1", bot_id="bot-1", content=content, embedding=embedding)


class StubStrategy:
    """Strategy returning canned results or raising."""

    def __init__(self, name: str, results=None, error: Exception | None = None):
        self.name = name
        self.results = results or []
        self.error = error
        self.calls = 0

    async def search(self, query_vector, bot_id, threshold, top_k):
        self.calls += 1
        if self.error:
            raise self.error
        return self.results


class StubIndex:
    """Index search returning canned rows."""

    def __init__(self, rows):
        self.rows = rows
        self.kwargs = None

    async def match_chunks(self, query_vector, threshold, count, bot_id):
        self.kwargs = {"threshold": threshold, "count": count, "bot_id": bot_id}
        return self.rows


class TestCosineSimilarity:
    """Test cases for cosine_similarity."""

    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_zero_vector_does_not_divide_by_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    @pytest.mark.parametrize(
        "a,b",
        [
            ([3.0, -4.0, 1e-9], [1e9, 2.0, -7.0]),
            ([0.1] * 64, [-0.2] * 64),
            ([5.0, 5.0], [5.0, 5.0000001]),
        ],
    )
    def test_score_within_range(self, a, b):
        assert -1.0 <= cosine_similarity(a, b) <= 1.0


class TestRankChunks:
    """Test cases for client-side ranking."""

    @pytest.fixture
    def chunks(self):
        return [
            make_chunk("exact", [1.0, 0.0]),
            make_chunk("close", [0.9, 0.1]),
            make_chunk("diagonal", [1.0, 1.0]),
            make_chunk("opposite", [-1.0, 0.0]),
        ]

    def test_threshold_inclusion(self, chunks):
        ranked = rank_chunks([1.0, 0.0], chunks, threshold=0.70, top_k=10)

        assert [r.content for r in ranked] == ["exact", "close", "diagonal"]
        assert all(r.score >= 0.70 for r in ranked)

    def test_descending_order_and_top_k(self, chunks):
        ranked = rank_chunks([1.0, 0.0], chunks, threshold=-1.0, top_k=2)

        assert [r.content for r in ranked] == ["exact", "close"]
        assert ranked[0].score >= ranked[1].score

    def test_ties_keep_storage_order(self):
        tied = [make_chunk("first", [1.0, 0.0]), make_chunk("second", [2.0, 0.0])]
        ranked = rank_chunks([1.0, 0.0], tied, threshold=0.5, top_k=5)
        assert [r.content for r in ranked] == ["first", "second"]

    def test_lowering_threshold_never_removes_chunks(self, chunks):
        strict = {r.id for r in rank_chunks([1.0, 0.2], chunks, threshold=0.9, top_k=3)}
        loose = {r.id for r in rank_chunks([1.0, 0.2], chunks, threshold=0.5, top_k=3)}
        assert strict <= loose

    def test_raising_top_k_never_removes_chunks(self, chunks):
        small = {r.id for r in rank_chunks([1.0, 0.2], chunks, threshold=0.0, top_k=1)}
        large = {r.id for r in rank_chunks([1.0, 0.2], chunks, threshold=0.0, top_k=3)}
        assert small <= large


class TestRetriever:
    """Test cases for the strategy-fallback Retriever."""

    @pytest.mark.asyncio
    async def test_index_error_falls_back_once(self):
        hit = RankedChunk(id="c1", content="from scan", score=0.9)
        index = StubStrategy("index", error=RuntimeError("rpc missing"))
        scan = StubStrategy("scan", results=[hit])

        results = await Retriever([index, scan]).retrieve([1.0], "bot-1")

        assert results == [hit]
        assert index.calls == 1
        assert scan.calls == 1

    @pytest.mark.asyncio
    async def test_index_results_skip_fallback(self):
        hit = RankedChunk(id="c1", content="from index", score=0.95)
        index = StubStrategy("index", results=[hit])
        scan = StubStrategy("scan", results=[RankedChunk(id="c2", content="scan", score=0.9)])

        results = await Retriever([index, scan]).retrieve([1.0], "bot-1")

        assert results == [hit]
        assert scan.calls == 0

    @pytest.mark.asyncio
    async def test_empty_index_result_falls_through(self):
        hit = RankedChunk(id="c1", content="from scan", score=0.8)
        index = StubStrategy("index", results=[])
        scan = StubStrategy("scan", results=[hit])

        results = await Retriever([index, scan]).retrieve([1.0], "bot-1")

        assert results == [hit]
        assert scan.calls == 1

    @pytest.mark.asyncio
    async def test_all_empty_returns_empty(self):
        retriever = Retriever([StubStrategy("index"), StubStrategy("scan")])
        assert await retriever.retrieve([1.0], "bot-1") == []

    @pytest.mark.asyncio
    async def test_last_strategy_error_is_degraded(self):
        retriever = Retriever(
            [
                StubStrategy("index", error=RuntimeError("rpc missing")),
                StubStrategy("scan", error=RuntimeError("table unavailable")),
            ]
        )
        with pytest.raises(RetrievalDegraded):
            await retriever.retrieve([1.0], "bot-1")

    def test_requires_a_strategy(self):
        with pytest.raises(ValueError):
            Retriever([])


class TestStrategies:
    """Test cases for the concrete strategies."""

    @pytest.mark.asyncio
    async def test_index_strategy_enforces_contract(self):
        index = StubIndex(
            [
                RankedChunk(id="a", content="a", score=0.9),
                RankedChunk(id="b", content="b", score=0.6),
                RankedChunk(id="c", content="c", score=0.8),
            ]
        )
        results = await IndexSearchStrategy(index).search([1.0], "bot-1", threshold=0.7, top_k=1)

        assert [r.id for r in results] == ["a"]
        assert index.kwargs == {"threshold": 0.7, "count": 1, "bot_id": "bot-1"}

    @pytest.mark.asyncio
    async def test_scan_strategy_is_scoped_and_capped(self, store):
        for i in range(5):
            await store.add_chunk(make_chunk(f"mine {i}", [1.0, 0.0]))
        await store.add_chunk(Chunk(source_id="s", bot_id="other", content="theirs", embedding=[1.0, 0.0]))

        results = await ExhaustiveScanStrategy(store, scan_limit=3).search(
            [1.0, 0.0], "bot-1", threshold=0.7, top_k=8
        )

        assert [r.content for r in results] == ["mine 0", "mine 1", "mine 2"]
