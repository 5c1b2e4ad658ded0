"""Tests for the ingestion pipeline."""

import pytest

from kbchat.core.exceptions import EmptyDocument, IngestionTotalFailure, NotFoundError
from kbchat.documents.chunker import SentenceChunker
from kbchat.documents.ingestion import IngestionPipeline
from kbchat.documents.models import SourceStatus
from kbchat.retrieval.retriever import Retriever
from kbchat.retrieval.strategies import ExhaustiveScanStrategy
from tests.conftest import BOT_ID, FailingEmbedder, FlakyEmbedder


def small_chunk_pipeline(store, embedder) -> IngestionPipeline:
    """One sentence per chunk for sentences over ~20 characters."""
    return IngestionPipeline(
        chunker=SentenceChunker(max_tokens=5, chars_per_token=4),
        embedder=embedder,
        bots=store,
        sources=store,
        chunks=store,
    )


class TestIngestionPipeline:
    """Test cases for IngestionPipeline."""

    @pytest.mark.asyncio
    async def test_ingest_stores_all_chunks(self, ingestion, store):
        result = await ingestion.ingest(BOT_ID, "faq.txt", "Refunds take 14 days. Shipping is free.", "txt")

        source = await store.get_source(result.source_id)
        assert source.status == SourceStatus.COMPLETED
        assert result.chunks_created == result.chunks_attempted == 1
        assert await store.count_chunks(result.source_id) == 1

    @pytest.mark.asyncio
    async def test_unknown_bot(self, ingestion):
        with pytest.raises(NotFoundError):
            await ingestion.ingest("missing-bot", "faq.txt", "Some text.", "txt")

    @pytest.mark.asyncio
    async def test_empty_document_marks_source_failed(self, ingestion, store):
        with pytest.raises(EmptyDocument) as exc_info:
            await ingestion.ingest(BOT_ID, "blank.pdf", "   \n\t ", "pdf")

        source = await store.get_source(exc_info.value.source_id)
        assert source.status == SourceStatus.FAILED
        assert await store.count_chunks(source.id) == 0

    @pytest.mark.asyncio
    async def test_partial_failure_completes_with_survivors(self, store):
        pipeline = small_chunk_pipeline(store, FlakyEmbedder(marker="poison"))
        text = "Refund policy lasts thirty days. This poison sentence fails. Shipping takes five days."

        result = await pipeline.ingest(BOT_ID, "policy.txt", text, "txt")

        assert result.chunks_attempted == 3
        assert result.chunks_created == 2
        assert result.chunks_failed == 1
        source = await store.get_source(result.source_id)
        assert source.status == SourceStatus.COMPLETED
        stored = await store.list_chunks(BOT_ID, limit=10)
        assert all("poison" not in chunk.content for chunk in stored)

    @pytest.mark.asyncio
    async def test_total_failure_marks_source_failed(self, store):
        pipeline = small_chunk_pipeline(store, FailingEmbedder())

        with pytest.raises(IngestionTotalFailure) as exc_info:
            await pipeline.ingest(BOT_ID, "policy.txt", "Refund policy lasts thirty days.", "txt")

        source = await store.get_source(exc_info.value.source_id)
        assert source.status == SourceStatus.FAILED
        assert await store.count_chunks(source.id) == 0

    @pytest.mark.asyncio
    async def test_delete_source_removes_exactly_its_chunks(self, store, embedder):
        pipeline = small_chunk_pipeline(store, embedder)
        doomed_text = " ".join(f"Warranty clause number {i} applies." for i in range(10))
        kept_text = "Shipping takes five business days."

        doomed = await pipeline.ingest(BOT_ID, "warranty.txt", doomed_text, "txt")
        kept = await pipeline.ingest(BOT_ID, "shipping.txt", kept_text, "txt")
        assert doomed.chunks_created == 10

        removed = await pipeline.delete_source(BOT_ID, doomed.source_id)

        assert removed == 10
        assert await store.get_source(doomed.source_id) is None
        assert await store.count_chunks(kept.source_id) == 1

        retriever = Retriever([ExhaustiveScanStrategy(store)])
        results = await retriever.retrieve(await embedder.embed("warranty"), BOT_ID)
        assert all("Warranty" not in r.content for r in results)

    @pytest.mark.asyncio
    async def test_delete_source_of_another_bot(self, ingestion):
        result = await ingestion.ingest(BOT_ID, "faq.txt", "Refunds take 14 days.", "txt")

        with pytest.raises(NotFoundError):
            await ingestion.delete_source("other-bot", result.source_id)

    @pytest.mark.asyncio
    async def test_list_sources_with_counts(self, store, embedder):
        pipeline = small_chunk_pipeline(store, embedder)
        result = await pipeline.ingest(
            BOT_ID, "faq.txt", "Refund policy lasts thirty days. Shipping takes five days.", "txt"
        )

        summaries = await pipeline.list_sources(BOT_ID)

        assert len(summaries) == 1
        assert summaries[0].source.id == result.source_id
        assert summaries[0].chunk_count == 2
