"""Document ingestion: chunking, embedding and source lifecycle."""

from .chunker import SentenceChunker
from .embeddings import EmbeddingGenerator
from .ingestion import IngestionPipeline
from .models import Chunk, IngestionResult, RankedChunk, Source, SourceStatus, SourceSummary

__all__ = [
    "Chunk",
    "EmbeddingGenerator",
    "IngestionPipeline",
    "IngestionResult",
    "RankedChunk",
    "SentenceChunker",
    "Source",
    "SourceStatus",
    "SourceSummary",
]
