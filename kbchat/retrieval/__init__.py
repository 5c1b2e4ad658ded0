"""Chunk retrieval: index-side search with a client-side ranking fallback."""

from .retriever import Retriever
from .similarity import cosine_similarity, rank_chunks
from .strategies import ExhaustiveScanStrategy, IndexSearchStrategy, RetrievalStrategy

__all__ = [
    "ExhaustiveScanStrategy",
    "IndexSearchStrategy",
    "RetrievalStrategy",
    "Retriever",
    "cosine_similarity",
    "rank_chunks",
]
