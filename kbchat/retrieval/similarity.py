"""Vector similarity and client-side ranking."""

from __future__ import annotations

import math
from collections.abc import Sequence

from kbchat.documents.models import Chunk, RankedChunk


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity in [-1, 1].

    Vectors of different length are compared over their common prefix. A zero
    norm yields a denominator of 1 instead of a division by zero.
    """
    n = min(len(a), len(b))
    dot = math.fsum(a[i] * b[i] for i in range(n))
    norm_a = math.sqrt(math.fsum(a[i] * a[i] for i in range(n)))
    norm_b = math.sqrt(math.fsum(b[i] * b[i] for i in range(n)))
    denom = norm_a * norm_b or 1.0
    return max(-1.0, min(1.0, dot / denom))


def rank_chunks(
    query_vector: Sequence[float],
    chunks: Sequence[Chunk],
    threshold: float,
    top_k: int,
) -> list[RankedChunk]:
    """Score chunks against the query and keep the best ``top_k`` above ``threshold``.

    Sorting is stable, so equal scores keep storage order.
    """
    scored = [
        RankedChunk(
            id=chunk.id,
            content=chunk.content,
            score=cosine_similarity(query_vector, chunk.embedding),
            source_id=chunk.source_id,
        )
        for chunk in chunks
    ]
    scored.sort(key=lambda r: r.score, reverse=True)
    return [r for r in scored if r.score >= threshold][:top_k]
