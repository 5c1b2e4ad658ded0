"""Sentence-respecting document chunker."""

from __future__ import annotations

import re

# A sentence is a run of text ending in terminal punctuation; any trailing
# text without punctuation is its own final sentence.
SENTENCE_PATTERN = re.compile(r"[^.!?]*[.!?]+|[^.!?]+$")


class SentenceChunker:
    """Accumulates sentences into chunks under an estimated token budget."""

    def __init__(self, max_tokens: int = 500, chars_per_token: int = 4) -> None:
        """Initialize the chunker.

        Args:
            max_tokens: Token budget per chunk.
            chars_per_token: Characters per token used for the size estimate.

        """
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")
        self.max_tokens = max_tokens
        self.chars_per_token = chars_per_token

    def split(self, text: str) -> list[str]:
        """Split text into non-empty chunks.

        A single sentence larger than the budget is kept whole rather than
        truncated. Text with no extractable content yields an empty list.
        """
        chunks: list[str] = []
        current = ""

        for sentence in self._split_into_sentences(text):
            if self._estimate_tokens(current + sentence) > self.max_tokens and current.strip():
                chunks.append(current.strip())
                current = sentence
            else:
                current += sentence

        if current.strip():
            chunks.append(current.strip())

        return chunks

    def _split_into_sentences(self, text: str) -> list[str]:
        """Split text into sentences, keeping surrounding whitespace."""
        sentences = SENTENCE_PATTERN.findall(text)
        return sentences or ([text] if text else [])

    def _estimate_tokens(self, text: str) -> float:
        return len(text) / self.chars_per_token
