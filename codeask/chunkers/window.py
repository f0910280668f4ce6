"""
Sliding-window chunking strategy.

Cuts content into fixed-size character windows that overlap, so a sentence
or statement cut at one window's edge appears whole in the next.
"""

import logging

from .base import ChunkStrategy
from ..models import ContentChunk

logger = logging.getLogger(__name__)


class SlidingWindowChunker(ChunkStrategy):
    """
    Character-window chunking with overlap and a cap on window count.

    Windows whose stripped text is shorter than min_chunk_chars are dropped.
    Retained chunks are numbered contiguously, and total_chunks counts only
    retained chunks, so a gap between two retrieved indices always means a
    chunk that exists but was not retrieved.
    """

    def __init__(
        self,
        chunk_size: int = 2500,
        overlap: int = 400,
        max_chunks: int = 20,
        min_chunk_chars: int = 100,
    ):
        """
        Initialize the chunker.

        Args:
            chunk_size: Window length in characters
            overlap: Characters shared by consecutive windows
            max_chunks: Maximum number of windows produced per file
            min_chunk_chars: Windows with less stripped text than this are dropped

        Raises:
            ValueError: If the parameters cannot produce a terminating window sequence
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if overlap < 0 or overlap >= chunk_size:
            raise ValueError(f"overlap must be in [0, chunk_size), got {overlap}")
        if max_chunks <= 0:
            raise ValueError(f"max_chunks must be positive, got {max_chunks}")

        self.chunk_size = chunk_size
        self.overlap = overlap
        self.max_chunks = max_chunks
        self.min_chunk_chars = min_chunk_chars

    def windows(self, length: int) -> list[tuple[int, int]]:
        """Return the (start, end) offsets of every window over content of this length."""
        spans = []
        step = self.chunk_size - self.overlap
        start = 0
        while start < length and len(spans) < self.max_chunks:
            end = min(start + self.chunk_size, length)
            spans.append((start, end))
            if end >= length:
                break
            start += step
        return spans

    def chunk(self, content: str, file_id: str) -> list[ContentChunk]:
        if len(content) <= self.chunk_size:
            return [ContentChunk(
                file_id=file_id,
                index=0,
                total_chunks=1,
                text=content,
                start_offset=0,
                is_partial=False,
            )]

        kept = []
        spans = self.windows(len(content))
        for start, end in spans:
            text = content[start:end]
            if len(text.strip()) < self.min_chunk_chars:
                continue
            kept.append((start, text))

        dropped = len(spans) - len(kept)
        if dropped:
            logger.debug(f"Dropped {dropped} near-empty windows from {file_id}")

        chunks = [
            ContentChunk(
                file_id=file_id,
                index=i,
                total_chunks=len(kept),
                text=text,
                start_offset=start,
            )
            for i, (start, text) in enumerate(kept)
        ]
        logger.debug(f"Chunked {file_id} into {len(chunks)} chunks")
        return chunks


def chunk(
    text: str,
    chunk_size: int,
    overlap: int,
    max_chunks: int,
    min_chunk_chars: int = 100,
    file_id: str = "",
) -> list[ContentChunk]:
    """Chunk text in one call; see SlidingWindowChunker."""
    chunker = SlidingWindowChunker(chunk_size, overlap, max_chunks, min_chunk_chars)
    return chunker.chunk(text, file_id)
