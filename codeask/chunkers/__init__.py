"""
Chunking strategies for codeask.

- SlidingWindowChunker: fixed-size character windows with overlap
"""

from .base import ChunkStrategy
from .window import SlidingWindowChunker, chunk

__all__ = [
    "ChunkStrategy",
    "SlidingWindowChunker",
    "chunk",
]
