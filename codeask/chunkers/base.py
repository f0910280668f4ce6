"""
Base chunking strategy interface for codeask.
"""

from abc import ABC, abstractmethod

from ..models import ContentChunk


class ChunkStrategy(ABC):
    """
    Abstract base class for chunking strategies.

    Implementations must be stateless between calls: chunking the same
    content twice yields the same chunks.
    """

    @abstractmethod
    def chunk(self, content: str, file_id: str) -> list[ContentChunk]:
        """
        Split content into chunks.

        Args:
            content: The file content to chunk
            file_id: Identifier of the file (its path), copied onto every chunk

        Returns:
            Chunks ordered by index. A single chunk with is_partial=False means
            the content was small enough to keep whole.
        """
        pass
