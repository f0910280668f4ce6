"""
Data models for codeask.

Pydantic models for files, chunks, index records, query matches and
conversation turns, plus the LanceDB row schema the store persists.
"""

import datetime
import time
from functools import lru_cache
from typing import Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator
from lancedb.pydantic import LanceModel, Vector


class FileRecord(BaseModel):
    """Snapshot of one directory entry, taken when the tree is listed."""
    model_config = ConfigDict(frozen=True)

    name: str
    path: str = Field(description="Path of the file; unique within a tree")
    is_directory: bool = False
    size: int = Field(default=0, ge=0)
    last_modified: str = Field(default="", description="ISO-8601 modification time")


class ContentChunk(BaseModel):
    """A contiguous slice of a file's content, the unit that gets embedded."""
    file_id: str
    index: int = Field(ge=0)
    total_chunks: int = Field(ge=1)
    text: str
    start_offset: int = Field(ge=0)
    is_partial: bool = True

    @property
    def end_offset(self) -> int:
        return self.start_offset + len(self.text)


class _RecordBase(BaseModel):
    id: str
    file_path: str
    file_name: str
    file_size: int = 0
    last_modified: str = ""
    fingerprint: str
    vector: Optional[list[float]] = None


class WholeFileRecord(_RecordBase):
    """Index record holding the entire content of a small file."""
    is_partial: Literal[False] = False
    full_text: str

    @property
    def text(self) -> str:
        return self.full_text


class ChunkedRecord(_RecordBase):
    """Index record holding one chunk of a larger file."""
    is_partial: Literal[True] = True
    chunk_index: int = Field(ge=0)
    total_chunks: int = Field(ge=1)
    chunk_text: str

    @model_validator(mode="after")
    def _index_in_range(self) -> "ChunkedRecord":
        if self.chunk_index >= self.total_chunks:
            raise ValueError(
                f"chunk_index {self.chunk_index} out of range for total_chunks {self.total_chunks}"
            )
        return self

    @property
    def text(self) -> str:
        return self.chunk_text


IndexRecord = Union[WholeFileRecord, ChunkedRecord]


def record_id(path: str, fingerprint: str, chunk_index: Optional[int] = None) -> str:
    """Build the store id for a record from its path, chunk index and fingerprint."""
    if chunk_index is None:
        return f"{path}_{fingerprint}"
    return f"{path}_chunk_{chunk_index}_{fingerprint}"


class QueryMatch(BaseModel):
    """A record returned by a similarity search, with its score."""
    record: IndexRecord
    score: float = Field(description="Similarity score (0-1)", ge=0, le=1)

    def __str__(self) -> str:
        return f"{self.record.file_path} ({self.score:.3f})"


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class Answer(BaseModel):
    """Result of asking a question; success=False marks an error message."""
    text: str
    context: Optional[str] = None
    success: bool = True


class IndexResult(BaseModel):
    """Counts reported by one indexing run."""
    processed: int = 0
    unchanged: int = 0
    skipped: int = 0
    failed: int = 0
    vector_count: int = 0
    cancelled: bool = False

    def __str__(self) -> str:
        lines = [
            f"Files indexed: {self.processed}",
            f"Unchanged: {self.unchanged}",
            f"Skipped: {self.skipped}",
            f"Failed: {self.failed}",
            f"Vectors written: {self.vector_count}",
        ]
        if self.cancelled:
            lines.append("Run was cancelled before all batches finished")
        return "\n".join(lines)


class IndexStats(BaseModel):
    """Statistics about what is currently stored."""
    total_files: int = 0
    total_records: int = 0
    chunked_files: int = 0
    last_indexed: Optional[float] = None

    def __str__(self) -> str:
        lines = [
            f"Total files: {self.total_files}",
            f"Total records: {self.total_records}",
            f"Chunked files: {self.chunked_files}",
        ]
        if self.last_indexed:
            dt = datetime.datetime.fromtimestamp(self.last_indexed)
            lines.append(f"Last indexed: {dt.strftime('%Y-%m-%d %H:%M:%S')}")
        return "\n".join(lines)


@lru_cache(maxsize=None)
def record_row_model(dimension: int) -> type[LanceModel]:
    """
    Build the LanceDB row schema for a given embedding dimension.

    Whole-file rows leave chunk_index and total_chunks empty; the text column
    holds either the full text or the chunk text.
    """

    class IndexRow(LanceModel):
        id: str
        vector: Vector(dimension)
        file_path: str
        file_name: str
        file_size: int
        last_modified: str
        fingerprint: str
        is_partial: bool
        chunk_index: Optional[int] = None
        total_chunks: Optional[int] = None
        text: str
        indexed_at: float = Field(default_factory=time.time)

    return IndexRow
