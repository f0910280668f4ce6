"""
Query-time retrieval for codeask.

Embeds a question, finds the nearest records and rebuilds a per-file view
of the matched content for the generation step.
"""

import logging

from .embeddings import EmbeddingClient
from .models import ChunkedRecord, QueryMatch, WholeFileRecord
from .store import VectorStore

logger = logging.getLogger(__name__)

NO_CONTEXT = "No relevant code found."
GAP_MARKER = "[...missing content...]"
FILE_SEPARATOR = "\n\n" + "-" * 80 + "\n\n"


class _FileGroup:
    """Matches for one file path, in the order they were retrieved."""

    def __init__(self, file_path: str, file_name: str):
        self.file_path = file_path
        self.file_name = file_name
        self.full_text = None
        self.chunks: dict[int, ChunkedRecord] = {}

    def add(self, match: QueryMatch) -> None:
        record = match.record
        if isinstance(record, WholeFileRecord):
            self.full_text = record.full_text
        else:
            self.chunks.setdefault(record.chunk_index, record)

    def render(self) -> str:
        header = f"File: {self.file_name}\nPath: {self.file_path}\n\nContent:\n"
        if self.full_text is not None:
            return header + self.full_text
        return header + render_chunks(list(self.chunks.values()))


def render_chunks(chunks: list[ChunkedRecord]) -> str:
    """
    Concatenate chunks in index order, marking every place content is missing.

    A marker goes between two chunks whose indices are not consecutive, and
    after the last chunk when it is not the file's final chunk.
    """
    ordered = sorted(chunks, key=lambda c: c.chunk_index)
    parts = []
    previous = None
    for chunk in ordered:
        if previous is not None and chunk.chunk_index > previous.chunk_index + 1:
            parts.append(f"\n{GAP_MARKER}\n\n")
        parts.append(chunk.chunk_text)
        previous = chunk

    if ordered and ordered[-1].chunk_index < ordered[-1].total_chunks - 1:
        parts.append(f"\n{GAP_MARKER}\n")
    return "".join(parts)


def assemble_context(matches: list[QueryMatch]) -> str:
    """
    Group matches by file and render one section per file, in match order.

    Returns:
        The context text, or NO_CONTEXT when there are no matches
    """
    if not matches:
        return NO_CONTEXT

    groups: dict[str, _FileGroup] = {}
    for match in matches:
        record = match.record
        group = groups.get(record.file_path)
        if group is None:
            group = groups[record.file_path] = _FileGroup(record.file_path, record.file_name)
        group.add(match)

    return FILE_SEPARATOR.join(group.render() for group in groups.values())


class Retriever:
    """Turns a question into context text drawn from the index."""

    def __init__(
        self,
        store: VectorStore,
        embeddings: EmbeddingClient,
        top_k: int = 10,
        max_input_chars: int = 8000,
    ):
        self.store = store
        self.embeddings = embeddings
        self.top_k = top_k
        self.max_input_chars = max_input_chars

    def search(self, query: str) -> list[QueryMatch]:
        """
        Raises:
            ProviderError: If the query cannot be embedded
            StoreError: If the search fails
        """
        vector = self.embeddings.embed(query[:self.max_input_chars])
        matches = self.store.query(vector, top_k=self.top_k)
        logger.debug(f"Query matched {len(matches)} records")
        return matches

    def retrieve(self, query: str) -> str:
        """Embed the query, search, and assemble the context text."""
        return assemble_context(self.search(query))
