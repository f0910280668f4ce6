"""
codeask - ask natural-language questions about a local code tree.

This package provides:
- Incremental indexing of a folder into a LanceDB vector store
- Fingerprint-based change detection (unchanged files are never re-embedded)
- Sliding-window chunking with per-file context reconstruction
- Retrieval-augmented answers with a bounded conversation history
"""

from .models import (
    Answer,
    ChunkedRecord,
    ContentChunk,
    ConversationTurn,
    FileRecord,
    IndexResult,
    IndexStats,
    QueryMatch,
    WholeFileRecord,
)
from .errors import CodeAskError, ConfigError, FileAccessError, ProviderError, StoreError
from .config import Config
from .classifier import FileClassifier, should_index
from .chunkers import ChunkStrategy, SlidingWindowChunker, chunk
from .changes import ChangeDetector, fingerprint
from .embeddings import EmbeddingClient, EmbeddingModel, OpenAIEmbeddingClient
from .generation import GenerationClient, OpenAIChatClient
from .store import VectorStore
from .indexer import Indexer
from .retriever import Retriever, assemble_context
from .conversation import ConversationManager, ConversationSession
from .lister import list_dir
from .assistant import Assistant

__version__ = "0.1.0"

__all__ = [
    # Models
    "Answer",
    "ChunkedRecord",
    "ContentChunk",
    "ConversationTurn",
    "FileRecord",
    "IndexResult",
    "IndexStats",
    "QueryMatch",
    "WholeFileRecord",
    # Errors
    "CodeAskError",
    "ConfigError",
    "FileAccessError",
    "ProviderError",
    "StoreError",
    # Core components
    "Config",
    "FileClassifier",
    "should_index",
    "ChunkStrategy",
    "SlidingWindowChunker",
    "chunk",
    "ChangeDetector",
    "fingerprint",
    "EmbeddingClient",
    "EmbeddingModel",
    "OpenAIEmbeddingClient",
    "GenerationClient",
    "OpenAIChatClient",
    "VectorStore",
    "Indexer",
    "Retriever",
    "assemble_context",
    "ConversationManager",
    "ConversationSession",
    "list_dir",
    "Assistant",
]
