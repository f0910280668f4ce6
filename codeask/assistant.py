"""
Wiring for codeask: builds every client from configuration in one explicit
step, and runs the question-answering pipeline.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from .config import Config
from .conversation import ConversationManager, ConversationSession
from .embeddings import EmbeddingClient, EmbeddingModel, OpenAIEmbeddingClient
from .errors import ConfigError, ProviderError, StoreError
from .generation import GenerationClient, OpenAIChatClient
from .indexer import Indexer
from .models import Answer, IndexResult
from .progress import ProgressEvent
from .retriever import Retriever
from .store import VectorStore

logger = logging.getLogger(__name__)


def db_path_for(project_root: Path) -> Path:
    return project_root / ".codeask" / "data.lance"


def build_embeddings(config: Config) -> EmbeddingClient:
    """Create the configured embedding client, ready for use."""
    if config.get("embeddings", "provider") == "openai":
        return OpenAIEmbeddingClient(
            api_key=config.openai_api_key,
            model=config.get("embeddings", "openai_model", default="text-embedding-3-small"),
            timeout=config.get("embeddings", "timeout", default=30),
            dimension=config.get("embeddings", "dimension"),
        )
    return EmbeddingModel(model_name=config.get("embeddings", "model", default="all-MiniLM-L6-v2")).load()


def build_generator(config: Config) -> GenerationClient:
    return OpenAIChatClient(
        api_key=config.openai_api_key,
        model=config.get("generation", "model", default="gpt-4-turbo"),
        temperature=config.get("generation", "temperature", default=0.2),
        max_tokens=config.get("generation", "max_tokens", default=200),
        timeout=config.get("generation", "timeout", default=60),
    )


class Assistant:
    """
    Indexing and question answering over one project's index.

    Use from_config() in applications; the constructor takes ready-made
    collaborators so tests can substitute them.
    """

    def __init__(
        self,
        config: Config,
        store: VectorStore,
        embeddings: EmbeddingClient,
        generator: Optional[GenerationClient] = None,
    ):
        self.config = config
        self.store = store
        self.embeddings = embeddings
        self.indexer = Indexer(store, embeddings, config)
        self.retriever = Retriever(
            store,
            embeddings,
            top_k=config.get("search", "top_k", default=10),
            max_input_chars=config.get("embeddings", "max_input_chars", default=8000),
        )
        self.conversation = None
        if generator is not None:
            self.conversation = ConversationManager(
                generator,
                system_prompt=config.get("conversation", "system_prompt"),
            )

    @classmethod
    def from_config(cls, config: Config, require_generation: bool = True) -> "Assistant":
        """
        Validate configuration and build every client.

        Args:
            config: Loaded configuration
            require_generation: Also build the generation client (not needed to index)

        Raises:
            ConfigError: Listing every missing or invalid setting
            ProviderError: If the local embedding model cannot be loaded
        """
        config.validate(require_generation=require_generation)

        embeddings = build_embeddings(config)
        store = VectorStore(
            db_path_for(config.project_root),
            dimension=embeddings.dimension,
            table_name=config.get("store", "table_name", default="code_records"),
        )
        generator = build_generator(config) if require_generation else None
        logger.info(f"Initialized assistant for {config.project_root}")
        return cls(config, store, embeddings, generator)

    def new_session(self) -> ConversationSession:
        return ConversationSession(cap=self.config.get("conversation", "history_cap", default=10))

    def index(
        self,
        path: Path,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[ProgressEvent], None]] = None,
    ) -> IndexResult:
        return self.indexer.index_path(path, cancel_event=cancel_event, progress_callback=progress_callback)

    def ask(self, session: ConversationSession, query: str) -> Answer:
        """
        Answer a question using the index and the session's history.

        Any retrieval or generation failure yields one Answer with
        success=False and a message starting with "Error: "; the session is
        left unchanged.
        """
        if self.conversation is None:
            raise ConfigError(["generation client is not configured"])

        context = None
        try:
            context = self.retriever.retrieve(query)
            text = self.conversation.respond(session, query, context)
        except (ProviderError, StoreError) as e:
            logger.error(f"Query failed: {e}")
            return Answer(
                text=f"Error: I could not answer that question: {e}",
                context=context,
                success=False,
            )
        return Answer(text=text, context=context)
