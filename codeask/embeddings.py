"""
Embedding clients for codeask.

Two interchangeable clients turn text into fixed-length vectors: a local
sentence-transformers model and the OpenAI embeddings API. Callers truncate
input before calling; every failure surfaces as ProviderError.
"""

import logging
import threading
from typing import Optional, Protocol, runtime_checkable
import openai
from sentence_transformers import SentenceTransformer

from .errors import ConfigError, ProviderError
from .utils import retry_on_failure

logger = logging.getLogger(__name__)

OPENAI_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

# Failures worth another attempt; auth and bad-request errors are not
OPENAI_TRANSIENT_ERRORS = (
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


@runtime_checkable
class EmbeddingClient(Protocol):
    """Text to fixed-dimension vector."""

    @property
    def dimension(self) -> int: ...

    def embed(self, text: str) -> list[float]: ...


class EmbeddingModel:
    """
    Wrapper around sentence-transformers for generating embeddings.

    Call load() once at startup; it is idempotent and thread-safe.
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2", device: Optional[str] = None):
        """
        Initialize the embedding model.

        Args:
            model_name: Name of the sentence-transformers model to use
            device: Device to use ('cuda', 'cpu', or None for auto-detect)
        """
        self.model_name = model_name
        self.device = device
        self._model: Optional[SentenceTransformer] = None
        self._dimension: Optional[int] = None
        self._model_lock = threading.Lock()

    def load(self) -> "EmbeddingModel":
        """Load the model if it is not loaded yet."""
        if self._model is None:
            with self._model_lock:
                if self._model is None:
                    logger.info(f"Loading embedding model: {self.model_name}")
                    try:
                        self._model = SentenceTransformer(self.model_name, device=self.device)
                    except Exception as e:
                        raise ProviderError(f"Cannot load embedding model {self.model_name}: {e}") from e
                    logger.info(f"Model loaded on device: {self._model.device}")
        return self

    @property
    def model(self) -> SentenceTransformer:
        return self.load()._model

    @property
    def dimension(self) -> int:
        """Get the embedding dimension."""
        if self._dimension is None:
            self._dimension = len(self.embed("dimension probe"))
            logger.info(f"Embedding dimension: {self._dimension}")
        return self._dimension

    def embed(self, text: str) -> list[float]:
        """
        Generate a normalized embedding for one text.

        Raises:
            ProviderError: If encoding fails after retries
        """
        try:
            return self._encode(text)
        except (RuntimeError, OSError) as e:
            raise ProviderError(f"Local embedding failed: {e}") from e

    @retry_on_failure(max_attempts=3, delay=0.5, exceptions=(RuntimeError, OSError))
    def _encode(self, text: str) -> list[float]:
        embedding = self.model.encode(
            text,
            convert_to_numpy=True,
            show_progress_bar=False,
            normalize_embeddings=True,
        )
        return embedding.tolist()

    def __repr__(self) -> str:
        loaded = "loaded" if self._model is not None else "not loaded"
        return f"EmbeddingModel(model={self.model_name}, {loaded})"


class OpenAIEmbeddingClient:
    """Embeddings from the OpenAI API."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "text-embedding-3-small",
        timeout: float = 30,
        dimension: Optional[int] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: OpenAI API key
            model: Embedding model name
            timeout: Per-request timeout in seconds
            dimension: Vector length; looked up from the model name if omitted

        Raises:
            ConfigError: If the key is missing or the dimension is unknown
        """
        problems = []
        if not api_key:
            problems.append("OPENAI_API_KEY is not set")
        if dimension is None and model not in OPENAI_DIMENSIONS:
            problems.append(f"unknown dimension for embedding model {model!r}; set embeddings.dimension")
        if problems:
            raise ConfigError(problems)

        self.model = model
        self._dimension = dimension or OPENAI_DIMENSIONS[model]
        self.client = openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> list[float]:
        """
        Embed one text.

        Raises:
            ProviderError: On any API failure, after retrying transient ones
        """
        try:
            response = self._create(text)
        except openai.OpenAIError as e:
            logger.error(f"Embedding request failed: {e}")
            raise ProviderError(f"OpenAI embedding failed: {e}") from e
        return list(response.data[0].embedding)

    @retry_on_failure(max_attempts=3, delay=1.0, exceptions=OPENAI_TRANSIENT_ERRORS)
    def _create(self, text: str):
        return self.client.embeddings.create(model=self.model, input=text)

    def __repr__(self) -> str:
        return f"OpenAIEmbeddingClient(model={self.model}, dimension={self._dimension})"
