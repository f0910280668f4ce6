"""
Answer generation through a chat-completion API.
"""

import logging
from typing import Optional, Protocol, runtime_checkable
import openai

from .embeddings import OPENAI_TRANSIENT_ERRORS
from .errors import ConfigError, ProviderError
from .utils import retry_on_failure

logger = logging.getLogger(__name__)


@runtime_checkable
class GenerationClient(Protocol):
    """Chat messages in, answer text out."""

    def complete(self, messages: list[dict[str, str]]) -> str: ...


class OpenAIChatClient:
    """Chat completions from the OpenAI API."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4-turbo",
        temperature: float = 0.2,
        max_tokens: int = 200,
        timeout: float = 60,
    ):
        if not api_key:
            raise ConfigError(["OPENAI_API_KEY is not set"])

        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def complete(self, messages: list[dict[str, str]]) -> str:
        """
        Generate the assistant reply to a list of role/content messages.

        Raises:
            ProviderError: On any API failure or an empty reply
        """
        try:
            completion = self._create(messages)
        except openai.OpenAIError as e:
            logger.error(f"Chat completion failed: {e}")
            raise ProviderError(f"OpenAI completion failed: {e}") from e

        if not completion.choices or completion.choices[0].message.content is None:
            raise ProviderError("OpenAI returned an empty completion")
        return completion.choices[0].message.content

    @retry_on_failure(max_attempts=3, delay=1.0, exceptions=OPENAI_TRANSIENT_ERRORS)
    def _create(self, messages: list[dict[str, str]]):
        return self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

    def __repr__(self) -> str:
        return f"OpenAIChatClient(model={self.model})"
