"""
Conversation state and answer generation.

A ConversationSession is an explicit, bounded history owned by the caller;
ConversationManager turns (session, question, context) into an answer and
records the exchange only when generation succeeds.
"""

import logging
import threading
from typing import Optional

from .config import DEFAULT_SYSTEM_PROMPT
from .generation import GenerationClient
from .models import ConversationTurn

logger = logging.getLogger(__name__)


class ConversationSession:
    """
    Ordered conversation turns, capped at `cap` with oldest-first eviction.
    """

    def __init__(self, cap: int = 10):
        if cap <= 0:
            raise ValueError(f"cap must be positive, got {cap}")
        self.cap = cap
        self._turns: list[ConversationTurn] = []
        self.lock = threading.Lock()

    @property
    def turns(self) -> list[ConversationTurn]:
        """Copy of the current history, oldest first."""
        return list(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def append(self, *turns: ConversationTurn) -> None:
        """Append turns, then evict the oldest ones beyond the cap."""
        self._turns.extend(turns)
        if len(self._turns) > self.cap:
            del self._turns[:len(self._turns) - self.cap]

    def clear(self) -> None:
        self._turns = []

    def as_messages(self) -> list[dict[str, str]]:
        return [turn.model_dump() for turn in self._turns]


class ConversationManager:
    """Builds generation requests from a session and records successful exchanges."""

    def __init__(self, generator: GenerationClient, system_prompt: Optional[str] = None):
        self.generator = generator
        self.system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT

    def build_messages(self, session: ConversationSession, query: str, context: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            *session.as_messages(),
            {"role": "user", "content": f"Here is code context:\n\n{context}\n\nMy question: {query}"},
        ]

    def respond(self, session: ConversationSession, query: str, context: str) -> str:
        """
        Generate an answer and record the exchange in the session.

        The history is only extended after generation succeeds, so a failed
        call leaves it exactly as it was and can be retried as-is.

        Raises:
            ProviderError: If generation fails
        """
        with session.lock:
            messages = self.build_messages(session, query, context)
            answer = self.generator.complete(messages)
            session.append(
                ConversationTurn(role="user", content=query),
                ConversationTurn(role="assistant", content=answer),
            )
            logger.debug(f"Session history now holds {len(session)} turns")
            return answer
