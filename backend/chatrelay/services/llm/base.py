"""Abstract LLM provider interface. All providers must implement this."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator

from chatrelay.models.chat import Chat


@dataclass
class ContentDelta:
    content: str
    model: str | None = None
    provider: str | None = None
    reasoning_content: str | None = None


class BaseLLMProvider(ABC):
    @abstractmethod
    def stream_completion(
        self, chat: Chat, system_prompt: str | None = None
    ) -> AsyncIterator[ContentDelta]:
        """Stream the reply to ``chat`` as content deltas, in upstream order."""
        ...
