"""Base LLM client interface."""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Iterator, Optional


class AssistantError(RuntimeError):
    """Raised when the text generation service fails or is not configured."""


@dataclass
class ChatMessage:
    """Message in a conversation."""

    role: str  # "user" or "assistant"
    content: str

    def to_dict(self) -> dict:
        return asdict(self)


class LLMClient(ABC):
    """Abstract base class for streaming chat clients."""

    @abstractmethod
    def stream_chat(
        self,
        messages: list[ChatMessage],
        system: Optional[str] = None,
    ) -> Iterator[str]:
        """Yield reply text chunks as they arrive."""
        pass
