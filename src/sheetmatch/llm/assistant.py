"""Conversational assistant that discusses selected table cells."""

import logging
from typing import Iterator, Optional

from ..config import settings
from .anthropic_client import AnthropicClient
from .base import AssistantError, ChatMessage, LLMClient
from .chat_client import ChatCompletionsClient
from .config_store import AssistantConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You help users understand two spreadsheets being reconciled by a key column. "
    "Selected cells are attached as markdown tables. Answer concisely and refer to "
    "columns by their header names."
)


def build_client(config: AssistantConfig) -> LLMClient:
    """Create the client for the configured provider."""
    if not config.is_complete:
        raise AssistantError(
            "Assistant is not configured: API key and model are required, "
            "plus a base URL for OpenAI-compatible endpoints"
        )

    if config.provider == "anthropic":
        return AnthropicClient(
            api_key=config.api_key,
            model=config.model_name,
            max_tokens=settings.assistant_max_tokens,
        )
    return ChatCompletionsClient(
        api_key=config.api_key,
        base_url=config.base_url,
        model=config.model_name,
        timeout=settings.assistant_timeout_seconds,
        max_tokens=settings.assistant_max_tokens,
    )


class TableAssistant:
    """Keeps the conversation and folds attached cell context into the next message."""

    def __init__(self, client: LLMClient, system: Optional[str] = SYSTEM_PROMPT):
        self.client = client
        self.system = system
        self.messages: list[ChatMessage] = []
        self.attached_context = ""

    def attach(self, context: str) -> None:
        """Attach rendered cell context to the next user message."""
        self.attached_context = context.strip()

    def send(self, user_input: str) -> Iterator[str]:
        """
        Send a message and stream the reply.

        The attached context (if any) is prepended to the input and then
        cleared. The full reply is appended to the history once the stream
        finishes.
        """
        content = f"{self.attached_context}\n\n{user_input}".strip()
        if not content:
            raise AssistantError("Nothing to send: message and attached context are empty")

        self.messages.append(ChatMessage(role="user", content=content))
        self.attached_context = ""

        parts: list[str] = []
        try:
            for chunk in self.client.stream_chat(list(self.messages), system=self.system):
                parts.append(chunk)
                yield chunk
        finally:
            reply = "".join(parts)
            self.messages.append(ChatMessage(role="assistant", content=reply))
            logger.info(
                f"Assistant reply finished: {len(reply)} chars, "
                f"{len(self.messages)} messages in history"
            )
