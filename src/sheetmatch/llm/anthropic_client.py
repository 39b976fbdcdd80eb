"""Anthropic LLM client."""

from typing import Iterator, Optional

import anthropic
from anthropic import Anthropic

from .base import AssistantError, ChatMessage, LLMClient


class AnthropicClient(LLMClient):
    """Anthropic Claude client."""

    def __init__(self, api_key: str, model: str, max_tokens: int = 1024):
        self.client = Anthropic(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens

    def stream_chat(
        self,
        messages: list[ChatMessage],
        system: Optional[str] = None,
    ) -> Iterator[str]:
        """Stream a reply from Claude."""
        kwargs = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [message.to_dict() for message in messages],
        }
        if system:
            kwargs["system"] = system

        try:
            with self.client.messages.stream(**kwargs) as stream:
                for text in stream.text_stream:
                    yield text
        except anthropic.APIError as e:
            raise AssistantError(f"Anthropic API error: {e}") from e
