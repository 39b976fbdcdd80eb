"""Streaming client for OpenAI-compatible chat completion endpoints."""

import json
import logging
from typing import Iterator, Optional

import httpx

from .base import AssistantError, ChatMessage, LLMClient

logger = logging.getLogger(__name__)

COMPLETIONS_PATH = "/chat/completions"


class ChatCompletionsClient(LLMClient):
    """Chat completions over HTTP with server-sent events."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout: float = 60.0,
        max_tokens: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = self._completions_url(base_url)
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self._transport = transport

    @staticmethod
    def _completions_url(base_url: str) -> str:
        """Accept either the API root or the full completions endpoint."""
        url = base_url.rstrip("/")
        if url.endswith(COMPLETIONS_PATH):
            return url
        return f"{url}{COMPLETIONS_PATH}"

    def _build_payload(self, messages: list[ChatMessage], system: Optional[str]) -> dict:
        payload_messages = []
        if system:
            payload_messages.append({"role": "system", "content": system})
        payload_messages.extend(message.to_dict() for message in messages)

        payload = {
            "model": self.model,
            "messages": payload_messages,
            "stream": True,
        }
        if self.max_tokens:
            payload["max_tokens"] = self.max_tokens
        return payload

    def stream_chat(
        self,
        messages: list[ChatMessage],
        system: Optional[str] = None,
    ) -> Iterator[str]:
        """Stream the reply, yielding each content delta."""
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = self._build_payload(messages, system)

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                with client.stream("POST", self.url, headers=headers, json=payload) as response:
                    if response.status_code >= 400:
                        body = response.read().decode("utf-8", errors="replace")
                        raise AssistantError(
                            f"API Error: {response.status_code} "
                            f"{response.reason_phrase} - {body}"
                        )
                    yield from self._parse_events(response.iter_lines())
        except httpx.HTTPError as e:
            raise AssistantError(f"Request to {self.url} failed: {e}") from e

    def _parse_events(self, lines: Iterator[str]) -> Iterator[str]:
        """Extract content deltas from ``data:`` lines until ``[DONE]``."""
        for line in lines:
            if not line.startswith("data: "):
                continue
            data = line[len("data: "):].strip()
            if data == "[DONE]":
                return
            try:
                chunk = json.loads(data)
                choices = chunk.get("choices") or [{}]
                content = (choices[0].get("delta") or {}).get("content") or ""
            except (json.JSONDecodeError, AttributeError) as e:
                logger.debug(f"Skipping unparsable stream chunk: {e}")
                continue
            if content:
                yield content
