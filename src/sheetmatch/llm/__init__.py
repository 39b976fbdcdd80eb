"""Assistant for discussing selected table cells."""

from .base import AssistantError, ChatMessage, LLMClient
from .anthropic_client import AnthropicClient
from .chat_client import ChatCompletionsClient
from .config_store import AssistantConfig, AssistantConfigStore, default_config
from .context import CellSelection, build_context, format_selection
from .assistant import SYSTEM_PROMPT, TableAssistant, build_client

__all__ = [
    "AssistantError",
    "ChatMessage",
    "LLMClient",
    "AnthropicClient",
    "ChatCompletionsClient",
    "AssistantConfig",
    "AssistantConfigStore",
    "default_config",
    "CellSelection",
    "build_context",
    "format_selection",
    "SYSTEM_PROMPT",
    "TableAssistant",
    "build_client",
]
