"""Persistence for the assistant's connection settings."""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from ..config import settings

logger = logging.getLogger(__name__)

PROVIDERS = ("openai", "anthropic")


class AssistantConfig(BaseModel):
    """Connection settings for the text generation service."""

    provider: str = "openai"
    api_key: str = ""
    base_url: str = ""
    model_name: str = ""

    @property
    def is_complete(self) -> bool:
        if self.provider not in PROVIDERS or not self.api_key or not self.model_name:
            return False
        # The Anthropic SDK knows its own endpoint.
        return self.provider == "anthropic" or bool(self.base_url)

    def masked(self) -> dict:
        """Serializable view that never exposes the full API key."""
        data = self.model_dump()
        key = self.api_key
        data["api_key"] = f"{key[:3]}...{key[-4:]}" if len(key) > 8 else ("***" if key else "")
        data["api_key_present"] = bool(key)
        data["is_complete"] = self.is_complete
        return data


def default_config() -> AssistantConfig:
    """Assistant settings taken from the environment."""
    return AssistantConfig(
        provider=settings.assistant_provider,
        api_key=settings.assistant_api_key or "",
        base_url=settings.assistant_base_url,
        model_name=settings.assistant_model,
    )


class AssistantConfigStore:
    """Stores AssistantConfig as a JSON file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or settings.assistant_config_path)

    def load(self) -> AssistantConfig:
        """Return the saved config, or the environment defaults if none is saved."""
        if not self.path.exists():
            return default_config()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return AssistantConfig(**data)
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning(f"Ignoring unreadable assistant config at {self.path}: {e}")
            return default_config()

    def save(self, config: AssistantConfig) -> AssistantConfig:
        if config.provider not in PROVIDERS:
            raise ValueError(
                f"Unknown provider '{config.provider}'; expected one of {', '.join(PROVIDERS)}"
            )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Saved assistant config ({config.provider}, {config.model_name}) to {self.path}")
        return config
