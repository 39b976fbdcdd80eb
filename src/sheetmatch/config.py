"""Configuration management for SheetMatch."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _parse_cors_origins() -> list[str]:
    """Parse CORS origins from environment variable."""
    cors_env = os.getenv("CORS_ALLOW_ORIGINS")
    if cors_env:
        return cors_env.split(",")
    return ["*"]


class Settings(BaseModel):
    """Application settings."""

    # Server settings
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "8000"))
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS settings (comma-separated list of allowed origins, or * for all)
    cors_allow_origins: list[str] = _parse_cors_origins()

    # Reconciliation output naming
    new_column_suffix: str = os.getenv("NEW_COLUMN_SUFFIX", " (updated)")
    output_suffix: str = os.getenv("OUTPUT_SUFFIX", "_updated")

    # Upload and preview limits
    preview_rows: int = int(os.getenv("PREVIEW_ROWS", "5"))
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(20 * 1024 * 1024)))

    # Assistant ('openai' for any OpenAI-compatible endpoint, or 'anthropic')
    assistant_config_path: Path = Path(
        os.getenv("ASSISTANT_CONFIG_PATH", "data/assistant_config.json")
    )
    assistant_provider: str = os.getenv("ASSISTANT_PROVIDER", "openai")
    assistant_base_url: str = os.getenv(
        "ASSISTANT_BASE_URL", "https://api.openai.com/v1/chat/completions"
    )
    assistant_model: str = os.getenv("ASSISTANT_MODEL", "")
    assistant_api_key: Optional[str] = os.getenv("ASSISTANT_API_KEY")
    assistant_timeout_seconds: float = float(os.getenv("ASSISTANT_TIMEOUT_SECONDS", "60"))
    assistant_max_tokens: int = int(os.getenv("ASSISTANT_MAX_TOKENS", "1024"))


settings = Settings()
