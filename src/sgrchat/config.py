"""Settings for sgrchat.

Values come from ``SGRCHAT_*`` environment variables (a ``.env`` file in
the working directory is honored). ``OPENAI_API_KEY`` and
``OPENAI_BASE_URL`` are used when the sgrchat-specific ones are unset.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .session.models import ChatMode
from .storage.repository import DEFAULT_FOLDER


class ChatSettings(BaseModel):
    """Connection, generation and storage settings."""

    base_url: str = Field(default="", description="OpenAI-compatible API base URL")
    api_key: str = Field(default="", description="API key")
    proxy: str | None = Field(default=None, description="Proxy URL used instead of base_url")
    default_model: str = Field(default="gpt-4o-mini", description="Model for new sessions")
    default_mode: ChatMode = Field(default=ChatMode.ASK, description="Mode for new sessions")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, ge=1)
    history_folder: str = Field(default=DEFAULT_FOLDER, description="Folder holding chat records")
    storage_root: Path = Field(default=Path("~/.sgrchat"), description="Root directory for local storage")
    flush_interval: float = Field(default=2.0, gt=0, description="Seconds between flushes while streaming")
    log_level: str = Field(default="WARNING")

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "ChatSettings":
        """Build settings from the environment.

        Args:
            env_file: Optional .env file to load first

        Returns:
            ChatSettings with environment overrides applied
        """
        load_dotenv(env_file)

        values: dict[str, str] = {}
        for field in cls.model_fields:
            value = os.getenv(f"SGRCHAT_{field.upper()}")
            if value is not None and value != "":
                values[field] = value

        values.setdefault("api_key", os.getenv("OPENAI_API_KEY", ""))
        values.setdefault("base_url", os.getenv("OPENAI_BASE_URL", ""))
        return cls.model_validate(values)

    def validation_errors(self) -> list[str]:
        """Problems that prevent talking to the endpoint."""
        errors = []
        if not self.base_url.strip() and not (self.proxy or "").strip():
            errors.append("Base URL is required")
        if not self.api_key.strip():
            errors.append("API Key is required")
        return errors

    @property
    def is_configured(self) -> bool:
        return not self.validation_errors()
