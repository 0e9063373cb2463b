"""Configuration settings for ResumeLM."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults and can be overridden via
    environment variables prefixed with RESUMELM_ or a .env file.

    Example: RESUMELM_DEFAULT_MODEL=gpt-4o
    """

    model_config = SettingsConfigDict(
        env_prefix="RESUMELM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Model settings
    default_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Model used when the client configuration names none",
    )
    llm_timeout: Annotated[float, Field(gt=0)] = Field(
        default=180.0,
        description="Timeout in seconds for completion calls",
    )

    # Server-side default keys, only used for entitled users without their own key
    openai_api_key: str | None = Field(default=None, description="Server OpenAI key")
    anthropic_api_key: str | None = Field(
        default=None, description="Server Anthropic key"
    )
    gemini_api_key: str | None = Field(default=None, description="Server Gemini key")
    deepseek_api_key: str | None = Field(
        default=None, description="Server DeepSeek key"
    )
    openrouter_api_key: str | None = Field(
        default=None, description="Server OpenRouter key"
    )

    # Rate limit presentation
    rate_limit_retry_hours: Annotated[float, Field(gt=0)] = Field(
        default=5.0,
        description="Hours from now shown to the user after a rate limit",
    )

    # Storage
    db_path: Path = Field(
        default=Path("./data/resumelm.db"),
        description="Path to the SQLite document store",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            raise ValueError(f"log_level must be one of {sorted(valid)}")
        return upper

    @field_validator("db_path", mode="before")
    @classmethod
    def convert_to_path(cls, v: str | Path) -> Path:
        """Convert string paths to Path objects."""
        if isinstance(v, str):
            return Path(v)
        return v

    def server_key_for(self, service: str) -> str | None:
        """Return the server-side default key for a provider, if configured."""
        keys = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "gemini": self.gemini_api_key,
            "deepseek": self.deepseek_api_key,
            "openrouter": self.openrouter_api_key,
        }
        value = keys.get(service)
        return value.strip() if value and value.strip() else None


# Singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the settings singleton (useful for testing)."""
    global _settings
    _settings = None
