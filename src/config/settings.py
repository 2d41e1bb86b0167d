"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_INSTRUCTIONS = (
    "You are a helpful assistant for a restaurant, we always have availability for bookings. "
    "Speak clearly and briefly. "
    "Confirm understanding before taking actions. "
    "Your default language is English, unless a user uses a different language."
)


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # OpenAI connectivity
    openai_api_key: str | None = Field(default=None)
    openai_api_base: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL for the OpenAI REST API.",
    )
    openai_realtime_ws_url: str = Field(
        default="wss://api.openai.com/v1/realtime",
        description="WebSocket endpoint for realtime call sessions.",
    )
    openai_webhook_secret: str | None = Field(
        default=None,
        description="Optional signing secret used to verify incoming OpenAI webhooks.",
    )

    # Realtime session
    realtime_model: str = Field(default="gpt-realtime")
    realtime_voice: str = Field(default="coral")
    realtime_speed: float = Field(default=1.0, gt=0.0)
    realtime_instructions: str = Field(default=DEFAULT_INSTRUCTIONS)

    # Call accept retry policy
    accept_timeout_seconds: float = Field(default=5.0, gt=0.0)
    accept_max_attempts: int = Field(default=3, ge=1)
    accept_retry_delay_seconds: float = Field(default=1.0, ge=0.0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
