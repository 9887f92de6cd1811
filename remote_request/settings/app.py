"""Client settings powered by Pydantic BaseSettings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from remote_request.client.constants import (
    DEFAULT_REDIRECT_LIMIT,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
)


class ClientSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="REMOTE_REQUEST_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0.0)
    redirect_limit: int = Field(default=DEFAULT_REDIRECT_LIMIT, ge=0)
    max_response_size_bytes: int | None = None
    max_retries: int = Field(default=0, ge=0, le=10)
    temp_dir: Path | None = None
    http2: bool = False
    verify_tls: bool = True
    proxy: str | None = None
    log_level: str = "INFO"
    log_json: bool = True


def get_settings() -> ClientSettings:
    """Get a settings instance."""
    return ClientSettings()
