"""Configuration models for the HTTP request client."""

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from remote_request.client.constants import (
    DEFAULT_ACCEPT,
    DEFAULT_REDIRECT_LIMIT,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    MAX_REDIRECT_LIMIT,
    MAX_TIMEOUT_SECONDS,
)
from remote_request.client.models import RetryPolicy, validate_header_value


if TYPE_CHECKING:
    from remote_request.settings.app import ClientSettings


class TransportPreference(BaseModel):
    """Transport selection handed to a client at construction time.

    Replaces process-wide transport toggles: each client builds its own
    httpx transport from this, so clients with different preferences can
    run side by side.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    http1: bool = True
    http2: bool = Field(
        default=False, description="Negotiate HTTP/2 (requires the h2 package)"
    )
    verify_tls: bool = True
    connect_retries: Annotated[int, Field(ge=0, le=10)] = 0
    local_address: str | None = Field(
        default=None, description="Local IP address to bind outgoing sockets to"
    )
    proxy: str | None = None

    @model_validator(mode="after")
    def validate_some_protocol(self) -> "TransportPreference":
        """Ensure at least one HTTP version is enabled."""
        if not (self.http1 or self.http2):
            msg = "At least one of http1 or http2 must be enabled"
            raise ValueError(msg)
        return self


class ClientConfig(BaseModel):
    """Configuration for the HTTP request client.

    Holds the defaults applied when a RequestOptions field is left unset.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = (
        DEFAULT_USER_AGENT
    )
    accept: str = DEFAULT_ACCEPT
    default_timeout_seconds: Annotated[
        float, Field(gt=0.0, le=MAX_TIMEOUT_SECONDS)
    ] = DEFAULT_TIMEOUT_SECONDS
    default_redirect_limit: Annotated[int, Field(ge=0, le=MAX_REDIRECT_LIMIT)] = (
        DEFAULT_REDIRECT_LIMIT
    )
    max_response_size_bytes: Annotated[int, Field(ge=0)] | None = None
    temp_dir: Path | None = Field(
        default=None, description="Directory for auto-named downloads"
    )
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    transport: TransportPreference = Field(default_factory=TransportPreference)

    @field_validator("user_agent", "accept")
    @classmethod
    def validate_header_defaults(cls, v: str) -> str:
        """Ensure default header values can be sent."""
        return validate_header_value(v)

    @classmethod
    def from_settings(cls, settings: "ClientSettings") -> "ClientConfig":
        """Build a config from environment settings.

        Args:
            settings: Loaded environment settings.

        Returns:
            ClientConfig with the settings applied.
        """
        return cls(
            user_agent=settings.user_agent,
            default_timeout_seconds=settings.timeout_seconds,
            default_redirect_limit=settings.redirect_limit,
            max_response_size_bytes=settings.max_response_size_bytes,
            temp_dir=settings.temp_dir,
            retry_policy=RetryPolicy(max_retries=settings.max_retries),
            transport=TransportPreference(
                http2=settings.http2,
                verify_tls=settings.verify_tls,
                proxy=settings.proxy,
            ),
        )
