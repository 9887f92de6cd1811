"""Data models for the HTTP request client."""

import random
import re
from enum import Enum
from typing import Annotated, TypeGuard

from pydantic import BaseModel, ConfigDict, Field, field_validator

from remote_request.client.constants import (
    HTTP_STATUS_MAX,
    HTTP_STATUS_MIN,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    MAX_REDIRECT_LIMIT,
    MAX_TIMEOUT_SECONDS,
)


# RFC 9110 token and the printable ASCII httpx can encode in a header value
_HEADER_NAME = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_HEADER_VALUE = re.compile(r"[\t\x20-\x7e]*")


def validate_header_value(value: str) -> str:
    """Check that a header value is printable ASCII.

    Raises:
        ValueError: If the value holds non-ASCII or control characters.
    """
    if not _HEADER_VALUE.fullmatch(value):
        msg = f"Header value {value!r} must be printable ASCII"
        raise ValueError(msg)
    return value


class Method(str, Enum):
    """HTTP request methods accepted by the client."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"


class RequestErrorKind(str, Enum):
    """Classification of request failures.

    - REDIRECT_LIMIT_EXCEEDED: Redirect chain needed more hops than allowed
    - NETWORK_FAILURE: Connection refused, DNS failure, reset
    - TIMEOUT: No response or progress within the configured window
    - INVALID_URL: Request URL or redirect Location is not usable
    - RESPONSE_SIZE_EXCEEDED: Body exceeded max_response_size_bytes
    - INCOMPLETE_BODY: Streamed bytes disagree with Content-Length
    - FILE_ERROR: Download destination could not be written
    - SSL_ERROR: TLS certificate or handshake error
    """

    REDIRECT_LIMIT_EXCEEDED = "REDIRECT_LIMIT_EXCEEDED"
    NETWORK_FAILURE = "NETWORK_FAILURE"
    TIMEOUT = "TIMEOUT"
    INVALID_URL = "INVALID_URL"
    RESPONSE_SIZE_EXCEEDED = "RESPONSE_SIZE_EXCEEDED"
    INCOMPLETE_BODY = "INCOMPLETE_BODY"
    FILE_ERROR = "FILE_ERROR"
    SSL_ERROR = "SSL_ERROR"


class RequestOptions(BaseModel):
    """Per-request options.

    Unset fields (None) fall back to the client's ClientConfig.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: Method = Method.GET
    redirect_limit: Annotated[int, Field(ge=0, le=MAX_REDIRECT_LIMIT)] | None = Field(
        default=None,
        description="Redirect budget; None uses the method's default",
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Request headers sent as given"
    )
    timeout_seconds: Annotated[float, Field(gt=0.0, le=MAX_TIMEOUT_SECONDS)] | None = (
        None
    )
    stream_to_file: bool = False
    destination_path: str | None = Field(
        default=None, description="Where to write a streamed body"
    )
    body: bytes | str | None = Field(default=None, description="Request payload")
    max_response_size_bytes: Annotated[int, Field(ge=0)] | None = None
    user_agent: Annotated[str, Field(min_length=1, max_length=500)] | None = None

    @field_validator("headers", mode="before")
    @classmethod
    def coerce_header_values(cls, v: object) -> object:
        """Accept non-string header values (e.g. ``0``) as their string form."""
        if isinstance(v, dict):
            return {str(key): str(value) for key, value in v.items()}
        return v

    @field_validator("headers")
    @classmethod
    def validate_header_names(cls, v: dict[str, str]) -> dict[str, str]:
        """Reject malformed names, unsendable values and case duplicates."""
        seen: set[str] = set()
        for key, value in v.items():
            if not _HEADER_NAME.fullmatch(key):
                msg = f"Invalid header name {key!r}"
                raise ValueError(msg)
            validate_header_value(value)
            lowered = key.lower()
            if lowered in seen:
                msg = f"Duplicate header '{key}' (header names are case-insensitive)"
                raise ValueError(msg)
            seen.add(lowered)
        return v

    @field_validator("user_agent")
    @classmethod
    def validate_user_agent(cls, v: str | None) -> str | None:
        """Ensure the User-Agent can be sent as a header."""
        return v if v is None else validate_header_value(v)

    def header(self, name: str) -> str | None:
        """Look up a request header case-insensitively.

        Args:
            name: Header name.

        Returns:
            The header value, or None if not set.
        """
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class Response(BaseModel):
    """A completed HTTP response at the end of a redirect chain."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int = Field(
        ge=HTTP_STATUS_MIN, le=HTTP_STATUS_MAX, description="HTTP status code"
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Lowercased response headers"
    )
    body: bytes = Field(default=b"", description="Response body")
    file_path: str | None = Field(
        default=None, description="Downloaded file when streamed to disk"
    )
    final_url: Annotated[
        str, Field(min_length=1, description="URL of the last hop")
    ]
    redirect_count: Annotated[int, Field(ge=0)] = 0
    reason_phrase: str = ""

    @property
    def is_success(self) -> bool:
        """Check if the response has a 2xx status."""
        return HTTP_STATUS_OK_MIN <= self.status_code < HTTP_STATUS_OK_MAX

    @property
    def body_size(self) -> int:
        """Get the size of the buffered response body in bytes."""
        return len(self.body)

    def header(self, name: str) -> str | None:
        """Get a response header by name, case-insensitively."""
        return self.headers.get(name.lower())


class RequestError(BaseModel):
    """Typed failure of a request.

    Returned instead of a Response; never raised.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: RequestErrorKind = Field(description="Classification of the error")
    message: Annotated[str, Field(min_length=1, description="Human-readable message")]
    url: str = Field(default="", description="URL being requested when it failed")
    status_code: int | None = Field(
        default=None, description="HTTP status code if available"
    )
    redirect_count: Annotated[int, Field(ge=0)] = 0


RequestResult = Response | RequestError


def is_error(result: RequestResult) -> TypeGuard[RequestError]:
    """Check whether a request result is an error."""
    return isinstance(result, RequestError)


class RetryPolicy(BaseModel):
    """Configuration for retry behavior.

    Controls how many times to retry and the backoff strategy.
    Uses exponential backoff: delay = base_delay_ms * (exponential_base ^ attempt)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: Annotated[int, Field(ge=0, le=10)] = 0
    base_delay_ms: Annotated[int, Field(ge=0, le=60000)] = 500
    max_delay_ms: Annotated[int, Field(ge=0, le=300000)] = 10000
    exponential_base: Annotated[float, Field(ge=1.0, le=5.0)] = 2.0
    jitter_factor: Annotated[float, Field(ge=0.0, le=1.0)] = 0.1

    def should_retry(self, error: RequestError, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            error: The error that occurred.
            attempt: Current attempt number (0-indexed).

        Returns:
            True if the request should be retried.
        """
        if attempt >= self.max_retries:
            return False

        retryable_kinds = {
            RequestErrorKind.TIMEOUT,
            RequestErrorKind.NETWORK_FAILURE,
        }

        return error.kind in retryable_kinds

    def get_delay_ms(self, attempt: int) -> int:
        """Calculate delay before the next retry attempt.

        Args:
            attempt: Current attempt number (0-indexed).

        Returns:
            Delay in milliseconds.
        """
        delay = self.base_delay_ms * (self.exponential_base**attempt)
        delay = min(delay, self.max_delay_ms)

        jitter = delay * self.jitter_factor * random.random()  # noqa: S311
        return int(delay + jitter)


class ResponseSizeExceededError(Exception):
    """Raised when response size exceeds the configured limit."""


class IncompleteBodyError(Exception):
    """Raised when a body ends short of its Content-Length or is cut off."""

    def __init__(self, expected: int | None, received: int) -> None:
        """Initialize the error.

        Args:
            expected: Byte count advertised by Content-Length, if any.
            received: Byte count actually received.
        """
        self.expected = expected
        self.received = received
        if expected is None:
            msg = f"Connection closed mid-body after {received} bytes"
        else:
            msg = (
                f"Expected {expected} bytes from Content-Length, "
                f"received {received}"
            )
        super().__init__(msg)
