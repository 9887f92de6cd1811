"""HTTP request client with redirect following and streaming downloads.

This module provides:
- Redirect following within a per-request budget (HEAD opts in explicitly)
- Request header passthrough and lowercased response header capture
- Streaming downloads to disk, verified against Content-Length
- Typed RequestError results instead of raised network exceptions
- Optional retries and per-client metrics
"""

from remote_request.client.api import (
    remote_get,
    remote_head,
    remote_post,
    remote_request,
    retrieve_body,
    retrieve_header,
    retrieve_headers,
    retrieve_reason_phrase,
    retrieve_status_code,
)
from remote_request.client.async_client import AsyncHttpRequestClient
from remote_request.client.config import ClientConfig, TransportPreference
from remote_request.client.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_REDIRECT_LIMIT,
    DEFAULT_TIMEOUT_SECONDS,
    REDIRECT_STATUSES,
)
from remote_request.client.http_client import HttpRequestClient
from remote_request.client.metrics import RequestMetrics
from remote_request.client.models import (
    Method,
    RequestError,
    RequestErrorKind,
    RequestOptions,
    RequestResult,
    Response,
    RetryPolicy,
    is_error,
)
from remote_request.client.redact import redact_headers, redact_url_credentials
from remote_request.client.redirects import resolve_redirect_limit


__all__ = [
    # Clients
    "HttpRequestClient",
    "AsyncHttpRequestClient",
    # Convenience API
    "remote_request",
    "remote_get",
    "remote_head",
    "remote_post",
    "retrieve_body",
    "retrieve_header",
    "retrieve_headers",
    "retrieve_reason_phrase",
    "retrieve_status_code",
    # Config
    "ClientConfig",
    "TransportPreference",
    # Models
    "Method",
    "RequestOptions",
    "Response",
    "RequestError",
    "RequestErrorKind",
    "RequestResult",
    "RetryPolicy",
    "is_error",
    "resolve_redirect_limit",
    # Constants
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_REDIRECT_LIMIT",
    "DEFAULT_TIMEOUT_SECONDS",
    "REDIRECT_STATUSES",
    # Metrics
    "RequestMetrics",
    # Redaction
    "redact_headers",
    "redact_url_credentials",
]
