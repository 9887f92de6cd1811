"""One-shot request helpers and result accessors.

The ``retrieve_*`` accessors let callers read a result without first
branching on whether it is an error: for a RequestError they return an
empty value.
"""

from typing import Any

from remote_request.client.config import ClientConfig
from remote_request.client.http_client import HttpRequestClient
from remote_request.client.models import (
    Method,
    RequestError,
    RequestOptions,
    RequestResult,
)


def remote_request(
    url: str,
    options: RequestOptions | None = None,
    *,
    config: ClientConfig | None = None,
) -> RequestResult:
    """Issue a single request with a short-lived client.

    Args:
        url: Absolute http(s) URL.
        options: Request options (defaults to a plain GET).
        config: Client configuration (defaults if None).

    Returns:
        Response or RequestError.
    """
    return HttpRequestClient(config=config).request(url, options)


def _with_method(
    url: str,
    method: Method,
    config: ClientConfig | None,
    fields: dict[str, Any],
) -> RequestResult:
    options = RequestOptions(method=method, **fields)
    return remote_request(url, options, config=config)


def remote_get(
    url: str, *, config: ClientConfig | None = None, **fields: Any
) -> RequestResult:
    """Issue a GET request; keyword arguments become RequestOptions fields."""
    return _with_method(url, Method.GET, config, fields)


def remote_head(
    url: str, *, config: ClientConfig | None = None, **fields: Any
) -> RequestResult:
    """Issue a HEAD request.

    Without an explicit ``redirect_limit`` the redirect is returned, not
    followed.
    """
    return _with_method(url, Method.HEAD, config, fields)


def remote_post(
    url: str,
    body: bytes | str | None = None,
    *,
    config: ClientConfig | None = None,
    **fields: Any,
) -> RequestResult:
    """Issue a POST request with an optional body."""
    return _with_method(url, Method.POST, config, {"body": body, **fields})


def retrieve_status_code(result: RequestResult) -> int:
    """Status code of a response, or 0 for an error."""
    if isinstance(result, RequestError):
        return 0
    return result.status_code


def retrieve_reason_phrase(result: RequestResult) -> str:
    """Reason phrase of a response, or an empty string for an error."""
    if isinstance(result, RequestError):
        return ""
    return result.reason_phrase


def retrieve_headers(result: RequestResult) -> dict[str, str]:
    """Lowercased response headers, or an empty dict for an error."""
    if isinstance(result, RequestError):
        return {}
    return dict(result.headers)


def retrieve_header(result: RequestResult, name: str) -> str:
    """A single response header (case-insensitive), or an empty string."""
    if isinstance(result, RequestError):
        return ""
    return result.header(name) or ""


def retrieve_body(result: RequestResult) -> bytes:
    """Buffered response body, or empty bytes for an error or a download."""
    if isinstance(result, RequestError):
        return b""
    return result.body
