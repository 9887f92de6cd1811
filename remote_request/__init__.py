"""remote-request: an HTTP request client with redirect and download handling."""

from remote_request.client import (
    AsyncHttpRequestClient,
    ClientConfig,
    HttpRequestClient,
    Method,
    RequestError,
    RequestErrorKind,
    RequestOptions,
    RequestResult,
    Response,
    TransportPreference,
    is_error,
    remote_get,
    remote_head,
    remote_post,
    remote_request,
)


__all__ = [
    "AsyncHttpRequestClient",
    "ClientConfig",
    "HttpRequestClient",
    "Method",
    "RequestError",
    "RequestErrorKind",
    "RequestOptions",
    "RequestResult",
    "Response",
    "TransportPreference",
    "is_error",
    "remote_get",
    "remote_head",
    "remote_post",
    "remote_request",
]
