"""Shared request preparation and result construction for the clients."""

import ssl
import time
from pathlib import Path

import httpx
import structlog

from remote_request.client.config import ClientConfig
from remote_request.client.constants import (
    HTTP_STATUS_MAX,
    HTTP_STATUS_MIN,
)
from remote_request.client.metrics import RequestMetrics
from remote_request.client.models import (
    IncompleteBodyError,
    Method,
    RequestError,
    RequestErrorKind,
    RequestOptions,
    RequestResult,
    Response,
    ResponseSizeExceededError,
)
from remote_request.client.redact import redact_headers, redact_url_credentials
from remote_request.client.redirects import (
    Hop,
    InvalidRedirectError,
    RedirectTracker,
    resolve_redirect_limit,
)
from remote_request.client.stream import DownloadSink, parse_content_length


logger = structlog.get_logger()

# Statuses whose responses never carry a body
_BODYLESS_STATUSES = frozenset({204, 304})

# Exceptions converted into RequestError at the client boundary
HANDLED_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.HTTPError,
    httpx.InvalidURL,
    InvalidRedirectError,
    ResponseSizeExceededError,
    IncompleteBodyError,
    OSError,
)


def capture_headers(headers: httpx.Headers) -> dict[str, str]:
    """Flatten response headers to lowercased names, first value wins.

    Args:
        headers: Raw response headers.

    Returns:
        Dictionary of lowercased header name to value.
    """
    captured: dict[str, str] = {}
    for key, value in headers.multi_items():
        captured.setdefault(key.lower(), value)
    return captured


def _is_ssl_error(exc: BaseException) -> bool:
    current: BaseException | None = exc
    while current is not None:
        if isinstance(current, ssl.SSLError):
            return True
        current = current.__cause__ or current.__context__
    return False


class BaseRequestClient:
    """Common machinery for the sync and async request clients.

    Subclasses own the I/O loop; everything that does not touch the
    network lives here so both clients build identical requests and
    results.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        metrics: RequestMetrics | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration (defaults if None).
            metrics: Optional metrics sink; nothing is recorded if None.
        """
        self._config = config or ClientConfig()
        self._metrics = metrics
        self._log = logger.bind(component="http_client")

    @property
    def config(self) -> ClientConfig:
        """The client's configuration."""
        return self._config

    def _transport_kwargs(self) -> dict[str, object]:
        preference = self._config.transport
        return {
            "http1": preference.http1,
            "http2": preference.http2,
            "verify": preference.verify_tls,
            "retries": preference.connect_retries,
            "local_address": preference.local_address,
            "proxy": preference.proxy,
        }

    def _timeout_for(self, options: RequestOptions) -> httpx.Timeout:
        seconds = options.timeout_seconds or self._config.default_timeout_seconds
        return httpx.Timeout(seconds)

    def _max_size_for(self, options: RequestOptions) -> int | None:
        if options.max_response_size_bytes is not None:
            return options.max_response_size_bytes
        return self._config.max_response_size_bytes

    def _build_headers(self, options: RequestOptions) -> dict[str, str]:
        """Build request headers.

        Caller headers are sent as given; client defaults fill in only the
        names the caller left out.

        Args:
            options: Request options.

        Returns:
            Complete headers dictionary.
        """
        headers = dict(options.headers)
        present = {key.lower() for key in headers}

        if "user-agent" not in present:
            headers["User-Agent"] = options.user_agent or self._config.user_agent
        if "accept" not in present:
            headers["Accept"] = self._config.accept
        # Keep bytes on disk identical to the bytes Content-Length counts
        if options.stream_to_file and "accept-encoding" not in present:
            headers["Accept-Encoding"] = "identity"

        return headers

    def _prepare(
        self, url: str, options: RequestOptions
    ) -> RedirectTracker | RequestError:
        """Validate the URL and set up the redirect tracker.

        Args:
            url: Absolute request URL.
            options: Request options.

        Returns:
            A tracker positioned at the first hop, or an INVALID_URL error.
        """
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as e:
            return RequestError(
                kind=RequestErrorKind.INVALID_URL,
                message=f"Invalid URL: {e}",
                url=url,
            )

        if parsed.scheme not in ("http", "https") or not parsed.host:
            return RequestError(
                kind=RequestErrorKind.INVALID_URL,
                message="URL must be an absolute http or https URL",
                url=url,
            )

        body = options.body
        if isinstance(body, str):
            body = body.encode("utf-8")

        first_hop = Hop(
            url=parsed,
            method=options.method,
            headers=self._build_headers(options),
            body=body,
        )
        limit = resolve_redirect_limit(
            options.method,
            options.redirect_limit,
            self._config.default_redirect_limit,
        )
        return RedirectTracker(first_hop, limit)

    def _build_request(
        self, client: httpx.Client | httpx.AsyncClient, hop: Hop
    ) -> httpx.Request:
        return client.build_request(
            hop.method.value,
            hop.url,
            headers=hop.headers,
            content=hop.body,
        )

    def _expected_length(self, response: httpx.Response, method: Method) -> int | None:
        """Content-Length the bytes on disk must match, if one applies."""
        if method is Method.HEAD or response.status_code in _BODYLESS_STATUSES:
            return None
        encoding = response.headers.get("content-encoding", "identity")
        encoding = encoding.strip().lower()
        if encoding not in ("", "identity"):
            return None
        return parse_content_length(response.headers.get("content-length"))

    def _check_declared_size(
        self, response: httpx.Response, method: Method, max_bytes: int | None
    ) -> None:
        if method is Method.HEAD:
            return
        declared = parse_content_length(response.headers.get("content-length"))
        if max_bytes is not None and declared is not None and declared > max_bytes:
            msg = f"Response size {declared} exceeds limit {max_bytes}"
            raise ResponseSizeExceededError(msg)

    def _open_sink(
        self, tracker: RedirectTracker, options: RequestOptions
    ) -> DownloadSink:
        return DownloadSink.open(
            url=str(tracker.current.url),
            destination_path=options.destination_path,
            temp_dir=self._config.temp_dir,
            max_bytes=self._max_size_for(options),
        )

    def _invalid_status(
        self, response: httpx.Response, tracker: RedirectTracker
    ) -> RequestError | None:
        if HTTP_STATUS_MIN <= response.status_code <= HTTP_STATUS_MAX:
            return None
        return RequestError(
            kind=RequestErrorKind.NETWORK_FAILURE,
            message=f"Invalid HTTP status code {response.status_code}",
            url=str(tracker.current.url),
            redirect_count=tracker.redirect_count,
        )

    def _build_response(
        self,
        response: httpx.Response,
        tracker: RedirectTracker,
        body: bytes = b"",
        file_path: str | None = None,
    ) -> Response:
        return Response(
            status_code=response.status_code,
            headers=capture_headers(response.headers),
            body=body,
            file_path=file_path,
            final_url=str(tracker.current.url),
            redirect_count=tracker.redirect_count,
            reason_phrase=response.reason_phrase,
        )

    def _limit_exceeded(
        self, response: httpx.Response, tracker: RedirectTracker
    ) -> RequestError:
        return RequestError(
            kind=RequestErrorKind.REDIRECT_LIMIT_EXCEEDED,
            message=(
                f"Too many redirects: limit of {tracker.redirect_limit} "
                "reached and the server redirected again"
            ),
            url=str(tracker.current.url),
            status_code=response.status_code,
            redirect_count=tracker.redirect_count,
        )

    def _log_redirect(
        self,
        log: structlog.stdlib.BoundLogger,
        response: httpx.Response,
        tracker: RedirectTracker,
    ) -> None:
        if self._metrics is not None:
            self._metrics.record_redirect()
        log.debug(
            "redirect_followed",
            status_code=response.status_code,
            location=redact_url_credentials(str(tracker.current.url)),
            method=tracker.current.method.value,
            redirect_count=tracker.redirect_count,
        )

    def _classify_exception(
        self, exc: Exception, tracker: RedirectTracker
    ) -> RequestError:
        """Map an exception raised during a request to a RequestError.

        Args:
            exc: The exception.
            tracker: Redirect tracker for the failed request.

        Returns:
            Classified RequestError.
        """
        url = str(tracker.current.url)
        count = tracker.redirect_count

        if isinstance(exc, ResponseSizeExceededError):
            kind, message = RequestErrorKind.RESPONSE_SIZE_EXCEEDED, str(exc)
        elif isinstance(exc, IncompleteBodyError):
            kind, message = RequestErrorKind.INCOMPLETE_BODY, str(exc)
        elif isinstance(exc, InvalidRedirectError):
            kind, message = RequestErrorKind.INVALID_URL, str(exc)
        elif isinstance(exc, httpx.TimeoutException):
            kind, message = RequestErrorKind.TIMEOUT, f"Request timed out: {exc}"
        elif isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
            kind, message = RequestErrorKind.INVALID_URL, f"Invalid URL: {exc}"
        elif isinstance(exc, httpx.HTTPError) and _is_ssl_error(exc):
            kind, message = RequestErrorKind.SSL_ERROR, f"TLS failure: {exc}"
        elif isinstance(exc, httpx.ConnectError):
            kind = RequestErrorKind.NETWORK_FAILURE
            message = f"Connection failed: {exc}"
        elif isinstance(exc, httpx.HTTPError):
            kind, message = RequestErrorKind.NETWORK_FAILURE, f"Network failure: {exc}"
        else:
            kind, message = RequestErrorKind.FILE_ERROR, f"Download file error: {exc}"

        return RequestError(
            kind=kind,
            message=message or kind.value,
            url=url,
            redirect_count=count,
        )

    def _record(
        self,
        result: RequestResult,
        start_time_ns: int,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        """Record metrics and log the outcome of a request."""
        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000

        if isinstance(result, RequestError):
            if self._metrics is not None:
                self._metrics.record_duration(duration_ms)
                self._metrics.record_failure(result.kind)
            log.warning(
                "request_failed",
                error_kind=result.kind.value,
                error=result.message,
                redirect_count=result.redirect_count,
                duration_ms=round(duration_ms, 2),
            )
            return

        size = result.body_size
        if result.file_path is not None:
            size = self._file_size(result.file_path)
        if self._metrics is not None:
            self._metrics.record_duration(duration_ms)
            self._metrics.record_request(result.status_code, size)
        log.info(
            "request_complete",
            status_code=result.status_code,
            final_url=redact_url_credentials(result.final_url),
            redirect_count=result.redirect_count,
            bytes=size,
            streamed=result.file_path is not None,
            duration_ms=round(duration_ms, 2),
        )

    @staticmethod
    def _file_size(path: str) -> int:
        try:
            return Path(path).stat().st_size
        except OSError:
            return 0

    def _bind_log(
        self, url: str, options: RequestOptions
    ) -> structlog.stdlib.BoundLogger:
        return self._log.bind(
            url=redact_url_credentials(url),
            method=options.method.value,
            headers=redact_headers(dict(options.headers)),
        )

