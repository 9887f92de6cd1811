"""Blocking HTTP request client with redirect following and streaming downloads."""

import time

import httpx
import structlog

from remote_request.client.base import HANDLED_EXCEPTIONS, BaseRequestClient
from remote_request.client.config import ClientConfig
from remote_request.client.constants import DEFAULT_CHUNK_SIZE
from remote_request.client.metrics import RequestMetrics
from remote_request.client.models import (
    IncompleteBodyError,
    RequestError,
    RequestOptions,
    RequestResult,
    Response,
)
from remote_request.client.redirects import RedirectAction, RedirectTracker
from remote_request.client.stream import BodyBuffer, DownloadSink


class HttpRequestClient(BaseRequestClient):
    """Blocking HTTP client returning a Response or a RequestError.

    Provides:
    - Redirect following within a per-request budget
    - Request headers passed through as given
    - Lowercased response header capture
    - Streaming of the final body to a file
    - Optional retries for timeouts and network failures

    The client holds only immutable configuration; every call opens its
    own connection pool, so one instance may be used from many threads.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        metrics: RequestMetrics | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration (defaults if None).
            metrics: Optional metrics sink.
            transport: Transport to use instead of one built from
                config.transport (mainly for tests).
        """
        super().__init__(config=config, metrics=metrics)
        self._transport = transport

    def request(
        self,
        url: str,
        options: RequestOptions | None = None,
    ) -> RequestResult:
        """Request a URL, following redirects as the options allow.

        Args:
            url: Absolute http(s) URL.
            options: Request options (defaults to a plain GET).

        Returns:
            Response for the last hop, or RequestError. Never raises for
            network conditions.
        """
        options = options or RequestOptions()
        start_time_ns = time.perf_counter_ns()
        log = self._bind_log(url, options)

        result = self._execute_with_retry(url, options, log)

        self._record(result, start_time_ns, log)
        return result

    def _execute_with_retry(
        self,
        url: str,
        options: RequestOptions,
        log: structlog.stdlib.BoundLogger,
    ) -> RequestResult:
        """Execute the request chain, retrying transient failures.

        Args:
            url: Request URL.
            options: Request options.
            log: Bound logger.

        Returns:
            Result of the last attempt.
        """
        policy = self._config.retry_policy
        attempt = 0

        while True:
            result = self._execute_chain(url, options, log.bind(attempt=attempt))

            if isinstance(result, Response) or not policy.should_retry(result, attempt):
                return result

            delay_ms = policy.get_delay_ms(attempt)
            attempt += 1
            if self._metrics is not None:
                self._metrics.record_retry()
            log.debug(
                "retry_attempt",
                attempt=attempt,
                delay_ms=delay_ms,
                max_retries=policy.max_retries,
            )
            time.sleep(delay_ms / 1000.0)

    def _new_client(self, options: RequestOptions) -> httpx.Client:
        transport = self._transport or httpx.HTTPTransport(**self._transport_kwargs())
        return httpx.Client(
            transport=transport,
            timeout=self._timeout_for(options),
            follow_redirects=False,
        )

    def _execute_chain(
        self,
        url: str,
        options: RequestOptions,
        log: structlog.stdlib.BoundLogger,
    ) -> RequestResult:
        """Walk one redirect chain to its final response.

        Args:
            url: Request URL.
            options: Request options.
            log: Bound logger.

        Returns:
            Response or RequestError.
        """
        prepared = self._prepare(url, options)
        if isinstance(prepared, RequestError):
            return prepared
        tracker = prepared

        try:
            with self._new_client(options) as client:
                while True:
                    request = self._build_request(client, tracker.current)
                    response = client.send(request, stream=True)
                    try:
                        invalid = self._invalid_status(response, tracker)
                        if invalid is not None:
                            return invalid

                        decision = tracker.decide(
                            response.status_code, response.headers.get("location")
                        )
                        if decision.action is RedirectAction.FOLLOW:
                            self._log_redirect(log, response, tracker)
                            continue
                        if decision.action is RedirectAction.LIMIT_EXCEEDED:
                            return self._limit_exceeded(response, tracker)

                        return self._read_final(response, tracker, options)
                    finally:
                        response.close()
        except HANDLED_EXCEPTIONS as e:
            return self._classify_exception(e, tracker)

    def _read_final(
        self,
        response: httpx.Response,
        tracker: RedirectTracker,
        options: RequestOptions,
    ) -> Response:
        """Read the body of the final response into memory or a file.

        Raises:
            ResponseSizeExceededError: If the body passes the size limit.
            IncompleteBodyError: If the body ends before Content-Length
                says it should, or the connection closes mid-body.
            OSError: If the download file cannot be written.
        """
        method = tracker.current.method
        max_bytes = self._max_size_for(options)
        self._check_declared_size(response, method, max_bytes)
        expected = self._expected_length(response, method)

        if options.stream_to_file:
            sink = self._open_sink(tracker, options)
            try:
                self._drain(response, sink, expected)
                path = sink.finish(expected)
            except BaseException:
                sink.discard()
                raise
            return self._build_response(response, tracker, file_path=str(path))

        buffer = BodyBuffer(max_bytes)
        self._drain(response, buffer, expected)
        return self._build_response(response, tracker, body=buffer.getvalue())

    @staticmethod
    def _drain(
        response: httpx.Response,
        sink: BodyBuffer | DownloadSink,
        expected: int | None,
    ) -> None:
        try:
            for chunk in response.iter_bytes(chunk_size=DEFAULT_CHUNK_SIZE):
                sink.write(chunk)
        except httpx.RemoteProtocolError as e:
            raise IncompleteBodyError(expected, sink.bytes_written) from e
