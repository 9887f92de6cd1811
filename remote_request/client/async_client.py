"""Asynchronous HTTP request client using httpx.AsyncClient."""

import asyncio
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


class AsyncHttpRequestClient(BaseRequestClient):
    """Async counterpart of HttpRequestClient with the same contract.

    Safe to share between concurrent tasks: each call opens its own
    AsyncClient. Download files are written with blocking calls, one
    chunk at a time, on the event loop thread.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        metrics: RequestMetrics | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config=config, metrics=metrics)
        self._transport = transport

    async def request(
        self,
        url: str,
        options: RequestOptions | None = None,
    ) -> RequestResult:
        """Request a URL, following redirects as the options allow.

        Args:
            url: Absolute http(s) URL.
            options: Request options (defaults to a plain GET).

        Returns:
            Response for the last hop, or RequestError.
        """
        options = options or RequestOptions()
        start_time_ns = time.perf_counter_ns()
        log = self._bind_log(url, options)

        policy = self._config.retry_policy
        attempt = 0

        while True:
            result = await self._execute_chain(url, options, log.bind(attempt=attempt))

            if isinstance(result, Response) or not policy.should_retry(result, attempt):
                break

            delay_ms = policy.get_delay_ms(attempt)
            attempt += 1
            if self._metrics is not None:
                self._metrics.record_retry()
            log.debug("retry_attempt", attempt=attempt, delay_ms=delay_ms)
            await asyncio.sleep(delay_ms / 1000.0)

        self._record(result, start_time_ns, log)
        return result

    def _new_client(self, options: RequestOptions) -> httpx.AsyncClient:
        transport = self._transport or httpx.AsyncHTTPTransport(
            **self._transport_kwargs()
        )
        return httpx.AsyncClient(
            transport=transport,
            timeout=self._timeout_for(options),
            follow_redirects=False,
        )

    async def _execute_chain(
        self,
        url: str,
        options: RequestOptions,
        log: structlog.stdlib.BoundLogger,
    ) -> RequestResult:
        prepared = self._prepare(url, options)
        if isinstance(prepared, RequestError):
            return prepared
        tracker = prepared

        try:
            async with self._new_client(options) as client:
                while True:
                    request = self._build_request(client, tracker.current)
                    response = await client.send(request, stream=True)
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

                        return await self._read_final(response, tracker, options)
                    finally:
                        await response.aclose()
        except HANDLED_EXCEPTIONS as e:
            return self._classify_exception(e, tracker)

    async def _read_final(
        self,
        response: httpx.Response,
        tracker: RedirectTracker,
        options: RequestOptions,
    ) -> Response:
        method = tracker.current.method
        max_bytes = self._max_size_for(options)
        self._check_declared_size(response, method, max_bytes)
        expected = self._expected_length(response, method)

        if options.stream_to_file:
            sink = self._open_sink(tracker, options)
            try:
                await self._drain(response, sink, expected)
                path = sink.finish(expected)
            except BaseException:
                sink.discard()
                raise
            return self._build_response(response, tracker, file_path=str(path))

        buffer = BodyBuffer(max_bytes)
        await self._drain(response, buffer, expected)
        return self._build_response(response, tracker, body=buffer.getvalue())

    @staticmethod
    async def _drain(
        response: httpx.Response,
        sink: BodyBuffer | DownloadSink,
        expected: int | None,
    ) -> None:
        try:
            async for chunk in response.aiter_bytes(chunk_size=DEFAULT_CHUNK_SIZE):
                sink.write(chunk)
        except httpx.RemoteProtocolError as e:
            raise IncompleteBodyError(expected, sink.bytes_written) from e
