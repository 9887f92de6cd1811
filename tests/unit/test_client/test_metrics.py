"""Unit tests for request metrics."""

from concurrent.futures import ThreadPoolExecutor

from remote_request.client.metrics import RequestMetrics
from remote_request.client.models import RequestErrorKind


class TestRequestMetrics:
    """Tests for RequestMetrics counters."""

    def test_record_request(self) -> None:
        """Requests are counted per status code."""
        metrics = RequestMetrics()

        metrics.record_request(200, 100)
        metrics.record_request(200, 50)
        metrics.record_request(302, 0)

        assert metrics.http_requests_total == {200: 2, 302: 1}
        assert metrics.http_bytes_total == 150
        assert metrics.http_request_count == 3

    def test_record_failure(self) -> None:
        """Failures are counted per kind."""
        metrics = RequestMetrics()

        metrics.record_failure(RequestErrorKind.TIMEOUT)
        metrics.record_failure(RequestErrorKind.TIMEOUT)

        assert metrics.http_failures_total == {"TIMEOUT": 2}

    def test_avg_duration(self) -> None:
        """Average duration divides by completed requests."""
        metrics = RequestMetrics()
        assert metrics.avg_duration_ms == 0.0

        metrics.record_request(200, 0)
        metrics.record_request(200, 0)
        metrics.record_duration(30.0)
        metrics.record_duration(10.0)

        assert metrics.avg_duration_ms == 20.0

    def test_to_dict_is_a_copy(self) -> None:
        """to_dict snapshots the counters."""
        metrics = RequestMetrics()
        metrics.record_redirect()
        metrics.record_retry()

        snapshot = metrics.to_dict()
        metrics.record_redirect()

        assert snapshot["http_redirects_total"] == 1
        assert snapshot["http_retry_total"] == 1
        assert metrics.http_redirects_total == 2

    def test_thread_safe_counts(self) -> None:
        """Concurrent updates are not lost."""
        metrics = RequestMetrics()

        with ThreadPoolExecutor(max_workers=8) as pool:
            for _ in range(400):
                pool.submit(metrics.record_request, 200, 1)

        assert metrics.http_requests_total == {200: 400}
        assert metrics.http_bytes_total == 400
