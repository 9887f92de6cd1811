"""Metrics collection for the HTTP request client."""

import threading
from dataclasses import dataclass, field

from remote_request.client.models import RequestErrorKind


@dataclass
class RequestMetrics:
    """Metrics for HTTP request operations.

    Owned by whoever passes it to a client; the client never creates a
    shared instance. Counters are guarded by a lock so one instance can be
    shared across threads.
    """

    http_requests_total: dict[int, int] = field(default_factory=dict)
    http_redirects_total: int = 0
    http_retry_total: int = 0
    http_failures_total: dict[str, int] = field(default_factory=dict)
    http_bytes_total: int = 0
    http_duration_ms_total: float = 0.0
    http_request_count: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def record_request(self, status_code: int, bytes_received: int) -> None:
        """Record a completed request.

        Args:
            status_code: Final HTTP status code.
            bytes_received: Number of body bytes received.
        """
        with self._lock:
            self.http_requests_total[status_code] = (
                self.http_requests_total.get(status_code, 0) + 1
            )
            self.http_bytes_total += bytes_received
            self.http_request_count += 1

    def record_redirect(self) -> None:
        """Record a followed redirect."""
        with self._lock:
            self.http_redirects_total += 1

    def record_retry(self) -> None:
        """Record a retry attempt."""
        with self._lock:
            self.http_retry_total += 1

    def record_failure(self, kind: RequestErrorKind) -> None:
        """Record a request failure.

        Args:
            kind: Classification of the failure.
        """
        with self._lock:
            key = kind.value
            self.http_failures_total[key] = self.http_failures_total.get(key, 0) + 1

    def record_duration(self, duration_ms: float) -> None:
        """Record request duration.

        Args:
            duration_ms: Duration in milliseconds.
        """
        with self._lock:
            self.http_duration_ms_total += duration_ms

    def to_dict(self) -> dict[str, int | float | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        with self._lock:
            return {
                "http_requests_total": dict(self.http_requests_total),
                "http_redirects_total": self.http_redirects_total,
                "http_retry_total": self.http_retry_total,
                "http_failures_total": dict(self.http_failures_total),
                "http_bytes_total": self.http_bytes_total,
                "http_duration_ms_total": self.http_duration_ms_total,
                "http_request_count": self.http_request_count,
            }

    @property
    def avg_duration_ms(self) -> float:
        """Calculate average request duration.

        Returns:
            Average duration in milliseconds.
        """
        if self.http_request_count == 0:
            return 0.0
        return self.http_duration_ms_total / self.http_request_count
