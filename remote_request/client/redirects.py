"""Redirect-following decisions.

The rules for when a response is followed, returned, or reported as a
redirect-limit error live here, independent of the transport, so the sync
and async clients apply exactly the same policy.

HEAD policy: a HEAD request with no explicit redirect limit gets a budget of
zero and returns the redirect response as-is. Given an explicit positive
limit, HEAD follows redirects like any other method.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

import httpx

from remote_request.client.constants import (
    CROSS_ORIGIN_STRIPPED_HEADERS,
    HTTP_STATUS_FOUND,
    HTTP_STATUS_MOVED_PERMANENTLY,
    HTTP_STATUS_SEE_OTHER,
    REDIRECT_STATUSES,
)
from remote_request.client.models import Method


# Headers that describe a request body and go away with it
_BODY_HEADERS = frozenset({"content-length", "content-type", "transfer-encoding"})

_ALLOWED_SCHEMES = frozenset({"http", "https"})


class InvalidRedirectError(Exception):
    """Raised when a Location header cannot be turned into a request URL."""

    def __init__(self, location: str, reason: str) -> None:
        """Initialize the error.

        Args:
            location: The offending Location header value.
            reason: Why it was rejected.
        """
        self.location = location
        super().__init__(f"Invalid redirect location '{location}': {reason}")


class RedirectAction(str, Enum):
    """What to do with a response in a redirect chain."""

    RETURN = "RETURN"
    FOLLOW = "FOLLOW"
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"


@dataclass(frozen=True)
class Hop:
    """One request in a redirect chain."""

    url: httpx.URL
    method: Method
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None


@dataclass(frozen=True)
class RedirectDecision:
    """Outcome of inspecting one response."""

    action: RedirectAction
    next_hop: Hop | None = None


def resolve_redirect_limit(
    method: Method,
    redirect_limit: int | None,
    default_limit: int,
) -> int:
    """Resolve the redirect budget for a request.

    Args:
        method: Request method.
        redirect_limit: Limit requested by the caller, or None.
        default_limit: Client default for methods other than HEAD.

    Returns:
        Number of redirects the request may follow.
    """
    if redirect_limit is not None:
        return redirect_limit
    if method is Method.HEAD:
        return 0
    return default_limit


def is_redirect_status(status_code: int) -> bool:
    """Check if a status code is one the client follows."""
    return status_code in REDIRECT_STATUSES


def _origin(url: httpx.URL) -> tuple[str, str, int | None]:
    port = url.port
    if port is None:
        port = 443 if url.scheme == "https" else 80
    return (url.scheme, url.host, port)


class RedirectTracker:
    """Tracks the redirect budget across one logical request.

    Create one per request (and per retry attempt); it holds the hop
    currently being requested and the number of redirects followed so far.
    """

    def __init__(self, first_hop: Hop, redirect_limit: int) -> None:
        """Initialize the tracker.

        Args:
            first_hop: The initial request.
            redirect_limit: Resolved redirect budget.
        """
        self._initial_limit = redirect_limit
        self._remaining = redirect_limit
        self._redirect_count = 0
        self._current = first_hop

    @property
    def current(self) -> Hop:
        """The hop to request next."""
        return self._current

    @property
    def redirect_count(self) -> int:
        """Redirects followed so far."""
        return self._redirect_count

    @property
    def redirect_limit(self) -> int:
        """The budget this tracker started with."""
        return self._initial_limit

    def decide(self, status_code: int, location: str | None) -> RedirectDecision:
        """Decide what to do with the response to the current hop.

        Args:
            status_code: Response status code.
            location: Location header value, if any.

        Returns:
            The decision; on FOLLOW the tracker has already advanced.

        Raises:
            InvalidRedirectError: If the Location cannot be followed.
        """
        if not is_redirect_status(status_code) or not (location and location.strip()):
            return RedirectDecision(action=RedirectAction.RETURN)

        if self._remaining == 0:
            # A zero budget asked for up front means "report, don't follow".
            if self._initial_limit == 0:
                return RedirectDecision(action=RedirectAction.RETURN)
            return RedirectDecision(action=RedirectAction.LIMIT_EXCEEDED)

        next_hop = self._build_next_hop(status_code, location.strip())
        self._remaining -= 1
        self._redirect_count += 1
        self._current = next_hop
        return RedirectDecision(action=RedirectAction.FOLLOW, next_hop=next_hop)

    def _build_next_hop(self, status_code: int, location: str) -> Hop:
        current = self._current
        try:
            target = current.url.join(location)
        except httpx.InvalidURL as e:
            raise InvalidRedirectError(location, str(e)) from e

        if target.scheme not in _ALLOWED_SCHEMES or not target.host:
            raise InvalidRedirectError(location, "not an absolute http(s) URL")

        hop = replace(current, url=target, headers=dict(current.headers))

        if self._switches_to_get(status_code, current.method):
            hop = replace(
                hop,
                method=Method.GET,
                body=None,
                headers={
                    key: value
                    for key, value in hop.headers.items()
                    if key.lower() not in _BODY_HEADERS
                },
            )

        if _origin(target) != _origin(current.url):
            hop = replace(
                hop,
                headers={
                    key: value
                    for key, value in hop.headers.items()
                    if key.lower() not in CROSS_ORIGIN_STRIPPED_HEADERS
                },
            )

        return hop

    @staticmethod
    def _switches_to_get(status_code: int, method: Method) -> bool:
        if status_code == HTTP_STATUS_SEE_OTHER:
            return method is not Method.HEAD and method is not Method.GET
        if status_code in (HTTP_STATUS_MOVED_PERMANENTLY, HTTP_STATUS_FOUND):
            return method is Method.POST
        return False
