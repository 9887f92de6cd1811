"""Unit tests for the one-shot request helpers and result accessors."""

from unittest.mock import MagicMock, patch

import pytest

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
from remote_request.client.config import ClientConfig
from remote_request.client.models import (
    Method,
    RequestError,
    RequestErrorKind,
    RequestOptions,
    Response,
)


@pytest.fixture
def response() -> Response:
    """A completed response."""
    return Response(
        status_code=200,
        reason_phrase="OK",
        final_url="http://example.com/",
        headers={"content-type": "text/plain", "x-test": "1"},
        body=b"PASS",
    )


@pytest.fixture
def error() -> RequestError:
    """A failed request."""
    return RequestError(
        kind=RequestErrorKind.NETWORK_FAILURE,
        message="Connection refused",
        url="http://example.com/",
    )


class TestRetrieveAccessors:
    """Tests for the retrieve_* accessors."""

    def test_response_values(self, response: Response) -> None:
        """Accessors read the response fields."""
        assert retrieve_status_code(response) == 200
        assert retrieve_reason_phrase(response) == "OK"
        assert retrieve_headers(response) == {
            "content-type": "text/plain",
            "x-test": "1",
        }
        assert retrieve_header(response, "X-Test") == "1"
        assert retrieve_header(response, "missing") == ""
        assert retrieve_body(response) == b"PASS"

    def test_error_values_are_empty(self, error: RequestError) -> None:
        """Accessors return empty values for an error."""
        assert retrieve_status_code(error) == 0
        assert retrieve_reason_phrase(error) == ""
        assert retrieve_headers(error) == {}
        assert retrieve_header(error, "content-type") == ""
        assert retrieve_body(error) == b""

    def test_headers_copy(self, response: Response) -> None:
        """retrieve_headers returns a copy."""
        headers = retrieve_headers(response)
        headers["x-test"] = "changed"

        assert response.headers["x-test"] == "1"


class TestRequestHelpers:
    """Tests for remote_request and the per-method helpers."""

    @patch("remote_request.client.api.HttpRequestClient")
    def test_remote_request_uses_config(
        self, mock_client_class: MagicMock, response: Response
    ) -> None:
        """remote_request builds a client from the given config."""
        mock_client_class.return_value.request.return_value = response
        config = ClientConfig(default_redirect_limit=2)
        options = RequestOptions(redirect_limit=1)

        result = remote_request("http://example.com/", options, config=config)

        assert result is response
        mock_client_class.assert_called_once_with(config=config)
        mock_client_class.return_value.request.assert_called_once_with(
            "http://example.com/", options
        )

    @pytest.mark.parametrize(
        ("helper", "method"),
        [(remote_get, Method.GET), (remote_head, Method.HEAD)],
    )
    @patch("remote_request.client.api.HttpRequestClient")
    def test_method_helpers(
        self,
        mock_client_class: MagicMock,
        helper: object,
        method: Method,
        response: Response,
    ) -> None:
        """Keyword arguments become request options."""
        mock_client_class.return_value.request.return_value = response

        helper("http://example.com/", headers={"X-Test": "1"})  # type: ignore[operator]

        _, options = mock_client_class.return_value.request.call_args.args
        assert options.method is method
        assert options.headers == {"X-Test": "1"}
        assert options.redirect_limit is None

    @patch("remote_request.client.api.HttpRequestClient")
    def test_remote_post_sends_body(
        self, mock_client_class: MagicMock, response: Response
    ) -> None:
        """remote_post passes the body through."""
        mock_client_class.return_value.request.return_value = response

        remote_post("http://example.com/", b"payload", redirect_limit=3)

        _, options = mock_client_class.return_value.request.call_args.args
        assert options.method is Method.POST
        assert options.body == b"payload"
        assert options.redirect_limit == 3

    def test_unknown_option_rejected(self) -> None:
        """Misspelled options fail validation before any request."""
        with pytest.raises(ValueError):
            remote_get("http://example.com/", redirection=2)
