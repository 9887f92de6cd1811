"""Unit tests for the command-line interface."""

import json
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import click
import pytest
import structlog
from click.testing import CliRunner

from remote_request.cli.main import _parse_headers, cli
from remote_request.client.config import ClientConfig
from remote_request.client.http_client import HttpRequestClient
from tests.helpers.redirection import (
    FILE_SIZE,
    FILE_URL,
    REDIRECTION_URL,
    redirection_transport,
)


def _mock_client(config: ClientConfig) -> HttpRequestClient:
    return HttpRequestClient(config=config, transport=redirection_transport())


@pytest.fixture(autouse=True)
def mocked_network() -> Iterator[None]:
    """Route CLI requests to the in-process redirection endpoint."""
    with patch("remote_request.cli.main._build_client", side_effect=_mock_client):
        yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def runner(monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    """CLI runner with quiet logging."""
    monkeypatch.setenv("REMOTE_REQUEST_LOG_LEVEL", "ERROR")
    return CliRunner()


class TestFetchCommand:
    """Tests for the fetch command."""

    def test_follows_redirects(self, runner: CliRunner) -> None:
        """The final body is printed."""
        result = runner.invoke(cli, ["fetch", f"{REDIRECTION_URL}?rt=3"])

        assert result.exit_code == 0
        assert "PASS" in result.output

    def test_include_headers(self, runner: CliRunner) -> None:
        """--include prints the status line and lowercased headers."""
        result = runner.invoke(
            cli, ["fetch", "--include", "-X", "head", f"{REDIRECTION_URL}?rt=1"]
        )

        assert result.exit_code == 0
        assert result.output.startswith("302 Found")
        assert "location: ?code=302&rt=0" in result.output

    def test_headers_sent(self, runner: CliRunner) -> None:
        """-H values reach the server."""
        result = runner.invoke(
            cli,
            [
                "fetch",
                "-H",
                "test1: test",
                "-H",
                "test3:",
                f"{REDIRECTION_URL}?header-check",
            ],
        )

        assert result.exit_code == 0
        assert "test1:test" in result.output
        assert "test3:" in result.output

    def test_redirect_limit_failure(self, runner: CliRunner) -> None:
        """A failed request exits with status 1."""
        result = runner.invoke(
            cli, ["fetch", "--redirect-limit", "1", f"{REDIRECTION_URL}?rt=4"]
        )

        assert result.exit_code == 1
        assert "REDIRECT_LIMIT_EXCEEDED" in result.output

    def test_download_to_output(self, runner: CliRunner, tmp_path: Path) -> None:
        """--output streams the body to the given file."""
        destination = tmp_path / "photo.jpg"

        result = runner.invoke(cli, ["fetch", "-o", str(destination), FILE_URL])

        assert result.exit_code == 0
        assert str(destination) in result.output
        assert destination.stat().st_size == FILE_SIZE

    def test_invalid_header(self, runner: CliRunner) -> None:
        """A header without a colon is a usage error."""
        result = runner.invoke(cli, ["fetch", "-H", "broken", REDIRECTION_URL])

        assert result.exit_code == 2

    def test_repeated_header_name(self, runner: CliRunner) -> None:
        """Names repeated in another case are a usage error."""
        result = runner.invoke(
            cli, ["fetch", "-H", "Foo: a", "-H", "foo: b", REDIRECTION_URL]
        )

        assert result.exit_code == 2
        assert "given more than once" in result.output
        assert isinstance(result.exception, SystemExit)

    def test_non_ascii_header_value(self, runner: CliRunner) -> None:
        """A header value httpx cannot encode is a usage error."""
        result = runner.invoke(
            cli, ["fetch", "-H", "X-Name: caf\u00e9", REDIRECTION_URL]
        )

        assert result.exit_code == 2
        assert "printable ASCII" in result.output


class TestShowConfig:
    """Tests for the show-config command."""

    def test_prints_environment_config(
        self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Environment settings appear in the printed config."""
        monkeypatch.setenv("REMOTE_REQUEST_REDIRECT_LIMIT", "7")

        result = runner.invoke(cli, ["show-config"])

        assert result.exit_code == 0
        config = json.loads(result.output)
        assert config["default_redirect_limit"] == 7
        assert config["transport"]["http1"] is True


class TestParseHeaders:
    """Tests for --header parsing."""

    def test_parses_and_strips(self) -> None:
        """Names and values are stripped; empty values are kept."""
        assert _parse_headers(("X-A:  1 ", "X-B:")) == {"X-A": "1", "X-B": ""}

    def test_value_with_colon(self) -> None:
        """Only the first colon separates name and value."""
        assert _parse_headers(("Host: a:80",)) == {"Host": "a:80"}

    def test_missing_colon(self) -> None:
        """A value without a colon is rejected."""
        with pytest.raises(click.BadParameter):
            _parse_headers(("broken",))

    def test_duplicate_name_any_case(self) -> None:
        """Names are compared case-insensitively."""
        with pytest.raises(click.BadParameter, match="X-Token"):
            _parse_headers(("x-token: a", "X-Token: b"))
