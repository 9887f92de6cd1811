"""CLI commands for issuing requests from the shell."""

import json
import logging
import sys
import uuid
from pathlib import Path

import click
import structlog
from pydantic import ValidationError

from remote_request.client.config import ClientConfig
from remote_request.client.http_client import HttpRequestClient
from remote_request.client.models import (
    Method,
    RequestError,
    RequestOptions,
    Response,
)
from remote_request.client.redact import redact_url_credentials
from remote_request.observability.logging import (
    bind_request_context,
    configure_logging,
)
from remote_request.settings import get_settings


logger = structlog.get_logger()


def _parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    """Parse ``Name: value`` strings given with --header.

    Raises:
        click.BadParameter: If a value has no colon or repeats a name.
    """
    headers: dict[str, str] = {}
    seen: set[str] = set()
    for value in values:
        name, sep, header_value = value.partition(":")
        name = name.strip()
        if not sep or not name:
            msg = f"Expected 'Name: value', got '{value}'"
            raise click.BadParameter(msg, param_hint="--header")
        if name.lower() in seen:
            msg = f"Header '{name}' given more than once"
            raise click.BadParameter(msg, param_hint="--header")
        seen.add(name.lower())
        headers[name] = header_value.strip()
    return headers


def _build_client(config: ClientConfig) -> HttpRequestClient:
    return HttpRequestClient(config=config)


def _echo_response(response: Response, include_headers: bool) -> None:
    if include_headers:
        click.echo(f"{response.status_code} {response.reason_phrase}".rstrip())
        for name, value in response.headers.items():
            click.echo(f"{name}: {value}")
        click.echo("")
    if response.file_path is not None:
        click.echo(response.file_path)
    elif response.body:
        click.echo(response.body, nl=False)


def _echo_error(error: RequestError) -> None:
    click.echo(f"Error [{error.kind.value}]: {error.message}", err=True)
    if error.redirect_count:
        click.echo(f"  after {error.redirect_count} redirect(s)", err=True)


@click.group()
@click.version_option(version="1.0.0")
def cli() -> None:
    """HTTP request client CLI."""


@cli.command()
@click.argument("url")
@click.option(
    "--method",
    "-X",
    type=click.Choice([method.value for method in Method], case_sensitive=False),
    default=Method.GET.value,
    help="HTTP method (default: GET).",
)
@click.option(
    "--header",
    "-H",
    "header_values",
    multiple=True,
    help="Request header as 'Name: value'. May be repeated.",
)
@click.option(
    "--redirect-limit",
    type=click.IntRange(min=0),
    default=None,
    help="Redirects to follow (default: 5, or 0 for HEAD).",
)
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0.0, min_open=True),
    default=None,
    help="Timeout in seconds.",
)
@click.option(
    "--data",
    "-d",
    "body",
    default=None,
    help="Request body.",
)
@click.option(
    "--download",
    is_flag=True,
    help="Stream the body to a file and print its path.",
)
@click.option(
    "--output",
    "-o",
    "destination_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the body to this file (implies --download).",
)
@click.option(
    "--include",
    "-i",
    "include_headers",
    is_flag=True,
    help="Print the status line and response headers.",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=None,
    help="Use JSON format for logs (default: from settings).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
def fetch(  # noqa: PLR0913
    url: str,
    method: str,
    header_values: tuple[str, ...],
    redirect_limit: int | None,
    timeout_seconds: float | None,
    body: str | None,
    download: bool,
    destination_path: Path | None,
    include_headers: bool,
    json_logs: bool | None,
    verbose: bool,
) -> None:
    """Request URL and print the response.

    Exits with status 1 when the request fails.
    """
    settings = get_settings()
    level: int | str = logging.DEBUG if verbose else settings.log_level
    configure_logging(
        level=level,
        json_format=settings.log_json if json_logs is None else json_logs,
    )
    request_id = str(uuid.uuid4())
    bind_request_context(request_id)
    log = logger.bind(component="cli", command="fetch")
    log.debug("fetch_started", url=redact_url_credentials(url))

    try:
        options = RequestOptions(
            method=Method(method.upper()),
            headers=_parse_headers(header_values),
            redirect_limit=redirect_limit,
            timeout_seconds=timeout_seconds,
            body=body,
            stream_to_file=download or destination_path is not None,
            destination_path=str(destination_path) if destination_path else None,
        )
    except ValidationError as e:
        messages = "; ".join(error["msg"] for error in e.errors())
        raise click.UsageError(messages) from e

    client = _build_client(ClientConfig.from_settings(settings))
    result = client.request(url, options)

    if isinstance(result, RequestError):
        _echo_error(result)
        sys.exit(1)

    _echo_response(result, include_headers)


@cli.command("show-config")
def show_config() -> None:
    """Print the client configuration resolved from the environment."""
    config = ClientConfig.from_settings(get_settings())
    click.echo(json.dumps(config.model_dump(mode="json"), indent=2))


if __name__ == "__main__":
    cli()
