"""Command-line interface."""

from remote_request.cli.main import cli


__all__ = ["cli"]
