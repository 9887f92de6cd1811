"""Body sinks: in-memory buffering and streaming downloads to disk."""

import os
import re
import tempfile
from io import BytesIO
from pathlib import Path
from typing import BinaryIO
from urllib.parse import unquote, urlsplit

import structlog

from remote_request.client.constants import DOWNLOAD_PREFIX
from remote_request.client.models import (
    IncompleteBodyError,
    ResponseSizeExceededError,
)


logger = structlog.get_logger()

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_MAX_SUFFIX_LENGTH = 64


def _check_limit(total: int, max_bytes: int | None) -> None:
    if max_bytes is not None and total > max_bytes:
        msg = (
            f"Response size exceeded limit of {max_bytes} bytes "
            f"(read {total} bytes)"
        )
        raise ResponseSizeExceededError(msg)


def download_suffix(url: str) -> str:
    """Derive a filesystem-safe filename suffix from a URL's last path segment.

    Args:
        url: Request URL.

    Returns:
        Suffix such as ``-photo.jpg``, or an empty string.
    """
    basename = unquote(urlsplit(url).path.rsplit("/", 1)[-1])
    safe = _UNSAFE_FILENAME_CHARS.sub("_", basename).strip("._")
    if not safe:
        return ""
    return "-" + safe[-_MAX_SUFFIX_LENGTH:]


class BodyBuffer:
    """Collects a response body in memory with an optional size limit."""

    def __init__(self, max_bytes: int | None = None) -> None:
        self._buffer = BytesIO()
        self._max_bytes = max_bytes
        self._total = 0

    @property
    def bytes_written(self) -> int:
        return self._total

    def write(self, chunk: bytes) -> None:
        """Append a chunk.

        Raises:
            ResponseSizeExceededError: If the limit is passed.
        """
        self._total += len(chunk)
        _check_limit(self._total, self._max_bytes)
        self._buffer.write(chunk)

    def getvalue(self) -> bytes:
        return self._buffer.getvalue()


class DownloadSink:
    """Writes a response body to a file as it arrives.

    The file is either the caller's destination path or a uniquely named
    file in a temp directory. A sink that is discarded removes its file;
    a finished sink leaves it for the caller.
    """

    def __init__(self, path: Path, handle: BinaryIO, max_bytes: int | None) -> None:
        """Initialize the sink around an already opened file.

        Args:
            path: Path of the open file.
            handle: Binary file handle opened for writing.
            max_bytes: Optional limit on bytes written.
        """
        self._path = path
        self._handle = handle
        self._max_bytes = max_bytes
        self._total = 0
        self._log = logger.bind(component="download", path=str(path))

    @classmethod
    def open(
        cls,
        url: str,
        destination_path: str | None = None,
        temp_dir: Path | None = None,
        max_bytes: int | None = None,
    ) -> "DownloadSink":
        """Open a sink for a download.

        Args:
            url: URL being downloaded (used to name auto-generated files).
            destination_path: Explicit output path, or None to auto-generate.
            temp_dir: Directory for auto-generated files (system default if None).
            max_bytes: Optional limit on bytes written.

        Returns:
            An open DownloadSink.

        Raises:
            OSError: If the file cannot be created.
        """
        if destination_path is not None:
            path = Path(destination_path)
            handle: BinaryIO = path.open("wb")
        else:
            fd, name = tempfile.mkstemp(
                prefix=DOWNLOAD_PREFIX,
                suffix=download_suffix(url),
                dir=temp_dir,
            )
            path = Path(name)
            handle = os.fdopen(fd, "wb")
        return cls(path, handle, max_bytes)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def bytes_written(self) -> int:
        return self._total

    def write(self, chunk: bytes) -> None:
        """Write a chunk to disk.

        Raises:
            ResponseSizeExceededError: If the limit is passed.
        """
        self._total += len(chunk)
        _check_limit(self._total, self._max_bytes)
        self._handle.write(chunk)

    def finish(self, expected_length: int | None) -> Path:
        """Close the file and verify its length.

        Args:
            expected_length: Content-Length of the response, if advertised.

        Returns:
            Path of the completed download.

        Raises:
            IncompleteBodyError: If the size on disk differs from
                expected_length. The caller discards the sink.
        """
        self._handle.close()
        size = self._path.stat().st_size
        if expected_length is not None and size != expected_length:
            raise IncompleteBodyError(expected=expected_length, received=size)
        return self._path

    def discard(self) -> None:
        """Close and delete the file."""
        if not self._handle.closed:
            self._handle.close()
        self._path.unlink(missing_ok=True)
        self._log.info("download_removed", bytes=self._total)


def parse_content_length(value: str | None) -> int | None:
    """Parse a Content-Length header value.

    Returns:
        The length, or None if absent or malformed.
    """
    if value is None:
        return None
    try:
        length = int(value.strip())
    except ValueError:
        return None
    return length if length >= 0 else None
