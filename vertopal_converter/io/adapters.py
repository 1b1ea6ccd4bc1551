"""Local file and in-memory adapters for conversion inputs and outputs.

WHY: The workflow talks to sources and destinations only through the
Readable / Writable protocols. These adapters cover the two cases a
Python caller actually has: a path on disk, or bytes already in memory.

HOW: FileInput / FileOutput wrap a path and open it in binary mode when
asked. BytesInput wraps a bytes value in io.BytesIO. BytesOutput keeps
a bytearray that grows as chunks are written.

RULES:
- A missing input file raises VertopalError(INPUT_NOT_FOUND) at open()
- Any OSError while opening an output raises VertopalError(OUTPUT_WRITE)
- FileOutput.path is assignable (the workflow may swap in the server's
  filename before downloading)
- FileOutput creates missing parent directories
"""

from __future__ import annotations

import io
import logging
import mimetypes
from pathlib import Path
from typing import IO, Optional, Union

from vertopal_converter.api.errors import ErrorKind, VertopalError
from vertopal_converter.io.protocols import DEFAULT_CONTENT_TYPE, DEFAULT_FILENAME

logger = logging.getLogger(__name__)

PathArg = Union[str, Path]


class FileInput:
    """Read a conversion input from the local file system."""

    def __init__(
        self,
        path: PathArg,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> None:
        self.path = Path(path)
        self.filename = filename or self.path.name or DEFAULT_FILENAME
        self.content_type = (
            content_type
            or mimetypes.guess_type(self.filename)[0]
            or DEFAULT_CONTENT_TYPE
        )

    def open(self) -> IO[bytes]:
        if not self.path.is_file():
            raise VertopalError(
                ErrorKind.INPUT_NOT_FOUND,
                "Input file not found: {}".format(self.path),
            )
        logger.debug("Reading input from %s", self.path)
        return open(self.path, "rb")


class FileOutput:
    """Write a conversion result to the local file system.

    Args:
        path: Destination path. When the workflow downloads with
            ``use_server_filename=True``, this is replaced by the
            service's filename placed in the same directory.
        append: Open in append mode instead of truncating.
    """

    def __init__(self, path: PathArg, append: bool = False) -> None:
        self._path = Path(path)
        self._mode = "ab" if append else "wb"

    @property
    def path(self) -> Path:
        return self._path

    @path.setter
    def path(self, value: PathArg) -> None:
        value = Path(value)
        if not value.is_absolute() and value.parent == Path("."):
            # A bare filename keeps the directory of the current path.
            value = self._path.parent / value
        self._path = value

    def open(self) -> IO[bytes]:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("Writing output to %s", self._path)
            return open(self._path, self._mode)
        except OSError as exc:
            raise VertopalError(
                ErrorKind.OUTPUT_WRITE,
                "Cannot write output file {}: {}".format(self._path, exc),
            ) from exc


class BytesInput:
    """Use an in-memory bytes value as a conversion input."""

    def __init__(
        self,
        data: bytes,
        filename: str = DEFAULT_FILENAME,
        content_type: Optional[str] = None,
    ) -> None:
        self.data = bytes(data)
        self.filename = filename
        self.content_type = (
            content_type
            or mimetypes.guess_type(filename)[0]
            or DEFAULT_CONTENT_TYPE
        )

    def open(self) -> IO[bytes]:
        return io.BytesIO(self.data)


class _BufferWriter(io.RawIOBase):
    def __init__(self, buffer: bytearray) -> None:
        self._buffer = buffer

    def writable(self) -> bool:
        return True

    def write(self, chunk) -> int:  # noqa: ANN001
        self._buffer += chunk
        return len(chunk)


class BytesOutput:
    """Collect a conversion result in memory.

    ``data`` accumulates across opens; ``path`` only records the name the
    service suggested (when downloading with ``use_server_filename=True``).
    """

    def __init__(self) -> None:
        self.buffer = bytearray()
        self.path: Optional[str] = None

    @property
    def data(self) -> bytes:
        return bytes(self.buffer)

    def open(self) -> IO[bytes]:
        return _BufferWriter(self.buffer)
