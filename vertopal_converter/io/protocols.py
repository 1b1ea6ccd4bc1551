"""Source and destination protocols used by the conversion workflow.

The client only ever calls ``open()`` on a Readable or Writable, reads the
optional ``filename`` / ``content_type`` attributes of a Readable, and
assigns ``path`` on a PathWritable. Anything satisfying these protocols can
be used as a conversion input or output.
"""

from __future__ import annotations

from os import PathLike
from typing import IO, Optional, Protocol, Union, runtime_checkable

DEFAULT_FILENAME = "upload.bin"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@runtime_checkable
class Readable(Protocol):
    """A binary resource that can be opened for reading.

    ``open()`` returns a context manager yielding an object with
    ``read(size)``.
    """

    filename: Optional[str]
    content_type: Optional[str]

    def open(self) -> IO[bytes]: ...


@runtime_checkable
class Writable(Protocol):
    """A binary resource that can be opened for writing.

    ``open()`` returns a context manager yielding an object with
    ``write(chunk)``.
    """

    def open(self) -> IO[bytes]: ...


@runtime_checkable
class PathWritable(Writable, Protocol):
    """A Writable whose destination path can be reassigned."""

    path: Union[str, "PathLike[str]"]
