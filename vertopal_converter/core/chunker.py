"""Fixed-size chunking of byte streams for upload and download.

WHY: Uploads come from file objects (read(size)-style, pull), while
downloads come from httpx's ``aiter_bytes()`` (async iterator, push), and
the chunk boundaries each source hands us are arbitrary. Both directions
need the same thing: a deterministic sequence of ``chunk_size`` byte
slices delivered either to a writable sink or to an in-memory list.

HOW: StreamChunker picks one source adapter (_PullSource or _PushSource)
and one sink adapter (_WriterSink or _CollectorSink) at construction time
by capability check. process() pulls pieces from the source, appends them
to a bytearray buffer, and emits full slices as soon as the buffer holds
``chunk_size`` bytes. Whatever is left after the source is exhausted goes
out as one final, shorter chunk.

RULES:
- Every emitted chunk is exactly chunk_size bytes except possibly the last
- At most one short chunk is emitted, and only if it is non-empty
- An empty source emits nothing
- Concatenated output == concatenated input, whatever the source chunking
- str pieces are encoded as UTF-8 before buffering
- Sync and async variants of read()/write()/iteration are all accepted
"""

from __future__ import annotations

import inspect
from typing import Any, AsyncIterator, List, Union

Piece = Union[bytes, bytearray, memoryview, str]


def _to_bytes(piece: Piece) -> bytes:
    if isinstance(piece, str):
        return piece.encode("utf-8")
    return bytes(piece)


# ---------------------------------------------------------------------------
# Source adapters
# ---------------------------------------------------------------------------


class _PullSource:
    """A source we ask for data: anything with ``read(size)``."""

    def __init__(self, stream: Any, read_size: int) -> None:
        self._stream = stream
        self._read_size = read_size

    async def pieces(self) -> AsyncIterator[Piece]:
        while True:
            piece = self._stream.read(self._read_size)
            if inspect.isawaitable(piece):
                piece = await piece
            if not piece:
                return
            yield piece


class _PushSource:
    """A source that hands us data: a sync or async iterable of pieces."""

    def __init__(self, stream: Any) -> None:
        self._stream = stream

    async def pieces(self) -> AsyncIterator[Piece]:
        if hasattr(self._stream, "__aiter__"):
            async for piece in self._stream:
                yield piece
        else:
            for piece in self._stream:
                yield piece


# ---------------------------------------------------------------------------
# Sink adapters
# ---------------------------------------------------------------------------


class _WriterSink:
    def __init__(self, target: Any) -> None:
        self._target = target

    async def emit(self, chunk: bytes) -> None:
        result = self._target.write(chunk)
        if inspect.isawaitable(result):
            await result


class _CollectorSink:
    def __init__(self, target: Any) -> None:
        self._target = target

    async def emit(self, chunk: bytes) -> None:
        self._target.append(chunk)


def _select_source(stream: Any, chunk_size: int) -> Union[_PullSource, _PushSource]:
    if callable(getattr(stream, "read", None)):
        return _PullSource(stream, chunk_size)
    if isinstance(stream, (bytes, bytearray, str)):
        raise TypeError("Expected a stream, got a {} value".format(type(stream).__name__))
    if hasattr(stream, "__aiter__") or hasattr(stream, "__iter__"):
        return _PushSource(stream)
    raise TypeError(
        "Unsupported stream type {}: expected read(size) or iteration".format(
            type(stream).__name__
        )
    )


def _select_sink(sink: Any) -> Union[_WriterSink, _CollectorSink]:
    if callable(getattr(sink, "write", None)):
        return _WriterSink(sink)
    if callable(getattr(sink, "append", None)):
        return _CollectorSink(sink)
    raise TypeError(
        "Unsupported sink type {}: expected write() or append()".format(
            type(sink).__name__
        )
    )


class StreamChunker:
    """Re-chunk a byte stream into fixed-size pieces and deliver them to a sink.

    Args:
        stream: A pull source (``read(size)``) or push source (iterable /
            async iterable of bytes or str).
        chunk_size: Size in bytes of every emitted chunk but the last.
        sink: A writer (``write(chunk)``) or collector (``append(chunk)``).
    """

    def __init__(self, stream: Any, chunk_size: int, sink: Any) -> None:
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
            raise ValueError("chunk_size must be a positive integer, got {!r}".format(chunk_size))
        self.chunk_size = chunk_size
        self.sink = sink
        self._source = _select_source(stream, chunk_size)
        self._emitter = _select_sink(sink)

    async def process(self) -> Any:
        """Consume the whole stream and return the sink."""
        buffer = bytearray()

        async for piece in self._source.pieces():
            buffer += _to_bytes(piece)
            while len(buffer) >= self.chunk_size:
                await self._emitter.emit(bytes(buffer[: self.chunk_size]))
                del buffer[: self.chunk_size]

        if buffer:
            await self._emitter.emit(bytes(buffer))

        return self.sink


async def collect_bytes(stream: Any, chunk_size: int) -> bytes:
    """Read ``stream`` to the end through a StreamChunker and return all bytes.

    The upload path uses this to buffer a whole file before building the
    multipart body.
    """
    chunks: List[bytes] = []
    await StreamChunker(stream, chunk_size, chunks).process()
    return b"".join(chunks)
