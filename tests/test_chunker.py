"""Tests for the fixed-size stream chunker.

WHY: Uploads and downloads both go through StreamChunker, so a boundary
bug there corrupts every transferred file. These tests pin down the
chunk sizes and the byte-for-byte reassembly for every kind of source
and sink the chunker accepts.

HOW: Each test builds a source (file object, async reader, list,
generator, async generator), runs process() via asyncio.run, and
checks the emitted chunks.

RULES:
- Every chunk but the last is exactly chunk_size bytes
- Chunk count is ceil(total / chunk_size); empty input emits nothing
- Invalid chunk sizes and unsupported sources/sinks raise at construction
"""

from __future__ import annotations

import asyncio
import io
from typing import List

import pytest

from vertopal_converter.core.chunker import StreamChunker, collect_bytes


def _run(stream, chunk_size: int) -> List[bytes]:
    chunks: List[bytes] = []
    asyncio.run(StreamChunker(stream, chunk_size, chunks).process())
    return chunks


class _AsyncReader:
    """Pull source whose read() is a coroutine."""

    def __init__(self, data: bytes) -> None:
        self._buffer = io.BytesIO(data)

    async def read(self, size: int) -> bytes:
        return self._buffer.read(size)


class _AsyncWriter:
    def __init__(self) -> None:
        self.written: List[bytes] = []

    async def write(self, chunk: bytes) -> None:
        self.written.append(chunk)


async def _agen(pieces):
    for piece in pieces:
        yield piece


# ---------------------------------------------------------------------------
# Chunk boundaries
# ---------------------------------------------------------------------------


class TestChunkBoundaries:
    """Output chunks have fixed sizes regardless of input chunking."""

    def test_rechunks_irregular_pieces(self):
        """Pieces of 3, 5 and 2 bytes with chunk_size 4 become 4, 4, 2."""
        chunks = _run([b"abc", b"defgh", b"ij"], 4)
        assert chunks == [b"abcd", b"efgh", b"ij"]

    def test_exact_multiple_has_no_short_chunk(self):
        chunks = _run([b"abcdefgh"], 4)
        assert chunks == [b"abcd", b"efgh"]

    def test_empty_source_emits_nothing(self):
        assert _run([], 4) == []
        assert _run(io.BytesIO(b""), 4) == []

    def test_empty_pieces_are_skipped(self):
        assert _run([b"", b"ab", b"", b"c"], 2) == [b"ab", b"c"]

    @pytest.mark.parametrize("total,chunk_size", [(1, 1), (10, 3), (4096, 1000), (7, 10)])
    def test_chunk_count_and_reassembly(self, total, chunk_size):
        """ceil(total / chunk_size) chunks that join back to the input."""
        data = bytes(range(256)) * (total // 256 + 1)
        data = data[:total]
        chunks = _run(io.BytesIO(data), chunk_size)

        assert len(chunks) == -(-total // chunk_size)
        assert all(len(c) == chunk_size for c in chunks[:-1])
        assert 0 < len(chunks[-1]) <= chunk_size
        assert b"".join(chunks) == data

    def test_str_pieces_are_utf8_encoded(self):
        chunks = _run(["hé", "llo"], 3)
        assert b"".join(chunks) == "héllo".encode("utf-8")
        assert chunks[0] == "hé".encode("utf-8")


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class TestSources:
    """Pull and push sources, sync and async."""

    def test_sync_file_object(self):
        assert _run(io.BytesIO(b"abcdefg"), 3) == [b"abc", b"def", b"g"]

    def test_async_reader(self):
        assert _run(_AsyncReader(b"abcdefg"), 3) == [b"abc", b"def", b"g"]

    def test_sync_generator(self):
        source = (piece for piece in [b"ab", b"cd", b"e"])
        assert _run(source, 4) == [b"abcd", b"e"]

    def test_async_generator(self):
        assert _run(_agen([b"ab", b"cd", b"e"]), 4) == [b"abcd", b"e"]

    def test_rejects_bytes_value(self):
        with pytest.raises(TypeError):
            StreamChunker(b"not a stream", 4, [])

    def test_rejects_non_iterable(self):
        with pytest.raises(TypeError):
            StreamChunker(42, 4, [])


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


class TestSinks:
    """Writer and collector sinks."""

    def test_sync_writer(self):
        target = io.BytesIO()
        result = asyncio.run(StreamChunker([b"abcde"], 2, target).process())
        assert result is target
        assert target.getvalue() == b"abcde"

    def test_async_writer(self):
        target = _AsyncWriter()
        asyncio.run(StreamChunker([b"abcde"], 2, target).process())
        assert target.written == [b"ab", b"cd", b"e"]

    def test_collector_returned(self):
        target: List[bytes] = []
        result = asyncio.run(StreamChunker([b"abc"], 2, target).process())
        assert result is target
        assert target == [b"ab", b"c"]

    def test_rejects_unsupported_sink(self):
        with pytest.raises(TypeError):
            StreamChunker([b"a"], 4, object())


# ---------------------------------------------------------------------------
# Validation and helpers
# ---------------------------------------------------------------------------


class TestValidation:
    @pytest.mark.parametrize("chunk_size", [0, -1, 1.5, True, "4", None])
    def test_invalid_chunk_size(self, chunk_size):
        with pytest.raises(ValueError):
            StreamChunker([b"a"], chunk_size, [])

    def test_collect_bytes(self):
        data = b"x" * 10001
        assert asyncio.run(collect_bytes(io.BytesIO(data), 4096)) == data
