"""Stream chunking and format-name helpers shared by upload and download."""

from vertopal_converter.core.chunker import StreamChunker, collect_bytes
from vertopal_converter.core.formats import canonicalize_format

__all__ = ["StreamChunker", "canonicalize_format", "collect_bytes"]
