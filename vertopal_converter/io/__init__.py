"""Input and output adapters for conversions."""

from vertopal_converter.io.adapters import BytesInput, BytesOutput, FileInput, FileOutput
from vertopal_converter.io.protocols import PathWritable, Readable, Writable

__all__ = [
    "BytesInput",
    "BytesOutput",
    "FileInput",
    "FileOutput",
    "PathWritable",
    "Readable",
    "Writable",
]
