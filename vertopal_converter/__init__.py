"""Vertopal Converter: async client for the Vertopal file-conversion API.

WHY: Converting a file through Vertopal means uploading it, starting a
conversion task, polling until the task finishes, and streaming the
result back, all while riding out network hiccups and reporting service
errors in a form callers can act on. This package does that behind a
small API: ``Converter().convert(...)`` plus ``wait()`` and ``download()``.

HOW: Four layers: the chunked stream pipeline (core/chunker.py), the
HTTP transport with retries and error classification (api/interface.py,
api/classifier.py), one method per remote operation (api/client.py),
and the conversion workflow (converter.py).

RULES:
- Every failure is a VertopalError tagged with an ErrorKind
- All network I/O is async (httpx); the CLI wraps it with asyncio.run()
- Local files and in-memory buffers plug in through io/adapters.py
"""

__version__ = "0.1.0"

from vertopal_converter.api.client import VertopalClient  # noqa: E402
from vertopal_converter.api.credential import Credential  # noqa: E402
from vertopal_converter.api.enums import (  # noqa: E402
    InterfaceStrategyMode,
    InterfaceSublistMode,
)
from vertopal_converter.api.errors import (  # noqa: E402
    ErrorCategory,
    ErrorKind,
    VertopalError,
)
from vertopal_converter.config import Config, config  # noqa: E402
from vertopal_converter.converter import Conversion, ConversionState, Converter  # noqa: E402
from vertopal_converter.io.adapters import (  # noqa: E402
    BytesInput,
    BytesOutput,
    FileInput,
    FileOutput,
)

__all__ = [
    "BytesInput",
    "BytesOutput",
    "Config",
    "Conversion",
    "ConversionState",
    "Converter",
    "Credential",
    "ErrorCategory",
    "ErrorKind",
    "FileInput",
    "FileOutput",
    "InterfaceStrategyMode",
    "InterfaceSublistMode",
    "VertopalClient",
    "VertopalError",
    "config",
]
