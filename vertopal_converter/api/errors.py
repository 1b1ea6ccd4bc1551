"""Failure taxonomy for the Vertopal client.

WHY: Callers need to branch on *what* went wrong (bad credentials, quota,
unsupported format, network outage, unreadable input...) without parsing
message text. The service reports ~40 distinct error codes, and the client
adds a few local failure kinds of its own.

HOW: A single exception type, VertopalError, carries an ErrorKind. Each
service kind uses the service's own error code as its enum value, so the
code -> kind lookup is one table (ERROR_CODE_MAP). Kinds are grouped into
coarse ErrorCategory values for callers that only care about the class of
failure.

RULES:
- Unknown service codes map to ErrorKind.API_ERROR, never to a KeyError
- SERVICE and DECODE failures are deterministic and must not be retried
- TRANSPORT failures are raised only after the last attempt fails
- message is human-readable; kind/code are what callers should branch on
"""

from __future__ import annotations

import enum
from typing import Dict, Optional


class ErrorCategory(str, enum.Enum):
    """Coarse grouping of failure kinds."""

    INPUT_MISSING = "input_missing"
    TRANSPORT = "transport"
    DECODE = "decode"
    HTTP_RESPONSE = "http_response"
    SERVICE = "service"
    WORKFLOW = "workflow"
    OUTPUT_WRITE = "output_write"
    OTHER = "other"


class ErrorKind(str, enum.Enum):
    """Every failure the client can raise.

    Service kinds have the service error code as their value.
    """

    # Local failures
    OTHER = "OTHER"
    INPUT_NOT_FOUND = "INPUT_NOT_FOUND"
    NETWORK_CONNECTION = "NETWORK_CONNECTION"
    INVALID_JSON_RESPONSE = "INVALID_JSON_RESPONSE"
    HTTP_RESPONSE = "HTTP_RESPONSE"
    ENTITY_STATUS_NOT_RUNNING = "ENTITY_STATUS_NOT_RUNNING"
    OUTPUT_WRITE = "OUTPUT_WRITE"

    # Service error with a code the client does not know
    API_ERROR = "API_ERROR"

    # Request / endpoint
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    NOT_FOUND = "NOT_FOUND"
    POST_METHOD_ALLOWED = "POST_METHOD_ALLOWED"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"

    # Authentication
    MISSING_AUTHORIZATION_HEADER = "MISSING_AUTHORIZATION_HEADER"
    INVALID_AUTHORIZATION_HEADER = "INVALID_AUTHORIZATION_HEADER"
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"

    # Fields and data keys
    INVALID_FIELD = "INVALID_FIELD"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    WRONG_TYPE_FIELD = "WRONG_TYPE_FIELD"
    INVALID_DATA_KEY = "INVALID_DATA_KEY"
    MISSING_REQUIRED_DATA_KEY = "MISSING_REQUIRED_DATA_KEY"
    WRONG_TYPE_DATA_KEY = "WRONG_TYPE_DATA_KEY"
    WRONG_VALUE_DATA_KEY = "WRONG_VALUE_DATA_KEY"

    # Parameters
    INVALID_PARAMETER = "INVALID_PARAMETER"
    MISSING_REQUIRED_PARAMETER = "MISSING_REQUIRED_PARAMETER"
    WRONG_TYPE_PARAMETER = "WRONG_TYPE_PARAMETER"
    WRONG_VALUE_PARAMETER = "WRONG_VALUE_PARAMETER"

    # Plan and quota
    FREE_PLAN_DISALLOWED = "FREE_PLAN_DISALLOWED"
    INSUFFICIENT_VCREDITS = "INSUFFICIENT_VCREDITS"
    FREE_APP_LIMITED = "FREE_APP_LIMITED"
    DISABLED_FOR_FREE_APP = "DISABLED_FOR_FREE_APP"
    ONLY_DEVELOPMENT_REQUEST = "ONLY_DEVELOPMENT_REQUEST"
    ONLY_DEVELOPMENT_FILE = "ONLY_DEVELOPMENT_FILE"

    # Callbacks
    INVALID_CALLBACK = "INVALID_CALLBACK"
    UNVERIFIED_DOMAIN_CALLBACK = "UNVERIFIED_DOMAIN_CALLBACK"

    # Task dependencies
    NO_CONNECTOR_DEPENDENT_TASK = "NO_CONNECTOR_DEPENDENT_TASK"
    NOT_READY_DEPENDENT_TASK = "NOT_READY_DEPENDENT_TASK"
    MISMATCH_VERSION_DEPENDENT_TASK = "MISMATCH_VERSION_DEPENDENT_TASK"
    MISMATCH_DEPENDENT_TASK = "MISMATCH_DEPENDENT_TASK"

    # Files
    FILE_NOT_EXISTS = "FILE_NOT_EXISTS"
    DOWNLOAD_EXPIRED = "DOWNLOAD_EXPIRED"
    NOT_VALID_EXTENSION = "NOT_VALID_EXTENSION"
    LIMIT_UPLOAD_SIZE = "LIMIT_UPLOAD_SIZE"
    EMPTY_FILE = "EMPTY_FILE"

    # Formats and conversion graph
    WRONG_OUTPUT_FORMAT_STRUCTURE = "WRONG_OUTPUT_FORMAT_STRUCTURE"
    INVALID_OUTPUT_FORMAT = "INVALID_OUTPUT_FORMAT"
    WRONG_INPUT_FORMAT_STRUCTURE = "WRONG_INPUT_FORMAT_STRUCTURE"
    INVALID_INPUT_FORMAT = "INVALID_INPUT_FORMAT"
    NO_CONVERTER_INPUT_TO_OUTPUT = "NO_CONVERTER_INPUT_TO_OUTPUT"
    NOT_MATCH_EXTENSION_AND_INPUT = "NOT_MATCH_EXTENSION_AND_INPUT"
    WRONG_FORMAT_STRUCTURE = "WRONG_FORMAT_STRUCTURE"
    INVALID_FORMAT = "INVALID_FORMAT"
    FAILED_CONVERT = "FAILED_CONVERT"

    @property
    def category(self) -> ErrorCategory:
        return _LOCAL_CATEGORIES.get(self, ErrorCategory.SERVICE)


_LOCAL_CATEGORIES: Dict[ErrorKind, ErrorCategory] = {
    ErrorKind.OTHER: ErrorCategory.OTHER,
    ErrorKind.INPUT_NOT_FOUND: ErrorCategory.INPUT_MISSING,
    ErrorKind.NETWORK_CONNECTION: ErrorCategory.TRANSPORT,
    ErrorKind.INVALID_JSON_RESPONSE: ErrorCategory.DECODE,
    ErrorKind.HTTP_RESPONSE: ErrorCategory.HTTP_RESPONSE,
    ErrorKind.ENTITY_STATUS_NOT_RUNNING: ErrorCategory.WORKFLOW,
    ErrorKind.OUTPUT_WRITE: ErrorCategory.OUTPUT_WRITE,
}

ERROR_CODE_MAP: Dict[str, ErrorKind] = {
    kind.value: kind
    for kind in ErrorKind
    if kind.category is ErrorCategory.SERVICE and kind is not ErrorKind.API_ERROR
}
"""Service error code -> ErrorKind."""


def kind_for_code(code: Optional[str]) -> ErrorKind:
    """Map a service error code to its kind; unknown or missing codes map to API_ERROR."""
    if not code:
        return ErrorKind.API_ERROR
    return ERROR_CODE_MAP.get(code, ErrorKind.API_ERROR)


class VertopalError(Exception):
    """Raised for every failure the client reports.

    WHY: One exception type with a kind tag lets callers write a single
    ``except VertopalError`` and then branch on ``err.kind`` or
    ``err.category``, instead of catching dozens of subclasses.

    HOW: Stores kind, the raw service code (when there is one), and the
    message. str(err) is the message.

    RULES:
    - kind is always set
    - code is the service code for SERVICE errors, else None
    - The underlying exception (if any) is chained with ``raise ... from``
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str = "",
        code: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.code = code
        self.message = message or kind.value
        super().__init__(self.message)

    @property
    def category(self) -> ErrorCategory:
        return self.kind.category

    def __repr__(self) -> str:
        return "VertopalError(kind={}, code={!r}, message={!r})".format(
            self.kind.name, self.code, self.message
        )
