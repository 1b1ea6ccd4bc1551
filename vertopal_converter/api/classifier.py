"""Error and warning extraction from Vertopal JSON responses.

WHY: The service does not put errors in one place. Depending on the
endpoint and on whether the failure happened in the request, the task,
or the conversion itself, the error object can sit at the envelope root,
under ``error``, under ``result.error``, or deep in
``result.output.result.error``. Warnings are spread the same way.

HOW: ResponseInspector walks a fixed list of key paths. Traversal is
fail-soft: a missing key or a non-dict along the way just means "not
found" for that path. raise_for_response() turns a found error into a
typed VertopalError and logs any warnings.

RULES:
- A path matches when it resolves to a dict with a truthy "code" or "message"
- Errors: the FIRST matching path (in ERROR_PATHS order) wins
- Warnings: EVERY matching path is collected
- Warnings are logged, never raised
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence, Tuple

from vertopal_converter.api.errors import VertopalError, kind_for_code

logger = logging.getLogger(__name__)

ERROR_PATHS: Tuple[Tuple[str, ...], ...] = (
    (),
    ("error",),
    ("result", "error"),
    ("result", "output", "result", "error"),
)

WARNING_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("warning",),
    ("result", "warning"),
    ("result", "output", "warning"),
    ("result", "output", "result", "warning"),
)

UNKNOWN_ERROR_CODE = "UNKNOWN_ERROR"
NO_ERROR_MESSAGE = "No error message available."


def _get_by_path(data: Any, path: Sequence[str]) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
        if data is None:
            return None
    return data


def _is_record(value: Any) -> bool:
    return isinstance(value, dict) and bool(value.get("code") or value.get("message"))


class ResponseInspector:
    """Read-only view over a decoded response envelope."""

    def __init__(self, response: Any) -> None:
        self._response = response

    def _matches(self, paths: Sequence[Sequence[str]]) -> List[Dict[str, Any]]:
        found = []
        for path in paths:
            value = _get_by_path(self._response, path)
            if _is_record(value):
                found.append(value)
        return found

    def has_error(self) -> bool:
        return any(_is_record(_get_by_path(self._response, p)) for p in ERROR_PATHS)

    def get_error(self) -> Dict[str, Any]:
        """Return the highest-priority error object, or {} when there is none."""
        for path in ERROR_PATHS:
            value = _get_by_path(self._response, path)
            if _is_record(value):
                return value
        return {}

    def get_error_code(self) -> str:
        return self.get_error().get("code") or UNKNOWN_ERROR_CODE

    def get_error_message(self) -> str:
        return self.get_error().get("message") or NO_ERROR_MESSAGE

    def has_warning(self) -> bool:
        return bool(self._matches(WARNING_PATHS))

    def get_warnings(self) -> List[Dict[str, Any]]:
        """Return every warning object found, in WARNING_PATHS order."""
        return self._matches(WARNING_PATHS)


def raise_for_response(response: Any) -> List[Dict[str, Any]]:
    """Raise the typed error carried by ``response``, if any.

    WHY: Service errors arrive as well-formed JSON (often with HTTP 200),
    so the transport cannot rely on status codes. Every JSON response goes
    through this check.

    HOW: Builds a ResponseInspector. On error, looks up the kind for the
    code and raises VertopalError with a ``[CODE] message`` text. Otherwise
    logs warnings and returns them.

    RULES:
    - Raises VertopalError (SERVICE category) when an error is present
    - Returns the (possibly empty) list of warnings otherwise

    Args:
        response: The decoded JSON body.

    Returns:
        The warning objects found in the response.
    """
    inspector = ResponseInspector(response)

    if inspector.has_error():
        code = inspector.get_error_code()
        message = inspector.get_error_message()
        raise VertopalError(
            kind_for_code(code),
            "[{}] {}".format(code, message),
            code=code,
        )

    warnings = inspector.get_warnings()
    for warning in warnings:
        logger.warning(
            "Vertopal warning [%s]: %s",
            warning.get("code", "UNKNOWN_WARNING"),
            warning.get("message", ""),
        )
    return warnings

