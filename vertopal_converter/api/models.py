"""Typed views over the Vertopal response envelopes the workflow reads.

WHY: The operation methods return the raw decoded JSON (callers of the
low-level API may want every field). The conversion workflow only needs
a handful of values buried a few levels deep, and reading them through
named dataclasses keeps the workflow readable and puts the envelope
shapes in one place.

HOW: Each dataclass has a from_dict() factory that takes the whole
response envelope and digs out its fields.

RULES:
- from_dict() raises VertopalError(INVALID_JSON_RESPONSE) if a required
  path is missing or has the wrong type; by then raise_for_response()
  has already rejected service errors, so a missing path means the
  service changed shape
- TaskStatus tolerates a missing inner result (task still running)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from vertopal_converter.api.errors import ErrorKind, VertopalError


def _shape_error(model: str, exc: Exception) -> VertopalError:
    return VertopalError(
        ErrorKind.INVALID_JSON_RESPONSE,
        "Unexpected {} response shape ({}: {})".format(model, type(exc).__name__, exc),
    )


@dataclass
class UploadResult:
    """Response of /upload/file: the connector referencing the uploaded file."""

    connector: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> UploadResult:
        try:
            return cls(connector=data["result"]["output"]["connector"])
        except (KeyError, TypeError) as exc:
            raise _shape_error("upload", exc) from exc


@dataclass
class ConvertResult:
    """Response of /convert/file in async mode.

    ``entity_id`` is the connector of the conversion task; ``entity_status``
    is its lifecycle state ("running" right after a successful request).
    """

    entity_id: str
    entity_status: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ConvertResult:
        try:
            entity = data["entity"]
            return cls(entity_id=entity["id"], entity_status=entity["status"])
        except (KeyError, TypeError) as exc:
            raise _shape_error("convert", exc) from exc


@dataclass
class TaskStatus:
    """Response of /task/response for a conversion task.

    WHY: Two statuses live in this envelope and they mean different
    things. ``task`` is the lifecycle of the asynchronous task ("running",
    "completed"); ``convert`` is the outcome of the conversion itself
    ("successful", "failed"), which only exists once the task produced a
    result.

    HOW: Reads result.output.entity for the task status and, when
    result.output.result is present, the conversion status and the
    vCredits charged.

    RULES:
    - convert and credits are None while the inner result is absent
    - A completed task may still carry convert == "failed"
    """

    task: str
    convert: Optional[str] = None
    credits: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TaskStatus:
        try:
            output = data["result"]["output"]
            entity = output["entity"]
            inner = output.get("result")

            if inner:
                return cls(
                    task=entity["status"],
                    convert=inner["output"]["status"],
                    credits=entity.get("vcredits"),
                )
            return cls(task=entity["status"])
        except (AttributeError, KeyError, TypeError) as exc:
            raise _shape_error("task", exc) from exc


@dataclass
class DownloadTarget:
    """Response of /download/url: connector and filename of the result file."""

    connector: str
    filename: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DownloadTarget:
        try:
            output = data["result"]["output"]
            return cls(connector=output["connector"], filename=output["name"])
        except (KeyError, TypeError) as exc:
            raise _shape_error("download", exc) from exc
