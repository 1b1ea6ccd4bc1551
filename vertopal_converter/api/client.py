"""Async client for the Vertopal v1 file-conversion API.

WHY: A conversion takes several round trips (upload, convert, poll,
locate the result, download) plus a few metadata lookups. Each one is a
small JSON body sent to a different endpoint. Wrapping them as methods
lets the workflow (and library users) call operations by name without
knowing form field names or endpoint paths.

HOW: VertopalClient extends the Interface transport with one method per
remote operation. Each method builds the JSON request body, puts it in
the ``data`` form field, and delegates to send_request(). Uploads and
downloads go through the StreamChunker.

RULES:
- Use as: async with VertopalClient() as client: ...
- Every body includes "app" (the credential's application ID)
- Format arguments are canonicalized before sending
- Methods return the decoded JSON envelope unchanged (except the
  download, which writes to the Writable and returns None)
- Uploads and downloads use the long timeout; everything else the default
- A non-JSON answer from a JSON endpoint raises INVALID_JSON_RESPONSE
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from vertopal_converter.api.enums import InterfaceStrategyMode, InterfaceSublistMode
from vertopal_converter.api.errors import ErrorKind, VertopalError
from vertopal_converter.api.interface import FileField, Interface
from vertopal_converter.core.chunker import StreamChunker
from vertopal_converter.core.formats import canonicalize_format
from vertopal_converter.io.protocols import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_FILENAME,
    Readable,
    Writable,
)

logger = logging.getLogger(__name__)


class VertopalClient(Interface):
    """Async client for the Vertopal public API (v1)."""

    version = 1

    def _body(self, **values: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"app": self.credential.app}
        payload.update(values)
        return {"data": json.dumps(payload)}

    async def _send_json(
        self,
        path: str,
        method: str = "POST",
        fields: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """send_request() for endpoints that must answer with JSON.

        A non-JSON body (e.g. an HTML page from a proxy) is closed and
        rejected with INVALID_JSON_RESPONSE.
        """
        result = await self.send_request(path, method, fields, timeout=timeout)
        if isinstance(result, httpx.Response):
            content_type = result.headers.get("Content-Type", "")
            await result.aclose()
            raise VertopalError(
                ErrorKind.INVALID_JSON_RESPONSE,
                "Expected JSON from {}, got {!r}".format(path, content_type or "no content type"),
            )
        return result

    # ------------------------------------------------------------------
    # Step 1: Upload file
    # ------------------------------------------------------------------

    async def upload_file(
        self,
        readable: Readable,
        chunk_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Upload a file and return the response envelope.

        The envelope's ``result.output.connector`` references the uploaded
        file in later calls.

        Args:
            readable: Source of the file bytes.
            chunk_size: Read size in bytes; defaults to the configured
                stream_chunk_size.
        """
        filename = getattr(readable, "filename", None) or DEFAULT_FILENAME
        content_type = getattr(readable, "content_type", None) or DEFAULT_CONTENT_TYPE
        logger.info("Uploading %s (%s)", filename, content_type)

        with readable.open() as stream:
            fields = self._body()
            fields["file"] = FileField(
                stream=stream,
                filename=filename,
                content_type=content_type,
                chunk_size=chunk_size or self.stream_chunk_size,
            )
            return await self._send_json(
                "/upload/file", "POST", fields, timeout=self.long_timeout
            )

    # ------------------------------------------------------------------
    # Step 2: Convert
    # ------------------------------------------------------------------

    async def convert_file(
        self,
        connector: str,
        output_format: str,
        input_format: Optional[str] = None,
        mode: InterfaceStrategyMode = InterfaceStrategyMode.ASYNC,
    ) -> Dict[str, Any]:
        """Request conversion of an uploaded file.

        Args:
            connector: Connector of the uploaded file.
            output_format: Target format[-type], e.g. "docx" or "svg:font".
            input_format: Source format[-type]; the service infers it from
                the file when omitted.
            mode: ASYNC returns immediately with a running task entity.
        """
        parameters = {"output": canonicalize_format(output_format)}
        input_format = canonicalize_format(input_format)
        if input_format:
            parameters = {"input": input_format, "output": parameters["output"]}

        return await self._send_json(
            "/convert/file",
            "POST",
            self._body(
                connector=connector,
                include=["result", "entity"],
                mode=InterfaceStrategyMode(mode).value,
                parameters=parameters,
            ),
            timeout=self.default_timeout,
        )

    # ------------------------------------------------------------------
    # Step 3: Status
    # ------------------------------------------------------------------

    async def convert_status(self, connector: str) -> Dict[str, Any]:
        return await self._send_json(
            "/convert/status", "POST", self._body(connector=connector),
            timeout=self.default_timeout,
        )

    async def task_response(self, connector: str) -> Dict[str, Any]:
        """Fetch the response of a task, including its result once available."""
        return await self._send_json(
            "/task/response", "POST",
            self._body(connector=connector, include=["result"]),
            timeout=self.default_timeout,
        )

    # ------------------------------------------------------------------
    # Step 4: Download
    # ------------------------------------------------------------------

    async def download_url(self, connector: str) -> Dict[str, Any]:
        """Ask for a download connector for the result of a conversion task."""
        return await self._send_json(
            "/download/url", "POST", self._body(connector=connector),
            timeout=self.default_timeout,
        )

    async def download_url_get(
        self,
        writable: Writable,
        connector: str,
        chunk_size: Optional[int] = None,
    ) -> None:
        """Stream the file behind a download connector into ``writable``.

        WHY: Converted files can be large, so the body is never held in
        memory as a whole; it is re-chunked and written as it arrives.

        HOW: send_request() returns the open streamed response for
        non-JSON bodies. Its ``aiter_bytes()`` feeds a StreamChunker that
        writes into ``writable.open()``.

        RULES:
        - The response and the sink are always closed
        - A JSON body without an error (no file) raises HTTP_RESPONSE
        - OSError while writing raises OUTPUT_WRITE
        - A transport error mid-body raises NETWORK_CONNECTION (not retried)
        """
        response = await self.send_request(
            "/download/url/get", "POST", self._body(connector=connector),
            timeout=self.long_timeout,
        )
        if not isinstance(response, httpx.Response):
            raise VertopalError(
                ErrorKind.HTTP_RESPONSE,
                "Expected a file stream from /download/url/get, got JSON",
            )

        try:
            with writable.open() as sink:
                await StreamChunker(
                    response.aiter_bytes(),
                    chunk_size or self.stream_chunk_size,
                    sink,
                ).process()
        except httpx.HTTPError as exc:
            raise VertopalError(
                ErrorKind.NETWORK_CONNECTION,
                "Download interrupted: {}".format(exc),
            ) from exc
        except OSError as exc:
            raise VertopalError(
                ErrorKind.OUTPUT_WRITE,
                "Failed to write downloaded file: {}".format(exc),
            ) from exc
        finally:
            await response.aclose()

    # ------------------------------------------------------------------
    # Format metadata
    # ------------------------------------------------------------------

    async def format_get(self, format_name: str) -> Dict[str, Any]:
        return await self._send_json(
            "/format/get", "POST",
            self._body(parameters={"format": canonicalize_format(format_name)}),
            timeout=self.default_timeout,
        )

    async def convert_graph(self, input_format: str, output_format: str) -> Dict[str, Any]:
        """Describe the conversion path between two formats."""
        return await self._send_json(
            "/convert/graph", "POST",
            self._body(parameters={
                "input": canonicalize_format(input_format),
                "output": canonicalize_format(output_format),
            }),
            timeout=self.default_timeout,
        )

    async def convert_formats(
        self,
        sublist: InterfaceSublistMode,
        format_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """List the formats a format converts to (OUTPUTS) or from (INPUTS).

        Raises:
            ValueError: If sublist is not an InterfaceSublistMode value.
        """
        try:
            sublist = InterfaceSublistMode(sublist)
        except ValueError:
            raise ValueError(
                "`sublist` must be either InterfaceSublistMode.INPUTS or "
                "InterfaceSublistMode.OUTPUTS."
            ) from None

        parameters = {"sublist": sublist.value}
        format_name = canonicalize_format(format_name)
        if format_name:
            parameters["format"] = format_name

        return await self._send_json(
            "/convert/formats", "POST", self._body(parameters=parameters),
            timeout=self.default_timeout,
        )
