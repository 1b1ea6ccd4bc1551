"""HTTP transport for the Vertopal API: auth, retries, timeouts, response triage.

WHY: Every Vertopal operation is "POST some form fields, maybe a file,
get JSON back" (or, for downloads, raw bytes). The hard part is telling
failures apart: a service error is a well-formed JSON answer and retrying
it would just repeat the same business error, while a dropped connection
or a timeout is exactly what a retry fixes. This module owns that
distinction so the operation methods stay one-liners.

HOW: Interface wraps an httpx.AsyncClient (async context manager, same as
the other clients in this package). send_request() splits the fields into
form data and file parts, buffers file parts once through the chunk
pipeline, then makes up to ``retries`` attempts. Each attempt runs under
asyncio.wait_for with the selected timeout. JSON bodies go through
raise_for_response(); anything else is returned as a streamed
httpx.Response for the caller to consume.

RULES:
- URL is ``endpoint[/v{version}]{path}``
- Timeout: explicit > long (upload/download endpoints) > default
- Service errors and undecodable JSON raise immediately (no retry)
- Transport failures (httpx.HTTPError, OSError, timeouts, non-JSON 5xx)
  are retried, sleeping 2**attempt seconds between attempts (attempt
  starts at 1, no sleep after the last one)
- After the last failed attempt: VertopalError(NETWORK_CONNECTION)
  chained to the final cause
- Non-JSON 4xx raises VertopalError(HTTP_RESPONSE) without retry
- A returned raw response is still open; the caller must aclose() it
"""

from __future__ import annotations

import asyncio
import logging
import platform
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

import httpx

from vertopal_converter import __version__
from vertopal_converter.api.classifier import raise_for_response
from vertopal_converter.api.credential import Credential
from vertopal_converter.api.errors import ErrorKind, VertopalError
from vertopal_converter.config import USER_AGENT_LIB, Config
from vertopal_converter.config import config as default_config
from vertopal_converter.core.chunker import collect_bytes

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

APP_ID_PLACEHOLDER = "%app-id%"
LONG_TIMEOUT_PATHS = ("/upload/file", "/download/url/get")
_TRANSPORT_ERRORS = (httpx.HTTPError, OSError, asyncio.TimeoutError)

SleepFn = Callable[[float], Awaitable[Any]]


@dataclass
class FileField:
    """A file-valued request field.

    ``stream`` is anything the chunk pipeline accepts: a binary file
    object, an async reader, or an (async) iterable of bytes.
    """

    stream: Any
    filename: str = "upload.bin"
    content_type: str = "application/octet-stream"
    chunk_size: int = 4096


def build_user_agent(library: str = USER_AGENT_LIB) -> str:
    """Return ``{library}/{version} ({platform info})``."""
    system = platform.system()
    release = platform.release()
    machine = platform.machine()

    info = "macOS" if system == "Darwin" else system
    if release:
        info += " " + release.split("-")[0]

    if machine.lower() in ("x86_64", "amd64"):
        if system == "Windows":
            info += "; Win64"
        info += "; x64"
    elif machine:
        info += "; " + machine

    return "{}/{} ({})".format(library, __version__, info)


def parse_field_parameters(
    fields: Optional[Mapping[str, Any]],
    replace: Optional[Mapping[str, str]] = None,
) -> Tuple[Dict[str, str], Dict[str, FileField]]:
    """Split request fields into string form data and file fields.

    String values have every ``replace`` key substituted by its value.

    Raises:
        TypeError: If a value is neither a str nor a FileField.
    """
    data: Dict[str, str] = {}
    files: Dict[str, FileField] = {}

    for name, value in (fields or {}).items():
        if isinstance(value, str):
            for placeholder, substitute in (replace or {}).items():
                if placeholder and substitute:
                    value = value.replace(placeholder, substitute)
            data[name] = value
        elif isinstance(value, FileField):
            files[name] = value
        else:
            raise TypeError(
                "Field {!r} must be a str or FileField, got {}".format(
                    name, type(value).__name__
                )
            )

    return data, files


class Interface:
    """Authenticated, retrying transport for the Vertopal API.

    WHY: Keeps credentials, configuration, the connection pool, and the
    retry policy in one place for all operation methods.

    HOW: Use as ``async with Interface(...) as api:``. Subclasses set
    ``version`` and add one method per remote operation.

    RULES:
    - credential defaults to Credential.from_config(config)
    - config defaults to the process-wide vertopal_converter.config.config
    - transport is handed to httpx.AsyncClient (tests pass MockTransport)
    - sleep is awaited between retries (tests pass a recorder)
    """

    version: Optional[int] = None

    def __init__(
        self,
        credential: Optional[Credential] = None,
        config: Optional[Config] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._config = config or default_config
        self._credential = credential or Credential.from_config(self._config)
        self._transport = transport
        self._sleep = sleep
        self._user_agent = build_user_agent()
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> Interface:
        self._client = httpx.AsyncClient(
            headers=self._get_headers(),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "{0} must be used as an async context manager: "
                "async with {0}() as client: ...".format(type(self).__name__)
            )
        return self._client

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def credential(self) -> Credential:
        return self._credential

    @property
    def endpoint(self) -> str:
        return str(self._config.get("api", "endpoint")).rstrip("/")

    @property
    def retries(self) -> int:
        return max(1, int(self._config.get("connection_settings", "retries", 1)))

    @property
    def default_timeout(self) -> float:
        return float(self._config.get("connection_settings", "default_timeout"))

    @property
    def long_timeout(self) -> float:
        return float(self._config.get("connection_settings", "long_timeout"))

    @property
    def stream_chunk_size(self) -> int:
        return int(self._config.get("connection_settings", "stream_chunk_size"))

    @property
    def user_agent(self) -> str:
        return self._user_agent

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": "Bearer {}".format(self._credential.token),
            "User-Agent": self._user_agent,
        }

    def build_url(self, path: str, version: Optional[int] = None) -> str:
        if not path.startswith("/"):
            path = "/" + path
        version = version if version is not None else self.version
        if version is not None:
            return "{}/v{}{}".format(self.endpoint, version, path)
        return "{}{}".format(self.endpoint, path)

    def select_timeout(self, path: str, timeout: Optional[float] = None) -> float:
        if timeout is not None:
            return timeout
        if not path.startswith("/"):
            path = "/" + path
        if path in LONG_TIMEOUT_PATHS:
            return self.long_timeout
        return self.default_timeout

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def send_request(
        self,
        path: str,
        method: str = "POST",
        fields: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        version: Optional[int] = None,
    ) -> Any:
        """Send a request with retries and return the decoded result.

        Args:
            path: Endpoint path, e.g. "/convert/file".
            method: "GET" or "POST".
            fields: Form fields; str values become form data, FileField
                values become multipart file parts.
            timeout: Per-attempt deadline in seconds (overrides the
                default/long selection).
            version: API version to put in the URL (defaults to the
                client's version).

        Returns:
            The decoded JSON payload, or the open httpx.Response when the
            body is not JSON.

        Raises:
            VertopalError: SERVICE kinds for service errors,
                INVALID_JSON_RESPONSE, HTTP_RESPONSE, or
                NETWORK_CONNECTION once retries are exhausted.
        """
        client = self._ensure_client()
        method = method.upper()
        if method not in ("GET", "POST"):
            raise ValueError("method must be GET or POST, got {!r}".format(method))

        url = self.build_url(path, version)
        deadline = self.select_timeout(path, timeout)
        data, file_fields = parse_field_parameters(
            fields, {APP_ID_PLACEHOLDER: self._credential.app}
        )

        # Buffer uploads once so every attempt sends identical bytes.
        files = {}
        for name, field in file_fields.items():
            content = await collect_bytes(field.stream, field.chunk_size)
            files[name] = (field.filename, content, field.content_type)

        retries = self.retries
        last_error: Optional[BaseException] = None

        for attempt in range(1, retries + 1):
            request = self._build_request(client, method, url, data, files, deadline)
            logger.debug("%s %s (attempt %d/%d)", method, url, attempt, retries)
            try:
                return await asyncio.wait_for(self._attempt(client, request), deadline)
            except _TRANSPORT_ERRORS as exc:
                last_error = exc
                if attempt < retries:
                    delay = 2 ** attempt
                    logger.warning(
                        "Request to %s failed (%s: %s); retrying in %ds",
                        path, type(exc).__name__, exc, delay,
                    )
                    await self._sleep(delay)

        raise VertopalError(
            ErrorKind.NETWORK_CONNECTION,
            "All {} retries failed! Error: {}".format(retries, last_error),
        ) from last_error

    def _build_request(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        data: Dict[str, str],
        files: Dict[str, Tuple[str, bytes, str]],
        timeout: float,
    ) -> httpx.Request:
        if method == "GET":
            return client.build_request(
                "GET", url, params=data, timeout=httpx.Timeout(timeout)
            )
        return client.build_request(
            "POST",
            url,
            data=data or None,
            files=files or None,
            timeout=httpx.Timeout(timeout),
        )

    async def _attempt(self, client: httpx.AsyncClient, request: httpx.Request) -> Any:
        response = await client.send(request, stream=True)
        content_type = response.headers.get("Content-Type", "")

        if "application/json" in content_type:
            try:
                await response.aread()
            finally:
                await response.aclose()
            try:
                payload = response.json()
            except ValueError as exc:
                raise VertopalError(
                    ErrorKind.INVALID_JSON_RESPONSE,
                    "Invalid JSON response from {}: {}".format(request.url, exc),
                ) from exc
            raise_for_response(payload)
            return payload

        if response.is_error:
            try:
                await response.aread()
            finally:
                await response.aclose()
            if response.is_server_error:
                response.raise_for_status()
            raise VertopalError(
                ErrorKind.HTTP_RESPONSE,
                "HTTP {} from {}: {}".format(
                    response.status_code, request.url, response.text[:200]
                ),
            )

        return response
