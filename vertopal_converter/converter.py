"""Upload → convert → poll → download workflow for a single file.

WHY: Converting a file is a multi-step conversation with the service, and
the steps have to happen in order: the upload connector must exist before
a conversion can be requested, the conversion must be running before it
is polled, and it must be completed before its result can be fetched.
Conversion packages that sequence (and the state it produces) so callers
only deal with "start", "wait", "check", and "download".

HOW: Conversion holds one VertopalClient, the input/output specs, and the
state learned from the service. Every transition happens inside an
awaited method call; there is no background task. Converter is the
entry point: it owns the client (async context manager) and returns
initialized Conversion objects.

RULES:
- init() raises VertopalError(ENTITY_STATUS_NOT_RUNNING) if the convert
  call does not report a running task; polling never starts in that case
- wait() polls until the task status is "completed", sleeping
  poll_intervals[i] seconds between polls; i advances once per poll and
  stays on the last interval once the sequence is used up
- wait() raises ValueError if the interval it needs is not a positive number
- done() reflects the TASK status; successful() reflects the CONVERSION
  status, and a completed task may still be a failed conversion
- credits_used is None until the service reports a result
- A failed init() leaves the state at CREATED
- use_server_filename only ever renames within the destination directory
- One Conversion is not safe for concurrent use; separate Conversions are
"""

from __future__ import annotations

import asyncio
import enum
import logging
import numbers
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Awaitable, Callable, Optional, Sequence

import httpx

from vertopal_converter.api.client import VertopalClient
from vertopal_converter.api.credential import Credential
from vertopal_converter.api.enums import InterfaceStrategyMode
from vertopal_converter.api.errors import ErrorKind, VertopalError
from vertopal_converter.api.models import ConvertResult, DownloadTarget, TaskStatus, UploadResult
from vertopal_converter.config import SLEEP_PATTERN, Config
from vertopal_converter.core.formats import canonicalize_format
from vertopal_converter.io.protocols import PathWritable, Readable, Writable

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]
SleepFn = Callable[[float], Awaitable[Any]]

TASK_RUNNING = "running"
TASK_COMPLETED = "completed"
CONVERT_SUCCESSFUL = "successful"


class ConversionState(str, enum.Enum):
    """Lifecycle of a Conversion.

    CREATED → UPLOADING → CONVERTING → COMPLETED. A failed init() goes
    back to CREATED; a failed poll or download leaves the state as it was.
    """

    CREATED = "created"
    UPLOADING = "uploading"
    CONVERTING = "converting"
    COMPLETED = "completed"


@dataclass
class InputSpec:
    source: Readable
    format: Optional[str] = None


@dataclass
class OutputSpec:
    sink: Writable
    format: str


def _safe_filename(name: Any) -> Optional[str]:
    """Last path component of a service-provided filename, or None if unusable."""
    if not isinstance(name, str):
        return None
    name = PurePosixPath(name.replace("\\", "/")).name
    if name in ("", ".", ".."):
        return None
    return name


def _valid_interval(value: Any) -> bool:
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and value > 0
    )


class Conversion:
    """One file conversion driven through the Vertopal API.

    Args:
        client: An entered VertopalClient.
        readable: Input file.
        writable: Destination for the converted file.
        output_format: Target format[-type].
        input_format: Source format[-type]; inferred by the service if None.
        on_status: Optional callback receiving human-readable progress lines.
    """

    def __init__(
        self,
        client: VertopalClient,
        readable: Readable,
        writable: Writable,
        output_format: str,
        input_format: Optional[str] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> None:
        output = canonicalize_format(output_format)
        if not output:
            raise ValueError("output_format must be a non-empty format name")

        self.input = InputSpec(source=readable, format=canonicalize_format(input_format))
        self.output = OutputSpec(sink=writable, format=output)
        self._client = client
        self._on_status = on_status

        self._state = ConversionState.CREATED
        self._connector: Optional[str] = None
        self._task_status: Optional[str] = None
        self._convert_status: Optional[str] = None
        self._credits: Optional[float] = None

    def _status(self, message: str) -> None:
        logger.info(message)
        if self._on_status:
            self._on_status(message)

    # ------------------------------------------------------------------
    # Observed state
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConversionState:
        return self._state

    @property
    def connector(self) -> Optional[str]:
        """Connector of the running conversion task, once started."""
        return self._connector

    @property
    def task_status(self) -> Optional[str]:
        return self._task_status

    @property
    def convert_status(self) -> Optional[str]:
        return self._convert_status

    @property
    def credits_used(self) -> Optional[float]:
        """vCredits charged for the conversion, once the service reports them."""
        return self._credits

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Upload the input and start an asynchronous conversion.

        Raises:
            VertopalError: ENTITY_STATUS_NOT_RUNNING if the service did not
                start the task, or any error from the upload/convert calls.
        """
        self._state = ConversionState.UPLOADING
        try:
            self._status("Uploading file...")
            upload = UploadResult.from_dict(await self._client.upload_file(self.input.source))

            self._status("Requesting conversion to {}...".format(self.output.format))
            convert = ConvertResult.from_dict(
                await self._client.convert_file(
                    upload.connector,
                    self.output.format,
                    self.input.format,
                    InterfaceStrategyMode.ASYNC,
                )
            )

            if convert.entity_status != TASK_RUNNING:
                raise VertopalError(
                    ErrorKind.ENTITY_STATUS_NOT_RUNNING,
                    "Conversion task {} is {!r}, expected {!r}".format(
                        convert.entity_id, convert.entity_status, TASK_RUNNING
                    ),
                )
        except BaseException:
            self._state = ConversionState.CREATED
            raise

        self._connector = convert.entity_id
        self._task_status = convert.entity_status
        self._state = ConversionState.CONVERTING

    def _require_connector(self) -> str:
        if self._connector is None:
            raise RuntimeError("Conversion has not been started; call init() first")
        return self._connector

    async def _refresh_status(self) -> TaskStatus:
        response = await self._client.task_response(self._require_connector())
        status = TaskStatus.from_dict(response)

        self._task_status = status.task
        self._convert_status = status.convert
        if status.convert is not None:
            self._credits = status.credits
        if status.task == TASK_COMPLETED:
            self._state = ConversionState.COMPLETED
        return status

    async def done(self) -> bool:
        """Probe the task once; True if its status is "completed"."""
        status = await self._refresh_status()
        return status.task == TASK_COMPLETED

    def successful(self) -> bool:
        """True if the last observed conversion status is "successful".

        Only meaningful after done() returned True.
        """
        return self._convert_status == CONVERT_SUCCESSFUL

    async def wait(
        self,
        poll_intervals: Sequence[float] = SLEEP_PATTERN,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Poll until the task completes.

        Args:
            poll_intervals: Seconds to sleep after each unfinished poll.
                The last value is reused for every later poll.
            sleep: Awaitable sleep function, called with seconds.

        Raises:
            ValueError: If the interval needed for the next sleep is not a
                positive number (checked lazily, at the index in use).
        """
        step = 0
        while not await self.done():
            interval = poll_intervals[step] if step < len(poll_intervals) else None
            if not _valid_interval(interval):
                raise ValueError(
                    "poll_intervals[{}] is not a valid number: {!r}".format(step, interval)
                )

            self._status("Converting... (next check in {}s)".format(interval))
            await sleep(interval)

            if step < len(poll_intervals) - 1:
                step += 1

        if self.successful():
            self._status("Conversion complete.")
        else:
            self._status("Conversion finished with status: {}".format(self._convert_status))

    async def download(self, use_server_filename: bool = False) -> None:
        """Stream the converted file into the output Writable.

        Args:
            use_server_filename: Rename the destination to the filename the
                service reports, when the Writable has an assignable path.
                Only the final component of that name is used, so the file
                stays in the destination directory.
        """
        response = await self._client.download_url(self._require_connector())
        target = DownloadTarget.from_dict(response)

        sink = self.output.sink
        if use_server_filename and isinstance(sink, PathWritable):
            name = _safe_filename(target.filename)
            if name:
                sink.path = name

        self._status("Downloading {}...".format(target.filename))
        await self._client.download_url_get(sink, target.connector)


class Converter:
    """Entry point for converting files.

    WHY: Most callers want "convert this file to that format" and nothing
    else. Converter owns the API client and hands out started Conversion
    objects.

    HOW: An async context manager around a VertopalClient.

    RULES:
    - Use as: async with Converter() as converter: ...
    - credential/config default to the process-wide configuration
    - transport is passed through to httpx (tests use MockTransport)
    """

    def __init__(
        self,
        credential: Optional[Credential] = None,
        config: Optional[Config] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.client = VertopalClient(
            credential=credential,
            config=config,
            transport=transport,
            sleep=sleep,
        )

    async def __aenter__(self) -> Converter:
        await self.client.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.client.__aexit__(exc_type, exc_val, exc_tb)

    async def convert(
        self,
        readable: Readable,
        writable: Writable,
        output_format: str,
        input_format: Optional[str] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> Conversion:
        """Upload ``readable`` and start converting it; returns the running Conversion."""
        conversion = Conversion(
            self.client,
            readable,
            writable,
            output_format,
            input_format,
            on_status=on_status,
        )
        await conversion.init()
        return conversion
