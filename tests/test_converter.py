"""Tests for the upload → convert → poll → download workflow.

WHY: The workflow is where the separate API calls have to line up: the
right connector passed along, polling that stops at the right time,
and the difference between "task completed" and "conversion
succeeded". A fake service lets every path run in milliseconds.

HOW: _FakeVertopal answers each endpoint from a per-path script (the
last scripted answer repeats). The poll sleep is a recorder, so the
interval schedule is asserted exactly.

RULES:
- init() never polls when the task is not running
- wait() sleeps poll_intervals[0], [1], ... then repeats the last one
- successful() is False for a completed task whose conversion failed
- use_server_filename swaps in the service's filename for path outputs
"""

from __future__ import annotations

import asyncio
from typing import Dict, List

import httpx
import pytest

from conftest import json_response, request_payload
from vertopal_converter.api.errors import ErrorKind, VertopalError
from vertopal_converter.converter import Conversion, ConversionState, Converter
from vertopal_converter.io.adapters import BytesInput, BytesOutput, FileInput, FileOutput


RUNNING = {"result": {"output": {"entity": {"status": "running"}}}}


def _completed(convert_status: str = "successful", vcredits: float = 2) -> Dict:
    return {
        "result": {
            "output": {
                "entity": {"status": "completed", "vcredits": vcredits},
                "result": {"output": {"status": convert_status}},
            }
        }
    }


class _FakeVertopal:
    """MockTransport handler scripted per endpoint path."""

    def __init__(
        self,
        polls: List[Dict],
        entity_status: str = "running",
        server_name: str = "report.docx",
    ) -> None:
        self.scripts: Dict[str, List[httpx.Response]] = {
            "/v1/upload/file": [json_response({"result": {"output": {"connector": "up-1"}}})],
            "/v1/convert/file": [
                json_response({"entity": {"id": "task-1", "status": entity_status}})
            ],
            "/v1/task/response": [json_response(p) for p in polls],
            "/v1/download/url": [
                json_response({"result": {"output": {"connector": "dl-1", "name": server_name}}})
            ],
            "/v1/download/url/get": [
                httpx.Response(
                    200,
                    content=b"DOCX-BYTES",
                    headers={"Content-Type": "application/octet-stream"},
                )
            ],
        }
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        script = self.scripts[request.url.path]
        return script.pop(0) if len(script) > 1 else script[0]

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


def _converter(service, test_config, sleeps) -> Converter:
    return Converter(
        config=test_config,
        transport=httpx.MockTransport(service),
        sleep=sleeps,
    )


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestHappyPath:
    def test_full_conversion(self, test_config, sleeps):
        """running, running, completed: two poll sleeps, then download."""
        service = _FakeVertopal([RUNNING, RUNNING, _completed()])
        output = BytesOutput()
        statuses = []
        poll_sleeps = []

        async def record(seconds):
            poll_sleeps.append(seconds)

        async def go():
            async with _converter(service, test_config, sleeps) as converter:
                conversion = await converter.convert(
                    BytesInput(b"pdf", filename="report.pdf"),
                    output,
                    "docx",
                    "pdf",
                    on_status=statuses.append,
                )
                assert conversion.state is ConversionState.CONVERTING
                assert conversion.connector == "task-1"
                await conversion.wait(sleep=record)
                assert conversion.state is ConversionState.COMPLETED
                assert conversion.successful()
                await conversion.download()
                return conversion

        conversion = asyncio.run(go())

        assert output.data == b"DOCX-BYTES"
        assert conversion.credits_used == 2
        assert conversion.task_status == "completed"
        assert conversion.convert_status == "successful"
        assert poll_sleeps == [10, 10]
        assert sleeps.calls == []
        assert service.paths() == [
            "/v1/upload/file",
            "/v1/convert/file",
            "/v1/task/response",
            "/v1/task/response",
            "/v1/task/response",
            "/v1/download/url",
            "/v1/download/url/get",
        ]
        assert request_payload(service.requests[2])["connector"] == "task-1"
        assert request_payload(service.requests[6])["connector"] == "dl-1"
        assert any("Uploading" in s for s in statuses)

    def test_server_filename_for_file_output(self, test_config, sleeps, tmp_path):
        service = _FakeVertopal([_completed()])
        source = tmp_path / "in.pdf"
        source.write_bytes(b"%PDF")
        output = FileOutput(tmp_path / "out" / "chosen.docx")

        async def go():
            async with _converter(service, test_config, sleeps) as converter:
                conversion = await converter.convert(FileInput(source), output, "docx")
                await conversion.wait(sleep=sleeps)
                await conversion.download(use_server_filename=True)

        asyncio.run(go())

        assert output.path == tmp_path / "out" / "report.docx"
        assert output.path.read_bytes() == b"DOCX-BYTES"
        assert not (tmp_path / "out" / "chosen.docx").exists()

    def test_server_filename_for_memory_output(self, test_config, sleeps):
        service = _FakeVertopal([_completed()])
        output = BytesOutput()

        async def go():
            async with _converter(service, test_config, sleeps) as converter:
                conversion = await converter.convert(BytesInput(b"x"), output, "docx")
                await conversion.wait(sleep=sleeps)
                await conversion.download(use_server_filename=True)

        asyncio.run(go())
        assert output.path == "report.docx"
        assert output.data == b"DOCX-BYTES"

    @pytest.mark.parametrize(
        "server_name",
        ["../escape/report.docx", "sub/dir/report.docx", "..\\win\\report.docx"],
    )
    def test_server_filename_stays_in_output_directory(
        self, test_config, sleeps, tmp_path, server_name
    ):
        """Directory parts of the service's filename are ignored."""
        service = _FakeVertopal([_completed()], server_name=server_name)
        out_dir = tmp_path / "out"
        output = FileOutput(out_dir / "chosen.docx")

        async def go():
            async with _converter(service, test_config, sleeps) as converter:
                conversion = await converter.convert(BytesInput(b"x"), output, "docx")
                await conversion.wait(sleep=sleeps)
                await conversion.download(use_server_filename=True)

        asyncio.run(go())

        assert output.path == out_dir / "report.docx"
        assert output.path.read_bytes() == b"DOCX-BYTES"
        assert not (tmp_path / "escape").exists()

    def test_unusable_server_filename_keeps_destination(self, test_config, sleeps, tmp_path):
        service = _FakeVertopal([_completed()], server_name="..")
        output = FileOutput(tmp_path / "chosen.docx")

        async def go():
            async with _converter(service, test_config, sleeps) as converter:
                conversion = await converter.convert(BytesInput(b"x"), output, "docx")
                await conversion.wait(sleep=sleeps)
                await conversion.download(use_server_filename=True)

        asyncio.run(go())
        assert output.path == tmp_path / "chosen.docx"
        assert output.path.read_bytes() == b"DOCX-BYTES"


# ---------------------------------------------------------------------------
# Failures and guards
# ---------------------------------------------------------------------------


class TestGuards:
    def test_not_running_task_never_polls(self, test_config, sleeps):
        service = _FakeVertopal([RUNNING], entity_status="failed")

        async def go():
            async with _converter(service, test_config, sleeps) as converter:
                await converter.convert(BytesInput(b"x"), BytesOutput(), "docx")

        with pytest.raises(VertopalError) as exc_info:
            asyncio.run(go())

        assert exc_info.value.kind is ErrorKind.ENTITY_STATUS_NOT_RUNNING
        assert "/v1/task/response" not in service.paths()

    def test_failed_init_returns_to_created(self, test_config, sleeps):
        service = _FakeVertopal([RUNNING], entity_status="failed")
        states = []

        async def go():
            async with _converter(service, test_config, sleeps) as converter:
                conversion = Conversion(converter.client, BytesInput(b"x"), BytesOutput(), "docx")
                try:
                    await conversion.init()
                finally:
                    states.append(conversion.state)
                    states.append(conversion.connector)

        with pytest.raises(VertopalError):
            asyncio.run(go())
        assert states == [ConversionState.CREATED, None]

    def test_malformed_task_envelope(self, test_config, sleeps):
        """A task response missing result.output is a typed failure."""
        service = _FakeVertopal([{"result": {}}])

        async def go():
            async with _converter(service, test_config, sleeps) as converter:
                conversion = await converter.convert(BytesInput(b"x"), BytesOutput(), "docx")
                await conversion.wait(sleep=sleeps)

        with pytest.raises(VertopalError) as exc_info:
            asyncio.run(go())
        assert exc_info.value.kind is ErrorKind.INVALID_JSON_RESPONSE

    def test_html_answer_from_convert_endpoint(self, test_config, sleeps):
        """A proxy page in place of JSON is rejected, not indexed."""
        service = _FakeVertopal([RUNNING])
        service.scripts["/v1/convert/file"] = [
            httpx.Response(200, text="<html>login</html>", headers={"Content-Type": "text/html"})
        ]

        async def go():
            async with _converter(service, test_config, sleeps) as converter:
                await converter.convert(BytesInput(b"x"), BytesOutput(), "docx")

        with pytest.raises(VertopalError) as exc_info:
            asyncio.run(go())
        assert exc_info.value.kind is ErrorKind.INVALID_JSON_RESPONSE
        assert "/v1/task/response" not in service.paths()

    def test_failed_conversion_is_not_successful(self, test_config, sleeps):
        service = _FakeVertopal([_completed("failed", vcredits=0)])

        async def go():
            async with _converter(service, test_config, sleeps) as converter:
                conversion = await converter.convert(BytesInput(b"x"), BytesOutput(), "docx")
                await conversion.wait(sleep=sleeps)
                return conversion

        conversion = asyncio.run(go())
        assert conversion.task_status == "completed"
        assert not conversion.successful()
        assert conversion.credits_used == 0

    def test_missing_input_file(self, test_config, sleeps, tmp_path):
        service = _FakeVertopal([RUNNING])

        async def go():
            async with _converter(service, test_config, sleeps) as converter:
                await converter.convert(FileInput(tmp_path / "nope.pdf"), BytesOutput(), "docx")

        with pytest.raises(VertopalError) as exc_info:
            asyncio.run(go())
        assert exc_info.value.kind is ErrorKind.INPUT_NOT_FOUND
        assert service.requests == []

    def test_empty_output_format(self, test_config, sleeps):
        service = _FakeVertopal([RUNNING])
        client = Converter(config=test_config, transport=httpx.MockTransport(service)).client
        with pytest.raises(ValueError):
            Conversion(client, BytesInput(b"x"), BytesOutput(), " . ")

    def test_poll_before_init(self, test_config, sleeps):
        service = _FakeVertopal([RUNNING])

        async def go():
            async with _converter(service, test_config, sleeps) as converter:
                conversion = Conversion(converter.client, BytesInput(b"x"), BytesOutput(), "docx")
                assert conversion.state is ConversionState.CREATED
                await conversion.done()

        with pytest.raises(RuntimeError):
            asyncio.run(go())


# ---------------------------------------------------------------------------
# Poll schedule
# ---------------------------------------------------------------------------


class TestWait:
    def _wait(self, service, test_config, sleeps, intervals):
        async def go():
            async with _converter(service, test_config, sleeps) as converter:
                conversion = await converter.convert(BytesInput(b"x"), BytesOutput(), "docx")
                await conversion.wait(intervals, sleep=sleeps)

        asyncio.run(go())

    def test_last_interval_repeats(self, test_config, sleeps):
        service = _FakeVertopal([RUNNING] * 5 + [_completed()])
        self._wait(service, test_config, sleeps, (1, 2, 3))
        assert sleeps.calls == [1, 2, 3, 3, 3]

    def test_already_completed_never_sleeps(self, test_config, sleeps):
        service = _FakeVertopal([_completed()])
        self._wait(service, test_config, sleeps, (1, 2))
        assert sleeps.calls == []

    @pytest.mark.parametrize("intervals", [(), (0,), (-1, 5), ("10",), (True,)])
    def test_invalid_interval(self, test_config, sleeps, intervals):
        service = _FakeVertopal([RUNNING, _completed()])
        with pytest.raises(ValueError):
            self._wait(service, test_config, sleeps, intervals)
        assert sleeps.calls == []

    def test_invalid_interval_checked_lazily(self, test_config, sleeps):
        """A bad value past the point where the task completes is never read."""
        service = _FakeVertopal([RUNNING, _completed()])
        self._wait(service, test_config, sleeps, (0.5, "bad"))
        assert sleeps.calls == [0.5]
