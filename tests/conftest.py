"""Shared test fixtures for the vertopal_converter test suite.

WHY: Most test modules drive a client against a fake Vertopal service.
Centralizing the fake config, the sleep recorder, and the request
decoding helpers keeps every module talking to the same fake.

HOW: Fixtures hand out a Config pointed at a fake endpoint with the
free credentials, an async sleep that records its argument instead of
sleeping, and small helpers for reading the ``data`` JSON field out of
an httpx.Request captured by httpx.MockTransport.

RULES:
- No test ever reaches the network (every client gets a MockTransport)
- No test ever really sleeps (every client gets the recorder)
- Config fixtures are fresh instances; the process-wide config is
  never mutated
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List
from urllib.parse import parse_qs

import httpx
import pytest

from vertopal_converter.config import Config

FAKE_ENDPOINT = "https://api.vertopal.test"


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def request_payload(request: httpx.Request) -> Dict[str, Any]:
    """Decode the JSON carried in the ``data`` field of a captured request.

    Handles both urlencoded bodies (plain calls) and multipart bodies
    (uploads).
    """
    body = request.read()
    content_type = request.headers.get("Content-Type", "")

    if content_type.startswith("multipart/form-data"):
        match = re.search(
            rb'name="data"\r\n\r\n(.*?)\r\n--', body, re.DOTALL
        )
        assert match, "multipart body has no data field"
        return json.loads(match.group(1).decode("utf-8"))

    if request.method == "GET":
        fields = parse_qs(request.url.query.decode("utf-8"))
    else:
        fields = parse_qs(body.decode("utf-8"))
    return json.loads(fields["data"][0])


def json_response(payload: Dict[str, Any], status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=payload)


@pytest.fixture
def test_config() -> Config:
    """A Config aimed at a fake endpoint, with three retries and short timeouts."""
    return Config(
        overrides={
            "api": {"app": "test-app", "token": "test-token", "endpoint": FAKE_ENDPOINT},
            "connection_settings": {
                "retries": 3,
                "default_timeout": 5.0,
                "long_timeout": 10.0,
                "stream_chunk_size": 4,
            },
        }
    )


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()
