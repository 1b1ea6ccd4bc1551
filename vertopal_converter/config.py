"""Configuration defaults, runtime overrides, and .env loading.

WHY: Credentials, the API endpoint, retry counts, timeouts, and the stream
chunk size are all tunable. Keeping them in one nested mapping makes them
easy to find, and a small override layer lets callers (CLI flags, tests)
change them at runtime without touching the defaults.

HOW: python-dotenv loads the .env file on import so the VERTOPAL_* variables
are visible through os.getenv. DEFAULT_CONFIG is built from those variables
with the free public credentials as fallback. The Config class resolves a
value in priority order: override, then default, then the caller's
fallback.

RULES:
- Sections: "api" (app, token, endpoint) and "connection_settings"
  (retries, default_timeout, long_timeout, stream_chunk_size)
- Timeouts are in seconds; stream_chunk_size is in bytes
- endpoint has no version suffix and no trailing slash
- ``config`` is the process-wide instance; update() on it affects every
  client that was not given its own Config, and concurrent updates are
  not synchronized
"""

from __future__ import annotations

import copy
import os
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

# Load .env from the current working directory (where the CLI is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "api": {
        # Free public credentials work for small files; replace them with
        # your own from https://www.vertopal.com/en/account/api/app/new
        "app": os.getenv("VERTOPAL_APP", "free"),
        "token": os.getenv("VERTOPAL_TOKEN", "FREE-TOKEN"),
        "endpoint": os.getenv("VERTOPAL_ENDPOINT", "https://api.vertopal.com").rstrip("/"),
    },
    "connection_settings": {
        "retries": 5,
        "default_timeout": 30.0,
        "long_timeout": 300.0,
        "stream_chunk_size": 4096,
    },
}

USER_AGENT_LIB = "VertopalPythonLib"
"""Library identifier sent as the first part of the User-Agent header."""

SLEEP_PATTERN = (10, 10, 15)
"""Seconds to sleep between status polls; the last value repeats forever."""


class Config:
    """Layered configuration lookup.

    WHY: Clients need one place to read settings from, and callers need a
    way to override a handful of keys without rebuilding the whole
    default mapping.

    HOW: Holds a copy of the defaults plus a nested overrides dict.
    get() checks overrides first, then defaults, then returns fallback.

    RULES:
    - update() merges per section; keys not named in the update survive
    - clear_overrides() restores the defaults exactly
    - Defaults are copied at construction, so mutating DEFAULT_CONFIG
      later does not leak into existing instances
    """

    def __init__(
        self,
        defaults: Optional[Mapping[str, Mapping[str, Any]]] = None,
        overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> None:
        self._defaults: Dict[str, Dict[str, Any]] = copy.deepcopy(
            dict(defaults if defaults is not None else DEFAULT_CONFIG)
        )
        self._overrides: Dict[str, Dict[str, Any]] = {}
        if overrides:
            self.update(overrides)

    def get(self, section: str, key: str, fallback: Any = None) -> Any:
        """Return the value for section/key, or fallback if neither layer has it."""
        section_overrides = self._overrides.get(section)
        if section_overrides and key in section_overrides:
            return section_overrides[key]

        section_defaults = self._defaults.get(section)
        if section_defaults and key in section_defaults:
            return section_defaults[key]

        return fallback

    def update(self, overrides: Mapping[str, Mapping[str, Any]]) -> None:
        """Merge overrides into the current override set, section by section."""
        for section, values in overrides.items():
            self._overrides.setdefault(section, {}).update(values)

    def clear_overrides(self) -> None:
        self._overrides = {}


config = Config()
"""Process-wide configuration used when no Config is passed explicitly."""
