"""Application ID and security token for authenticating with Vertopal.

WHY: Every request needs the app ID (inside the request body) and the
token (as a Bearer header). Keeping both in one immutable object means a
client cannot end up half-configured or have its identity changed after
construction.

HOW: A frozen dataclass validated in __post_init__. from_config() reads the
"api" section of a Config.

RULES:
- app and token must be non-empty strings (whitespace-only is empty)
- Instances are immutable; build a new one to switch accounts
- repr() never shows the token
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from vertopal_converter.config import Config
from vertopal_converter.config import config as default_config


@dataclass(frozen=True)
class Credential:
    """Immutable (app, token) pair."""

    app: str
    token: str = field(repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.app, str) or not self.app.strip():
            raise ValueError("Application ID must be a non-empty string")
        if not isinstance(self.token, str) or not self.token.strip():
            raise ValueError("Security token must be a non-empty string")

    def is_valid(self) -> bool:
        return bool(self.app and self.token)

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> Credential:
        """Build a Credential from the "api" section of ``config``.

        Raises:
            ValueError: If the configured app or token is missing or empty.
        """
        cfg = config or default_config
        return cls(
            app=cfg.get("api", "app", ""),
            token=cfg.get("api", "token", ""),
        )
