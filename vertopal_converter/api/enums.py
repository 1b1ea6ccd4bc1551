"""Request mode enumerations for the Vertopal API."""

from __future__ import annotations

import enum


class InterfaceStrategyMode(str, enum.Enum):
    """Whether the service runs a task in the background or inline.

    The conversion workflow always uses ASYNC and polls for completion.
    """

    ASYNC = "async"
    SYNC = "sync"


class InterfaceSublistMode(str, enum.Enum):
    """Which side of the conversion graph /convert/formats should list."""

    INPUTS = "inputs"
    OUTPUTS = "outputs"
