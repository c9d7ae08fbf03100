"""procwatch exception hierarchy.

All exceptions can be imported from this package:
    from procwatch.exceptions import ControlError, FetchError, ProcwatchError
"""

from __future__ import annotations

from procwatch.exceptions.base import ProcwatchError
from procwatch.exceptions.config import ConfigError
from procwatch.exceptions.monitor import (
    ControlError,
    DecodeError,
    FetchError,
    MonitorError,
    StreamError,
)

__all__ = [
    # Base
    "ProcwatchError",
    # Config
    "ConfigError",
    # Monitor
    "MonitorError",
    "FetchError",
    "StreamError",
    "ControlError",
    "DecodeError",
]
