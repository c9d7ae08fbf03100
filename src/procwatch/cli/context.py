"""CLI context and utilities for procwatch.

Bridges click's synchronous commands to the asyncio monitor.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any, TypeVar

import click

from procwatch.config import ProcwatchConfig

__all__ = [
    "ExitCode",
    "CLIContext",
    "async_command",
    "get_cli_context",
]


class ExitCode(IntEnum):
    """Standard exit codes for the procwatch CLI.

    - 0 for success
    - 1 for failure
    - 130 for keyboard interrupt (128 + SIGINT=2)
    """

    SUCCESS = 0
    FAILURE = 1
    INTERRUPTED = 130


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Global options and configuration shared by every command.

    Attributes:
        config: Loaded procwatch configuration.
        config_path: Path to config file (if specified via --config).
        verbosity: Verbosity level (0=default, 1=INFO, 2+=DEBUG).
        quiet: Suppress non-essential output.
    """

    config: ProcwatchConfig
    config_path: Path | None = None
    verbosity: int = 0
    quiet: bool = False


def get_cli_context(ctx: click.Context) -> CLIContext:
    cli_ctx: CLIContext = ctx.obj["cli_ctx"]
    return cli_ctx


F = TypeVar("F", bound=Callable[..., Any])


def async_command(f: F) -> F:
    """Decorator to run async click commands with asyncio.run().

    Example:
        >>> @click.command()
        >>> @async_command
        >>> async def ps(ctx: click.Context) -> None:
        >>>     ...
    """

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return asyncio.run(f(*args, **kwargs))

    return wrapper  # type: ignore[return-value]
