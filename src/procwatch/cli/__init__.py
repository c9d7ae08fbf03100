"""Command-line interface for procwatch."""

from __future__ import annotations

from procwatch.cli.context import CLIContext, ExitCode, async_command

__all__ = ["CLIContext", "ExitCode", "async_command"]
