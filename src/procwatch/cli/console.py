"""Shared Rich Console instance for procwatch CLI output.

Rich handles TTY detection: styled output in terminals, plain text when
piped.
"""

from __future__ import annotations

from rich.console import Console

__all__ = ["console"]

console = Console(highlight=False)
