"""procwatch CLI commands."""

from __future__ import annotations

from procwatch.cli.commands.kill import kill
from procwatch.cli.commands.logs import logs
from procwatch.cli.commands.ps import ps
from procwatch.cli.commands.watch import watch

__all__ = ["kill", "logs", "ps", "watch"]
