from __future__ import annotations

import asyncio

import click
from rich.markup import escape

from procwatch.cli.common import cli_error_handler
from procwatch.cli.console import console
from procwatch.cli.context import get_cli_context
from procwatch.cli.output import format_log_line, format_summary
from procwatch.config import ProcwatchConfig
from procwatch.models import ConnectionState, LogChannel
from procwatch.monitor.controller import ChangeKind, ReconciliationController

_CHANNEL_STYLES: dict[LogChannel, str] = {
    LogChannel.STDOUT: "",
    LogChannel.STDERR: "red",
    LogChannel.SYSTEM: "cyan",
}

_STATE_STYLES: dict[ConnectionState, str] = {
    ConnectionState.CONNECTING: "yellow",
    ConnectionState.OPEN: "green",
    ConnectionState.CLOSED: "red",
}


class _WatchPrinter:
    """Prints controller changes as they happen."""

    def __init__(
        self, controller: ReconciliationController, task_filter: str | None
    ) -> None:
        self._controller = controller
        self._task_filter = task_filter
        self._last_summary: str | None = None

    def __call__(self, kind: ChangeKind, task_id: str | None) -> None:
        if kind == "logs" and task_id is not None:
            self._print_latest_log(task_id)
        elif kind == "connection":
            state = self._controller.connection_state()
            console.print(f"[{_STATE_STYLES[state]}]stream {state.value}[/]")
        else:
            self._print_summary()

    def _print_latest_log(self, task_id: str) -> None:
        if self._task_filter and not task_id.startswith(self._task_filter):
            return
        records = self._controller.logs_for(task_id)
        if not records:
            return
        record = records[-1]
        style = _CHANNEL_STYLES[record.channel]
        line = escape(format_log_line(task_id, record))
        console.print(f"[{style}]{line}[/]" if style else line)

    def _print_summary(self) -> None:
        summary = format_summary(
            self._controller.status_counts(),
            self._controller.stats(),
            self._controller.connection_state(),
        )
        if summary != self._last_summary:
            self._last_summary = summary
            console.print(f"[bold]{escape(summary)}[/]")


async def _run_watch(
    config: ProcwatchConfig, duration: float | None, task_filter: str | None
) -> None:
    controller = ReconciliationController.from_config(config)
    controller.add_listener(_WatchPrinter(controller, task_filter))

    async with controller:
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)


@click.command()
@click.option(
    "--duration",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Stop after this many seconds (default: run until interrupted).",
)
@click.option(
    "--task",
    "task_filter",
    default=None,
    help="Only print log lines of tasks whose id starts with this prefix.",
)
@click.pass_context
def watch(ctx: click.Context, duration: float | None, task_filter: str | None) -> None:
    """Follow every task's live output and status.

    Status is reconciled against the supervisor every polling interval,
    so it stays accurate even when the stream drops.

    Examples:

        procwatch watch

        procwatch watch --duration 60 --task 3f2a
    """
    config = get_cli_context(ctx).config

    with cli_error_handler():
        asyncio.run(_run_watch(config, duration, task_filter))
