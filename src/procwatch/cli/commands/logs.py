from __future__ import annotations

import click

from procwatch.cli.common import cli_error_handler
from procwatch.cli.context import async_command, get_cli_context
from procwatch.cli.output import format_duration, format_log_line
from procwatch.monitor.snapshot import ProcessSnapshotClient


@click.command()
@click.argument("task_id")
@click.pass_context
@async_command
async def logs(ctx: click.Context, task_id: str) -> None:
    """Print the log history the supervisor holds for TASK_ID.

    Only covers tasks still in the supervisor's memory.

    Examples:

        procwatch logs 3f2a9c1e-...
    """
    api = get_cli_context(ctx).config.api

    with cli_error_handler():
        async with ProcessSnapshotClient(
            api.base_url, timeout=api.request_timeout
        ) as client:
            history = await client.fetch_task_logs(task_id)

    status = history.status.value if history.status is not None else "unknown"
    click.echo(f"Task {history.task_id} ({status})")
    if history.error:
        click.echo(f"Error: {history.error}")
    if not history.logs:
        click.echo("No logs")
        return
    for record in history.logs:
        click.echo(format_log_line(history.task_id, record))
    if history.start_time is not None:
        elapsed = history.logs[-1].timestamp - history.start_time
        click.echo(f"-- {len(history.logs)} lines over {format_duration(elapsed)}")
