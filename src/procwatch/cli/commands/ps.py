from __future__ import annotations

import click

from procwatch.cli.common import cli_error_handler
from procwatch.cli.context import async_command, get_cli_context
from procwatch.cli.output import (
    OutputFormat,
    format_process_table,
    processes_to_json,
)
from procwatch.monitor.snapshot import ProcessSnapshotClient


@click.command()
@click.option(
    "--running",
    "running_only",
    is_flag=True,
    default=False,
    help="Only list running tasks.",
)
@click.option(
    "-f",
    "--format",
    "fmt",
    type=click.Choice([f.value for f in OutputFormat]),
    default=OutputFormat.TEXT.value,
    help="Output format.",
)
@click.pass_context
@async_command
async def ps(ctx: click.Context, running_only: bool, fmt: str) -> None:
    """List worker processes known to the supervisor.

    Examples:

        procwatch ps

        procwatch ps --running --format json
    """
    api = get_cli_context(ctx).config.api

    with cli_error_handler():
        async with ProcessSnapshotClient(
            api.base_url, timeout=api.request_timeout
        ) as client:
            if running_only:
                processes = await client.fetch_running()
            else:
                processes = await client.fetch_processes()

    if OutputFormat(fmt) == OutputFormat.JSON:
        click.echo(processes_to_json(processes))
    else:
        click.echo(format_process_table(processes))
