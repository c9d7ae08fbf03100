from __future__ import annotations

import click

from procwatch.cli.common import cli_error_handler
from procwatch.cli.context import async_command, get_cli_context
from procwatch.monitor.control import TaskControlClient


@click.command()
@click.argument("task_id")
@click.pass_context
@async_command
async def kill(ctx: click.Context, task_id: str) -> None:
    """Terminate the worker process running TASK_ID.

    Examples:

        procwatch kill 3f2a9c1e-...
    """
    api = get_cli_context(ctx).config.api

    with cli_error_handler():
        async with TaskControlClient(
            api.base_url, timeout=api.request_timeout
        ) as control:
            await control.terminate(task_id)

    click.echo(f"Terminated {task_id}")
