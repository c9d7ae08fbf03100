"""CLI entry point for procwatch.

This module defines the click-based command-line interface.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import click

from procwatch import __version__
from procwatch.cli.commands import kill, logs, ps, watch
from procwatch.cli.context import CLIContext, ExitCode
from procwatch.cli.output import format_error
from procwatch.config import load_config
from procwatch.exceptions import ConfigError
from procwatch.logging import configure_logging

_VERBOSITY_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="procwatch")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=False, path_type=str),
    default=None,
    help="Path to config file (overrides ./procwatch.yaml).",
)
@click.option(
    "--base-url",
    default=None,
    help="Supervisor API base URL (overrides config).",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for INFO, -vv for DEBUG).",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress non-essential output (ERROR level only).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: str | None,
    base_url: str | None,
    verbose: int,
    quiet: bool,
) -> None:
    """procwatch - live monitor for asynchronous task workers."""
    ctx.ensure_object(dict)

    config_path = Path(config_file) if config_file else None
    overrides: dict[str, Any] = {}
    if base_url:
        overrides["api"] = {"base_url": base_url}

    try:
        config = load_config(config_path, **overrides)
    except ConfigError as e:
        details = []
        if e.field:
            details.append(f"Field: {e.field}")
        if e.value is not None:
            details.append(f"Value: {e.value}")
        click.echo(format_error(e.message, details=details), err=True)
        ctx.exit(ExitCode.FAILURE)

    ctx.obj["cli_ctx"] = CLIContext(
        config=config,
        config_path=config_path,
        verbosity=verbose,
        quiet=quiet,
    )

    # Priority: quiet > verbose > config
    if quiet:
        level = logging.ERROR
    elif verbose > 0:
        level = logging.INFO if verbose == 1 else logging.DEBUG
    else:
        level = _VERBOSITY_LEVELS.get(config.verbosity, logging.WARNING)

    configure_logging(level=level)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(ps)
cli.add_command(logs)
cli.add_command(kill)
cli.add_command(watch)

if __name__ == "__main__":
    cli()
