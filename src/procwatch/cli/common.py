from __future__ import annotations

import contextlib
from collections.abc import Generator

import click

from procwatch.cli.context import ExitCode
from procwatch.cli.output import format_error
from procwatch.exceptions import ControlError, FetchError, ProcwatchError
from procwatch.logging import get_logger


@contextlib.contextmanager
def cli_error_handler() -> Generator[None, None, None]:
    """Context manager for common CLI error handling.

    Handles common error patterns across CLI commands:
    - KeyboardInterrupt: Exit with code 130
    - FetchError: Format error with endpoint and status
    - ControlError: Format error with the targeted task
    - ProcwatchError: Format error with message
    - Generic exceptions: Log and format error

    Example:
        >>> with cli_error_handler():
        >>>     processes = await client.fetch_processes()
    """
    logger = get_logger(__name__)

    try:
        yield
    except KeyboardInterrupt:
        click.echo("\n\nInterrupted by user.", err=True)
        raise SystemExit(ExitCode.INTERRUPTED) from None
    except FetchError as e:
        details = []
        if e.endpoint:
            details.append(f"Endpoint: {e.endpoint}")
        if e.status is not None:
            details.append(f"Status: {e.status}")
        click.echo(
            format_error(
                e.message,
                details=details,
                suggestion="Check that the supervisor is running and --base-url is correct.",
            ),
            err=True,
        )
        raise SystemExit(ExitCode.FAILURE) from e
    except ControlError as e:
        details = [f"Task: {e.task_id}"] if e.task_id else None
        click.echo(format_error(e.message, details=details), err=True)
        raise SystemExit(ExitCode.FAILURE) from e
    except ProcwatchError as e:
        click.echo(format_error(e.message), err=True)
        raise SystemExit(ExitCode.FAILURE) from e
    except Exception as e:
        logger.exception("Unexpected error in command")
        click.echo(f"Error: {e!s}", err=True)
        raise SystemExit(ExitCode.FAILURE) from e
