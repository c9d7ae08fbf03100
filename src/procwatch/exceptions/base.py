from __future__ import annotations


class ProcwatchError(Exception):
    """Base exception class for all procwatch-specific errors.

    Everything raised deliberately by procwatch derives from this class, so
    the CLI can catch one type at its boundary while programming errors
    still propagate with a traceback.

    Attributes:
        message: Human-readable error message describing what went wrong.

    Example:
        ```python
        try:
            await control.terminate(task_id)
        except ProcwatchError as e:
            click.echo(format_error(e.message), err=True)
            raise SystemExit(ExitCode.FAILURE) from e
        ```
    """

    def __init__(self, message: str) -> None:
        """Initialize the ProcwatchError.

        Args:
            message: Human-readable error message.
        """
        self.message = message
        super().__init__(message)
