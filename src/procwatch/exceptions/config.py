from __future__ import annotations

from typing import Any

from procwatch.exceptions.base import ProcwatchError


class ConfigError(ProcwatchError):
    """Exception for configuration loading, parsing, and validation errors.

    Covers YAML parse failures, pydantic validation errors, and invalid
    PROCWATCH_* environment variable values.

    Attributes:
        message: Human-readable error message describing the configuration issue.
        field: Optional dotted field name that caused the error
            (e.g., "polling.interval_seconds").
        value: Optional value that failed validation (for debugging).

    Examples:
        ```python
        raise ConfigError(
            "Invalid configuration: Input should be greater than 0",
            field="polling.interval_seconds",
            value=-1,
        )
        ```
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        """Initialize the ConfigError.

        Args:
            message: Human-readable error message.
            field: Optional field name that caused the error.
            value: Optional value that failed validation.
        """
        self.field = field
        self.value = value
        super().__init__(message)
