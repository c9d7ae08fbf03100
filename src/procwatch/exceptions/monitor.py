from __future__ import annotations

from procwatch.exceptions.base import ProcwatchError


class MonitorError(ProcwatchError):
    """Base exception for failures talking to the process supervisor backend."""


class FetchError(MonitorError):
    """Exception for snapshot and stats query failures.

    Raised for transport errors, timeouts, non-2xx responses, and bodies that
    are not JSON or do not match the expected shape. Callers treat it as
    "keep the last good state and try again on the next poll".

    Attributes:
        message: Human-readable error message.
        endpoint: Path of the query that failed (e.g., "/ai/process/list").
        status: HTTP status code if a response was received.
    """

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status: int | None = None,
    ) -> None:
        """Initialize the FetchError.

        Args:
            message: Human-readable error message.
            endpoint: Path of the failed query.
            status: HTTP status code, when available.
        """
        self.endpoint = endpoint
        self.status = status
        super().__init__(message)


class StreamError(MonitorError):
    """Exception for log stream connection failures.

    Only surfaces from ``LogStreamConnection.start()`` when the handshake
    fails. Failures after the handshake are reported as a transition to
    ``ConnectionState.CLOSED`` instead.

    Attributes:
        message: Human-readable error message.
        url: Stream URL that could not be opened.
    """

    def __init__(self, message: str, url: str | None = None) -> None:
        """Initialize the StreamError.

        Args:
            message: Human-readable error message.
            url: Stream URL that could not be opened.
        """
        self.url = url
        super().__init__(message)


class ControlError(MonitorError):
    """Exception for rejected or undeliverable task commands.

    Attributes:
        message: Human-readable error message.
        task_id: Task the command targeted.
        status: HTTP status code if the backend answered.
    """

    def __init__(
        self,
        message: str,
        task_id: str | None = None,
        status: int | None = None,
    ) -> None:
        """Initialize the ControlError.

        Args:
            message: Human-readable error message.
            task_id: Task the command targeted.
            status: HTTP status code, when available.
        """
        self.task_id = task_id
        self.status = status
        super().__init__(message)


class DecodeError(MonitorError):
    """Exception for a stream frame that cannot be decoded.

    Internal to the stream reader: frames that raise this are dropped and the
    connection keeps reading.

    Attributes:
        message: Human-readable error message.
        payload: Raw frame payload that failed to decode.
    """

    def __init__(self, message: str, payload: str | None = None) -> None:
        """Initialize the DecodeError.

        Args:
            message: Human-readable error message.
            payload: Raw frame payload.
        """
        self.payload = payload
        super().__init__(message)
