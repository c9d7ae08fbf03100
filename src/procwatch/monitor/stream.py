"""Push-side client: one server-sent event connection carrying log frames.

A LogStreamConnection walks connecting -> open -> closed exactly once.
There is no retry here; whoever owns the connection decides whether and
when to build a new one.

Frames are SSE events whose data is JSON. Only ``{"type": "log", ...}``
frames become LogEvents. Frames that are not JSON or do not match the log
shape are dropped without touching the connection.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
from collections.abc import Callable

import aiohttp
from pydantic import ValidationError

from procwatch.exceptions import DecodeError, StreamError
from procwatch.logging import get_logger
from procwatch.models import ConnectionState, LogEvent, LogRecord

__all__ = [
    "LogStreamConnection",
    "SseFrameParser",
    "decode_frame",
    "EventCallback",
    "StateCallback",
]

logger = get_logger(__name__)

EventCallback = Callable[[LogEvent], None]
StateCallback = Callable[[ConnectionState], None]

#: Seconds allowed for the TCP connect + response headers
DEFAULT_CONNECT_TIMEOUT: float = 10.0


class SseFrameParser:
    """Incremental parser for the text/event-stream format.

    Feed it one line at a time; it returns the event data when a blank line
    completes an event. Only the ``data`` field matters here, so ``event``,
    ``id`` and ``retry`` fields are skipped, as are ``:`` comment lines
    (keep-alives).
    """

    def __init__(self) -> None:
        self._data: list[str] = []

    def feed_line(self, line: str) -> str | None:
        line = line.rstrip("\r\n")
        if not line:
            if not self._data:
                return None
            payload = "\n".join(self._data)
            self._data = []
            return payload
        if line.startswith(":"):
            return None
        name, sep, value = line.partition(":")
        if not sep:
            value = ""
        elif value.startswith(" "):
            value = value[1:]
        if name == "data":
            self._data.append(value)
        return None


def decode_frame(payload: str) -> LogEvent | None:
    """Decode one frame payload.

    Returns:
        The LogEvent for a log frame, or None for a well-formed frame of
        another type.

    Raises:
        DecodeError: If the payload is not JSON or a log frame is malformed.
    """
    try:
        data = json.loads(payload)
    except ValueError as e:
        raise DecodeError("Frame is not valid JSON", payload=payload) from e

    if not isinstance(data, dict):
        raise DecodeError("Frame is not a JSON object", payload=payload)
    if data.get("type") != "log":
        return None

    task_id = data.get("taskId")
    if not isinstance(task_id, str) or not task_id:
        raise DecodeError("Log frame has no taskId", payload=payload)

    try:
        record = LogRecord.model_validate(data.get("log"))
    except ValidationError as e:
        raise DecodeError(f"Log frame has a malformed record: {e}", payload=payload) from e
    return LogEvent(task_id=task_id, record=record)


class LogStreamConnection:
    """A single server-push connection to the log stream endpoint.

    Attributes:
        url: Full URL of the stream endpoint.

    Example:
        ```python
        conn = LogStreamConnection(
            "http://localhost:3000/api/ai/process/stream",
            on_event=store_event,
            on_state=show_indicator,
        )
        await conn.start()
        ...
        await conn.close()
        ```
    """

    def __init__(
        self,
        url: str,
        *,
        on_event: EventCallback,
        on_state: StateCallback | None = None,
        session: aiohttp.ClientSession | None = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        self.url = url
        self._on_event = on_event
        self._on_state = on_state
        self._session = session
        self._owns_session = session is None
        self._connect_timeout = connect_timeout
        self._state = ConnectionState.CONNECTING
        self._response: aiohttp.ClientResponse | None = None
        self._reader: asyncio.Task[None] | None = None
        self._closing = False
        self._started = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state or self._state is ConnectionState.CLOSED:
            return
        self._state = state
        logger.debug("stream_state_changed", url=self.url, state=state.value)
        if self._on_state is not None:
            try:
                self._on_state(state)
            except Exception:
                logger.exception("stream_state_callback_failed", url=self.url)

    async def start(self) -> None:
        """Perform the handshake and begin reading frames in the background.

        Raises:
            StreamError: If the endpoint cannot be reached or does not answer
                with a 2xx status. The connection is closed afterwards.
            RuntimeError: If called twice.
        """
        if self._started:
            raise RuntimeError("LogStreamConnection.start() called twice")
        self._started = True

        if self._session is None:
            self._session = aiohttp.ClientSession()

        try:
            response = await self._session.get(
                self.url,
                headers={
                    "Accept": "text/event-stream",
                    "Cache-Control": "no-cache",
                },
                timeout=aiohttp.ClientTimeout(
                    total=None, sock_connect=self._connect_timeout
                ),
            )
        except (aiohttp.ClientError, TimeoutError) as e:
            await self._shutdown()
            raise StreamError(
                f"Could not connect to log stream: {e!s}", url=self.url
            ) from e

        if not 200 <= response.status < 300:
            response.release()
            await self._shutdown()
            raise StreamError(
                f"Log stream answered HTTP {response.status}", url=self.url
            )

        if self._closing:
            response.release()
            await self._shutdown()
            return

        self._response = response
        self._set_state(ConnectionState.OPEN)
        logger.info("stream_opened", url=self.url)
        self._reader = asyncio.create_task(
            self._read_frames(response), name="procwatch-log-stream"
        )

    async def _read_frames(self, response: aiohttp.ClientResponse) -> None:
        parser = SseFrameParser()
        try:
            async for raw_line in response.content:
                if self._closing:
                    break
                payload = parser.feed_line(raw_line.decode("utf-8", errors="replace"))
                if payload is None:
                    continue
                self._dispatch(payload)
            logger.info("stream_ended_by_server", url=self.url)
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.warning("stream_transport_error", url=self.url, error=str(e))
        finally:
            response.release()
            if not self._closing:
                await self._shutdown()

    def _dispatch(self, payload: str) -> None:
        try:
            event = decode_frame(payload)
        except DecodeError as e:
            logger.debug("frame_dropped", reason=e.message)
            return
        if event is None or self._closing:
            return
        try:
            self._on_event(event)
        except Exception:
            logger.exception("stream_event_callback_failed", task_id=event.task_id)

    async def _shutdown(self) -> None:
        self._set_state(ConnectionState.CLOSED)
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def close(self) -> None:
        """Close the connection. Idempotent; no events are delivered afterwards."""
        if self._closing:
            return
        self._closing = True
        reader = self._reader
        if reader is not None and not reader.done():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader
        if self._response is not None:
            self._response.release()
            self._response = None
        await self._shutdown()
        logger.info("stream_closed", url=self.url)
