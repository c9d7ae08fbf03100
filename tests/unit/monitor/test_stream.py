"""Unit tests for the log stream client.

Tests cover:
- SSE line parsing (data joining, comments, other fields)
- Frame decoding into LogEvents
- LogStreamConnection handshake, frame delivery, and shutdown
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from procwatch.exceptions import DecodeError, StreamError
from procwatch.models import ConnectionState, LogChannel, LogEvent
from procwatch.monitor.stream import LogStreamConnection, SseFrameParser, decode_frame
from tests.fixtures.monitor import wait_until

STREAM_URL = "http://supervisor.test/api/ai/process/stream"


def log_frame(task_id: str, content: str, channel: str = "stdout") -> dict[str, Any]:
    return {
        "type": "log",
        "taskId": task_id,
        "log": {"timestamp": 1_700_000_000_000, "type": channel, "content": content},
    }


def sse_lines(*payloads: Any) -> list[bytes]:
    lines: list[bytes] = []
    for payload in payloads:
        text = payload if isinstance(payload, str) else json.dumps(payload)
        lines.append(f"data: {text}\n".encode())
        lines.append(b"\n")
    return lines


class FakeContent:
    """Async iterable over SSE lines, optionally held open until released."""

    def __init__(self, lines: list[bytes], hold: asyncio.Event | None = None) -> None:
        self._lines = lines
        self._hold = hold

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for line in self._lines:
            yield line
        if self._hold is not None:
            await self._hold.wait()


def make_stream_session(
    lines: list[bytes] | None = None,
    *,
    status: int = 200,
    hold: asyncio.Event | None = None,
    error: BaseException | None = None,
) -> tuple[MagicMock, MagicMock]:
    response = MagicMock()
    response.status = status
    response.content = FakeContent(lines or [], hold)
    response.release = MagicMock()

    session = MagicMock()
    if error is not None:
        session.get = AsyncMock(side_effect=error)
    else:
        session.get = AsyncMock(return_value=response)
    session.close = AsyncMock()
    return session, response


class Recorder:
    def __init__(self) -> None:
        self.events: list[LogEvent] = []
        self.states: list[ConnectionState] = []

    def on_event(self, event: LogEvent) -> None:
        self.events.append(event)

    def on_state(self, state: ConnectionState) -> None:
        self.states.append(state)


def make_connection(session: MagicMock, recorder: Recorder) -> LogStreamConnection:
    return LogStreamConnection(
        STREAM_URL,
        on_event=recorder.on_event,
        on_state=recorder.on_state,
        session=session,
    )


# =============================================================================
# SseFrameParser
# =============================================================================


class TestSseFrameParser:
    """Tests for SseFrameParser."""

    def test_blank_line_completes_event(self) -> None:
        parser = SseFrameParser()

        assert parser.feed_line('data: {"a": 1}\n') is None
        assert parser.feed_line("\n") == '{"a": 1}'

    def test_multiple_data_lines_are_joined(self) -> None:
        parser = SseFrameParser()
        parser.feed_line("data: first")
        parser.feed_line("data: second")

        assert parser.feed_line("") == "first\nsecond"

    def test_comments_and_other_fields_are_skipped(self) -> None:
        parser = SseFrameParser()

        assert parser.feed_line(": keep-alive") is None
        assert parser.feed_line("event: message") is None
        assert parser.feed_line("id: 7") is None
        parser.feed_line("data:no-space")

        assert parser.feed_line("\r\n") == "no-space"

    def test_blank_line_without_data_yields_nothing(self) -> None:
        parser = SseFrameParser()

        assert parser.feed_line("") is None
        parser.feed_line(": ping")
        assert parser.feed_line("") is None


# =============================================================================
# decode_frame
# =============================================================================


class TestDecodeFrame:
    """Tests for decode_frame."""

    def test_log_frame(self) -> None:
        event = decode_frame(json.dumps(log_frame("t1", "hello", "stderr")))

        assert event is not None
        assert event.task_id == "t1"
        assert event.record.channel is LogChannel.STDERR
        assert event.record.content == "hello"

    def test_other_frame_types_are_ignored(self) -> None:
        assert decode_frame(json.dumps({"type": "connected"})) is None

    @pytest.mark.parametrize(
        "payload",
        [
            "not json",
            "[1, 2]",
            json.dumps({"type": "log", "log": {"timestamp": 1, "type": "stdout", "content": ""}}),
            json.dumps({"type": "log", "taskId": "t1", "log": {"content": "x"}}),
            json.dumps({"type": "log", "taskId": "t1", "log": {"timestamp": 1, "type": "bogus", "content": "x"}}),
        ],
    )
    def test_malformed_frames_raise(self, payload: str) -> None:
        with pytest.raises(DecodeError) as exc_info:
            decode_frame(payload)

        assert exc_info.value.payload == payload


# =============================================================================
# LogStreamConnection
# =============================================================================


class TestLogStreamConnection:
    """Tests for LogStreamConnection."""

    @pytest.mark.asyncio
    async def test_start_opens_and_delivers_frames_in_order(self) -> None:
        hold = asyncio.Event()
        session, _ = make_stream_session(
            sse_lines(log_frame("t1", "one"), log_frame("t2", "two"), log_frame("t1", "three")),
            hold=hold,
        )
        recorder = Recorder()
        conn = make_connection(session, recorder)

        await conn.start()
        await wait_until(lambda: len(recorder.events) == 3)

        assert conn.state is ConnectionState.OPEN
        assert recorder.states == [ConnectionState.OPEN]
        assert [(e.task_id, e.record.content) for e in recorder.events] == [
            ("t1", "one"),
            ("t2", "two"),
            ("t1", "three"),
        ]
        _, kwargs = session.get.call_args
        assert kwargs["headers"]["Accept"] == "text/event-stream"

        await conn.close()

    @pytest.mark.asyncio
    async def test_malformed_frames_are_dropped(self) -> None:
        hold = asyncio.Event()
        session, _ = make_stream_session(
            sse_lines("garbage", {"type": "connected"}, log_frame("t1", "ok")),
            hold=hold,
        )
        recorder = Recorder()
        conn = make_connection(session, recorder)

        await conn.start()
        await wait_until(lambda: len(recorder.events) == 1)

        assert recorder.events[0].record.content == "ok"
        assert conn.state is ConnectionState.OPEN

        await conn.close()

    @pytest.mark.asyncio
    async def test_server_ending_stream_closes_connection(self) -> None:
        session, response = make_stream_session(sse_lines(log_frame("t1", "last")))
        recorder = Recorder()
        conn = make_connection(session, recorder)

        await conn.start()
        await wait_until(lambda: conn.state is ConnectionState.CLOSED)

        assert recorder.states == [ConnectionState.OPEN, ConnectionState.CLOSED]
        assert len(recorder.events) == 1
        response.release.assert_called()

    @pytest.mark.asyncio
    async def test_handshake_transport_error_raises(self) -> None:
        session, _ = make_stream_session(
            error=aiohttp.ClientConnectionError("refused")
        )
        recorder = Recorder()
        conn = make_connection(session, recorder)

        with pytest.raises(StreamError) as exc_info:
            await conn.start()

        assert exc_info.value.url == STREAM_URL
        assert conn.state is ConnectionState.CLOSED
        assert recorder.states == [ConnectionState.CLOSED]

    @pytest.mark.asyncio
    async def test_handshake_bad_status_raises(self) -> None:
        session, response = make_stream_session(status=503)
        recorder = Recorder()
        conn = make_connection(session, recorder)

        with pytest.raises(StreamError, match="503"):
            await conn.start()

        response.release.assert_called_once()
        assert conn.state is ConnectionState.CLOSED

    @pytest.mark.asyncio
    async def test_close_stops_delivery_and_is_idempotent(self) -> None:
        hold = asyncio.Event()
        session, response = make_stream_session(
            sse_lines(log_frame("t1", "one")), hold=hold
        )
        recorder = Recorder()
        conn = make_connection(session, recorder)
        await conn.start()
        await wait_until(lambda: len(recorder.events) == 1)

        await conn.close()
        await conn.close()

        assert conn.state is ConnectionState.CLOSED
        assert recorder.states == [ConnectionState.OPEN, ConnectionState.CLOSED]
        response.release.assert_called()
        # Borrowed session stays open.
        session.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_twice_raises(self) -> None:
        hold = asyncio.Event()
        session, _ = make_stream_session(hold=hold)
        conn = make_connection(session, Recorder())
        await conn.start()

        with pytest.raises(RuntimeError):
            await conn.start()

        await conn.close()

    @pytest.mark.asyncio
    async def test_event_callback_error_does_not_close(self) -> None:
        hold = asyncio.Event()
        session, _ = make_stream_session(
            sse_lines(log_frame("t1", "one"), log_frame("t1", "two")), hold=hold
        )
        seen: list[str] = []

        def on_event(event: LogEvent) -> None:
            seen.append(event.record.content)
            raise ValueError("consumer bug")

        conn = LogStreamConnection(STREAM_URL, on_event=on_event, session=session)
        await conn.start()
        await wait_until(lambda: len(seen) == 2)

        assert conn.state is ConnectionState.OPEN

        await conn.close()
