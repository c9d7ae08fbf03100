"""Reconciliation controller: one coherent view over push and pull sources.

The controller owns all monitor state and is the only thing that mutates
it. Two independent inputs feed it:

- the log stream (push), appended to per-task buffers in arrival order;
- snapshot + stats polls (pull), each completion replacing the previous
  value wholesale. Whichever fetch completes last wins, regardless of
  which was issued first.

Logs are never healed by polling; a gap in the stream stays a gap. Status
and metadata are healed by the next poll, which runs every
``poll_interval`` seconds and additionally whenever a system log line
announces that a task finished.

Everything runs on one asyncio loop, so state needs no locks. Fetches that
complete after ``stop()`` are discarded.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable, Coroutine, Iterable
from dataclasses import dataclass
from functools import partial
from types import TracebackType
from typing import TYPE_CHECKING, Any, Literal, Self

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from procwatch.constants import (
    COMPLETED_SENTINELS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RECENT_LIMIT,
    DEFAULT_STATS_WINDOW_DAYS,
    FAILED_SENTINELS,
)
from procwatch.exceptions import ControlError, FetchError, StreamError
from procwatch.logging import get_logger
from procwatch.models import (
    AggregateStats,
    ConnectionState,
    LogChannel,
    LogEvent,
    LogRecord,
    ProcessSnapshot,
    ProcessStatus,
)
from procwatch.monitor.buffers import LogBufferStore
from procwatch.monitor.control import TaskControlClient
from procwatch.monitor.http import join_url
from procwatch.monitor.snapshot import ProcessSnapshotClient
from procwatch.monitor.stream import LogStreamConnection

if TYPE_CHECKING:
    import aiohttp

    from procwatch.config import ProcwatchConfig
    from procwatch.monitor.protocols import (
        SnapshotSource,
        StreamConnection,
        StreamFactory,
        TaskController,
    )

__all__ = [
    "ReconciliationController",
    "ReconnectPolicy",
    "ChangeKind",
    "ChangeListener",
]

logger = get_logger(__name__)

ChangeKind = Literal["logs", "processes", "stats", "connection"]

#: Called after every state change with the kind and, for logs, the task id.
ChangeListener = Callable[[ChangeKind, "str | None"], None]


@dataclass(frozen=True, slots=True)
class ReconnectPolicy:
    """Bounded exponential backoff for reopening a closed stream.

    An attempt only counts as a success once the reopened stream delivers a
    frame or stays open for ``stable_after`` seconds. A stream that opens and
    drops straight away consumes an attempt like a failed handshake.

    Attributes:
        enabled: When False a closed stream stays closed until ``reconnect()``.
        max_attempts: Attempts before giving up, shared by every closure
            until a reopened stream proves stable.
        initial_delay: Wait in seconds before the first attempt; doubles on
            each further attempt.
        max_delay: Cap on a single wait in seconds.
        stable_after: Seconds a silent stream must stay open to reset the
            attempt budget.
    """

    enabled: bool = False
    max_attempts: int = 5
    initial_delay: float = 1.0
    max_delay: float = 30.0
    stable_after: float = 10.0


class ReconciliationController:
    """Owns the monitor's state and the lifecycle of its collaborators.

    Presentation code reads through ``processes()``, ``logs_for()``,
    ``connection_state()``, ``stats()`` and the derived views, and issues
    commands through ``refresh()``, ``terminate()``, ``clear_logs()`` and
    ``reconnect()``. It never touches the clients directly.

    Example:
        ```python
        async with ReconciliationController.from_config(load_config()) as ctl:
            ctl.add_listener(redraw)
            await asyncio.sleep(60)
        ```
    """

    def __init__(
        self,
        snapshots: SnapshotSource,
        stream_factory: StreamFactory,
        *,
        control: TaskController | None = None,
        buffers: LogBufferStore | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        stats_window_days: int = DEFAULT_STATS_WINDOW_DAYS,
        sentinels: Iterable[str] = (*COMPLETED_SENTINELS, *FAILED_SENTINELS),
        reconnect_policy: ReconnectPolicy | None = None,
        on_close: Callable[[], Coroutine[Any, Any, None]] | None = None,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._snapshots = snapshots
        self._stream_factory = stream_factory
        self._control = control
        self._buffers = buffers if buffers is not None else LogBufferStore()
        self._poll_interval = poll_interval
        self._stats_window_days = stats_window_days
        self._sentinels = tuple(sentinels)
        self._reconnect_policy = reconnect_policy or ReconnectPolicy()
        self._on_close = on_close

        self._processes: tuple[ProcessSnapshot, ...] = ()
        self._stats: AggregateStats | None = None
        self._connection_state = ConnectionState.CONNECTING

        self._connection: StreamConnection | None = None
        self._generation = 0
        # Resolves True once the current connection delivers a frame, False if it closes.
        self._settled: asyncio.Future[bool] | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[Any]] = set()
        self._listeners: list[ChangeListener] = []
        self._started = False
        self._stopped = False

    @classmethod
    def from_config(
        cls,
        config: ProcwatchConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> ReconciliationController:
        """Build a controller wired to the aiohttp clients described by config.

        Clients created here are closed by ``stop()``.
        """
        api = config.api
        snapshots = ProcessSnapshotClient(
            api.base_url, timeout=api.request_timeout, session=session
        )
        control = TaskControlClient(
            api.base_url, timeout=api.request_timeout, session=session
        )
        stream_url = join_url(api.base_url, config.stream.path)

        def stream_factory(
            on_event: Callable[[LogEvent], None],
            on_state: Callable[[ConnectionState], None],
        ) -> StreamConnection:
            return LogStreamConnection(
                stream_url,
                on_event=on_event,
                on_state=on_state,
                session=session,
                connect_timeout=api.request_timeout,
            )

        async def close_clients() -> None:
            await snapshots.close()
            await control.close()

        stream = config.stream
        return cls(
            snapshots,
            stream_factory,
            control=control,
            buffers=LogBufferStore(config.buffers.max_records_per_task),
            poll_interval=config.polling.interval_seconds,
            stats_window_days=config.polling.stats_window_days,
            sentinels=config.sentinels.phrases,
            reconnect_policy=ReconnectPolicy(
                enabled=stream.auto_reconnect,
                max_attempts=stream.max_attempts,
                initial_delay=stream.initial_delay,
                max_delay=stream.max_delay,
                stable_after=stream.stable_after,
            ),
            on_close=close_clients,
        )

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    def processes(self) -> tuple[ProcessSnapshot, ...]:
        return self._processes

    def logs_for(self, task_id: str) -> tuple[LogRecord, ...]:
        return self._buffers.get(task_id)

    def connection_state(self) -> ConnectionState:
        return self._connection_state

    def stats(self) -> AggregateStats | None:
        return self._stats

    def running(self) -> tuple[ProcessSnapshot, ...]:
        return tuple(p for p in self._processes if p.status is ProcessStatus.RUNNING)

    def recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> tuple[ProcessSnapshot, ...]:
        """The first ``limit`` snapshot entries (the backend sends newest first)."""
        return self._processes[: max(limit, 0)]

    def status_counts(self) -> dict[ProcessStatus, int]:
        counts = dict.fromkeys(ProcessStatus, 0)
        for process in self._processes:
            counts[process.status] += 1
        return counts

    @property
    def is_running(self) -> bool:
        return self._started and not self._stopped

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    def _notify(self, kind: ChangeKind, task_id: str | None = None) -> None:
        for listener in tuple(self._listeners):
            try:
                listener(kind, task_id)
            except Exception:
                logger.exception("listener_failed", kind=kind, task_id=task_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Kick off the first fetch, open the stream, and start polling.

        Returns without waiting for the first fetch or the stream handshake.

        Raises:
            RuntimeError: If the controller was already started.
        """
        if self._started:
            raise RuntimeError("ReconciliationController can only be started once")
        self._started = True
        logger.info(
            "monitor_started",
            poll_interval=self._poll_interval,
            auto_reconnect=self._reconnect_policy.enabled,
        )

        self._spawn(self._refresh("startup"))
        self._spawn(self._initial_connect())
        self._poll_task = asyncio.create_task(
            self._poll_loop(), name="procwatch-poll"
        )

    async def stop(self) -> None:
        """Close the stream and cancel the polling timer. Idempotent.

        In-flight fetches are left to finish; their results are discarded.
        Clients built by ``from_config`` are closed once they have.
        """
        if self._stopped:
            return
        self._stopped = True
        try:
            for task in (self._poll_task, self._reconnect_task):
                if task is not None and not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task
        finally:
            self._poll_task = None
            self._reconnect_task = None
            connection, self._connection = self._connection, None
            try:
                if connection is not None:
                    await connection.close()
            finally:
                if self._connection_state is not ConnectionState.CLOSED:
                    self._connection_state = ConnectionState.CLOSED
                    self._notify("connection")
                if self._on_close is not None:
                    # Clients are shared with in-flight fetches; let those
                    # settle (bounded by the request timeout) before closing.
                    await self.drain()
                    await self._on_close()
                logger.info("monitor_stopped")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()

    async def drain(self) -> None:
        """Wait until every fetch and handshake spawned so far has finished."""
        while self._inflight:
            await asyncio.gather(*tuple(self._inflight), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    # ------------------------------------------------------------------
    # Snapshot side
    # ------------------------------------------------------------------

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            if self._stopped:
                return
            self._spawn(self._refresh("poll"))

    async def _refresh(self, reason: str) -> None:
        await asyncio.gather(self._refresh_processes(reason), self._refresh_stats(reason))

    async def _refresh_processes(self, reason: str) -> None:
        try:
            processes = await self._snapshots.fetch_processes()
        except FetchError as e:
            logger.warning(
                "snapshot_fetch_failed",
                reason=reason,
                endpoint=e.endpoint,
                error=e.message,
            )
            return
        if self._stopped:
            return
        self._processes = tuple(processes)
        for process in self._processes:
            self._buffers.ensure(process.task_id)
        logger.debug("snapshot_applied", reason=reason, count=len(self._processes))
        self._notify("processes")

    async def _refresh_stats(self, reason: str) -> None:
        try:
            stats = await self._snapshots.fetch_stats(self._stats_window_days)
        except FetchError as e:
            logger.warning(
                "stats_fetch_failed",
                reason=reason,
                endpoint=e.endpoint,
                error=e.message,
            )
            return
        if self._stopped:
            return
        self._stats = stats
        self._notify("stats")

    async def refresh(self) -> None:
        """Fetch snapshot and stats now; returns when both have settled."""
        await self._refresh("manual")

    # ------------------------------------------------------------------
    # Stream side
    # ------------------------------------------------------------------

    def _is_terminal_signal(self, record: LogRecord) -> bool:
        if record.channel is not LogChannel.SYSTEM:
            return False
        return any(phrase in record.content for phrase in self._sentinels)

    def _handle_event(self, generation: int, event: LogEvent) -> None:
        if self._stopped or generation != self._generation:
            return
        self._settle(True)
        self._buffers.append(event.task_id, event.record)
        self._notify("logs", event.task_id)
        if self._is_terminal_signal(event.record):
            logger.info("sentinel_detected", task_id=event.task_id)
            self._spawn(self._refresh("sentinel"))

    def _handle_state(self, generation: int, state: ConnectionState) -> None:
        if self._stopped or generation != self._generation:
            return
        previous = self._connection_state
        if state is previous:
            return
        self._connection_state = state
        self._notify("connection")
        if state is ConnectionState.CLOSED:
            logger.warning("stream_disconnected")
            self._settle(False)
            self._schedule_auto_reconnect()

    def _settle(self, stable: bool) -> None:
        if self._settled is not None and not self._settled.done():
            self._settled.set_result(stable)

    def _new_connection(self) -> StreamConnection:
        # A superseded connection never reports again; let waiters move on.
        self._settle(True)
        self._settled = asyncio.get_running_loop().create_future()
        self._generation += 1
        generation = self._generation
        connection = self._stream_factory(
            partial(self._handle_event, generation),
            partial(self._handle_state, generation),
        )
        self._connection = connection
        self._handle_state(generation, ConnectionState.CONNECTING)
        return connection

    async def _open_stream(self) -> None:
        """Replace the current connection with a fresh one and handshake.

        Raises:
            StreamError: If the handshake fails (state ends up closed).
        """
        previous, self._connection = self._connection, None
        connection = self._new_connection()
        if previous is not None:
            await previous.close()
        generation = self._generation
        try:
            await connection.start()
        except StreamError:
            self._handle_state(generation, ConnectionState.CLOSED)
            raise

    async def _initial_connect(self) -> None:
        try:
            await self._open_stream()
        except StreamError as e:
            logger.warning("stream_connect_failed", url=e.url, error=e.message)

    async def reconnect(self) -> None:
        """Explicitly replace the stream connection with a new one.

        Raises:
            StreamError: If the new connection's handshake fails.
            RuntimeError: If the controller is not running.
        """
        if not self.is_running:
            raise RuntimeError("Cannot reconnect a controller that is not running")
        logger.info("stream_reconnect_requested")
        await self._open_stream()

    def _schedule_auto_reconnect(self) -> None:
        if not self._reconnect_policy.enabled or self._stopped:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.create_task(
            self._reconnect_with_backoff(), name="procwatch-reconnect"
        )

    async def _await_stable(self) -> None:
        """Return once the current connection proves usable.

        Raises:
            StreamError: If it closes before delivering a frame or lasting
                ``stable_after`` seconds.
        """
        settled = self._settled
        if settled is None:
            return
        try:
            stable = await asyncio.wait_for(
                asyncio.shield(settled), timeout=self._reconnect_policy.stable_after
            )
        except TimeoutError:
            return
        if not stable:
            raise StreamError("Stream closed right after opening")

    async def _reconnect_with_backoff(self) -> None:
        policy = self._reconnect_policy
        await asyncio.sleep(policy.initial_delay)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(policy.max_attempts),
                wait=wait_exponential(
                    multiplier=policy.initial_delay,
                    min=policy.initial_delay,
                    max=policy.max_delay,
                ),
                retry=retry_if_exception_type(StreamError),
                before_sleep=lambda state: logger.warning(
                    "stream_reconnect_failed",
                    attempt=state.attempt_number,
                ),
            ):
                with attempt:
                    if self._stopped:
                        return
                    await self._open_stream()
                    await self._await_stable()
        except RetryError:
            logger.error(
                "stream_reconnect_exhausted", attempts=policy.max_attempts
            )
            return
        logger.info("stream_reconnected")
        if self._connection_state is ConnectionState.CLOSED:
            # Dropped after settling, before this task finished.
            asyncio.get_running_loop().call_soon(self._schedule_auto_reconnect)

    # ------------------------------------------------------------------
    # Operator commands
    # ------------------------------------------------------------------

    async def terminate(self, task_id: str) -> None:
        """Kill a task, then refresh the snapshot.

        On failure nothing is changed (buffers, snapshot, stats, and
        connection state stay as they were) and the error is re-raised for
        the operator.

        Raises:
            ControlError: If the kill command fails or is rejected.
            RuntimeError: If no control client was configured.
        """
        if self._control is None:
            raise RuntimeError("No task control client configured")
        try:
            await self._control.terminate(task_id)
        except ControlError as e:
            logger.warning("terminate_failed", task_id=task_id, error=e.message)
            raise
        logger.info("task_terminated", task_id=task_id)
        await self._refresh_processes("terminate")

    def clear_logs(self, task_id: str) -> None:
        """Discard the local log buffer for ``task_id``."""
        if self._buffers.clear(task_id):
            self._notify("logs", task_id)
