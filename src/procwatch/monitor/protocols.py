"""Protocols for the collaborators of ReconciliationController.

The controller only depends on these shapes, so tests and alternative
transports can stand in for the aiohttp clients.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from procwatch.models import (
        AggregateStats,
        ConnectionState,
        LogEvent,
        ProcessSnapshot,
    )

__all__ = ["SnapshotSource", "StreamConnection", "StreamFactory", "TaskController"]


@runtime_checkable
class SnapshotSource(Protocol):
    """Anything that can produce a full process snapshot and stats.

    Both methods raise FetchError on failure and have no side effects.
    """

    async def fetch_processes(self) -> tuple[ProcessSnapshot, ...]: ...

    async def fetch_stats(self, window_days: int = 1) -> AggregateStats | None: ...


@runtime_checkable
class StreamConnection(Protocol):
    """A one-shot push connection (see LogStreamConnection)."""

    @property
    def state(self) -> ConnectionState: ...

    async def start(self) -> None:
        """Handshake; raises StreamError on failure."""
        ...

    async def close(self) -> None:
        """Idempotent close; no callbacks fire for events afterwards."""
        ...


@runtime_checkable
class TaskController(Protocol):
    """Anything that can terminate a task (raises ControlError on failure)."""

    async def terminate(self, task_id: str) -> None: ...


#: Builds a fresh, unstarted connection wired to the given callbacks.
StreamFactory = Callable[
    [Callable[["LogEvent"], None], Callable[["ConnectionState"], None]],
    StreamConnection,
]
