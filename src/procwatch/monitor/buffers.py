"""Per-task, append-only log buffers."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator

from procwatch.models import LogRecord

__all__ = ["LogBufferStore"]


class LogBufferStore:
    """Ordered log sequences keyed by task id.

    Records keep their arrival order. Buffers are unbounded unless
    ``max_records_per_task`` is set, in which case each buffer keeps only
    its newest records. ``clear`` is the only other way records leave.

    Example:
        ```python
        store = LogBufferStore()
        store.append("t1", record)
        store.get("t1")  # (record,)
        store.clear("t1")
        store.get("t1")  # ()
        ```
    """

    def __init__(self, max_records_per_task: int | None = None) -> None:
        if max_records_per_task is not None and max_records_per_task <= 0:
            raise ValueError("max_records_per_task must be positive or None")
        self._max_records = max_records_per_task
        self._buffers: dict[str, deque[LogRecord]] = {}

    @property
    def max_records_per_task(self) -> int | None:
        return self._max_records

    def _new_buffer(self) -> deque[LogRecord]:
        return deque(maxlen=self._max_records)

    def ensure(self, task_id: str) -> None:
        """Create an empty buffer for ``task_id`` if none exists."""
        if task_id not in self._buffers:
            self._buffers[task_id] = self._new_buffer()

    def append(self, task_id: str, record: LogRecord) -> None:
        buffer = self._buffers.get(task_id)
        if buffer is None:
            buffer = self._buffers[task_id] = self._new_buffer()
        buffer.append(record)

    def clear(self, task_id: str) -> bool:
        """Drop the buffer for ``task_id`` entirely.

        Returns:
            True if a buffer existed.
        """
        return self._buffers.pop(task_id, None) is not None

    def get(self, task_id: str) -> tuple[LogRecord, ...]:
        """Snapshot of the task's records in arrival order (empty if none)."""
        buffer = self._buffers.get(task_id)
        if buffer is None:
            return ()
        return tuple(buffer)

    def task_ids(self) -> tuple[str, ...]:
        return tuple(self._buffers)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._buffers

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._buffers))

    def __len__(self) -> int:
        return len(self._buffers)
