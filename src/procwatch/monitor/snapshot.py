"""Pull-side client: process snapshots, task stats, and task log history.

Every call is a single, idempotent GET. Nothing is retried here; the
controller's polling cadence is the retry.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from pydantic import TypeAdapter, ValidationError

from procwatch.constants import (
    DEFAULT_STATS_WINDOW_DAYS,
    PROCESS_LIST_PATH,
    PROCESS_LOGS_PATH,
    PROCESS_RUNNING_PATH,
    TASK_STATS_PATH,
)
from procwatch.exceptions import FetchError
from procwatch.logging import get_logger
from procwatch.models import AggregateStats, ProcessSnapshot, TaskLogs
from procwatch.monitor.http import ApiClient

__all__ = ["ProcessSnapshotClient"]

logger = get_logger(__name__)

_PROCESS_LIST = TypeAdapter(tuple[ProcessSnapshot, ...])


def _expect_mapping(body: Any, path: str) -> dict[str, Any]:
    if not isinstance(body, dict):
        raise FetchError(
            f"Expected a JSON object from {path}, got {type(body).__name__}",
            endpoint=path,
        )
    return body


class ProcessSnapshotClient(ApiClient):
    """Fetches authoritative process metadata from the supervisor.

    Example:
        ```python
        async with ProcessSnapshotClient("http://localhost:3000/api") as client:
            processes = await client.fetch_processes()
            stats = await client.fetch_stats(1)
        ```
    """

    async def _fetch_process_list(self, path: str) -> tuple[ProcessSnapshot, ...]:
        body = _expect_mapping(await self.get_json(path), path)
        raw = body.get("processes") or []
        try:
            return _PROCESS_LIST.validate_python(raw)
        except ValidationError as e:
            raise FetchError(
                f"Malformed process list from {path}: {e.error_count()} error(s)",
                endpoint=path,
            ) from e

    async def fetch_processes(self) -> tuple[ProcessSnapshot, ...]:
        """Fetch every process the supervisor knows about, newest first.

        Raises:
            FetchError: On transport, status, or decode failure.
        """
        processes = await self._fetch_process_list(PROCESS_LIST_PATH)
        logger.debug("processes_fetched", count=len(processes))
        return processes

    async def fetch_running(self) -> tuple[ProcessSnapshot, ...]:
        """Fetch only the processes currently running.

        Raises:
            FetchError: On transport, status, or decode failure.
        """
        return await self._fetch_process_list(PROCESS_RUNNING_PATH)

    async def fetch_stats(
        self, window_days: int = DEFAULT_STATS_WINDOW_DAYS
    ) -> AggregateStats | None:
        """Fetch aggregate task statistics for the last ``window_days`` days.

        Returns:
            The stats record, or None when the backend has none to report.

        Raises:
            FetchError: On transport, status, or decode failure.
        """
        body = _expect_mapping(
            await self.get_json(TASK_STATS_PATH, params={"days": window_days}),
            TASK_STATS_PATH,
        )
        raw = body.get("stats")
        if raw is None:
            return None
        try:
            return AggregateStats.model_validate(raw)
        except ValidationError as e:
            raise FetchError(
                f"Malformed stats from {TASK_STATS_PATH}: {e.error_count()} error(s)",
                endpoint=TASK_STATS_PATH,
            ) from e

    async def fetch_task_logs(self, task_id: str) -> TaskLogs:
        """Fetch one task's metadata and the log history the backend retains.

        Raises:
            FetchError: On transport, status, or decode failure, including
                an unknown task (the backend answers 404).
        """
        path = PROCESS_LOGS_PATH.format(task_id=quote(task_id, safe=""))
        body = _expect_mapping(await self.get_json(path), path)
        body.setdefault("taskId", task_id)
        try:
            return TaskLogs.model_validate(body)
        except ValidationError as e:
            raise FetchError(
                f"Malformed task logs from {path}: {e.error_count()} error(s)",
                endpoint=path,
            ) from e
