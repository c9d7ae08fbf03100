"""Imperative commands against the process supervisor."""

from __future__ import annotations

from urllib.parse import quote

import aiohttp

from procwatch.constants import PROCESS_KILL_PATH
from procwatch.exceptions import ControlError
from procwatch.logging import get_logger
from procwatch.monitor.http import ApiClient

__all__ = ["TaskControlClient"]

logger = get_logger(__name__)


class TaskControlClient(ApiClient):
    """Sends task commands. Never refreshes snapshots on its own.

    Example:
        ```python
        control = TaskControlClient("http://localhost:3000/api")
        await control.terminate("t1")
        ```
    """

    async def terminate(self, task_id: str) -> None:
        """Ask the supervisor to kill the worker running ``task_id``.

        A 2xx response whose JSON body carries ``"success": false`` counts
        as a rejection (the backend reports an already finished task that
        way).

        Raises:
            ControlError: On transport failure, timeout, non-2xx status, or
                an explicit rejection.
        """
        path = PROCESS_KILL_PATH.format(task_id=quote(task_id, safe=""))
        session = self._get_session()
        try:
            async with session.delete(
                self.url(path), timeout=self._client_timeout()
            ) as resp:
                if not 200 <= resp.status < 300:
                    body = await resp.text()
                    raise ControlError(
                        f"Kill rejected for {task_id}: HTTP {resp.status} {body[:200]}",
                        task_id=task_id,
                        status=resp.status,
                    )
                try:
                    payload = await resp.json(content_type=None)
                except ValueError:
                    payload = None
        except TimeoutError:
            raise ControlError(
                f"Kill request for {task_id} timed out", task_id=task_id
            ) from None
        except aiohttp.ClientError as e:
            raise ControlError(
                f"Kill request for {task_id} failed: {e}", task_id=task_id
            ) from e

        if isinstance(payload, dict) and payload.get("success") is False:
            reason = payload.get("message") or "rejected by backend"
            raise ControlError(
                f"Kill rejected for {task_id}: {reason}",
                task_id=task_id,
                status=resp.status,
            )

        logger.info("task_kill_sent", task_id=task_id)
