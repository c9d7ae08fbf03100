"""procwatch constants: backend endpoints, cadence, and sentinel phrases.

Single source of truth for the defaults used by the config layer and the
monitor clients.
"""

from __future__ import annotations

# =============================================================================
# Backend Endpoints
# =============================================================================

#: Default REST base URL of the process supervisor
DEFAULT_BASE_URL: str = "http://localhost:3000/api"

#: Full process snapshot
PROCESS_LIST_PATH: str = "/ai/process/list"

#: Snapshot restricted to running processes
PROCESS_RUNNING_PATH: str = "/ai/process/running"

#: In-memory log history for one task (format with task_id)
PROCESS_LOGS_PATH: str = "/ai/process/logs/{task_id}"

#: Kill command (format with task_id)
PROCESS_KILL_PATH: str = "/ai/process/kill/{task_id}"

#: Server-sent event stream carrying log frames for every task
PROCESS_STREAM_PATH: str = "/ai/process/stream"

#: Aggregate task statistics
TASK_STATS_PATH: str = "/ai/task/stats"

# =============================================================================
# Cadence and Timeouts
# =============================================================================

#: Seconds between unconditional snapshot + stats polls
DEFAULT_POLL_INTERVAL: float = 5.0

#: Reporting window for stats polls ("today")
DEFAULT_STATS_WINDOW_DAYS: int = 1

#: Total timeout for one REST request in seconds
DEFAULT_REQUEST_TIMEOUT: float = 10.0

#: Number of snapshot entries shown as "recent"
DEFAULT_RECENT_LIMIT: int = 5

# =============================================================================
# Sentinel Phrases
# =============================================================================

#: System-channel phrases announcing that a task finished successfully
COMPLETED_SENTINELS: tuple[str, ...] = ("任务完成",)

#: System-channel phrases announcing that a task failed
FAILED_SENTINELS: tuple[str, ...] = ("任务失败",)
