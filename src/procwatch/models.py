"""Data models for the process monitor.

Wire-facing records (LogRecord, ProcessSnapshot, AggregateStats, TaskLogs)
are frozen pydantic models so that backend payloads are validated once at
the client boundary. The backend speaks camelCase; the models expose
snake_case attributes and accept either spelling on input.

LogEvent is an internal, already-validated pairing of a task id with one
record and is a plain frozen dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "LogChannel",
    "ProcessStatus",
    "ConnectionState",
    "LogRecord",
    "LogEvent",
    "ProcessSnapshot",
    "AggregateStats",
    "TaskLogs",
]


class LogChannel(str, Enum):
    """Origin of a log line within a worker process."""

    STDOUT = "stdout"
    STDERR = "stderr"
    SYSTEM = "system"


class ProcessStatus(str, Enum):
    """Lifecycle status of a worker process as reported by the backend."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"

    @property
    def is_terminal(self) -> bool:
        return self is not ProcessStatus.RUNNING


class ConnectionState(str, Enum):
    """State of the log stream connection."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class LogRecord(BaseModel):
    """One line of task output.

    On the wire the channel travels under the key ``type``; ``channel`` is
    accepted as well.

    Attributes:
        timestamp: Epoch milliseconds at which the backend captured the line.
        channel: stdout, stderr, or system (supervisor-generated).
        content: The text of the line.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: int
    channel: LogChannel = Field(
        validation_alias=AliasChoices("type", "channel"),
        serialization_alias="type",
    )
    content: str


@dataclass(frozen=True, slots=True)
class LogEvent:
    """A decoded stream frame: one record addressed to one task."""

    task_id: str
    record: LogRecord


class ProcessSnapshot(BaseModel):
    """Authoritative metadata for one worker process at poll time.

    Identity is ``task_id``. A newer snapshot entry replaces an older one
    wholesale.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    task_id: str
    worker_id: int
    pid: int | None = None
    status: ProcessStatus
    start_time: int
    duration: int | None = None
    prompt: str = ""
    log_count: int = 0
    error: str | None = None


class AggregateStats(BaseModel):
    """Pre-aggregated task statistics for a reporting window."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    completed: int = 0
    failed: int = 0
    avg_duration: int | None = None

    @field_validator("avg_duration", mode="before")
    @classmethod
    def _round_avg_duration(cls, v: object) -> object:
        """The backend averages in floating point; keep whole milliseconds."""
        if isinstance(v, float):
            return round(v)
        return v


class TaskLogs(BaseModel):
    """A task's metadata together with the log history the backend holds."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    task_id: str
    worker_id: int | None = None
    pid: int | None = None
    status: ProcessStatus | None = None
    start_time: int | None = None
    prompt: str | None = None
    result: str | None = None
    error: str | None = None
    logs: tuple[LogRecord, ...] = ()
