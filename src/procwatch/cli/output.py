"""Output formatting helpers for the procwatch CLI."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from datetime import datetime
from enum import Enum
from typing import Any

from procwatch.models import (
    AggregateStats,
    ConnectionState,
    LogRecord,
    ProcessSnapshot,
    ProcessStatus,
)

__all__ = [
    "OutputFormat",
    "format_error",
    "format_json",
    "format_table",
    "format_duration",
    "format_timestamp",
    "format_log_line",
    "format_process_table",
    "format_summary",
    "processes_to_json",
]

#: Longest prompt excerpt shown in tables
PROMPT_PREVIEW_LENGTH = 40


class OutputFormat(str, Enum):
    """Supported output formats for one-shot commands."""

    TEXT = "text"
    JSON = "json"


def format_error(
    message: str, details: list[str] | None = None, suggestion: str | None = None
) -> str:
    """Format an error message with optional details and suggestion.

    Example:
        >>> print(format_error("Kill rejected", details=["HTTP 404"]))
        Error: Kill rejected
          HTTP 404
    """
    lines = [f"Error: {message}"]

    if details:
        for detail in details:
            lines.append(f"  {detail}")

    if suggestion:
        lines.append(f"Suggestion: {suggestion}")

    return "\n".join(lines)


def format_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def format_table(headers: list[str], rows: list[list[str]]) -> str:
    """Format data as a simple text table with pipe separators.

    Example:
        >>> print(format_table(["Task", "Status"], [["t1", "running"]]))
        Task | Status
        t1   | running
    """
    if not headers:
        return ""

    col_widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            if i < len(col_widths):
                col_widths[i] = max(col_widths[i], len(cell))

    header = " | ".join(h.ljust(col_widths[i]) for i, h in enumerate(headers))
    lines = [header.rstrip()]
    for row in rows:
        lines.append(
            " | ".join(
                cell.ljust(col_widths[i]) if i < len(col_widths) else cell
                for i, cell in enumerate(row)
            ).rstrip()
        )
    return "\n".join(lines)


def format_duration(ms: int | None) -> str:
    """Render a duration in milliseconds the way the dashboard shows it.

    Example:
        >>> [format_duration(v) for v in (None, 850, 4200, 90000)]
        ['-', '850ms', '4.2s', '1.5m']
    """
    if ms is None:
        return "-"
    if ms < 1000:
        return f"{ms}ms"
    if ms < 60000:
        return f"{ms / 1000:.1f}s"
    return f"{ms / 60000:.1f}m"


def format_timestamp(epoch_ms: int) -> str:
    """Local wall-clock time (HH:MM:SS) for an epoch-millisecond timestamp."""
    return datetime.fromtimestamp(epoch_ms / 1000).strftime("%H:%M:%S")


def format_log_line(task_id: str, record: LogRecord) -> str:
    """One log record as ``HH:MM:SS [task] channel | content``."""
    return (
        f"{format_timestamp(record.timestamp)} [{task_id[:8]}] "
        f"{record.channel.value:<6} | {record.content}"
    )


def _prompt_preview(prompt: str) -> str:
    flat = " ".join(prompt.split())
    if len(flat) <= PROMPT_PREVIEW_LENGTH:
        return flat
    return flat[: PROMPT_PREVIEW_LENGTH - 1] + "…"


def format_process_table(processes: Sequence[ProcessSnapshot]) -> str:
    if not processes:
        return "No tasks"
    rows = [
        [
            p.task_id[:8],
            str(p.worker_id),
            str(p.pid) if p.pid is not None else "-",
            p.status.value,
            format_duration(p.duration),
            str(p.log_count),
            _prompt_preview(p.prompt),
        ]
        for p in processes
    ]
    return format_table(
        ["Task", "Worker", "PID", "Status", "Duration", "Logs", "Prompt"], rows
    )


def format_summary(
    counts: Mapping[ProcessStatus, int],
    stats: AggregateStats | None,
    state: ConnectionState,
) -> str:
    """One-line status bar: connection, running count, and today's stats."""
    parts = [
        f"stream: {state.value}",
        f"running: {counts.get(ProcessStatus.RUNNING, 0)}",
    ]
    if stats is not None:
        parts.append(f"completed today: {stats.completed}")
        parts.append(f"failed today: {stats.failed}")
        parts.append(f"avg: {format_duration(stats.avg_duration)}")
    return " | ".join(parts)


def processes_to_json(processes: Sequence[ProcessSnapshot]) -> str:
    return format_json(
        [p.model_dump(mode="json", by_alias=True) for p in processes]
    )
