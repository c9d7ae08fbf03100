"""Live process monitor: stream + snapshot reconciliation.

Public API:
    from procwatch.monitor import ReconciliationController

    controller = ReconciliationController.from_config(load_config())
    await controller.start()
"""

from __future__ import annotations

from procwatch.monitor.buffers import LogBufferStore
from procwatch.monitor.control import TaskControlClient
from procwatch.monitor.controller import (
    ChangeKind,
    ChangeListener,
    ReconciliationController,
    ReconnectPolicy,
)
from procwatch.monitor.snapshot import ProcessSnapshotClient
from procwatch.monitor.stream import LogStreamConnection, SseFrameParser, decode_frame

__all__ = [
    "ChangeKind",
    "ChangeListener",
    "LogBufferStore",
    "LogStreamConnection",
    "ProcessSnapshotClient",
    "ReconciliationController",
    "ReconnectPolicy",
    "SseFrameParser",
    "TaskControlClient",
    "decode_frame",
]
