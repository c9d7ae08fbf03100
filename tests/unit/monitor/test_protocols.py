"""The aiohttp clients and the test fakes satisfy the controller protocols."""

from __future__ import annotations

from procwatch.monitor.control import TaskControlClient
from procwatch.monitor.protocols import SnapshotSource, StreamConnection, TaskController
from procwatch.monitor.snapshot import ProcessSnapshotClient
from procwatch.monitor.stream import LogStreamConnection
from tests.fixtures.monitor import FakeSnapshotSource, FakeStream

BASE_URL = "http://supervisor.test/api"


def test_real_clients_conform() -> None:
    assert isinstance(ProcessSnapshotClient(BASE_URL), SnapshotSource)
    assert isinstance(TaskControlClient(BASE_URL), TaskController)
    assert isinstance(
        LogStreamConnection(BASE_URL + "/ai/process/stream", on_event=print),
        StreamConnection,
    )


def test_fakes_conform() -> None:
    assert isinstance(FakeSnapshotSource(), SnapshotSource)
    assert isinstance(FakeStream(print, print), StreamConnection)
