"""Unit tests for LogBufferStore."""

from __future__ import annotations

import pytest

from procwatch.monitor.buffers import LogBufferStore
from tests.fixtures.monitor import make_record


class TestLogBufferStore:
    """Tests for LogBufferStore."""

    def test_get_unknown_task_is_empty(self) -> None:
        store = LogBufferStore()

        assert store.get("missing") == ()
        assert "missing" not in store

    def test_append_keeps_arrival_order(self) -> None:
        store = LogBufferStore()
        records = [make_record(f"line {i}") for i in range(5)]

        for record in records:
            store.append("t1", record)

        assert store.get("t1") == tuple(records)

    def test_ensure_creates_empty_buffer_once(self) -> None:
        store = LogBufferStore()
        record = make_record("kept")
        store.append("t1", record)

        store.ensure("t1")
        store.ensure("t2")

        assert store.get("t1") == (record,)
        assert store.get("t2") == ()
        assert set(store) == {"t1", "t2"}
        assert len(store) == 2

    def test_clear_reports_whether_buffer_existed(self) -> None:
        store = LogBufferStore()
        store.append("t1", make_record("x"))

        assert store.clear("t1") is True
        assert store.clear("t1") is False
        assert "t1" not in store

    def test_get_returns_snapshot(self) -> None:
        store = LogBufferStore()
        store.append("t1", make_record("a"))
        snapshot = store.get("t1")

        store.append("t1", make_record("b"))

        assert len(snapshot) == 1
        assert len(store.get("t1")) == 2

    def test_bounded_buffer_drops_oldest(self) -> None:
        store = LogBufferStore(max_records_per_task=3)

        for i in range(5):
            store.append("t1", make_record(str(i)))

        assert [r.content for r in store.get("t1")] == ["2", "3", "4"]
        assert store.max_records_per_task == 3

    @pytest.mark.parametrize("bound", [0, -1])
    def test_non_positive_bound_rejected(self, bound: int) -> None:
        with pytest.raises(ValueError):
            LogBufferStore(max_records_per_task=bound)

    def test_task_ids_in_creation_order(self) -> None:
        store = LogBufferStore()
        store.append("b", make_record("x"))
        store.ensure("a")

        assert store.task_ids() == ("b", "a")
