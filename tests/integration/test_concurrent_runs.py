"""Concurrent migration runs against one target."""

import threading
from pathlib import Path

import pytest

from schemalog.core.config import Config
from schemalog.core.exceptions import LockError
from schemalog.core.types import RunReport
from schemalog.services import ServiceContainer

pytestmark = pytest.mark.integration


def _write_chain(source_dir: Path, count: int) -> None:
    for i in range(1, count + 1):
        statements = "\n".join(
            f"CREATE TABLE t{i}_{j} (id BIGINT PRIMARY KEY, note VARCHAR);" for j in range(5)
        )
        (source_dir / f"{i}_step_{i}.sql").write_text(statements, encoding="utf-8")


def test_two_runs_apply_each_unit_once(config: Config, source_dir: Path):
    """Of two simultaneous runs, one applies everything and the other nothing."""
    _write_chain(source_dir, 6)
    barrier = threading.Barrier(2)
    reports: list[RunReport] = []
    errors: list[Exception] = []

    def run() -> None:
        try:
            with ServiceContainer(config) as services:
                services.connect()
                barrier.wait()
                reports.append(services.migrations.up())
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=run) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert errors == []
    applied_counts = sorted(len(r.applied) for r in reports)
    assert applied_counts == [0, 6]

    with ServiceContainer(config) as services:
        recorded = [r.identifier for r in services.records.list_applied()]
        assert recorded == [str(i) for i in range(1, 7)]
        assert services.create_lock().current_holder() is None


def test_waiting_run_fails_when_lock_is_not_released(config: Config, source_dir: Path):
    """A run blocked past the lock timeout fails without touching the target."""
    _write_chain(source_dir, 1)
    config.lock.timeout = 0.2

    with ServiceContainer(config) as holder, ServiceContainer(config) as waiter:
        lock = holder.create_lock()
        lock.acquire()
        try:
            with pytest.raises(LockError, match="held by"):
                waiter.migrations.up()
        finally:
            lock.release()

        assert waiter.records.list_applied() == []
        assert "t1_0" not in waiter.db.table_names()

        report = waiter.migrations.up()
        assert [u.identifier for u in report.applied] == ["1"]
