"""Tests for the single-writer migration lock."""

import threading
import time

import pytest

from schemalog.core.config import LockConfig
from schemalog.core.exceptions import CancelledError, LockError
from schemalog.store.database import Database
from schemalog.store.lock import AdvisoryLock, TableLock, create_lock


def table_lock(db: Database, timeout: float = 0.2) -> TableLock:
    return TableLock(db, timeout=timeout, poll_interval=0.02, table="schemalog_lock")


class TestTableLock:
    """Tests for the table-backed lock used on SQLite."""

    def test_acquire_and_release(self, db: Database):
        """A free lock is acquired and released."""
        lock = table_lock(db)

        lock.acquire()
        assert lock.held
        assert lock.current_holder().startswith(lock.holder)

        lock.release()
        assert not lock.held
        assert lock.current_holder() is None

    def test_second_holder_times_out(self, db: Database):
        """A competing run fails with LockError after the timeout."""
        first = table_lock(db)
        second = table_lock(db, timeout=0.1)
        first.acquire()

        start = time.monotonic()
        with pytest.raises(LockError, match="held by"):
            second.acquire()

        assert time.monotonic() - start >= 0.1
        assert not second.held
        first.release()

    def test_lock_is_reusable_after_release(self, db: Database):
        """Once released, another run can take the lock."""
        first = table_lock(db)
        second = table_lock(db)

        with first:
            pass
        with second:
            assert second.held

    def test_context_manager_releases_on_error(self, db: Database):
        """The lock is released when the guarded block raises."""
        lock = table_lock(db)

        with pytest.raises(RuntimeError):
            with lock:
                raise RuntimeError("migration failed")

        assert lock.current_holder() is None

    def test_release_does_not_remove_other_holder(self, db: Database):
        """A run whose lock was force-released cannot drop the new holder's lock."""
        stale = table_lock(db)
        stale.acquire()
        rescuer = table_lock(db)
        assert rescuer.force_release()
        rescuer.acquire()

        stale.release()

        assert rescuer.current_holder().startswith(rescuer.holder)
        rescuer.release()

    def test_cancel_stops_waiting(self, db: Database):
        """Setting the cancel event ends the wait long before the timeout."""
        holder = table_lock(db)
        waiter = table_lock(db, timeout=10.0)
        holder.acquire()
        cancel = threading.Event()
        timer = threading.Timer(0.1, cancel.set)
        timer.start()

        start = time.monotonic()
        try:
            with pytest.raises(CancelledError):
                waiter.acquire(cancel)
        finally:
            timer.cancel()
            holder.release()

        assert time.monotonic() - start < 5.0
        assert not waiter.held

    def test_cancel_set_up_front(self, db: Database):
        """A pre-set cancel event stops before the first attempt."""
        cancel = threading.Event()
        cancel.set()
        lock = table_lock(db)

        with pytest.raises(CancelledError):
            lock.acquire(cancel)

        assert lock.current_holder() is None

    def test_force_release_without_lock(self, db: Database):
        """Force-releasing a free lock reports nothing to do."""
        assert table_lock(db).force_release() is False

    def test_acquire_is_idempotent(self, db: Database):
        """Acquiring a held lock again is a no-op."""
        lock = table_lock(db)
        lock.acquire()
        lock.acquire()

        assert lock.held
        lock.release()


class TestCreateLock:
    """Tests for create_lock."""

    def test_sqlite_uses_table_lock(self, db: Database):
        """SQLite targets get the table-backed lock."""
        lock = create_lock(db, LockConfig(timeout=1.0), "schemalog_lock")

        assert isinstance(lock, TableLock)
        assert lock.timeout == 1.0

    def test_advisory_lock_not_held_until_acquired(self, db: Database):
        """Constructing an advisory lock does not contact the server."""
        lock = AdvisoryLock(db, timeout=1.0, poll_interval=0.1, key=7_465_839_201)

        assert lock.key == 7_465_839_201
        assert not lock.held
