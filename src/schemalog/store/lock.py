"""Single-writer migration lock.

Only one run may apply migrations against a target at a time. PostgreSQL
targets use a session-level advisory lock; SQLite has no such primitive, so a
one-row lock table stands in for it.

Example:
    lock = create_lock(db, config.lock, config.records.lock_table)
    with lock:
        ...  # apply pending migrations
"""

from __future__ import annotations

import os
import socket
import threading
import time
import uuid
from abc import ABC, abstractmethod

from loguru import logger
from sqlalchemy import Connection, text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from ..core.config import LockConfig
from ..core.exceptions import CancelledError, DatabaseError, LockError
from ..core.types import RunReport
from .database import Database
from .records import utc_timestamp
from .schema import check_table_name, lock_table_sql


def _holder_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


class MigrationLock(ABC):
    """Cooperative lock serializing migration runs against one database."""

    def __init__(self, db: Database, timeout: float, poll_interval: float):
        """Initialize lock.

        Args:
            db: Target database.
            timeout: Seconds to keep trying before giving up.
            poll_interval: Seconds between attempts.
        """
        self.db = db
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.holder = _holder_id()
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self, cancel: threading.Event | None = None) -> None:
        """Block until the lock is held or the timeout elapses.

        Args:
            cancel: Checked before every attempt; when set the wait stops.

        Raises:
            LockError: If another run still holds the lock after ``timeout``.
            CancelledError: If ``cancel`` was set while waiting.
        """
        if self._held:
            return

        deadline = time.monotonic() + self.timeout
        attempts = 0
        while True:
            if cancel is not None and cancel.is_set():
                logger.warning("Cancelled while waiting for the migration lock")
                raise CancelledError(RunReport())
            attempts += 1
            if self._try_acquire():
                self._held = True
                logger.debug(f"Acquired migration lock as {self.holder}")
                return

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                current = self.current_holder()
                detail = f" (held by {current})" if current else ""
                raise LockError(
                    f"Timed out after {self.timeout:g}s waiting for the migration lock{detail}"
                )
            if attempts == 1:
                logger.info("Another migration run holds the lock, waiting")
            time.sleep(min(self.poll_interval, remaining))

    def release(self) -> None:
        if not self._held:
            return
        try:
            self._release()
            logger.debug(f"Released migration lock held by {self.holder}")
        finally:
            self._held = False

    def __enter__(self) -> "MigrationLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    @abstractmethod
    def _try_acquire(self) -> bool:
        """Make one non-blocking acquisition attempt."""

    @abstractmethod
    def _release(self) -> None:
        ...

    @abstractmethod
    def current_holder(self) -> str | None:
        """Describe whoever holds the lock now, or None if it is free."""

    @abstractmethod
    def force_release(self) -> bool:
        """Remove a lock left behind by a crashed run.

        Returns:
            True if a stale lock was removed.
        """


class TableLock(MigrationLock):
    """Lock backed by a single-row table, for databases without advisory locks."""

    def __init__(self, db: Database, timeout: float, poll_interval: float, table: str):
        super().__init__(db, timeout, poll_interval)
        self.table = check_table_name(table)

    def _try_acquire(self) -> bool:
        try:
            with self.db.transaction() as conn:
                conn.execute(text(lock_table_sql(self.table)))
                conn.execute(
                    text(
                        f"INSERT INTO {self.table} (id, holder, acquired_at) "
                        f"VALUES (1, :holder, :acquired_at)"
                    ),
                    {"holder": self.holder, "acquired_at": utc_timestamp()},
                )
            return True
        except DatabaseError as e:
            cause = e.__cause__
            if isinstance(cause, IntegrityError):
                return False
            if isinstance(cause, OperationalError) and "locked" in str(cause).lower():
                # Another run is mid-transaction; same as held
                return False
            raise

    def _release(self) -> None:
        self.db.execute(
            f"DELETE FROM {self.table} WHERE id = 1 AND holder = :holder",
            {"holder": self.holder},
        )

    def current_holder(self) -> str | None:
        if self.table not in self.db.table_names():
            return None
        rows = self.db.query(f"SELECT holder, acquired_at FROM {self.table} WHERE id = 1")
        if not rows:
            return None
        return f"{rows[0]['holder']} since {rows[0]['acquired_at']}"

    def force_release(self) -> bool:
        current = self.current_holder()
        if current is None:
            return False
        self.db.execute(f"DELETE FROM {self.table} WHERE id = 1")
        logger.warning(f"Force-released migration lock held by {current}")
        return True


class AdvisoryLock(MigrationLock):
    """PostgreSQL session-level advisory lock.

    The lock lives as long as the session, so it is held on a dedicated
    connection that stays open until release.
    """

    def __init__(self, db: Database, timeout: float, poll_interval: float, key: int):
        super().__init__(db, timeout, poll_interval)
        self.key = key
        self._conn: Connection | None = None

    def _connection(self) -> Connection:
        if self._conn is None:
            try:
                self._conn = self.db.engine.connect().execution_options(
                    isolation_level="AUTOCOMMIT"
                )
            except SQLAlchemyError as e:
                raise DatabaseError(f"Failed to open lock connection: {e}") from e
        return self._conn

    def _try_acquire(self) -> bool:
        try:
            return bool(
                self._connection()
                .execute(text("SELECT pg_try_advisory_lock(:key)"), {"key": self.key})
                .scalar()
            )
        except SQLAlchemyError as e:
            raise DatabaseError(f"Advisory lock query failed: {e}") from e

    def _release(self) -> None:
        conn = self._conn
        self._conn = None
        if conn is None:
            return
        try:
            conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": self.key})
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to release advisory lock: {e}") from e
        finally:
            conn.close()

    def acquire(self, cancel: threading.Event | None = None) -> None:
        try:
            super().acquire(cancel)
        except (LockError, CancelledError):
            self._close_quietly()
            raise

    def _close_quietly(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def current_holder(self) -> str | None:
        # pg_locks splits a bigint key into two 32-bit halves
        rows = self.db.query(
            "SELECT pid FROM pg_locks WHERE locktype = 'advisory' AND granted "
            "AND classid = :hi AND objid = :lo AND objsubid = 1",
            {"hi": (self.key >> 32) & 0xFFFFFFFF, "lo": self.key & 0xFFFFFFFF},
        )
        if not rows:
            return None
        return f"postgres backend pid {rows[0]['pid']}"

    def force_release(self) -> bool:
        current = self.current_holder()
        if current is not None:
            logger.warning(
                f"Advisory lock is held by live session ({current}); "
                "it is released when that session ends"
            )
        return False


def create_lock(db: Database, config: LockConfig, table: str) -> MigrationLock:
    """Create the lock implementation suited to the target's dialect."""
    if db.dialect == "postgresql":
        return AdvisoryLock(db, config.timeout, config.poll_interval, config.advisory_key)
    return TableLock(db, config.timeout, config.poll_interval, table)
