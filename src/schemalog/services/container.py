"""Service container for dependency injection and lifecycle management."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from ..core.config import Config
from ..engine.executor import MigrationExecutor
from ..engine.loader import MigrationLoader
from ..store.database import Database
from ..store.lock import MigrationLock, create_lock
from ..store.records import MigrationRecordRepository

if TYPE_CHECKING:
    from .migrations import MigrationService
    from .status import StatusService


class ServiceContainer:
    """Manages service lifecycle and shared resources.

    The ServiceContainer is the main entry point for using schemalog
    services. It owns the database connection and hands out the loader,
    record store, lock and services built on them.

    The database is connected on first use rather than on entry, so that
    discovery and parse errors in the migration source surface before the
    target is contacted.

    Usage as context manager (recommended):

        with ServiceContainer(config) as services:
            report = services.migrations.up()
            status = services.status.get_status()

    Attributes:
        config: Application configuration.
        db: Database instance (connected by connect()).
        migrations: MigrationService instance.
        status: StatusService instance.
    """

    def __init__(self, config: Config):
        """Initialize container with configuration.

        Args:
            config: Application configuration.
        """
        self.config = config
        self.db = Database(config.database_url)
        self._connected = False

        self._loader: MigrationLoader | None = None
        self._records: MigrationRecordRepository | None = None
        self._executor: MigrationExecutor | None = None
        self._migrations: MigrationService | None = None
        self._status: StatusService | None = None

    def connect(self) -> None:
        """Connect to database. Safe to call repeatedly."""
        if not self._connected:
            self.db.connect()
            self._connected = True
            logger.debug("ServiceContainer connected to database")

    def close(self) -> None:
        """Close the database connection."""
        if self._connected:
            self.db.close()
            self._connected = False
            logger.debug("ServiceContainer closed")

    def __enter__(self) -> "ServiceContainer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # --- Engine components ---

    @property
    def loader(self) -> MigrationLoader:
        if self._loader is None:
            self._loader = MigrationLoader(self.config.source_dir)
        return self._loader

    @property
    def records(self) -> MigrationRecordRepository:
        """Get or create the record store (connects the database)."""
        if self._records is None:
            self.connect()
            self._records = MigrationRecordRepository(self.db, self.config.records.table)
        return self._records

    @property
    def executor(self) -> MigrationExecutor:
        if self._executor is None:
            self._executor = MigrationExecutor(self.db, self.records)
        return self._executor

    def create_lock(self) -> MigrationLock:
        """Create a fresh lock handle for one run."""
        self.connect()
        return create_lock(self.db, self.config.lock, self.config.records.lock_table)

    # --- Services ---

    @property
    def migrations(self) -> "MigrationService":
        """Get or create MigrationService."""
        if self._migrations is None:
            from .migrations import MigrationService

            self._migrations = MigrationService(self)
        return self._migrations

    @property
    def status(self) -> "StatusService":
        """Get or create StatusService."""
        if self._status is None:
            from .status import StatusService

            self._status = StatusService(self)
        return self._status
