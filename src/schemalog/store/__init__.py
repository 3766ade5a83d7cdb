"""Data access layer for schemalog.

This package provides the persistence layer including:
- Database: SQLAlchemy engine and transaction management
- MigrationRecordRepository: the table of applied migrations
- MigrationLock: single-writer lock for migration runs

Example:
    from schemalog.store import Database, MigrationRecordRepository

    db = Database("sqlite:///app.db")
    db.connect()
    records = MigrationRecordRepository(db)
    applied = records.list_applied()
"""

from .database import Database
from .lock import AdvisoryLock, MigrationLock, TableLock, create_lock
from .records import MigrationRecordRepository

__all__ = [
    "AdvisoryLock",
    "Database",
    "MigrationLock",
    "MigrationRecordRepository",
    "TableLock",
    "create_lock",
]
