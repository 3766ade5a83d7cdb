"""Applied-migration record store for schemalog."""

from datetime import datetime, timezone
from typing import Any

from loguru import logger
from sqlalchemy import Connection, text

from ..core.types import AppliedMigration, MigrationUnit
from .database import Database
from .schema import check_table_name, records_table_sql


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string with seconds precision."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class MigrationRecordRepository:
    """Repository for the table of applied migrations.

    Rows are only ever inserted, inside the same transaction that applied the
    unit they describe.
    """

    def __init__(self, db: Database, table: str = "schemalog_migrations"):
        """Initialize with database connection.

        Args:
            db: Database instance to use for operations.
            table: Name of the bookkeeping table.
        """
        self.db = db
        self.table = check_table_name(table)

    def ensure_table(self) -> None:
        """Create the bookkeeping table if it does not exist yet."""
        self.db.execute(records_table_sql(self.table))

    def exists(self) -> bool:
        """Whether the bookkeeping table has been created."""
        return self.table in self.db.table_names()

    def list_applied(self) -> list[AppliedMigration]:
        """Get all applied migrations ordered by version.

        Returns an empty list when the bookkeeping table does not exist, so
        read-only commands never create it.
        """
        if not self.exists():
            return []
        rows = self.db.query(
            f"SELECT identifier, version, checksum, applied_at, description, execution_ms "
            f"FROM {self.table} ORDER BY version"
        )
        return [self._row_to_applied(row) for row in rows]

    def insert(
        self,
        conn: Connection,
        unit: MigrationUnit,
        execution_ms: int,
    ) -> AppliedMigration:
        """Record ``unit`` as applied using the caller's open transaction.

        Args:
            conn: Connection whose transaction also applied the unit.
            unit: The unit that was applied.
            execution_ms: Time spent running the unit's statements.

        Returns:
            The recorded AppliedMigration.
        """
        record = AppliedMigration(
            identifier=unit.identifier,
            version=unit.version,
            checksum=unit.checksum,
            applied_at=utc_timestamp(),
            description=unit.description,
            execution_ms=execution_ms,
        )
        conn.execute(
            text(
                f"INSERT INTO {self.table} "
                f"(identifier, version, description, checksum, applied_at, execution_ms) "
                f"VALUES (:identifier, :version, :description, :checksum, :applied_at, :execution_ms)"
            ),
            {
                "identifier": record.identifier,
                "version": record.version,
                "description": record.description,
                "checksum": record.checksum,
                "applied_at": record.applied_at,
                "execution_ms": record.execution_ms,
            },
        )
        logger.debug(f"Recorded migration {record.identifier} ({record.checksum[:12]})")
        return record

    @staticmethod
    def _row_to_applied(row: dict[str, Any]) -> AppliedMigration:
        return AppliedMigration(
            identifier=row["identifier"],
            version=int(row["version"]),
            checksum=row["checksum"],
            applied_at=row["applied_at"],
            description=row["description"],
            execution_ms=int(row["execution_ms"] or 0),
        )
