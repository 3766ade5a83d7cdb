"""Tests for the applied-migration record store."""

from pathlib import Path

import pytest

from schemalog.core.exceptions import ConfigError
from schemalog.core.types import MigrationUnit
from schemalog.store.database import Database
from schemalog.store.records import MigrationRecordRepository


def make_unit(version: int) -> MigrationUnit:
    return MigrationUnit(
        version=version,
        identifier=str(version),
        description="version external",
        path=Path(f"{version}_version_external.sql"),
        checksum="ab" * 32,
        statements=(),
    )


class TestMigrationRecordRepository:
    """Tests for MigrationRecordRepository."""

    def test_ensure_table_is_idempotent(self, db: Database):
        """Creating the bookkeeping table twice is safe."""
        repo = MigrationRecordRepository(db)

        repo.ensure_table()
        repo.ensure_table()

        assert repo.exists()

    def test_list_applied_without_table(self, db: Database):
        """Reading a fresh database returns nothing and creates nothing."""
        repo = MigrationRecordRepository(db)

        assert repo.list_applied() == []
        assert not repo.exists()

    def test_insert_and_list(self, db: Database, records: MigrationRecordRepository):
        """Inserted records are listed in version order."""
        with db.transaction() as conn:
            records.insert(conn, make_unit(20210701694200), 12)
            records.insert(conn, make_unit(20210613205316), 3)

        applied = records.list_applied()

        assert [r.version for r in applied] == [20210613205316, 20210701694200]
        assert applied[0].checksum == "ab" * 32
        assert applied[0].execution_ms == 3
        assert applied[0].applied_at.endswith("+00:00")

    def test_insert_rolled_back_with_transaction(
        self, db: Database, records: MigrationRecordRepository
    ):
        """A record inserted in a failed transaction does not persist."""
        with pytest.raises(RuntimeError):
            with db.transaction() as conn:
                records.insert(conn, make_unit(1), 0)
                raise RuntimeError("crash before commit")

        assert records.list_applied() == []

    def test_identifier_kept_verbatim(self, db: Database, records: MigrationRecordRepository):
        """Zero-padded identifiers are stored as written, not as numbers."""
        unit = MigrationUnit(
            version=7,
            identifier="0007",
            description="seed",
            path=Path("0007_seed.sql"),
            checksum="ab" * 32,
            statements=(),
        )
        with db.transaction() as conn:
            records.insert(conn, unit, 0)

        [record] = records.list_applied()
        assert record.identifier == "0007"
        assert record.version == 7

    def test_custom_table_name(self, db: Database):
        """The bookkeeping table name is configurable."""
        repo = MigrationRecordRepository(db, table="_sqlx_like_migrations")
        repo.ensure_table()

        assert "_sqlx_like_migrations" in db.table_names()

    def test_rejects_unsafe_table_name(self, db: Database):
        """Table names are validated before being put into SQL."""
        with pytest.raises(ConfigError):
            MigrationRecordRepository(db, table="records; DROP TABLE mods")
