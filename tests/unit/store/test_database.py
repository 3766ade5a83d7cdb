"""Tests for database connection and management."""

from pathlib import Path

import pytest

from schemalog.core.exceptions import DatabaseError
from schemalog.store.database import Database, run_statement


class TestDatabaseConnection:
    """Tests for database connection lifecycle."""

    def test_connect_creates_database_file(self, tmp_path: Path):
        """Database file should be created on connect."""
        path = tmp_path / "app.db"
        db = Database(f"sqlite:///{path}")
        db.connect()

        assert path.exists()
        db.close()

    def test_connect_creates_parent_directories(self, tmp_path: Path):
        """Connect should create parent directories if needed."""
        path = tmp_path / "subdir" / "nested" / "app.db"
        db = Database(f"sqlite:///{path}")
        db.connect()

        assert path.exists()
        db.close()

    def test_close_without_connect(self, database_url: str):
        """Close should not raise if not connected."""
        db = Database(database_url)
        db.close()

    def test_double_connect(self, database_url: str):
        """Connecting twice should work without error."""
        db = Database(database_url)
        db.connect()
        db.connect()
        db.close()

    def test_close_clears_connection(self, database_url: str):
        """Close should clear the engine."""
        db = Database(database_url)
        db.connect()
        db.close()

        with pytest.raises(DatabaseError, match="not connected"):
            db.execute("SELECT 1")

    def test_invalid_url(self):
        """Malformed URLs are reported as DatabaseError."""
        db = Database("not a url")

        with pytest.raises(DatabaseError, match="Invalid database URL"):
            db.connect()

    def test_unknown_dialect(self):
        """Unloadable dialects are reported as DatabaseError."""
        db = Database("nosuchdb://localhost/x")

        with pytest.raises(DatabaseError, match="Failed to connect"):
            db.connect()

    def test_in_memory_database_is_shared(self):
        """In-memory targets keep one connection so tables persist."""
        db = Database("sqlite://")
        db.connect()
        db.execute("CREATE TABLE mods (id INTEGER)")

        assert "mods" in db.table_names()
        db.close()

    def test_dialect(self, db: Database):
        """Dialect name reflects the target."""
        assert db.dialect == "sqlite"
        assert db.is_sqlite


class TestTransactions:
    """Tests for scoped transactions."""

    def test_commit_on_success(self, db: Database):
        """Work done in the block is committed."""
        with db.transaction() as conn:
            run_statement(conn, "CREATE TABLE mods (id INTEGER)")
            run_statement(conn, "INSERT INTO mods VALUES (1)")

        assert db.query("SELECT id FROM mods") == [{"id": 1}]

    def test_ddl_rolls_back_on_error(self, db: Database):
        """DDL is transactional: a failed block leaves no table behind."""
        with pytest.raises(RuntimeError):
            with db.transaction() as conn:
                run_statement(conn, "CREATE TABLE mod_images (mod_id BIGINT)")
                raise RuntimeError("boom")

        assert "mod_images" not in db.table_names()

    def test_database_errors_are_wrapped(self, db: Database):
        """Driver errors surface as DatabaseError with the cause attached."""
        with pytest.raises(DatabaseError, match="Transaction failed") as excinfo:
            with db.transaction() as conn:
                run_statement(conn, "SELECT * FROM missing_table")

        assert excinfo.value.__cause__ is not None

    def test_alter_rolls_back(self, db: Database):
        """Column additions are undone with the transaction."""
        db.execute("CREATE TABLE versions (id BIGINT)")

        with pytest.raises(DatabaseError):
            with db.transaction() as conn:
                run_statement(conn, "ALTER TABLE versions ADD COLUMN external_url VARCHAR")
                run_statement(conn, "ALTER TABLE nope ADD COLUMN x INT")

        assert db.column_names("versions") == ["id"]

    def test_query_with_parameters(self, db: Database):
        """query() binds named parameters."""
        db.execute("CREATE TABLE users (id INTEGER, name TEXT)")
        db.execute("INSERT INTO users VALUES (:id, :name)", {"id": 1, "name": "geo"})

        rows = db.query("SELECT name FROM users WHERE id = :id", {"id": 1})

        assert rows == [{"name": "geo"}]
