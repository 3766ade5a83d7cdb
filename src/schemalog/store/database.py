"""Database connection manager for schemalog."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from loguru import logger
from sqlalchemy import Connection, Engine, create_engine, event, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..core.exceptions import DatabaseError


def _enable_sqlite_transactional_ddl(engine: Engine, busy_timeout: float) -> None:
    """Make pysqlite run DDL inside the transactions SQLAlchemy starts.

    The sqlite3 module only opens a transaction implicitly before DML, so a
    leading CREATE or ALTER would autocommit and survive a rollback. Turning
    off its transaction handling and emitting BEGIN ourselves fixes that.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.execute(f"PRAGMA busy_timeout = {int(busy_timeout * 1000)}")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class Database:
    """SQLAlchemy engine wrapper with scoped transactions."""

    def __init__(self, url: str, busy_timeout: float = 5.0):
        """Initialize database with URL.

        Args:
            url: SQLAlchemy database URL, e.g. ``sqlite:///app.db`` or
                ``postgresql+psycopg://user@host/db``.
            busy_timeout: Seconds SQLite waits on a locked database file.
        """
        self.url = url
        self.busy_timeout = busy_timeout
        self._engine: Engine | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise DatabaseError("Database not connected")
        return self._engine

    @property
    def dialect(self) -> str:
        """Dialect name of the target, e.g. ``sqlite`` or ``postgresql``."""
        return self.engine.dialect.name

    @property
    def is_sqlite(self) -> bool:
        return self.dialect == "sqlite"

    def connect(self) -> None:
        """Create the engine and check that the target is reachable."""
        if self._engine is not None:
            return

        try:
            url = make_url(self.url)
        except ArgumentError as e:
            raise DatabaseError(f"Invalid database URL {self.url!r}: {e}") from e

        kwargs: dict[str, Any] = {}
        if url.get_backend_name() == "sqlite":
            database = url.database
            if database and database != ":memory:":
                Path(database).parent.mkdir(parents=True, exist_ok=True)
            else:
                # One shared connection, otherwise every checkout is a new empty db
                kwargs["poolclass"] = StaticPool
                kwargs["connect_args"] = {"check_same_thread": False}

        try:
            engine = create_engine(url, **kwargs)
            if engine.dialect.name == "sqlite":
                _enable_sqlite_transactional_ddl(engine, self.busy_timeout)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to connect to database: {e}") from e

        self._engine = engine
        logger.debug(f"Connected to {url.render_as_string(hide_password=True)}")

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine is not None:
            try:
                self._engine.dispose()
            finally:
                self._engine = None

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Context manager for database transactions.

        Commits when the block exits normally and rolls back on any
        exception, including ones raised by the caller.

        Yields:
            A connection with an open transaction.

        Raises:
            DatabaseError: If the connection or a statement fails.
        """
        try:
            with self.engine.connect() as conn:
                with conn.begin():
                    yield conn
        except SQLAlchemyError as e:
            raise DatabaseError(f"Transaction failed: {e}") from e

    def query(self, sql: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Run a read query and return rows as dictionaries.

        Args:
            sql: SQL statement with ``:name`` placeholders.
            params: Values for the placeholders.
        """
        with self.transaction() as conn:
            result = conn.execute(text(sql), params or {})
            return [dict(row) for row in result.mappings()]

    def execute(self, sql: str, params: dict[str, Any] | None = None) -> None:
        """Execute a statement in its own transaction."""
        with self.transaction() as conn:
            conn.execute(text(sql), params or {})

    def table_names(self) -> list[str]:
        """Names of user tables in the target database."""
        try:
            with self.engine.connect() as conn:
                return sorted(inspect(conn).get_table_names())
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to inspect database: {e}") from e

    def column_names(self, table: str) -> list[str]:
        """Column names of ``table`` in declaration order."""
        try:
            with self.engine.connect() as conn:
                return [c["name"] for c in inspect(conn).get_columns(table)]
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to inspect table {table}: {e}") from e


def run_statement(conn: Connection, statement: str) -> None:
    """Execute one raw statement without bind-parameter processing.

    Migration SQL may legitimately contain ``:word`` or ``%`` sequences,
    so it bypasses both SQLAlchemy's and the driver's placeholder handling.
    """
    conn.exec_driver_sql(statement, execution_options={"no_parameters": True})
