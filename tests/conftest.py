"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Callable

import pytest

from schemalog.core.config import Config
from schemalog.services import ServiceContainer
from schemalog.store.database import Database
from schemalog.store.records import MigrationRecordRepository

ENV_VARS = (
    "DATABASE_URL",
    "SCHEMALOG_CONFIG",
    "SCHEMALOG_DATABASE_URL",
    "SCHEMALOG_SOURCE",
    "SCHEMALOG_DRIFT_POLICY",
    "SCHEMALOG_LOCK_TIMEOUT",
    "SCHEMALOG_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's environment out of configuration."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fixtures_dir() -> Path:
    """Provide path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """Provide an empty migration source directory."""
    path = tmp_path / "migrations"
    path.mkdir()
    return path


@pytest.fixture
def write_migration(source_dir: Path) -> Callable[[str, str], Path]:
    """Provide a helper that writes a migration file into source_dir."""

    def _write(name: str, sql: str) -> Path:
        path = source_dir / name
        path.write_text(sql, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """Provide a URL for a temporary SQLite target database."""
    return f"sqlite:///{tmp_path / 'target.db'}"


@pytest.fixture
def db(database_url: str) -> Database:
    """Provide a connected database instance."""
    database = Database(database_url)
    database.connect()
    yield database
    database.close()


@pytest.fixture
def records(db: Database) -> MigrationRecordRepository:
    """Provide a record store with its table created."""
    repo = MigrationRecordRepository(db)
    repo.ensure_table()
    return repo


@pytest.fixture
def config(database_url: str, source_dir: Path) -> Config:
    """Provide a Config pointing at the temporary database and source."""
    cfg = Config()
    cfg.database_url = database_url
    cfg.source_dir = source_dir
    cfg.lock.timeout = 2.0
    cfg.lock.poll_interval = 0.02
    return cfg


@pytest.fixture
def services(config: Config) -> ServiceContainer:
    """Provide a ServiceContainer, closed after the test."""
    container = ServiceContainer(config)
    yield container
    container.close()


@pytest.fixture
def schema_snapshot() -> Callable[[Database], list[tuple]]:
    """Provide a helper returning every schema object's definition."""

    def _snapshot(database: Database) -> list[tuple]:
        rows = database.query(
            "SELECT type, name, sql FROM sqlite_master ORDER BY type, name"
        )
        return [(r["type"], r["name"], r["sql"]) for r in rows]

    return _snapshot
