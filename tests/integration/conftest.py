"""Pytest configuration and fixtures for integration tests."""

import shutil
from pathlib import Path

import pytest

INITIAL_SCHEMA = """\
-- Tables the later platform migrations build on
CREATE TABLE users (
    id BIGINT PRIMARY KEY,
    username VARCHAR(255) NOT NULL UNIQUE
);

CREATE TABLE mods (
    id BIGINT PRIMARY KEY,
    title VARCHAR(255) NOT NULL,
    team_id BIGINT
);

CREATE TABLE versions (
    id BIGINT PRIMARY KEY,
    mod_id BIGINT NOT NULL REFERENCES mods,
    version_number VARCHAR(255) NOT NULL
);

CREATE TABLE dependencies (
    id INTEGER PRIMARY KEY,
    dependent_id BIGINT REFERENCES versions,
    dependency_id BIGINT REFERENCES versions
);

INSERT INTO mods (id, title) VALUES (1, 'Sodium');
INSERT INTO versions (id, mod_id, version_number) VALUES (10, 1, '0.1.0');
"""


@pytest.fixture
def platform_source(fixtures_dir: Path, source_dir: Path) -> Path:
    """Provide a source directory with an initial schema plus the fixture migrations."""
    (source_dir / "20210101000000_initial_schema.sql").write_text(
        INITIAL_SCHEMA, encoding="utf-8"
    )
    for path in sorted((fixtures_dir / "migrations").glob("*.sql")):
        shutil.copy(path, source_dir / path.name)
    return source_dir
