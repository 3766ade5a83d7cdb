"""Bookkeeping table definitions for schemalog.

Both tables are created with ``IF NOT EXISTS`` before anything is recorded,
so bootstrapping an empty database and reconnecting to a migrated one run the
same statements.
"""

import re

from ..core.exceptions import ConfigError

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

RECORDS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS {table} (
    identifier VARCHAR(64) PRIMARY KEY,
    version BIGINT NOT NULL,
    description TEXT NOT NULL,
    checksum VARCHAR(64) NOT NULL,
    applied_at VARCHAR(32) NOT NULL,
    execution_ms INTEGER NOT NULL DEFAULT 0
)"""

LOCK_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS {table} (
    id INTEGER PRIMARY KEY,
    holder TEXT NOT NULL,
    acquired_at VARCHAR(32) NOT NULL
)"""


def check_table_name(name: str) -> str:
    """Validate a configured table name before it is interpolated into SQL.

    Raises:
        ConfigError: If the name is not a plain SQL identifier.
    """
    if not _IDENTIFIER_RE.match(name):
        raise ConfigError(f"Invalid table name: {name!r}")
    return name


def records_table_sql(table: str) -> str:
    return RECORDS_TABLE_SQL.format(table=check_table_name(table))


def lock_table_sql(table: str) -> str:
    return LOCK_TABLE_SQL.format(table=check_table_name(table))
