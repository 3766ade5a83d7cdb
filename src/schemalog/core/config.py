"""Configuration management for schemalog."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import ConfigError
from .types import DriftPolicy


@dataclass
class LockConfig:
    """Single-writer lock configuration."""

    # Seconds to wait for another run to release the lock
    timeout: float = 60.0
    # Seconds between acquisition attempts
    poll_interval: float = 0.5
    # Key passed to pg_advisory_lock
    advisory_key: int = 7_465_839_201


@dataclass
class RecordsConfig:
    """Migration record store configuration."""

    table: str = "schemalog_migrations"
    lock_table: str = "schemalog_lock"


def _default_database_url() -> str:
    """Get default database URL."""
    data_dir = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return f"sqlite:///{data_dir / 'schemalog' / 'schemalog.db'}"


def parse_drift_policy(value: str) -> DriftPolicy:
    try:
        return DriftPolicy(value.lower())
    except ValueError as e:
        choices = ", ".join(p.value for p in DriftPolicy)
        raise ConfigError(f"Invalid drift policy {value!r} (expected one of: {choices})") from e


def _parse_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


def _section(data: dict, name: str) -> dict:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table, got {section!r}")
    return section


@dataclass
class Config:
    """Main application configuration."""

    database_url: str = field(default_factory=_default_database_url)
    source_dir: Path = Path("migrations")
    drift_policy: DriftPolicy = DriftPolicy.FAIL
    log_level: str = "INFO"
    lock: LockConfig = field(default_factory=LockConfig)
    records: RecordsConfig = field(default_factory=RecordsConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        config = cls()
        config._apply_env()
        return config

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        """Load configuration from a TOML file, then apply env overrides.

        Relative ``source_dir`` values are resolved against the file's
        directory.

        Args:
            path: Path to the TOML file.

        Raises:
            ConfigError: If the file cannot be read or holds invalid values.
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to load config {path}: {e}") from e

        config = cls()

        if url := data.get("database_url"):
            config.database_url = str(url)
        if source := data.get("source_dir"):
            source_path = Path(source)
            if not source_path.is_absolute():
                source_path = Path(path).parent / source_path
            config.source_dir = source_path
        if policy := data.get("drift_policy"):
            config.drift_policy = parse_drift_policy(str(policy))
        if level := data.get("log_level"):
            config.log_level = str(level).upper()

        lock = _section(data, "lock")
        if "timeout" in lock:
            config.lock.timeout = _parse_float("lock.timeout", str(lock["timeout"]))
        if "poll_interval" in lock:
            config.lock.poll_interval = _parse_float(
                "lock.poll_interval", str(lock["poll_interval"])
            )
        if "advisory_key" in lock:
            config.lock.advisory_key = _parse_int(
                "lock.advisory_key", str(lock["advisory_key"])
            )

        records = _section(data, "records")
        if table := records.get("table"):
            config.records.table = str(table)
        if lock_table := records.get("lock_table"):
            config.records.lock_table = str(lock_table)

        config._apply_env()
        return config

    @classmethod
    def from_env_or_file(cls, path: Path | None = None) -> "Config":
        """Load from ``path`` or ``SCHEMALOG_CONFIG`` if set, else from env."""
        if path is None:
            if env_path := os.environ.get("SCHEMALOG_CONFIG"):
                path = Path(env_path)
        if path is not None:
            return cls.from_file(path)
        return cls.from_env()

    def _apply_env(self) -> None:
        # DATABASE_URL is shared with the application; ours wins
        if url := os.environ.get("DATABASE_URL"):
            self.database_url = url
        if url := os.environ.get("SCHEMALOG_DATABASE_URL"):
            self.database_url = url

        if source := os.environ.get("SCHEMALOG_SOURCE"):
            self.source_dir = Path(source)

        if policy := os.environ.get("SCHEMALOG_DRIFT_POLICY"):
            self.drift_policy = parse_drift_policy(policy)

        if timeout := os.environ.get("SCHEMALOG_LOCK_TIMEOUT"):
            self.lock.timeout = _parse_float("SCHEMALOG_LOCK_TIMEOUT", timeout)

        if level := os.environ.get("SCHEMALOG_LOG_LEVEL"):
            self.log_level = level.upper()
