"""Type definitions for schemalog."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class DriftPolicy(Enum):
    """What to do when an applied migration's content changed."""

    WARN = "warn"
    FAIL = "fail"


class UnitState(Enum):
    """Lifecycle of a migration unit within one run."""

    PENDING = "pending"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


@dataclass(frozen=True)
class MigrationUnit:
    """One versioned batch of schema statements discovered on disk.

    Attributes:
        version: Numeric value of the identifier, used for ordering.
        identifier: Digit prefix of the file name, as written.
        description: Human-readable slug from the file name.
        path: Source file.
        checksum: SHA256 of the normalized file content.
        statements: Individual statements in file order.
    """

    version: int
    identifier: str
    description: str
    path: Path
    checksum: str
    statements: tuple[str, ...]

    def __str__(self) -> str:
        return f"{self.identifier} ({self.description})"


@dataclass(frozen=True)
class AppliedMigration:
    """A row of the migration record store."""

    identifier: str
    version: int
    checksum: str
    applied_at: str
    description: str = ""
    execution_ms: int = 0


@dataclass
class MigrationPlan:
    """Known units partitioned against the recorded state."""

    applied: list[tuple[MigrationUnit, AppliedMigration]] = field(default_factory=list)
    pending: list[MigrationUnit] = field(default_factory=list)

    @property
    def current_version(self) -> Optional[int]:
        """Highest applied version, or None on a fresh database."""
        if not self.applied:
            return None
        return self.applied[-1][1].version

    @property
    def is_up_to_date(self) -> bool:
        return not self.pending


@dataclass(frozen=True)
class Drift:
    """Checksum mismatch for one applied unit."""

    identifier: str
    recorded: str
    current: str


@dataclass
class UnitOutcome:
    """Result of driving one unit through the state machine."""

    unit: MigrationUnit
    state: UnitState = UnitState.PENDING
    duration_ms: int = 0
    error: Optional[str] = None


@dataclass
class RunReport:
    """Outcome of one `up` run."""

    outcomes: list[UnitOutcome] = field(default_factory=list)
    dry_run: bool = False
    drifts: list[Drift] = field(default_factory=list)

    @property
    def applied(self) -> list[MigrationUnit]:
        return [o.unit for o in self.outcomes if o.state is UnitState.APPLIED]

    @property
    def failed(self) -> Optional[UnitOutcome]:
        for outcome in self.outcomes:
            if outcome.state is UnitState.FAILED:
                return outcome
        return None

    @property
    def succeeded(self) -> bool:
        return self.failed is None


@dataclass
class MigrationStatusEntry:
    """One line of `migrate status` output."""

    identifier: str
    description: str
    state: str  # applied, drifted, renamed, missing, pending, out-of-order
    applied_at: Optional[str] = None


@dataclass
class SchemaStatus:
    """Overall state of the target database relative to the source."""

    database_url: str
    source_dir: str
    entries: list[MigrationStatusEntry]
    current_version: Optional[int]
    pending_count: int
    drift_count: int
    order_error_count: int
    lock_holder: Optional[str] = None
    # Identifier as written in the file name, leading zeros kept
    current_identifier: Optional[str] = None

    @property
    def healthy(self) -> bool:
        return self.drift_count == 0 and self.order_error_count == 0
