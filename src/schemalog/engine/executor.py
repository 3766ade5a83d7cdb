"""Apply pending migration units transactionally."""

from __future__ import annotations

import threading
import time

from loguru import logger

from ..core.exceptions import CancelledError, DatabaseError, MigrationError, OrderError
from ..core.types import MigrationUnit, RunReport, UnitOutcome, UnitState
from ..store.database import Database, run_statement
from ..store.records import MigrationRecordRepository
from .loader import check_statements


class MigrationExecutor:
    """Applies units one transaction at a time.

    Each unit's statements and its record insert share one transaction, so
    either both land or neither does. The first failure rolls back that unit
    and stops the run; later units stay pending.

    Cancellation is only checked between units. A unit that has started runs
    to commit or rollback.

    Example:
        executor = MigrationExecutor(db, records)
        report = executor.apply(plan.pending)
        print(f"Applied {len(report.applied)} migration(s)")
    """

    def __init__(self, db: Database, records: MigrationRecordRepository):
        """Initialize executor.

        Args:
            db: Target database.
            records: Record store written in the same transaction as each unit.
        """
        self.db = db
        self.records = records

    def apply(
        self,
        pending: list[MigrationUnit],
        *,
        cancel: threading.Event | None = None,
        dry_run: bool = False,
    ) -> RunReport:
        """Apply ``pending`` in ascending identifier order.

        Args:
            pending: Units to apply, ascending.
            cancel: Checked before each unit; when set the run stops.
            dry_run: Report what would run without touching the database.

        Returns:
            RunReport with one outcome per unit.

        Raises:
            OrderError: If ``pending`` is not strictly ascending.
            ParseError: If a unit holds its own transaction-control statement.
            MigrationError: If a unit fails; it is rolled back and the partial
                report is attached.
            CancelledError: If ``cancel`` was set before all units ran.
        """
        for prev, cur in zip(pending, pending[1:]):
            if cur.version <= prev.version:
                raise OrderError(cur.identifier, f"queued after {prev.identifier}")
        for unit in pending:
            check_statements(unit.path.name, unit.statements)

        report = RunReport(outcomes=[UnitOutcome(unit=u) for u in pending], dry_run=dry_run)

        if not pending:
            logger.debug("No migrations to apply")
            return report

        if dry_run:
            for outcome in report.outcomes:
                logger.info(
                    f"Would apply migration {outcome.unit.identifier}: "
                    f"{outcome.unit.description} ({len(outcome.unit.statements)} statement(s))"
                )
            return report

        for outcome in report.outcomes:
            if cancel is not None and cancel.is_set():
                logger.warning(
                    f"Cancelled before migration {outcome.unit.identifier}, "
                    f"{len(report.applied)} applied"
                )
                raise CancelledError(report)
            self._apply_unit(outcome, report)

        logger.info(f"Applied {len(report.applied)} migration(s)")
        return report

    def _apply_unit(self, outcome: UnitOutcome, report: RunReport) -> None:
        unit = outcome.unit
        outcome.state = UnitState.APPLYING
        logger.info(f"Applying migration {unit.identifier}: {unit.description}")

        start = time.perf_counter()
        statement: str | None = None
        try:
            with self.db.transaction() as conn:
                for statement in unit.statements:
                    run_statement(conn, statement)
                statement = None
                elapsed_ms = int((time.perf_counter() - start) * 1000)
                self.records.insert(conn, unit, elapsed_ms)
        except DatabaseError as e:
            cause = e.__cause__ or e
            outcome.state = UnitState.FAILED
            outcome.error = str(cause)
            outcome.duration_ms = int((time.perf_counter() - start) * 1000)
            logger.error(f"Migration {unit.identifier} failed, rolled back: {cause}")
            raise MigrationError(unit.identifier, cause, statement, report) from e

        outcome.state = UnitState.APPLIED
        outcome.duration_ms = elapsed_ms
        logger.debug(f"Migration {unit.identifier} applied in {elapsed_ms}ms")
