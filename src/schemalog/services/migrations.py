"""Migration service: the up and verify workflows."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..core.exceptions import DriftError
from ..core.types import Drift, MigrationPlan, RunReport
from ..engine.loader import new_migration
from ..engine.planner import plan_migrations
from ..engine.verifier import find_drift, verify_checksums

if TYPE_CHECKING:
    from .container import ServiceContainer


class MigrationService:
    """Runs the loader, planner, verifier and executor in order.

    Source discovery always happens before the database is touched. Applying
    migrations happens only while the single-writer lock is held, and the
    recorded state is read after acquiring it, so a run that waited on
    another finds whatever that run applied.

    Example:

        with ServiceContainer(config) as services:
            report = services.migrations.up()
            print(f"Applied {len(report.applied)} migration(s)")
    """

    def __init__(self, container: "ServiceContainer"):
        """Initialize MigrationService.

        Args:
            container: Service container with shared resources.
        """
        self._container = container

    def plan(self, target: int | None = None) -> MigrationPlan:
        """Plan against the current recorded state without locking."""
        units = self._container.loader.load_all()
        applied = self._container.records.list_applied()
        return plan_migrations(units, applied, target)

    def up(
        self,
        target: int | None = None,
        *,
        dry_run: bool = False,
        cancel: threading.Event | None = None,
    ) -> RunReport:
        """Apply all pending migrations (or up to ``target``).

        Args:
            target: Highest version to apply.
            dry_run: Plan and verify only; no lock, no writes.
            cancel: Stops the run between units when set.

        Returns:
            RunReport for the run.

        Raises:
            DiscoveryError, ParseError: Source problems, before any database contact.
            LockError: Another run held the lock past the timeout.
            OrderError: Recorded state and known units disagree.
            DriftError: Applied units changed on disk and the policy is FAIL.
            MigrationError: A unit failed and was rolled back.
            CancelledError: ``cancel`` was set during the lock wait or between units.
        """
        units = self._container.loader.load_all()
        policy = self._container.config.drift_policy
        records = self._container.records
        executor = self._container.executor

        if dry_run:
            plan = plan_migrations(units, records.list_applied(), target)
            drifts = verify_checksums(plan, policy)
            report = executor.apply(plan.pending, dry_run=True)
            report.drifts = drifts
            return report

        lock = self._container.create_lock()
        lock.acquire(cancel)
        with lock:
            records.ensure_table()
            plan = plan_migrations(units, records.list_applied(), target)
            drifts = verify_checksums(plan, policy)

            if plan.is_up_to_date:
                logger.info(
                    f"Database is up to date at version {plan.current_version}, "
                    "no migrations to apply"
                )

            report = executor.apply(plan.pending, cancel=cancel)
            report.drifts = drifts
            return report

    def verify(self) -> list[Drift]:
        """Check every applied migration against its file.

        Drift always fails here, whatever the configured policy.

        Raises:
            OrderError: If an applied migration's file is missing.
            DriftError: If any applied migration changed.
        """
        plan = self.plan()
        drifts = find_drift(plan)
        if drifts:
            raise DriftError(drifts)
        logger.info(f"Verified {len(plan.applied)} applied migration(s), no drift")
        return drifts

    def add(self, slug: str) -> Path:
        """Create a new, empty migration file in the source directory."""
        return new_migration(self._container.config.source_dir, slug)

    def unlock(self) -> bool:
        """Remove a lock left behind by a crashed run."""
        return self._container.create_lock().force_release()
