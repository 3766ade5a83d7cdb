"""Status service for migration state reporting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from ..core.types import MigrationStatusEntry, SchemaStatus

if TYPE_CHECKING:
    from .container import ServiceContainer


class StatusService:
    """Service for reporting where the target stands relative to the source.

    Unlike planning, status never raises on ordering problems; it labels
    them so the operator can see every problem at once:

    - applied: recorded, checksum matches
    - drifted: recorded, file changed since
    - renamed: recorded, file now has a different identifier (e.g. 001 to 1)
    - missing: recorded, file gone
    - pending: not recorded, will be applied next run
    - out-of-order: not recorded, but sorts below the highest applied unit

    Example:

        with ServiceContainer(config) as services:
            status = services.status.get_status()
            print(f"Pending: {status.pending_count}")
    """

    def __init__(self, container: "ServiceContainer"):
        """Initialize StatusService.

        Args:
            container: Service container with shared resources.
        """
        self._container = container

    def get_status(self) -> SchemaStatus:
        """Get current migration status.

        Returns:
            SchemaStatus with one entry per known or recorded migration.
        """
        logger.debug("Getting migration status")

        units = self._container.loader.load_all()
        applied = {r.version: r for r in self._container.records.list_applied()}
        highest = max(applied) if applied else None

        entries: list[tuple[int, MigrationStatusEntry]] = []
        known_versions = set()
        for unit in units:
            known_versions.add(unit.version)
            record = applied.get(unit.version)
            if record is None:
                state = "pending"
                if highest is not None and unit.version < highest:
                    state = "out-of-order"
                entries.append(
                    (unit.version, MigrationStatusEntry(unit.identifier, unit.description, state))
                )
                continue
            if record.identifier != unit.identifier:
                state = "renamed"
            elif record.checksum != unit.checksum:
                state = "drifted"
            else:
                state = "applied"
            entries.append(
                (
                    unit.version,
                    MigrationStatusEntry(
                        unit.identifier, unit.description, state, record.applied_at
                    ),
                )
            )

        for version, record in applied.items():
            if version not in known_versions:
                entries.append(
                    (
                        version,
                        MigrationStatusEntry(
                            record.identifier, record.description, "missing", record.applied_at
                        ),
                    )
                )

        entries.sort(key=lambda pair: pair[0])
        ordered = [entry for _, entry in entries]

        lock_holder = self._container.create_lock().current_holder()

        status = SchemaStatus(
            database_url=self._container.db.engine.url.render_as_string(hide_password=True),
            source_dir=str(self._container.config.source_dir),
            entries=ordered,
            current_version=highest,
            pending_count=sum(1 for e in ordered if e.state == "pending"),
            drift_count=sum(1 for e in ordered if e.state == "drifted"),
            order_error_count=sum(
                1 for e in ordered if e.state in ("missing", "renamed", "out-of-order")
            ),
            lock_holder=lock_holder,
            current_identifier=applied[highest].identifier if highest is not None else None,
        )

        logger.debug(
            f"Migration status: current={status.current_version}, "
            f"pending={status.pending_count}, drifted={status.drift_count}"
        )
        return status
