"""Partition known units against the recorded schema state."""

from __future__ import annotations

from typing import Iterable

from loguru import logger

from ..core.exceptions import OrderError
from ..core.types import AppliedMigration, MigrationPlan, MigrationUnit


def plan_migrations(
    units: Iterable[MigrationUnit],
    applied: list[AppliedMigration],
    target: int | None = None,
) -> MigrationPlan:
    """Split ``units`` into already-applied and pending.

    The applied records must form an exact prefix of the known units: every
    recorded identifier has a file with that exact identifier, and no
    unapplied unit sorts below the highest applied one.

    Args:
        units: Known units in ascending order.
        applied: Records from the migration record store.
        target: If given, only plan pending units up to this version.

    Returns:
        MigrationPlan with applied pairs and pending units, both ascending.

    Raises:
        OrderError: If a recorded migration has no file or its file now has a
            different identifier, a pending unit would be inserted out of
            order, or ``target`` is unknown or already behind.
    """
    known = sorted(units, key=lambda u: u.version)
    by_version = {u.version: u for u in known}
    records = sorted(applied, key=lambda r: r.version)

    plan = MigrationPlan()
    for record in records:
        unit = by_version.get(record.version)
        if unit is None:
            raise OrderError(
                record.identifier,
                "is recorded as applied but its migration file is missing",
            )
        if unit.identifier != record.identifier:
            raise OrderError(
                record.identifier,
                f"is recorded as applied but its file is now {unit.path.name}",
            )
        plan.applied.append((unit, record))

    applied_versions = {r.version for r in records}
    highest = records[-1] if records else None

    for unit in known:
        if unit.version in applied_versions:
            continue
        if highest is not None and unit.version < highest.version:
            raise OrderError(
                unit.identifier,
                f"is not applied but sorts before applied migration {highest.identifier}",
            )
        plan.pending.append(unit)

    if target is not None:
        if target not in by_version:
            raise OrderError(str(target), "target is not a known migration")
        if highest is not None and target < highest.version:
            raise OrderError(
                str(target),
                f"target is behind the current version {highest.identifier}",
            )
        plan.pending = [u for u in plan.pending if u.version <= target]

    logger.debug(
        f"Planned {len(plan.applied)} applied, {len(plan.pending)} pending migration(s)"
    )
    return plan
