"""Checksum verification for applied migrations."""

from __future__ import annotations

from loguru import logger

from ..core.exceptions import DriftError
from ..core.types import Drift, DriftPolicy, MigrationPlan


def find_drift(plan: MigrationPlan) -> list[Drift]:
    """Compare each applied unit's current checksum with the recorded one.

    Returns:
        One Drift per mismatching identifier, in ascending order.
    """
    return [
        Drift(identifier=unit.identifier, recorded=record.checksum, current=unit.checksum)
        for unit, record in plan.applied
        if unit.checksum != record.checksum
    ]


def verify_checksums(plan: MigrationPlan, policy: DriftPolicy = DriftPolicy.FAIL) -> list[Drift]:
    """Check applied units for drift and apply ``policy``.

    Args:
        plan: Plan whose applied pairs are checked.
        policy: FAIL raises, WARN logs each drift and returns them.

    Returns:
        Detected drifts (empty when everything matches).

    Raises:
        DriftError: Under the FAIL policy when any drift exists.
    """
    drifts = find_drift(plan)
    if not drifts:
        logger.debug(f"Verified {len(plan.applied)} applied migration checksum(s)")
        return drifts

    if policy is DriftPolicy.FAIL:
        raise DriftError(drifts)

    for drift in drifts:
        logger.warning(
            f"Migration {drift.identifier} changed since it was applied "
            f"(recorded {drift.recorded[:12]}, now {drift.current[:12]})"
        )
    return drifts
