"""Migration engine for schemalog.

Loader → planner → verifier → executor:

    from schemalog.engine import (
        MigrationExecutor,
        MigrationLoader,
        plan_migrations,
        verify_checksums,
    )

    units = MigrationLoader(Path("migrations")).load_all()
    plan = plan_migrations(units, records.list_applied())
    verify_checksums(plan)
    MigrationExecutor(db, records).apply(plan.pending)
"""

from .executor import MigrationExecutor
from .loader import MigrationLoader, new_migration
from .planner import plan_migrations
from .statements import split_statements
from .verifier import find_drift, verify_checksums

__all__ = [
    "MigrationExecutor",
    "MigrationLoader",
    "find_drift",
    "new_migration",
    "plan_migrations",
    "split_statements",
    "verify_checksums",
]
