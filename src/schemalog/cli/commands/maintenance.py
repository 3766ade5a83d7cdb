"""Authoring and maintenance commands for the migrate CLI."""

from ...core.config import Config
from ...services import ServiceContainer


def handle_add(args, config: Config) -> int:
    """Create a new timestamped migration file."""
    with ServiceContainer(config) as services:
        path = services.migrations.add(args.slug)
    print(f"Created {path}")
    return 0


def handle_unlock(args, config: Config) -> int:
    """Remove a migration lock left behind by a crashed run."""
    with ServiceContainer(config) as services:
        released = services.migrations.unlock()
    print("Lock released." if released else "No stale lock to release.")
    return 0
