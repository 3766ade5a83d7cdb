"""Status command for the migrate CLI."""

from ...core.config import Config
from ...core.types import SchemaStatus
from ...services import ServiceContainer

_MARKS = {
    "applied": "✓",
    "pending": "·",
    "drifted": "!",
    "renamed": "!",
    "missing": "✗",
    "out-of-order": "✗",
}


def handle_status(args, config: Config) -> int:
    """Handle status command.

    Args:
        args: Parsed command arguments.
        config: Application configuration.

    Returns:
        1 if any migration drifted, was renamed, went missing or is out of order.
    """
    with ServiceContainer(config) as services:
        status = services.status.get_status()
    _print_status(status)
    return 0 if status.healthy else 1


def _print_status(status: SchemaStatus) -> None:
    """Print status information.

    Args:
        status: SchemaStatus object to display.
    """
    print("Migration Status")
    print("=" * 50)
    print(f"Database: {status.database_url}")
    print(f"Source: {status.source_dir}")
    current = status.current_identifier if status.current_identifier is not None else "none"
    print(f"Current version: {current}")
    print(f"Pending: {status.pending_count}")
    if status.drift_count:
        print(f"Drifted: {status.drift_count}")
    if status.order_error_count:
        print(f"Missing or out of order: {status.order_error_count}")
    if status.lock_holder:
        print(f"Locked by: {status.lock_holder}")
    print()

    if not status.entries:
        print("No migrations found.")
        return

    for entry in status.entries:
        mark = _MARKS.get(entry.state, "?")
        applied = f"  {entry.applied_at}" if entry.applied_at else ""
        print(f"  {mark} {entry.identifier}  {entry.description:<40} {entry.state}{applied}")
