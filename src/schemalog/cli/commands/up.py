"""Apply command for the migrate CLI."""

from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from typing import Iterator

from loguru import logger

from ...core.config import Config
from ...core.types import RunReport
from ...services import ServiceContainer


def add_up_arguments(parser) -> None:
    """Add arguments for the up command.

    Args:
        parser: Argument parser for the command.
    """
    parser.add_argument(
        "--target",
        type=int,
        default=None,
        help="Apply migrations up to and including this identifier",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Show what would be applied without touching the database",
    )


@contextmanager
def _cancel_on_signal() -> Iterator[threading.Event]:
    """Turn SIGINT/SIGTERM into a cancellation request between units."""
    cancel = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield cancel
        return

    def _request_cancel(signum, frame):
        if not cancel.is_set():
            logger.warning("Cancellation requested, finishing the current migration")
        cancel.set()

    previous = {
        sig: signal.signal(sig, _request_cancel) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        yield cancel
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def handle_up(args, config: Config) -> int:
    """Apply pending migrations.

    Args:
        args: Parsed command arguments.
        config: Application configuration.

    Returns:
        Process exit code.
    """
    with ServiceContainer(config) as services, _cancel_on_signal() as cancel:
        report = services.migrations.up(args.target, dry_run=args.dry_run, cancel=cancel)
    _print_report(report)
    return 0


def _print_report(report: RunReport) -> None:
    if report.drifts:
        print(f"Warning: {len(report.drifts)} applied migration(s) changed on disk")

    if report.dry_run:
        if not report.outcomes:
            print("Nothing to apply.")
            return
        print(f"Would apply {len(report.outcomes)} migration(s):")
        for outcome in report.outcomes:
            print(f"  {outcome.unit.identifier}  {outcome.unit.description}")
        return

    if not report.applied:
        print("Nothing to apply.")
        return

    print(f"Applied {len(report.applied)} migration(s):")
    for outcome in report.outcomes:
        unit = outcome.unit
        print(f"  ✓ {unit.identifier}  {unit.description} ({outcome.duration_ms}ms)")
