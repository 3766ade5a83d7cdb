"""CLI entry point for schemalog."""

import argparse
import sys
from pathlib import Path
from typing import NoReturn

from loguru import logger

from .. import __version__
from ..core.config import Config, parse_drift_policy
from ..core.exceptions import CancelledError, MigrationError, SchemalogError
from . import commands

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="migrate",
        description="Ordered, checksummed SQL schema migrations",
    )
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-c", "--config", type=Path, help="TOML configuration file")
    parser.add_argument("-d", "--database-url", help="SQLAlchemy URL of the target database")
    parser.add_argument("-s", "--source", type=Path, help="Directory of .sql migration files")
    parser.add_argument(
        "--lock-timeout",
        type=float,
        help="Seconds to wait for another run's lock",
    )
    parser.add_argument(
        "--drift-policy",
        choices=["warn", "fail"],
        help="What `up` does when applied migrations changed on disk",
    )
    parser.add_argument(
        "--log-level",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log verbosity (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=False)

    up_parser = subparsers.add_parser("up", help="Apply pending migrations")
    commands.add_up_arguments(up_parser)

    subparsers.add_parser("status", help="Show applied and pending migrations")
    subparsers.add_parser("verify", help="Check applied migrations for drift")

    add_parser = subparsers.add_parser("add", help="Create a new migration file")
    add_parser.add_argument("slug", help="Short description, e.g. add_mod_images")

    subparsers.add_parser("unlock", help="Release a lock left by a crashed run")

    return parser


def load_config(args: argparse.Namespace) -> Config:
    """Build configuration from file/env, then apply command-line overrides."""
    config = Config.from_env_or_file(args.config)

    if args.database_url:
        config.database_url = args.database_url
    if args.source:
        config.source_dir = args.source
    if args.lock_timeout is not None:
        config.lock.timeout = args.lock_timeout
    if args.drift_policy:
        config.drift_policy = parse_drift_policy(args.drift_policy)
    if args.log_level:
        config.log_level = args.log_level

    return config


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


HANDLERS = {
    "up": commands.handle_up,
    "status": commands.handle_status,
    "verify": commands.handle_verify,
    "add": commands.handle_add,
    "unlock": commands.handle_unlock,
}


def run(argv: list[str] | None = None) -> int:
    """Parse arguments, dispatch, and map errors to an exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)

    handler = HANDLERS.get(args.command)
    if handler is None:
        parser.print_help()
        return EXIT_OK

    try:
        config = load_config(args)
        configure_logging(config.log_level)
        return handler(args, config)
    except CancelledError as e:
        print(f"Cancelled: {e}", file=sys.stderr)
        return EXIT_CANCELLED
    except MigrationError as e:
        print(f"Error: {e}", file=sys.stderr)
        if e.statement:
            print(f"Failing statement:\n{e.statement}", file=sys.stderr)
        return EXIT_FAILURE
    except SchemalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point."""
    sys.exit(run(argv))


if __name__ == "__main__":
    main()
