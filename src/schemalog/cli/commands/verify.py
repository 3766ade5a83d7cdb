"""Verify command for the migrate CLI."""

from ...core.config import Config
from ...core.exceptions import DriftError
from ...services import ServiceContainer


def handle_verify(args, config: Config) -> int:
    """Check applied migrations for checksum drift.

    Args:
        args: Parsed command arguments.
        config: Application configuration.

    Returns:
        0 when every applied migration matches its file, 1 otherwise.
    """
    with ServiceContainer(config) as services:
        try:
            services.migrations.verify()
        except DriftError as e:
            print("Checksum drift detected:")
            for drift in e.drifts:
                print(
                    f"  ! {drift.identifier}  "
                    f"recorded {drift.recorded[:12]}  now {drift.current[:12]}"
                )
            return 1
    print("All applied migrations match their files.")
    return 0
