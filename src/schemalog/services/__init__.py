"""Service layer for schemalog.

Example:
    from schemalog.core.config import Config
    from schemalog.services import ServiceContainer

    with ServiceContainer(Config.from_env()) as services:
        services.migrations.up()
"""

from .container import ServiceContainer
from .migrations import MigrationService
from .status import StatusService

__all__ = [
    "MigrationService",
    "ServiceContainer",
    "StatusService",
]
