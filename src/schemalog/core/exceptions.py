"""Custom exceptions for schemalog."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import Drift, RunReport


class SchemalogError(Exception):
    """Base exception for all schemalog errors."""

    pass


class ConfigError(SchemalogError):
    """Configuration is invalid."""

    pass


class DatabaseError(SchemalogError):
    """Database operation failed."""

    pass


class DiscoveryError(SchemalogError):
    """Migration source could not be enumerated.

    Raised for a missing source directory or two units sharing an identifier.
    """

    pass


class ParseError(SchemalogError):
    """A migration unit's name or content could not be parsed."""

    def __init__(self, name: str, reason: str):
        """Initialize exception with offending file name.

        Args:
            name: File name of the migration unit.
            reason: Why the unit could not be parsed.
        """
        self.name = name
        self.reason = reason
        super().__init__(f"Cannot parse migration {name!r}: {reason}")


class OrderError(SchemalogError):
    """Known units and recorded state disagree on ordering."""

    def __init__(self, identifier: str, reason: str):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Migration {identifier}: {reason}")


class LockError(SchemalogError):
    """The migration lock could not be acquired."""

    pass


class DriftError(SchemalogError):
    """Applied migrations no longer match their on-disk content."""

    def __init__(self, drifts: list["Drift"]):
        """Initialize exception with the detected drifts.

        Args:
            drifts: One entry per drifted identifier.
        """
        self.drifts = drifts
        ids = ", ".join(d.identifier for d in drifts)
        super().__init__(f"Checksum drift detected for migration(s): {ids}")

    @property
    def identifiers(self) -> list[str]:
        return [d.identifier for d in self.drifts]


class MigrationError(SchemalogError):
    """A migration unit failed and was rolled back."""

    def __init__(
        self,
        identifier: str,
        cause: BaseException,
        statement: str | None = None,
        report: "RunReport | None" = None,
    ):
        """Initialize exception with the failing unit.

        Args:
            identifier: Identifier of the unit that failed.
            cause: Underlying database error.
            statement: Statement that was executing, if known.
            report: Partial run report up to and including the failure.
        """
        self.identifier = identifier
        self.cause = cause
        self.statement = statement
        self.report = report
        super().__init__(f"Migration {identifier} failed and was rolled back: {cause}")


class CancelledError(SchemalogError):
    """The run was cancelled between units."""

    def __init__(self, report: "RunReport"):
        self.report = report
        super().__init__(
            f"Run cancelled after applying {len(report.applied)} migration(s)"
        )
