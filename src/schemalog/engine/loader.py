"""Discover migration units from a source directory.

A unit is one ``.sql`` file named ``<digits>_<slug>.sql``. The digit prefix
is the identifier and orders units numerically, so ``20210613205316_x.sql``
sorts before ``20210701694200_y.sql``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Sequence

from loguru import logger

from ..core.exceptions import DiscoveryError, ParseError
from ..core.types import MigrationUnit
from ..utils.hashing import sha256_hash
from .statements import (
    TRANSACTION_KEYWORDS,
    StatementSplitError,
    leading_keyword,
    split_statements,
)

SUFFIX = ".sql"
_NAME_RE = re.compile(r"^(?P<identifier>\d+)_(?P<slug>[A-Za-z0-9][A-Za-z0-9_\-]*)$")
_SLUG_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-]*$")


@dataclass(frozen=True)
class _Candidate:
    version: int
    identifier: str
    description: str
    path: Path


def parse_name(path: Path) -> _Candidate:
    """Derive identifier and description from a migration file name.

    Raises:
        ParseError: If the name does not follow ``<digits>_<slug>.sql``.
    """
    match = _NAME_RE.match(path.stem)
    if not match:
        raise ParseError(path.name, "expected a name like '20210613205316_add_table.sql'")
    identifier = match.group("identifier")
    return _Candidate(
        version=int(identifier),
        identifier=identifier,
        description=match.group("slug").replace("_", " "),
        path=path,
    )


def check_statements(name: str, statements: Sequence[str]) -> None:
    """Reject statements that would end or nest the unit's transaction.

    A ``COMMIT`` midway through a unit would make everything before it
    permanent even if a later statement fails.

    Raises:
        ParseError: If any statement starts with a transaction-control keyword.
    """
    for position, statement in enumerate(statements, start=1):
        keyword = leading_keyword(statement)
        if keyword in TRANSACTION_KEYWORDS:
            raise ParseError(
                name,
                f"statement {position} is {keyword}; each migration already runs "
                "in its own transaction",
            )


def load_unit(candidate: _Candidate) -> MigrationUnit:
    """Read a candidate file and build its MigrationUnit."""
    try:
        content = candidate.path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(candidate.path.name, f"unreadable: {e}") from e

    try:
        statements = split_statements(content)
    except StatementSplitError as e:
        raise ParseError(candidate.path.name, str(e)) from e

    check_statements(candidate.path.name, statements)

    if not statements:
        logger.warning(f"Migration {candidate.path.name} contains no statements")

    return MigrationUnit(
        version=candidate.version,
        identifier=candidate.identifier,
        description=candidate.description,
        path=candidate.path,
        checksum=sha256_hash(content),
        statements=tuple(statements),
    )


class MigrationLoader:
    """Enumerates migration units under a source directory.

    Names are parsed and checked up front, so a malformed or duplicate
    identifier fails before any file content is read. Units are then built
    one at a time as the caller iterates.

    Example:
        loader = MigrationLoader(Path("migrations"))
        for unit in loader.iter_units():
            print(unit.identifier, len(unit.statements))
    """

    def __init__(self, source_dir: Path):
        """Initialize loader.

        Args:
            source_dir: Directory holding ``.sql`` migration files.
        """
        self.source_dir = Path(source_dir)

    def candidates(self) -> list[_Candidate]:
        """Parse and order every candidate file name.

        Raises:
            DiscoveryError: If the directory is missing or identifiers collide.
            ParseError: If a ``.sql`` file name has no identifier.
        """
        if not self.source_dir.is_dir():
            raise DiscoveryError(f"Migration source directory not found: {self.source_dir}")

        candidates = [
            parse_name(path)
            for path in self.source_dir.iterdir()
            if path.is_file() and path.suffix == SUFFIX
        ]
        candidates.sort(key=lambda c: c.version)

        for prev, cur in zip(candidates, candidates[1:]):
            if prev.version == cur.version:
                raise DiscoveryError(
                    f"Duplicate migration identifier {cur.version}: "
                    f"{prev.path.name} and {cur.path.name}"
                )

        logger.debug(f"Discovered {len(candidates)} migration(s) in {self.source_dir}")
        return candidates

    def iter_units(self) -> Iterator[MigrationUnit]:
        """Yield units in ascending identifier order.

        Discovery errors are raised on the first ``next()``, before any unit
        is produced.
        """
        for candidate in self.candidates():
            yield load_unit(candidate)

    def load_all(self) -> list[MigrationUnit]:
        return list(self.iter_units())


def new_migration(source_dir: Path, slug: str, now: datetime | None = None) -> Path:
    """Create an empty migration file named with the current UTC timestamp.

    Args:
        source_dir: Directory to create the file in (created if missing).
        slug: Short description, e.g. ``add_mod_images``.
        now: Timestamp override.

    Returns:
        Path of the new file.

    Raises:
        ParseError: If ``slug`` would not produce a parseable name.
        DiscoveryError: If a file with that name already exists.
    """
    slug = slug.strip().replace(" ", "_")
    if not _SLUG_RE.match(slug):
        raise ParseError(slug, "slug must be letters, digits, '_' or '-'")

    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M%S")
    source_dir = Path(source_dir)
    source_dir.mkdir(parents=True, exist_ok=True)
    path = source_dir / f"{stamp}_{slug}{SUFFIX}"
    if path.exists():
        raise DiscoveryError(f"Migration already exists: {path}")

    path.write_text(f"-- {slug.replace('_', ' ')}\n", encoding="utf-8")
    logger.info(f"Created migration {path}")
    return path
