"""
Filesystem loader for migration scripts.

Discovers SQL files named by convention, checks that they form a complete
set of contiguous up/down pairs, and reads them into a MigrationSet.

File naming convention:
    <positive-integer>_<free-form-name>.<up|down>.sql

    01_initial.up.sql
    01_initial.down.sql
    02_add_users.up.sql
    02_drop_users.down.sql      # up/down names may differ

Files that do not match the convention are ignored, as are directories.

Sources:
    Any directory path (str or os.PathLike) or an importlib.resources
    Traversable, so migrations can be shipped as package data:

    >>> from importlib.resources import files
    >>> migrations = load(files("myapp"), "migrations")
"""

import logging
import os
import re
from dataclasses import dataclass
from importlib.resources.abc import Traversable
from pathlib import Path

from txmigrate.exceptions import IncompleteSetError, MigrationSourceError
from txmigrate.migration_set import MigrationSet

logger = logging.getLogger(__name__)

FILENAME_PATTERN = re.compile(r"([0-9]+)_.*\.(up|down)\.sql")


@dataclass(frozen=True)
class MigrationFile:
    """
    A migration script parsed from its file name.

    Attributes:
        position: 1-based migration number
        up: True for an up script, False for a down script
        name: File name as found in the directory
    """

    position: int
    up: bool
    name: str

    @property
    def direction(self) -> str:
        return "up" if self.up else "down"


def parse_migration(name: str) -> MigrationFile | None:
    """
    Parse a migration file name.

    Args:
        name: Bare file name (no directory part)

    Returns:
        MigrationFile, or None if the name does not follow the convention
        or uses position 0

    Example:
        >>> parse_migration("0121_migration.up.sql")
        MigrationFile(position=121, up=True, name='0121_migration.up.sql')
        >>> parse_migration("01_migration.UP.sql") is None
        True
    """
    match = FILENAME_PATTERN.fullmatch(name)
    if match is None:
        return None

    position = int(match.group(1))
    if position == 0:
        return None

    return MigrationFile(position=position, up=match.group(2) == "up", name=name)


def _resolve_directory(
    source: str | os.PathLike[str] | Traversable, subpath: str
) -> Traversable:
    root: Traversable = (
        Path(source) if isinstance(source, (str, os.PathLike)) else source
    )
    if subpath in ("", "."):
        return root
    return root.joinpath(subpath)


def _index_by_position(
    files: list[MigrationFile], direction: str
) -> dict[int, MigrationFile]:
    indexed: dict[int, MigrationFile] = {}
    for migration_file in files:
        existing = indexed.get(migration_file.position)
        if existing is not None:
            raise IncompleteSetError(
                f"duplicate {direction} migration for migration "
                f"{migration_file.position}: {existing.name}, {migration_file.name}",
                position=migration_file.position,
                direction=direction,
            )
        indexed[migration_file.position] = migration_file
    return indexed


def _read_script(directory: Traversable, migration_file: MigrationFile) -> str:
    try:
        return directory.joinpath(migration_file.name).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MigrationSourceError(f"{migration_file.name}: {e}") from e


def load(
    source: str | os.PathLike[str] | Traversable, subpath: str = "."
) -> MigrationSet:
    """
    Load a MigrationSet from a directory of SQL files.

    Args:
        source: Directory path or importlib.resources Traversable
        subpath: Directory below source holding the scripts (default: source itself)

    Returns:
        MigrationSet with scripts ordered by position

    Raises:
        MigrationSourceError: If the directory or a script cannot be read
        IncompleteSetError: If a position is duplicated or missing from
            either direction (which covers unequal up and down counts)

    Example:
        >>> migrations = load("./migrations")
        >>> migrations.max_version
        4
    """
    directory = _resolve_directory(source, subpath)

    try:
        entries = list(directory.iterdir())
    except OSError as e:
        raise MigrationSourceError(
            f"cannot list migrations in {directory}: {e}"
        ) from e

    up_files: list[MigrationFile] = []
    down_files: list[MigrationFile] = []
    for entry in entries:
        if entry.is_dir():
            continue
        migration_file = parse_migration(entry.name)
        if migration_file is None:
            logger.debug(f"Ignoring non-migration file {entry.name}")
            continue
        if migration_file.up:
            up_files.append(migration_file)
        else:
            down_files.append(migration_file)

    ups = _index_by_position(up_files, "up")
    downs = _index_by_position(down_files, "down")

    highest = max([*ups, *downs], default=0)
    for position in range(1, highest + 1):
        if position not in ups:
            raise IncompleteSetError(
                f"up migration for migration {position} is missing",
                position=position,
                direction="up",
            )
        if position not in downs:
            raise IncompleteSetError(
                f"down migration for migration {position} is missing",
                position=position,
                direction="down",
            )

    # Both directions now cover exactly 1..highest, so the counts match.
    ordered = sorted(ups)
    up_scripts = [_read_script(directory, ups[position]) for position in ordered]
    down_scripts = [_read_script(directory, downs[position]) for position in ordered]

    logger.debug(
        f"Loaded {len(up_scripts)} migrations from {directory}",
        extra={"context": {"directory": str(directory), "count": len(up_scripts)}},
    )
    return MigrationSet(up_scripts, down_scripts)
