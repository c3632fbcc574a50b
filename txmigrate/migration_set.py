"""
Immutable collection of up/down migration script pairs.

A MigrationSet holds one "up" and one "down" SQL script per schema version.
Index i of up_scripts moves the schema from version i to i+1; index i of
down_scripts moves it back from i+1 to i.

Example:
    >>> from txmigrate import new
    >>> migrations = new(
    ...     ["CREATE TABLE t1(n text);", "CREATE TABLE t2(n text);"],
    ...     ["DROP TABLE t1;", "DROP TABLE t2;"],
    ... )
    >>> migrations.max_version
    2
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from txmigrate.exceptions import MismatchedPairError

if TYPE_CHECKING:
    from txmigrate.engine import MigrationResult
    from txmigrate.storage.executor import TransactionalExecutor


@dataclass(frozen=True)
class MigrationSet:
    """
    Ordered, validated pairs of up and down scripts.

    Instances are frozen and hold tuples, so a single set can be shared
    between threads running concurrent migrations.

    Attributes:
        up_scripts: Scripts applied when moving to a higher version
        down_scripts: Scripts applied when moving to a lower version

    Raises:
        MismatchedPairError: If the two script lists differ in length
    """

    up_scripts: tuple[str, ...]
    down_scripts: tuple[str, ...]

    def __init__(self, up_scripts: Iterable[str], down_scripts: Iterable[str]):
        up = tuple(up_scripts)
        down = tuple(down_scripts)
        if len(up) != len(down):
            raise MismatchedPairError(len(up), len(down))
        object.__setattr__(self, "up_scripts", up)
        object.__setattr__(self, "down_scripts", down)

    @property
    def max_version(self) -> int:
        """Highest version reachable with this set."""
        return len(self.up_scripts)

    def migrate(
        self,
        db: sqlite3.Connection | TransactionalExecutor,
        target_version: int,
        *,
        cancel: threading.Event | None = None,
    ) -> MigrationResult:
        """Move the database to target_version. See txmigrate.engine.migrate."""
        from txmigrate.engine import migrate

        return migrate(self, db, target_version, cancel=cancel)

    def up(
        self,
        db: sqlite3.Connection | TransactionalExecutor,
        *,
        cancel: threading.Event | None = None,
    ) -> MigrationResult:
        """Apply every pending up migration."""
        return self.migrate(db, self.max_version, cancel=cancel)

    def down(
        self,
        db: sqlite3.Connection | TransactionalExecutor,
        *,
        cancel: threading.Event | None = None,
    ) -> MigrationResult:
        """Revert every applied migration."""
        return self.migrate(db, 0, cancel=cancel)

    def version(self, db: sqlite3.Connection | TransactionalExecutor) -> int:
        """Return the version currently recorded in the database."""
        from txmigrate.engine import current_version

        return current_version(self, db)


def new(up: Iterable[str], down: Iterable[str]) -> MigrationSet:
    """
    Build a MigrationSet from in-memory scripts.

    Args:
        up: Up scripts, in version order
        down: Down scripts, in version order

    Returns:
        MigrationSet holding copies of both lists

    Raises:
        MismatchedPairError: If the lists differ in length

    Example:
        >>> new(["a", "b"], ["x"])
        Traceback (most recent call last):
        ...
        txmigrate.exceptions.MismatchedPairError: must have a 'down' migration ...
    """
    return MigrationSet(up, down)
