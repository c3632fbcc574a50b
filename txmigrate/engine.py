"""
Migration engine: move a database between schema versions atomically.

One call to migrate() runs entirely inside one transaction:

1. Validate the target against the MigrationSet
2. Begin the transaction (BEGIN IMMEDIATE for plain SQLite connections)
3. Ensure the bookkeeping table exists and read the current version
4. Refuse databases whose version exceeds the known history
5. Commit a no-op if the database is already at the target (recording
   version 0 first if the table was still empty)
6. Otherwise run the minimal delta, down scripts newest first or up scripts
   oldest first
7. Record the target version and commit

Any failure rolls back everything done in the call, so the database is
either at the target version or exactly where it started. Because the
version is re-read after the write lock is held, concurrent callers aiming
at the same target converge: the first applies the scripts, the rest find
the work done and commit a no-op.

The engine keeps no state between calls. Errors are raised to the caller
without being logged or retried; retrying a failed call is always safe.

Example:
    >>> from txmigrate import load, connect
    >>> migrations = load("./migrations")
    >>> with contextlib.closing(connect("./app.db")) as conn:
    ...     result = migrations.up(conn)
    >>> result.to_version
    4
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from enum import StrEnum

from txmigrate.exceptions import (
    CorruptVersionError,
    InvalidTargetError,
    MigrationCancelledError,
    MigrationExecutionError,
    TargetTooHighError,
)
from txmigrate.migration_set import MigrationSet
from txmigrate.storage.executor import TransactionalExecutor, transaction
from txmigrate.storage.sqlite import SQLiteTransaction
from txmigrate.storage.version_store import (
    ensure_schema,
    read_stored_version,
    read_version,
    version_table_exists,
    write_version,
)

logger = logging.getLogger(__name__)


class Direction(StrEnum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class MigrationResult:
    """
    Outcome of a migrate() call.

    Attributes:
        from_version: Version read inside the transaction
        to_version: Version recorded at commit
        applied: Script indices executed, in execution order
    """

    from_version: int
    to_version: int
    applied: tuple[int, ...] = ()

    @property
    def changed(self) -> bool:
        return self.from_version != self.to_version

    @property
    def direction(self) -> Direction | None:
        if self.to_version > self.from_version:
            return Direction.UP
        if self.to_version < self.from_version:
            return Direction.DOWN
        return None


def as_executor(db: sqlite3.Connection | TransactionalExecutor) -> TransactionalExecutor:
    """Wrap a plain sqlite3 connection in a SQLiteTransaction."""
    if isinstance(db, sqlite3.Connection):
        return SQLiteTransaction(db)
    return db


def _check_cancelled(cancel: threading.Event | None, stage: str) -> None:
    if cancel is not None and cancel.is_set():
        raise MigrationCancelledError(f"migration cancelled {stage}")


def _plan(current: int, target: int) -> tuple[Direction, range]:
    if target < current:
        return Direction.DOWN, range(current - 1, target - 1, -1)
    return Direction.UP, range(current, target)


def migrate(
    migrations: MigrationSet,
    db: sqlite3.Connection | TransactionalExecutor,
    target_version: int,
    *,
    cancel: threading.Event | None = None,
) -> MigrationResult:
    """
    Move the database schema to target_version in a single transaction.

    Args:
        migrations: Scripts to draw the delta from
        db: sqlite3 connection (wrapped in SQLiteTransaction) or any
            TransactionalExecutor
        target_version: Version to reach, 0 to migrations.max_version
        cancel: Optional event; when set, the call rolls back at the next
            script boundary or before commit

    Returns:
        MigrationResult describing the transition that was committed

    Raises:
        InvalidTargetError: If target_version is negative
        TargetTooHighError: If target_version exceeds migrations.max_version
        CorruptVersionError: If the stored version exceeds migrations.max_version
        MigrationExecutionError: If a script fails
        MigrationCancelledError: If cancel was set before commit
        VersionStoreError: If the bookkeeping table cannot be read or written
        TransactionError: If the transaction cannot be opened
        CommitError: If the final commit fails

    Example:
        >>> migrate(migrations, conn, 2)
        MigrationResult(from_version=0, to_version=2, applied=(0, 1))
        >>> migrate(migrations, conn, 2).changed
        False
    """
    max_version = migrations.max_version
    if target_version < 0:
        raise InvalidTargetError(f"target version {target_version} must not be negative")
    if target_version > max_version:
        raise TargetTooHighError(target_version, max_version)

    with transaction(as_executor(db)) as tx:
        ensure_schema(tx)
        stored = read_stored_version(tx)
        current = 0 if stored is None else stored

        if current > max_version:
            raise CorruptVersionError(current, max_version)

        if current == target_version:
            if stored is None:
                # Keep the one-row invariant even when nothing needs to run
                write_version(tx, current)
            logger.debug(f"Database already at schema version {current}")
            return MigrationResult(from_version=current, to_version=current)

        direction, indices = _plan(current, target_version)
        scripts = (
            migrations.up_scripts if direction is Direction.UP else migrations.down_scripts
        )

        logger.info(
            f"Migrating schema {direction}: v{current} -> v{target_version}",
            extra={
                "context": {
                    "from_version": current,
                    "to_version": target_version,
                    "steps": len(indices),
                }
            },
        )

        for index in indices:
            _check_cancelled(cancel, f"before {direction} migration {index + 1}")
            logger.info(f"Applying {direction} migration {index + 1}")
            try:
                tx.execute_script(scripts[index])
            except Exception as e:
                raise MigrationExecutionError(direction, index, e) from e

        write_version(tx, target_version)
        _check_cancelled(cancel, "before commit")

    logger.info(f"Schema migrated to version {target_version}")
    return MigrationResult(
        from_version=current,
        to_version=target_version,
        applied=tuple(indices),
    )


def up(
    migrations: MigrationSet,
    db: sqlite3.Connection | TransactionalExecutor,
    *,
    cancel: threading.Event | None = None,
) -> MigrationResult:
    """Apply every pending up migration."""
    return migrate(migrations, db, migrations.max_version, cancel=cancel)


def down(
    migrations: MigrationSet,
    db: sqlite3.Connection | TransactionalExecutor,
    *,
    cancel: threading.Event | None = None,
) -> MigrationResult:
    """Revert every applied migration."""
    return migrate(migrations, db, 0, cancel=cancel)


def current_version(
    migrations: MigrationSet, db: sqlite3.Connection | TransactionalExecutor
) -> int:
    """
    Read the schema version recorded in the database.

    Never writes: a database without the bookkeeping table, or with an empty
    one, reports version 0. Plain sqlite3 connections are read in a deferred
    transaction, so read-only connections work.

    Raises:
        CorruptVersionError: If the stored version exceeds migrations.max_version
        VersionStoreError: If the bookkeeping table cannot be read
    """
    if isinstance(db, sqlite3.Connection):
        db = SQLiteTransaction(db, immediate=False)

    with transaction(db) as tx:
        version = read_version(tx) if version_table_exists(tx) else 0
        if version > migrations.max_version:
            raise CorruptVersionError(version, migrations.max_version)
    return version
