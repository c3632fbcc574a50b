"""
Persisted schema version bookkeeping.

The version lives in a single row of the schema_migrations table, in the
same layout other migration tools use, so a database can switch tools
without losing its version:

    CREATE TABLE IF NOT EXISTS schema_migrations (version uint64, dirty bool);
    CREATE UNIQUE INDEX IF NOT EXISTS version_unique ON schema_migrations (version);

The dirty column is kept for compatibility only. Every migration runs in one
transaction, so this module always writes dirty = false.

The engine writes a row in every migrate() call that finds the table empty,
so once a migration call has committed the table holds exactly one row.

All functions expect to run inside a transaction opened by the caller.
"""

import logging

from txmigrate.exceptions import VersionStoreError
from txmigrate.storage.executor import TransactionalExecutor

logger = logging.getLogger(__name__)

VERSION_TABLE = "schema_migrations"

VERSION_SCHEMA = """CREATE TABLE IF NOT EXISTS schema_migrations (version uint64, dirty bool);
CREATE UNIQUE INDEX IF NOT EXISTS version_unique ON schema_migrations (version);"""


def ensure_schema(db: TransactionalExecutor) -> None:
    """
    Create the bookkeeping table and its unique index if absent.

    Idempotent and safe to call concurrently: existence is handled by
    "IF NOT EXISTS" in SQL, not by checking first.

    Raises:
        VersionStoreError: If the statements fail
    """
    try:
        db.execute_script(VERSION_SCHEMA)
    except Exception as e:
        raise VersionStoreError(f"failed to create {VERSION_TABLE}: {e}") from e


def version_table_exists(db: TransactionalExecutor) -> bool:
    """
    Report whether the bookkeeping table has been created.

    Lets read-only callers find the version without running ensure_schema().

    Raises:
        VersionStoreError: If the catalog query fails
    """
    try:
        row = db.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (VERSION_TABLE,),
        ).fetchone()
    except Exception as e:
        raise VersionStoreError(f"failed to look up {VERSION_TABLE}: {e}") from e
    return row is not None


def read_stored_version(db: TransactionalExecutor) -> int | None:
    """
    Read the persisted schema version, or None if no row was written yet.

    Args:
        db: Executor with an open transaction

    Raises:
        VersionStoreError: If the table does not exist (call ensure_schema()
            first), the query fails, or the stored value is not a
            non-negative integer
    """
    try:
        row = db.execute(f"SELECT version FROM {VERSION_TABLE} LIMIT 1").fetchone()
    except Exception as e:
        raise VersionStoreError(f"failed to read schema version: {e}") from e

    if row is None:
        return None

    version = row[0]
    if isinstance(version, bool) or not isinstance(version, int) or version < 0:
        raise VersionStoreError(
            f"invalid schema version stored in {VERSION_TABLE}: {version!r}"
        )
    return version


def read_version(db: TransactionalExecutor) -> int:
    """
    Read the persisted schema version, treating an empty table as version 0.

    Raises:
        VersionStoreError: As read_stored_version()
    """
    version = read_stored_version(db)
    return 0 if version is None else version


def write_version(db: TransactionalExecutor, version: int) -> None:
    """
    Replace the persisted version with exactly one (version, false) row.

    Deletes then inserts rather than upserting, so no dialect-specific upsert
    syntax is needed.

    Args:
        db: Executor with an open transaction
        version: New schema version

    Raises:
        VersionStoreError: If either statement fails
    """
    try:
        db.execute(f"DELETE FROM {VERSION_TABLE}")
        db.execute(
            f"INSERT INTO {VERSION_TABLE} (version, dirty) VALUES (?, ?)",
            (version, False),
        )
    except Exception as e:
        raise VersionStoreError(f"failed to write schema version {version}: {e}") from e

    logger.debug(f"Recorded schema version {version}")
