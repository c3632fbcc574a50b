"""
txmigrate: transactional schema migrations for SQLite.

Public API: load() and new() build a MigrationSet; its up(), down(),
migrate() and version() methods run against a sqlite3 connection or any
TransactionalExecutor.
"""

from txmigrate.engine import Direction, MigrationResult, current_version, down, migrate, up
from txmigrate.exceptions import (
    CommitError,
    CorruptVersionError,
    IncompleteSetError,
    InvalidTargetError,
    MigrationCancelledError,
    MigrationExecutionError,
    MigrationSetError,
    MigrationSourceError,
    MismatchedPairError,
    PreconditionError,
    TargetTooHighError,
    TransactionError,
    TxMigrateError,
    VersionStoreError,
)
from txmigrate.loader import load
from txmigrate.migration_set import MigrationSet, new
from txmigrate.storage.executor import TransactionalExecutor
from txmigrate.storage.sqlite import SQLiteSavepoint, SQLiteTransaction, connect

__version__ = "0.1.0"

__all__ = [
    "CommitError",
    "CorruptVersionError",
    "Direction",
    "IncompleteSetError",
    "InvalidTargetError",
    "MigrationCancelledError",
    "MigrationExecutionError",
    "MigrationResult",
    "MigrationSet",
    "MigrationSetError",
    "MigrationSourceError",
    "MismatchedPairError",
    "PreconditionError",
    "SQLiteSavepoint",
    "SQLiteTransaction",
    "TargetTooHighError",
    "TransactionError",
    "TransactionalExecutor",
    "TxMigrateError",
    "VersionStoreError",
    "connect",
    "current_version",
    "down",
    "load",
    "migrate",
    "new",
    "up",
]
