"""
Custom exceptions for txmigrate.

This module provides a hierarchy of exceptions that enable type-safe error
handling for callers of the migration engine. All exceptions inherit from the
base TxMigrateError for consistent catching.

Exception Hierarchy:
    TxMigrateError (base)
    ├── MigrationSetError
    │   ├── MismatchedPairError
    │   ├── IncompleteSetError
    │   └── MigrationSourceError
    ├── PreconditionError
    │   ├── InvalidTargetError
    │   ├── TargetTooHighError
    │   └── CorruptVersionError
    ├── MigrationExecutionError
    ├── MigrationCancelledError
    ├── VersionStoreError
    ├── TransactionError
    │   └── CommitError
    └── ConfigurationError
        ├── ConfigFileNotFoundError
        └── ConfigValidationError

Usage:
    from txmigrate.exceptions import TargetTooHighError

    try:
        migrations.migrate(conn, 6)
    except TargetTooHighError as e:
        print(f"Deployed code is older than requested: {e}")
"""


class TxMigrateError(Exception):
    """
    Base exception for all txmigrate errors.

    Example:
        try:
            migrations.up(conn)
        except TxMigrateError as e:
            logger.error(f"Migration error: {e}")
    """

    pass


# ============================================================================
# Construction Errors
# ============================================================================


class MigrationSetError(TxMigrateError):
    """
    Base class for errors raised while building a MigrationSet.

    Detected before any database interaction. Never retried internally.
    """

    pass


class MismatchedPairError(MigrationSetError):
    """
    The up and down script lists have different lengths.

    Attributes:
        up_count: Number of up scripts supplied
        down_count: Number of down scripts supplied
    """

    def __init__(self, up_count: int, down_count: int):
        super().__init__(
            f"must have a 'down' migration for each 'up' migration "
            f"(got {up_count} up, {down_count} down)"
        )
        self.up_count = up_count
        self.down_count = down_count


class IncompleteSetError(MigrationSetError):
    """
    A migration directory does not hold a complete, contiguous set of pairs.

    Attributes:
        position: 1-based migration position involved, if a single one
        direction: "up" or "down", if a single direction is involved

    Example:
        raise IncompleteSetError(
            "down migration for migration 2 is missing",
            position=2,
            direction="down",
        )
    """

    def __init__(
        self,
        message: str,
        position: int | None = None,
        direction: str | None = None,
    ):
        super().__init__(message)
        self.position = position
        self.direction = direction


class MigrationSourceError(MigrationSetError):
    """
    A migration directory or script file could not be read.

    Example:
        raise MigrationSourceError("02_users.up.sql: [Errno 13] Permission denied")
    """

    pass


# ============================================================================
# Precondition Errors
# ============================================================================


class PreconditionError(TxMigrateError):
    """
    Base class for errors detected before any script runs.
    """

    pass


class InvalidTargetError(PreconditionError):
    """
    The requested target version is not a valid version number.
    """

    pass


class TargetTooHighError(PreconditionError):
    """
    The requested target version exceeds the number of known migrations.

    Attributes:
        target_version: Version requested by the caller
        max_version: Highest version the MigrationSet can reach
    """

    def __init__(self, target_version: int, max_version: int):
        super().__init__(
            f"target version {target_version} is higher than "
            f"max migration version {max_version}"
        )
        self.target_version = target_version
        self.max_version = max_version


class CorruptVersionError(PreconditionError):
    """
    The persisted version exceeds the known migration history.

    Usually means the database was migrated by a newer release than the one
    currently running.

    Attributes:
        database_version: Version stored in schema_migrations
        max_version: Highest version the MigrationSet can reach
    """

    def __init__(self, database_version: int, max_version: int):
        super().__init__(
            f"database version {database_version} is higher than "
            f"max migration version {max_version}"
        )
        self.database_version = database_version
        self.max_version = max_version


# ============================================================================
# Execution Errors
# ============================================================================


class MigrationExecutionError(TxMigrateError):
    """
    A migration script failed. The whole call has been rolled back.

    The underlying driver error is available as __cause__.

    Attributes:
        direction: "up" or "down"
        index: 0-based index of the failing script
    """

    def __init__(self, direction: str, index: int, cause: BaseException):
        super().__init__(
            f"{direction} migration {index + 1} (index {index}) failed: {cause}"
        )
        self.direction = direction
        self.index = index


class MigrationCancelledError(TxMigrateError):
    """
    The caller cancelled the migration. The whole call has been rolled back.
    """

    pass


class VersionStoreError(TxMigrateError):
    """
    Reading or writing the schema_migrations table failed.
    """

    pass


class TransactionError(TxMigrateError):
    """
    A transaction could not be opened or was used incorrectly.
    """

    pass


class CommitError(TransactionError):
    """
    Committing the migration transaction failed.

    With SQLite a failed commit leaves no effect: the back-end rolls back
    what remains of the transaction before raising.
    """

    pass


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(TxMigrateError):
    """
    Base class for configuration-related errors.

    Should be caught and result in exit code 1 (configuration error).
    """

    pass


class ConfigFileNotFoundError(ConfigurationError):
    """
    Configuration file does not exist at the specified path.
    """

    pass


class ConfigValidationError(ConfigurationError):
    """
    Configuration file is invalid (YAML syntax or schema validation failed).
    """

    pass
