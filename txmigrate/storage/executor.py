"""
Transactional executor capability used by the migration engine.

The engine never talks to a driver directly. It works against any object
implementing TransactionalExecutor, so back-ends (a plain BEGIN/COMMIT
transaction, a nested SAVEPOINT, another embedded driver) are chosen at the
call site.

transaction() wraps an executor in a scoped transaction: it commits when the
block exits normally and rolls back on any exception, including
KeyboardInterrupt, before the exception propagates.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, Protocol, runtime_checkable

from txmigrate.exceptions import CommitError, TransactionError, TxMigrateError

logger = logging.getLogger(__name__)


class Cursor(Protocol):
    """Minimal result cursor returned by TransactionalExecutor.execute()."""

    def fetchone(self) -> Any: ...


@runtime_checkable
class TransactionalExecutor(Protocol):
    """
    Capability the engine needs from a database handle.

    Implementations must run every execute()/execute_script() between
    begin() and commit()/rollback() inside a single transaction, and must
    leave no transaction open after commit() or rollback() returns or raises.
    """

    def begin(self) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def execute(self, sql: str, parameters: Sequence[Any] = ()) -> Cursor: ...

    def execute_script(self, script: str) -> None: ...


@contextmanager
def transaction(db: TransactionalExecutor) -> Iterator[TransactionalExecutor]:
    """
    Run a block inside one transaction on db.

    Args:
        db: Executor to begin, commit or roll back

    Yields:
        The same executor, with a transaction open

    Raises:
        TransactionError: If the transaction cannot be opened
        CommitError: If the final commit fails

    Example:
        >>> with transaction(SQLiteTransaction(conn)) as tx:
        ...     tx.execute("INSERT INTO t VALUES (1)")

    Note:
        If rollback itself fails, the original exception still propagates
        and the rollback failure is attached to it as a note.
    """
    try:
        db.begin()
    except TxMigrateError:
        raise
    except Exception as e:
        raise TransactionError(f"begin transaction failed: {e}") from e

    try:
        yield db
    except BaseException as e:
        try:
            db.rollback()
        except Exception as rollback_error:
            e.add_note(f"rollback failed: {rollback_error}")
        else:
            logger.debug("Rolled back migration transaction")
        raise

    try:
        db.commit()
    except Exception as e:
        raise CommitError(f"commit failed: {e}") from e
