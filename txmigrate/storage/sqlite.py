"""
SQLite back-ends for the migration engine.

Two executors are provided:

- SQLiteTransaction: owns a top-level "BEGIN IMMEDIATE" transaction. The
  write lock is taken before the current version is read, so concurrent
  callers against the same database file are serialized by SQLite itself and
  wait on the connection's busy timeout.
- SQLiteSavepoint: runs inside a named SAVEPOINT, for callers that want the
  migration to join a transaction they already hold. Releasing an outermost
  savepoint commits.

Scripts are split into single statements and executed one by one on the open
transaction. sqlite3's executescript() is never used: it commits any pending
transaction before running.

Example:
    >>> conn = connect("./data/app.db", busy_timeout=10.0)
    >>> migrations.up(conn)                      # SQLiteTransaction
    >>> migrations.up(SQLiteSavepoint(conn))     # nested savepoint
"""

import logging
import re
import sqlite3
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

from txmigrate.exceptions import TransactionError

logger = logging.getLogger(__name__)

_COMMENT_PATTERN = re.compile(r"--[^\n]*|/\*.*?\*/", re.DOTALL)
_SAVEPOINT_NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
# Statements that would end the executor's transaction part way through a script
_TRANSACTION_END_PATTERN = re.compile(
    r"(BEGIN|COMMIT|END|ROLLBACK(?!\s+(TRANSACTION\s+)?TO\b))\b", re.IGNORECASE
)
# Value of Connection.autocommit meaning isolation_level controls transactions
_LEGACY_TRANSACTION_CONTROL = getattr(sqlite3, "LEGACY_TRANSACTION_CONTROL", -1)


def _is_blank(sql: str) -> bool:
    return not _COMMENT_PATTERN.sub("", sql).strip(" \t\r\n;")


def split_statements(script: str) -> Iterator[str]:
    """
    Split an SQL script into complete statements.

    Statement boundaries are found with sqlite3.complete_statement(), so
    semicolons inside string literals, comments and trigger bodies do not
    end a statement. Comment-only fragments are dropped. A trailing
    statement without a final semicolon is still yielded.

    Args:
        script: SQL text holding zero or more statements

    Yields:
        Each statement, stripped of surrounding whitespace

    Example:
        >>> list(split_statements("CREATE TABLE a(x); CREATE TABLE b(y);"))
        ['CREATE TABLE a(x);', 'CREATE TABLE b(y);']
    """
    start = 0
    for index, char in enumerate(script):
        if char != ";":
            continue
        candidate = script[start : index + 1]
        if sqlite3.complete_statement(candidate):
            if not _is_blank(candidate):
                yield candidate.strip()
            start = index + 1

    tail = script[start:]
    if not _is_blank(tail):
        yield tail.strip()


class _SQLiteExecutor:
    """Statement execution shared by the SQLite back-ends."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def execute(self, sql: str, parameters: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self.conn.execute(sql, parameters)

    def execute_script(self, script: str) -> None:
        for statement in split_statements(script):
            if _TRANSACTION_END_PATTERN.match(_COMMENT_PATTERN.sub("", statement).lstrip()):
                raise TransactionError(
                    f"script may not control the migration transaction: {statement}"
                )
            self.conn.execute(statement)
            if not self.conn.in_transaction:
                raise TransactionError(
                    f"statement ended the migration transaction: {statement}"
                )


class SQLiteTransaction(_SQLiteExecutor):
    """
    Top-level transaction on a sqlite3 connection.

    begin() switches the connection to manual transaction control for the
    duration of the transaction and issues BEGIN IMMEDIATE (or BEGIN when
    immediate=False). commit() and rollback() end the transaction and
    restore the connection's original isolation_level, or its autocommit
    setting on connections that use one.

    A connection opened with autocommit=False always holds an implicit
    transaction. It is accepted as long as that transaction has not
    changed anything.

    Args:
        conn: Open connection without a pending transaction
        immediate: Take the write lock at BEGIN (default True)

    Raises:
        TransactionError: From begin(), if the connection already has an
            open transaction
    """

    def __init__(self, conn: sqlite3.Connection, *, immediate: bool = True):
        super().__init__(conn)
        self.immediate = immediate
        self._saved_isolation_level: str | None = None
        self._saved_autocommit: bool | int = _LEGACY_TRANSACTION_CONTROL

    def begin(self) -> None:
        autocommit = getattr(self.conn, "autocommit", _LEGACY_TRANSACTION_CONTROL)
        if autocommit is False:
            if self.conn.total_changes:
                raise TransactionError(
                    "connection opened with autocommit=False has already "
                    "modified the database; migrate on a fresh connection "
                    "or use SQLiteSavepoint"
                )
        elif self.conn.in_transaction:
            raise TransactionError(
                "connection already has an open transaction; "
                "use SQLiteSavepoint to migrate inside it"
            )

        self._saved_autocommit = autocommit
        self._saved_isolation_level = self.conn.isolation_level
        if autocommit == _LEGACY_TRANSACTION_CONTROL:
            self.conn.isolation_level = None
        else:
            # Ends the empty implicit transaction of autocommit=False
            self.conn.autocommit = True
        try:
            self.conn.execute("BEGIN IMMEDIATE" if self.immediate else "BEGIN")
        except sqlite3.Error:
            self._restore()
            raise

    def commit(self) -> None:
        try:
            self.conn.execute("COMMIT")
        except sqlite3.Error:
            # A busy COMMIT leaves the transaction open
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK")
            raise
        finally:
            self._restore()

    def rollback(self) -> None:
        try:
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK")
        finally:
            self._restore()

    def _restore(self) -> None:
        if self._saved_autocommit == _LEGACY_TRANSACTION_CONTROL:
            self.conn.isolation_level = self._saved_isolation_level
        else:
            self.conn.autocommit = self._saved_autocommit


class SQLiteSavepoint(_SQLiteExecutor):
    """
    Savepoint on a sqlite3 connection, usable inside an open transaction.

    Args:
        conn: Open connection, with or without a pending transaction
        name: Savepoint name (SQL identifier)

    Raises:
        ValueError: If name is not a plain SQL identifier

    Note:
        Outside an enclosing transaction the savepoint behaves like a
        deferred BEGIN, so it does not take the write lock up front. Use
        SQLiteTransaction when several processes may migrate at once.
    """

    def __init__(self, conn: sqlite3.Connection, name: str = "txmigrate"):
        if not _SAVEPOINT_NAME_PATTERN.fullmatch(name):
            raise ValueError(f"Invalid savepoint name: {name!r}")
        super().__init__(conn)
        self.name = name

    def begin(self) -> None:
        self.conn.execute(f"SAVEPOINT {self.name}")

    def commit(self) -> None:
        try:
            self.conn.execute(f"RELEASE SAVEPOINT {self.name}")
        except sqlite3.Error:
            self.rollback()
            raise

    def rollback(self) -> None:
        self.conn.execute(f"ROLLBACK TO SAVEPOINT {self.name}")
        self.conn.execute(f"RELEASE SAVEPOINT {self.name}")


def connect(
    path: str | Path, *, busy_timeout: float = 5.0, read_only: bool = False
) -> sqlite3.Connection:
    """
    Open a SQLite database for migration.

    Creates the parent directory if needed. ":memory:" is passed through.
    With read_only=True the file is opened with SQLite's mode=ro URI and
    nothing is created; a missing file raises sqlite3.OperationalError.

    Args:
        path: Database file path
        busy_timeout: Seconds to wait for another writer's lock
        read_only: Open an existing file without write access

    Returns:
        Open sqlite3.Connection owned by the caller

    Example:
        >>> conn = connect("./output/app.db")
        >>> migrations.up(conn)
        >>> conn.close()
    """
    if str(path) == ":memory:":
        return sqlite3.connect(":memory:", timeout=busy_timeout)

    if read_only:
        uri = f"{Path(path).resolve().as_uri()}?mode=ro"
        logger.debug(f"Opening database {path} read-only")
        return sqlite3.connect(uri, timeout=busy_timeout, uri=True)

    Path(path).parent.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Opening database {path} (busy timeout {busy_timeout}s)")
    return sqlite3.connect(path, timeout=busy_timeout)
