"""
SQLite access for the MetaGov audit store.

This module provides the Database class used by the SQLite audit sink.
File databases run in WAL mode with a small pool of reusable
connections; an in-memory database lives on one shared connection.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from metagov.exceptions import StorageError

MEMORY_PATH = ":memory:"

Params = tuple[Any, ...] | dict[str, Any] | None


class Database:
    """
    Thread-safe SQLite database handle.

    Attributes:
        path: Database file, or ":memory:".
        pool_size: Idle connections kept for reuse.
        timeout: Busy timeout in seconds.

    Example:
        Reading the audit table::

            db = Database("metagov_audit.db")
            db.initialize()
            rows = db.execute("SELECT sequence, final_status FROM audit_log")
    """

    def __init__(
        self,
        path: str | Path = "metagov_audit.db",
        pool_size: int = 5,
        timeout: float = 30.0,
    ) -> None:
        self.path: Path | str = MEMORY_PATH if str(path) == MEMORY_PATH else Path(path)
        self.pool_size = pool_size
        self.timeout = timeout

        self._idle: list[sqlite3.Connection] = []
        self._idle_lock = threading.Lock()
        # An in-memory database exists only inside the connection that made it
        self._shared: sqlite3.Connection | None = None
        self._shared_lock = threading.RLock()
        self._initialized = False

    @property
    def in_memory(self) -> bool:
        """Whether the database lives in memory."""
        return self.path == MEMORY_PATH

    @property
    def initialized(self) -> bool:
        """Whether the schema has been applied since the last close."""
        return self._initialized

    def initialize(self) -> None:
        """
        Create the database if needed and apply the schema.

        Safe to call repeatedly; the schema uses IF NOT EXISTS.

        Raises:
            StorageError: If the file or schema cannot be created.
        """
        from metagov.storage.schema import SCHEMA_SQL

        if isinstance(self.path, Path):
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(
                    f"Cannot create audit store directory: {e}",
                    details={"path": str(self.path)},
                ) from e

        try:
            with self.connection() as conn:
                if not self.in_memory:
                    conn.execute("PRAGMA journal_mode=WAL")
                conn.execute(f"PRAGMA busy_timeout={int(self.timeout * 1000)}")
                conn.executescript(SCHEMA_SQL)
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(
                f"Cannot initialize audit store: {e}",
                details={"path": str(self.path)},
            ) from e

        self._initialized = True

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(self.path), timeout=self.timeout, check_same_thread=False)
        except sqlite3.Error as e:
            raise StorageError(
                f"Cannot open audit store: {e}",
                details={"path": str(self.path)},
            ) from e
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """
        Borrow a connection for the duration of a block.

        Uncommitted work is rolled back if the block raises.

        Raises:
            StorageError: If no connection can be opened.
        """
        if self.in_memory:
            with self._shared_lock:
                if self._shared is None:
                    self._shared = self._connect()
                try:
                    yield self._shared
                except Exception:
                    self._shared.rollback()
                    raise
            return

        with self._idle_lock:
            conn = self._idle.pop() if self._idle else None
        if conn is None:
            conn = self._connect()

        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            with self._idle_lock:
                if len(self._idle) < self.pool_size:
                    self._idle.append(conn)
                    conn = None
            if conn is not None:
                conn.close()

    def execute(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        """
        Run a query and return its rows as dictionaries.

        Args:
            sql: Parameterized SQL.
            params: Positional tuple or named mapping.

        Raises:
            StorageError: If the query fails.
        """
        try:
            with self.connection() as conn:
                cursor = conn.execute(sql, params or ())
                return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StorageError(f"Query failed: {e}", details={"sql": sql[:100]}) from e

    def execute_one(self, sql: str, params: Params = None) -> dict[str, Any] | None:
        """Run a query and return its first row, or None."""
        rows = self.execute(sql, params)
        return rows[0] if rows else None

    def execute_write(self, sql: str, params: Params = None) -> int:
        """
        Run a statement and commit it.

        Returns:
            The last inserted row ID.

        Raises:
            StorageError: If the statement fails, including constraint
                violations.
        """
        try:
            with self.connection() as conn:
                cursor = conn.execute(sql, params or ())
                conn.commit()
                return cursor.lastrowid or 0
        except sqlite3.Error as e:
            raise StorageError(f"Write failed: {e}", details={"sql": sql[:100]}) from e

    def get_schema_version(self) -> int:
        """Return the applied schema version, 0 before initialization."""
        try:
            row = self.execute_one("SELECT MAX(version) AS version FROM schema_version")
        except StorageError:
            return 0
        return (row["version"] or 0) if row else 0

    def close(self) -> None:
        """Close every connection. An in-memory database is discarded."""
        with self._idle_lock:
            idle, self._idle = self._idle, []
        for conn in idle:
            conn.close()

        with self._shared_lock:
            if self._shared is not None:
                self._shared.close()
                self._shared = None
        self._initialized = False

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Database(path={str(self.path)!r}, pool_size={self.pool_size})"
