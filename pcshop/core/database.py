"""
Shop SQLite database handle.

One connection per process, shared by request worker threads and
serialised with a lock. Constructed explicitly from a StorePath and handed
to every component that needs storage; there is no module-level handle.

Error mapping:
- Failure to open or ping the store raises DatabaseError (fatal at startup)
- Uniqueness violations propagate as sqlite3.IntegrityError so callers can
  turn them into domain conflicts
- Any other sqlite error raises StorageUnavailable
"""

import sqlite3
import threading
from contextlib import contextmanager
from typing import Optional, List, Any, Iterator, Sequence

from pcshop.logging import getLogger
from pcshop.core.errors import StorageUnavailable
from pcshop.core.storage import StorePath


class DatabaseError(Exception):
    """Store could not be opened"""
    pass


class Database:
    """SQLite store connection with serialised access"""

    def __init__(self, storePath: StorePath):
        self.log = getLogger()
        self.storePath = storePath
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._connect()

    def _connect(self):
        """Open and ping the store. The engine creates the file lazily if absent."""
        try:
            self.conn = sqlite3.connect(
                self.storePath.uri(),
                uri=True,
                check_same_thread=False,  # Requests run on worker threads
                isolation_level=None,  # Autocommit; transactions are explicit
                timeout=self.storePath.busyTimeoutSeconds
            )
            self.conn.row_factory = sqlite3.Row
            self.conn.execute(f"PRAGMA busy_timeout={int(self.storePath.busyTimeoutMs)}")
            self.conn.execute("SELECT 1").fetchone()
        except sqlite3.Error as e:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
            raise DatabaseError(f"Cannot open store at {self.storePath.path}: {e}") from e

        self.log.info(f"[Database] Opened {self.storePath.path}",
                      busyTimeoutMs=self.storePath.busyTimeoutMs)

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Execute one statement, return affected row count"""
        with self._lock:
            try:
                return self.conn.execute(sql, params).rowcount
            except sqlite3.IntegrityError:
                raise
            except sqlite3.Error as e:
                raise StorageUnavailable(f"Store query failed: {e}") from e

    def executeScript(self, script: str):
        """Execute a multi-statement script (schema payloads)"""
        with self._lock:
            try:
                self.conn.executescript(script)
            except sqlite3.Error as e:
                raise StorageUnavailable(f"Store script failed: {e}") from e

    def queryOne(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            try:
                return self.conn.execute(sql, params).fetchone()
            except sqlite3.Error as e:
                raise StorageUnavailable(f"Store query failed: {e}") from e

    def queryAll(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        with self._lock:
            try:
                return self.conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StorageUnavailable(f"Store query failed: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator['Database']:
        """
        Write transaction taking the store's write lock up front.

        BEGIN IMMEDIATE makes concurrent writers (other processes on the same
        file included) wait up to the busy timeout instead of interleaving
        between a read and the write that depends on it.
        """
        with self._lock:
            try:
                self.conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StorageUnavailable(f"Cannot begin transaction: {e}") from e
            try:
                yield self
            except BaseException:
                self._rollback()
                raise
            else:
                try:
                    self.conn.execute("COMMIT")
                except sqlite3.Error as e:
                    # A failed COMMIT can leave the transaction open on the shared connection
                    self._rollback()
                    raise StorageUnavailable(f"Commit failed: {e}") from e

    def _rollback(self):
        """End the open transaction; never masks the error that caused it"""
        if not self.conn.in_transaction:
            return
        try:
            self.conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            self.log.error(f"[Database] Rollback failed: {e}")

    def close(self):
        """Close the connection"""
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
                self.log.info("[Database] Closed")
