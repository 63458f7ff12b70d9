"""
SQLite key-value adapter - the transactional store that holds text records
under their raw encoded-vector keys.

Every transaction opens its own connection. The database runs in WAL mode so a
read transaction sees a point-in-time snapshot and never blocks the writer,
and with incremental auto-vacuum so freed pages can be reclaimed in small
steps by the maintenance task.
"""

import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Generator, Iterator, Optional, Tuple

from .config import DB_PATH, RECLAIM_PAGES_PER_PASS, ensure_db_directory
from .errors import StoreError
from util.logging import logger

AUTO_VACUUM_INCREMENTAL = 2


def _rollback(conn: sqlite3.Connection):
    if conn.in_transaction:
        conn.execute("ROLLBACK")


class ReadTxn:
    """Read-only view over one snapshot transaction."""

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def get(self, key: bytes) -> Optional[bytes]:
        """Point lookup by raw key. Returns None when the key is absent."""
        row = self._conn.execute(
            "SELECT value FROM records WHERE key = ?", (key,)
        ).fetchone()
        return bytes(row[0]) if row else None

    def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM records").fetchone()[0]

    def iterate(self, prefetch_values: bool = True) -> Iterator[Tuple[bytes, Optional[bytes]]]:
        """
        Iterate over every record in key-byte order.

        Args:
            prefetch_values: When False only keys are read and the value slot
                of each pair is None.
        """
        if prefetch_values:
            cursor = self._conn.execute("SELECT key, value FROM records ORDER BY key")
            for key, value in cursor:
                yield bytes(key), bytes(value)
        else:
            cursor = self._conn.execute("SELECT key FROM records ORDER BY key")
            for (key,) in cursor:
                yield bytes(key), None


class WriteTxn(ReadTxn):
    """Exclusive write transaction. Reads inside it see its own writes."""

    def set(self, key: bytes, value: bytes) -> None:
        """Set a raw key to a raw value, replacing any existing value."""
        if not key:
            raise StoreError("Key cannot be empty")
        self._conn.execute(
            "INSERT OR REPLACE INTO records (key, value) VALUES (?, ?)",
            (sqlite3.Binary(key), sqlite3.Binary(value))
        )


class KVStore:
    """Transactional byte-key/byte-value store backed by a single SQLite file."""

    def __init__(self, path: str = None, pages_per_pass: int = None, timeout: float = 30.0):
        """
        Open (creating if needed) the store at ``path``.

        Args:
            path: Database file, defaults to DB_PATH
            pages_per_pass: Pages freed by one reclaim_space() call
            timeout: Seconds a connection waits on a locked database

        Raises:
            StoreError: If the database cannot be opened or initialised
        """
        self.path = str(path or DB_PATH)
        self.pages_per_pass = pages_per_pass or RECLAIM_PAGES_PER_PASS
        self.timeout = timeout
        self._closed = False

        try:
            ensure_db_directory(self.path)
            self._init_db()
        except (sqlite3.Error, OSError) as e:
            logger.log_operation("store.open", "failed", {"path": self.path, "error": str(e)})
            raise StoreError(f"Failed to open store at {self.path}: {e}") from e

        logger.log_operation("store.open", "success", {"path": self.path})

    def _connect(self) -> sqlite3.Connection:
        if self._closed:
            raise StoreError(f"Store at {self.path} is closed")
        try:
            # Autocommit mode; transactions are opened explicitly
            return sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to connect to {self.path}: {e}") from e

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    def _init_db(self):
        """Initialize the database with the records table."""
        with self._connection() as conn:
            # Must precede table creation to take effect on a new file
            conn.execute("PRAGMA auto_vacuum = INCREMENTAL")
            conn.execute("PRAGMA journal_mode = WAL").fetchone()
            conn.execute('''
                CREATE TABLE IF NOT EXISTS records (
                    key BLOB PRIMARY KEY,
                    value BLOB NOT NULL
                ) WITHOUT ROWID
            ''')

            mode = conn.execute("PRAGMA auto_vacuum").fetchone()[0]
            if mode != AUTO_VACUUM_INCREMENTAL:
                # Existing file created without incremental vacuum
                logger.info(f"Converting {self.path} to incremental auto-vacuum")
                conn.execute("PRAGMA auto_vacuum = INCREMENTAL")
                conn.execute("VACUUM")

    @contextmanager
    def read_txn(self) -> Generator[ReadTxn, None, None]:
        """Open a snapshot read transaction."""
        with self._connection() as conn:
            try:
                conn.execute("BEGIN")
                yield ReadTxn(conn)
            except sqlite3.Error as e:
                raise StoreError(f"Read transaction failed: {e}") from e
            finally:
                _rollback(conn)

    @contextmanager
    def write_txn(self) -> Generator[WriteTxn, None, None]:
        """
        Open an exclusive write transaction.

        Commits when the block exits normally; any exception rolls back every
        write made inside the block and propagates.
        """
        with self._connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StoreError(f"Failed to begin write transaction: {e}") from e

            try:
                yield WriteTxn(conn)
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                _rollback(conn)
                raise StoreError(f"Write transaction failed: {e}") from e
            except BaseException:
                _rollback(conn)
                raise

    def get(self, key: bytes) -> Optional[bytes]:
        """Point lookup in its own read transaction."""
        with self.read_txn() as txn:
            return txn.get(key)

    def count(self) -> int:
        """Number of stored records."""
        with self.read_txn() as txn:
            return txn.count()

    def stats(self) -> Dict[str, Any]:
        """Page-level storage statistics."""
        with self._connection() as conn:
            try:
                page_count = conn.execute("PRAGMA page_count").fetchone()[0]
                freelist_count = conn.execute("PRAGMA freelist_count").fetchone()[0]
                page_size = conn.execute("PRAGMA page_size").fetchone()[0]
                auto_vacuum = conn.execute("PRAGMA auto_vacuum").fetchone()[0]
            except sqlite3.Error as e:
                raise StoreError(f"Failed to read store stats: {e}") from e

        return {
            "page_count": page_count,
            "freelist_count": freelist_count,
            "page_size": page_size,
            "auto_vacuum": auto_vacuum,
            "free_ratio": freelist_count / page_count if page_count else 0.0
        }

    def reclaim_space(self, discard_ratio: float) -> bool:
        """
        Reclaim free pages if at least ``discard_ratio`` of the file is free.

        Frees at most ``pages_per_pass`` pages per call.

        Returns:
            True if pages were reclaimed (more work may remain), False if
            there was nothing worth reclaiming.

        Raises:
            ValueError: If discard_ratio is not strictly between 0 and 1
            StoreError: If the engine fails
        """
        if not 0 < discard_ratio < 1:
            raise ValueError(f"discard_ratio must be between 0 and 1 (exclusive): {discard_ratio}")

        with self._connection() as conn:
            try:
                page_count = conn.execute("PRAGMA page_count").fetchone()[0]
                before = conn.execute("PRAGMA freelist_count").fetchone()[0]

                if before == 0 or page_count == 0 or before / page_count < discard_ratio:
                    return False

                conn.execute(f"PRAGMA incremental_vacuum({int(self.pages_per_pass)})").fetchall()
                after = conn.execute("PRAGMA freelist_count").fetchone()[0]
            except sqlite3.Error as e:
                raise StoreError(f"Space reclamation failed: {e}") from e

        return after < before

    def health_check(self) -> bool:
        """Check that the store is open and the records table exists."""
        try:
            with self._connection() as conn:
                row = conn.execute(
                    "SELECT name FROM sqlite_master WHERE type='table' AND name='records'"
                ).fetchone()
                return row is not None
        except (StoreError, sqlite3.Error):
            return False

    def close(self):
        """Checkpoint the write-ahead log and refuse further operations."""
        if self._closed:
            return

        try:
            with self._connection() as conn:
                conn.execute("PRAGMA wal_checkpoint(TRUNCATE)").fetchall()
        except sqlite3.Error as e:
            logger.warning(f"WAL checkpoint on close failed for {self.path}: {e}")
        finally:
            self._closed = True

        logger.log_operation("store.close", "success", {"path": self.path})

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
