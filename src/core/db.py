"""
Record Store - versioned SQLite database holding the key slots and the legal corpus.

The store is constructed explicitly and handed to every component that needs it.
open() is idempotent: concurrent callers share a single initialization pass, and
pending migrations run in ascending order inside one transaction together with the
version stamp, so a failed upgrade never leaves a half-migrated schema behind.
"""

import asyncio
import json
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generator, List, Optional, Sequence

from util.logging import logger
from .config import get_db_path, ensure_db_directory
from .errors import MigrationError, StorageUnavailableError

# Logical collection name -> table
KEY_STORE = "cryptoKeys"
CORPUS_STORE = "legalCorpus"

COLLECTION_TABLES = {
    KEY_STORE: "crypto_keys",
    CORPUS_STORE: "legal_corpus",
}

# Collections addressed by put/get/delete (the corpus goes through CorpusIndex)
KEY_VALUE_COLLECTIONS = {KEY_STORE}


class StoreState(str, Enum):
    UNOPENED = "unopened"
    OPENING = "opening"
    READY = "ready"


@dataclass(frozen=True)
class MigrationStep:
    """One additive schema upgrade; applied when the on-disk version is below `version`."""
    version: int
    description: str
    apply: Callable[[sqlite3.Connection], None]


def _create_key_store(conn: sqlite3.Connection) -> None:
    conn.execute('''
        CREATE TABLE IF NOT EXISTS crypto_keys (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')


def _create_corpus_store(conn: sqlite3.Connection) -> None:
    # AUTOINCREMENT keeps surrogate ids monotonic and never reused
    conn.execute('''
        CREATE TABLE IF NOT EXISTS legal_corpus (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            source TEXT NOT NULL,
            jurisdiction TEXT NOT NULL,
            citation TEXT NOT NULL,
            section_id TEXT,
            title TEXT NOT NULL,
            text TEXT NOT NULL,
            strategic_notes TEXT,
            effective_date TEXT,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')
    conn.execute('CREATE INDEX IF NOT EXISTS idx_corpus_source ON legal_corpus(source)')
    conn.execute('CREATE INDEX IF NOT EXISTS idx_corpus_jurisdiction ON legal_corpus(jurisdiction)')
    conn.execute('CREATE INDEX IF NOT EXISTS idx_corpus_section_id ON legal_corpus(section_id)')
    conn.execute('CREATE UNIQUE INDEX IF NOT EXISTS idx_corpus_citation ON legal_corpus(citation)')


MIGRATIONS: List[MigrationStep] = [
    MigrationStep(1, "create key slot collection", _create_key_store),
    MigrationStep(2, "create legal corpus collection with indexes", _create_corpus_store),
]

SCHEMA_VERSION = MIGRATIONS[-1].version


class RecordStore:
    """
    Versioned embedded database shared by the corpus index and the key store.

    Every public operation is a coroutine; the blocking SQLite work runs in a worker
    thread under a connection lock. Call open() (or any operation, which opens lazily)
    before use.
    """

    def __init__(self, db_path: str = None, migrations: Sequence[MigrationStep] = None):
        self.db_path = db_path or get_db_path()
        self.migrations = sorted(migrations if migrations is not None else MIGRATIONS,
                                 key=lambda step: step.version)
        self.schema_version = self.migrations[-1].version if self.migrations else 0
        self.state = StoreState.UNOPENED
        self.applied_migrations: List[int] = []

        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._open_lock: Optional[asyncio.Lock] = None
        self._open_loop: Optional[asyncio.AbstractEventLoop] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def open(self) -> "RecordStore":
        """Open the database and bring its schema to the current version."""
        if self.state is StoreState.READY:
            return self

        async with self._lock_for_running_loop():
            # Late callers wait on the lock and find the store ready
            if self.state is StoreState.READY:
                return self

            self.state = StoreState.OPENING
            try:
                await asyncio.to_thread(self._open_sync)
            except BaseException:
                self.state = StoreState.UNOPENED
                raise
            self.state = StoreState.READY

        return self

    def _lock_for_running_loop(self) -> asyncio.Lock:
        """Open guard bound to the current event loop; a store may outlive one loop."""
        loop = asyncio.get_running_loop()
        if self._open_lock is None or self._open_loop is not loop:
            self._open_lock = asyncio.Lock()
            self._open_loop = loop
        return self._open_lock

    def _open_sync(self) -> None:
        try:
            ensure_db_directory(self.db_path)
            conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        except (OSError, sqlite3.Error) as e:
            logger.error(f"Failed to open record store at '{self.db_path}': {e}")
            raise StorageUnavailableError(f"Cannot open record store at '{self.db_path}': {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            self.applied_migrations = self._migrate(conn)
        except sqlite3.Error as e:
            self._rollback(conn)
            conn.close()
            logger.error(f"Failed to migrate record store at '{self.db_path}': {e}")
            raise StorageUnavailableError(f"Cannot migrate record store at '{self.db_path}': {e}") from e
        except BaseException:
            conn.close()
            raise

        with self._lock:
            self._conn = conn

    def _migrate(self, conn: sqlite3.Connection) -> List[int]:
        """Apply pending migration steps; returns the versions applied."""
        try:
            current = conn.execute("PRAGMA user_version").fetchone()[0]
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"Cannot read schema version: {e}") from e

        if current > self.schema_version:
            raise StorageUnavailableError(
                f"Database schema version {current} is newer than supported version {self.schema_version}"
            )

        pending = [step for step in self.migrations if step.version > current]
        if not pending:
            logger.debug(f"Record store already at schema version {current} - no migration needed")
            return []

        applied = []
        conn.execute("BEGIN IMMEDIATE")
        for step in pending:
            try:
                step.apply(conn)
            except Exception as e:
                conn.execute("ROLLBACK")
                logger.log_migration_step(step.version, step.description, "failed", {"error": str(e)[:100]})
                raise MigrationError(step.version, step.description, e) from e
            applied.append(step.version)
            logger.log_migration_step(step.version, step.description)

        conn.execute(f"PRAGMA user_version = {int(self.schema_version)}")
        conn.execute("COMMIT")
        logger.log_operation("store.open", "migrated", {"from": current, "to": self.schema_version})
        return applied

    def close(self) -> None:
        """Close the underlying connection (process teardown only)."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
        self.state = StoreState.UNOPENED

    # ------------------------------------------------------------------
    # Connection access for collaborators (corpus index)
    # ------------------------------------------------------------------
    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        with self._lock:
            if self._conn is None:
                raise StorageUnavailableError("Record store is not open")
            yield self._conn

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    def _run_in_transaction(self, fn: Callable[[sqlite3.Connection], Any]) -> Any:
        with self._connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                result = fn(conn)
                conn.execute("COMMIT")
                return result
            except sqlite3.Error as e:
                self._rollback(conn)
                logger.error(f"Record store write failed and was rolled back: {e}")
                raise StorageUnavailableError(f"Record store write failed: {e}") from e
            except BaseException:
                self._rollback(conn)
                raise

    def _run_read(self, fn: Callable[[sqlite3.Connection], Any]) -> Any:
        with self._connection() as conn:
            try:
                return fn(conn)
            except sqlite3.Error as e:
                logger.error(f"Record store read failed: {e}")
                raise StorageUnavailableError(f"Record store read failed: {e}") from e

    async def transaction(self, fn: Callable[[sqlite3.Connection], Any]) -> Any:
        """Run fn(conn) inside a single write transaction; any exception rolls it back."""
        await self.open()
        return await asyncio.to_thread(self._run_in_transaction, fn)

    async def read(self, fn: Callable[[sqlite3.Connection], Any]) -> Any:
        """Run a read-only fn(conn) against the open database."""
        await self.open()
        return await asyncio.to_thread(self._run_read, fn)

    # ------------------------------------------------------------------
    # Key-value collections
    # ------------------------------------------------------------------
    @staticmethod
    def _table(collection: str, key_value_only: bool = False) -> str:
        if collection not in COLLECTION_TABLES:
            raise ValueError(f"Unknown collection: {collection}")
        if key_value_only and collection not in KEY_VALUE_COLLECTIONS:
            raise ValueError(f"Collection '{collection}' is not a key-value collection")
        return COLLECTION_TABLES[collection]

    async def put(self, collection: str, key: str, value: Any) -> None:
        """Upsert value under key; overwrites silently."""
        table = self._table(collection, key_value_only=True)
        payload = json.dumps(value)

        def _put(conn):
            conn.execute(
                f"INSERT INTO {table} (key, value) VALUES (?, ?) "
                f"ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP",
                (key, payload)
            )

        await self.transaction(_put)
        logger.log_store_operation("put", collection, key)

    async def get(self, collection: str, key: str) -> Optional[Any]:
        """Return the value stored under key, or None when absent."""
        table = self._table(collection, key_value_only=True)

        def _get(conn):
            return conn.execute(f"SELECT value FROM {table} WHERE key = ?", (key,)).fetchone()

        row = await self.read(_get)
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except ValueError as e:
            logger.error(f"Unreadable value under '{key}' in {collection}: {e}")
            raise StorageUnavailableError(f"Stored value for '{key}' in {collection} is corrupt") from e

    async def delete(self, collection: str, key: str) -> None:
        """Remove key if present; unknown keys are a no-op."""
        table = self._table(collection, key_value_only=True)
        await self.transaction(lambda conn: conn.execute(f"DELETE FROM {table} WHERE key = ?", (key,)))
        logger.log_store_operation("delete", collection, key)

    async def clear(self, collection: str) -> None:
        """Remove every entry of a collection in one transaction."""
        table = self._table(collection)
        await self.transaction(lambda conn: conn.execute(f"DELETE FROM {table}"))
        logger.log_store_operation("clear", collection)

    async def get_schema_version(self) -> int:
        """Return the version stamped on the open database."""
        return await self.read(lambda conn: conn.execute("PRAGMA user_version").fetchone()[0])

    async def health_check(self) -> bool:
        """Check that the store opens and every required table exists."""
        try:
            await self.open()

            def _tables(conn):
                rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
                return {row["name"] for row in rows}

            table_names = await self.read(_tables)
        except Exception as e:
            logger.error(f"Record store health check failed: {e}")
            return False

        required_tables = set(COLLECTION_TABLES.values())
        return required_tables.issubset(table_names)
