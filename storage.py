"""Key-value storage collaborators for durable engine state.

The engine only needs ``get``/``put``/``delete``/``list_keys``. Values are
raw bytes; the engine stores JSON documents under prefixed keys such as
``user_progress_<user id>``.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from contextlib import contextmanager
from queue import Empty, Queue
from typing import Dict, Generator, Iterable, List, Optional

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised by storage implementations when the backend fails."""


class KeyValueStore:
    """Asynchronous key-value store interface consumed by the engine."""

    async def get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    async def put(self, key: str, value: bytes) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def list_keys(self, prefix: Optional[str] = None) -> List[str]:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, used by tests and offline sessions."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None) -> None:
        self._data: Dict[str, bytes] = dict(initial or {})

    async def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    async def put(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def list_keys(self, prefix: Optional[str] = None) -> List[str]:
        return sorted(k for k in self._data if prefix is None or k.startswith(prefix))


class SQLiteConnectionPool:
    """Thread-safe SQLite connection pool."""

    def __init__(self, database: str, max_connections: int = 5):
        self.database = database
        self.max_connections = max_connections
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=max_connections)
        self._lock = threading.Lock()
        self._created_connections = 0

    def _create_connection(self) -> sqlite3.Connection:
        # Connections are handed to worker threads by asyncio.to_thread.
        conn = sqlite3.connect(self.database, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a connection from the pool or create a new one if needed."""
        connection = None
        try:
            connection = self._pool.get(block=False)
        except Empty:
            with self._lock:
                if self._created_connections < self.max_connections:
                    connection = self._create_connection()
                    self._created_connections += 1
                    logger.debug("Created new connection (total: %d)", self._created_connections)
                else:
                    connection = self._pool.get(block=True)

        try:
            yield connection
        finally:
            try:
                connection.rollback()
                self._pool.put(connection)
            except sqlite3.Error as exc:
                logger.error("Error returning connection to pool: %s", exc)
                connection.close()
                with self._lock:
                    self._created_connections -= 1

    def close_all(self) -> None:
        while True:
            try:
                connection = self._pool.get(block=False)
            except Empty:
                break
            connection.close()
            with self._lock:
                self._created_connections -= 1


class SQLiteKeyValueStore(KeyValueStore):
    """Durable store backed by a single ``kv_store`` SQLite table.

    Blocking sqlite calls run in a worker thread so the event loop is never
    stalled.
    """

    def __init__(self, database: str, max_connections: int = 5) -> None:
        self._pool = SQLiteConnectionPool(database, max_connections=max_connections)
        self._init_table()

    def _exec(self, sql: str, params: Iterable = ()) -> None:
        try:
            with self._pool.get_connection() as con:
                con.execute(sql, tuple(params))
                con.commit()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc

    def _query(self, sql: str, params: Iterable = ()) -> list[sqlite3.Row]:
        try:
            with self._pool.get_connection() as con:
                return con.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc

    def _init_table(self) -> None:
        self._exec(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value BLOB NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

    # ----- KeyValueStore ------------------------------------------------
    async def get(self, key: str) -> Optional[bytes]:
        rows = await asyncio.to_thread(
            self._query, "SELECT value FROM kv_store WHERE key = ?", (key,)
        )
        if not rows:
            return None
        value = rows[0]["value"]
        return value.encode("utf-8") if isinstance(value, str) else bytes(value)

    async def put(self, key: str, value: bytes) -> None:
        await asyncio.to_thread(
            self._exec,
            """
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
            """,
            (key, sqlite3.Binary(bytes(value))),
        )

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._exec, "DELETE FROM kv_store WHERE key = ?", (key,))

    async def list_keys(self, prefix: Optional[str] = None) -> List[str]:
        if prefix is None:
            rows = await asyncio.to_thread(self._query, "SELECT key FROM kv_store ORDER BY key")
        else:
            escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            rows = await asyncio.to_thread(
                self._query,
                "SELECT key FROM kv_store WHERE key LIKE ? ESCAPE '\\' ORDER BY key",
                (f"{escaped}%",),
            )
        return [row["key"] for row in rows]

    def close(self) -> None:
        self._pool.close_all()
