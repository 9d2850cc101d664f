import aiosqlite
import asyncio
import json
import sqlite3
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Union

from store.helpers import StoreError, StoreUnavailableError

logger = logging.getLogger(__name__)


def _wrap_sqlite_error(action: str, e: Exception) -> StoreError:
    """Map a driver error to the store's error taxonomy."""
    message = str(e).lower()
    if isinstance(e, sqlite3.OperationalError) and ("locked" in message or "busy" in message):
        return StoreUnavailableError(f"Store busy while trying to {action}: {e}")
    return StoreError(f"Failed to {action}: {e}")


class StoreCore:
    """Async SQLite document store with persistent connection and async lock.

    Uses a single persistent connection with an async lock to serialize
    access (SQLite limitation). The connection is lazily opened on first use
    and reused until close() is called. A closed store stays closed.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:") -> None:
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None
        self._conn_lock: Optional[asyncio.Lock] = None
        self._init_lock: Optional[asyncio.Lock] = None
        self._initialized = False
        self._closed = False

    async def _ensure_connection(self) -> aiosqlite.Connection:
        """Ensure we have an open connection, creating one if needed."""
        if self._closed:
            raise StoreUnavailableError("Document store is closed")
        if self._conn is None:
            try:
                self._conn = await aiosqlite.connect(self.db_path)
                self._conn.row_factory = aiosqlite.Row
                if str(self.db_path) != ":memory:":
                    await self._conn.execute("PRAGMA journal_mode=WAL")
                await self._conn.execute("PRAGMA busy_timeout=5000")
            except (sqlite3.Error, OSError) as e:
                self._conn = None
                raise StoreUnavailableError(
                    f"Cannot open document store at {self.db_path}: {e}"
                ) from e
        return self._conn

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the async lock for connection serialization."""
        if self._conn_lock is None:
            self._conn_lock = asyncio.Lock()
        return self._conn_lock

    @asynccontextmanager
    async def _get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Get the schema-ready connection with serialized access."""
        await self.init_db()
        async with self._get_lock():
            conn = await self._ensure_connection()
            yield conn

    async def init_db(self) -> None:
        """Initialize the schema if needed."""
        if self._initialized:
            return
        if self._init_lock is None:
            self._init_lock = asyncio.Lock()
        async with self._init_lock:
            if self._initialized:
                return
            async with self._get_lock():
                conn = await self._ensure_connection()
                await self._init_schema(conn)
                await conn.commit()
            self._initialized = True

    async def _init_schema(self, conn: aiosqlite.Connection) -> None:
        try:
            await conn.executescript("""
                CREATE TABLE IF NOT EXISTS documents (
                    path TEXT NOT NULL,
                    id TEXT NOT NULL,
                    data TEXT NOT NULL DEFAULT '{}',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (path, id)
                );
                CREATE TABLE IF NOT EXISTS identities (
                    user_id TEXT PRIMARY KEY,
                    is_anonymous INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS identity_tokens (
                    token TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (user_id) REFERENCES identities(user_id) ON DELETE CASCADE
                );
                CREATE TABLE IF NOT EXISTS settings (key TEXT PRIMARY KEY, value TEXT NOT NULL);
                CREATE INDEX IF NOT EXISTS idx_documents_path ON documents(path);
            """)
        except sqlite3.Error as e:
            logger.error(f"Error initializing document store schema: {e}")
            raise _wrap_sqlite_error("initialize schema", e) from e

    async def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a setting value. Returns default if not found or on error."""
        try:
            async with self._get_connection() as conn:
                async with conn.execute(
                    "SELECT value FROM settings WHERE key=?", (key,)
                ) as cursor:
                    row = await cursor.fetchone()
                    return json.loads(row["value"]) if row else default
        except (sqlite3.Error, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Error getting setting {key}: {e}")
            return default

    async def set_setting(self, key: str, value: Any) -> None:
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    "INSERT OR REPLACE INTO settings (key,value) VALUES (?,?)",
                    (key, json.dumps(value)),
                )
                await conn.commit()
        except (sqlite3.Error, ValueError, TypeError) as e:
            logger.error(f"Error setting {key}: {e}")
            raise _wrap_sqlite_error("save setting", e) from e

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Close the persistent connection. Further operations fail."""
        self._closed = True
        if self._conn is not None:
            try:
                await self._conn.close()
            except (sqlite3.Error, OSError) as e:
                logger.warning(f"Error closing document store connection: {e}")
            finally:
                self._conn = None
