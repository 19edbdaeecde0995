"""Async SQLite store handle with connection pooling.

Wraps `aiosqlite` connections in a fixed-size pool owned by a `Database`
object. The application opens the handle at startup, passes it to the
repositories and closes it at shutdown.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiosqlite

from ..config import DatabaseSettings
from .errors import (
    ConnectionFailureError,
    ConstraintViolationError,
    QueryFailedError,
    StoreError,
)

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 1

MEMORY_PATH = ":memory:"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS properties (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    thumbnail_photo_url TEXT NOT NULL,
    cover_photo_url TEXT NOT NULL,
    cost_per_night INTEGER NOT NULL DEFAULT 0,
    street TEXT NOT NULL,
    city TEXT NOT NULL,
    province TEXT NOT NULL,
    post_code TEXT NOT NULL,
    country TEXT NOT NULL,
    parking_spaces INTEGER NOT NULL DEFAULT 0,
    number_of_bathrooms INTEGER NOT NULL DEFAULT 0,
    number_of_bedrooms INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (owner_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS reservations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    start_date DATE NOT NULL,
    end_date DATE NOT NULL,
    property_id INTEGER NOT NULL,
    guest_id INTEGER NOT NULL,
    FOREIGN KEY (property_id) REFERENCES properties(id) ON DELETE CASCADE,
    FOREIGN KEY (guest_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS property_reviews (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    guest_id INTEGER NOT NULL,
    property_id INTEGER NOT NULL,
    rating INTEGER NOT NULL DEFAULT 0,
    message TEXT,
    FOREIGN KEY (guest_id) REFERENCES users(id) ON DELETE CASCADE,
    FOREIGN KEY (property_id) REFERENCES properties(id) ON DELETE CASCADE
);
"""


def translate_error(exc: aiosqlite.Error) -> StoreError:
    """Map a driver error onto the store error hierarchy."""
    if isinstance(exc, aiosqlite.IntegrityError):
        return ConstraintViolationError(str(exc))
    message = str(exc).lower()
    if isinstance(exc, aiosqlite.OperationalError) and (
        "unable to open" in message or "database is locked" in message
    ):
        return ConnectionFailureError(str(exc))
    if isinstance(exc, aiosqlite.ProgrammingError) and "closed" in message:
        return ConnectionFailureError(str(exc))
    return QueryFailedError(str(exc))


class Database:
    """Store handle owning a pool of `aiosqlite` connections.

    Usage:
        async with Database("lightbnb.db") as db:
            async with db.connection() as conn:
                await conn.execute(...)
    """

    def __init__(self, path: str, pool_size: int = 5, timeout: float = 30.0) -> None:
        if pool_size < 1:
            raise ValueError("pool_size must be at least 1")
        self.path = path
        self.pool_size = pool_size
        self.timeout = timeout
        self._pool: Optional[asyncio.Queue[aiosqlite.Connection]] = None
        self._connections: list[aiosqlite.Connection] = []

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> "Database":
        """Build a handle from `DatabaseSettings`."""
        return cls(settings.path, pool_size=settings.pool_size, timeout=settings.pool_timeout)

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    async def _connect(self) -> aiosqlite.Connection:
        try:
            conn = await aiosqlite.connect(
                self.path,
                timeout=self.timeout,
                cached_statements=128,
            )
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA foreign_keys = ON;")
            await conn.commit()
        except aiosqlite.Error as e:
            logger.exception("Error opening database connection to %s: %s", self.path, e)
            raise ConnectionFailureError(str(e)) from e
        return conn

    async def open(self) -> None:
        """Create the connection pool. Calling it twice is a no-op."""
        if self._pool is not None:
            return

        pool: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue(maxsize=self.pool_size)

        # Every ":memory:" connection is its own empty database, so the pool
        # hands out one shared connection instead.
        if self.path == MEMORY_PATH:
            conn = await self._connect()
            self._connections = [conn]
            for _ in range(self.pool_size):
                pool.put_nowait(conn)
            self._pool = pool
            logger.info(
                "Database connection pool initialized with a shared in-memory connection (capacity: %d)",
                self.pool_size,
            )
            return

        try:
            for i in range(self.pool_size):
                conn = await self._connect()
                self._connections.append(conn)
                pool.put_nowait(conn)
                logger.debug("Opened connection %d/%d", i + 1, self.pool_size)
        except ConnectionFailureError:
            await self._close_connections()
            raise
        self._pool = pool
        logger.info("Database connection pool initialized with size %d", self.pool_size)

    async def _close_connections(self) -> None:
        for conn in self._connections:
            try:
                await conn.close()
            except aiosqlite.Error as exc:
                logger.warning("Error closing DB connection: %s", exc)
        self._connections = []

    async def close(self) -> None:
        """Close all connections in the pool and reset its state."""
        if self._pool is None:
            return
        self._pool = None
        await self._close_connections()
        logger.info("Database connection pool closed")

    async def __aenter__(self) -> "Database":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _replace(self, stale: aiosqlite.Connection) -> aiosqlite.Connection:
        if self.path == MEMORY_PATH:
            raise ConnectionFailureError("Shared in-memory connection is no longer usable")
        new_conn = await self._connect()
        self._connections = [c for c in self._connections if c is not stale]
        self._connections.append(new_conn)
        try:
            await stale.close()
        except aiosqlite.Error:
            logger.debug("Stale connection was already closed")
        return new_conn

    async def _rollback(self, conn: aiosqlite.Connection) -> None:
        try:
            if conn.in_transaction:
                await conn.rollback()
        except (aiosqlite.Error, ValueError) as e:
            logger.warning("Rollback after failed operation failed: %s", e)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Acquire a database connection from the pool.

        Driver errors raised inside the block are re-raised as `StoreError`
        subclasses with the original error chained.
        """
        pool = self._pool
        if pool is None:
            raise ConnectionFailureError("Connection pool is not open")
        try:
            conn = await asyncio.wait_for(pool.get(), timeout=self.timeout)
            logger.debug("Acquired database connection from pool")
        except asyncio.TimeoutError:
            logger.error("Timed out waiting for database connection")
            raise ConnectionFailureError("Database connection timeout")

        try:
            await conn.execute("SELECT 1;")
        except (aiosqlite.Error, ValueError) as e:
            logger.warning("Database connection is invalid, recreating new connection: %s", e)
            try:
                conn = await self._replace(conn)
            except ConnectionFailureError:
                pool.put_nowait(conn)
                raise

        start_time = time.monotonic()
        try:
            yield conn
        except aiosqlite.Error as e:
            logger.debug("Database operation error: %s", e)
            await self._rollback(conn)
            raise translate_error(e) from e
        except BaseException:
            # Cancellation or any other error must not hand an open
            # transaction to the next acquirer.
            await self._rollback(conn)
            raise
        finally:
            elapsed = time.monotonic() - start_time
            logger.debug("Database connection held for %.3f seconds", elapsed)
            pool.put_nowait(conn)
            logger.debug("Returned database connection to pool")

    async def initialize_schema(self) -> None:
        """Create the tables if they are missing and stamp the schema version."""
        async with self.connection() as conn:
            cursor = await conn.execute("PRAGMA user_version;")
            row = await cursor.fetchone()
            current_version = row[0] if row else 0
            if current_version >= CURRENT_SCHEMA_VERSION:
                logger.info("Database schema is up-to-date (version %d)", current_version)
                return
            logger.info("Applying built-in schema")
            await conn.executescript(SCHEMA_SQL)
            await conn.execute(f"PRAGMA user_version = {CURRENT_SCHEMA_VERSION};")
            await conn.commit()
            logger.info("Schema applied, version set to %d", CURRENT_SCHEMA_VERSION)
