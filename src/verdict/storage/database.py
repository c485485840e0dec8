"""asyncpg connection pool shared by the catalog store, the CLI and the API."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, cast

import asyncpg

from verdict.core.exceptions import DatabaseConnectionError
from verdict.core.logging import get_logger

logger = get_logger(__name__)

_DRIVER_PREFIXES = ("postgresql+asyncpg://", "postgres+asyncpg://")


def asyncpg_dsn(dsn: str) -> str:
    """Strip an SQLAlchemy driver suffix so asyncpg accepts the URL."""
    for prefix in _DRIVER_PREFIXES:
        if dsn.startswith(prefix):
            return "postgresql://" + dsn[len(prefix) :]
    return dsn


class Database:
    """Pool wrapper exposing the handful of query helpers the store needs.

    Usage:
        db = Database(settings.database_url)
        await db.connect()
        async with db.transaction() as conn:
            await conn.execute(...)
        await db.disconnect()
    """

    def __init__(self, dsn: str, min_size: int = 2, max_size: int = 10) -> None:
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self._pool: asyncpg.Pool[asyncpg.Record] | None = None

    @property
    def connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """Open the pool.

        Raises:
            DatabaseConnectionError: The server is unreachable or refused us
        """
        try:
            self._pool = await asyncpg.create_pool(
                asyncpg_dsn(self._dsn),
                min_size=self._min_size,
                max_size=self._max_size,
            )
        except (OSError, asyncpg.PostgresError) as e:
            raise DatabaseConnectionError(f"Could not connect to database: {e}") from e
        logger.debug("Database pool opened", min_size=self._min_size, max_size=self._max_size)

    async def disconnect(self) -> None:
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None
        logger.debug("Database pool closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection[asyncpg.Record]]:
        if self._pool is None:
            raise RuntimeError("Database not connected, call connect() first")
        async with self._pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection[asyncpg.Record]]:
        """A pooled connection inside one transaction, rolled back on error."""
        async with self.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def ping(self) -> bool:
        """Round-trip a trivial query; used by the readiness check."""
        return await self.fetchval("SELECT 1") == 1

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement and return its status tag (e.g. ``UPDATE 3``)."""
        async with self.acquire() as conn:
            return cast(str, await conn.execute(query, *args))

    async def executemany(self, query: str, args: list[tuple[Any, ...]]) -> None:
        async with self.acquire() as conn:
            await conn.executemany(query, args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.acquire() as conn:
            return list(await conn.fetch(query, *args))

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)


# Process-wide pool, opened by the API lifespan or a CLI command
_db: Database | None = None


def get_database() -> Database:
    if _db is None:
        raise RuntimeError("Database not initialized")
    return _db


async def init_database(dsn: str, min_size: int = 2, max_size: int = 10) -> Database:
    """Open the process-wide pool and return it.

    Raises:
        DatabaseConnectionError: The pool could not be opened
    """
    global _db
    db = Database(dsn, min_size=min_size, max_size=max_size)
    await db.connect()
    _db = db
    return db


async def close_database() -> None:
    global _db
    if _db is not None:
        await _db.disconnect()
        _db = None
