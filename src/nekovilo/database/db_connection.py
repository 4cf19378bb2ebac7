"""
One long-lived aiosqlite connection shared by every repository.

Reads and writes share the one connection, so both take the same semaphore:
a read waits for any open transaction to commit or roll back and never sees
its uncommitted rows.

Usage
-----
    await db_connection.open(path)

    async with db_connection.read() as conn:
        rows = await conn.execute_fetchall("SELECT ...")

    async with db_connection.transaction() as conn:
        await conn.execute("INSERT ...")
        # commits on clean exit, rolls back on exception

    await db_connection.close()
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from nekovilo.util.logger import get_logger

logger = get_logger("database_connection")

PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA foreign_keys = ON",
    "PRAGMA busy_timeout = 5000",
    "PRAGMA temp_store = MEMORY",
)


class ConnectionManager:
    """
    Owner of the rule database connection.

    Reads use ``read()``; writes use ``transaction()``. Both hold the same
    semaphore for the duration of the block, so neither may be nested in the
    other.
    """

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None
        self._path: Path | None = None
        self._access_sem = asyncio.Semaphore(1)

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def path(self) -> Path | None:
        """File of the open database, or of the last one opened."""
        return self._path

    @property
    def connection(self) -> aiosqlite.Connection:
        """
        The raw connection, for schema setup and ad-hoc statements.

        Raises:
            RuntimeError: The connection has not been opened (or was closed).
        """
        if self._conn is None:
            raise RuntimeError("Rule database is not open; call await db_connection.open(path) first.")
        return self._conn

    async def open(self, path: Path) -> None:
        """Connect to ``path`` (creating parent directories) and apply PRAGMAS. No-op if already open."""
        if self._conn is not None:
            logger.warning("[DB CONNECTION] Already open on %s; ignoring open(%s)", self._path, path)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(path)
        conn.row_factory = aiosqlite.Row
        await self._apply_pragmas(conn)

        self._conn = conn
        self._path = path
        logger.info("[DB CONNECTION] Opened %s", path)

    @staticmethod
    async def _apply_pragmas(conn: aiosqlite.Connection) -> None:
        for pragma in PRAGMAS:
            await conn.execute(pragma)
        await conn.commit()

    async def checkpoint(self) -> None:
        """Fold the WAL back into the main database file."""
        await self.connection.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        await self.connection.commit()

    async def close(self) -> None:
        """Checkpoint and close. Safe to call when not open."""
        if self._conn is None:
            return

        conn = self._conn
        try:
            await self.checkpoint()
        except aiosqlite.Error:
            logger.exception("[DB CONNECTION] WAL checkpoint failed during close")
        finally:
            self._conn = None
            await conn.close()
            logger.info("[DB CONNECTION] Closed %s", self._path)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Serialised write block; commit on success, rollback if the body raises.

        Raises:
            RuntimeError: The connection is not open.
        """
        conn = self.connection
        async with self._access_sem:
            try:
                yield conn
            except Exception:
                await conn.rollback()
                raise
            await conn.commit()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        """Read block, serialised with open transactions.

        Raises:
            RuntimeError: The connection is not open.
        """
        conn = self.connection
        async with self._access_sem:
            yield conn


db_connection = ConnectionManager()
