"""SQLite implementation of the Database protocol.

Used for local runs and tests. Application SQL is written for SQLite, so
statements pass straight through to aiosqlite, and its cursors already
satisfy the Cursor protocol.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiosqlite

if TYPE_CHECKING:
    from aloa_knowledge.db.backend import Cursor

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


class SQLiteBackend:
    """Single aiosqlite connection with ``Row`` results and foreign keys on."""

    def __init__(self, conn: aiosqlite.Connection, path: str = MEMORY) -> None:
        """Wrap an open connection; ``path`` is kept for log messages."""
        self._conn = conn
        self.path = path

    @classmethod
    async def open(cls, path: Path | str) -> SQLiteBackend:
        """Open (creating parent directories for) a database file, or ``:memory:``."""
        path = str(path)
        if path != MEMORY:
            Path(path).parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(path)
        conn.row_factory = aiosqlite.Row
        if path != MEMORY:
            # WAL lets the HTTP routes read while a drain is writing
            await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA foreign_keys=ON")
        return cls(conn, path)

    async def execute(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Cursor:
        """Run one statement; the aiosqlite cursor is returned as-is."""
        return await self._conn.execute(sql, params)

    async def executemany(self, sql: str, params_seq: list[tuple[Any, ...] | list[Any]]) -> None:
        """Run one statement per parameter set."""
        await self._conn.executemany(sql, params_seq)

    async def executescript(self, sql: str) -> None:
        """Run a DDL script."""
        await self._conn.executescript(sql)

    async def commit(self) -> None:
        """Commit pending writes."""
        await self._conn.commit()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SQLiteBackend]:
        """Commit the block's writes on success, roll them back on error."""
        try:
            yield self
        except BaseException:
            await self._conn.rollback()
            raise
        await self._conn.commit()

    async def close(self) -> None:
        """Close the connection."""
        await self._conn.close()

    async def apply_schema(self) -> None:
        """Create source, knowledge, queue and cache tables."""
        from aloa_knowledge.db.schema import apply_schema

        await apply_schema(self)
        logger.debug("SQLite schema applied to %s", self.path)
