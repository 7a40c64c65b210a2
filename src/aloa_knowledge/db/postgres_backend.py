"""PostgreSQL implementation of the Database protocol.

Talks to the hosted project database through an asyncpg pool. Statements
arrive with SQLite ``?`` placeholders and are renumbered to ``$1..$N``.
asyncpg Records already read by name or position and expose ``keys()``,
so they serve as rows directly.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import asyncpg

    from aloa_knowledge.db.backend import Cursor, Row

logger = logging.getLogger(__name__)

POOL_MIN_SIZE = 1
POOL_MAX_SIZE = 10


def _translate_placeholders(sql: str) -> str:
    """Number ``?`` placeholders as ``$1, $2, ...``, leaving quoted text alone."""
    out: list[str] = []
    quote: str | None = None
    n = 0
    for ch in sql:
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "?":
            n += 1
            out.append(f"${n}")
            continue
        out.append(ch)
    return "".join(out)


def _status_rowcount(status: str | None) -> int:
    """Rows affected according to a command tag: ``UPDATE 3`` -> 3, ``INSERT 0 1`` -> 1."""
    if not status:
        return -1
    last = status.rsplit(" ", 1)[-1]
    return int(last) if last.isdigit() and " " in status else -1


class PostgresCursor:
    """Cursor over records that asyncpg has already fetched."""

    def __init__(self, records: Sequence[Any], status: str | None = None) -> None:
        """Initialize with fetched records and the statement's command tag."""
        self._records = list(records)
        self._pos = 0
        self.rowcount = _status_rowcount(status)

    async def fetchone(self) -> Row | None:
        """Next record, or None when exhausted."""
        if self._pos == len(self._records):
            return None
        self._pos += 1
        return self._records[self._pos - 1]

    async def fetchall(self) -> list[Row]:
        """All records not yet returned."""
        rest = self._records[self._pos :]
        self._pos = len(self._records)
        return rest


async def _execute(conn: Any, sql: str, params: Sequence[Any]) -> PostgresCursor:
    stmt = await conn.prepare(_translate_placeholders(sql))
    records = await stmt.fetch(*params)
    return PostgresCursor(records, stmt.get_statusmsg())


class PostgresTransaction:
    """Statements pinned to one connection inside an open asyncpg transaction."""

    def __init__(self, conn: Any) -> None:
        """Wrap a connection that already has a transaction started."""
        self._conn = conn

    async def execute(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Cursor:
        """Run one statement on the pinned connection."""
        return await _execute(self._conn, sql, params)

    async def executemany(self, sql: str, params_seq: list[tuple[Any, ...] | list[Any]]) -> None:
        """Run one statement per parameter set on the pinned connection."""
        await self._conn.executemany(_translate_placeholders(sql), params_seq)

    async def executescript(self, sql: str) -> None:
        """Run a DDL script on the pinned connection."""
        await self._conn.execute(sql)

    async def commit(self) -> None:
        """The enclosing block commits."""

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PostgresTransaction]:
        """Nest as a savepoint."""
        async with self._conn.transaction():
            yield self


class PostgresBackend:
    """Pool-backed Database; every statement runs on its own pooled connection.

    asyncpg autocommits outside explicit transactions, so ``commit()`` has
    nothing to do.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        """Initialize with an asyncpg connection pool."""
        self._pool = pool

    @classmethod
    async def create(
        cls, url: str, *, min_size: int = POOL_MIN_SIZE, max_size: int = POOL_MAX_SIZE
    ) -> PostgresBackend:
        """Open a pool against ``url``."""
        import asyncpg as _asyncpg

        pool = await _asyncpg.create_pool(url, min_size=min_size, max_size=max_size)
        return cls(pool)

    async def execute(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Cursor:
        """Prepare and run one statement, keeping its rows and command tag."""
        async with self._pool.acquire() as conn:
            return await _execute(conn, sql, params)

    async def executemany(self, sql: str, params_seq: list[tuple[Any, ...] | list[Any]]) -> None:
        """Run one statement per parameter set."""
        async with self._pool.acquire() as conn:
            await conn.executemany(_translate_placeholders(sql), params_seq)

    async def executescript(self, sql: str) -> None:
        """Run a DDL script; asyncpg accepts several statements when there are no arguments."""
        async with self._pool.acquire() as conn:
            await conn.execute(sql)

    async def commit(self) -> None:
        """Nothing to commit under autocommit."""

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PostgresTransaction]:
        """Run the block on one pooled connection inside an asyncpg transaction."""
        async with self._pool.acquire() as conn, conn.transaction():
            yield PostgresTransaction(conn)

    async def close(self) -> None:
        """Close the pool."""
        await self._pool.close()

    async def apply_schema(self) -> None:
        """Apply the shared DDL."""
        from aloa_knowledge.db.schema import apply_schema

        await apply_schema(self)
        logger.debug("PostgreSQL schema applied")
