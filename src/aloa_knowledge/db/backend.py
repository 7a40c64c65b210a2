"""Database backend protocol for the knowledge tables.

Stores, the extractor and the context builder program against these
protocols only. The SQLite backend runs locally and in tests; the Postgres
backend talks to the hosted project database.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Row(Protocol):
    """A result row readable by column name or position."""

    def __getitem__(self, key: str | int) -> Any:
        """Get a column value by name or position."""
        ...

    def keys(self) -> Any:
        """Return column names."""
        ...


@runtime_checkable
class Cursor(Protocol):
    """Result of Database.execute()."""

    @property
    def rowcount(self) -> int:
        """Rows affected by the statement, or -1 when unknown."""
        ...

    async def fetchone(self) -> Row | None:
        """Fetch the next row, or None if exhausted."""
        ...

    async def fetchall(self) -> list[Row]:
        """Fetch all remaining rows."""
        ...


@runtime_checkable
class Database(Protocol):
    """Async access to the project database.

    Application SQL uses ``?`` placeholders and sticks to syntax both
    SQLite and Postgres accept (``ON CONFLICT ... DO NOTHING/UPDATE``,
    ``LOWER(x) LIKE ?``). Non-SQLite backends translate placeholders at
    execute time.
    """

    async def execute(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Cursor:
        """Execute one statement and return a cursor."""
        ...

    async def executemany(self, sql: str, params_seq: list[tuple[Any, ...] | list[Any]]) -> None:
        """Execute one statement for each parameter set."""
        ...

    async def executescript(self, sql: str) -> None:
        """Execute a multi-statement script (DDL)."""
        ...

    async def commit(self) -> None:
        """Commit the current transaction."""
        ...

    def transaction(self) -> AbstractAsyncContextManager[Database]:
        """Group statements so they commit together or not at all.

        The yielded handle runs the grouped statements; leaving the block
        normally commits, an exception rolls everything back.
        """
        ...

    async def close(self) -> None:
        """Close the connection."""
        ...

    async def apply_schema(self) -> None:
        """Create any missing tables."""
        ...
