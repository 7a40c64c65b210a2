"""Database connection management."""

import logging
from pathlib import Path

from aloa_knowledge.config import get_database_url, get_db_path
from aloa_knowledge.db.backend import Database
from aloa_knowledge.db.postgres_backend import PostgresBackend
from aloa_knowledge.db.sqlite_backend import MEMORY, SQLiteBackend

logger = logging.getLogger(__name__)

_POSTGRES_SCHEMES = ("postgresql://", "postgres://")


async def create_connection(db_path: Path | str | None = None) -> Database:
    """Open the project database and make sure its tables exist.

    ALOA_DATABASE_URL selects Postgres; otherwise SQLite at ``db_path``
    (default ALOA_DB_PATH). ``":memory:"`` always means in-memory SQLite,
    whatever the environment says.
    """
    url = get_database_url()
    if db_path != MEMORY and url and url.startswith(_POSTGRES_SCHEMES):
        db: Database = await PostgresBackend.create(url)
        where = "ALOA_DATABASE_URL"
    else:
        db = await SQLiteBackend.open(db_path or get_db_path())
        where = str(db_path or get_db_path())

    await db.apply_schema()
    logger.info("Database ready (%s)", where)
    return db
