"""Database access for knowledge items, the extraction queue and the context cache."""

from aloa_knowledge.db.backend import Cursor, Database, Row
from aloa_knowledge.db.postgres_backend import PostgresBackend
from aloa_knowledge.db.sqlite_backend import SQLiteBackend

__all__ = ["Cursor", "Database", "PostgresBackend", "Row", "SQLiteBackend"]
