"""AI-context cache rows, keyed by project and context type."""

import json
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from aloa_knowledge.db.backend import Database

logger = logging.getLogger(__name__)


class ContextCache:
    """Read-through cache of generated project context documents."""

    def __init__(self, db: Database):
        """Initialize with a database connection."""
        self.db = db

    async def get(
        self, project_id: str, context_type: str, now: datetime | None = None
    ) -> tuple[dict[str, Any], datetime] | None:
        """Return (context_data, created_at) if an unexpired entry exists."""
        now = now or datetime.now(UTC)
        cursor = await self.db.execute(
            "SELECT context_data, created_at FROM ai_context_cache"
            " WHERE project_id = ? AND context_type = ? AND expires_at > ?",
            (project_id, context_type, now.isoformat()),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return json.loads(row["context_data"]), datetime.fromisoformat(row["created_at"])

    async def put(
        self,
        project_id: str,
        context_type: str,
        context_data: dict[str, Any],
        ttl_seconds: int,
        now: datetime | None = None,
    ) -> None:
        """Insert or replace the cached context for a project and type."""
        now = now or datetime.now(UTC)
        payload = json.dumps(context_data)
        await self.db.execute(
            """INSERT INTO ai_context_cache
            (project_id, context_type, context_data, token_count, created_at, expires_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT (project_id, context_type) DO UPDATE SET
                context_data = excluded.context_data,
                token_count = excluded.token_count,
                created_at = excluded.created_at,
                expires_at = excluded.expires_at""",
            (
                project_id,
                context_type,
                payload,
                len(payload) // 4,
                now.isoformat(),
                (now + timedelta(seconds=ttl_seconds)).isoformat(),
            ),
        )
        await self.db.commit()

    async def invalidate(self, project_id: str) -> int:
        """Delete every cached context for a project. Returns rows deleted."""
        cursor = await self.db.execute(
            "DELETE FROM ai_context_cache WHERE project_id = ?", (project_id,)
        )
        await self.db.commit()
        deleted = max(cursor.rowcount, 0)
        logger.debug("Invalidated %d cached context(s) for project %s", deleted, project_id)
        return deleted
