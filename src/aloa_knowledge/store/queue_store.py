"""Extraction queue persistence.

A plain durable table: no locking and no worker loop. Entries are drained
synchronously by whichever request asks for it.
"""

import logging
from datetime import datetime

from aloa_knowledge.db.backend import Database
from aloa_knowledge.db.queries import new_id, now_iso, row_to_queue_entry
from aloa_knowledge.models.queue import ExtractionQueueEntry, QueueStats, QueueStatus

logger = logging.getLogger(__name__)

WEBSITE_PRIORITY = 9


class QueueStore:
    """Enqueue, order and transition extraction work items."""

    def __init__(self, db: Database):
        """Initialize with a database connection."""
        self.db = db

    async def enqueue(
        self,
        project_id: str,
        source_type: str,
        source_id: str,
        priority: int = 5,
        source_url: str | None = None,
        created_at: datetime | None = None,
    ) -> ExtractionQueueEntry:
        """Add a work item; an existing entry for the same source is returned unchanged."""
        await self.db.execute(
            """INSERT INTO extraction_queue
            (id, project_id, source_type, source_id, source_url, priority, status,
             attempts, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?)
            ON CONFLICT (project_id, source_type, source_id) DO NOTHING""",
            (
                new_id(),
                project_id,
                source_type,
                source_id,
                source_url,
                priority,
                QueueStatus.PENDING.value,
                created_at.isoformat() if created_at else now_iso(),
            ),
        )
        await self.db.commit()
        entry = await self.get_by_source(project_id, source_type, source_id)
        if entry is None:
            raise RuntimeError(f"Queue entry for {source_type} {source_id} vanished after insert")
        logger.info(
            "Queued %s %s for project %s (priority %d, status %s)",
            source_type,
            source_id,
            project_id,
            entry.priority,
            entry.status,
        )
        return entry

    async def get(self, entry_id: str) -> ExtractionQueueEntry | None:
        """Get an entry by ID."""
        cursor = await self.db.execute("SELECT * FROM extraction_queue WHERE id = ?", (entry_id,))
        row = await cursor.fetchone()
        return row_to_queue_entry(row) if row else None

    async def get_by_source(
        self, project_id: str, source_type: str, source_id: str
    ) -> ExtractionQueueEntry | None:
        """Get the entry for a source, if queued."""
        cursor = await self.db.execute(
            "SELECT * FROM extraction_queue"
            " WHERE project_id = ? AND source_type = ? AND source_id = ?",
            (project_id, source_type, source_id),
        )
        row = await cursor.fetchone()
        return row_to_queue_entry(row) if row else None

    async def list_for_project(self, project_id: str) -> list[ExtractionQueueEntry]:
        """All entries for a project in drain order."""
        cursor = await self.db.execute(
            "SELECT * FROM extraction_queue WHERE project_id = ?"
            " ORDER BY priority DESC, created_at ASC",
            (project_id,),
        )
        return [row_to_queue_entry(row) for row in await cursor.fetchall()]

    async def pending(
        self, project_id: str, limit: int = 10, max_attempts: int = 3
    ) -> list[ExtractionQueueEntry]:
        """Pending entries under the attempt cap, highest priority then oldest first."""
        cursor = await self.db.execute(
            "SELECT * FROM extraction_queue"
            " WHERE project_id = ? AND status = ? AND attempts < ?"
            " ORDER BY priority DESC, created_at ASC LIMIT ?",
            (project_id, QueueStatus.PENDING.value, max_attempts, limit),
        )
        return [row_to_queue_entry(row) for row in await cursor.fetchall()]

    async def mark_processing(self, entry_id: str) -> None:
        """Move an entry to processing."""
        await self.db.execute(
            "UPDATE extraction_queue SET status = ? WHERE id = ?",
            (QueueStatus.PROCESSING.value, entry_id),
        )
        await self.db.commit()

    async def mark_completed(self, entry_id: str) -> None:
        """Move an entry to completed and stamp it."""
        await self.db.execute(
            "UPDATE extraction_queue SET status = ?, error_message = NULL, processed_at = ?"
            " WHERE id = ?",
            (QueueStatus.COMPLETED.value, now_iso(), entry_id),
        )
        await self.db.commit()

    async def mark_failed(self, entry_id: str, error: str) -> None:
        """Move an entry to failed, recording the error and counting the attempt."""
        await self.db.execute(
            "UPDATE extraction_queue SET status = ?, error_message = ?,"
            " attempts = attempts + 1, processed_at = ? WHERE id = ?",
            (QueueStatus.FAILED.value, error, now_iso(), entry_id),
        )
        await self.db.commit()

    async def complete_source(self, project_id: str, source_type: str, source_id: str) -> int:
        """Mark any queue entry for a source completed. Returns rows affected."""
        cursor = await self.db.execute(
            "UPDATE extraction_queue SET status = ?, error_message = NULL, processed_at = ?"
            " WHERE project_id = ? AND source_type = ? AND source_id = ?",
            (QueueStatus.COMPLETED.value, now_iso(), project_id, source_type, source_id),
        )
        await self.db.commit()
        return max(cursor.rowcount, 0)

    async def fail_source(
        self, project_id: str, source_type: str, source_id: str, error: str
    ) -> int:
        """Mark any queue entry for a source failed. Returns rows affected."""
        cursor = await self.db.execute(
            "UPDATE extraction_queue SET status = ?, error_message = ?,"
            " attempts = attempts + 1, processed_at = ?"
            " WHERE project_id = ? AND source_type = ? AND source_id = ?",
            (QueueStatus.FAILED.value, error, now_iso(), project_id, source_type, source_id),
        )
        await self.db.commit()
        return max(cursor.rowcount, 0)

    async def requeue_failed(self, project_id: str, max_attempts: int = 3) -> int:
        """Return failed entries under the attempt cap to pending. Returns rows affected."""
        cursor = await self.db.execute(
            "UPDATE extraction_queue SET status = ?"
            " WHERE project_id = ? AND status = ? AND attempts < ?",
            (QueueStatus.PENDING.value, project_id, QueueStatus.FAILED.value, max_attempts),
        )
        await self.db.commit()
        requeued = max(cursor.rowcount, 0)
        if requeued:
            logger.info("Requeued %d failed entries for project %s", requeued, project_id)
        return requeued

    async def stats(self, project_id: str) -> QueueStats:
        """Entry counts per status for a project."""
        cursor = await self.db.execute(
            "SELECT status, COUNT(*) AS cnt FROM extraction_queue"
            " WHERE project_id = ? GROUP BY status",
            (project_id,),
        )
        counts = {row["status"]: row["cnt"] for row in await cursor.fetchall()}
        return QueueStats(**{s.value: int(counts.get(s.value, 0)) for s in QueueStatus})
