"""Row conversion and write helpers for knowledge items and queue entries."""

import json
import uuid
from datetime import UTC, datetime

from aloa_knowledge.db.backend import Database, Row
from aloa_knowledge.models.knowledge import KnowledgeCategory, KnowledgeItem
from aloa_knowledge.models.queue import ExtractionQueueEntry, QueueStatus


def new_id() -> str:
    """Generate a row id."""
    return uuid.uuid4().hex


def row_to_item(row: Row) -> KnowledgeItem:
    """Convert a knowledge_items row to a KnowledgeItem."""
    return KnowledgeItem(
        id=row["id"],
        project_id=row["project_id"],
        source_type=row["source_type"],
        source_id=row["source_id"],
        source_name=row["source_name"] or "",
        source_url=row["source_url"],
        content_type=row["content_type"],
        content=row["content"],
        content_summary=row["content_summary"],
        category=KnowledgeCategory(row["category"] or KnowledgeCategory.GENERAL),
        tags=_parse_tags(row["tags"]),
        importance_score=row["importance_score"],
        extracted_by=row["extracted_by"],
        extraction_confidence=row["extraction_confidence"],
        processed_at=_parse_time(row["processed_at"]),
        created_at=_parse_time(row["created_at"]),
        is_current=bool(row["is_current"]),
    )


async def insert_items(db: Database, items: list[KnowledgeItem]) -> None:
    """Insert knowledge items; the caller commits."""
    if not items:
        return
    await db.executemany(
        """INSERT INTO knowledge_items
        (id, project_id, source_type, source_id, source_name, source_url, content_type,
         content, content_summary, category, tags, importance_score, extracted_by,
         extraction_confidence, processed_at, created_at, is_current)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        [
            (
                item.id,
                item.project_id,
                item.source_type,
                item.source_id,
                item.source_name,
                item.source_url,
                item.content_type,
                item.content,
                item.content_summary,
                item.category.value,
                json.dumps(item.tags),
                item.importance_score,
                item.extracted_by,
                item.extraction_confidence,
                _iso(item.processed_at),
                _iso(item.created_at),
                int(item.is_current),
            )
            for item in items
        ],
    )


def row_to_queue_entry(row: Row) -> ExtractionQueueEntry:
    """Convert an extraction_queue row to an ExtractionQueueEntry."""
    return ExtractionQueueEntry(
        id=row["id"],
        project_id=row["project_id"],
        source_type=row["source_type"],
        source_id=row["source_id"],
        source_url=row["source_url"],
        priority=row["priority"],
        status=QueueStatus(row["status"]),
        attempts=row["attempts"],
        error_message=row["error_message"],
        created_at=_parse_time(row["created_at"]),
        processed_at=_parse_time(row["processed_at"]),
    )


def now_iso() -> str:
    """Current UTC time as ISO-8601 text."""
    return datetime.now(UTC).isoformat()


def _iso(value: datetime | None) -> str:
    return value.isoformat() if value else now_iso()


def _parse_time(raw: str | datetime | None) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(raw)


def _parse_tags(raw: str | None) -> list[str]:
    """Parse tags from their JSON text form."""
    if not raw:
        return []
    try:
        tags = json.loads(raw)
    except ValueError:
        return raw.split()
    return [str(t) for t in tags] if isinstance(tags, list) else []
