"""Persistence for knowledge items."""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from aloa_knowledge.db.backend import Database
from aloa_knowledge.db.queries import insert_items, new_id, row_to_item
from aloa_knowledge.models.knowledge import KnowledgeCategory, KnowledgeFragment, KnowledgeItem

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {"source_name", "content", "content_summary", "category", "tags", "importance_score"}
)


async def _supersede(
    db: Database, project_id: str, source_type: str, source_ids: list[str] | None
) -> int:
    sql = (
        "UPDATE knowledge_items SET is_current = 0"
        " WHERE project_id = ? AND source_type = ? AND is_current = 1"
    )
    params: list[Any] = [project_id, source_type]
    if source_ids is not None:
        if not source_ids:
            return 0
        sql += " AND source_id IN (" + ",".join("?" for _ in source_ids) + ")"
        params.extend(source_ids)
    cursor = await db.execute(sql, params)
    return max(cursor.rowcount, 0)


class KnowledgeStore:
    """Knowledge item storage with supersede-on-re-extraction semantics."""

    def __init__(self, db: Database):
        """Initialize with a database connection."""
        self.db = db

    async def replace_source(
        self,
        project_id: str,
        source_type: str,
        fragments: list[KnowledgeFragment],
        source_ids: list[str] | None = None,
        extracted_by: str = "system",
    ) -> list[KnowledgeItem]:
        """Supersede a source's current items and store fresh ones.

        ``source_ids=None`` supersedes every current item of ``source_type``
        in the project (used for project metadata, whose fragments carry
        derived ids). Otherwise only items with the listed source ids are
        superseded. Superseded rows are kept with ``is_current = 0``. Both
        steps commit together, so a failed insert leaves the old items current.
        """
        now = datetime.now(UTC)
        items = [
            KnowledgeItem(
                id=new_id(),
                project_id=project_id,
                source_type=source_type,
                extracted_by=extracted_by,
                processed_at=now,
                created_at=now,
                **fragment.model_dump(),
            )
            for fragment in fragments
        ]
        async with self.db.transaction() as tx:
            superseded = await _supersede(tx, project_id, source_type, source_ids)
            await insert_items(tx, items)
        logger.info(
            "Stored %d %s item(s) for project %s (superseded %d)",
            len(items),
            source_type,
            project_id,
            superseded,
        )
        return items

    async def supersede(
        self, project_id: str, source_type: str, source_ids: list[str] | None = None
    ) -> int:
        """Mark current items of a source as no longer current. Returns rows affected."""
        async with self.db.transaction() as tx:
            return await _supersede(tx, project_id, source_type, source_ids)

    async def create_item(
        self,
        project_id: str,
        source_type: str,
        content: str,
        source_id: str | None = None,
        source_name: str | None = None,
        source_url: str | None = None,
        content_type: str = "text",
        content_summary: str | None = None,
        category: KnowledgeCategory | str | None = None,
        tags: list[str] | None = None,
        importance_score: int | None = None,
    ) -> KnowledgeItem:
        """Create a manually entered knowledge item."""
        now = datetime.now(UTC)
        item = KnowledgeItem(
            id=new_id(),
            project_id=project_id,
            source_type=source_type,
            source_id=source_id,
            source_name=source_name or source_type,
            source_url=source_url,
            content_type=content_type,
            content=content,
            content_summary=content_summary or content,
            category=category or KnowledgeCategory.GENERAL,
            tags=tags or [],
            importance_score=5 if importance_score is None else importance_score,
            extracted_by="manual",
            extraction_confidence=1.0,
            processed_at=now,
            created_at=now,
        )
        await insert_items(self.db, [item])
        await self.db.commit()
        logger.info("Created manual item %s for project %s", item.id, project_id)
        return item

    async def get_item(self, item_id: str) -> KnowledgeItem | None:
        """Get a single item by ID."""
        cursor = await self.db.execute("SELECT * FROM knowledge_items WHERE id = ?", (item_id,))
        row = await cursor.fetchone()
        return row_to_item(row) if row else None

    async def update_item(
        self, project_id: str, item_id: str, updates: dict[str, Any]
    ) -> KnowledgeItem:
        """Apply an edit to a project's item.

        Only EDITABLE_FIELDS may change; anything else raises ValueError,
        as does an unknown item.
        """
        existing = await self.get_item(item_id)
        if existing is None or existing.project_id != project_id:
            raise ValueError(f"Knowledge item {item_id} not found")
        unknown = set(updates) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        if not updates:
            return existing

        # Round-trip through the model so validation (category, score, summary cap) applies
        updated = KnowledgeItem.model_validate({**existing.model_dump(), **updates})
        await self.db.execute(
            """UPDATE knowledge_items SET source_name = ?, content = ?, content_summary = ?,
            category = ?, tags = ?, importance_score = ? WHERE id = ?""",
            (
                updated.source_name,
                updated.content,
                updated.content_summary,
                updated.category.value,
                json.dumps(updated.tags),
                updated.importance_score,
                item_id,
            ),
        )
        await self.db.commit()
        logger.info("Updated item %s (%s)", item_id, ", ".join(sorted(updates)))
        return updated

    async def deactivate_item(self, project_id: str, item_id: str) -> KnowledgeItem:
        """Soft-delete an item by marking it not current."""
        existing = await self.get_item(item_id)
        if existing is None or existing.project_id != project_id:
            raise ValueError(f"Knowledge item {item_id} not found")
        if not existing.is_current:
            raise ValueError(f"Knowledge item {item_id} is already inactive")
        await self.db.execute(
            "UPDATE knowledge_items SET is_current = 0 WHERE id = ?", (item_id,)
        )
        await self.db.commit()
        logger.info("Deactivated item %s", item_id)
        return existing.model_copy(update={"is_current": False})

    async def list_current(
        self,
        project_id: str,
        categories: list[str] | None = None,
        search: str | None = None,
        limit: int = 50,
    ) -> list[KnowledgeItem]:
        """Current items for a project, most important and newest first."""
        sql = "SELECT * FROM knowledge_items WHERE project_id = ? AND is_current = 1"
        params: list[Any] = [project_id]
        if categories:
            sql += " AND category IN (" + ",".join("?" for _ in categories) + ")"
            params.extend(categories)
        if search:
            pattern = f"%{search.lower()}%"
            sql += (
                " AND (LOWER(content) LIKE ? OR LOWER(content_summary) LIKE ?"
                " OR LOWER(source_name) LIKE ?)"
            )
            params.extend([pattern, pattern, pattern])
        sql += " ORDER BY importance_score DESC, created_at DESC LIMIT ?"
        params.append(limit)
        cursor = await self.db.execute(sql, params)
        return [row_to_item(row) for row in await cursor.fetchall()]

    async def current_for_source(
        self, project_id: str, source_type: str, source_id: str
    ) -> list[KnowledgeItem]:
        """Current items produced from one source."""
        cursor = await self.db.execute(
            "SELECT * FROM knowledge_items"
            " WHERE project_id = ? AND source_type = ? AND source_id = ? AND is_current = 1",
            (project_id, source_type, source_id),
        )
        return [row_to_item(row) for row in await cursor.fetchall()]
