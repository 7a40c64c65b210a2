"""Builds the AI context document for a project from its current knowledge."""

import logging
from datetime import UTC, datetime
from typing import Any

from aloa_knowledge.config import get_context_ttl
from aloa_knowledge.db.backend import Database
from aloa_knowledge.errors import SourceNotFoundError
from aloa_knowledge.models.context import ContextType, ProjectContext
from aloa_knowledge.models.knowledge import KnowledgeCategory, KnowledgeItem
from aloa_knowledge.store.context_cache import ContextCache
from aloa_knowledge.store.knowledge_store import KnowledgeStore
from aloa_knowledge.store.source_store import SourceStore

logger = logging.getLogger(__name__)

CONTEXT_ITEM_LIMIT = 50
RECENT_ACTIVITY_LIMIT = 10

CONTEXT_CATEGORIES: dict[str, tuple[KnowledgeCategory, ...]] = {
    ContextType.DESIGN_BRIEF: (
        KnowledgeCategory.BRAND_IDENTITY,
        KnowledgeCategory.DESIGN_PREFERENCES,
        KnowledgeCategory.INSPIRATION,
    ),
    ContextType.CONTENT_BRIEF: (
        KnowledgeCategory.CONTENT_STRATEGY,
        KnowledgeCategory.BRAND_IDENTITY,
        KnowledgeCategory.TARGET_AUDIENCE,
    ),
    ContextType.TECHNICAL_BRIEF: (
        KnowledgeCategory.FUNCTIONALITY,
        KnowledgeCategory.TECHNICAL_SPECS,
    ),
    ContextType.BRAND_GUIDE: (
        KnowledgeCategory.BRAND_IDENTITY,
        KnowledgeCategory.CONTENT_STRATEGY,
        KnowledgeCategory.DESIGN_PREFERENCES,
    ),
}


def categories_for(context_type: str, requested: list[str] | None = None) -> list[str] | None:
    """Category filter for a context type; explicit categories apply only to other types."""
    preset = CONTEXT_CATEGORIES.get(context_type)
    if preset is not None:
        return [c.value for c in preset]
    return list(requested) if requested else None


def group_by_category(items: list[KnowledgeItem]) -> dict[str, list[dict[str, Any]]]:
    """Group items under their category, keeping the incoming order."""
    grouped: dict[str, list[dict[str, Any]]] = {}
    for item in items:
        grouped.setdefault(item.category.value, []).append(
            {
                "source": item.source_name,
                "type": item.source_type,
                "content": item.content,
                "summary": item.content_summary,
                "importance": item.importance_score,
                "tags": item.tags,
                "extracted_at": item.processed_at.isoformat() if item.processed_at else None,
            }
        )
    return grouped


def knowledge_statistics(
    items: list[KnowledgeItem], grouped: dict[str, list[dict[str, Any]]]
) -> dict[str, Any]:
    """Counts and averages describing the knowledge that went into a context."""
    total = len(items)
    return {
        "total_knowledge_items": total,
        "knowledge_sources": sorted({item.source_type for item in items}),
        "categories_covered": list(grouped),
        "average_importance": (
            sum(item.importance_score for item in items) / total if total else 0.0
        ),
    }


class ContextBuilder:
    """Serves project context documents, regenerating them when the cache is cold."""

    def __init__(self, db: Database, ttl_seconds: int | None = None):
        """Initialize with a database connection and the cache lifetime."""
        self.sources = SourceStore(db)
        self.knowledge = KnowledgeStore(db)
        self.cache = ContextCache(db)
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else get_context_ttl()

    async def build_context(
        self,
        project_id: str,
        context_type: str = ContextType.FULL_PROJECT,
        categories: list[str] | None = None,
        refresh: bool = False,
    ) -> ProjectContext:
        """Return the project's context of ``context_type``.

        An unexpired cache entry is returned as-is unless ``refresh`` is set.
        Contexts narrowed by caller-supplied categories are neither read from
        nor written to the cache, which holds one document per context type.
        Raises SourceNotFoundError when the project does not exist.
        """
        context_type = str(context_type)
        category_filter = categories_for(context_type, categories)
        cacheable = context_type in CONTEXT_CATEGORIES or category_filter is None
        if cacheable and not refresh:
            cached = await self.cache.get(project_id, context_type)
            if cached is not None:
                data, created_at = cached
                logger.debug("Context cache hit for %s/%s", project_id, context_type)
                return ProjectContext(context=data, cached=True, cached_at=created_at)

        project = await self.sources.get_project(project_id)
        if project is None:
            raise SourceNotFoundError("project", project_id)

        items = await self.knowledge.list_current(
            project_id, category_filter, limit=CONTEXT_ITEM_LIMIT
        )
        responses = await self.sources.recent_form_responses(project_id, RECENT_ACTIVITY_LIMIT)
        interactions = await self.sources.recent_interactions(project_id, RECENT_ACTIVITY_LIMIT)
        grouped = group_by_category(items)
        now = datetime.now(UTC)

        data = {
            "project": {
                "id": project["id"],
                "name": project.get("project_name") or project.get("name"),
                "description": project.get("description"),
                "status": project.get("status"),
                "metadata": project.get("metadata") or {},
            },
            "knowledge": grouped,
            "recent_activity": {
                "form_responses": [
                    {
                        "form": r.get("form_title"),
                        "submitted_at": r.get("created_at"),
                        "data_preview": list(r.get("response_data") or {})[:5],
                    }
                    for r in responses
                ],
                "interactions": [
                    {
                        "applet": i.get("applet_name"),
                        "type": i.get("applet_type"),
                        "interaction_type": i.get("interaction_type"),
                        "at": i.get("created_at"),
                    }
                    for i in interactions
                ],
            },
            "statistics": knowledge_statistics(items, grouped),
            "context_metadata": {
                "type": context_type,
                "generated_at": now.isoformat(),
                "knowledge_cutoff": (
                    items[-1].created_at.isoformat() if items and items[-1].created_at else None
                ),
                "categories_requested": categories or None,
            },
        }

        if cacheable:
            try:
                await self.cache.put(project_id, context_type, data, self.ttl_seconds, now=now)
            except Exception:
                logger.warning(
                    "Failed to cache %s context for %s", context_type, project_id, exc_info=True
                )
        logger.info(
            "Built %s context for project %s from %d item(s)", context_type, project_id, len(items)
        )
        return ProjectContext(context=data, cached=False)

    async def clear(self, project_id: str) -> int:
        """Delete every cached context for a project."""
        return await self.cache.invalidate(project_id)
