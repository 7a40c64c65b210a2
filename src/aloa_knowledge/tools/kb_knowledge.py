"""kb_knowledge MCP tool: list, add, edit and retire knowledge items."""

import logging
from typing import Annotated

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field

from aloa_knowledge.extract.extractor import KnowledgeExtractor
from aloa_knowledge.tools.formatters import format_item_full, format_item_list

logger = logging.getLogger(__name__)

_ACTIONS = {"list", "get", "create", "update", "deactivate"}


def register_kb_knowledge(mcp: FastMCP) -> None:
    """Register the kb_knowledge tool with the MCP server."""

    @mcp.tool()
    async def kb_knowledge(
        project_id: Annotated[str, Field(description="Project to operate on")],
        action: Annotated[
            str,
            Field(description="One of: list, get, create, update, deactivate"),
        ] = "list",
        item_id: Annotated[
            str | None,
            Field(description="Required for get, update and deactivate"),
        ] = None,
        categories: Annotated[
            list[str] | None,
            Field(description="For list: only these categories"),
        ] = None,
        search: Annotated[
            str | None,
            Field(description="For list: case-insensitive text match on content and names"),
        ] = None,
        limit: Annotated[int, Field(description="For list: max items", ge=1, le=200)] = 50,
        source_type: Annotated[
            str | None, Field(description="For create: where the knowledge came from")
        ] = None,
        content: Annotated[str | None, Field(description="For create/update: item text")] = None,
        content_summary: Annotated[str | None, Field(description="Short summary")] = None,
        category: Annotated[str | None, Field(description="Knowledge category")] = None,
        tags: Annotated[list[str] | None, Field(description="Tags")] = None,
        importance_score: Annotated[
            int | None, Field(description="Importance 1-10", ge=1, le=10)
        ] = None,
        ctx: Context | None = None,
    ) -> str:
        """Browse and curate a project's current knowledge items.

        Actions:
        - list: current items, most important first (filters: categories, search, limit)
        - get: one item in full (requires item_id)
        - create: add a manual item (requires source_type and content)
        - update: edit content, summary, category, tags or importance (requires item_id)
        - deactivate: retire an item so it no longer appears (requires item_id)

        Every write clears the project's cached AI context.
        """
        if ctx is None:
            raise RuntimeError("Context not injected")

        if action not in _ACTIONS:
            return f"Unknown action '{action}'. Use: {', '.join(sorted(_ACTIONS))}"

        extractor: KnowledgeExtractor = ctx.lifespan_context["extractor"]
        store = extractor.knowledge

        if action == "list":
            items = await store.list_current(project_id, categories, search, limit)
            return format_item_list(items, header=f"Knowledge for project {project_id}")

        if action == "create":
            if not source_type or not content:
                return "Error: source_type and content are required for create."
            try:
                item = await store.create_item(
                    project_id,
                    source_type,
                    content,
                    content_summary=content_summary,
                    category=category,
                    tags=tags,
                    importance_score=importance_score,
                )
            except ValueError as e:
                return f"Error: {e}"
            await extractor.invalidate_cache(project_id)
            return "Created:\n" + format_item_full(item)

        if not item_id:
            return f"Error: item_id is required for {action}."

        if action == "get":
            item = await store.get_item(item_id)
            if item is None or item.project_id != project_id:
                return f"[{item_id}] not found"
            return format_item_full(item)

        if action == "update":
            updates = {
                key: value
                for key, value in {
                    "content": content,
                    "content_summary": content_summary,
                    "category": category,
                    "tags": tags,
                    "importance_score": importance_score,
                }.items()
                if value is not None
            }
            try:
                item = await store.update_item(project_id, item_id, updates)
            except ValueError as e:
                return f"Error: {e}"
            await extractor.invalidate_cache(project_id)
            return "Updated:\n" + format_item_full(item)

        try:
            item = await store.deactivate_item(project_id, item_id)
        except ValueError as e:
            return f"Error: {e}"
        await extractor.invalidate_cache(project_id)
        return f"Deactivated item {item.id}: {item.source_name}"
