"""kb_context MCP tool: AI context documents built from project knowledge."""

import logging
from typing import Annotated

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field

from aloa_knowledge.context.builder import ContextBuilder
from aloa_knowledge.errors import SourceNotFoundError
from aloa_knowledge.tools.formatters import format_context

logger = logging.getLogger(__name__)


def register_kb_context(mcp: FastMCP) -> None:
    """Register the kb_context tool with the MCP server."""

    @mcp.tool()
    async def kb_context(
        project_id: Annotated[str, Field(description="Project to describe")],
        context_type: Annotated[
            str,
            Field(
                description=(
                    "full_project, design_brief, content_brief, technical_brief or brand_guide"
                )
            ),
        ] = "full_project",
        categories: Annotated[
            list[str] | None,
            Field(description="For full_project or custom types: only these categories"),
        ] = None,
        refresh: Annotated[bool, Field(description="Ignore the cache and rebuild")] = False,
        clear: Annotated[
            bool, Field(description="Delete every cached context for the project instead")
        ] = False,
        ctx: Context | None = None,
    ) -> str:
        """Get a condensed, category-grouped view of what is known about a project.

        Results are cached per project and type until knowledge changes or the
        cache expires.
        """
        if ctx is None:
            raise RuntimeError("Context not injected")

        builder: ContextBuilder = ctx.lifespan_context["context_builder"]
        if clear:
            deleted = await builder.clear(project_id)
            return f"Cleared {deleted} cached context(s) for project {project_id}"

        try:
            result = await builder.build_context(project_id, context_type, categories, refresh)
        except SourceNotFoundError:
            return f"Error: Project {project_id} not found"
        return format_context(result)
