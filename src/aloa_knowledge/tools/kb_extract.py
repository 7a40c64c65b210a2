"""kb_extract and kb_queue MCP tools: run extractions and inspect the queue."""

import logging
from typing import Annotated

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field

from aloa_knowledge.errors import ExtractionError, InvalidExtractionRequest
from aloa_knowledge.extract.extractor import KnowledgeExtractor
from aloa_knowledge.models.knowledge import SourceType
from aloa_knowledge.tools.formatters import (
    format_extraction_result,
    format_queue_entry,
    format_queue_stats,
)

logger = logging.getLogger(__name__)


def register_kb_extract(mcp: FastMCP) -> None:
    """Register the kb_extract and kb_queue tools with the MCP server."""

    @mcp.tool()
    async def kb_extract(
        project_id: Annotated[str, Field(description="Project the source belongs to")],
        source_type: Annotated[
            str,
            Field(description="One of: " + ", ".join(t.value for t in SourceType)),
        ],
        source_id: Annotated[
            str | None,
            Field(
                description=(
                    "Row id of the source; the URL for website_content."
                    " Optional for project_metadata and process_queue."
                )
            ),
        ] = None,
        retry_failed: Annotated[
            bool,
            Field(description="For process_queue: return failed entries to pending first"),
        ] = False,
        ctx: Context | None = None,
    ) -> str:
        """Extract knowledge items from a project artifact.

        Synchronous sources (form_response, applet_interaction, file_document,
        project_metadata) are extracted immediately and replace any earlier
        items for the same source. website_content is only queued;
        process_queue attempts the project's pending queue entries.
        """
        if ctx is None:
            raise RuntimeError("Context not injected")

        extractor: KnowledgeExtractor = ctx.lifespan_context["extractor"]
        try:
            result = await extractor.extract(
                source_type, source_id, project_id, retry_failed=retry_failed
            )
        except InvalidExtractionRequest as e:
            return f"Error: {e}"
        except ExtractionError as e:
            logger.warning("kb_extract failed for %s %s: %s", source_type, source_id, e)
            return f"Error: Failed to extract knowledge: {e}"
        return format_extraction_result(result)

    @mcp.tool()
    async def kb_queue(
        project_id: Annotated[str, Field(description="Project whose queue to show")],
        ctx: Context | None = None,
    ) -> str:
        """Show a project's extraction queue, highest priority first, with status counts."""
        if ctx is None:
            raise RuntimeError("Context not injected")

        extractor: KnowledgeExtractor = ctx.lifespan_context["extractor"]
        entries = await extractor.queue.list_for_project(project_id)
        stats = await extractor.queue.stats(project_id)

        lines = [format_queue_stats(stats)]
        if not entries:
            lines.append("Queue is empty.")
        else:
            lines.append("")
            lines.extend(format_queue_entry(entry) for entry in entries)
        return "\n".join(lines)
