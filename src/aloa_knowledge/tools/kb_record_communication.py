"""kb_record_communication MCP tool: file a client communication as knowledge."""

import logging
from typing import Annotated

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field

from aloa_knowledge.errors import SourceNotFoundError
from aloa_knowledge.extract.extractor import KnowledgeExtractor
from aloa_knowledge.tools.formatters import format_extraction_result

logger = logging.getLogger(__name__)


def register_kb_record_communication(mcp: FastMCP) -> None:
    """Register the kb_record_communication tool with the MCP server."""

    @mcp.tool()
    async def kb_record_communication(
        communication_id: Annotated[str, Field(description="Communication thread id")],
        ctx: Context | None = None,
    ) -> str:
        """Record what the client said in a communication thread.

        Only client-authored messages are kept. Threads without client
        content are skipped unless the client opened them.
        """
        if ctx is None:
            raise RuntimeError("Context not injected")

        extractor: KnowledgeExtractor = ctx.lifespan_context["extractor"]
        try:
            result = await extractor.extract_communication(communication_id)
        except SourceNotFoundError as e:
            return f"Error: {e}"
        if not result.items:
            return f"Communication {communication_id} has no client content to record."
        return format_extraction_result(result)
