"""FastMCP server with lifespan management, tool and route registration."""

import logging
import sys
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from fastmcp import FastMCP

from aloa_knowledge.api.routes import register_routes
from aloa_knowledge.config import get_database_url, get_db_path, get_log_level
from aloa_knowledge.context.builder import ContextBuilder
from aloa_knowledge.db.connection import create_connection
from aloa_knowledge.extract.extractor import KnowledgeExtractor
from aloa_knowledge.extract.fetch import ContentFetcher
from aloa_knowledge.tools.kb_context import register_kb_context
from aloa_knowledge.tools.kb_extract import register_kb_extract
from aloa_knowledge.tools.kb_knowledge import register_kb_knowledge
from aloa_knowledge.tools.kb_record_communication import register_kb_record_communication


def make_lifespan(
    state: dict[str, Any],
) -> Callable[[FastMCP], AbstractAsyncContextManager[dict[str, Any]]]:
    """Build a lifespan that fills ``state`` for both tools and HTTP routes."""

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
        """Manage the database connection and HTTP fetcher lifecycle."""
        # Configure logging to stderr (stdout is MCP stdio transport)
        logging.basicConfig(
            level=getattr(logging, get_log_level(), logging.WARNING),
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
            stream=sys.stderr,
        )
        logger = logging.getLogger(__name__)

        if get_database_url():
            logger.info("Opening database from ALOA_DATABASE_URL")
        else:
            logger.info("Opening database at %s", get_db_path())
        db = await create_connection(get_db_path())

        fetcher = ContentFetcher()
        extractor = KnowledgeExtractor(db, fetcher)
        context_builder = ContextBuilder(db)

        state.update(
            {
                "db": db,
                "extractor": extractor,
                "context_builder": context_builder,
            }
        )
        try:
            yield state
        finally:
            state.clear()
            await fetcher.close()
            await db.close()
            logger.info("Database connection closed")

    return lifespan


_INSTRUCTIONS = """\
This server keeps a per-project knowledge base for client web projects: \
what the client said in forms, applets, uploaded documents, project \
settings, communications and their existing website.

EXTRACTING:
- kb_extract: turn a project artifact into knowledge items. Re-extracting \
a source replaces its earlier items. website_content is queued; run \
source_type=process_queue to work through the queue.
- kb_queue: see what is pending or failed.
- kb_record_communication: record what the client said in a thread.

READING:
- kb_context: a category-grouped brief of the project (design_brief, \
content_brief, technical_brief, brand_guide or full_project). Prefer this \
when you need an overview.
- kb_knowledge action=list: browse or search individual items.

CURATING:
- kb_knowledge create/update/deactivate: add notes by hand, fix items, \
or retire stale ones.
"""


def create_server() -> FastMCP:
    """Create and configure the MCP server with all tools and HTTP routes."""
    state: dict[str, Any] = {}
    mcp = FastMCP(
        "aloa-knowledge",
        instructions=_INSTRUCTIONS,
        lifespan=make_lifespan(state),
    )

    register_kb_extract(mcp)
    register_kb_knowledge(mcp)
    register_kb_context(mcp)
    register_kb_record_communication(mcp)
    register_routes(mcp, state)

    return mcp
