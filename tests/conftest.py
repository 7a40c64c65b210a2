"""Shared test fixtures."""

import json
from unittest.mock import MagicMock

import pytest_asyncio

from aloa_knowledge.context.builder import ContextBuilder
from aloa_knowledge.db.connection import create_connection
from aloa_knowledge.errors import SourceFetchError
from aloa_knowledge.extract.extractor import KnowledgeExtractor
from aloa_knowledge.store.context_cache import ContextCache
from aloa_knowledge.store.knowledge_store import KnowledgeStore
from aloa_knowledge.store.queue_store import QueueStore
from aloa_knowledge.store.source_store import SourceStore


@pytest_asyncio.fixture
async def db():
    """In-memory database with the full schema."""
    conn = await create_connection(":memory:")
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def store(db):
    """Knowledge store backed by in-memory DB."""
    return KnowledgeStore(db)


@pytest_asyncio.fixture
async def queue(db):
    """Extraction queue store backed by in-memory DB."""
    return QueueStore(db)


@pytest_asyncio.fixture
async def cache(db):
    """Context cache backed by in-memory DB."""
    return ContextCache(db)


@pytest_asyncio.fixture
async def sources(db):
    """Source row reader backed by in-memory DB."""
    return SourceStore(db)


class FakeFetcher:
    """Serves canned bodies by URL instead of going to the network."""

    def __init__(self, pages: dict[str, str] | None = None):
        self.pages = dict(pages or {})
        self.requested: list[str] = []
        self.closed = False

    async def fetch_text(self, url: str) -> str:
        self.requested.append(url)
        if url not in self.pages:
            raise SourceFetchError(f"{url} returned HTTP 404")
        return self.pages[url]

    async def close(self) -> None:
        self.closed = True


@pytest_asyncio.fixture
async def fetcher():
    """Fake HTTP fetcher with no pages."""
    return FakeFetcher()


@pytest_asyncio.fixture
async def extractor(db, fetcher):
    """Extractor over the in-memory DB and fake fetcher."""
    return KnowledgeExtractor(db, fetcher, batch_size=10, max_attempts=3)


@pytest_asyncio.fixture
async def context_builder(db):
    """Context builder with the default one-hour TTL."""
    return ContextBuilder(db, ttl_seconds=3600)


# -- source row seeding --


async def seed_project(db, project_id="proj-1", **overrides):
    row = {
        "id": project_id,
        "name": "Acme Redesign",
        "client_name": "Acme Co",
        "client_email": "owner@acme.test",
        "status": "active",
        "description": "Rebuild the Acme marketing site",
        "start_date": "2026-01-05",
        "target_completion_date": "2026-03-30",
        "live_url": "https://acme.test",
        "metadata": {"scope": {"description": "Marketing site", "main_pages": 6}},
    }
    row.update(overrides)
    row["metadata"] = json.dumps(row.get("metadata") or {})
    columns = ", ".join(row)
    marks = ", ".join("?" for _ in row)
    await db.execute(f"INSERT INTO projects ({columns}) VALUES ({marks})", tuple(row.values()))
    await db.commit()


async def seed_form_response(db, response_id="resp-1", project_id="proj-1", answers=None):
    await db.execute(
        "INSERT INTO forms (id, project_id, title) VALUES (?, ?, ?)",
        ("form-1", project_id, "Discovery Form"),
    )
    await db.executemany(
        "INSERT INTO form_fields (id, form_id, field_label, field_name, field_type, field_order)"
        " VALUES (?, ?, ?, ?, ?, ?)",
        [
            ("ff-1", "form-1", "Brand colors", "brand_colors", "text", 1),
            ("ff-2", "form-1", "Target audience", "audience", "textarea", 2),
            ("ff-3", "form-1", "Anything else?", "other", "text", 3),
        ],
    )
    if answers is None:
        answers = {
            "brand_colors": "Navy and gold, modern and clean",
            "audience": "Small business owners",
            "other": "",
        }
    await db.execute(
        "INSERT INTO applet_responses (id, project_id, form_id, response_data, created_at)"
        " VALUES (?, ?, ?, ?, ?)",
        (response_id, project_id, "form-1", json.dumps(answers), "2026-01-10T10:00:00+00:00"),
    )
    await db.commit()


async def seed_interaction(db, interaction_id, applet_type, data, project_id="proj-1"):
    applet_id = f"applet-{interaction_id}"
    await db.execute(
        "INSERT INTO applets (id, name, type) VALUES (?, ?, ?)",
        (applet_id, applet_type.replace("_", " ").title(), applet_type),
    )
    await db.execute(
        "INSERT INTO applet_interactions"
        " (id, project_id, applet_id, interaction_type, data, created_at)"
        " VALUES (?, ?, ?, ?, ?, ?)",
        (
            interaction_id,
            project_id,
            applet_id,
            "submission",
            json.dumps(data),
            "2026-01-11T10:00:00+00:00",
        ),
    )
    await db.commit()


async def seed_file(db, file_id, file_name, file_type, url=None, project_id="proj-1"):
    await db.execute(
        "INSERT INTO project_files (id, project_id, file_name, file_type, url)"
        " VALUES (?, ?, ?, ?, ?)",
        (file_id, project_id, file_name, file_type, url),
    )
    await db.commit()


async def seed_communication(
    db,
    communication_id="comm-1",
    project_id="proj-1",
    messages=(),
    **overrides,
):
    row = {
        "id": communication_id,
        "project_id": project_id,
        "title": "Homepage hero change",
        "description": "Swap the hero image",
        "category": "change_request",
        "priority": "high",
        "direction": "admin_to_client",
    }
    row.update(overrides)
    columns = ", ".join(row)
    marks = ", ".join("?" for _ in row)
    await db.execute(
        f"INSERT INTO communications ({columns}) VALUES ({marks})", tuple(row.values())
    )
    for i, (text, is_admin) in enumerate(messages):
        await db.execute(
            "INSERT INTO communication_messages"
            " (id, communication_id, message, is_admin, created_at) VALUES (?, ?, ?, ?, ?)",
            (
                f"{communication_id}-m{i}",
                communication_id,
                text,
                int(is_admin),
                f"2026-01-12T10:0{i}:00+00:00",
            ),
        )
    await db.commit()


# -- MCP tool harness --


@pytest_asyncio.fixture
async def tool_ctx(extractor, context_builder):
    """MagicMock MCP context carrying the lifespan objects tools read."""
    ctx = MagicMock()
    ctx.lifespan_context = {"extractor": extractor, "context_builder": context_builder}
    return ctx


def register_and_capture(register) -> dict:
    """Run a ``register_*`` function on a mock MCP and return the captured tools."""
    tools = {}

    def capture_tool():
        def decorator(func):
            tools[func.__name__] = func
            return func

        return decorator

    mcp_mock = MagicMock()
    mcp_mock.tool = capture_tool
    register(mcp_mock)
    return tools
