"""Tests for the HTTP JSON routes, served through a Starlette app."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest_asyncio
from starlette.applications import Starlette
from starlette.routing import Route

from aloa_knowledge.api.routes import register_routes
from tests.conftest import seed_communication, seed_form_response, seed_project


def _build_app(state) -> Starlette:
    """Collect the routes register_routes mounts and serve them from a bare app."""
    routes = []

    def custom_route(path, methods):
        def decorator(func):
            routes.append(Route(path, func, methods=methods))
            return func

        return decorator

    mcp_mock = MagicMock()
    mcp_mock.custom_route = custom_route
    register_routes(mcp_mock, state)
    return Starlette(routes=routes)


@pytest_asyncio.fixture
async def state(extractor, context_builder):
    return {"extractor": extractor, "context_builder": context_builder}


@pytest_asyncio.fixture
async def client(state):
    transport = httpx.ASGITransport(app=_build_app(state))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestExtractEndpoint:
    async def test_form_response(self, db, client):
        await seed_project(db)
        await seed_form_response(db)

        resp = await client.post(
            "/knowledge/extract",
            json={
                "sourceType": "form_response",
                "sourceId": "resp-1",
                "projectId": "proj-1",
                "triggerType": "form_submit",
            },
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["sourceType"] == "form_response"
        assert body["sourceId"] == "resp-1"
        assert body["cacheInvalidated"] is True
        assert body["result"]["itemsCreated"] == 2
        categories = {item["category"] for item in body["result"]["items"]}
        assert categories == {"brand_identity", "target_audience"}

    async def test_website_is_queued(self, client):
        resp = await client.post(
            "/knowledge/extract",
            json={
                "sourceType": "website_content",
                "sourceId": "https://acme.test",
                "projectId": "proj-1",
            },
        )

        assert resp.status_code == 200
        result = resp.json()["result"]
        assert result["queued"] is True
        assert result["url"] == "https://acme.test"

    async def test_process_queue(self, client, extractor):
        await extractor.queue_website("proj-1", "https://acme.test")

        resp = await client.post(
            "/knowledge/extract", json={"sourceType": "process_queue", "projectId": "proj-1"}
        )

        result = resp.json()["result"]
        assert result["processed"] is True
        assert result["queue"]["processed"] == 1
        assert result["queue"]["failed"] == 1

    async def test_project_metadata_defaults_source(self, db, client):
        await seed_project(db)
        resp = await client.post(
            "/knowledge/extract", json={"sourceType": "project_metadata", "projectId": "proj-1"}
        )
        body = resp.json()
        assert body["sourceId"] == "proj-1"
        assert body["result"]["itemsCreated"] > 0
        assert "queue" in body["result"]

    async def test_unknown_source_type(self, client):
        resp = await client.post(
            "/knowledge/extract",
            json={"sourceType": "fax", "sourceId": "x", "projectId": "proj-1"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Unknown source type: fax"}

    async def test_missing_project_id(self, client):
        resp = await client.post(
            "/knowledge/extract", json={"sourceType": "form_response", "sourceId": "resp-1"}
        )
        assert resp.status_code == 400

    async def test_numeric_source_id(self, db, client):
        await seed_project(db)
        resp = await client.post(
            "/knowledge/extract",
            json={"sourceType": "form_response", "sourceId": 42, "projectId": "proj-1"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "sourceId must be a string"}

    async def test_missing_source(self, client):
        resp = await client.post(
            "/knowledge/extract",
            json={"sourceType": "form_response", "sourceId": "gone", "projectId": "proj-1"},
        )
        assert resp.status_code == 500
        assert resp.json() == {
            "error": "Failed to extract knowledge",
            "details": "form_response gone not found",
        }

    async def test_unexpected_failure(self, client, extractor):
        extractor.extract = AsyncMock(side_effect=RuntimeError("db locked"))
        resp = await client.post(
            "/knowledge/extract",
            json={"sourceType": "form_response", "sourceId": "r", "projectId": "proj-1"},
        )
        assert resp.status_code == 500
        assert resp.json()["details"] == "db locked"

    async def test_body_must_be_object(self, client):
        not_json = await client.post("/knowledge/extract", content=b"not json")
        a_list = await client.post("/knowledge/extract", json=["form_response"])
        assert not_json.status_code == 400
        assert a_list.status_code == 400

    async def test_cache_invalidation_failure_reported(self, db, client, extractor):
        await seed_project(db)
        await seed_form_response(db)
        extractor.cache.invalidate = AsyncMock(side_effect=RuntimeError("cache down"))

        resp = await client.post(
            "/knowledge/extract",
            json={"sourceType": "form_response", "sourceId": "resp-1", "projectId": "proj-1"},
        )

        assert resp.status_code == 200
        assert resp.json()["cacheInvalidated"] is False


class TestQueueEndpoint:
    async def test_requires_project(self, client):
        resp = await client.get("/knowledge/extract")
        assert resp.status_code == 400

    async def test_lists_queue(self, client, extractor):
        await extractor.queue_website("proj-1", "https://acme.test")

        resp = await client.get("/knowledge/extract", params={"projectId": "proj-1"})

        body = resp.json()
        assert [e["source_id"] for e in body["queue"]] == ["https://acme.test"]
        assert body["queue"][0]["priority"] == 9
        assert body["stats"] == {"pending": 1, "processing": 0, "completed": 0, "failed": 0}


class TestKnowledgeEndpoints:
    async def test_create_list_update_delete(self, client):
        created = await client.post(
            "/projects/proj-1/knowledge",
            json={
                "source_type": "manual",
                "content": "Client wants a dark mode",
                "category": "design_preferences",
                "tags": ["theme"],
            },
        )
        assert created.status_code == 200
        item_id = created.json()["id"]
        assert created.json()["extracted_by"] == "manual"

        listed = (await client.get("/projects/proj-1/knowledge")).json()
        assert listed["stats"] == {"total": 1, "categoryCounts": {"design_preferences": 1}}

        patched = await client.patch(
            "/projects/proj-1/knowledge",
            json={"knowledgeId": item_id, "importance_score": 9},
        )
        assert patched.status_code == 200
        assert patched.json()["importance_score"] == 9

        deleted = await client.delete("/projects/proj-1/knowledge", params={"id": item_id})
        assert deleted.json() == {"success": True}
        listed = (await client.get("/projects/proj-1/knowledge")).json()
        assert listed["knowledge"] == []

    async def test_list_filters(self, client, store):
        await store.create_item("proj-1", "manual", "Fox logo", category="brand_identity")
        await store.create_item("proj-1", "manual", "Blog weekly", category="content_strategy")
        await store.create_item("proj-1", "manual", "Gold accents", category="design_preferences")

        resp = await client.get(
            "/projects/proj-1/knowledge",
            params={"categories": "brand_identity,design_preferences", "search": "gold"},
        )

        assert [i["content"] for i in resp.json()["knowledge"]] == ["Gold accents"]

    async def test_list_bad_limit(self, client):
        resp = await client.get("/projects/proj-1/knowledge", params={"limit": "lots"})
        assert resp.status_code == 400

    async def test_create_requires_fields(self, client):
        resp = await client.post("/projects/proj-1/knowledge", json={"content": "x"})
        assert resp.status_code == 400

    async def test_create_invalid_item(self, client):
        resp = await client.post(
            "/projects/proj-1/knowledge",
            json={"source_type": "manual", "content": "x", "importance_score": 42},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid knowledge item"

    async def test_create_zero_importance_rejected(self, client):
        resp = await client.post(
            "/projects/proj-1/knowledge",
            json={"source_type": "manual", "content": "x", "importance_score": 0},
        )
        assert resp.status_code == 400
        listed = (await client.get("/projects/proj-1/knowledge")).json()
        assert listed["knowledge"] == []

    async def test_update_requires_id(self, client):
        resp = await client.patch("/projects/proj-1/knowledge", json={"content": "x"})
        assert resp.status_code == 400

    async def test_update_other_project(self, client, store):
        item = await store.create_item("proj-2", "manual", "Theirs")
        resp = await client.patch(
            "/projects/proj-1/knowledge", json={"knowledgeId": item.id, "content": "Mine"}
        )
        assert resp.status_code == 404
        assert (await store.get_item(item.id)).content == "Theirs"

    async def test_update_rejects_non_editable(self, client, store):
        item = await store.create_item("proj-1", "manual", "Note")
        resp = await client.patch(
            "/projects/proj-1/knowledge", json={"knowledgeId": item.id, "is_current": False}
        )
        assert resp.status_code == 400

    async def test_delete_requires_id(self, client):
        resp = await client.delete("/projects/proj-1/knowledge")
        assert resp.status_code == 400

    async def test_delete_missing(self, client):
        resp = await client.delete("/projects/proj-1/knowledge", params={"id": "nope"})
        assert resp.status_code == 404

    async def test_write_clears_context_cache(self, client, extractor):
        await extractor.cache.put("proj-1", "full_project", {"stale": True}, 3600)
        await client.post(
            "/projects/proj-1/knowledge", json={"source_type": "manual", "content": "New"}
        )
        assert await extractor.cache.get("proj-1", "full_project") is None


class TestContextEndpoints:
    async def test_get_then_cached(self, db, client):
        await seed_project(db)

        first = (await client.get("/projects/proj-1/context")).json()
        second = (await client.get("/projects/proj-1/context")).json()
        refreshed = (
            await client.get("/projects/proj-1/context", params={"refresh": "true"})
        ).json()

        assert first["cached"] is False
        assert "cachedAt" not in first
        assert second["cached"] is True
        assert "cachedAt" in second
        assert refreshed["cached"] is False
        assert first["context"]["project"]["name"] == "Acme Redesign"

    async def test_type_and_categories(self, db, client, store):
        await seed_project(db)
        await store.create_item("proj-1", "manual", "Fox logo", category="brand_identity")
        await store.create_item("proj-1", "manual", "Booking", category="functionality")

        brief = await client.get("/projects/proj-1/context", params={"type": "technical_brief"})
        custom = await client.get(
            "/projects/proj-1/context", params={"categories": "brand_identity"}
        )

        assert list(brief.json()["context"]["knowledge"]) == ["functionality"]
        assert list(custom.json()["context"]["knowledge"]) == ["brand_identity"]

    async def test_missing_project(self, client):
        resp = await client.get("/projects/ghost/context")
        assert resp.status_code == 404

    async def test_clear(self, db, client, extractor):
        await seed_project(db)
        await client.get("/projects/proj-1/context")

        resp = await client.delete("/projects/proj-1/context")

        assert resp.json() == {"success": True, "message": "Context cache cleared"}
        assert await extractor.cache.get("proj-1", "full_project") is None

    async def test_clear_failure(self, client, context_builder):
        context_builder.clear = AsyncMock(side_effect=RuntimeError("boom"))
        resp = await client.delete("/projects/proj-1/context")
        assert resp.status_code == 500


class TestCommunicationEndpoint:
    async def test_records(self, db, client):
        await seed_communication(db, messages=[("Please use photo 3", False)])

        resp = await client.post("/communications/comm-1/knowledge")

        body = resp.json()
        assert body["success"] is True
        assert body["recorded"] is True
        assert body["result"]["items"][0]["category"] == "change"

    async def test_nothing_recorded(self, db, client):
        await seed_communication(db, messages=[("Admin only", True)])
        body = (await client.post("/communications/comm-1/knowledge")).json()
        assert body["recorded"] is False
        assert body["result"]["itemsCreated"] == 0

    async def test_missing(self, client):
        resp = await client.post("/communications/nope/knowledge")
        assert resp.status_code == 404
