"""HTTP JSON routes served from the FastMCP HTTP app.

Handlers read their collaborators from the shared ``state`` dict the server
lifespan fills in, the same dict MCP tools see as ``ctx.lifespan_context``.
"""

import json
import logging
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from aloa_knowledge.context.builder import ContextBuilder
from aloa_knowledge.errors import InvalidExtractionRequest, SourceNotFoundError
from aloa_knowledge.extract.extractor import KnowledgeExtractor
from aloa_knowledge.models.knowledge import KnowledgeItem

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50


def _error(message: str, status_code: int, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


async def _json_body(request: Request) -> dict[str, Any] | None:
    """Decoded JSON object body, or None when the body is not a JSON object."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def _split_param(raw: str | None) -> list[str] | None:
    if not raw:
        return None
    values = [part.strip() for part in raw.split(",") if part.strip()]
    return values or None


def _category_counts(items: list[KnowledgeItem]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for item in items:
        counts[item.category.value] = counts.get(item.category.value, 0) + 1
    return counts


# -- /knowledge/extract --


async def extract_knowledge(request: Request, state: dict[str, Any]) -> JSONResponse:
    """POST /knowledge/extract: run one extraction request."""
    body = await _json_body(request)
    if body is None:
        return _error("Request body must be a JSON object", 400)

    source_type = body.get("sourceType")
    source_id = body.get("sourceId")
    project_id = body.get("projectId")
    extractor: KnowledgeExtractor = state["extractor"]
    try:
        result = await extractor.extract(
            source_type,
            source_id,
            project_id,
            retry_failed=bool(body.get("retryFailed")),
        )
    except InvalidExtractionRequest as e:
        return _error(str(e), 400)
    except SourceNotFoundError as e:
        logger.warning("Extraction source missing: %s", e)
        return _error("Failed to extract knowledge", 500, details=str(e))
    except Exception as e:
        logger.exception("Extraction of %s %s failed", source_type, source_id)
        return _error("Failed to extract knowledge", 500, details=str(e))

    logger.info(
        "Extracted %s %s for project %s (trigger %s)",
        source_type,
        result.source_id,
        project_id,
        body.get("triggerType") or "manual",
    )
    return JSONResponse(
        {
            "success": True,
            "sourceType": source_type,
            "sourceId": result.source_id,
            "result": result.result_payload(),
            "cacheInvalidated": result.cache_invalidated,
        }
    )


async def get_extraction_queue(request: Request, state: dict[str, Any]) -> JSONResponse:
    """GET /knowledge/extract?projectId=: the project's queue and status counts."""
    project_id = request.query_params.get("projectId")
    if not project_id:
        return _error("projectId is required", 400)

    extractor: KnowledgeExtractor = state["extractor"]
    entries = await extractor.queue.list_for_project(project_id)
    stats = await extractor.queue.stats(project_id)
    return JSONResponse(
        {
            "queue": [entry.model_dump(mode="json") for entry in entries],
            "stats": stats.model_dump(),
        }
    )


# -- /projects/{project_id}/knowledge --


async def list_knowledge(request: Request, state: dict[str, Any]) -> JSONResponse:
    """GET: current items with per-category counts."""
    project_id = request.path_params["project_id"]
    params = request.query_params
    try:
        limit = int(params.get("limit") or DEFAULT_LIST_LIMIT)
    except ValueError:
        return _error("limit must be an integer", 400)

    extractor: KnowledgeExtractor = state["extractor"]
    items = await extractor.knowledge.list_current(
        project_id, _split_param(params.get("categories")), params.get("search"), limit
    )
    return JSONResponse(
        {
            "knowledge": [item.model_dump(mode="json") for item in items],
            "stats": {"total": len(items), "categoryCounts": _category_counts(items)},
        }
    )


async def create_knowledge(request: Request, state: dict[str, Any]) -> JSONResponse:
    """POST: add a manual knowledge item."""
    project_id = request.path_params["project_id"]
    body = await _json_body(request)
    if not body or not body.get("source_type") or not body.get("content"):
        return _error("source_type and content are required", 400)

    extractor: KnowledgeExtractor = state["extractor"]
    try:
        item = await extractor.knowledge.create_item(
            project_id,
            body["source_type"],
            body["content"],
            source_id=body.get("source_id"),
            source_name=body.get("source_name"),
            source_url=body.get("source_url"),
            content_type=body.get("content_type") or "text",
            content_summary=body.get("content_summary"),
            category=body.get("category"),
            tags=body.get("tags"),
            importance_score=body.get("importance_score"),
        )
    except ValueError as e:
        return _error("Invalid knowledge item", 400, details=str(e))
    await extractor.invalidate_cache(project_id)
    return JSONResponse(item.model_dump(mode="json"))


async def update_knowledge(request: Request, state: dict[str, Any]) -> JSONResponse:
    """PATCH: edit an item named by ``knowledgeId`` in the body."""
    project_id = request.path_params["project_id"]
    body = await _json_body(request)
    if not body or not body.get("knowledgeId"):
        return _error("knowledgeId is required", 400)

    updates = dict(body)
    item_id = updates.pop("knowledgeId")
    extractor: KnowledgeExtractor = state["extractor"]
    existing = await extractor.knowledge.get_item(item_id)
    if existing is None or existing.project_id != project_id:
        return _error("Knowledge item not found", 404)
    try:
        item = await extractor.knowledge.update_item(project_id, item_id, updates)
    except ValueError as e:
        return _error("Failed to update knowledge", 400, details=str(e))
    await extractor.invalidate_cache(project_id)
    return JSONResponse(item.model_dump(mode="json"))


async def delete_knowledge(request: Request, state: dict[str, Any]) -> JSONResponse:
    """DELETE ?id=: retire an item."""
    project_id = request.path_params["project_id"]
    item_id = request.query_params.get("id")
    if not item_id:
        return _error("knowledge id is required", 400)

    extractor: KnowledgeExtractor = state["extractor"]
    try:
        await extractor.knowledge.deactivate_item(project_id, item_id)
    except ValueError as e:
        return _error(str(e), 404)
    await extractor.invalidate_cache(project_id)
    return JSONResponse({"success": True})


# -- /projects/{project_id}/context --


async def get_context(request: Request, state: dict[str, Any]) -> JSONResponse:
    """GET ?type=&categories=&refresh=: the project's AI context."""
    project_id = request.path_params["project_id"]
    params = request.query_params
    builder: ContextBuilder = state["context_builder"]
    try:
        result = await builder.build_context(
            project_id,
            params.get("type") or "full_project",
            _split_param(params.get("categories")),
            refresh=params.get("refresh") == "true",
        )
    except SourceNotFoundError:
        return _error("Project not found", 404)

    payload: dict[str, Any] = {"context": result.context, "cached": result.cached}
    if result.cached_at is not None:
        payload["cachedAt"] = result.cached_at.isoformat()
    return JSONResponse(payload)


async def clear_context(request: Request, state: dict[str, Any]) -> JSONResponse:
    """DELETE: drop every cached context for the project."""
    project_id = request.path_params["project_id"]
    builder: ContextBuilder = state["context_builder"]
    try:
        await builder.clear(project_id)
    except Exception:
        logger.exception("Failed to clear context cache for %s", project_id)
        return _error("Failed to clear cache", 500)
    return JSONResponse({"success": True, "message": "Context cache cleared"})


# -- /communications/{communication_id}/knowledge --


async def record_communication(request: Request, state: dict[str, Any]) -> JSONResponse:
    """POST: record a communication thread's client content."""
    communication_id = request.path_params["communication_id"]
    extractor: KnowledgeExtractor = state["extractor"]
    try:
        result = await extractor.extract_communication(communication_id)
    except SourceNotFoundError as e:
        return _error(str(e), 404)
    return JSONResponse(
        {
            "success": True,
            "recorded": bool(result.items),
            "result": result.result_payload(),
        }
    )


def register_routes(mcp: FastMCP, state: dict[str, Any]) -> None:
    """Mount the JSON routes on the server's HTTP app."""

    def bind(handler):
        async def endpoint(request: Request) -> JSONResponse:
            return await handler(request, state)

        endpoint.__name__ = handler.__name__
        return endpoint

    routes = [
        ("/knowledge/extract", "POST", extract_knowledge),
        ("/knowledge/extract", "GET", get_extraction_queue),
        ("/projects/{project_id}/knowledge", "GET", list_knowledge),
        ("/projects/{project_id}/knowledge", "POST", create_knowledge),
        ("/projects/{project_id}/knowledge", "PATCH", update_knowledge),
        ("/projects/{project_id}/knowledge", "DELETE", delete_knowledge),
        ("/projects/{project_id}/context", "GET", get_context),
        ("/projects/{project_id}/context", "DELETE", clear_context),
        ("/communications/{communication_id}/knowledge", "POST", record_communication),
    ]
    for path, method, handler in routes:
        mcp.custom_route(path, methods=[method])(bind(handler))
