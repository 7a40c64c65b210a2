"""Source adapters: raw source rows in, knowledge fragments out.

Adapters are pure transforms over the dicts returned by SourceStore. They
never raise on missing optional fields; absent values degrade to empty
strings or defaults. JSON columns arrive already decoded.
"""

import csv
import io
import json
import logging
from typing import Any

from aloa_knowledge.extract.heuristics import (
    categorize_file,
    categorize_label,
    category_for_communication,
    file_tags,
    importance_for_field,
    keyword_tags,
    labeled_summary,
    priority_to_score,
)
from aloa_knowledge.models.knowledge import KnowledgeCategory, KnowledgeFragment

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = (".md", ".markdown", ".txt")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


# -- form responses --


def form_response_fragments(response: dict[str, Any]) -> list[KnowledgeFragment]:
    """One fragment per answered field of a form response."""
    form = response.get("form") or {}
    form_title = form.get("title") or "Form Response"
    fields = {f.get("field_name"): f for f in form.get("fields") or []}
    answers = response.get("response_data") or {}
    if not isinstance(answers, dict):
        logger.debug("Response %s has non-object response_data", response.get("id"))
        return []

    fragments: list[KnowledgeFragment] = []
    for field_name, value in answers.items():
        if _is_blank(value):
            continue
        field = fields.get(field_name) or {}
        label = field.get("field_label") or field_name
        field_type = field.get("field_type")
        content = _as_text(value)
        fragments.append(
            KnowledgeFragment(
                source_id=response.get("id"),
                source_name=f"{form_title} - {label}",
                content_type="structured_data" if field_type == "file" else "text",
                content=content,
                content_summary=labeled_summary(label, content),
                category=categorize_label(label),
                tags=keyword_tags(label, content),
                importance_score=importance_for_field(label, field_type),
                extraction_confidence=0.95,
            )
        )
    return fragments


# -- applet interactions --


def _palette_fragments(
    interaction_id: str, applet_name: str, data: dict
) -> list[KnowledgeFragment]:
    palettes = data.get("selectedPalettes") or []
    if not isinstance(palettes, list) or not palettes:
        return []
    names = ", ".join(str(p.get("name", "")) for p in palettes if isinstance(p, dict))
    return [
        KnowledgeFragment(
            source_id=interaction_id,
            source_name=f"{applet_name} - Color Preferences",
            content_type="preferences",
            content=json.dumps(palettes),
            content_summary=f"Client selected {len(palettes)} color palette(s): {names}",
            category=KnowledgeCategory.DESIGN_PREFERENCES,
            tags=["colors", "palette", "visual_design"],
            importance_score=8,
        )
    ]


def _tone_fragments(interaction_id: str, applet_name: str, data: dict) -> list[KnowledgeFragment]:
    progress = data.get("form_progress")
    if not isinstance(progress, dict):
        return []
    tone = progress.get("selectedTone")
    if not tone:
        return []
    tone_name = progress.get("toneName")
    level = progress.get("educationLevel")
    level_name = progress.get("educationLevelName")
    summary = f"Client selected brand voice: {tone_name or tone}"
    if level_name:
        summary += f" at {level_name} level"
    tags = ["tone", "voice", "brand_personality", "content", str(tone).lower()]
    if level:
        tags.append(str(level))
    return [
        KnowledgeFragment(
            source_id=interaction_id,
            source_name=f"{applet_name} - Tone of Voice",
            content_type="preferences",
            content=json.dumps(
                {
                    "tone": tone,
                    "toneName": tone_name,
                    "educationLevel": level,
                    "educationLevelName": level_name,
                }
            ),
            content_summary=summary,
            category=KnowledgeCategory.CONTENT_STRATEGY,
            tags=tags,
            importance_score=8,
        )
    ]


def _sitemap_fragments(
    interaction_id: str, applet_name: str, data: dict
) -> list[KnowledgeFragment]:
    sitemap = data.get("sitemap") or {}
    sections = len(sitemap) if isinstance(sitemap, (dict, list)) else 0
    return [
        KnowledgeFragment(
            source_id=interaction_id,
            source_name=f"{applet_name} - Site Structure",
            content_type="structured_data",
            content=json.dumps(sitemap),
            content_summary=f"Site structure with {sections} sections defined",
            category=KnowledgeCategory.FUNCTIONALITY,
            tags=["sitemap", "navigation", "information_architecture"],
            importance_score=9,
        )
    ]


def _link_fragments(interaction_id: str, applet_name: str, data: dict) -> list[KnowledgeFragment]:
    fragments: list[KnowledgeFragment] = []
    links = data.get("links") or []
    if not isinstance(links, list):
        return fragments
    for link in links:
        if not isinstance(link, dict):
            continue
        link_type = str(link.get("type") or "Reference")
        url = link.get("url")
        url = str(url) if url is not None else None
        is_current_site = link_type == "current_site"
        fragments.append(
            KnowledgeFragment(
                source_id=interaction_id,
                source_name=f"{applet_name} - {link_type}",
                source_url=url,
                content_type="structured_data",
                content=json.dumps(link),
                content_summary=f"{link_type} link: {url or ''}",
                category=(
                    KnowledgeCategory.BUSINESS_GOALS
                    if is_current_site
                    else KnowledgeCategory.INSPIRATION
                ),
                tags=["reference", "links", link_type],
                importance_score=9 if is_current_site else 6,
            )
        )
    return fragments


_APPLET_HANDLERS = {
    "palette_cleanser": _palette_fragments,
    "tone_of_voice": _tone_fragments,
    "sitemap_builder": _sitemap_fragments,
    "link_submission": _link_fragments,
}


def applet_interaction_fragments(interaction: dict[str, Any]) -> list[KnowledgeFragment]:
    """Fragments for the applet types that carry client preferences."""
    applet = interaction.get("applet") or {}
    handler = _APPLET_HANDLERS.get(applet.get("type") or "")
    if handler is None:
        logger.debug("No knowledge handler for applet type %r", applet.get("type"))
        return []
    data = interaction.get("data") or {}
    if not isinstance(data, dict):
        return []
    return handler(interaction.get("id") or "", applet.get("name") or "Applet", data)


def current_site_urls(interaction: dict[str, Any]) -> list[str]:
    """URLs a link-submission interaction marks as the client's current site."""
    applet = interaction.get("applet") or {}
    if applet.get("type") != "link_submission":
        return []
    data = interaction.get("data") or {}
    if not isinstance(data, dict):
        return []
    links = data.get("links") or []
    if not isinstance(links, list):
        return []
    return [
        str(link["url"])
        for link in links
        if isinstance(link, dict) and link.get("type") == "current_site" and link.get("url")
    ]


# -- uploaded files --


def file_kind(file: dict[str, Any]) -> str:
    """Classify an uploaded file as ``json``, ``csv``, ``text`` or ``binary``."""
    name = (file.get("file_name") or "").lower()
    mime = (file.get("file_type") or "").lower()
    if mime == "application/json" or name.endswith(".json"):
        return "json"
    if mime == "text/csv" or name.endswith(".csv"):
        return "csv"
    if "text" in mime or name.endswith(TEXT_EXTENSIONS):
        return "text"
    return "binary"


def _csv_summary(content: str) -> str:
    rows = list(csv.reader(io.StringIO(content)))
    if not rows:
        return "CSV data with 0 rows."
    headers = ", ".join(rows[0])
    return f"CSV data with {len(rows) - 1} rows. Headers: {headers}"


def file_document_fragment(file: dict[str, Any], body: str | None) -> KnowledgeFragment | None:
    """Fragment for an uploaded file; ``body`` is the fetched text, if any.

    Binary files store a metadata line. Text-like files with no fetched
    body yield nothing.
    """
    file_name = file.get("file_name") or "untitled"
    kind = file_kind(file)

    if kind == "binary":
        content = f"Document: {file_name} ({file.get('file_type') or 'unknown type'})"
        summary = content
    elif not body:
        return None
    elif kind == "json":
        try:
            content = json.dumps(json.loads(body), indent=2)
            summary = "JSON document containing structured data"
        except ValueError:
            logger.warning("File %s is not valid JSON, storing raw text", file.get("id"))
            content = body
            summary = body
    elif kind == "csv":
        content = body
        summary = _csv_summary(body)
    else:
        content = body
        summary = body

    return KnowledgeFragment(
        source_id=file.get("id"),
        source_name=file_name,
        source_url=file.get("url") or file.get("storage_path"),
        content_type="text",
        content=content,
        content_summary=summary,
        category=categorize_file(file_name, content),
        tags=file_tags(file_name),
        importance_score=6,
        extraction_confidence=0.85,
    )


# -- project metadata --


def project_metadata_fragments(project: dict[str, Any]) -> list[KnowledgeFragment]:
    """Info, timeline, URL, description, scope and type fragments for a project."""
    project_id = project.get("id") or ""
    name = project.get("name") or project.get("project_name")
    fragments: list[KnowledgeFragment] = []

    def add(suffix: str, source_name: str, **kwargs: Any) -> None:
        source_id = f"{project_id}_{suffix}" if suffix else project_id
        fragments.append(
            KnowledgeFragment(source_id=source_id, source_name=source_name, **kwargs)
        )

    if name:
        add(
            "",
            "Project Information",
            content_type="structured_data",
            content=json.dumps(
                {
                    "name": name,
                    "client": project.get("client_name"),
                    "client_email": project.get("client_email"),
                    "status": project.get("status"),
                    "budget": project.get("budget"),
                }
            ),
            content_summary=f"Project: {name} for {project.get('client_name') or 'unknown client'}",
            category=KnowledgeCategory.PROJECT_INFO,
            tags=["project", "client", "overview"],
            importance_score=10,
        )

    target = project.get("target_completion_date") or project.get("target_launch_date")
    if project.get("start_date") or target:
        add(
            "timeline",
            "Project Timeline",
            content_type="structured_data",
            content=json.dumps(
                {
                    "start_date": project.get("start_date"),
                    "target_completion": target,
                    "actual_completion": project.get("actual_completion_date"),
                }
            ),
            content_summary=(
                f"Project timeline: {project.get('start_date') or 'TBD'} to {target or 'TBD'}"
            ),
            category=KnowledgeCategory.PROJECT_INFO,
            tags=["timeline", "deadlines", "schedule"],
            importance_score=8,
        )

    if project.get("live_url") or project.get("staging_url"):
        add(
            "urls",
            "Project URLs",
            content_type="structured_data",
            content=json.dumps(
                {"live_url": project.get("live_url"), "staging_url": project.get("staging_url")}
            ),
            content_summary=(
                f"URLs - Live: {project.get('live_url') or 'None'}, "
                f"Staging: {project.get('staging_url') or 'None'}"
            ),
            category=KnowledgeCategory.TECHNICAL_SPECS,
            tags=["urls", "website", "staging"],
            importance_score=7,
        )

    description = project.get("description")
    if description:
        add(
            "description",
            "Project Description",
            content=str(description),
            content_summary=str(description),
            category=KnowledgeCategory.PROJECT_INFO,
            tags=["description", "overview", "scope"],
            importance_score=9,
        )

    metadata = project.get("metadata") or {}
    if isinstance(metadata, dict):
        scope = metadata.get("scope")
        if scope:
            scope_dict = scope if isinstance(scope, dict) else {"description": str(scope)}
            add(
                "scope",
                "Project Scope",
                content_type="structured_data",
                content=json.dumps(scope),
                content_summary=(
                    f"Scope: {scope_dict.get('description') or ''} - "
                    f"{scope_dict.get('main_pages') or 0} main pages, "
                    f"{scope_dict.get('aux_pages') or 0} aux pages"
                ),
                category=KnowledgeCategory.FUNCTIONALITY,
                tags=["scope", "pages", "deliverables"],
                importance_score=9,
            )
        project_type = metadata.get("project_type")
        if project_type:
            add(
                "type",
                "Project Type",
                content=str(project_type),
                content_summary=f"Project Type: {project_type}",
                category=KnowledgeCategory.PROJECT_INFO,
                tags=["type", "category"],
                importance_score=7,
            )

    return fragments


# -- communications --


def communication_fragment(
    communication: dict[str, Any], messages: list[dict[str, Any]]
) -> KnowledgeFragment | None:
    """Fragment for the client-authored part of a communication thread.

    Admin messages are dropped. Threads with no client messages yield
    nothing unless the client opened them.
    """
    client_messages = [m for m in messages if not m.get("is_admin")]
    client_opened = communication.get("direction") == "client_to_admin"
    if not client_messages and not client_opened:
        return None

    if client_opened:
        content: dict[str, Any] = {
            "request_title": communication.get("title"),
            "request_description": communication.get("description"),
            "request_category": communication.get("category"),
            "client_messages": [m.get("message") for m in client_messages],
            "attachments": communication.get("attachments") or [],
        }
        summary = communication.get("title") or (
            client_messages[0].get("message") if client_messages else ""
        )
    else:
        content = {
            "client_responses": [
                {
                    "message": m.get("message"),
                    "attachments": m.get("attachments") or [],
                    "timestamp": m.get("created_at"),
                }
                for m in client_messages
            ]
        }
        summary = client_messages[0].get("message")

    category = communication.get("category")
    return KnowledgeFragment(
        source_id=communication.get("id"),
        source_name=f"Client Response: {communication.get('title') or 'Untitled'}",
        content_type="requirements",
        content=json.dumps(content),
        content_summary=summary if isinstance(summary, str) else "",
        category=category_for_communication(category),
        tags=[t for t in (category, "client_response") if t],
        importance_score=priority_to_score(communication.get("priority")),
    )
