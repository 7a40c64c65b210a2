"""Compact output formatters for MCP tool responses."""

from aloa_knowledge.models.context import ProjectContext
from aloa_knowledge.models.extraction import ExtractionResult
from aloa_knowledge.models.knowledge import KnowledgeItem
from aloa_knowledge.models.queue import ExtractionQueueEntry, QueueDrainReport, QueueStats


def format_item_header(item: KnowledgeItem) -> str:
    """Format: [3f2a...] design_preferences | Palette Cleanser (7)."""
    name = item.source_name or item.source_type
    return f"[{item.id}] {item.category.value} | {name} ({item.importance_score})"


def format_item_compact(item: KnowledgeItem) -> str:
    """Header + summary + tags. For listings."""
    lines = [format_item_header(item)]
    if item.content_summary:
        lines.append(f"  {item.content_summary}")
    if item.tags:
        lines.append("  " + " ".join(f"#{t}" for t in item.tags))
    return "\n".join(lines)


def format_item_full(item: KnowledgeItem) -> str:
    """Header + source + tags + full content."""
    lines = [format_item_header(item)]
    source = f"{item.source_type}:{item.source_id}" if item.source_id else item.source_type
    lines.append(f"  source {source} | by {item.extracted_by}")
    if item.tags:
        lines.append("  " + " ".join(f"#{t}" for t in item.tags))
    if not item.is_current:
        lines.append("  [SUPERSEDED]")
    lines.append(f"  {item.content}")
    return "\n".join(lines)


def format_queue_entry(entry: ExtractionQueueEntry) -> str:
    """Format: [id] pending p9 website_content https://... (attempts 1)."""
    line = (
        f"[{entry.id}] {entry.status.value} p{entry.priority}"
        f" {entry.source_type} {entry.source_id}"
    )
    if entry.attempts:
        line += f" (attempts {entry.attempts})"
    if entry.error_message:
        line += f"\n  error: {entry.error_message}"
    return line


def format_queue_stats(stats: QueueStats) -> str:
    """Format: pending 2 | processing 0 | completed 5 | failed 1."""
    return (
        f"pending {stats.pending} | processing {stats.processing}"
        f" | completed {stats.completed} | failed {stats.failed}"
    )


def format_drain_report(report: QueueDrainReport) -> str:
    """Totals line followed by one line per attempted entry."""
    if not report.processed:
        return "Queue empty: nothing to process."
    lines = [
        f"Processed {report.processed} queue entr{'y' if report.processed == 1 else 'ies'}:"
        f" {report.completed} completed, {report.failed} failed"
    ]
    for entry in report.entries:
        line = f"  [{entry.id}] {entry.status.value} {entry.source_type} {entry.source_id}"
        if entry.error:
            line += f" ({entry.error})"
        elif entry.items_created:
            line += f" -> {entry.items_created} item(s)"
        lines.append(line)
    return "\n".join(lines)


def format_extraction_result(result: ExtractionResult) -> str:
    """Summarize one extraction call."""
    if result.queued is not None:
        return f"Queued {result.queued.url} for website extraction (entry {result.queued.entry_id})"

    lines: list[str] = []
    if result.items or result.drain is None:
        source = f"{result.source_type} {result.source_id or ''}".rstrip()
        lines.append(f"Extracted {len(result.items)} item(s) from {source}")
        lines.extend(format_item_compact(item) for item in result.items)
    if result.drain is not None:
        lines.append(format_drain_report(result.drain))
    if not result.cache_invalidated:
        lines.append("Warning: context cache was not invalidated")
    return "\n".join(lines)


def format_item_list(items: list[KnowledgeItem], header: str | None = None) -> str:
    """Count + category counts + compact items separated by blank lines."""
    if not items:
        return "No knowledge items found."
    counts: dict[str, int] = {}
    for item in items:
        counts[item.category.value] = counts.get(item.category.value, 0) + 1

    lines: list[str] = []
    if header:
        lines.append(header)
    lines.append(f"{len(items)} item(s)")
    lines.append(", ".join(f"{cat} {n}" for cat, n in sorted(counts.items())))
    lines.append("")
    lines.append("\n\n".join(format_item_compact(item) for item in items))
    return "\n".join(lines)


def format_context(result: ProjectContext) -> str:
    """Render a context document as an outline."""
    data = result.context
    project = data.get("project") or {}
    stats = data.get("statistics") or {}
    meta = data.get("context_metadata") or {}

    origin = "cached" if result.cached else "fresh"
    lines = [
        f"{meta.get('type', 'context')} for {project.get('name') or project.get('id')} ({origin})",
        f"{stats.get('total_knowledge_items', 0)} item(s),"
        f" avg importance {stats.get('average_importance', 0):.1f}",
    ]
    if project.get("description"):
        lines.append(project["description"])

    for category, entries in (data.get("knowledge") or {}).items():
        lines.append("")
        lines.append(f"## {category}")
        for entry in entries:
            lines.append(f"- {entry.get('summary') or entry.get('content')}")
    return "\n".join(lines)
