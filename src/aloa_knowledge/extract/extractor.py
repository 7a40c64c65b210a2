"""Extractor facade: route a source to its adapter, persist, and invalidate the cache."""

import logging
from typing import assert_never

from aloa_knowledge.config import get_queue_batch_size, get_queue_max_attempts
from aloa_knowledge.db.backend import Database
from aloa_knowledge.errors import (
    ExtractionError,
    InvalidExtractionRequest,
    SourceNotFoundError,
    UnsupportedSourceTypeError,
)
from aloa_knowledge.extract.adapters import (
    applet_interaction_fragments,
    communication_fragment,
    current_site_urls,
    file_document_fragment,
    file_kind,
    form_response_fragments,
    project_metadata_fragments,
)
from aloa_knowledge.extract.fetch import ContentFetcher
from aloa_knowledge.extract.website import parse_html, website_fragments
from aloa_knowledge.models.extraction import ExtractionResult
from aloa_knowledge.models.knowledge import COMMUNICATION_SOURCE, KnowledgeItem, SourceType
from aloa_knowledge.models.queue import (
    DrainedEntry,
    QueueDrainReport,
    QueuedMarker,
    QueueStatus,
)
from aloa_knowledge.store.context_cache import ContextCache
from aloa_knowledge.store.knowledge_store import KnowledgeStore
from aloa_knowledge.store.queue_store import WEBSITE_PRIORITY, QueueStore
from aloa_knowledge.store.source_store import SourceStore

logger = logging.getLogger(__name__)

# Source types a queue entry can carry and the drain knows how to run.
_QUEUE_RUNNABLE = frozenset(
    {
        SourceType.FORM_RESPONSE,
        SourceType.APPLET_INTERACTION,
        SourceType.FILE_DOCUMENT,
        SourceType.PROJECT_METADATA,
        SourceType.WEBSITE_CONTENT,
    }
)


def parse_source_type(value: str | SourceType) -> SourceType:
    """Parse a source type string, raising UnsupportedSourceTypeError for unknown values."""
    try:
        return SourceType(value)
    except ValueError:
        raise UnsupportedSourceTypeError(value) from None


def _require_source_id(source_type: SourceType, source_id: str | None) -> str:
    if not source_id:
        raise InvalidExtractionRequest(f"sourceId is required for {source_type}")
    return source_id


class KnowledgeExtractor:
    """Turns project artifacts into knowledge items and keeps the queue's books.

    All collaborators share one database handle. Nothing runs in the
    background: queue entries are processed only when ``extract`` is
    asked to drain them.
    """

    def __init__(
        self,
        db: Database,
        fetcher: ContentFetcher | None = None,
        *,
        batch_size: int | None = None,
        max_attempts: int | None = None,
    ):
        """Initialize stores over ``db`` and an HTTP fetcher for remote content."""
        self.sources = SourceStore(db)
        self.knowledge = KnowledgeStore(db)
        self.queue = QueueStore(db)
        self.cache = ContextCache(db)
        self.fetcher = fetcher or ContentFetcher()
        self.batch_size = batch_size if batch_size is not None else get_queue_batch_size()
        self.max_attempts = max_attempts if max_attempts is not None else get_queue_max_attempts()

    async def extract(
        self,
        source_type: str | SourceType,
        source_id: str | None,
        project_id: str,
        *,
        retry_failed: bool = False,
    ) -> ExtractionResult:
        """Run one extraction request.

        Raises UnsupportedSourceTypeError before touching the database when
        ``source_type`` is unknown, and InvalidExtractionRequest when the ids
        are missing or not strings. On success the project's context cache
        is dropped.
        """
        kind = parse_source_type(source_type)
        if not project_id:
            raise InvalidExtractionRequest("projectId is required")
        if not isinstance(project_id, str):
            raise InvalidExtractionRequest("projectId must be a string")
        if source_id is not None and not isinstance(source_id, str):
            raise InvalidExtractionRequest("sourceId must be a string")

        result = ExtractionResult(
            project_id=project_id, source_type=kind.value, source_id=source_id
        )
        match kind:
            case (
                SourceType.FORM_RESPONSE
                | SourceType.APPLET_INTERACTION
                | SourceType.FILE_DOCUMENT
            ):
                sid = _require_source_id(kind, source_id)
                result.items = await self._extract_tracked(kind, project_id, sid)
            case SourceType.PROJECT_METADATA:
                sid = source_id or project_id
                result.source_id = sid
                result.items = await self._extract_tracked(kind, project_id, sid)
                result.drain = await self.process_queue(project_id)
            case SourceType.WEBSITE_CONTENT:
                url = _require_source_id(kind, source_id)
                result.queued = await self.queue_website(project_id, url)
            case SourceType.PROCESS_QUEUE:
                result.drain = await self.process_queue(project_id, retry_failed=retry_failed)
            case _:
                assert_never(kind)

        result.cache_invalidated = await self.invalidate_cache(project_id)
        return result

    async def extract_communication(self, communication_id: str) -> ExtractionResult:
        """Record the client-authored content of a communication thread."""
        communication = await self.sources.get_communication(communication_id)
        if communication is None:
            raise SourceNotFoundError(COMMUNICATION_SOURCE, communication_id)
        project_id = communication["project_id"]
        messages = await self.sources.get_communication_messages(communication_id)

        result = ExtractionResult(
            project_id=project_id, source_type=COMMUNICATION_SOURCE, source_id=communication_id
        )
        fragment = communication_fragment(communication, messages)
        if fragment is None:
            logger.info("Communication %s has no client content to record", communication_id)
            return result

        result.items = await self.knowledge.replace_source(
            project_id, COMMUNICATION_SOURCE, [fragment], [communication_id]
        )
        result.cache_invalidated = await self.invalidate_cache(project_id)
        return result

    async def queue_website(self, project_id: str, url: str) -> QueuedMarker:
        """Queue a client website for extraction on the next drain."""
        entry = await self.queue.enqueue(
            project_id,
            SourceType.WEBSITE_CONTENT.value,
            url,
            priority=WEBSITE_PRIORITY,
            source_url=url,
        )
        return QueuedMarker(url=url, entry_id=entry.id)

    async def process_queue(
        self, project_id: str, *, retry_failed: bool = False
    ) -> QueueDrainReport:
        """Attempt a project's pending entries in priority, then age, order.

        Entries are read once up front. A failing entry is marked failed and
        the loop moves on; earlier successes stand.
        """
        if retry_failed:
            await self.queue.requeue_failed(project_id, self.max_attempts)

        entries = await self.queue.pending(project_id, self.batch_size, self.max_attempts)
        report = QueueDrainReport()
        for entry in entries:
            report.processed += 1
            await self.queue.mark_processing(entry.id)
            try:
                items = await self._run_queue_entry(project_id, entry.source_type, entry.source_id)
            except Exception as e:
                logger.warning(
                    "Queue entry %s (%s %s) failed",
                    entry.id,
                    entry.source_type,
                    entry.source_id,
                    exc_info=True,
                )
                await self.queue.mark_failed(entry.id, str(e))
                report.failed += 1
                report.entries.append(
                    DrainedEntry(
                        id=entry.id,
                        source_type=entry.source_type,
                        source_id=entry.source_id,
                        status=QueueStatus.FAILED,
                        error=str(e),
                    )
                )
                continue

            await self.queue.mark_completed(entry.id)
            report.completed += 1
            report.entries.append(
                DrainedEntry(
                    id=entry.id,
                    source_type=entry.source_type,
                    source_id=entry.source_id,
                    status=QueueStatus.COMPLETED,
                    items_created=len(items),
                )
            )

        if entries:
            logger.info(
                "Drained %d queue entries for project %s: %d completed, %d failed",
                report.processed,
                project_id,
                report.completed,
                report.failed,
            )
        return report

    async def close(self) -> None:
        """Release the HTTP fetcher."""
        await self.fetcher.close()

    async def invalidate_cache(self, project_id: str) -> bool:
        """Drop the project's cached AI context; failures are logged, not raised."""
        try:
            await self.cache.invalidate(project_id)
        except Exception:
            logger.warning("Failed to invalidate context cache for %s", project_id, exc_info=True)
            return False
        return True

    # -- internals --

    async def _extract_tracked(
        self, kind: SourceType, project_id: str, source_id: str
    ) -> list[KnowledgeItem]:
        """Extract a synchronous source, mirroring the outcome onto its queue entry."""
        try:
            items = await self._extract_source(kind, project_id, source_id)
        except Exception as e:
            logger.warning("Extraction of %s %s failed: %s", kind, source_id, e)
            await self.queue.fail_source(project_id, kind.value, source_id, str(e))
            raise
        await self.queue.complete_source(project_id, kind.value, source_id)
        return items

    async def _run_queue_entry(
        self, project_id: str, source_type: str, source_id: str
    ) -> list[KnowledgeItem]:
        try:
            kind = SourceType(source_type)
        except ValueError:
            kind = None
        if kind not in _QUEUE_RUNNABLE:
            raise ExtractionError(f"No queue handler for source type {source_type}")
        return await self._extract_source(kind, project_id, source_id)

    async def _extract_source(
        self, kind: SourceType, project_id: str, source_id: str
    ) -> list[KnowledgeItem]:
        """Fetch, adapt and persist one source. Raises SourceNotFoundError if absent."""
        match kind:
            case SourceType.FORM_RESPONSE:
                response = await self.sources.get_form_response(source_id)
                if response is None:
                    raise SourceNotFoundError(kind.value, source_id)
                fragments = form_response_fragments(response)
                return await self.knowledge.replace_source(
                    project_id, kind.value, fragments, [source_id]
                )

            case SourceType.APPLET_INTERACTION:
                interaction = await self.sources.get_applet_interaction(source_id)
                if interaction is None:
                    raise SourceNotFoundError(kind.value, source_id)
                fragments = applet_interaction_fragments(interaction)
                items = await self.knowledge.replace_source(
                    project_id, kind.value, fragments, [source_id]
                )
                for url in current_site_urls(interaction):
                    await self.queue_website(project_id, url)
                return items

            case SourceType.FILE_DOCUMENT:
                file = await self.sources.get_file(source_id)
                if file is None:
                    raise SourceNotFoundError(kind.value, source_id)
                body = None
                location = file.get("url") or file.get("storage_path")
                if file_kind(file) != "binary" and location:
                    body = await self.fetcher.fetch_text(location)
                fragment = file_document_fragment(file, body)
                if fragment is None:
                    logger.info("No content extracted from file %s", source_id)
                return await self.knowledge.replace_source(
                    project_id, kind.value, [fragment] if fragment else [], [source_id]
                )

            case SourceType.PROJECT_METADATA:
                project = await self.sources.get_project(project_id)
                if project is None:
                    raise SourceNotFoundError(kind.value, project_id)
                fragments = project_metadata_fragments(project)
                # Fragments carry derived ids, so supersede the whole source type
                return await self.knowledge.replace_source(project_id, kind.value, fragments)

            case SourceType.WEBSITE_CONTENT:
                html = await self.fetcher.fetch_text(source_id)
                fragments = website_fragments(source_id, parse_html(html))
                return await self.knowledge.replace_source(
                    project_id, kind.value, fragments, [source_id]
                )

            case SourceType.PROCESS_QUEUE:
                raise InvalidExtractionRequest("process_queue is not a knowledge source")

            case _:
                assert_never(kind)

