"""Tests for the extraction queue store."""

from datetime import UTC, datetime, timedelta

import pytest

from aloa_knowledge.models.queue import QueueStatus


@pytest.mark.asyncio
async def test_enqueue_defaults(queue):
    entry = await queue.enqueue("proj-1", "website_content", "https://acme.test")
    assert entry.status is QueueStatus.PENDING
    assert entry.priority == 5
    assert entry.attempts == 0
    assert entry.created_at is not None


@pytest.mark.asyncio
async def test_enqueue_existing_source_returns_original(queue):
    first = await queue.enqueue("proj-1", "website_content", "https://acme.test", priority=9)
    await queue.mark_failed(first.id, "boom")

    again = await queue.enqueue("proj-1", "website_content", "https://acme.test", priority=1)

    assert again.id == first.id
    assert again.priority == 9
    assert again.status is QueueStatus.FAILED


@pytest.mark.asyncio
async def test_same_source_other_project_is_separate(queue):
    a = await queue.enqueue("proj-1", "website_content", "https://acme.test")
    b = await queue.enqueue("proj-2", "website_content", "https://acme.test")
    assert a.id != b.id


@pytest.mark.asyncio
async def test_pending_order(queue):
    base = datetime(2026, 2, 1, tzinfo=UTC)
    await queue.enqueue("proj-1", "file_document", "old-low", 3, created_at=base)
    await queue.enqueue("proj-1", "file_document", "new-high", 9, created_at=base + timedelta(1))
    await queue.enqueue("proj-1", "file_document", "old-high", 9, created_at=base)

    pending = await queue.pending("proj-1")

    assert [e.source_id for e in pending] == ["old-high", "new-high", "old-low"]


@pytest.mark.asyncio
async def test_pending_limit_and_status(queue):
    entries = [await queue.enqueue("proj-1", "file_document", f"f{n}") for n in range(3)]
    await queue.mark_processing(entries[0].id)

    pending = await queue.pending("proj-1", limit=1)

    assert len(pending) == 1
    assert pending[0].id != entries[0].id


@pytest.mark.asyncio
async def test_transitions(queue):
    entry = await queue.enqueue("proj-1", "file_document", "f1")

    await queue.mark_processing(entry.id)
    assert (await queue.get(entry.id)).status is QueueStatus.PROCESSING

    await queue.mark_failed(entry.id, "timeout")
    failed = await queue.get(entry.id)
    assert failed.status is QueueStatus.FAILED
    assert failed.error_message == "timeout"
    assert failed.attempts == 1
    assert failed.processed_at is not None

    await queue.mark_completed(entry.id)
    done = await queue.get(entry.id)
    assert done.status is QueueStatus.COMPLETED
    assert done.error_message is None
    assert done.attempts == 1


@pytest.mark.asyncio
async def test_complete_and_fail_source(queue):
    await queue.enqueue("proj-1", "form_response", "resp-1")

    assert await queue.fail_source("proj-1", "form_response", "resp-1", "missing") == 1
    entry = await queue.get_by_source("proj-1", "form_response", "resp-1")
    assert entry.status is QueueStatus.FAILED
    assert entry.attempts == 1

    assert await queue.complete_source("proj-1", "form_response", "resp-1") == 1
    entry = await queue.get_by_source("proj-1", "form_response", "resp-1")
    assert entry.status is QueueStatus.COMPLETED


@pytest.mark.asyncio
async def test_complete_source_without_entry(queue):
    assert await queue.complete_source("proj-1", "form_response", "never-queued") == 0


@pytest.mark.asyncio
async def test_requeue_failed_respects_cap(queue):
    once = await queue.enqueue("proj-1", "website_content", "https://once.test")
    thrice = await queue.enqueue("proj-1", "website_content", "https://thrice.test")
    await queue.mark_failed(once.id, "err")
    for _ in range(3):
        await queue.mark_failed(thrice.id, "err")

    assert await queue.requeue_failed("proj-1", max_attempts=3) == 1

    assert (await queue.get(once.id)).status is QueueStatus.PENDING
    assert (await queue.get(thrice.id)).status is QueueStatus.FAILED


@pytest.mark.asyncio
async def test_pending_skips_exhausted_entries(queue):
    entry = await queue.enqueue("proj-1", "website_content", "https://down.test")
    await queue.mark_failed(entry.id, "err")
    await queue.mark_failed(entry.id, "err")
    # Force it back to pending to check the attempt filter alone
    await queue.db.execute(
        "UPDATE extraction_queue SET status = 'pending' WHERE id = ?", (entry.id,)
    )
    assert await queue.pending("proj-1", max_attempts=2) == []
    assert len(await queue.pending("proj-1", max_attempts=3)) == 1


@pytest.mark.asyncio
async def test_stats(queue):
    a = await queue.enqueue("proj-1", "file_document", "a")
    b = await queue.enqueue("proj-1", "file_document", "b")
    await queue.enqueue("proj-1", "file_document", "c")
    await queue.enqueue("proj-2", "file_document", "d")
    await queue.mark_completed(a.id)
    await queue.mark_failed(b.id, "err")

    stats = await queue.stats("proj-1")

    assert stats.model_dump() == {"pending": 1, "processing": 0, "completed": 1, "failed": 1}


@pytest.mark.asyncio
async def test_list_for_project(queue):
    await queue.enqueue("proj-1", "file_document", "low", 1)
    await queue.enqueue("proj-1", "file_document", "high", 9)
    await queue.enqueue("proj-2", "file_document", "other")

    entries = await queue.list_for_project("proj-1")

    assert [e.source_id for e in entries] == ["high", "low"]
