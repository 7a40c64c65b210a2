"""Tests for the kb_record_communication MCP tool."""

import pytest

from aloa_knowledge.tools.kb_record_communication import register_kb_record_communication
from tests.conftest import register_and_capture, seed_communication


@pytest.fixture
def record():
    return register_and_capture(register_kb_record_communication)["kb_record_communication"]


async def test_records_client_reply(db, tool_ctx, record):
    await seed_communication(db, messages=[("Which hero?", True), ("The beach one", False)])

    result = await record(communication_id="comm-1", ctx=tool_ctx)

    assert result.startswith("Extracted 1 item(s) from communication comm-1")
    assert "change | Client Response: Homepage hero change (8)" in result


async def test_nothing_to_record(db, tool_ctx, record):
    await seed_communication(db, messages=[("Just checking in", True)])
    result = await record(communication_id="comm-1", ctx=tool_ctx)
    assert result == "Communication comm-1 has no client content to record."


async def test_client_opened_thread_without_replies(db, tool_ctx, record):
    await seed_communication(db, direction="client_to_admin", category="question")
    result = await record(communication_id="comm-1", ctx=tool_ctx)
    assert "question | Client Response: Homepage hero change" in result


async def test_missing(tool_ctx, record):
    result = await record(communication_id="nope", ctx=tool_ctx)
    assert result == "Error: communication nope not found"
