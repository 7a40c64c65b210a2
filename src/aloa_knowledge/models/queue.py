"""Extraction queue models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class QueueStatus(StrEnum):
    """Lifecycle of a queue entry."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ExtractionQueueEntry(BaseModel):
    """Durable record of extraction work that is pending, done, or failed."""

    id: str
    project_id: str
    source_type: str
    source_id: str
    source_url: str | None = None
    priority: int = 5
    status: QueueStatus = QueueStatus.PENDING
    attempts: int = 0
    error_message: str | None = None
    created_at: datetime | None = None
    processed_at: datetime | None = None


class QueueStats(BaseModel):
    """Entry counts per status for one project."""

    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0


class DrainedEntry(BaseModel):
    """Outcome of one entry in a queue drain."""

    id: str
    source_type: str
    source_id: str
    status: QueueStatus
    items_created: int = 0
    error: str | None = None


class QueueDrainReport(BaseModel):
    """Summary of a single pass over a project's pending queue entries."""

    processed: int = 0
    completed: int = 0
    failed: int = 0
    entries: list[DrainedEntry] = Field(default_factory=list)


class QueuedMarker(BaseModel):
    """Returned instead of items when work was only enqueued."""

    queued: bool = True
    url: str
    entry_id: str | None = None
