"""Extraction result model."""

from typing import Any

from pydantic import BaseModel, Field

from aloa_knowledge.models.knowledge import KnowledgeItem
from aloa_knowledge.models.queue import QueueDrainReport, QueuedMarker


class ExtractionResult(BaseModel):
    """Outcome of one extractor call: items, a queued marker, or a drain report."""

    project_id: str
    source_type: str
    source_id: str | None = None
    items: list[KnowledgeItem] = Field(default_factory=list)
    queued: QueuedMarker | None = None
    drain: QueueDrainReport | None = None
    cache_invalidated: bool = False

    def result_payload(self) -> Any:
        """JSON-ready ``result`` value for the HTTP response."""
        if self.queued is not None:
            return self.queued.model_dump(mode="json")
        if self.drain is not None and not self.items:
            return {"processed": True, "queue": self.drain.model_dump(mode="json")}
        payload: dict[str, Any] = {
            "items": [item.model_dump(mode="json") for item in self.items],
            "itemsCreated": len(self.items),
        }
        if self.drain is not None:
            payload["queue"] = self.drain.model_dump(mode="json")
        return payload
