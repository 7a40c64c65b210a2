"""AI context models."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class ContextType(StrEnum):
    """Named context documents; each but FULL_PROJECT narrows the categories."""

    FULL_PROJECT = "full_project"
    DESIGN_BRIEF = "design_brief"
    CONTENT_BRIEF = "content_brief"
    TECHNICAL_BRIEF = "technical_brief"
    BRAND_GUIDE = "brand_guide"


class ProjectContext(BaseModel):
    """A context document and whether it came from the cache."""

    context: dict[str, Any]
    cached: bool = False
    cached_at: datetime | None = None
