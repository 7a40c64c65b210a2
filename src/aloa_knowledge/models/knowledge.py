"""Knowledge item models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

MAX_SUMMARY_CHARS = 180
_ELLIPSIS = "..."


class SourceType(StrEnum):
    """Source kinds accepted by the extraction endpoint."""

    FORM_RESPONSE = "form_response"
    APPLET_INTERACTION = "applet_interaction"
    FILE_DOCUMENT = "file_document"
    PROJECT_METADATA = "project_metadata"
    WEBSITE_CONTENT = "website_content"
    PROCESS_QUEUE = "process_queue"


COMMUNICATION_SOURCE = "communication"


class KnowledgeCategory(StrEnum):
    """Fixed set of categories a knowledge item can be filed under."""

    # Communication categories
    REQUIREMENTS = "requirements"
    DECISION = "decision"
    FEEDBACK = "feedback"
    ASSETS = "assets"
    TASKS = "tasks"
    CHANGE = "change"
    ISSUE = "issue"
    QUESTION = "question"
    STATUS = "status"
    GENERAL = "general"
    # Artifact categories
    PROJECT_INFO = "project_info"
    TECHNICAL_SPECS = "technical_specs"
    FUNCTIONALITY = "functionality"
    DESIGN_PREFERENCES = "design_preferences"
    CONTENT_STRATEGY = "content_strategy"
    BUSINESS_GOALS = "business_goals"
    INSPIRATION = "inspiration"
    BRAND_IDENTITY = "brand_identity"
    TARGET_AUDIENCE = "target_audience"
    DOCUMENTATION = "documentation"


def truncate_summary(text: str | None, limit: int = MAX_SUMMARY_CHARS) -> str:
    """Cut text to at most ``limit`` characters, ending in an ellipsis when cut."""
    if not text:
        return ""
    text = str(text)
    if len(text) <= limit:
        return text
    return text[: limit - len(_ELLIPSIS)].rstrip() + _ELLIPSIS


class KnowledgeFragment(BaseModel):
    """Normalized output of a source adapter, not yet persisted."""

    source_id: str | None = None
    source_name: str = ""
    source_url: str | None = None
    content_type: str = "text"
    content: str
    content_summary: str = ""
    category: KnowledgeCategory = KnowledgeCategory.GENERAL
    tags: list[str] = Field(default_factory=list)
    importance_score: int = Field(default=5, ge=1, le=10)
    extraction_confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("content_summary", mode="before")
    @classmethod
    def _cap_summary(cls, value: object) -> str:
        return truncate_summary(None if value is None else str(value))


class KnowledgeItem(BaseModel):
    """A persisted knowledge item. Superseded rather than rewritten on re-extraction."""

    id: str
    project_id: str
    source_type: str
    source_id: str | None = None
    source_name: str = ""
    source_url: str | None = None
    content_type: str = "text"
    content: str
    content_summary: str = ""
    category: KnowledgeCategory = KnowledgeCategory.GENERAL
    tags: list[str] = Field(default_factory=list)
    importance_score: int = Field(default=5, ge=1, le=10)
    extracted_by: str = "system"
    extraction_confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    processed_at: datetime | None = None
    created_at: datetime | None = None
    is_current: bool = True

    @field_validator("content_summary", mode="before")
    @classmethod
    def _cap_summary(cls, value: object) -> str:
        return truncate_summary(None if value is None else str(value))
