"""Static lookup tables and scoring rules shared by the source adapters."""

import re

from aloa_knowledge.models.knowledge import KnowledgeCategory, truncate_summary

COMMUNICATION_CATEGORY_MAP: dict[str, KnowledgeCategory] = {
    "review_request": KnowledgeCategory.REQUIREMENTS,
    "approval_request": KnowledgeCategory.DECISION,
    "feedback_request": KnowledgeCategory.FEEDBACK,
    "document_request": KnowledgeCategory.ASSETS,
    "decision_request": KnowledgeCategory.DECISION,
    "action_required": KnowledgeCategory.TASKS,
    "change_request": KnowledgeCategory.CHANGE,
    "issue_report": KnowledgeCategory.ISSUE,
    "question": KnowledgeCategory.QUESTION,
    "new_requirement": KnowledgeCategory.REQUIREMENTS,
    "status_inquiry": KnowledgeCategory.STATUS,
    "general": KnowledgeCategory.GENERAL,
}

PRIORITY_SCORES: dict[str, int] = {
    "urgent": 10,
    "high": 8,
    "medium": 5,
    "low": 3,
}
DEFAULT_PRIORITY_SCORE = 5

# First matching rule wins, so order matters.
_LABEL_CATEGORY_RULES: list[tuple[tuple[str, ...], KnowledgeCategory]] = [
    (("brand", "logo", "identity"), KnowledgeCategory.BRAND_IDENTITY),
    (("design", "style", "ui", "ux"), KnowledgeCategory.DESIGN_PREFERENCES),
    (("content", "tone", "voice", "message"), KnowledgeCategory.CONTENT_STRATEGY),
    (("feature", "function", "requirement"), KnowledgeCategory.FUNCTIONALITY),
    (("audience", "user", "customer", "demographic"), KnowledgeCategory.TARGET_AUDIENCE),
    (("goal", "objective", "kpi", "metric"), KnowledgeCategory.BUSINESS_GOALS),
    (("technical", "tech", "platform", "integration"), KnowledgeCategory.TECHNICAL_SPECS),
    (("feedback", "revision", "comment"), KnowledgeCategory.FEEDBACK),
    (("inspiration", "reference", "example"), KnowledgeCategory.INSPIRATION),
]

_FILE_CATEGORY_RULES: list[tuple[tuple[str, ...], KnowledgeCategory]] = [
    (("brand",), KnowledgeCategory.BRAND_IDENTITY),
    (("requirement", "spec"), KnowledgeCategory.FUNCTIONALITY),
    (("content", "copy"), KnowledgeCategory.CONTENT_STRATEGY),
    (("design", "wireframe", "mockup"), KnowledgeCategory.DESIGN_PREFERENCES),
]

_STYLE_KEYWORDS = (
    "responsive",
    "mobile",
    "desktop",
    "modern",
    "minimal",
    "clean",
    "professional",
    "friendly",
    "corporate",
    "creative",
    "bold",
    "colorful",
    "dark",
    "light",
    "gradient",
    "animation",
    "interactive",
    "e-commerce",
    "blog",
    "portfolio",
    "landing",
    "dashboard",
)


_WORD_RE = re.compile(r"[a-z0-9]+")


def _has_keyword(text: str, keywords: tuple[str, ...]) -> bool:
    """Substring match, except short keywords (ui, ux, kpi) must be whole words."""
    words: set[str] | None = None
    for keyword in keywords:
        if len(keyword) > 3:
            if keyword in text:
                return True
            continue
        if words is None:
            words = set(_WORD_RE.findall(text))
        if keyword in words:
            return True
    return False


def category_for_communication(category: str | None) -> KnowledgeCategory:
    """Map a communication's request category to a knowledge category."""
    return COMMUNICATION_CATEGORY_MAP.get(category or "", KnowledgeCategory.GENERAL)


def priority_to_score(priority: str | None) -> int:
    """Map a priority label to an importance score (urgent=10 ... low=3, default 5)."""
    return PRIORITY_SCORES.get((priority or "").lower(), DEFAULT_PRIORITY_SCORE)


def categorize_label(label: str) -> KnowledgeCategory:
    """Categorize a form answer by keywords in its field label."""
    lowered = label.lower()
    for keywords, category in _LABEL_CATEGORY_RULES:
        if _has_keyword(lowered, keywords):
            return category
    return KnowledgeCategory.GENERAL


def categorize_file(file_name: str, content: str) -> KnowledgeCategory:
    """Categorize an uploaded document by its name, then by brand-guide content."""
    name = file_name.lower()
    if "brand guide" in content.lower():
        return KnowledgeCategory.BRAND_IDENTITY
    for keywords, category in _FILE_CATEGORY_RULES:
        if any(k in name for k in keywords):
            return category
    return KnowledgeCategory.DOCUMENTATION


def importance_for_field(label: str, field_type: str | None) -> int:
    """Score a form answer's importance from its label and field type."""
    lowered = label.lower()
    if any(k in lowered for k in ("must", "required", "critical")):
        return 10
    if any(k in lowered for k in ("brand", "goal", "objective")):
        return 9
    if any(k in lowered for k in ("preference", "style")):
        return 7
    if field_type in ("file", "url"):
        return 7
    if field_type in ("textarea", "text"):
        return 6
    return 5


def labeled_summary(label: str, content: str) -> str:
    """``label: content`` capped at the summary length."""
    return truncate_summary(f"{label}: {content}")


def keyword_tags(label: str, content: str) -> list[str]:
    """Style keywords found in a label/content pair."""
    text = f"{label} {content}".lower()
    return [k for k in _STYLE_KEYWORDS if k in text]


def file_tags(file_name: str) -> list[str]:
    """Tags derived from an uploaded file's name."""
    name = file_name.lower()
    tags = ["file", "document"]
    if name.endswith(".md"):
        tags.append("markdown")
    if name.endswith(".txt"):
        tags.append("text")
    if name.endswith(".json"):
        tags.append("json")
    if name.endswith(".csv"):
        tags.append("csv")
    if "readme" in name:
        tags.append("readme")
    if "spec" in name:
        tags.append("specification")
    return tags
