"""Tests for category, priority and tag heuristics."""

import pytest

from aloa_knowledge.extract.heuristics import (
    COMMUNICATION_CATEGORY_MAP,
    categorize_file,
    categorize_label,
    category_for_communication,
    file_tags,
    importance_for_field,
    keyword_tags,
    labeled_summary,
    priority_to_score,
)
from aloa_knowledge.models.knowledge import KnowledgeCategory


class TestCommunicationCategories:
    @pytest.mark.parametrize(
        ("category", "expected"),
        [
            ("review_request", "requirements"),
            ("approval_request", "decision"),
            ("feedback_request", "feedback"),
            ("document_request", "assets"),
            ("decision_request", "decision"),
            ("action_required", "tasks"),
            ("change_request", "change"),
            ("issue_report", "issue"),
            ("question", "question"),
            ("new_requirement", "requirements"),
            ("status_inquiry", "status"),
            ("general", "general"),
        ],
    )
    def test_mapping(self, category, expected):
        assert category_for_communication(category) == expected

    @pytest.mark.parametrize("category", [None, "", "invoice", "REVIEW_REQUEST"])
    def test_unknown_falls_back_to_general(self, category):
        assert category_for_communication(category) is KnowledgeCategory.GENERAL

    def test_targets_are_known_categories(self):
        assert all(isinstance(c, KnowledgeCategory) for c in COMMUNICATION_CATEGORY_MAP.values())


class TestPriorityScore:
    def test_known_priorities(self):
        assert priority_to_score("urgent") == 10
        assert priority_to_score("high") == 8
        assert priority_to_score("medium") == 5
        assert priority_to_score("low") == 3

    @pytest.mark.parametrize("priority", [None, "", "whenever"])
    def test_default(self, priority):
        assert priority_to_score(priority) == 5

    def test_ordering(self):
        scores = [priority_to_score(p) for p in ("urgent", "high", "medium", "low")]
        assert scores == sorted(scores, reverse=True)
        assert priority_to_score("medium") == priority_to_score(None)

    def test_case_insensitive(self):
        assert priority_to_score("URGENT") == 10


class TestCategorizeLabel:
    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("Brand colors", KnowledgeCategory.BRAND_IDENTITY),
            ("Preferred design style", KnowledgeCategory.DESIGN_PREFERENCES),
            ("UI inspiration", KnowledgeCategory.DESIGN_PREFERENCES),
            ("Tone of voice", KnowledgeCategory.CONTENT_STRATEGY),
            ("Must-have features", KnowledgeCategory.FUNCTIONALITY),
            ("Target audience", KnowledgeCategory.TARGET_AUDIENCE),
            ("Business goals", KnowledgeCategory.BUSINESS_GOALS),
            ("Tech stack", KnowledgeCategory.TECHNICAL_SPECS),
            ("Sites you admire (examples)", KnowledgeCategory.INSPIRATION),
            ("Anything else?", KnowledgeCategory.GENERAL),
        ],
    )
    def test_keywords(self, label, expected):
        assert categorize_label(label) is expected

    def test_short_keyword_needs_whole_word(self):
        # "ui" inside "requirement" must not read as a design label
        assert categorize_label("Build requirements") is KnowledgeCategory.FUNCTIONALITY


class TestCategorizeFile:
    def test_brand_guide_content_wins(self):
        category = categorize_file("notes.txt", "Our Brand Guide v2")
        assert category is KnowledgeCategory.BRAND_IDENTITY

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("brand.pdf", KnowledgeCategory.BRAND_IDENTITY),
            ("requirements.md", KnowledgeCategory.FUNCTIONALITY),
            ("homepage-copy.txt", KnowledgeCategory.CONTENT_STRATEGY),
            ("wireframe.png", KnowledgeCategory.DESIGN_PREFERENCES),
            ("meeting.txt", KnowledgeCategory.DOCUMENTATION),
        ],
    )
    def test_by_name(self, name, expected):
        assert categorize_file(name, "") is expected


class TestImportance:
    def test_required_label_is_top(self):
        assert importance_for_field("Required pages", "text") == 10

    def test_brand_label(self):
        assert importance_for_field("Brand colors", "text") == 9

    def test_field_type_fallbacks(self):
        assert importance_for_field("Upload", "file") == 7
        assert importance_for_field("Notes", "textarea") == 6
        assert importance_for_field("Pick one", "select") == 5


def test_labeled_summary_capped():
    summary = labeled_summary("Notes", "x" * 500)
    assert summary.startswith("Notes: ")
    assert len(summary) <= 180


def test_keyword_tags():
    assert keyword_tags("Style", "Modern, clean and responsive") == [
        "responsive",
        "modern",
        "clean",
    ]


def test_file_tags():
    assert file_tags("README.md") == ["file", "document", "markdown", "readme"]
    assert file_tags("api-spec.json") == ["file", "document", "json", "specification"]
