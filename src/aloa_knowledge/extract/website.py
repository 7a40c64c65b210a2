"""Client website parsing for queued ``website_content`` extractions."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from aloa_knowledge.models.knowledge import KnowledgeCategory, KnowledgeFragment

logger = logging.getLogger(__name__)

_MAX_CONTENT_SAMPLE = 2000

_COLOR_RE = re.compile(r"(?<![\w-])color:\s*([^;]+)", re.IGNORECASE)
_FONT_RE = re.compile(r"font-family:\s*([^;]+)", re.IGNORECASE)

_PURPOSE_RULES: list[tuple[tuple[str, ...], str]] = [
    (("product", "shop", "cart"), "e-commerce"),
    (("blog", "article", "post"), "blog"),
    (("portfolio", "work", "project"), "portfolio"),
    (("about", "service", "team"), "corporate"),
]


@dataclass
class PageContent:
    """Text and design signals pulled out of one HTML page."""

    title: str = ""
    description: str = ""
    keywords: str = ""
    headings: dict[str, list[str]] = field(
        default_factory=lambda: {"h1": [], "h2": [], "h3": []}
    )
    navigation: list[dict[str, str]] = field(default_factory=list)
    main_content: str = ""
    images: list[dict[str, str]] = field(default_factory=list)
    colors: list[str] = field(default_factory=list)
    fonts: list[str] = field(default_factory=list)
    structured_data: list[Any] = field(default_factory=list)


def _meta(soup: BeautifulSoup, name: str) -> str:
    tag = soup.find("meta", attrs={"name": name})
    content = tag.get("content") if tag else None
    return str(content).strip() if content else ""


def _append_unique(target: list[str], value: str) -> None:
    if value and value not in target:
        target.append(value)


def parse_html(html: str) -> PageContent:
    """Extract title, meta, headings, navigation, body text and inline styles."""
    soup = BeautifulSoup(html, "html.parser")
    page = PageContent()

    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            page.structured_data.append(json.loads(script.string or ""))
        except ValueError:
            logger.debug("Skipping malformed ld+json block")

    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    title = soup.title.get_text(strip=True) if soup.title else ""
    if not title and soup.h1:
        title = soup.h1.get_text(strip=True)
    page.title = title
    page.description = _meta(soup, "description")
    page.keywords = _meta(soup, "keywords")

    for level in ("h1", "h2", "h3"):
        page.headings[level] = [h.get_text(strip=True) for h in soup.find_all(level)]

    for link in soup.select("nav a, header a"):
        text = link.get_text(strip=True)
        href = link.get("href")
        if text and href:
            page.navigation.append({"text": text, "href": str(href)})

    main_parts = [
        el.get_text(" ", strip=True)
        for el in soup.select('main, article, [role="main"], .content, #content')
    ]
    page.main_content = "\n".join(p for p in main_parts if p)
    if not page.main_content and soup.body:
        page.main_content = soup.body.get_text(" ", strip=True)

    for img in soup.find_all("img"):
        src = img.get("src")
        if src:
            page.images.append({"src": str(src), "alt": str(img.get("alt") or "")})

    for el in soup.select("[style]"):
        style = str(el.get("style") or "")
        for match in _COLOR_RE.findall(style):
            _append_unique(page.colors, match.strip())
        for match in _FONT_RE.findall(style):
            _append_unique(page.fonts, match.strip())

    return page


def analyze_page(page: PageContent) -> dict[str, Any]:
    """Structural summary and a guess at the site's purpose."""
    text = page.main_content.lower()
    purpose = None
    for keywords, label in _PURPOSE_RULES:
        if any(k in text for k in keywords):
            purpose = label
            break
    return {
        "hasNavigation": bool(page.navigation),
        "pageCount": len(page.navigation),
        "hasStructuredData": bool(page.structured_data),
        "imageCount": len(page.images),
        "hasColorScheme": bool(page.colors),
        "hasFonts": bool(page.fonts),
        "contentLength": len(page.main_content),
        "headingStructure": {
            "h1Count": len(page.headings["h1"]),
            "h2Count": len(page.headings["h2"]),
            "h3Count": len(page.headings["h3"]),
        },
        "estimatedPurpose": purpose,
        "primaryColors": page.colors[:5],
        "primaryFonts": page.fonts[:3],
    }


def website_fragments(url: str, page: PageContent) -> list[KnowledgeFragment]:
    """Metadata, navigation, design, content and analysis fragments for a site."""
    host = urlparse(url).hostname or url
    site = page.title or "Website"
    analysis = analyze_page(page)
    purpose = analysis["estimatedPurpose"]
    fragments: list[KnowledgeFragment] = []

    def add(suffix: str, **kwargs: Any) -> None:
        fragments.append(
            KnowledgeFragment(
                source_id=url, source_name=f"{site} - {suffix}", source_url=url, **kwargs
            )
        )

    if page.title or page.description:
        add(
            "Metadata",
            content_type="structured_data",
            content=json.dumps(
                {"title": page.title, "description": page.description, "keywords": page.keywords}
            ),
            content_summary=f"Website metadata from {host}",
            category=KnowledgeCategory.BUSINESS_GOALS,
            tags=["website", "metadata", "seo"],
            importance_score=9,
            extraction_confidence=0.95,
        )

    if page.navigation:
        add(
            "Navigation",
            content_type="structured_data",
            content=json.dumps(page.navigation),
            content_summary=f"Site structure with {len(page.navigation)} navigation items",
            category=KnowledgeCategory.FUNCTIONALITY,
            tags=["navigation", "sitemap", "structure"],
            importance_score=8,
            extraction_confidence=0.9,
        )

    if page.colors or page.fonts:
        add(
            "Design Elements",
            content_type="preferences",
            content=json.dumps({"colors": page.colors, "fonts": page.fonts}),
            content_summary=(
                f"Current design uses {len(page.colors)} colors"
                f" and {len(page.fonts)} font families"
            ),
            category=KnowledgeCategory.DESIGN_PREFERENCES,
            tags=["colors", "typography", "design"],
            importance_score=7,
            extraction_confidence=0.85,
        )

    sample = page.main_content[:_MAX_CONTENT_SAMPLE]
    if sample:
        add(
            "Content",
            content=sample,
            content_summary=(
                f"Main content from {host} ({len(page.main_content)} characters total)"
            ),
            category=KnowledgeCategory.CONTENT_STRATEGY,
            tags=[t for t in ("content", "copy", "text", purpose) if t],
            importance_score=8,
            extraction_confidence=0.9,
        )

    add(
        "Analysis",
        content_type="structured_data",
        content=json.dumps(analysis),
        content_summary=(
            f"Website analysis: {purpose or 'general'} site with {analysis['pageCount']} pages"
        ),
        category=KnowledgeCategory.TECHNICAL_SPECS,
        tags=[t for t in ("analysis", "structure", purpose) if t],
        importance_score=6,
        extraction_confidence=0.8,
    )
    return fragments
