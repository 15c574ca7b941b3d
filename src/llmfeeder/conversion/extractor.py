"""Readable-content extraction: pick the working subtree and article metadata."""

import copy
import logging
from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Optional

from bs4 import BeautifulSoup, Tag
from readability import Document

from ..errors import NoContentExtracted, NoSelection
from ..models.config import ContentScope
from ..models.results import ArticleMetadata
from ..snapshot import PageSnapshot

logger = logging.getLogger(__name__)

# Tried in order when readability fails
FALLBACK_SELECTORS = [
    "main",
    "article",
    ".content",
    "#content",
]

AUTHOR_SELECTORS = [
    'meta[name="author"]',
    'meta[property="article:author"]',
    'meta[name="dcterms.creator"]',
    'meta[name="DC.creator"]',
    'meta[property="og:author"]',
]

SITE_NAME_SELECTORS = [
    'meta[property="og:site_name"]',
    'meta[name="application-name"]',
    'meta[name="apple-mobile-web-app-title"]',
]

PUBLISHED_DATE_SELECTORS = [
    'meta[property="article:published_time"]',
    'meta[name="dcterms.created"]',
    'meta[name="DC.date.created"]',
    'meta[name="date"]',
    'meta[property="og:published_time"]',
    "time[datetime]",
    "time[pubdate]",
]

EXCERPT_SELECTORS = [
    'meta[property="og:description"]',
    'meta[name="twitter:description"]',
    'meta[name="description"]',
]

# readability-lxml's placeholder for documents without a title
NO_TITLE = "[no-title]"


@dataclass
class ExtractedContent:
    """
    The working subtree chosen for a conversion.

    Attributes:
        node: Mutable content element (owned by this conversion run)
        scope: Content scope that produced it
        metadata: Article metadata, only when readability succeeded
        from_readability: True if ``node`` came from the readability pass
    """

    node: Tag
    scope: ContentScope
    metadata: Optional[ArticleMetadata] = None
    from_readability: bool = False


def fragment_container(html: str) -> Tag:
    """Parse an HTML fragment into a detached ``<div>`` container."""
    soup = BeautifulSoup(html, "lxml")
    container = soup.new_tag("div")
    source = soup.body or soup
    for child in list(source.contents):
        container.append(child.extract())
    return container


def parse_date(value: str) -> Optional[str]:
    """Parse a date string to ``YYYY-MM-DD``; None if it is not a date."""
    value = value.strip()
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(value).date().isoformat()
    except (TypeError, ValueError, IndexError):
        return None


class ReadableContentExtractor:
    """
    Selects the content subtree for a conversion.

    * ``fullPage``: the document body with scripts and styles removed
    * ``selection``: the user's selection, in a detached container
    * ``mainContent``: readability's article, falling back to common
      content containers when readability finds nothing

    Example:
        extractor = ReadableContentExtractor()
        extracted = extractor.extract(snapshot, ContentScope.MAIN_CONTENT)
        print(extracted.metadata.title if extracted.metadata else "no metadata")
    """

    def __init__(self, fallback_selectors: Optional[list[str]] = None):
        """
        Initialize the extractor.

        Args:
            fallback_selectors: Containers tried when readability fails
                (``body`` is always the last resort)
        """
        self._fallback_selectors = fallback_selectors or FALLBACK_SELECTORS

    def extract(self, snapshot: PageSnapshot, scope: ContentScope) -> ExtractedContent:
        """
        Extract the working subtree for ``scope``.

        Args:
            snapshot: Page snapshot to read from (never modified)
            scope: Content scope to use

        Returns:
            ExtractedContent with a mutable node

        Raises:
            NoSelection: Selection scope without a non-empty selection
            NoContentExtracted: No content node could be produced
        """
        if scope == ContentScope.SELECTION:
            return ExtractedContent(node=self._extract_selection(snapshot), scope=scope)

        soup = snapshot.parse()
        if scope == ContentScope.FULL_PAGE:
            return ExtractedContent(node=self._extract_full_page(soup), scope=scope)

        return self._extract_main_content(snapshot, soup)

    def _extract_full_page(self, soup: BeautifulSoup) -> Tag:
        body = soup.body
        if body is None:
            raise NoContentExtracted("Document has no body")
        # Remaining cleanup is left to the sanitizer
        for element in body.find_all(["script", "style"]):
            element.decompose()
        return body

    def _extract_selection(self, snapshot: PageSnapshot) -> Tag:
        if not snapshot.selection_html:
            raise NoSelection("No text is selected")
        container = fragment_container(snapshot.selection_html)
        if not container.get_text().strip():
            raise NoSelection("No text is selected")
        logger.debug("Selection extracted", extra={"data": {"length": len(snapshot.selection_html)}})
        return container

    def _extract_main_content(self, snapshot: PageSnapshot, soup: BeautifulSoup) -> ExtractedContent:
        try:
            # readability works on its own parse of the HTML
            document = Document(snapshot.html, url=snapshot.url)
            summary = document.summary(html_partial=True)
            title = document.short_title()
        except Exception as e:
            logger.warning(f"Readability failed for {snapshot.url}: {e}")
            return self._fallback(soup)

        container = fragment_container(summary)
        if not container.get_text().strip():
            logger.warning(f"Readability found no content in {snapshot.url}")
            return self._fallback(soup)

        if not title or title == NO_TITLE:
            title = snapshot.document_title

        metadata = ArticleMetadata(
            title=title.strip(),
            author=self._extract_author(soup),
            site_name=self._extract_site_name(soup, snapshot),
            published_time=self._extract_published_date(soup),
            excerpt=self._extract_excerpt(soup, container),
        )
        logger.debug(
            "Readability extraction succeeded",
            extra={"data": {"title": metadata.title, "length": len(summary)}},
        )
        return ExtractedContent(
            node=container,
            scope=ContentScope.MAIN_CONTENT,
            metadata=metadata,
            from_readability=True,
        )

    def _fallback(self, soup: BeautifulSoup) -> ExtractedContent:
        element: Optional[Tag] = None
        for selector in self._fallback_selectors:
            element = soup.select_one(selector)
            if element is not None:
                break
        if element is None:
            element = soup.body
        if element is None:
            raise NoContentExtracted("Could not extract main content")

        container = soup.new_tag("div")
        container.append(copy.copy(element))
        logger.debug("Fallback extraction used", extra={"data": {"element": element.name}})
        return ExtractedContent(node=container, scope=ContentScope.MAIN_CONTENT)

    @staticmethod
    def _meta_content(soup: BeautifulSoup, selectors: list[str]) -> str:
        for selector in selectors:
            tag = soup.select_one(selector)
            if tag is not None and tag.get("content"):
                return str(tag["content"]).strip()
        return ""

    def _extract_author(self, soup: BeautifulSoup) -> str:
        return self._meta_content(soup, AUTHOR_SELECTORS)

    def _extract_site_name(self, soup: BeautifulSoup, snapshot: PageSnapshot) -> str:
        return self._meta_content(soup, SITE_NAME_SELECTORS) or snapshot.hostname

    def _extract_published_date(self, soup: BeautifulSoup) -> str:
        for selector in PUBLISHED_DATE_SELECTORS:
            element = soup.select_one(selector)
            if element is None:
                continue
            raw = str(element.get("content") or element.get("datetime") or element.get_text()).strip()
            if raw:
                return parse_date(raw) or raw
        return ""

    def _extract_excerpt(self, soup: BeautifulSoup, content: Tag) -> str:
        excerpt = self._meta_content(soup, EXCERPT_SELECTORS)
        if excerpt:
            return excerpt
        paragraph = content.find("p")
        if isinstance(paragraph, Tag):
            return paragraph.get_text().strip()
        return ""
