"""Markdown normalization, title, notes and the metadata block."""

import logging
import re
from typing import Optional
from urllib.parse import urlparse

from ..models.config import ConversionSettings
from ..models.results import ArticleMetadata, ConversionWarning, WarningType

logger = logging.getLogger(__name__)

EXCESS_NEWLINES = re.compile(r"\n{3,}")
HEADING_AFTER_TEXT = re.compile(r"([^\n])(\n#{1,6} )")
SPLIT_BULLETS = re.compile(r"^([*\-+] [^\n]+)\n{2,}(?=[*\-+] )", re.MULTILINE)
FENCED_BLOCK = re.compile(r"(^```[^\n]*\n.*?^```[ \t]*$)", re.MULTILINE | re.DOTALL)

PLACEHOLDERS = ("title", "url", "date", "author", "siteName", "excerpt")

IFRAME_NOTE = (
    "\n\n---\n> **Note:** This page contains {count} cross-origin iframe(s) that could not be "
    "accessed due to browser security policies. Some content may be missing. Links to these "
    "iframes have been preserved where possible.\n"
)


def normalize_markdown(markdown: str) -> str:
    """Collapse blank lines and fix heading and list spacing outside code fences."""
    # Odd indices of the split are the fenced blocks themselves
    parts = FENCED_BLOCK.split(markdown)
    return "".join(part if index % 2 else _normalize_prose(part) for index, part in enumerate(parts))


def _normalize_prose(markdown: str) -> str:
    markdown = EXCESS_NEWLINES.sub("\n\n", markdown)
    markdown = HEADING_AFTER_TEXT.sub(r"\1\n\2", markdown)
    return SPLIT_BULLETS.sub(r"\1\n", markdown)


def format_metadata(
    template: str,
    metadata: Optional[ArticleMetadata],
    url: str,
    page_title: str = "",
) -> str:
    """
    Render a metadata template.

    Known placeholders are replaced everywhere they occur; anything else in
    braces is left as written.

    Args:
        template: Template such as ``---\\nSource: [{title}]({url})``
        metadata: Article metadata, if the extractor produced any
        url: Document URL
        page_title: Document title used when metadata has none

    Returns:
        Rendered block, or a plain source line if rendering fails
    """
    try:
        values = {
            "title": (metadata.title if metadata else "") or page_title or "Untitled",
            "url": url,
            "date": metadata.published_time if metadata else "",
            "author": metadata.author if metadata else "",
            "siteName": (metadata.site_name if metadata else "") or urlparse(url).hostname or "",
            "excerpt": metadata.excerpt if metadata else "",
        }
        formatted = template
        for key in PLACEHOLDERS:
            formatted = formatted.replace("{" + key + "}", values[key])
        return formatted
    except Exception as e:
        logger.error(f"Error formatting metadata: {e}")
        return f"---\nSource: [{page_title or 'Untitled'}]({url})"


class PostProcessor:
    """
    Final pass over converted Markdown.

    Prepends the page title, appends a note for unreachable iframes,
    normalizes spacing and appends the metadata block. Normalization is
    idempotent.

    Example:
        processor = PostProcessor()
        markdown = processor.process(raw, settings, metadata, url, page_title)
    """

    def process(
        self,
        markdown: str,
        settings: ConversionSettings,
        metadata: Optional[ArticleMetadata],
        url: str,
        page_title: str = "",
        warnings: Optional[list[ConversionWarning]] = None,
    ) -> str:
        if settings.include_title:
            title = page_title.strip()
            if title:
                markdown = f"# {title}\n\n{markdown}"

        markdown += self.iframe_note(warnings or [])
        markdown = normalize_markdown(markdown)

        if settings.include_metadata and settings.metadata_format:
            block = format_metadata(settings.metadata_format, metadata, url, page_title)
            if block:
                markdown = f"{markdown}\n\n{block}"

        return markdown

    @staticmethod
    def iframe_note(warnings: list[ConversionWarning]) -> str:
        for warning in warnings:
            if warning.type == WarningType.CROSS_ORIGIN_IFRAME:
                logger.debug("Added iframe warning", extra={"data": {"count": warning.count}})
                return IFRAME_NOTE.format(count=warning.count)
        return ""
