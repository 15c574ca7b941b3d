"""HTML to Markdown conversion."""

from __future__ import annotations

import logging
import re
from typing import Any

from bs4 import NavigableString
from markdownify import ATX, MarkdownConverter

from ..errors import ConversionFailed, NoContentExtracted
from ..models.config import ConversionSettings

logger = logging.getLogger(__name__)

TRUNCATION_NOTE = "\n\n---\n*Note: Content was truncated due to size limitations.*"

LANGUAGE_CLASS = re.compile(r"language-(\S+)")


class LLMMarkdownConverter(MarkdownConverter):
    """
    markdownify converter with the llmfeeder rule set.

    ATX headings, ``-`` bullets, ``*`` emphasis and ``---`` rules, plus:

    * fenced code blocks tagged with the ``language-*`` class of the inner
      ``<code>`` element
    * pipe tables where every row containing a ``<th>`` is followed by a
      separator row (tables without ``<thead>`` still get a header)
    * tables flattened to paragraphs when ``preserve_tables`` is off
    * images dropped entirely when ``include_images`` is off
    """

    def __init__(self, preserve_tables: bool = True, include_images: bool = True, **options: Any):
        options.setdefault("heading_style", ATX)
        options.setdefault("bullets", "-")
        options.setdefault("strong_em_symbol", "*")
        super().__init__(**options)
        self.preserve_tables = preserve_tables
        self.include_images = include_images

    def convert_pre(self, el, text, parent_tags):
        code = el.find(True)
        leading = next(
            (child for child in el.contents if not (isinstance(child, NavigableString) and not child.strip())),
            None,
        )
        # Only a <pre> whose first non-blank child is <code> becomes a fenced block
        if code is None or code.name != "code" or leading is not code:
            return super().convert_pre(el, text, parent_tags)

        match = LANGUAGE_CLASS.search(" ".join(code.get("class") or []))
        language = match.group(1) if match else ""
        body = code.get_text()
        if body.endswith("\n"):
            body = body[:-1]
        return f"\n\n```{language}\n{body}\n```\n\n"

    def convert_img(self, el, text, parent_tags):
        if not self.include_images:
            return ""
        return super().convert_img(el, text, parent_tags)

    def convert_table(self, el, text, parent_tags):
        if not self.preserve_tables:
            return f"\n\n{text}\n\n"
        return f"\n\n{text.strip()}\n\n"

    def convert_tr(self, el, text, parent_tags):
        if not self.preserve_tables:
            return f"\n\n{text}\n\n"
        cells = el.find_all(["th", "td"], recursive=False)
        row = f"|{text}\n"
        if any(cell.name == "th" for cell in cells):
            row += "|" + " --- |" * len(cells) + "\n"
        return row

    def convert_td(self, el, text, parent_tags):
        if not self.preserve_tables:
            return f"\n\n{text.strip()}\n\n"
        cell = " ".join(text.strip().splitlines()).replace("|", "\\|")
        return f" {cell} |"

    convert_th = convert_td


class HtmlToMarkdown:
    """
    Converts a cleaned content tree to Markdown.

    Example:
        converter = HtmlToMarkdown()
        markdown = converter.convert(node.decode_contents(), settings)
    """

    def __init__(self, truncate_threshold: int = 100_000, large_content_warning: int = 1_000_000):
        """
        Initialize the Markdown converter.

        Args:
            truncate_threshold: Serialized size above which a failed
                conversion is retried on a truncated prefix
            large_content_warning: Serialized size that is logged as large
        """
        self._truncate_threshold = truncate_threshold
        self._large_content_warning = large_content_warning

    def convert(self, html: str, settings: ConversionSettings) -> str:
        """
        Convert HTML to Markdown.

        Args:
            html: Serialized content (inner HTML of the working node)
            settings: Conversion settings (tables and images are honoured)

        Returns:
            Markdown string, ending with a truncation note if the content
            had to be cut

        Raises:
            NoContentExtracted: Conversion produced no text
            ConversionFailed: Conversion raised and the content was too
                small to retry truncated
        """
        size = len(html)
        if size > self._large_content_warning:
            logger.warning(f"Very large content ({size:,} chars); conversion may be slow")

        converter = LLMMarkdownConverter(
            preserve_tables=settings.preserve_tables,
            include_images=settings.include_images,
        )

        try:
            markdown = converter.convert(html).strip()
        except Exception as e:
            logger.error(f"Markdown conversion failed: {e}")
            if size <= self._truncate_threshold:
                raise ConversionFailed(f"{type(e).__name__}: {e}") from e
            logger.debug(
                "Retrying conversion on truncated content",
                extra={"data": {"original": size, "kept": self._truncate_threshold}},
            )
            truncated = converter.convert(html[: self._truncate_threshold]).strip()
            return truncated + TRUNCATION_NOTE

        if not markdown:
            raise NoContentExtracted("Conversion resulted in empty markdown")

        logger.debug(
            "Conversion successful",
            extra={"data": {"markdown_length": len(markdown), "has_tables": "| --- |" in markdown}},
        )
        return markdown
