"""Protocol definitions for content conversion."""

from typing import Protocol

from ..models.config import ContentScope, ConversionSettings
from ..snapshot import PageSnapshot
from .extractor import ExtractedContent


class ContentExtractor(Protocol):
    """
    Protocol for selecting the content to convert.

    Implementations pick the working subtree for a content scope and,
    where they can, the article metadata.
    """

    def extract(self, snapshot: PageSnapshot, scope: ContentScope) -> ExtractedContent:
        """
        Extract the working subtree.

        Args:
            snapshot: Page snapshot (must not be modified)
            scope: Content scope to use

        Returns:
            ExtractedContent owning a mutable node
        """
        ...


class MarkdownConverter(Protocol):
    """
    Protocol for converting HTML to Markdown.

    Implementations convert cleaned HTML to Markdown format.
    """

    def convert(self, html: str, settings: ConversionSettings) -> str:
        """
        Convert HTML to Markdown.

        Args:
            html: Cleaned HTML content
            settings: Conversion settings

        Returns:
            Markdown string
        """
        ...


class TokenEstimator(Protocol):
    """Protocol for counting tokens in converted text."""

    def estimate(self, text: str) -> int:
        ...
