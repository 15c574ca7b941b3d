"""In-place cleanup of the working content subtree."""

import logging
from typing import Optional
from urllib.parse import urljoin

from bs4 import Tag

from ..models.config import ConversionSettings

logger = logging.getLogger(__name__)

# Elements to remove (scripts, navigation, ads, etc.)
REMOVE_SELECTORS = [
    "script",
    "style",
    "noscript",
    "nav",
    "footer",
    ".comments",
    ".ads",
    ".sidebar",
]

# Additionally removed when images are excluded
IMAGE_SELECTORS = [
    "img",
    "picture",
    "svg",
]


class HtmlSanitizer:
    """
    Removes non-content elements and normalizes URLs, in place.

    Never raises: elements that have already been removed together with an
    ancestor are skipped, and URLs that fail to resolve are left as they are.

    Example:
        sanitizer = HtmlSanitizer()
        sanitizer.clean(node, settings, base_url="https://example.com/post")
    """

    def __init__(self, remove_selectors: Optional[list[str]] = None):
        """
        Initialize the sanitizer.

        Args:
            remove_selectors: CSS selectors for elements to remove (extends defaults)
        """
        self._remove_selectors = list(REMOVE_SELECTORS)
        if remove_selectors:
            self._remove_selectors.extend(remove_selectors)

    def clean(
        self,
        node: Tag,
        settings: ConversionSettings,
        base_url: str,
        defer_iframes: bool = False,
    ) -> None:
        """
        Clean ``node`` in place.

        Args:
            node: Content subtree to clean
            settings: Conversion settings (``include_images`` is honoured)
            base_url: Base URI for resolving relative links
            defer_iframes: Keep ``iframe`` elements for later stitching
        """
        selectors = list(self._remove_selectors)
        if not defer_iframes:
            selectors.append("iframe")
        if not settings.include_images:
            selectors.extend(IMAGE_SELECTORS)

        removed = self._remove_unwanted(node, selectors)
        emptied = self._remove_empty(node)
        self.make_urls_absolute(node, base_url)

        logger.debug(
            "Content cleaned",
            extra={"data": {"removed": removed, "empty_removed": emptied}},
        )

    def _remove_unwanted(self, node: Tag, selectors: list[str]) -> int:
        """Remove elements matching any selector; returns the count removed."""
        count = 0
        for selector in selectors:
            for element in node.select(selector):
                # Already gone with an ancestor
                if element.decomposed or element.parent is None:
                    continue
                element.decompose()
                count += 1
        return count

    def _remove_empty(self, node: Tag) -> int:
        """Remove ``p``/``div`` elements with no child elements and no text."""
        empty = [
            element
            for element in node.find_all(["p", "div"])
            if element.find(True) is None and not element.get_text().strip()
        ]
        for element in empty:
            if not element.decomposed and element.parent is not None:
                element.decompose()
        return len(empty)

    def make_urls_absolute(self, node: Tag, base_url: str) -> None:
        """Rewrite ``a[href]`` and ``img[src]`` to absolute URLs."""
        for tag in node.find_all("a", href=True):
            self._resolve_attribute(tag, "href", base_url)
        for tag in node.find_all("img", src=True):
            self._resolve_attribute(tag, "src", base_url)

    @staticmethod
    def _resolve_attribute(tag: Tag, attribute: str, base_url: str) -> None:
        value = str(tag[attribute]).strip()
        if not value:
            return
        try:
            tag[attribute] = urljoin(base_url, value)
        except ValueError as e:
            logger.debug(f"Could not resolve {attribute}={value!r}: {e}")
