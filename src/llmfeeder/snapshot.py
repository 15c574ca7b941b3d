"""Immutable page snapshots that conversions run against."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; llmfeeder/1.0)"


def detect_encoding(html: bytes) -> str:
    """Detect character encoding from an HTML byte string's meta charset."""
    head = html[:2048].decode("latin-1", errors="ignore")
    charset_match = re.search(r'charset=["\']?([^"\'\s>;]+)', head, re.IGNORECASE)
    if charset_match:
        return charset_match.group(1).strip()
    return "utf-8"


def decode_html(html: bytes) -> str:
    """Decode HTML bytes using the declared charset, falling back to UTF-8."""
    encoding = detect_encoding(html)
    try:
        return html.decode(encoding, errors="replace")
    except LookupError:
        return html.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class PageSnapshot:
    """
    A page's DOM as it was when a conversion started.

    The snapshot itself is never modified: every call to ``parse()`` returns
    a fresh tree that the caller owns and may mutate.

    Attributes:
        html: Full document HTML
        url: Document URL (used for link resolution and metadata)
        title: Document title; read from ``<title>`` when not given
        selection_html: Cloned contents of the user's selection, if any
        context_id: Identity of the document context (tab); defaults to ``url``
    """

    html: str
    url: str
    title: Optional[str] = None
    selection_html: Optional[str] = None
    context_id: Optional[str] = None

    def parse(self) -> BeautifulSoup:
        """Parse a fresh, independently mutable copy of the document."""
        return BeautifulSoup(self.html, "lxml")

    @property
    def context_key(self) -> str:
        return self.context_id or self.url

    @property
    def document_title(self) -> str:
        """Document title, trimmed; empty string when the page has none."""
        if self.title is not None:
            return self.title.strip()
        soup = self.parse()
        title_tag = soup.find("title")
        if isinstance(title_tag, Tag):
            return title_tag.get_text().strip()
        return ""

    @property
    def base_url(self) -> str:
        """Document base URI: ``<base href>`` resolved against the URL."""
        soup = self.parse()
        base = soup.find("base", href=True)
        if isinstance(base, Tag):
            return urljoin(self.url, str(base["href"]))
        return self.url

    @property
    def hostname(self) -> str:
        return urlparse(self.url).hostname or ""

    def with_selection(self, selection_html: Optional[str]) -> "PageSnapshot":
        """Return a copy of this snapshot carrying a selection."""
        return PageSnapshot(
            html=self.html,
            url=self.url,
            title=self.title,
            selection_html=selection_html,
            context_id=self.context_id,
        )

    @classmethod
    def from_file(
        cls,
        path: Path,
        url: Optional[str] = None,
        selection_html: Optional[str] = None,
    ) -> "PageSnapshot":
        """
        Load a snapshot from a saved HTML file.

        Args:
            path: HTML file to read
            url: Original page URL (defaults to the file URI)
            selection_html: Optional selection contents

        Returns:
            PageSnapshot for the file
        """
        path = Path(path)
        html = decode_html(path.read_bytes())
        return cls(
            html=html,
            url=url or path.resolve().as_uri(),
            selection_html=selection_html,
            context_id=str(path),
        )

    @classmethod
    def from_url(cls, url: str, timeout: float = 30.0, user_agent: Optional[str] = None) -> "PageSnapshot":
        """
        Fetch a page over HTTP and snapshot it.

        Args:
            url: Page URL
            timeout: Request timeout in seconds
            user_agent: Custom User-Agent header

        Returns:
            PageSnapshot for the final (post-redirect) URL

        Raises:
            requests.RequestException: On network errors or HTTP error status
        """
        import requests

        response = requests.get(
            url,
            timeout=timeout,
            headers={"User-Agent": user_agent or DEFAULT_USER_AGENT},
        )
        response.raise_for_status()
        logger.debug(f"Fetched {response.url} ({len(response.content)} bytes)")
        return cls(html=decode_html(response.content), url=response.url, context_id=url)


def load_snapshot(source: str, timeout: float = 30.0) -> PageSnapshot:
    """
    Load a snapshot from an ``http(s)`` URL or a local HTML file path.

    Raises:
        FileNotFoundError: If ``source`` is neither a URL nor an existing file
        requests.RequestException: If fetching the URL fails
    """
    if urlparse(source).scheme in ("http", "https"):
        return PageSnapshot.from_url(source, timeout=timeout)
    path = Path(source)
    if not path.is_file():
        raise FileNotFoundError(f"No such HTML file: {source}")
    return PageSnapshot.from_file(path)
