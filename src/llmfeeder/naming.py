"""Filename generation for exported Markdown."""

import re
from typing import Optional

MAX_FILENAME_LENGTH = 100
DEFAULT_EXPORT_NAME = "llmfeeder"


def sanitize_filename(title: str) -> str:
    """
    Turn a page title into a filesystem-safe base name.

    Path-unsafe and control characters are dropped, whitespace and dots
    become underscores, and the result is cut to 100 characters.

    Args:
        title: Page title (any text)

    Returns:
        Non-empty base name without extension
    """
    name = re.sub(r'[<>:"/\\|?*\x00-\x1f]', "", title)
    name = re.sub(r"[\s.]+", "_", name)
    name = re.sub(r"_+", "_", name)
    name = name.strip("_")
    name = name[:MAX_FILENAME_LENGTH].rstrip("_")
    return name or "untitled"


class UniqueNamer:
    """
    Hands out collision-free ``.md`` filenames.

    Example:
        namer = UniqueNamer()
        namer.filename("Intro")  # Intro.md
        namer.filename("Intro")  # Intro_1.md
    """

    def __init__(self) -> None:
        self._used: set[str] = set()

    def filename(self, title: str) -> str:
        base = sanitize_filename(title)
        name = base
        counter = 1
        while name in self._used:
            name = f"{base}_{counter}"
            counter += 1
        self._used.add(name)
        return f"{name}.md"


def export_filename(title: Optional[str]) -> str:
    """Filename for a single-page download (``llmfeeder.md`` without a title)."""
    if not title or not title.strip():
        return f"{DEFAULT_EXPORT_NAME}.md"
    return f"{sanitize_filename(title)}.md"
