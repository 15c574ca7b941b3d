"""ZIP archive creation for batch exports."""

import io
import logging
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import AllDocumentsFailed
from .models.results import ConversionResult
from .naming import UniqueNamer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveBundle:
    """An in-memory archive and the name it should be saved under."""

    data: bytes
    filename: str
    file_count: int

    def names(self) -> list[str]:
        """Entry names inside the archive."""
        with zipfile.ZipFile(io.BytesIO(self.data)) as zf:
            return zf.namelist()


class Archiver:
    """Create ZIP archives of converted documents."""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED):
        """Initialize archiver.

        Args:
            compression: ZIP compression type
        """
        self.compression = compression

    def build(self, results: list[ConversionResult], date: Optional[datetime] = None) -> ArchiveBundle:
        """Build an archive holding one Markdown file per successful result.

        Args:
            results: Batch results, in order
            date: Export date for the archive name (default: today, UTC)

        Returns:
            ArchiveBundle named ``llmfeeder-export-{YYYY-MM-DD}-{n}tabs.zip``

        Raises:
            AllDocumentsFailed: If no result succeeded
        """
        namer = UniqueNamer()
        buffer = io.BytesIO()
        count = 0

        with zipfile.ZipFile(buffer, "w", self.compression) as zf:
            for result in results:
                if not result.success:
                    continue
                zf.writestr(namer.filename(result.title), result.markdown or "")
                count += 1

        if count == 0:
            raise AllDocumentsFailed()

        date_str = (date or datetime.now(timezone.utc)).strftime("%Y-%m-%d")
        bundle = ArchiveBundle(
            data=buffer.getvalue(),
            filename=f"llmfeeder-export-{date_str}-{count}tabs.zip",
            file_count=count,
        )
        logger.info(f"Created archive {bundle.filename} with {count} files")
        return bundle

    def write(self, bundle: ArchiveBundle, directory: Path) -> Path:
        """Write an archive to ``directory`` under its own filename.

        Returns:
            Path to the written archive
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        archive_path = directory / bundle.filename
        archive_path.write_bytes(bundle.data)

        size_kb = len(bundle.data) / 1024
        logger.info(f"Wrote archive: {archive_path} ({size_kb:.1f} KB)")
        return archive_path
