"""Progress events emitted during conversions and batch runs."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class EventType(str, Enum):
    """Types of events emitted while converting."""

    # Single conversion
    CONVERSION_STARTED = "conversion_started"
    CONTENT_EXTRACTED = "content_extracted"
    IFRAMES_STITCHED = "iframes_stitched"
    PAGE_CONVERTED = "page_converted"
    CONVERSION_FAILED = "conversion_failed"

    # Batch
    DOCUMENT_STARTED = "document_started"
    DOCUMENT_COMPLETED = "document_completed"
    DOCUMENT_FAILED = "document_failed"
    BATCH_COMPLETED = "batch_completed"
    ARCHIVE_CREATED = "archive_created"


@dataclass
class ConversionEvent:
    """
    Event emitted during conversion.

    Example:
        def on_event(event: ConversionEvent) -> None:
            if event.type == EventType.DOCUMENT_STARTED:
                print(f"Converting {event.current}/{event.total}: {event.url}")
            elif event.is_error:
                print(f"Error: {event.url} - {event.error}")
    """

    type: EventType

    # Timestamp (always UTC)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    url: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None

    # Batch progress
    current: Optional[int] = None
    total: Optional[int] = None

    @property
    def is_error(self) -> bool:
        """Check if this is an error event."""
        return self.type in (EventType.CONVERSION_FAILED, EventType.DOCUMENT_FAILED)
