"""
llmfeeder - Convert web pages to clean Markdown for LLM prompts.

Usage:
    from llmfeeder import ConversionSettings, InMemoryBridge, LLMFeeder, PageSnapshot

    feeder = LLMFeeder(InMemoryBridge())
    snapshot = PageSnapshot.from_url("https://example.com/article")

    result = await feeder.convert(snapshot, ConversionSettings(include_title=True))
    print(result.markdown)
"""

__version__ = "1.2.0"

from .archive import ArchiveBundle, Archiver
from .batch import BatchOrchestrator
from .bridge import InMemoryBridge, PlatformBridge
from .core.service import LLMFeeder
from .errors import (
    AllDocumentsFailed,
    ConversionFailed,
    ConversionTimeout,
    ErrorKind,
    FrameAccessDenied,
    LLMFeederError,
    NoContentExtracted,
    NoSelection,
    PermissionDenied,
)
from .models.config import ContentScope, ConversionSettings, PipelineConfig
from .models.events import ConversionEvent, EventType
from .models.results import BatchResultSet, BatchSummary, ConversionResult, ConversionWarning
from .snapshot import PageSnapshot, load_snapshot

__all__ = [
    "__version__",
    # Core
    "LLMFeeder",
    "BatchOrchestrator",
    "PageSnapshot",
    "load_snapshot",
    # Bridge
    "PlatformBridge",
    "InMemoryBridge",
    # Config
    "ContentScope",
    "ConversionSettings",
    "PipelineConfig",
    # Results
    "ConversionResult",
    "ConversionWarning",
    "BatchResultSet",
    "BatchSummary",
    "ArchiveBundle",
    "Archiver",
    # Events
    "EventType",
    "ConversionEvent",
    # Errors
    "ErrorKind",
    "LLMFeederError",
    "NoContentExtracted",
    "NoSelection",
    "ConversionTimeout",
    "PermissionDenied",
    "ConversionFailed",
    "AllDocumentsFailed",
    "FrameAccessDenied",
]
