"""Llmfeeder configuration, result and event models."""

from .config import DEFAULT_METADATA_FORMAT, ContentScope, ConversionSettings, PipelineConfig
from .events import ConversionEvent, EventType
from .results import (
    ArticleMetadata,
    BatchResultSet,
    BatchSummary,
    ConversionResult,
    ConversionWarning,
    FrameAccess,
    FrameState,
    IframeRecord,
    WarningType,
)

__all__ = [
    # Config
    "ContentScope",
    "ConversionSettings",
    "DEFAULT_METADATA_FORMAT",
    "PipelineConfig",
    # Events
    "ConversionEvent",
    "EventType",
    # Results
    "ArticleMetadata",
    "BatchResultSet",
    "BatchSummary",
    "ConversionResult",
    "ConversionWarning",
    "FrameAccess",
    "FrameState",
    "IframeRecord",
    "WarningType",
]
