"""Result types produced by the conversion pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..errors import ERROR_MESSAGES, ErrorKind


@dataclass(frozen=True)
class ArticleMetadata:
    """
    Article metadata derived by the extractor.

    Every field is optional; empty strings mean "not found".
    """

    title: str = ""
    author: str = ""
    site_name: str = ""
    published_time: str = ""
    excerpt: str = ""


class FrameAccess(str, Enum):
    """How an embedded frame's content could be reached."""

    SAME_ORIGIN = "same_origin"
    CROSS_ORIGIN_REACHABLE = "cross_origin_reachable"
    CROSS_ORIGIN_UNREACHABLE = "cross_origin_unreachable"


class FrameState(str, Enum):
    """Lifecycle of one frame during stitching."""

    DISCOVERED = "discovered"
    SAME_ORIGIN_EXTRACTED = "same_origin_extracted"
    CROSS_ORIGIN_PENDING = "cross_origin_pending"
    CROSS_ORIGIN_EXTRACTED = "cross_origin_extracted"
    CROSS_ORIGIN_TIMED_OUT = "cross_origin_timed_out"
    SKIPPED = "skipped"


@dataclass
class IframeRecord:
    """
    One embedded frame discovered in the original document.

    Attributes:
        source_url: Frame ``src`` (or ``about:blank``)
        index: Position among the document's iframes, in document order
        title: Frame title or aria-label, for links and warnings
        accessibility: Same-origin or cross-origin reachability, once known
        extracted_html: Content retrieved from the frame, if any
    """

    source_url: str
    index: int
    title: str = "Embedded content"
    srcdoc: Optional[str] = None
    hidden: bool = False
    state: FrameState = FrameState.DISCOVERED
    accessibility: Optional[FrameAccess] = None
    extracted_html: Optional[str] = None

    @property
    def has_content(self) -> bool:
        return bool(self.extracted_html)


class WarningType(str, Enum):
    """Kinds of non-fatal conversion warnings."""

    CROSS_ORIGIN_IFRAME = "crossOriginIframe"
    LARGE_CONTENT = "largeContent"
    CONTENT_TRUNCATED = "contentTruncated"


@dataclass(frozen=True)
class ConversionWarning:
    """A degradation that did not fail the conversion."""

    type: WarningType
    count: int = 0
    details: tuple[dict[str, str], ...] = ()
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value, "count": self.count}
        if self.details:
            data["details"] = [dict(d) for d in self.details]
        if self.message:
            data["message"] = self.message
        return data


@dataclass(frozen=True)
class ConversionResult:
    """
    Outcome of converting one document.

    Exactly one of ``markdown`` / ``error`` is set, according to ``success``.
    """

    success: bool
    markdown: Optional[str] = None
    token_count: Optional[int] = None
    error: Optional[ErrorKind] = None
    details: Optional[str] = None
    warnings: tuple[ConversionWarning, ...] = ()
    title: str = ""
    url: str = ""
    metadata: Optional[ArticleMetadata] = None

    @classmethod
    def ok(
        cls,
        markdown: str,
        *,
        token_count: Optional[int] = None,
        warnings: tuple[ConversionWarning, ...] = (),
        title: str = "",
        url: str = "",
        metadata: Optional[ArticleMetadata] = None,
    ) -> "ConversionResult":
        return cls(
            success=True,
            markdown=markdown,
            token_count=token_count,
            warnings=warnings,
            title=title,
            url=url,
            metadata=metadata,
        )

    @classmethod
    def failed(
        cls,
        error: ErrorKind,
        details: Optional[str] = None,
        *,
        title: str = "",
        url: str = "",
    ) -> "ConversionResult":
        return cls(success=False, error=error, details=details, title=title, url=url)

    @property
    def error_message(self) -> Optional[str]:
        """User-facing message for a failed result."""
        if self.error is None:
            return None
        return ERROR_MESSAGES[self.error]

    def to_response(self) -> dict[str, Any]:
        """Render as a message-channel response dict."""
        if self.success:
            response: dict[str, Any] = {"success": True, "markdown": self.markdown}
            if self.token_count is not None:
                response["tokenCount"] = self.token_count
            return response
        response = {"success": False, "error": self.error_message}
        if self.details:
            response["details"] = self.details
        return response


@dataclass(frozen=True)
class BatchSummary:
    """Success/failure tally for a batch run."""

    success_count: int
    fail_count: int

    @property
    def message(self) -> str:
        """Human-readable summary, e.g. ``2 tabs (1 failed)``."""
        noun = "tab" if self.success_count == 1 else "tabs"
        text = f"{self.success_count} {noun}"
        if self.fail_count > 0:
            text += f" ({self.fail_count} failed)"
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "successCount": self.success_count,
            "failCount": self.fail_count,
        }


@dataclass
class BatchResultSet:
    """Ordered per-document results of a batch run."""

    results: list[ConversionResult] = field(default_factory=list)

    @property
    def successful(self) -> list[ConversionResult]:
        return [r for r in self.results if r.success]

    @property
    def summary(self) -> BatchSummary:
        success_count = len(self.successful)
        return BatchSummary(success_count=success_count, fail_count=len(self.results) - success_count)

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self):
        return iter(self.results)
