"""Content conversion for llmfeeder (extraction, iframes, HTML to Markdown)."""

from .extractor import ExtractedContent, ReadableContentExtractor
from .iframes import IframeStitcher, PendingRequestTable
from .markdown import HtmlToMarkdown, LLMMarkdownConverter
from .postprocess import PostProcessor, format_metadata, normalize_markdown
from .protocols import ContentExtractor, MarkdownConverter, TokenEstimator
from .sanitizer import HtmlSanitizer
from .tokens import ApproximateTokenEstimator, format_token_count

__all__ = [
    # Protocols
    "ContentExtractor",
    "MarkdownConverter",
    "TokenEstimator",
    # Implementations
    "ApproximateTokenEstimator",
    "ExtractedContent",
    "HtmlSanitizer",
    "HtmlToMarkdown",
    "IframeStitcher",
    "LLMMarkdownConverter",
    "PendingRequestTable",
    "PostProcessor",
    "ReadableContentExtractor",
    # Helpers
    "format_metadata",
    "format_token_count",
    "normalize_markdown",
]
