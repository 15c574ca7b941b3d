"""Pipeline step for HTML to Markdown conversion."""

import asyncio
import logging
from typing import Optional

from ...conversion.markdown import TRUNCATION_NOTE, HtmlToMarkdown
from ...conversion.protocols import MarkdownConverter
from ...errors import NoContentExtracted
from ...models.events import ConversionEvent, EventType
from ...models.results import ConversionWarning, WarningType
from ..base import ConversionContext, EventEmitter

logger = logging.getLogger(__name__)


class ConvertStep:
    """
    Pipeline step that converts the working subtree to Markdown.

    Reads from ctx.node, writes to ctx.markdown.

    Example:
        step = ConvertStep(HtmlToMarkdown(truncate_threshold=100_000))
        ctx = await step.execute(ctx, emit=callback)
    """

    name = "convert"

    def __init__(
        self,
        converter: Optional[MarkdownConverter] = None,
        large_content_warning: int = 1_000_000,
    ):
        """
        Initialize the convert step.

        Args:
            converter: Markdown converter (uses default if None)
            large_content_warning: Serialized size reported as large content
        """
        self._converter = converter or HtmlToMarkdown()
        self._large_content_warning = large_content_warning

    async def execute(
        self,
        ctx: ConversionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ConversionContext:
        if ctx.node is None:
            raise NoContentExtracted("No content to convert")

        html = await asyncio.to_thread(ctx.node.decode_contents)
        if len(html) > self._large_content_warning:
            ctx.warnings.append(
                ConversionWarning(
                    type=WarningType.LARGE_CONTENT,
                    message=f"Content is {len(html):,} characters",
                )
            )

        markdown = await asyncio.to_thread(self._converter.convert, html, ctx.settings)
        if markdown.endswith(TRUNCATION_NOTE):
            ctx.warnings.append(
                ConversionWarning(
                    type=WarningType.CONTENT_TRUNCATED,
                    message="Content was truncated due to size limitations",
                )
            )
        ctx.markdown = markdown

        if emit:
            emit(
                ConversionEvent(
                    type=EventType.PAGE_CONVERTED,
                    url=ctx.url,
                    message=f"Converted to {len(markdown)} bytes of Markdown",
                )
            )

        logger.debug(f"Converted {ctx.url} to {len(markdown)} bytes of Markdown")
        return ctx
