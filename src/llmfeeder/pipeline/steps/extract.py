"""Pipeline step for content extraction."""

import asyncio
import logging
from typing import Optional

from ...conversion.extractor import ReadableContentExtractor
from ...conversion.protocols import ContentExtractor
from ...models.events import ConversionEvent, EventType
from ..base import ConversionContext, EventEmitter

logger = logging.getLogger(__name__)


class ExtractStep:
    """
    Pipeline step that selects the content subtree for the requested scope.

    Example:
        step = ExtractStep()
        ctx = await step.execute(ctx, emit=callback)
        # ctx.node now holds the working subtree
    """

    name = "extract"

    def __init__(self, extractor: Optional[ContentExtractor] = None):
        self._extractor = extractor or ReadableContentExtractor()

    async def execute(
        self,
        ctx: ConversionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ConversionContext:
        scope = ctx.settings.content_scope
        logger.debug(
            "Starting conversion",
            extra={"data": {"url": ctx.url, "scope": scope.value}},
        )

        # Blocking work runs in a worker thread
        extracted = await asyncio.to_thread(self._extractor.extract, ctx.snapshot, scope)
        ctx.node = extracted.node
        ctx.metadata = extracted.metadata
        ctx.from_readability = extracted.from_readability

        if emit:
            emit(
                ConversionEvent(
                    type=EventType.CONTENT_EXTRACTED,
                    url=ctx.url,
                    message=f"Extracted {scope.value} content",
                )
            )
        return ctx
