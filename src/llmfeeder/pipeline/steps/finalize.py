"""Pipeline step for Markdown post-processing and token counting."""

import asyncio
from typing import Optional

from ...conversion.postprocess import PostProcessor
from ...conversion.protocols import TokenEstimator
from ...conversion.tokens import ApproximateTokenEstimator
from ..base import ConversionContext, EventEmitter


class FinalizeStep:
    """Pipeline step that post-processes ctx.markdown and counts its tokens."""

    name = "finalize"

    def __init__(
        self,
        processor: Optional[PostProcessor] = None,
        estimator: Optional[TokenEstimator] = None,
    ):
        self._processor = processor or PostProcessor()
        self._estimator = estimator or ApproximateTokenEstimator()

    async def execute(
        self,
        ctx: ConversionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ConversionContext:
        if ctx.markdown is None:
            return ctx

        ctx.markdown, ctx.token_count = await asyncio.to_thread(self._finalize, ctx)
        return ctx

    def _finalize(self, ctx: ConversionContext) -> tuple[str, int]:
        markdown = self._processor.process(
            ctx.markdown or "",
            ctx.settings,
            ctx.metadata,
            ctx.url,
            page_title=ctx.snapshot.document_title,
            warnings=ctx.warnings,
        )
        return markdown, self._estimator.estimate(markdown)
