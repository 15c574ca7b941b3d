"""Pipeline step for merging embedded frame content."""

import logging
from typing import Optional

from ...conversion.iframes import IframeStitcher
from ...models.events import ConversionEvent, EventType
from ..base import ConversionContext, EventEmitter

logger = logging.getLogger(__name__)


class StitchStep:
    """
    Pipeline step that pulls iframe content into the working subtree.

    Frame failures never fail the conversion; they surface as warnings.
    """

    name = "stitch"

    def __init__(self, stitcher: IframeStitcher):
        self._stitcher = stitcher

    async def execute(
        self,
        ctx: ConversionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ConversionContext:
        if ctx.node is None:
            return ctx

        warnings = await self._stitcher.stitch(
            ctx.node,
            ctx.snapshot,
            from_readability=ctx.from_readability,
            preserve_links=ctx.settings.preserve_iframe_links,
        )
        ctx.warnings.extend(warnings)

        logger.debug(
            "Iframe warnings",
            extra={"data": {"count": len(warnings), "types": [w.type.value for w in warnings]}},
        )
        if emit:
            emit(
                ConversionEvent(
                    type=EventType.IFRAMES_STITCHED,
                    url=ctx.url,
                    message=f"{len(warnings)} iframe warning(s)",
                )
            )
        return ctx
