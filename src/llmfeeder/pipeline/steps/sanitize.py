"""Pipeline step for HTML cleanup."""

import asyncio
from typing import Optional

from ...conversion.sanitizer import HtmlSanitizer
from ..base import ConversionContext, EventEmitter


class SanitizeStep:
    """Pipeline step that strips non-content elements and absolutizes URLs."""

    name = "sanitize"

    def __init__(self, sanitizer: Optional[HtmlSanitizer] = None):
        self._sanitizer = sanitizer or HtmlSanitizer()

    async def execute(
        self,
        ctx: ConversionContext,
        emit: Optional[EventEmitter] = None,
    ) -> ConversionContext:
        if ctx.node is not None:
            await asyncio.to_thread(self._clean, ctx)
        return ctx

    def _clean(self, ctx: ConversionContext) -> None:
        self._sanitizer.clean(ctx.node, ctx.settings, ctx.snapshot.base_url)
