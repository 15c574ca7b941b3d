"""LLMFeeder service: the conversion entry point and message contract."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..bridge import PlatformBridge
from ..conversion.iframes import IframeStitcher
from ..conversion.markdown import HtmlToMarkdown
from ..conversion.postprocess import PostProcessor
from ..conversion.protocols import ContentExtractor, MarkdownConverter, TokenEstimator
from ..conversion.sanitizer import HtmlSanitizer
from ..errors import ConversionTimeout, LLMFeederError, classify_exception
from ..logging_config import DebugLog
from ..models.config import ConversionSettings, PipelineConfig
from ..models.events import ConversionEvent, EventType
from ..models.results import ConversionResult
from ..pipeline.base import ConversionPipeline, EventEmitter
from ..pipeline.steps import ConvertStep, ExtractStep, FinalizeStep, SanitizeStep, StitchStep
from ..snapshot import PageSnapshot

logger = logging.getLogger(__name__)

ACTION_CONVERT = "convertToMarkdown"
ACTION_DEBUG_LOGS = "getDebugLogs"
ACTION_PING = "ping"

SETTINGS_STORAGE_KEY = "settings"


class LLMFeeder:
    """
    Converts page snapshots to Markdown.

    Runs the extract, stitch, sanitize, convert and finalize steps under an
    overall timeout. Every failure, including the timeout, comes back as a
    failed ConversionResult; nothing raises out of ``convert`` or
    ``handle_message``.

    Conversions of the same document context are serialized: a second
    request waits until the running one finishes or times out.

    Example:
        feeder = LLMFeeder(InMemoryBridge())
        snapshot = PageSnapshot.from_file(Path("article.html"))
        result = await feeder.convert(snapshot, ConversionSettings(include_title=True))
        if result.success:
            print(result.markdown)
        else:
            print(result.error_message, result.details)
    """

    def __init__(
        self,
        bridge: PlatformBridge,
        config: PipelineConfig | None = None,
        extractor: ContentExtractor | None = None,
        converter: MarkdownConverter | None = None,
        estimator: TokenEstimator | None = None,
    ):
        """
        Initialize the service.

        Args:
            bridge: Host adapter (frames, messaging, storage)
            config: Pipeline tunables (defaults if None)
            extractor: Content extractor (uses default if None)
            converter: Markdown converter (uses default if None)
            estimator: Token estimator (uses default if None)
        """
        self.bridge = bridge
        self.config = config or PipelineConfig()
        self.debug_log = DebugLog(capacity=self.config.max_debug_entries)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

        stitcher = IframeStitcher(
            bridge,
            timeout=self.config.iframe_timeout,
            batch_size=self.config.iframe_batch_size,
            min_content_length=self.config.min_content_length,
        )
        self._pipeline = ConversionPipeline(
            steps=[
                ExtractStep(extractor),
                StitchStep(stitcher),
                SanitizeStep(HtmlSanitizer()),
                ConvertStep(
                    converter
                    or HtmlToMarkdown(
                        truncate_threshold=self.config.truncate_threshold,
                        large_content_warning=self.config.large_content_warning,
                    ),
                    large_content_warning=self.config.large_content_warning,
                ),
                FinalizeStep(PostProcessor(), estimator),
            ]
        )

    async def convert(
        self,
        snapshot: PageSnapshot,
        settings: ConversionSettings | None = None,
        emit: EventEmitter | None = None,
    ) -> ConversionResult:
        """
        Convert one document.

        Args:
            snapshot: Document to convert
            settings: Settings for this call (defaults if None)
            emit: Optional callback for progress events

        Returns:
            ConversionResult (check ``success``)
        """
        settings = settings or ConversionSettings()
        key = snapshot.context_key
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1

        try:
            async with lock:
                self.debug_log.start_run(settings.debug_mode)
                try:
                    return await self._run(snapshot, settings, emit)
                finally:
                    self.debug_log.stop()
        finally:
            # Drop the lock once no run holds or waits on it
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def _run(
        self,
        snapshot: PageSnapshot,
        settings: ConversionSettings,
        emit: EventEmitter | None,
    ) -> ConversionResult:
        logger.debug("Conversion requested", extra={"data": {"url": snapshot.url, **settings.to_message()}})
        timeout = self.config.conversion_timeout

        error: LLMFeederError
        try:
            ctx = await asyncio.wait_for(
                self._pipeline.execute(snapshot, settings, emit),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            error = ConversionTimeout(f"Conversion timed out after {timeout:g} seconds")
        except Exception as e:
            logger.exception(f"Unexpected error converting {snapshot.url}")
            error = classify_exception(e)
        else:
            result = ctx.to_result()
            if result.success:
                logger.info(f"Converted {snapshot.url} ({result.token_count} tokens)")
            else:
                logger.error(f"Conversion failed for {snapshot.url}: {result.details}")
            return result

        logger.error(f"Conversion failed for {snapshot.url}: {error.details}")
        if emit:
            emit(ConversionEvent(type=EventType.CONVERSION_FAILED, url=snapshot.url, error=error.details))
        return ConversionResult.failed(error.kind, error.details, title=snapshot.document_title, url=snapshot.url)

    async def handle_message(
        self,
        message: Any,
        snapshot: PageSnapshot | None = None,
    ) -> dict[str, Any]:
        """
        Answer a request from the message channel.

        Supported actions:
            convertToMarkdown: ``{"success", "markdown", "tokenCount"}`` or
                ``{"success": False, "error", "details"}``
            getDebugLogs: ``{"success": True, "logs": str}``
            ping: ``{"success": True}``

        Args:
            message: Request dict with an ``action`` key
            snapshot: Document a convert request applies to

        Returns:
            Response dict
        """
        action = message.get("action") if isinstance(message, dict) else None

        if action == ACTION_CONVERT:
            if snapshot is None:
                return {"success": False, "error": "No document to convert"}
            try:
                settings = await self.resolve_settings(message)
            except Exception as e:
                error = classify_exception(e)
                logger.error(f"Invalid conversion settings: {e}")
                return {"success": False, "error": error.user_message, "details": error.details}
            result = await self.convert(snapshot, settings)
            return result.to_response()

        if action == ACTION_DEBUG_LOGS:
            return {"success": True, "logs": self.debug_log.get_logs()}

        if action == ACTION_PING:
            return {"success": True}

        return {"success": False, "error": f"Unknown action: {action}"}

    async def resolve_settings(self, message: dict[str, Any]) -> ConversionSettings:
        """
        Settings for a convert request.

        Taken from the message (``settings``, or the older ``options`` key),
        else from the bridge's stored preferences, else the defaults.

        Raises:
            pydantic.ValidationError: If the supplied settings are invalid
        """
        raw = message.get("settings")
        if raw is None:
            raw = message.get("options")
        if raw is None:
            raw = await self.bridge.storage_get(SETTINGS_STORAGE_KEY)
        if isinstance(raw, ConversionSettings):
            return raw
        return ConversionSettings.model_validate(raw or {})

    async def save_settings(self, settings: ConversionSettings) -> None:
        """Store settings as the defaults for requests that carry none."""
        await self.bridge.storage_set(SETTINGS_STORAGE_KEY, settings.to_message())
