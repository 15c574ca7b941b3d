"""Embedded frame discovery, retrieval and merging."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from ..errors import FrameAccessDenied
from ..models.results import ConversionWarning, FrameAccess, FrameState, IframeRecord, WarningType
from ..snapshot import PageSnapshot
from .extractor import fragment_container
from .frame_protocol import (
    build_extract_request,
    is_extract_response,
    new_message_id,
    text_length,
)

if TYPE_CHECKING:
    from ..bridge import PlatformBridge

logger = logging.getLogger(__name__)

UNADDRESSABLE_SOURCES = {"", "about:blank", "javascript:void(0)"}
DEFAULT_FRAME_TITLE = "Embedded content"
MAX_WARNING_SAMPLES = 3


class PendingRequestTable:
    """
    In-flight cross-frame requests, keyed by correlation id.

    Each request owns one future. A response resolves the future whose id it
    carries; responses with unknown ids (mismatched, or arriving after the
    request expired) are ignored.
    """

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Future[Optional[str]]] = {}

    def create(self, message_id: str) -> asyncio.Future[Optional[str]]:
        future: asyncio.Future[Optional[str]] = asyncio.get_running_loop().create_future()
        self._pending[message_id] = future
        return future

    def resolve(self, message: Any) -> bool:
        """
        Resolve the request a response belongs to.

        Returns:
            True if the message completed a pending request
        """
        if not is_extract_response(message):
            return False
        future = self._pending.pop(message["messageId"], None)
        if future is None or future.done():
            return False
        content = message.get("content")
        future.set_result(content if isinstance(content, str) else None)
        return True

    def discard(self, message_id: str) -> None:
        future = self._pending.pop(message_id, None)
        if future is not None and not future.done():
            future.cancel()

    def cancel_all(self) -> None:
        for message_id in list(self._pending):
            self.discard(message_id)

    def __len__(self) -> int:
        return len(self._pending)


class IframeStitcher:
    """
    Pulls content out of embedded frames and merges it into the content tree.

    Same-origin frames are read directly through the bridge. Cross-origin
    frames are asked for their content over the message channel, in batches
    that run concurrently; a frame that does not answer within ``timeout``
    is recorded as unreachable and reported in a ``crossOriginIframe``
    warning.

    Example:
        stitcher = IframeStitcher(bridge, timeout=1.0, batch_size=5)
        warnings = await stitcher.stitch(node, snapshot, from_readability=True)
    """

    def __init__(
        self,
        bridge: PlatformBridge,
        timeout: float = 1.0,
        batch_size: int = 5,
        min_content_length: int = 50,
    ):
        """
        Initialize the stitcher.

        Args:
            bridge: Host adapter used to reach frames
            timeout: Seconds to wait for each cross-origin frame
            batch_size: Cross-origin frames queried concurrently
            min_content_length: Text length frame content must exceed
        """
        self._bridge = bridge
        self._timeout = timeout
        self._batch_size = batch_size
        self._min_content_length = min_content_length

    async def stitch(
        self,
        node: Tag,
        snapshot: PageSnapshot,
        from_readability: bool,
        preserve_links: bool = True,
    ) -> list[ConversionWarning]:
        """
        Retrieve frame content and merge it into ``node``.

        Args:
            node: Working content tree (modified in place)
            snapshot: Original document the frames belong to
            from_readability: ``node`` came from readability, which drops
                iframes, so content is appended instead of replaced
            preserve_links: Replace unretrievable frames with a source link

        Returns:
            Warnings for frames that could not be reached
        """
        records = await self.collect(snapshot)
        if from_readability:
            self.append_sections(node, records)
        else:
            self.replace_in_place(node, records, snapshot.base_url, preserve_links)
        return self.warnings_for(records)

    def discover(self, snapshot: PageSnapshot) -> list[IframeRecord]:
        """Find the document's iframes, in document order."""
        soup = snapshot.parse()
        base_url = snapshot.base_url
        records = []
        for index, iframe in enumerate(soup.find_all("iframe")):
            src = str(iframe.get("src", "")).strip()
            records.append(
                IframeRecord(
                    source_url=urljoin(base_url, src) if src else "about:blank",
                    index=index,
                    title=self._frame_title(iframe),
                    srcdoc=iframe.get("srcdoc") or None,
                    hidden=self._is_hidden(iframe),
                )
            )
        return records

    async def collect(self, snapshot: PageSnapshot) -> list[IframeRecord]:
        """Discover frames and retrieve whatever content is reachable."""
        records = self.discover(snapshot)
        logger.debug("Starting iframe extraction", extra={"data": {"iframes": len(records)}})

        cross_origin = []
        for record in records:
            if record.hidden and record.source_url == "about:blank" and not record.srcdoc:
                record.state = FrameState.SKIPPED
                continue
            if self._extract_same_origin(record):
                continue
            if record.source_url not in UNADDRESSABLE_SOURCES:
                cross_origin.append(record)

        if cross_origin:
            await self._extract_cross_origin(cross_origin)

        logger.debug(
            "Iframe extraction complete",
            extra={
                "data": {
                    "extracted": sum(1 for r in records if r.has_content),
                    "cross_origin": len(cross_origin),
                }
            },
        )
        return records

    def _extract_same_origin(self, record: IframeRecord) -> bool:
        """
        Read a same-origin frame directly.

        Returns:
            False if the frame has to go through the message channel instead
        """
        try:
            if record.srcdoc:
                html = record.srcdoc
            elif record.source_url == "about:blank":
                html = ""
            else:
                html = self._bridge.read_frame_document(record)
        except FrameAccessDenied:
            return False
        except Exception as e:
            logger.error(f"Same-origin iframe extraction failed for {record.source_url}: {e}")
            return False

        record.accessibility = FrameAccess.SAME_ORIGIN
        record.state = FrameState.SAME_ORIGIN_EXTRACTED
        record.extracted_html = self._clean_frame_html(html)
        if record.extracted_html:
            logger.debug(
                "Extracted same-origin iframe",
                extra={"data": {"src": record.source_url[:50], "index": record.index}},
            )
        else:
            logger.debug("Iframe skipped (not enough content)", extra={"data": {"src": record.source_url[:50]}})
        return True

    def _clean_frame_html(self, html: str) -> Optional[str]:
        soup = BeautifulSoup(html, "lxml")
        body = soup.body
        if body is None:
            return None
        for element in body.find_all(["script", "style", "noscript"]):
            element.decompose()
        if text_length(body) > self._min_content_length:
            return body.decode_contents()
        return None

    async def _extract_cross_origin(self, records: list[IframeRecord]) -> None:
        table = PendingRequestTable()
        self._bridge.add_message_listener(table.resolve)
        try:
            for start in range(0, len(records), self._batch_size):
                batch = records[start : start + self._batch_size]
                await asyncio.gather(*(self._request_frame(table, record) for record in batch))
        finally:
            self._bridge.remove_message_listener(table.resolve)
            table.cancel_all()

    async def _request_frame(self, table: PendingRequestTable, record: IframeRecord) -> None:
        record.state = FrameState.CROSS_ORIGIN_PENDING
        message_id = new_message_id()
        future = table.create(message_id)
        try:
            self._bridge.post_message(record, build_extract_request(message_id))
            content = await asyncio.wait_for(future, timeout=self._timeout)
        except asyncio.TimeoutError:
            record.state = FrameState.CROSS_ORIGIN_TIMED_OUT
            record.accessibility = FrameAccess.CROSS_ORIGIN_UNREACHABLE
            logger.debug("Cross-origin iframe timed out", extra={"data": {"src": record.source_url[:50]}})
            return
        except Exception as e:
            record.state = FrameState.CROSS_ORIGIN_TIMED_OUT
            record.accessibility = FrameAccess.CROSS_ORIGIN_UNREACHABLE
            logger.warning(f"Could not message iframe {record.source_url}: {e}")
            return
        finally:
            table.discard(message_id)

        record.state = FrameState.CROSS_ORIGIN_EXTRACTED
        record.accessibility = FrameAccess.CROSS_ORIGIN_REACHABLE
        record.extracted_html = content or None
        logger.debug(
            "Extracted cross-origin iframe via messaging",
            extra={"data": {"src": record.source_url[:50], "has_content": bool(content)}},
        )

    def append_sections(self, node: Tag, records: list[IframeRecord]) -> None:
        """Append retrieved frame content as "Embedded Content N" sections."""
        extracted = [record for record in records if record.has_content]
        if not extracted:
            return

        section_list = fragment_container("")
        section_list["class"] = "llmfeeder-iframes"
        for number, record in enumerate(extracted, start=1):
            section = fragment_container(f"<hr>\n<h3>Embedded Content {number}</h3>\n{record.extracted_html}")
            section["class"] = "llmfeeder-iframe-section"
            section_list.append(section)
        node.append(section_list)
        logger.debug("Appended iframe content", extra={"data": {"count": len(extracted)}})

    def replace_in_place(
        self,
        node: Tag,
        records: list[IframeRecord],
        base_url: str,
        preserve_links: bool,
    ) -> None:
        """Replace each iframe element in ``node`` with its content or a link."""
        iframes = node.find_all("iframe")
        matches = self._match_records(iframes, records, base_url)

        for iframe, record in zip(iframes, matches):
            src = str(iframe.get("src", "")).strip()
            source_url = urljoin(base_url, src) if src else "about:blank"

            if record is not None and record.has_content:
                replacement = fragment_container(record.extracted_html or "")
                replacement["class"] = "llmfeeder-iframe-replacement"
                iframe.replace_with(replacement)
            elif preserve_links and source_url not in UNADDRESSABLE_SOURCES:
                iframe.replace_with(self._link_placeholder(source_url, self._frame_title(iframe)))
            else:
                iframe.decompose()

    def _match_records(
        self,
        iframes: list[Tag],
        records: list[IframeRecord],
        base_url: str,
    ) -> list[Optional[IframeRecord]]:
        # Full page: the working tree holds every document iframe, in order
        if len(iframes) == len(records):
            return list(records)

        # Partial tree (selection): pair by source, first unused record wins
        used: set[int] = set()
        matches: list[Optional[IframeRecord]] = []
        for iframe in iframes:
            src = str(iframe.get("src", "")).strip()
            source_url = urljoin(base_url, src) if src else "about:blank"
            srcdoc = iframe.get("srcdoc") or None
            match = next(
                (
                    r
                    for r in records
                    if r.index not in used and r.source_url == source_url and r.srcdoc == srcdoc
                ),
                None,
            )
            if match is not None:
                used.add(match.index)
            matches.append(match)
        return matches

    @staticmethod
    def _link_placeholder(source_url: str, title: str) -> Tag:
        soup = BeautifulSoup("", "lxml")
        wrapper = soup.new_tag("div", attrs={"class": "llmfeeder-iframe-link"})
        paragraph = soup.new_tag("p")
        link = soup.new_tag("a", href=source_url)
        link.string = title
        paragraph.append("[Embedded content: ")
        paragraph.append(link)
        paragraph.append("]")
        wrapper.append(paragraph)
        return wrapper

    @staticmethod
    def warnings_for(records: list[IframeRecord]) -> list[ConversionWarning]:
        """Build the ``crossOriginIframe`` warning for frames without content."""
        missing = [
            record
            for record in records
            if record.accessibility
            in (FrameAccess.CROSS_ORIGIN_REACHABLE, FrameAccess.CROSS_ORIGIN_UNREACHABLE)
            and not record.has_content
        ]
        if not missing:
            return []
        return [
            ConversionWarning(
                type=WarningType.CROSS_ORIGIN_IFRAME,
                count=len(missing),
                details=tuple(
                    {"src": record.source_url, "title": record.title} for record in missing[:MAX_WARNING_SAMPLES]
                ),
            )
        ]

    @staticmethod
    def _frame_title(iframe: Tag) -> str:
        return str(iframe.get("title") or iframe.get("aria-label") or DEFAULT_FRAME_TITLE)

    @staticmethod
    def _is_hidden(iframe: Tag) -> bool:
        if iframe.has_attr("hidden"):
            return True
        style = str(iframe.get("style", "")).replace(" ", "").lower()
        return "display:none" in style or "visibility:hidden" in style
