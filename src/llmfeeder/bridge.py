"""Host capabilities the pipeline depends on.

The pipeline never talks to a browser (or any other host) directly. It is
handed a ``PlatformBridge`` at construction time and only uses the
operations below: reading a same-origin frame's document, posting a message
to a frame, receiving messages, and a small key/value store.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from .conversion.frame_protocol import respond_to_extract_request
from .errors import FrameAccessDenied
from .models.results import IframeRecord

logger = logging.getLogger(__name__)

MessageListener = Callable[[dict[str, Any]], None]


@runtime_checkable
class PlatformBridge(Protocol):
    """
    Protocol for the host adapter.

    Implementations adapt a concrete host (extension runtime, headless
    browser, test double) to the operations the pipeline needs.
    """

    def read_frame_document(self, frame: IframeRecord) -> str:
        """
        Read a same-origin frame's body HTML.

        Raises:
            FrameAccessDenied: If the frame is cross-origin
        """
        ...

    def post_message(self, frame: IframeRecord, message: dict[str, Any]) -> None:
        """Post a message to a frame. Responses arrive through listeners."""
        ...

    def add_message_listener(self, listener: MessageListener) -> None:
        ...

    def remove_message_listener(self, listener: MessageListener) -> None:
        ...

    async def storage_get(self, key: str) -> Any:
        ...

    async def storage_set(self, key: str, value: Any) -> None:
        ...


class InMemoryBridge:
    """
    Bridge backed by in-memory frame documents.

    Frames are looked up by their ``src``:

    * ``same_origin`` documents are readable directly
    * ``cross_origin`` documents answer extraction requests over the message
      channel, after ``response_delay`` seconds
    * any other frame is unreachable and never answers

    Example:
        bridge = InMemoryBridge(
            same_origin={"/widget.html": "<html><body>...</body></html>"},
            cross_origin={"https://video.example/embed": "<html>...</html>"},
        )
    """

    def __init__(
        self,
        same_origin: Optional[dict[str, str]] = None,
        cross_origin: Optional[dict[str, str]] = None,
        response_delay: float = 0.0,
        min_content_length: int = 50,
        storage: Optional[dict[str, Any]] = None,
    ) -> None:
        self.same_origin = dict(same_origin or {})
        self.cross_origin = dict(cross_origin or {})
        self.response_delay = response_delay
        self.min_content_length = min_content_length
        self.storage: dict[str, Any] = dict(storage or {})
        self.posted: list[tuple[str, dict[str, Any]]] = []
        self._listeners: list[MessageListener] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def read_frame_document(self, frame: IframeRecord) -> str:
        if frame.source_url in self.same_origin:
            return self.same_origin[frame.source_url]
        raise FrameAccessDenied(frame.source_url)

    def post_message(self, frame: IframeRecord, message: dict[str, Any]) -> None:
        self.posted.append((frame.source_url, message))
        document = self.cross_origin.get(frame.source_url)
        if document is None:
            return

        response = respond_to_extract_request(document, message, self.min_content_length)
        if response is None:
            return

        loop = asyncio.get_running_loop()
        if self.response_delay > 0:
            loop.call_later(self.response_delay, self.deliver, response)
        else:
            loop.call_soon(self.deliver, response)

    def deliver(self, message: dict[str, Any]) -> None:
        """Dispatch an incoming message to every registered listener."""
        for listener in list(self._listeners):
            listener(message)

    def add_message_listener(self, listener: MessageListener) -> None:
        self._listeners.append(listener)

    def remove_message_listener(self, listener: MessageListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def storage_get(self, key: str) -> Any:
        return self.storage.get(key)

    async def storage_set(self, key: str, value: Any) -> None:
        self.storage[key] = value
