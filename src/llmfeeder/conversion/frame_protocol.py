"""Cross-frame extraction message protocol.

A parent document asks an embedded frame for its content by posting an
``extract_content`` request carrying a unique ``messageId``; an
llmfeeder-aware frame answers with ``extract_content_response`` echoing the
id and either its cleaned body HTML or ``None`` when it has too little text.
"""

import time
import uuid
from typing import Any, Optional

from bs4 import BeautifulSoup, Tag

EXTRACT_CONTENT = "extract_content"
EXTRACT_RESPONSE = "extract_content_response"

FRAME_STRIP_SELECTORS = ["script", "style", "noscript", "iframe"]


def new_message_id() -> str:
    """Generate a correlation id for one extraction request."""
    return f"llmfeeder-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def build_extract_request(message_id: str) -> dict[str, Any]:
    return {"action": EXTRACT_CONTENT, "messageId": message_id}


def build_extract_response(message_id: str, content: Optional[str]) -> dict[str, Any]:
    return {"action": EXTRACT_RESPONSE, "messageId": message_id, "content": content}


def is_extract_request(message: Any) -> bool:
    return isinstance(message, dict) and message.get("action") == EXTRACT_CONTENT and "messageId" in message


def is_extract_response(message: Any) -> bool:
    return isinstance(message, dict) and message.get("action") == EXTRACT_RESPONSE and "messageId" in message


def text_length(element: Tag) -> int:
    """Length of an element's visible text, trimmed."""
    return len(element.get_text().strip())


def respond_to_extract_request(
    document_html: str,
    request: Any,
    min_content_length: int = 50,
) -> Optional[dict[str, Any]]:
    """
    Build the response an llmfeeder-aware frame sends for a request.

    Args:
        document_html: The frame's own document HTML
        request: Incoming message
        min_content_length: Text length the body must exceed to be returned

    Returns:
        Response dict, or None if ``request`` is not an extraction request
    """
    if not is_extract_request(request):
        return None

    message_id = request["messageId"]
    soup = BeautifulSoup(document_html, "lxml")
    body = soup.body
    if body is None:
        return build_extract_response(message_id, None)

    for selector in FRAME_STRIP_SELECTORS:
        for element in body.select(selector):
            element.decompose()

    if text_length(body) > min_content_length:
        return build_extract_response(message_id, body.decode_contents())
    return build_extract_response(message_id, None)
