"""Error taxonomy for the conversion pipeline."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Kinds of failure a conversion can end with."""

    NO_CONTENT = "no_content"
    NO_SELECTION = "no_selection"
    TIMEOUT = "timeout"
    PERMISSION_DENIED = "permission_denied"
    GENERAL = "general"
    ALL_FAILED = "all_failed"


ERROR_MESSAGES = {
    ErrorKind.NO_CONTENT: "No content could be extracted from this page.",
    ErrorKind.NO_SELECTION: "No text is selected. Please select text or use a different content scope.",
    ErrorKind.TIMEOUT: "Conversion timed out. The page might be too large.",
    ErrorKind.PERMISSION_DENIED: "Permission denied. Please check extension permissions.",
    ErrorKind.GENERAL: "An error occurred during conversion.",
    ErrorKind.ALL_FAILED: "No tabs were successfully converted.",
}


class LLMFeederError(Exception):
    """
    Base class for all pipeline errors.

    Attributes:
        kind: Error category used at the caller boundary
        details: Technical detail string (shown as ``details`` in responses)
    """

    kind: ErrorKind = ErrorKind.GENERAL

    def __init__(self, details: Optional[str] = None) -> None:
        self.details = details or self.user_message
        super().__init__(self.details)

    @property
    def user_message(self) -> str:
        """Short user-facing message for this error kind."""
        return ERROR_MESSAGES[self.kind]


class NoContentExtracted(LLMFeederError):
    """Raised when no content node could be produced or the output is empty."""

    kind = ErrorKind.NO_CONTENT


class NoSelection(LLMFeederError):
    """Raised when selection scope is requested without a non-empty selection."""

    kind = ErrorKind.NO_SELECTION


class ConversionTimeout(LLMFeederError):
    """Raised when a conversion exceeds the overall timeout."""

    kind = ErrorKind.TIMEOUT


class PermissionDenied(LLMFeederError):
    """Raised when the host refuses access to the page."""

    kind = ErrorKind.PERMISSION_DENIED


class ConversionFailed(LLMFeederError):
    """Raised when the HTML to Markdown transform itself fails."""

    kind = ErrorKind.GENERAL


class AllDocumentsFailed(LLMFeederError):
    """Raised by batch merge/archive when no document converted successfully."""

    kind = ErrorKind.ALL_FAILED


class FrameAccessDenied(PermissionError):
    """
    Raised by a platform bridge when a frame's document is not script-accessible.

    This is the signal that a frame is cross-origin and has to be reached
    through the message protocol instead.
    """

    def __init__(self, src: str) -> None:
        self.src = src
        super().__init__(f"Frame document is not accessible: {src}")


def classify_exception(error: BaseException) -> LLMFeederError:
    """
    Map an arbitrary exception onto the error taxonomy.

    Args:
        error: Exception raised somewhere inside a conversion

    Returns:
        An LLMFeederError (the same object if it already is one)
    """
    if isinstance(error, LLMFeederError):
        return error
    if isinstance(error, PermissionError):
        return PermissionDenied(str(error) or None)
    return ConversionFailed(f"{type(error).__name__}: {error}")
