import json
import logging
import sys
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Optional

LOGGER_NAME = "llmfeeder"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    force: bool = False,
) -> logging.Logger:
    """
    Set up logging configuration for llmfeeder.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging output
        format_string: Optional custom format string for log messages
        force: If True, reconfigure even if handlers exist

    Returns:
        Configured logger instance
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    # DebugLog handlers are managed by DebugLog itself
    existing = [h for h in logger.handlers if not isinstance(h, DebugLog)]

    if force or not existing:
        for handler in existing:
            logger.removeHandler(handler)

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(logging.Formatter(format_string))
        logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(logging.Formatter(format_string))
            logger.addHandler(file_handler)

    # Prevent propagation to root logger to avoid duplicate logs
    logger.propagate = False

    return logger


class DebugLog(logging.Handler):
    """
    Bounded, per-run transcript of pipeline log records.

    While a debug run is active the handler is attached to the ``llmfeeder``
    logger and records every message (oldest entries are dropped past
    ``capacity``). The transcript survives the end of the run so it can be
    fetched afterwards, and is cleared when the next run starts.

    Structured data rides along on the record via ``extra``:

        logger.debug("Content extracted", extra={"data": {"length": 1234}})

    Example:
        debug_log = DebugLog(capacity=500)
        with debug_log.capture(enabled=settings.debug_mode):
            ...
        print(debug_log.get_logs())
    """

    def __init__(self, capacity: int = 500, logger_name: str = LOGGER_NAME) -> None:
        super().__init__(level=logging.DEBUG)
        self.capacity = capacity
        self.enabled = False
        self._entries: deque[tuple[str, str, Any]] = deque(maxlen=capacity)
        self._logger = logging.getLogger(logger_name)
        self._saved_level: Optional[int] = None

    def emit(self, record: logging.LogRecord) -> None:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        data = getattr(record, "data", None)
        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            data = {"error": str(error), "type": type(error).__name__}
        self._entries.append((timestamp, record.getMessage(), data))

    def start_run(self, enabled: bool) -> None:
        """Clear the transcript and start capturing if ``enabled``."""
        self.stop()
        self.clear()
        self.enabled = enabled
        if enabled:
            self._saved_level = self._logger.level
            self._logger.setLevel(logging.DEBUG)
            self._logger.addHandler(self)

    def stop(self) -> None:
        """Detach from the logger, keeping the recorded entries."""
        if self in self._logger.handlers:
            self._logger.removeHandler(self)
        if self._saved_level is not None:
            self._logger.setLevel(self._saved_level)
            self._saved_level = None
        self.enabled = False

    @contextmanager
    def capture(self, enabled: bool) -> Iterator["DebugLog"]:
        """Capture for the duration of a ``with`` block."""
        self.start_run(enabled)
        try:
            yield self
        finally:
            self.stop()

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def get_logs(self) -> str:
        """Render the transcript as newline-joined ``[time] message`` lines."""
        lines = []
        for timestamp, message, data in self._entries:
            line = f"[{timestamp}] {message}"
            if data is not None:
                line += "\n  " + json.dumps(data, indent=2, default=str)
            lines.append(line)
        return "\n".join(lines)
