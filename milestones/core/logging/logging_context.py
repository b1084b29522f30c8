"""Correlation IDs for tying together the log lines of one request or save."""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# Context variable for correlation ID (task-local under asyncio)
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID."""
    return _correlation_id.get()


def set_correlation_id(cid: Optional[str] = None, prefix: str = "") -> str:
    """
    Set a correlation ID for the current context.

    Args:
        cid: Optional correlation ID. If None, generates a new one.
        prefix: Prepended to generated IDs (e.g. "save-")

    Returns:
        The correlation ID (newly generated or provided)
    """
    if cid is None:
        cid = f"{prefix}{uuid.uuid4().hex[:12]}"
    _correlation_id.set(cid)
    return cid


def clear_correlation_id():
    """Clear the current correlation ID."""
    _correlation_id.set(None)


@contextmanager
def correlation_scope(prefix: str = "") -> Iterator[str]:
    """Run a block under a fresh correlation ID, restoring the outer one after.

    A save issued inside an HTTP request gets its own ID; the request's ID
    comes back once the save finishes.
    """
    token = _correlation_id.set(None)
    try:
        yield set_correlation_id(prefix=prefix)
    finally:
        _correlation_id.reset(token)


class CorrelationIDFilter(logging.Filter):
    """Logging filter that adds correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "none"
        return True


def setup_correlation_logging():
    """Attach the correlation filter to the root logger once."""
    root_logger = logging.getLogger()
    if not any(isinstance(f, CorrelationIDFilter) for f in root_logger.filters):
        root_logger.addFilter(CorrelationIDFilter())
