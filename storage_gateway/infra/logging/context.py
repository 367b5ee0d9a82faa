"""Context management for structured logging.

Request-scoped fields (request_id, bucket, ...) are stored in a ContextVar
and injected into every LogRecord by ContextInjectingFilter. Each asyncio
task gets its own copy of the context.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any] | None] = ContextVar("log_context", default=None)


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the logging context of the current task.

    Example:
        set_log_context(request_id="abc-123", path="/api/v1/s3")
        logger.info("Processing request")  # includes request_id and path
    """
    current = dict(_log_context.get() or {})
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current logging context."""
    return dict(_log_context.get() or {})


def clear_log_context() -> None:
    """Clear the logging context of the current task."""
    _log_context.set({})


class ContextInjectingFilter(logging.Filter):
    """Logging filter that copies the contextvars log context onto records.

    Attached to the root QueueHandler, so records from every logger pass it.
    Existing record attributes (including ``extra=`` fields) are never
    overwritten.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in (_log_context.get() or {}).items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
