"""CLI utilities for running async operations and formatting output."""

from storage_gateway.cli.utils.async_runner import coro
from storage_gateway.cli.utils.formatters import (
    error,
    format_bytes,
    info,
    section,
    success,
    warning,
)

__all__ = [
    "coro",
    "error",
    "format_bytes",
    "info",
    "section",
    "success",
    "warning",
]
