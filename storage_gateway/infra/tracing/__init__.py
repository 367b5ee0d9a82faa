"""Distributed tracing."""

from __future__ import annotations

from .opentelemetry import get_tracer

__all__ = ["get_tracer"]
