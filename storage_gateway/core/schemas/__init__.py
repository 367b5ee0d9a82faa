"""Shared API schemas."""

from __future__ import annotations

from .problem_details import ProblemDetails

__all__ = ["ProblemDetails"]
