"""Router registry and setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from storage_gateway.core.settings import get_app_settings
from storage_gateway.features.health.router import router as health_router
from storage_gateway.features.metrics.router import router as metrics_router
from storage_gateway.features.storage.router import router as storage_router

if TYPE_CHECKING:
    from fastapi import FastAPI

    from storage_gateway.core.settings.app import AppSettings

logger = logging.getLogger(__name__)


def setup_routers(app: FastAPI, app_settings: AppSettings | None = None) -> None:
    """Register all feature routers with the application.

    ``/metrics`` and ``/health`` are mounted at the root; the storage API
    lives under the configured API prefix.
    """
    app_settings = app_settings or get_app_settings()
    api_prefix = app_settings.api_prefix

    app.include_router(metrics_router)
    app.include_router(health_router)
    app.include_router(storage_router, prefix=api_prefix)

    logger.debug("Routers registered", extra={"api_prefix": api_prefix})
