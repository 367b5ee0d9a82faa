"""Application lifespan: logging, metrics and the gateway service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from storage_gateway.core.settings import (
    get_app_settings,
    get_logging_settings,
    get_storage_settings,
)
from storage_gateway.infra.logging.config import setup_logging
from storage_gateway.infra.metrics.prometheus import application_info
from storage_gateway.infra.storage import get_gateway_service

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


async def startup_storage() -> None:
    """Start the gateway service.

    When the store is unreachable the application keeps running in degraded
    mode (storage routes answer 503) unless STORAGE_STARTUP_REQUIRE_STORAGE
    is set.
    """
    settings = get_storage_settings()
    if not settings.is_configured:
        logger.info("Storage disabled, storage routes will answer 503")
        return

    try:
        await get_gateway_service().startup()
        logger.info(
            "Storage service initialized",
            extra={
                "endpoint": settings.endpoint,
                "default_bucket": settings.default_bucket,
                "health_checks_enabled": settings.health_check_enabled,
            },
        )
    except Exception as e:
        if settings.startup_require_storage:
            logger.error(
                "Storage service required but unavailable, failing startup",
                extra={"error": str(e)},
            )
            raise
        logger.warning(
            "Storage service unavailable, continuing in degraded mode",
            extra={"error": str(e)},
        )


async def shutdown_storage() -> None:
    gateway = get_gateway_service()
    if not gateway.is_ready:
        return
    try:
        await gateway.shutdown()
        logger.info("Storage service shutdown complete")
    except Exception as e:
        logger.warning("Error during storage service shutdown", extra={"error": str(e)})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start logging and storage on startup; stop storage on shutdown."""
    app_settings = get_app_settings()

    setup_logging(log_settings=get_logging_settings(), force=True)
    logger.info(
        "Application starting",
        extra={
            "service": app_settings.service_name,
            "environment": app_settings.environment,
        },
    )
    application_info.labels(
        version=app_settings.version,
        service=app_settings.service_name,
        environment=app_settings.environment,
    ).set(1)

    await startup_storage()
    try:
        yield
    finally:
        await shutdown_storage()
        logger.info("Application stopped", extra={"service": app_settings.service_name})
