"""Health check API endpoints."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Response, status

from storage_gateway.core.settings import get_app_settings, get_storage_settings
from storage_gateway.infra.storage.dependencies import get_gateway_service
from storage_gateway.infra.storage.service import GatewayService

from .schemas import HealthResponse, HealthStatus, LivenessResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "",
    response_model=HealthResponse,
    summary="Service health",
    description="Returns the service status and the object store check. 503 when degraded.",
)
async def health_check(
    response: Response,
    gateway: GatewayService = Depends(get_gateway_service),
) -> HealthResponse:
    app_settings = get_app_settings()
    checks: dict[str, bool] = {}

    if get_storage_settings().health_check_enabled:
        checks["storage"] = await gateway.health_check()

    healthy = all(checks.values())
    if not healthy:
        logger.warning("Health check degraded", extra={"checks": checks})
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status=HealthStatus.HEALTHY if healthy else HealthStatus.DEGRADED,
        timestamp=datetime.now(UTC),
        service=app_settings.service_name,
        version=app_settings.version,
        checks=checks,
    )


@router.get(
    "/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
)
async def liveness() -> LivenessResponse:
    return LivenessResponse(timestamp=datetime.now(UTC))
