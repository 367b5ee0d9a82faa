"""Health check response schemas."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class HealthStatus(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"


class HealthResponse(BaseModel):
    """Service health with individual dependency checks.

    Example:
        ```json
        {
            "status": "healthy",
            "timestamp": "2025-01-01T00:00:00Z",
            "service": "storage-gateway",
            "version": "0.1.0",
            "checks": {"storage": true}
        }
        ```
    """

    status: HealthStatus = Field(description="Health status (healthy, degraded)")
    timestamp: datetime = Field(description="Check timestamp")
    service: str = Field(min_length=1, max_length=100, description="Service name")
    version: str = Field(min_length=1, max_length=50, description="Service version")
    checks: dict[str, bool] = Field(
        default_factory=dict, description="Individual dependency health checks"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "timestamp": "2025-01-01T00:00:00Z",
                "service": "storage-gateway",
                "version": "0.1.0",
                "checks": {"storage": True},
            }
        },
        str_strip_whitespace=True,
    )


class LivenessResponse(BaseModel):
    """Liveness probe response."""

    alive: bool = Field(default=True, description="Process is alive")
    timestamp: datetime = Field(description="Check timestamp")
