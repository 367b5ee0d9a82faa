"""Dependencies for object storage endpoints."""

from storage_gateway.infra.storage.dependencies import Gateway

# Gateway service dependency (503 when storage is not ready)
GatewayDep = Gateway

__all__ = ["GatewayDep"]
