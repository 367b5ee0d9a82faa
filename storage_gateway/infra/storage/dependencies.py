"""FastAPI dependency injection for the gateway service.

Two dependency patterns are provided:

1. **get_gateway_service**: returns the process-wide singleton
2. **require_storage**: enforces availability (HTTP 503 if the backend is not ready)

Example::

    from storage_gateway.infra.storage.dependencies import Gateway

    @router.get("/{bucket}/files")
    async def list_files(bucket: str, gateway: Gateway) -> list[str]:
        return [key async for key in gateway.list_objects(bucket)]
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from storage_gateway.core.exceptions import ServiceUnavailableException

from .service import GatewayService


def get_gateway_service() -> GatewayService:
    """Get the singleton gateway service instance.

    The returned service may not be ready; check ``is_ready``.
    """
    from .service import get_gateway_service as _get_gateway_service

    return _get_gateway_service()


async def require_storage(
    gateway: Annotated[GatewayService, Depends(get_gateway_service)],
) -> GatewayService:
    """Dependency that requires the object store to be available.

    Raises:
        ServiceUnavailableException: 503 if the gateway is not started
    """
    if not gateway.is_ready:
        raise ServiceUnavailableException(
            detail="Storage service is not available",
            type="storage-unavailable",
        )
    return gateway


Gateway = Annotated[GatewayService, Depends(require_storage)]
