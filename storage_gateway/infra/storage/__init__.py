"""Storage infrastructure for S3-compatible object stores.

Quick Start:
    # In routes using dependency injection
    from storage_gateway.infra.storage import Gateway

    @router.get("/{bucket}/{key:path}")
    async def presign(bucket: str, key: str, gateway: Gateway):
        return await gateway.presign_download(bucket, key)

    # Direct service access (CLI, scripts)
    from storage_gateway.infra.storage import get_gateway_service

    service = get_gateway_service()
    await service.startup()
    report = await service.teardown_bucket("scratch", pack_size=99)
"""

from __future__ import annotations

from .dependencies import Gateway, require_storage
from .exceptions import (
    InvalidRequestError,
    ObjectNotFoundError,
    StorageError,
    StorageNotConfiguredError,
    StorageOperationError,
)
from .models import (
    BucketRef,
    DownloadResult,
    ObjectRef,
    PresignedUrlGrant,
    TransferRequest,
)
from .operations import TeardownReport
from .service import GatewayService, get_gateway_service, reset_gateway_service

__all__ = [
    "BucketRef",
    "DownloadResult",
    "Gateway",
    "GatewayService",
    "InvalidRequestError",
    "ObjectNotFoundError",
    "ObjectRef",
    "PresignedUrlGrant",
    "StorageError",
    "StorageNotConfiguredError",
    "StorageOperationError",
    "TeardownReport",
    "TransferRequest",
    "get_gateway_service",
    "require_storage",
    "reset_gateway_service",
]
