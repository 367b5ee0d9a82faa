"""Backend factory for creating storage backends from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from storage_gateway.core.settings.storage import StorageBackendType
from storage_gateway.infra.storage.exceptions import StorageNotConfiguredError

if TYPE_CHECKING:
    from storage_gateway.core.settings.storage import StorageSettings

    from .protocol import StorageBackend


def create_storage_backend(settings: StorageSettings) -> StorageBackend:
    """Create the storage backend selected by ``settings.backend``.

    Args:
        settings: Storage configuration settings

    Returns:
        Storage backend implementing StorageBackend protocol (not started)

    Raises:
        StorageNotConfiguredError: If storage is disabled or the backend type is unsupported
    """
    if not settings.is_configured:
        msg = "Storage not configured. Set STORAGE_ENABLED=true."
        raise StorageNotConfiguredError(msg)

    match settings.backend:
        case StorageBackendType.S3 | StorageBackendType.MINIO:
            # MinIO speaks the S3 API; both use the same backend
            from .s3.backend import S3Backend

            return S3Backend(settings)

        case _:
            msg = (
                f"Unsupported storage backend: {settings.backend}. "
                f"Supported backends: {', '.join(t.value for t in StorageBackendType)}"
            )
            raise StorageNotConfiguredError(msg)
