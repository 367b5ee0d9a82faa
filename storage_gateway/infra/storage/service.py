"""Gateway service: the storage operations exposed over HTTP and the CLI.

This module provides:
- One method per boundary operation (presign, list, upload, download, delete, teardown)
- Automatic OpenTelemetry spans and Prometheus metrics
- Error normalization into InvalidRequestError / ObjectNotFoundError / StorageOperationError
- Lifecycle management (startup/shutdown) and a process-wide singleton
"""

from __future__ import annotations

import logging
import os
from contextlib import aclosing, asynccontextmanager
from typing import TYPE_CHECKING, Any, BinaryIO
from uuid import uuid4

from storage_gateway.core.settings import get_storage_settings

from .backends.factory import create_storage_backend
from .exceptions import (
    GATEWAY_ERRORS,
    InvalidRequestError,
    ObjectNotFoundError,
    StorageError,
    StorageNotConfiguredError,
    StorageOperationError,
)
from .instrumentation import track_storage_operation
from .metrics import record_presigned_url
from .models import (
    DEFAULT_CONTENT_TYPE,
    PRESIGNED_DOWNLOAD_EXPIRY,
    BucketRef,
    DownloadResult,
    ObjectRef,
    PresignedUrlGrant,
    TransferRequest,
)
from .operations.lifecycle import BucketLifecycleManager, TeardownReport
from .operations.transfer import TransferExecutor

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from storage_gateway.core.settings.storage import StorageSettings

    from .backends.protocol import BucketInfo, StorageBackend

logger = logging.getLogger(__name__)


class GatewayService:
    """High-level gateway over an S3-compatible object store.

    Every public operation either succeeds or raises one of
    ``InvalidRequestError``, ``ObjectNotFoundError``,
    ``StorageOperationError`` or ``StorageNotConfiguredError``.

    Example:
        service = get_gateway_service()

        # In lifespan
        await service.startup()

        # Use in routes
        key = await service.upload_or_replace("reports", "2024.csv", stream)
        result = await service.download("reports", "2024.csv")

        await service.shutdown()
    """

    def __init__(
        self,
        settings: StorageSettings | None = None,
        backend: StorageBackend | None = None,
    ) -> None:
        """Initialize the gateway service.

        Args:
            settings: Optional settings override. If not provided,
                loads from environment via get_storage_settings()
            backend: Optional backend; created by the factory at startup otherwise
        """
        self._settings = settings or get_storage_settings()
        self._backend = backend
        self._initialized = False

    @property
    def is_ready(self) -> bool:
        """Check if the service is initialized and ready for operations."""
        return self._initialized and self._backend is not None and self._backend.is_ready

    @property
    def settings(self) -> StorageSettings:
        return self._settings

    async def startup(self) -> None:
        """Create and start the storage backend.

        Raises:
            StorageError: If the backend cannot be initialized
        """
        if self._initialized:
            return

        if not self._settings.is_configured:
            logger.info("Storage not configured, skipping initialization")
            return

        logger.info(
            "Starting gateway service",
            extra={
                "endpoint": self._settings.endpoint,
                "backend": self._settings.backend.value,
            },
        )

        if self._backend is None:
            self._backend = create_storage_backend(self._settings)
        await self._backend.startup()

        self._initialized = True
        logger.info("Gateway service started successfully")

    async def shutdown(self) -> None:
        """Shutdown the storage backend gracefully."""
        if not self._initialized:
            logger.debug("Gateway service not initialized, nothing to shutdown")
            return

        logger.info("Shutting down gateway service")
        if self._backend is not None:
            await self._backend.shutdown()
        self._initialized = False
        logger.info("Gateway service shutdown complete")

    async def health_check(self) -> bool:
        """Return True when the backend answers."""
        if not self.is_ready or self._backend is None:
            return False
        return await self._backend.health_check()

    def _ensure_ready(self) -> StorageBackend:
        """Ensure the service is ready and return the backend.

        Raises:
            StorageNotConfiguredError: If service is not ready
        """
        if not self.is_ready or self._backend is None:
            raise StorageNotConfiguredError(
                message="Storage service is not initialized",
                metadata={"is_configured": self._settings.is_configured},
            )
        return self._backend

    @asynccontextmanager
    async def _error_boundary(
        self,
        operation: str,
        bucket: str | None = None,
        key: str | None = None,
    ) -> AsyncIterator[None]:
        """Pass gateway errors through; report anything else as StorageOperationError."""
        try:
            yield
        except GATEWAY_ERRORS:
            raise
        except Exception as e:
            message = e.message if isinstance(e, StorageError) else (str(e) or type(e).__name__)
            metadata: dict[str, Any] = {
                "operation": operation,
                "error_type": type(e).__name__,
            }
            if bucket:
                metadata["bucket"] = bucket
            if key:
                metadata["key"] = key
            if isinstance(e, StorageError):
                metadata["cause_code"] = e.code
            logger.error("Storage operation failed", extra={**metadata, "error": message})
            raise StorageOperationError(message, metadata=metadata) from e

    # ========================================================================
    # Presigned URLs
    # ========================================================================

    async def presign_download(self, bucket: str, key: str) -> PresignedUrlGrant:
        """Issue a 24-hour read URL for an object.

        The object is not looked up; a URL for a missing key is still issued.

        Raises:
            InvalidRequestError: If bucket or key is empty
        """
        ref = ObjectRef.of(bucket, key)
        backend = self._ensure_ready()
        expires_in = int(PRESIGNED_DOWNLOAD_EXPIRY.total_seconds())

        async with (
            self._error_boundary("presign", bucket=bucket, key=key),
            track_storage_operation("presign", key=key, bucket=bucket),
        ):
            url = await backend.generate_presigned_download_url(bucket, key, expires_in)

        record_presigned_url("download")
        return PresignedUrlGrant(ref=ref, url=url, expires_in=PRESIGNED_DOWNLOAD_EXPIRY)

    # ========================================================================
    # Listings
    # ========================================================================

    async def list_buckets(self) -> AsyncIterator[BucketInfo]:
        """Lazily iterate every bucket visible to the configured credentials."""
        backend = self._ensure_ready()
        async with (
            self._error_boundary("list_buckets"),
            aclosing(backend.list_buckets()) as buckets,
        ):
            async for bucket in buckets:
                yield bucket

    async def list_objects(self, bucket: str) -> AsyncIterator[str]:
        """Lazily iterate every key in ``bucket``."""
        ref = BucketRef(bucket)
        backend = self._ensure_ready()
        async with (
            self._error_boundary("list_objects", bucket=ref.name),
            aclosing(backend.list_object_keys(ref.name)) as keys,
        ):
            async for key in keys:
                yield key

    # ========================================================================
    # Object Operations
    # ========================================================================

    async def upload_or_replace(
        self,
        bucket: str,
        key: str,
        stream: BinaryIO | None,
        length: int | None = None,
        content_type: str | None = None,
    ) -> str:
        """Store ``stream`` under ``bucket/key``, creating the bucket if needed.

        Any existing object under the key is replaced. The stream is closed
        once the put has been attempted.

        Args:
            bucket: Target bucket (created when missing)
            key: Object key
            stream: Payload; must be non-empty
            length: Payload size in bytes; measured by seeking when omitted
            content_type: MIME type, application/octet-stream when omitted

        Returns:
            The stored key

        Raises:
            InvalidRequestError: If the stream is absent or empty (no store call is made)
        """
        ref = ObjectRef.of(bucket, key)
        if stream is None:
            raise InvalidRequestError(
                "Upload stream is required",
                metadata={"bucket": bucket, "key": key},
            )
        size = self._measure(stream) if length is None else length
        if size <= 0:
            raise InvalidRequestError(
                "Upload stream is empty",
                metadata={"bucket": bucket, "key": key},
            )

        backend = self._ensure_ready()
        content_type = content_type or DEFAULT_CONTENT_TYPE

        async with (
            self._error_boundary("upload", bucket=bucket, key=key),
            track_storage_operation(
                "upload",
                key=key,
                bucket=bucket,
                size_bytes=size,
                content_type=content_type,
            ) as ctx,
        ):
            try:
                await BucketLifecycleManager(backend).ensure_bucket(ref.bucket)
            except BaseException:
                stream.close()
                raise
            result = await TransferExecutor(backend).upload(
                TransferRequest(ref=ref, payload=stream, length=size, content_type=content_type)
            )
            ctx["etag"] = result.etag

        return ref.key

    async def create_object(
        self,
        stream: BinaryIO | None,
        bucket: str | None = None,
        custom_name: str | None = None,
        length: int | None = None,
        content_type: str | None = None,
    ) -> ObjectRef:
        """Upload under a default bucket and a generated name when none are given.

        Returns:
            Reference to the stored object
        """
        target_bucket = bucket or self._settings.default_bucket
        key = custom_name or f"{self._settings.generated_name_prefix}{uuid4()}"
        stored_key = await self.upload_or_replace(
            target_bucket,
            key,
            stream,
            length=length,
            content_type=content_type,
        )
        return ObjectRef.of(target_bucket, stored_key)

    async def download(self, bucket: str, key: str) -> DownloadResult:
        """Read a whole object into memory.

        Raises:
            ObjectNotFoundError: If the object is absent or delete-marked
        """
        ref = ObjectRef.of(bucket, key)
        backend = self._ensure_ready()

        async with (
            self._error_boundary("download", bucket=bucket, key=key),
            track_storage_operation("download", key=key, bucket=bucket) as ctx,
        ):
            result = await TransferExecutor(backend).download(ref)
            ctx["result_size"] = result.size_bytes

        return result

    async def delete_object(self, bucket: str, key: str) -> None:
        """Remove one object after checking it exists.

        Raises:
            ObjectNotFoundError: If the object is absent or delete-marked
        """
        ObjectRef.of(bucket, key)
        backend = self._ensure_ready()

        async with (
            self._error_boundary("delete", bucket=bucket, key=key),
            track_storage_operation("delete", key=key, bucket=bucket),
        ):
            stat = await backend.stat_object(bucket, key)
            if stat is None or stat.delete_marker:
                raise ObjectNotFoundError(
                    bucket,
                    key,
                    delete_marker=stat is not None and stat.delete_marker,
                )
            await backend.delete_object(bucket, key)

    # ========================================================================
    # Bucket Operations
    # ========================================================================

    async def teardown_bucket(self, bucket: str, pack_size: int | None = None) -> TeardownReport:
        """Delete every object in ``bucket`` in batches, then the bucket itself.

        Failed batches are logged and reported, not raised.

        Args:
            bucket: Bucket to remove
            pack_size: Flush threshold, defaults to STORAGE_TEARDOWN_PACK_SIZE

        Raises:
            InvalidRequestError: If pack_size is negative
            StorageOperationError: If listing or bucket removal fails
        """
        ref = BucketRef(bucket)
        if pack_size is None:
            pack_size = self._settings.teardown_pack_size
        backend = self._ensure_ready()

        async with (
            self._error_boundary("teardown", bucket=bucket),
            track_storage_operation(
                "teardown",
                bucket=bucket,
                metadata={"pack_size": pack_size},
            ) as ctx,
        ):
            report = await BucketLifecycleManager(backend).teardown_bucket(ref, pack_size)
            ctx["batches"] = len(report.batches)
            ctx["failed_batches"] = len(report.failed_batches)

        return report

    @staticmethod
    def _measure(stream: BinaryIO) -> int:
        """Return the bytes remaining in a seekable stream."""
        try:
            position = stream.tell()
            end = stream.seek(0, os.SEEK_END)
            stream.seek(position)
        except (AttributeError, OSError, ValueError) as e:
            raise InvalidRequestError(
                "Upload length is unknown and the stream is not seekable"
            ) from e
        return end - position


# ========== Singleton Management ==========

_gateway_service: GatewayService | None = None


def get_gateway_service() -> GatewayService:
    """Get the singleton gateway service instance.

    Creates the instance on first call. The service must be
    initialized via startup() before use.
    """
    global _gateway_service
    if _gateway_service is None:
        _gateway_service = GatewayService()
    return _gateway_service


def reset_gateway_service() -> None:
    """Reset the singleton instance (for testing only)."""
    global _gateway_service
    _gateway_service = None
